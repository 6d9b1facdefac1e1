# application/services/aws_signer.py
from __future__ import annotations

import hashlib
import hmac
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple
from urllib.parse import SplitResult, parse_qsl, quote, urlsplit

from requests.structures import CaseInsensitiveDict

from application.ports.transport import WireRequest
from domain.config import AwsSigningSpec

ALGORITHM = "AWS4-HMAC-SHA256"


def _sha256(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _hmac(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


def _encode(value: str) -> str:
    return quote(value, safe="-_.~")


def _host_header(parts: SplitResult) -> str:
    # userinfo never goes into Host
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    return f"{host}:{parts.port}" if parts.port else host


class AwsSigV4Signer:
    """
    Signs a wire request with AWS Signature Version 4.

    The payload hash covers the raw request body only; form/multipart bodies
    are encoded later by the transport and are signed as an empty payload.
    """

    def __init__(self, spec: AwsSigningSpec, clock: Optional[Callable[[], datetime]] = None):
        self._spec = spec
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def sign(self, request: WireRequest) -> WireRequest:
        now = self._clock()
        amz_date = now.strftime("%Y%m%dT%H%M%SZ")
        datestamp = amz_date[:8]

        parts = urlsplit(request.url)
        body = request.body or b""
        if isinstance(body, str):
            body = body.encode("utf-8")
        payload_hash = _sha256(body)

        headers = CaseInsensitiveDict(request.headers)
        headers["Host"] = _host_header(parts)
        headers["X-Amz-Date"] = amz_date
        headers["X-Amz-Content-Sha256"] = payload_hash
        if self._spec.token:
            headers["X-Amz-Security-Token"] = self._spec.token

        signed = self._signed_header_names(headers)
        canonical_headers = "".join(f"{name}:{' '.join(str(headers[name]).split())}\n" for name in signed)
        signed_headers = ";".join(signed)

        canonical_request = "\n".join([
            request.method.upper(),
            quote(parts.path or "/", safe="/-_.~"),
            self._canonical_query(parts.query),
            canonical_headers,
            signed_headers,
            payload_hash,
        ])

        scope = f"{datestamp}/{self._spec.region}/{self._spec.service}/aws4_request"
        string_to_sign = "\n".join([ALGORITHM, amz_date, scope, _sha256(canonical_request.encode("utf-8"))])
        signature = hmac.new(
            self._signing_key(datestamp), string_to_sign.encode("utf-8"), hashlib.sha256
        ).hexdigest()

        headers["Authorization"] = (
            f"{ALGORITHM} Credential={self._spec.key}/{scope}, "
            f"SignedHeaders={signed_headers}, Signature={signature}"
        )
        return WireRequest(method=request.method, url=request.url, headers=headers, body=request.body)

    def _signed_header_names(self, headers: CaseInsensitiveDict) -> List[str]:
        names = ["host", "x-amz-date", "x-amz-content-sha256"]
        for optional in ("content-type", "x-amz-security-token"):
            if optional in headers:
                names.append(optional)
        return sorted(names)

    def _canonical_query(self, query: str) -> str:
        pairs: List[Tuple[str, str]] = parse_qsl(query, keep_blank_values=True)
        return "&".join(f"{_encode(k)}={_encode(v)}" for k, v in sorted(pairs))

    def _signing_key(self, datestamp: str) -> bytes:
        k_date = _hmac(("AWS4" + self._spec.secret).encode("utf-8"), datestamp)
        k_region = _hmac(k_date, self._spec.region)
        k_service = _hmac(k_region, self._spec.service)
        return _hmac(k_service, "aws4_request")
