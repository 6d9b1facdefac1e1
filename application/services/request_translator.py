# application/services/request_translator.py
from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from urllib.parse import urlsplit

from requests.cookies import RequestsCookieJar, create_cookie
from requests.structures import CaseInsensitiveDict

from application.ports.transport import MultipartPart, RequestOptions, WireRequest
from application.services.uri_resolver import append_query
from domain.browser_request import CONTENT_HEADERS, HTTP_PREFIX, BrowserRequest, UploadedFile
from domain.cookie import CookieJar

FORM_URLENCODED = "application/x-www-form-urlencoded"
FORM_METHODS = ("POST", "PUT", "PATCH", "DELETE")
MULTIPART_METHODS = ("POST", "PUT", "PATCH")
QUERY_METHODS = ("GET", "HEAD")


@dataclass(frozen=True)
class RequestDefaults:
    """
    Per-session settings applied to every request.
    Changing a value returns a new instance (see `with_header` etc.).
    """

    headers: Dict[str, str] = field(default_factory=dict)
    auth: Optional[Tuple[str, str, str]] = None
    timeout: Optional[float] = None
    connect_timeout: Optional[float] = None
    verify: bool = False
    http_errors: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    def with_header(self, name: str, value: str) -> "RequestDefaults":
        if value == "":
            return self.without_header(name)
        headers = dict(self.headers)
        headers[name] = value
        return replace(self, headers=headers)

    def without_header(self, name: str) -> "RequestDefaults":
        headers = {k: v for k, v in self.headers.items() if k != name}
        return replace(self, headers=headers)

    def with_auth(self, username: str, password: str, scheme: str = "basic") -> "RequestDefaults":
        if username == "":
            return replace(self, auth=None)
        return replace(self, auth=(username, password, scheme))


def canonical_header_name(key: str) -> str:
    """
    "HTTP_X_REQUESTED_WITH" => "Http-X-Requested-With"
    "content-md5"           => "Content-Md5"
    """
    words = key.lower().replace("_", "-").split("-")
    return "-".join(w[:1].upper() + w[1:] for w in words)


def flatten_params(params: Any, prefix: str = "") -> List[Tuple[str, str]]:
    """
    Nested mappings/lists are flattened with bracket notation, keeping order.
    例: {"users": [{"id": 0}]} => [("users[0][id]", "0")]
    """
    out: List[Tuple[str, str]] = []
    for key, value in _items(params):
        name = f"{prefix}[{key}]" if prefix else str(key)
        if isinstance(value, (Mapping, list, tuple)):
            out.extend(flatten_params(value, name))
        else:
            out.append((name, _scalar(value)))
    return out


def _items(value: Any) -> Iterable[Tuple[Any, Any]]:
    if isinstance(value, Mapping):
        return value.items()
    return enumerate(value)


def _scalar(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


class RequestTranslator:
    def extract_headers(self, request: BrowserRequest) -> CaseInsensitiveDict:
        headers = CaseInsensitiveDict()
        content_headers = {canonical_header_name(h) for h in CONTENT_HEADERS}
        http_prefix = canonical_header_name(HTTP_PREFIX)

        for key, value in request.server.items():
            name = canonical_header_name(key)
            if name.startswith(http_prefix):
                headers[name[len(http_prefix):]] = value
            elif name in content_headers:
                headers[name] = value
        return headers

    def extract_form_data(
        self,
        request: BrowserRequest,
        headers: CaseInsensitiveDict,
    ) -> Optional[List[Tuple[str, str]]]:
        if request.method not in FORM_METHODS:
            return None

        ctype = headers.get("Content-Type")
        if ctype is not None and ctype != FORM_URLENCODED:
            return None

        if request.content is not None:
            return None

        return flatten_params(request.parameters)

    def extract_multipart(self, request: BrowserRequest) -> List[MultipartPart]:
        if request.method not in MULTIPART_METHODS:
            return []

        parts = self.map_files(request.files)
        if not parts:
            return []

        # form fields go after every file part, in field order
        for name, value in flatten_params(request.parameters):
            parts.append(MultipartPart(name=name, contents=value.encode("utf-8")))
        return parts

    def map_files(self, files: Any, array_name: str = "") -> List[MultipartPart]:
        parts: List[MultipartPart] = []
        for name, info in _items(files):
            name = f"{array_name}[{name}]" if array_name else str(name)

            if isinstance(info, Mapping) and "tmp_name" in info:
                info = UploadedFile(
                    path=info.get("tmp_name"),
                    filename=info.get("name"),
                    content_type=info.get("type"),
                )

            if isinstance(info, UploadedFile):
                if info.is_empty:
                    continue
                parts.append(self._file_part(name, info))
            elif isinstance(info, (Mapping, list, tuple)):
                parts.extend(self.map_files(info, name))
            elif info:
                parts.append(self._file_part(name, UploadedFile(path=info)))
        return parts

    def _file_part(self, name: str, upload: UploadedFile) -> MultipartPart:
        filename = upload.filename
        if filename is None:
            filename = os.path.basename(str(upload.path)) if upload.path else name
        return MultipartPart(
            name=name,
            contents=upload.read(),
            filename=filename,
            content_type=upload.content_type,
        )

    def extract_cookies(self, jar: CookieJar, host: str) -> RequestsCookieJar:
        out = RequestsCookieJar()
        for c in jar.all():
            rest = {"HttpOnly": None} if c.http_only else {}
            # host-less cookies would be rejected by domain matching
            domain = c.domain or host
            if domain and "." not in domain:
                # cookiejar matches dotless hosts (localhost) as "<host>.local"
                domain += ".local"
            out.set_cookie(
                create_cookie(
                    name=c.name,
                    value=c.value,
                    domain=domain,
                    path=c.path or "/",
                    secure=c.secure,
                    expires=c.expires,
                    rest=rest,
                )
            )
        return out

    def translate(
        self,
        request: BrowserRequest,
        cookies: CookieJar,
        defaults: RequestDefaults,
    ) -> Tuple[WireRequest, RequestOptions]:
        headers = self.extract_headers(request)
        url = request.uri

        multipart = self.extract_multipart(request)
        form = None if multipart else self.extract_form_data(request, headers)

        if request.method in QUERY_METHODS and request.parameters:
            url = append_query(url, flatten_params(request.parameters))

        # session headers are set over the request's own headers
        for name, value in defaults.headers.items():
            headers[name] = value

        wire = WireRequest(
            method=request.method,
            url=url,
            headers=headers,
            body=None if (multipart or form) else request.content,
        )
        options = RequestOptions(
            cookies=self.extract_cookies(cookies, urlsplit(url).hostname or ""),
            form_params=form or None,
            multipart=multipart or None,
            auth=defaults.auth,
            timeout=defaults.timeout,
            connect_timeout=defaults.connect_timeout,
            verify=defaults.verify,
            http_errors=defaults.http_errors,
            extra=dict(defaults.extra),
        )
        return wire, options
