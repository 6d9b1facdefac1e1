# infrastructure/http/requests_transport.py
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple, Union

import requests
from requests.adapters import HTTPAdapter
from requests.auth import AuthBase, HTTPBasicAuth, HTTPDigestAuth

from application.ports.transport import RequestOptions, TransportPort, TransportResponse, WireRequest
from domain.exceptions import ConfigurationError, TransportError

STREAM_CHUNK_SIZE = 64 * 1024


def _auth(auth: Optional[Tuple[str, str, str]]) -> Optional[AuthBase]:
    if auth is None:
        return None
    username, password, scheme = auth
    scheme = (scheme or "basic").lower()
    if scheme == "basic":
        return HTTPBasicAuth(username, password)
    if scheme == "digest":
        return HTTPDigestAuth(username, password)
    raise ConfigurationError(f"Unsupported auth scheme: {scheme}")


def _timeout(options: RequestOptions) -> Union[None, float, Tuple[Optional[float], Optional[float]]]:
    if options.connect_timeout is not None:
        return (options.connect_timeout, options.timeout)
    return options.timeout


def _response_headers(resp: requests.Response) -> List[Tuple[str, str]]:
    # raw urllib3 headers keep repeated fields (Set-Cookie) apart
    raw_headers = getattr(resp.raw, "headers", None)
    if raw_headers is not None and hasattr(raw_headers, "getlist"):
        out: List[Tuple[str, str]] = []
        for name in raw_headers:
            for value in raw_headers.getlist(name):
                out.append((name, value))
        return out
    return list(resp.headers.items())


def to_transport_response(resp: requests.Response, body: Optional[bytes] = None) -> TransportResponse:
    return TransportResponse(
        status=resp.status_code,
        headers=_response_headers(resp),
        body=resp.content if body is None else body,
        url=str(resp.url),
    )


class RequestsTransport(TransportPort):
    """
    Default transport: pooled `requests.Session`.

    The session's own cookie jar is emptied after every request; cookies are
    owned by the browser and handed over per request through the options.
    """

    stream = False

    def __init__(self, session: Optional[requests.Session] = None, pool_maxsize: int = 10):
        self._session = session or requests.Session()
        adapter = HTTPAdapter(pool_connections=pool_maxsize, pool_maxsize=pool_maxsize)
        self._session.mount("http://", adapter)
        self._session.mount("https://", adapter)

    @property
    def session(self) -> requests.Session:
        return self._session

    def send(self, request: WireRequest, options: RequestOptions) -> TransportResponse:
        kwargs = self._build_kwargs(request, options)
        try:
            resp = self._session.request(**kwargs)
            body = self._read_body(resp)
        except requests.RequestException as e:
            raise TransportError(str(e)) from e
        finally:
            self._session.cookies.clear()

        result = to_transport_response(resp, body)
        if options.http_errors:
            try:
                resp.raise_for_status()
            except requests.HTTPError as e:
                raise TransportError(str(e), response=result) from e
        return result

    def close(self) -> None:
        self._session.close()

    def _read_body(self, resp: requests.Response) -> bytes:
        return resp.content

    def _build_kwargs(self, request: WireRequest, options: RequestOptions) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "method": request.method,
            "url": request.url,
            "headers": dict(request.headers),
            "cookies": options.cookies,
            "allow_redirects": options.allow_redirects,
            "timeout": _timeout(options),
            "verify": options.verify,
            "auth": _auth(options.auth),
            "stream": self.stream,
        }

        if options.multipart:
            files = []
            for part in options.multipart:
                if part.is_file:
                    if part.content_type:
                        files.append((part.name, (part.filename, part.contents, part.content_type)))
                    else:
                        files.append((part.name, (part.filename, part.contents)))
                else:
                    files.append((part.name, (None, part.contents)))
            # everything goes through `files` so the part order is kept as built
            kwargs["files"] = files
        elif options.form_params:
            kwargs["data"] = options.form_params
        elif request.body is not None:
            kwargs["data"] = request.body

        # raw transport tuning (proxies, cert, ...)
        kwargs.update(options.extra)
        return kwargs


class StreamingRequestsTransport(RequestsTransport):
    """Downloads the body in chunks instead of one read."""

    stream = True

    def _read_body(self, resp: requests.Response) -> bytes:
        try:
            return b"".join(resp.iter_content(chunk_size=STREAM_CHUNK_SIZE))
        finally:
            resp.close()
