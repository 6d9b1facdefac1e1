# application/services/response_normalizer.py
from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import Optional

from application.ports.transport import TransportResponse
from application.services.uri_resolver import HistoryPort, UriResolver, strip_fragment
from domain.response import CanonicalResponse, HeaderMap, find_header_key, first_header

DEFAULT_CONTENT_TYPE = "text/html"

_META_CHARSET = re.compile(rb"""<meta[^>]+charset *= *["']?([a-zA-Z\-0-9]+)""", re.I)
_META_REFRESH = re.compile(
    rb'<meta[^>]+http-equiv="refresh" content="\s*(\d*)\s*;\s*url=(.*?)"',
    re.I,
)
_HEADER_REFRESH = re.compile(r"^\s*(\d*)\s*;\s*url=(.*)", re.I)


@dataclass(frozen=True)
class RefreshMatch:
    interval: str
    url: str
    from_meta: bool

    def is_due(self, max_interval: int) -> bool:
        # no interval (or 0) means "immediately"
        if not self.interval or int(self.interval) == 0:
            return True
        return int(self.interval) < max_interval


def detect_charset(body: bytes) -> Optional[str]:
    m = _META_CHARSET.search(body)
    return m.group(1).decode("ascii") if m else None


def detect_refresh(body: bytes, headers: HeaderMap) -> Optional[RefreshMatch]:
    m = _META_REFRESH.search(body)
    if m:
        return RefreshMatch(
            interval=m.group(1).decode("ascii"),
            url=m.group(2).decode("utf-8", errors="replace"),
            from_meta=True,
        )

    header = first_header(headers, "Refresh")
    if header is None:
        return None
    m2 = _HEADER_REFRESH.match(header)
    if not m2:
        return None
    return RefreshMatch(interval=m2.group(1), url=m2.group(2), from_meta=False)


class ResponseNormalizer:
    """
    Raw transport response -> CanonicalResponse.

    1. Content-Type defaults to text/html; a missing charset is taken from an
       HTML <meta charset> declaration when the body has one.
    2. A meta refresh (or Refresh header) due sooner than `refresh_max_interval`
       seconds is turned into a 302 + Location so navigation has a single
       redirect signal. Native 3xx responses are left alone, and a refresh that
       points back at the current page (fragment ignored) is not rewritten.
    """

    def __init__(self, resolver: Optional[UriResolver] = None):
        self._resolver = resolver or UriResolver()

    def normalize(
        self,
        raw: TransportResponse,
        current_uri: Optional[str],
        base_url: str,
        history: Optional[HistoryPort],
        refresh_max_interval: int,
    ) -> CanonicalResponse:
        body = raw.body or b""
        headers = raw.header_map()

        self._annotate_charset(body, headers)

        status = raw.status
        if status < 300 or status >= 400:
            location = self._refresh_location(
                body, headers, current_uri, base_url, history, refresh_max_interval
            )
            if location is not None:
                status = 302
                key = find_header_key(headers, "Location") or "Location"
                headers[key] = [location]

        return CanonicalResponse(body=body, status=status, headers=headers)

    def _annotate_charset(self, body: bytes, headers: HeaderMap) -> None:
        content_type = first_header(headers, "Content-Type") or DEFAULT_CONTENT_TYPE
        if "charset=" in content_type:
            return

        charset = detect_charset(body)
        if charset:
            content_type += ";charset=" + charset

        key = find_header_key(headers, "Content-Type") or "Content-Type"
        headers[key] = [content_type]

    def _refresh_location(
        self,
        body: bytes,
        headers: HeaderMap,
        current_uri: Optional[str],
        base_url: str,
        history: Optional[HistoryPort],
        refresh_max_interval: int,
    ) -> Optional[str]:
        match = detect_refresh(body, headers)
        if match is None or not match.is_due(refresh_max_interval):
            return None

        # meta tags carry html-escaped urls (&amp;); headers are taken literally
        target = html.unescape(match.url) if match.from_meta else match.url
        uri = self._resolver.resolve(target, base_url, history)
        if current_uri is not None and strip_fragment(uri) == strip_fragment(current_uri):
            return None
        return uri
