from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

HeaderMap = Dict[str, List[str]]

_CHARSET_PARAM = re.compile(r"charset\s*=\s*[\"']?([^\s;\"']+)", re.I)


def find_header_key(headers: HeaderMap, name: str) -> Optional[str]:
    """Return the stored key for `name`, compared case-insensitively."""
    lowered = name.lower()
    for key in headers:
        if key.lower() == lowered:
            return key
    return None


def first_header(headers: HeaderMap, name: str) -> Optional[str]:
    key = find_header_key(headers, name)
    if key is None or not headers[key]:
        return None
    return headers[key][0]


@dataclass(frozen=True)
class CanonicalResponse:
    body: bytes
    status: int
    headers: HeaderMap = field(default_factory=dict)

    def header(self, name: str) -> Optional[str]:
        return first_header(self.headers, name)

    def header_values(self, name: str) -> List[str]:
        key = find_header_key(self.headers, name)
        return list(self.headers[key]) if key is not None else []

    @property
    def content_type(self) -> Optional[str]:
        return self.header("Content-Type")

    @property
    def charset(self) -> Optional[str]:
        m = _CHARSET_PARAM.search(self.content_type or "")
        return m.group(1) if m else None

    @property
    def location(self) -> Optional[str]:
        return self.header("Location")

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status < 400 and self.location is not None

    @property
    def text(self) -> str:
        enc = self.charset or "utf-8"
        try:
            return self.body.decode(enc, errors="replace")
        except LookupError:
            return self.body.decode("utf-8", errors="replace")
