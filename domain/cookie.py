from __future__ import annotations

import time
from dataclasses import dataclass
from email.utils import parsedate_to_datetime
from typing import Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlsplit


@dataclass(frozen=True)
class Cookie:
    name: str
    value: str
    domain: str = ""
    path: str = "/"
    expires: Optional[int] = None  # unix timestamp, None => session cookie
    secure: bool = False
    http_only: bool = False

    def is_expired(self, now: Optional[float] = None) -> bool:
        if self.expires is None:
            return False
        return self.expires <= (time.time() if now is None else now)

    @classmethod
    def from_set_cookie(cls, header: str, uri: Optional[str] = None) -> Optional["Cookie"]:
        """
        Parse one Set-Cookie header value.
        Missing Domain/Path default to the host/directory of `uri`.
        Returns None for values without a `name=value` pair.
        """
        parts = [p.strip() for p in header.split(";")]
        if not parts or "=" not in parts[0]:
            return None

        name, value = parts[0].split("=", 1)
        name = name.strip()
        if not name:
            return None

        attrs: Dict[str, Optional[str]] = {}
        for p in parts[1:]:
            if not p:
                continue
            if "=" in p:
                k, v = p.split("=", 1)
                attrs[k.strip().lower()] = v.strip()
            else:
                attrs[p.lower()] = None

        host, default_path = _uri_defaults(uri)
        domain = (attrs.get("domain") or host).lstrip(".").lower()
        path = attrs.get("path") or default_path

        return cls(
            name=name,
            value=value.strip().strip('"'),
            domain=domain,
            path=path,
            expires=_parse_expiry(attrs),
            secure="secure" in attrs,
            http_only="httponly" in attrs,
        )


def _uri_defaults(uri: Optional[str]) -> Tuple[str, str]:
    if not uri:
        return "", "/"
    parts = urlsplit(uri)
    path = parts.path or "/"
    if not path.endswith("/"):
        path = path[: path.rfind("/") + 1] or "/"
    return (parts.hostname or ""), path


def _parse_expiry(attrs: Dict[str, Optional[str]]) -> Optional[int]:
    max_age = attrs.get("max-age")
    if max_age is not None:
        try:
            return int(time.time()) + int(max_age)
        except ValueError:
            pass
    expires = attrs.get("expires")
    if expires:
        try:
            return int(parsedate_to_datetime(expires).timestamp())
        except (TypeError, ValueError):
            return None
    return None


class CookieJar:
    """Browser-side cookie store keyed by (domain, path, name)."""

    def __init__(self, cookies: Iterable[Cookie] = ()) -> None:
        self._cookies: Dict[Tuple[str, str, str], Cookie] = {}
        for c in cookies:
            self.set(c)

    def set(self, cookie: Cookie) -> None:
        self._cookies[(cookie.domain, cookie.path, cookie.name)] = cookie

    def get(self, name: str, path: str = "/", domain: Optional[str] = None) -> Optional[Cookie]:
        for (c_domain, c_path, c_name), cookie in self._cookies.items():
            if c_name != name or c_path != path:
                continue
            if domain is None or c_domain == domain:
                return cookie
        return None

    def expire(self, name: str, path: str = "/", domain: Optional[str] = None) -> None:
        for key in [k for k in self._cookies if k[2] == name and k[1] == path]:
            if domain is None or key[0] == domain:
                del self._cookies[key]

    def clear(self) -> None:
        self._cookies.clear()

    def all(self) -> List[Cookie]:
        return [c for c in self._cookies.values() if not c.is_expired()]

    def update_from_set_cookie(self, values: Iterable[str], uri: Optional[str] = None) -> None:
        for raw in values:
            cookie = Cookie.from_set_cookie(raw, uri)
            if cookie is None:
                continue
            if cookie.is_expired():
                self.expire(cookie.name, cookie.path, cookie.domain)
            else:
                self.set(cookie)

    def copy(self) -> "CookieJar":
        return CookieJar(self._cookies.values())

    def __len__(self) -> int:
        return len(self.all())
