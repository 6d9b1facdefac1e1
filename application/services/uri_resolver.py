# application/services/uri_resolver.py
from __future__ import annotations

from typing import List, Optional, Protocol, Tuple
from urllib.parse import urlencode, urljoin, urlsplit, urlunsplit


class HistoryPort(Protocol):
    def is_empty(self) -> bool:
        ...

    def current(self):  # -> entry with `.uri`
        ...


def is_absolute(uri: str) -> bool:
    return "://" in uri or uri.startswith("//")


def retrieve_host(url: str) -> str:
    """scheme://host[:port] part of an absolute url."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, "", "", ""))


def append_path(base: str, path: str) -> str:
    """
    Append `path` to `base`, dropping the base's query/fragment.
    例: ("http://host/app", "/relative/path") => "http://host/app/relative/path"
    """
    parts = urlsplit(base)
    cut = urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))
    if path == "" or path[0] in "#?":
        return cut + path
    return cut.rstrip("/") + "/" + path.lstrip("/")


def merge_urls(base: str, ref: str) -> str:
    # RFC 3986 reference resolution
    return urljoin(base, ref)


def append_query(url: str, pairs: List[Tuple[str, str]]) -> str:
    """
    Add encoded `pairs` after any existing query, before the fragment.
    例: ("http://host/s?a=1#top", [("q", "x")]) => "http://host/s?a=1&q=x#top"
    """
    if not pairs:
        return url
    parts = urlsplit(url)
    query = urlencode(pairs)
    if parts.query:
        query = parts.query + "&" + query
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def swap_subdomain(url: str, subdomain: str) -> str:
    """
    Replace the current subdomain of `url` with `subdomain`.
    例: ("http://www.example.com/app", "api") => "http://api.example.com/app"
    """
    parts = urlsplit(url)
    host = parts.hostname or ""
    labels = host.split(".")
    if len(labels) > 2:
        labels = labels[-2:]
    new_host = ".".join([subdomain] + labels)
    netloc = new_host
    if parts.port:
        netloc = f"{new_host}:{parts.port}"
    if parts.username:
        cred = parts.username + (f":{parts.password}" if parts.password else "")
        netloc = f"{cred}@{netloc}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


def strip_fragment(uri: str) -> str:
    parts = urlsplit(uri)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, parts.query, ""))


class UriResolver:
    """
    Turns the uri a test asked for into the absolute uri that goes on the wire.

    - absolute (`scheme://...`) and protocol-relative (`//host/...`) uris are kept
    - `/path` is appended to the base url; a path that already starts with the
      base url's own path is not prefixed twice
    - anything else is resolved against the current page, or the base url when
      nothing has been visited yet
    """

    def resolve(self, target: str, base: str, history: Optional[HistoryPort] = None) -> str:
        if is_absolute(target):
            return target

        if target.startswith("/"):
            base_path = urlsplit(base).path
            if base_path and _has_path_prefix(target, base_path):
                target = target[len(base_path):]
            return append_path(base, target)

        if history is not None and not history.is_empty():
            return merge_urls(history.current().uri, target)

        return merge_urls(base, target)


def _has_path_prefix(target: str, prefix: str) -> bool:
    if not target.startswith(prefix):
        return False
    if prefix.endswith("/") or len(target) == len(prefix):
        return True
    return target[len(prefix)] in "/?#"
