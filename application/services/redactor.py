# application/services/redactor.py
from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Tuple, Dict
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

MASK = "********"

SENSITIVE_KEYS = {
    "password", "passwd", "pass",
    "authorization", "proxy-authorization",
    "cookie", "set-cookie",
    "x-amz-security-token",
}

# presigned urls carry credentials in the query string
SENSITIVE_QUERY_KEYS = SENSITIVE_KEYS | {
    "x-amz-signature", "x-amz-credential",
    "access_token", "token", "api_key",
}


def mask_value(key: str, value: Any) -> Any:
    if key.lower() in SENSITIVE_KEYS and value is not None:
        return MASK
    return value


def mask_pairs(pairs: Iterable[Tuple[str, Any]]) -> List[Tuple[str, Any]]:
    return [(k, mask_value(k, v)) for k, v in pairs]


def mask_dict(d: Mapping[str, Any]) -> Dict[str, Any]:
    # works for CaseInsensitiveDict too (original key casing is kept)
    return {k: mask_value(k, v) for k, v in d.items()}


def mask_url(url: str) -> str:
    """
    Hide the userinfo password and credential-like query values.
    The url is returned untouched when there is nothing to hide.
    """
    parts = urlsplit(url)
    netloc = parts.netloc
    changed = False

    if parts.password is not None:
        userinfo, _, hostport = netloc.rpartition("@")
        user = userinfo.partition(":")[0]
        netloc = f"{user}:{MASK}@{hostport}"
        changed = True

    query = parts.query
    if query:
        pairs = parse_qsl(query, keep_blank_values=True)
        if any(k.lower() in SENSITIVE_QUERY_KEYS for k, _v in pairs):
            masked = [(k, MASK if k.lower() in SENSITIVE_QUERY_KEYS else v) for k, v in pairs]
            query = urlencode(masked, safe="*")
            changed = True

    if not changed:
        return url
    return urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))
