from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from domain.exceptions import ConfigurationError

AUTH_SCHEMES = ("basic", "digest")


@dataclass(frozen=True)
class AuthSpec:
    username: str
    password: str
    scheme: str = "basic"


@dataclass(frozen=True)
class AwsSigningSpec:
    key: str
    secret: str
    service: str
    region: str
    token: Optional[str] = None


@dataclass(frozen=True)
class BrowserConfig:
    """
    Immutable browser configuration.

    Reconfiguration builds a new instance through `with_overrides`; nothing
    mutates a config while requests are running.
    """

    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    verify: bool = False
    timeout: Optional[float] = 30
    connect_timeout: Optional[float] = None
    handler: Any = "session"
    middleware: Tuple[Callable, ...] = ()
    refresh_max_interval: int = 10
    curl: Dict[str, Any] = field(default_factory=dict)
    cookies: Tuple[Dict[str, Any], ...] = ()
    auth: Optional[AuthSpec] = None
    aws: Optional[AwsSigningSpec] = None
    max_redirects: int = 5
    http_errors: bool = False

    def __post_init__(self) -> None:
        if not self.url:
            raise ConfigurationError("Browser config requires 'url' (base url of the application)")
        if not isinstance(self.headers, Mapping):
            raise ConfigurationError(f"'headers' must be a mapping, got: {type(self.headers).__name__}")
        if self.auth is not None and self.auth.scheme.lower() not in AUTH_SCHEMES:
            raise ConfigurationError(f"Unsupported auth scheme: {self.auth.scheme}")
        if self.refresh_max_interval < 0:
            raise ConfigurationError("'refresh_max_interval' must be >= 0")

    def with_overrides(self, **changes: Any) -> "BrowserConfig":
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BrowserConfig":
        url = data.get("url") or data.get("base_url")
        if not url:
            raise ConfigurationError("Browser config requires 'url' (base url of the application)")

        headers = data.get("headers") or data.get("default_headers") or {}
        if not isinstance(headers, Mapping):
            raise ConfigurationError(f"'headers' must be a mapping, got: {type(headers).__name__}")

        return cls(
            url=str(url),
            headers={str(k): str(v) for k, v in headers.items()},
            verify=bool(data.get("verify", data.get("verify_tls", False))),
            timeout=data.get("timeout", 30),
            connect_timeout=data.get("connect_timeout"),
            handler=data.get("handler", "session"),
            middleware=tuple(data.get("middleware") or ()),
            refresh_max_interval=int(data.get("refresh_max_interval", 10)),
            curl=dict(data.get("curl") or data.get("curl_options") or {}),
            cookies=_load_cookies(data.get("cookies")),
            auth=_load_auth(data.get("auth")),
            aws=_load_aws(data.get("aws") or data.get("aws_signing")),
            max_redirects=int(data.get("max_redirects", 5)),
            http_errors=bool(data.get("http_errors", False)),
        )


def _load_auth(raw: Any) -> Optional[AuthSpec]:
    if not raw:
        return None
    if isinstance(raw, Mapping):
        return AuthSpec(
            username=str(raw.get("username", "")),
            password=str(raw.get("password", "")),
            scheme=str(raw.get("scheme", "basic")),
        )
    items: List[Any] = list(raw)
    if len(items) < 2:
        raise ConfigurationError("'auth' needs at least [username, password]")
    scheme = str(items[2]) if len(items) > 2 else "basic"
    return AuthSpec(username=str(items[0]), password=str(items[1]), scheme=scheme)


def _load_aws(raw: Any) -> Optional[AwsSigningSpec]:
    if not raw:
        return None
    if not isinstance(raw, Mapping):
        raise ConfigurationError("'aws' must be a mapping with key/secret/service/region")
    missing = [k for k in ("key", "secret", "service", "region") if not raw.get(k)]
    if missing:
        raise ConfigurationError(f"'aws' is missing: {', '.join(missing)}")
    return AwsSigningSpec(
        key=str(raw["key"]),
        secret=str(raw["secret"]),
        service=str(raw["service"]),
        region=str(raw["region"]),
        token=raw.get("token"),
    )


def _load_cookies(raw: Any) -> Tuple[Dict[str, Any], ...]:
    # YAML style: {cookie-1: {Name: ..., Value: ...}} or a plain list
    if not raw:
        return ()
    items = raw.values() if isinstance(raw, Mapping) else raw
    out: List[Dict[str, Any]] = []
    for item in items:
        if not isinstance(item, Mapping):
            raise ConfigurationError(f"cookie definition must be a mapping, got: {type(item).__name__}")
        out.append({str(k).lower(): v for k, v in item.items()})
    return tuple(out)
