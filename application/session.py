# application/session.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Protocol, Sequence, TypeVar, Union
from urllib.parse import urlsplit

from application.browser import Browser
from application.browser_client import BrowserClient
from application.ports.logger import LoggerPort
from application.ports.transport import Middleware, TransportPort
from application.services.request_translator import RequestDefaults
from application.services.uri_resolver import retrieve_host, swap_subdomain
from domain.config import AwsSigningSpec, BrowserConfig
from domain.cookie import Cookie
from domain.response import CanonicalResponse

T = TypeVar("T")


def _underlying(handle: TransportPort) -> TransportPort:
    return getattr(handle, "transport", handle)


class TransportFactoryPort(Protocol):
    def create_handle(self, handler: Any, middleware: Sequence[Middleware] = ()) -> TransportPort:
        ...


@dataclass(frozen=True)
class SessionSnapshot:
    client: BrowserClient
    handle: TransportPort
    browser: Browser
    defaults: RequestDefaults


class BrowserSession:
    """
    Session object used by test code.

    Holds the transport handle, cookie jar and history for one test session
    and rebuilds the transport whenever the configuration changes.
    """

    def __init__(self, config: BrowserConfig, transports: TransportFactoryPort, logger: LoggerPort):
        self._config = config
        self._transports = transports
        self._logger = logger
        self._client: Optional[BrowserClient] = None
        self._browser: Optional[Browser] = None
        self.initialize_session()

    @property
    def config(self) -> BrowserConfig:
        return self._config

    @property
    def client(self) -> BrowserClient:
        return self._client

    @property
    def browser(self) -> Browser:
        return self._browser

    # --- lifecycle ---

    def initialize_session(self) -> None:
        # independent sessions need independent cookies
        handle = self._transports.create_handle(self._config.handler, self._config.middleware)
        self._client = BrowserClient(handle=handle, base_url=self._config.url, logger=self._logger)
        self._browser = Browser(self._client, logger=self._logger, max_redirects=self._config.max_redirects)
        self._prepare_session(handle)

    def configure(self, config: BrowserConfig) -> None:
        old = self._client.handle
        self._config = config
        self._prepare_session(self._transports.create_handle(config.handler, config.middleware))
        # a handler given as an instance is re-wrapped, not replaced
        if _underlying(old) is not _underlying(self._client.handle):
            old.close()

    def reconfigure(self, **overrides: Any) -> None:
        self.configure(self._config.with_overrides(**overrides))

    def _prepare_session(self, handle: TransportPort) -> None:
        config = self._config
        # credentials set at runtime survive a reconfigure unless the config brings its own
        auth = self._client.defaults.auth
        if config.auth is not None and config.auth.username:
            auth = (config.auth.username, config.auth.password, config.auth.scheme)

        self._client.set_handle(handle)
        self._client.set_base_url(config.url)
        self._client.set_refresh_max_interval(config.refresh_max_interval)
        self._client.set_aws_auth(config.aws or self._client.aws_auth)
        self._client.defaults = RequestDefaults(
            headers=dict(config.headers),
            auth=auth,
            timeout=config.timeout,
            connect_timeout=config.connect_timeout,
            verify=config.verify,
            http_errors=config.http_errors,
            extra=dict(config.curl),
        )
        self._browser.max_redirects = config.max_redirects
        self._set_cookies_from_options()

        self._logger.info(
            "session.prepared",
            url=config.url,
            handler=type(handle).__name__,
            refresh_max_interval=config.refresh_max_interval,
            headers=sorted(config.headers),
        )

    def _set_cookies_from_options(self) -> None:
        for item in self._config.cookies:
            expires = item.get("expires")
            self._browser.cookie_jar.set(
                Cookie(
                    name=str(item.get("name", "")),
                    value=str(item.get("value", "")),
                    domain=str(item.get("domain") or ""),
                    path=str(item.get("path") or "/"),
                    expires=int(expires) if expires else None,
                    secure=bool(item.get("secure", False)),
                    http_only=bool(item.get("httponly", False)),
                )
            )

    def backup_state(self) -> SessionSnapshot:
        return SessionSnapshot(
            client=self._client,
            handle=self._client.handle,
            browser=self._browser,
            defaults=self._client.defaults,
        )

    def restore_state(self, snapshot: SessionSnapshot) -> None:
        self._client = snapshot.client
        self._client.set_handle(snapshot.handle)
        self._client.defaults = snapshot.defaults
        self._browser = snapshot.browser

    def close_session(self, snapshot: Optional[SessionSnapshot] = None) -> None:
        handle = snapshot.handle if snapshot is not None else self._client.handle
        handle.close()

    # --- navigation ---

    def am_on_page(self, page: str) -> CanonicalResponse:
        return self._browser.request("GET", page)

    def am_on_url(self, url: str) -> CanonicalResponse:
        host = retrieve_host(url)
        self.reconfigure(url=host)
        page = url[len(host):] or "/"
        self._logger.debug("session.host", host=host)
        return self.am_on_page(page)

    def am_on_subdomain(self, subdomain: str) -> None:
        self.reconfigure(url=swap_subdomain(self._config.url, subdomain))

    def send(
        self,
        method: str,
        uri: str,
        parameters: Optional[Mapping[str, Any]] = None,
        files: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        content: Optional[Union[str, bytes]] = None,
    ) -> CanonicalResponse:
        return self._browser.request(method, uri, parameters, files, headers, content)

    def set_header(self, name: str, value: str) -> None:
        self._client.set_header(name, value)

    def delete_header(self, name: str) -> None:
        self._client.delete_header(name)

    def http_authenticated(self, username: str, password: str, scheme: str = "basic") -> None:
        self._client.set_auth(username, password, scheme)

    def set_aws_auth(self, key: str, secret: str, service: str, region: str) -> None:
        self._client.set_aws_auth(AwsSigningSpec(key=key, secret=secret, service=service, region=region))

    def execute_in_transport(self, function: Callable[[TransportPort], T]) -> T:
        """
        Low-level escape hatch: runs `function` with the active transport.
        """
        return function(_underlying(self._client.handle))

    # --- inspection ---

    @property
    def response(self) -> Optional[CanonicalResponse]:
        return self._browser.response

    @property
    def response_code(self) -> Optional[int]:
        response = self._browser.response
        return response.status if response is not None else None

    @property
    def current_url(self) -> Optional[str]:
        return self._browser.current_uri()

    def grab_from_current_url(self) -> Optional[str]:
        uri = self._browser.current_uri()
        if uri is None:
            return None
        parts = urlsplit(uri)
        return parts.path + (f"?{parts.query}" if parts.query else "")
