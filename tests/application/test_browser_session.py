from __future__ import annotations

from typing import Any, List, Sequence

from application.ports.transport import Middleware, TransportPort
from application.session import BrowserSession
from domain.config import AuthSpec, BrowserConfig
from tests.fakes import FakeTransport, RecordingLogger, html_response


class FakeTransportFactory:
    def __init__(self) -> None:
        self.created: List[FakeTransport] = []
        self.handlers: List[Any] = []

    def create_handle(self, handler: Any, middleware: Sequence[Middleware] = ()) -> TransportPort:
        self.handlers.append(handler)
        transport = FakeTransport(default=lambda req: html_response(f"<p>{req.headers.get('foo', '')}</p>"))
        self.created.append(transport)
        return transport

    @property
    def current(self) -> FakeTransport:
        return self.created[-1]


def _session(**config: Any):
    factory = FakeTransportFactory()
    data = {"url": "http://localhost/app"}
    data.update(config)
    session = BrowserSession(BrowserConfig.from_dict(data), factory, RecordingLogger())
    return session, factory


def test_am_on_page_requests_relative_to_base() -> None:
    session, factory = _session()

    session.am_on_page("/users")

    assert factory.current.last_request.url == "http://localhost/app/users"
    assert session.response_code == 200
    assert session.grab_from_current_url() == "/app/users"


def test_config_headers_auth_and_options_reach_the_transport() -> None:
    session, factory = _session(
        headers={"Accept-Language": "en"},
        auth=["admin", "123345"],
        timeout=5,
        connect_timeout=2,
        curl={"proxies": {"http": "http://proxy"}},
    )

    session.am_on_page("/")

    wire, options = factory.current.sent[-1]
    assert wire.headers["Accept-Language"] == "en"
    assert options.auth == ("admin", "123345", "basic")
    assert options.timeout == 5
    assert options.connect_timeout == 2
    assert options.extra == {"proxies": {"http": "http://proxy"}}
    assert options.verify is False


def test_config_cookies_are_sent_with_default_domain() -> None:
    session, factory = _session(cookies={
        "cookie-1": {"Name": "userName", "Value": "john.doe"},
        "cookie-2": {"Name": "authToken", "Value": "1abcd2345", "Domain": "localhost", "Path": "/app/"},
    })

    session.am_on_page("/")

    sent = {c.name: (c.domain, c.path) for c in factory.current.last_options.cookies}
    assert sent == {"userName": ("localhost.local", "/"), "authToken": ("localhost.local", "/app/")}


def test_set_header_and_delete_header() -> None:
    session, factory = _session()

    session.set_header("foo", "bar")
    assert session.send("GET", "/rest/foo/").body == b"<p>bar</p>"

    session.delete_header("foo")
    assert session.send("GET", "/rest/foo/").body == b"<p></p>"


def test_backup_and_restore_keep_headers_by_value() -> None:
    session, _factory = _session()
    session.set_header("foo", "bar")
    assert session.send("GET", "/rest/foo/").body == b"<p>bar</p>"

    snapshot = session.backup_state()

    session.set_header("foo", "baz")
    assert session.send("GET", "/rest/foo/").body == b"<p>baz</p>"

    session.restore_state(snapshot)
    assert session.send("GET", "/rest/foo/").body == b"<p>bar</p>"


def test_restore_brings_back_history_and_transport() -> None:
    session, factory = _session()
    session.am_on_page("/first")
    snapshot = session.backup_state()
    first_transport = factory.current

    session.initialize_session()
    session.am_on_page("/second")
    assert session.current_url == "http://localhost/app/second"

    session.restore_state(snapshot)

    assert session.current_url == "http://localhost/app/first"
    assert session.client.handle is first_transport


def test_initialize_session_gives_independent_cookies() -> None:
    session, factory = _session()
    session.browser.cookie_jar.update_from_set_cookie(["sid=1"], "http://localhost/")

    session.initialize_session()

    assert session.browser.cookie_jar.all() == []


def test_reconfigure_replaces_transport_and_keeps_history() -> None:
    session, factory = _session()
    session.am_on_page("/a")
    old = factory.current

    session.reconfigure(handler="stream", refresh_max_interval=3)

    assert factory.current is not old
    assert old.closed
    assert factory.handlers[-1] == "stream"
    assert session.client.refresh_max_interval == 3
    assert session.current_url == "http://localhost/app/a"


def test_am_on_url_rebases_session_on_host() -> None:
    session, factory = _session()

    session.am_on_url("http://other.example.com:8080/path/page?x=1")

    assert session.config.url == "http://other.example.com:8080"
    assert factory.current.last_request.url == "http://other.example.com:8080/path/page?x=1"


def test_am_on_url_without_path_opens_root() -> None:
    session, factory = _session()

    session.am_on_url("http://other.example.com")

    assert factory.current.last_request.url == "http://other.example.com/"


def test_am_on_subdomain() -> None:
    session, factory = _session(url="http://www.example.com/app")

    session.am_on_subdomain("api")
    session.am_on_page("/status")

    assert factory.current.last_request.url == "http://api.example.com/app/status"


def test_http_authenticated_and_aws_auth() -> None:
    session, factory = _session()

    session.http_authenticated("user", "pw", "digest")
    session.set_aws_auth("AK", "SK", "execute-api", "us-east-1")
    session.am_on_page("/")

    wire, options = factory.current.sent[-1]
    assert options.auth == ("user", "pw", "digest")
    assert wire.headers["Authorization"].startswith("AWS4-HMAC-SHA256")


def test_runtime_credentials_survive_am_on_url_and_subdomain() -> None:
    session, factory = _session()
    session.http_authenticated("admin", "secret")
    session.set_aws_auth("AK", "SK", "execute-api", "us-east-1")

    session.am_on_url("http://localhost/app/other")
    wire, options = factory.current.sent[-1]
    assert options.auth == ("admin", "secret", "basic")
    assert wire.headers["Authorization"].startswith("AWS4-HMAC-SHA256")

    session.am_on_subdomain("api")
    assert session.client.defaults.auth == ("admin", "secret", "basic")


def test_config_auth_wins_over_runtime_credentials_on_reconfigure() -> None:
    session, factory = _session()
    session.http_authenticated("admin", "secret")

    session.reconfigure(auth=AuthSpec(username="ops", password="pw", scheme="digest"))
    session.am_on_page("/")

    assert factory.current.last_options.auth == ("ops", "pw", "digest")


def test_execute_in_transport_passes_active_transport() -> None:
    session, factory = _session()

    assert session.execute_in_transport(lambda t: t) is factory.current


def test_close_session_closes_transport() -> None:
    session, factory = _session()

    session.close_session()

    assert factory.current.closed
