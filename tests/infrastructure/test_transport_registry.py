from __future__ import annotations

import pytest
from requests.cookies import RequestsCookieJar

from application.ports.transport import RequestOptions, TransportPort
from infrastructure.http.requests_transport import RequestsTransport, StreamingRequestsTransport
from infrastructure.http import transport_registry
from infrastructure.http.transport_registry import (
    CallableTransport,
    TransportHandle,
    TransportRegistry,
    register_transport,
)
from tests.fakes import FakeTransport, RecordingLogger, html_response


@pytest.fixture
def logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def registry(logger) -> TransportRegistry:
    return TransportRegistry(logger)


@pytest.mark.parametrize(
    "handler, expected",
    [
        (None, RequestsTransport),
        ("", RequestsTransport),
        ("session", RequestsTransport),
        ("curl", RequestsTransport),
        ("stream", StreamingRequestsTransport),
    ],
)
def test_builtin_names(registry, handler, expected) -> None:
    assert type(registry.create_transport(handler)) is expected


def test_instance_is_used_as_is(registry) -> None:
    fake = FakeTransport()

    assert registry.create_transport(fake) is fake


def test_dotted_path_and_class_are_instantiated(registry) -> None:
    by_colon = registry.create_transport("tests.fakes:FakeTransport")
    by_dot = registry.create_transport("tests.fakes.FakeTransport")
    by_class = registry.create_transport(FakeTransport)

    assert all(isinstance(t, FakeTransport) for t in (by_colon, by_dot, by_class))


def test_plain_callable_is_wrapped(registry) -> None:
    transport = registry.create_transport(lambda request, options: html_response("fn"))

    assert isinstance(transport, CallableTransport)
    assert transport.send(None, RequestOptions(cookies=RequestsCookieJar())).body == b"fn"


@pytest.mark.parametrize("handler", ["nope", "no.such.module:Thing", 42, dict])
def test_unknown_handler_falls_back_to_default_with_warning(registry, logger, handler) -> None:
    transport = registry.create_transport(handler)

    assert type(transport) is RequestsTransport
    warnings = logger.named("transport.unknown_handler")
    assert warnings and warnings[0]["fallback"] == "session"


def test_registered_factory(registry) -> None:
    fake = FakeTransport()
    registry.register("fake", lambda: fake)

    assert registry.create_transport("fake") is fake
    assert "fake" in registry.names()


def test_register_rejects_empty_name(registry) -> None:
    with pytest.raises(ValueError):
        registry.register("", FakeTransport)


def test_with_logger_copies_factories_without_sharing(registry) -> None:
    registry.register("fake", FakeTransport)
    other_logger = RecordingLogger()

    clone = registry.with_logger(other_logger)
    clone.register("only-clone", FakeTransport)

    assert "fake" in clone.names()
    assert "only-clone" not in registry.names()
    clone.create_handle("fake")
    assert other_logger.named("transport.selected")


def test_middleware_order_first_is_outermost(registry) -> None:
    calls = []

    def tag(name):
        def middleware(next_handler):
            def handler(request, options):
                calls.append(name)
                return next_handler(request, options)
            return handler
        return middleware

    fake = FakeTransport()
    handle = registry.create_handle(fake, [tag("outer"), tag("inner")])
    handle.send(None, RequestOptions(cookies=RequestsCookieJar()))

    assert calls == ["outer", "inner"]
    assert handle.transport is fake


def test_existing_handle_is_returned_and_close_reaches_transport(registry) -> None:
    fake = FakeTransport()
    handle = TransportHandle(fake)

    assert registry.create_handle(handle) is handle
    handle.close()
    assert fake.closed
    assert isinstance(handle, TransportPort)


def test_register_transport_adds_to_the_shared_registry(monkeypatch) -> None:
    shared = TransportRegistry()
    monkeypatch.setattr(transport_registry, "default_registry", shared)

    register_transport("custom", FakeTransport)

    assert "custom" in shared.names()
    assert isinstance(shared.create_transport("custom"), FakeTransport)
