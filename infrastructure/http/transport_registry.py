# infrastructure/http/transport_registry.py
from __future__ import annotations

import importlib
from typing import Any, Callable, Dict, List, Optional, Sequence

from application.ports.logger import LoggerPort
from application.ports.transport import (
    Handler,
    Middleware,
    RequestOptions,
    TransportPort,
    TransportResponse,
    WireRequest,
)
from infrastructure.http.requests_transport import RequestsTransport, StreamingRequestsTransport

DEFAULT_TRANSPORT = "session"

TransportFactory = Callable[[], TransportPort]


class CallableTransport(TransportPort):
    """Wraps a plain `(wire, options) -> TransportResponse` function."""

    def __init__(self, fn: Handler):
        self._fn = fn

    def send(self, request: WireRequest, options: RequestOptions) -> TransportResponse:
        return self._fn(request, options)


class TransportHandle(TransportPort):
    """
    A transport with its middleware applied.
    The first middleware in the list is the outermost one.
    """

    def __init__(self, transport: TransportPort, middleware: Sequence[Middleware] = ()):
        self.transport = transport
        self.middleware = tuple(middleware)
        handler: Handler = transport.send
        for mw in reversed(self.middleware):
            handler = mw(handler)
        self._handler = handler

    def send(self, request: WireRequest, options: RequestOptions) -> TransportResponse:
        return self._handler(request, options)

    def close(self) -> None:
        self.transport.close()


class TransportRegistry:
    def __init__(self, logger: Optional[LoggerPort] = None):
        self._logger = logger
        self._factories: Dict[str, TransportFactory] = {
            "session": RequestsTransport,
            # name kept for configs written against curl-based setups
            "curl": RequestsTransport,
            "stream": StreamingRequestsTransport,
        }

    def register(self, name: str, factory: TransportFactory) -> None:
        if not name:
            raise ValueError("transport name must not be empty")
        self._factories[name] = factory

    def names(self) -> List[str]:
        return sorted(self._factories)

    def with_logger(self, logger: LoggerPort) -> "TransportRegistry":
        clone = TransportRegistry(logger)
        clone._factories = dict(self._factories)
        return clone

    def create_transport(self, handler: Any) -> TransportPort:
        if isinstance(handler, TransportPort):
            return handler

        if handler is None or handler == "":
            return self._factories[DEFAULT_TRANSPORT]()

        if isinstance(handler, str):
            if handler in self._factories:
                return self._factories[handler]()
            imported = self._import(handler)
            if imported is not None:
                return self.create_transport(imported)
            return self._fallback(handler)

        if isinstance(handler, type):
            if issubclass(handler, TransportPort):
                return handler()
            return self._fallback(handler)

        if callable(handler):
            return CallableTransport(handler)

        return self._fallback(handler)

    def create_handle(self, handler: Any, middleware: Sequence[Middleware] = ()) -> TransportHandle:
        if isinstance(handler, TransportHandle):
            return handler
        transport = self.create_transport(handler)
        if self._logger is not None:
            self._logger.debug(
                "transport.selected",
                transport=type(transport).__name__,
                middleware=len(middleware or ()),
            )
        return TransportHandle(transport, middleware or ())

    def _import(self, path: str) -> Any:
        """
        "package.module:Name" or "package.module.Name"; None when not importable.
        """
        if ":" in path:
            module_name, _, attr = path.partition(":")
        elif "." in path:
            module_name, _, attr = path.rpartition(".")
        else:
            return None
        try:
            module = importlib.import_module(module_name)
        except ImportError:
            return None
        return getattr(module, attr, None)

    def _fallback(self, handler: Any) -> TransportPort:
        if self._logger is not None:
            self._logger.warning("transport.unknown_handler", handler=repr(handler), fallback=DEFAULT_TRANSPORT)
        return self._factories[DEFAULT_TRANSPORT]()


default_registry = TransportRegistry()


def register_transport(name: str, factory: TransportFactory) -> None:
    default_registry.register(name, factory)
