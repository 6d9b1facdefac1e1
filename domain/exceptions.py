from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from application.ports.transport import TransportResponse


class BrowserError(Exception):
    pass


class ConfigurationError(BrowserError):
    pass


class TransportError(BrowserError):
    """
    Raised by a transport when the request could not be completed.

    `response` is set when the transport gave up on a request that nevertheless
    produced a response (e.g. an HTTP error status treated as exceptional).
    """

    def __init__(self, message: str, response: Optional["TransportResponse"] = None):
        super().__init__(message)
        self.response = response

    @property
    def has_response(self) -> bool:
        return self.response is not None


class RedirectLimitError(BrowserError):
    def __init__(self, max_redirects: int):
        super().__init__(f"The maximum number ({max_redirects}) of redirections was reached.")
        self.max_redirects = max_redirects
