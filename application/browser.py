# application/browser.py
from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from application.browser_client import BrowserClient
from application.ports.logger import LoggerPort
from application.services.cookie_diff import diff_cookies
from application.services.request_translator import QUERY_METHODS, flatten_params
from application.services.uri_resolver import append_query
from domain.browser_request import BrowserRequest, encode_header_name
from domain.cookie import CookieJar
from domain.exceptions import BrowserError, RedirectLimitError
from domain.history import NavigationHistory
from domain.response import CanonicalResponse

# these switch the follow-up request to a bodyless GET
GET_REDIRECT_STATUSES = (301, 302, 303)

_BODY_HEADERS = {encode_header_name("Content-Type"), encode_header_name("Content-Length"),
                 "CONTENT_TYPE", "CONTENT_LENGTH"}


class Browser:
    """
    Stateful navigation on top of BrowserClient: history, cookies, redirects.
    One Browser belongs to one test session; it is not shared between threads.
    """

    def __init__(
        self,
        client: BrowserClient,
        logger: LoggerPort,
        history: Optional[NavigationHistory] = None,
        cookie_jar: Optional[CookieJar] = None,
        max_redirects: int = 5,
    ):
        self.client = client
        self.history = history or NavigationHistory()
        self.cookie_jar = cookie_jar or CookieJar()
        self.max_redirects = max_redirects
        self.follow_redirects = True
        self._logger = logger
        self._redirect_count = 0
        self._request: Optional[BrowserRequest] = None
        self._response: Optional[CanonicalResponse] = None

    @property
    def request_made(self) -> Optional[BrowserRequest]:
        return self._request

    @property
    def response(self) -> Optional[CanonicalResponse]:
        return self._response

    def current_uri(self) -> Optional[str]:
        if self.history.is_empty():
            return None
        return self.history.current().uri

    def request(
        self,
        method: str,
        uri: str,
        parameters: Optional[Mapping[str, Any]] = None,
        files: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        content: Optional[Union[str, bytes]] = None,
        change_history: bool = True,
    ) -> CanonicalResponse:
        self._redirect_count = 0
        absolute = self.client.get_absolute_uri(uri, self.history)
        if method.upper() in QUERY_METHODS and parameters:
            # query parameters belong to the page address kept in history
            absolute = append_query(absolute, flatten_params(parameters))
            parameters = None
        req = BrowserRequest.create(
            method=method,
            uri=absolute,
            parameters=parameters,
            files=files,
            headers=headers,
            content=content,
        )
        return self._perform(req, change_history)

    def follow_redirect(self) -> CanonicalResponse:
        response = self._response
        if response is None or not response.is_redirect:
            raise BrowserError("The request was not redirected.")
        if self._redirect_count >= self.max_redirects:
            raise RedirectLimitError(self.max_redirects)
        self._redirect_count += 1

        location = self.client.get_absolute_uri(response.location, self.history)
        prev = self._request
        if response.status in GET_REDIRECT_STATUSES:
            server = {k: v for k, v in prev.server.items() if k not in _BODY_HEADERS}
            req = BrowserRequest(method="GET", uri=location, server=server)
        else:
            req = BrowserRequest(
                method=prev.method,
                uri=location,
                parameters=prev.parameters,
                files=prev.files,
                server=prev.server,
                content=prev.content,
            )

        self._logger.debug("http.follow_redirect", status=response.status, location=location,
                           count=self._redirect_count)
        return self._perform(req, True)

    def back(self) -> CanonicalResponse:
        return self._replay(self.history.back())

    def forward(self) -> CanonicalResponse:
        return self._replay(self.history.forward())

    def reload(self) -> CanonicalResponse:
        return self._replay(self.history.current())

    def restart(self) -> None:
        self.cookie_jar.clear()
        self.history.clear()
        self._request = None
        self._response = None

    def _replay(self, entry) -> CanonicalResponse:
        self._redirect_count = 0
        return self._perform(entry.request, False)

    def _perform(self, req: BrowserRequest, change_history: bool) -> CanonicalResponse:
        if change_history:
            self.history.add(req)

        before = self.cookie_jar.all()
        response = self.client.execute(req, self.cookie_jar, self.history)

        self.cookie_jar.update_from_set_cookie(response.header_values("Set-Cookie"), req.uri)
        diff = diff_cookies(before, self.cookie_jar.all())
        if not diff.is_empty:
            self._logger.info("http.cookie_diff", url=req.uri, added=diff.added,
                              removed=diff.removed, changed=diff.changed)

        if change_history:
            self.history.current().response = response
        self._request = req
        self._response = response

        if self.follow_redirects and response.is_redirect:
            return self.follow_redirect()
        return response
