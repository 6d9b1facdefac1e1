from __future__ import annotations

import pytest

from application.ports.transport import TransportResponse
from application.services.response_normalizer import (
    ResponseNormalizer,
    detect_charset,
    detect_refresh,
)
from domain.browser_request import BrowserRequest
from domain.history import NavigationHistory

BASE = "http://host/app"
CURRENT = "http://host/app/page"


def _raw(body: str, status: int = 200, headers=None) -> TransportResponse:
    return TransportResponse(status=status, headers=list(headers or []), body=body.encode("utf-8"))


def _history(uri: str = CURRENT) -> NavigationHistory:
    h = NavigationHistory()
    h.add(BrowserRequest(method="GET", uri=uri))
    return h


def _normalize(raw: TransportResponse, current: str = CURRENT, max_interval: int = 10):
    return ResponseNormalizer().normalize(
        raw,
        current_uri=current,
        base_url=BASE,
        history=_history(current),
        refresh_max_interval=max_interval,
    )


class TestCharset:
    def test_meta_charset_is_appended_to_content_type(self) -> None:
        raw = _raw('<html><head><meta charset="windows-1251"></head></html>', headers=[("Content-Type", "text/html")])

        response = _normalize(raw)

        assert response.headers["Content-Type"] == ["text/html;charset=windows-1251"]
        assert response.charset == "windows-1251"

    def test_http_equiv_content_type_charset(self) -> None:
        body = '<meta http-equiv="Content-Type" content="text/html; charset=ISO-8859-1">'

        assert detect_charset(body.encode()) == "ISO-8859-1"

    def test_existing_charset_is_not_appended_twice(self) -> None:
        raw = _raw('<meta charset="utf-8">', headers=[("content-type", "text/html; charset=UTF-8")])

        response = _normalize(raw)

        assert response.headers == {"content-type": ["text/html; charset=UTF-8"]}

    def test_missing_content_type_defaults_to_html(self) -> None:
        response = _normalize(_raw("<p>no meta</p>"))

        assert response.content_type == "text/html"

    def test_missing_content_type_with_meta_charset(self) -> None:
        response = _normalize(_raw("<META CHARSET=utf-8>"))

        assert response.content_type == "text/html;charset=utf-8"


class TestRefreshRedirect:
    def test_meta_refresh_below_threshold_becomes_302(self) -> None:
        raw = _raw('<meta http-equiv="refresh" content="0;url=/info">')

        response = _normalize(raw, max_interval=10)

        assert response.status == 302
        assert response.location == "http://host/app/info"

    def test_meta_refresh_at_or_above_threshold_is_left_alone(self) -> None:
        raw = _raw('<meta http-equiv="refresh" content="15;url=/info">', headers=[("X-Test", "1")])

        response = _normalize(raw, max_interval=10)

        assert response.status == 200
        assert response.location is None
        assert response.headers["X-Test"] == ["1"]

    def test_meta_refresh_without_interval_always_redirects(self) -> None:
        response = _normalize(_raw('<meta http-equiv="refresh" content=";url=/next">'), max_interval=0)

        assert response.status == 302

    def test_refresh_to_current_page_ignoring_fragment_is_not_rewritten(self) -> None:
        raw = _raw('<meta http-equiv="refresh" content="0;url=/page#top">')

        response = _normalize(raw, current="http://host/app/page")

        assert response.status == 200
        assert response.location is None

    def test_meta_location_is_html_decoded(self) -> None:
        raw = _raw('<meta http-equiv="Refresh" content="1; URL=/search?a=1&amp;b=2">')

        response = _normalize(raw)

        assert response.location == "http://host/app/search?a=1&b=2"

    def test_escaped_refresh_to_current_page_is_not_rewritten(self) -> None:
        raw = _raw('<meta http-equiv="refresh" content="0;url=/p?a=1&amp;b=2">')

        response = _normalize(raw, current="http://host/app/p?a=1&b=2")

        assert response.status == 200
        assert response.location is None

    def test_relative_refresh_resolves_against_current_page(self) -> None:
        raw = _raw('<meta http-equiv="refresh" content="0;url=done.html">')

        response = _normalize(raw, current="http://host/app/users/new")

        assert response.location == "http://host/app/users/done.html"

    def test_refresh_header_is_used_when_no_meta(self) -> None:
        raw = _raw("plain", headers=[("Refresh", "2; url=http://other/x?a=1&amp;b")])

        response = _normalize(raw)

        assert response.status == 302
        # header values are not entity-decoded
        assert response.location == "http://other/x?a=1&amp;b"

    def test_native_redirect_status_is_untouched(self) -> None:
        raw = _raw('<meta http-equiv="refresh" content="0;url=/info">', status=301,
                   headers=[("Location", "http://host/app/moved")])

        response = _normalize(raw)

        assert response.status == 301
        assert response.location == "http://host/app/moved"

    def test_error_statuses_are_checked_too(self) -> None:
        response = _normalize(_raw('<meta http-equiv="refresh" content="0;url=/login">', status=401))

        assert response.status == 302
        assert response.location == "http://host/app/login"

    @pytest.mark.parametrize("header", ["5", "soon", "url=/x"])
    def test_malformed_refresh_header_is_ignored(self, header: str) -> None:
        response = _normalize(_raw("plain", headers=[("Refresh", header)]))

        assert response.status == 200
        assert response.location is None

    def test_existing_location_header_is_replaced(self) -> None:
        raw = _raw('<meta http-equiv="refresh" content="0;url=/info">', headers=[("location", "/old")])

        response = _normalize(raw)

        assert response.headers["location"] == ["http://host/app/info"]

    def test_without_current_uri_any_due_refresh_redirects(self) -> None:
        raw = _raw('<meta http-equiv="refresh" content="0;url=/info">')

        response = ResponseNormalizer().normalize(raw, None, BASE, NavigationHistory(), 10)

        assert response.status == 302
        assert response.location == "http://host/app/info"


def test_detect_refresh_prefers_meta_over_header() -> None:
    match = detect_refresh(
        b'<meta http-equiv="refresh" content="3;url=/meta">',
        {"Refresh": ["0;url=/header"]},
    )

    assert match.url == "/meta"
    assert match.interval == "3"
    assert match.from_meta


def test_multi_valued_headers_are_kept_in_order() -> None:
    raw = _raw("x", headers=[("Set-Cookie", "a=1"), ("Content-Type", "text/plain"), ("set-cookie", "b=2")])

    response = _normalize(raw)

    assert response.header_values("Set-Cookie") == ["a=1", "b=2"]
