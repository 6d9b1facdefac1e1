from __future__ import annotations

from application.services.html_title import extract_title, is_html


def test_extract_title() -> None:
    assert extract_title("<html><head><title> Login </title></head></html>") == "Login"
    assert extract_title("<p>no title</p>") is None


def test_is_html() -> None:
    assert is_html("text/html;charset=utf-8")
    assert is_html("application/xhtml+xml")
    assert not is_html("application/json")
    assert not is_html(None)
