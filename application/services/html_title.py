# application/services/html_title.py
from __future__ import annotations

from typing import Optional

from bs4 import BeautifulSoup


def extract_title(html: str) -> Optional[str]:
    try:
        soup = BeautifulSoup(html, "html.parser")
        return soup.title.get_text(strip=True) if soup.title else None
    except Exception:
        return None


def is_html(content_type: Optional[str]) -> bool:
    ctype = (content_type or "").lower()
    return "html" in ctype
