# application/services/cookie_diff.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

from domain.cookie import Cookie


def _cookie_index(items: List[Cookie]) -> Dict[Tuple[str, str, str], Cookie]:
    """
    Key by (name, domain, path).
    """
    return {(c.name, c.domain, c.path): c for c in items or []}


@dataclass(frozen=True)
class CookieDiff:
    added: List[str]
    removed: List[str]
    changed: List[str]

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.changed)


def diff_cookies(before: List[Cookie], after: List[Cookie]) -> CookieDiff:
    b = _cookie_index(before)
    a = _cookie_index(after)

    # names only, values never leave this function
    added = {k[0] for k in a.keys() - b.keys()}
    removed = {k[0] for k in b.keys() - a.keys()}
    changed = {k[0] for k in a.keys() & b.keys() if a[k].value != b[k].value}

    return CookieDiff(added=sorted(added), removed=sorted(removed), changed=sorted(changed))
