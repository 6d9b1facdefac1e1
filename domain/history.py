from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from domain.browser_request import BrowserRequest
from domain.response import CanonicalResponse


@dataclass
class HistoryEntry:
    request: BrowserRequest
    response: Optional[CanonicalResponse] = None

    @property
    def uri(self) -> str:
        return self.request.uri


class NavigationHistory:
    """
    Ordered record of requests made by a browser.

    `current()` is the entry under the cursor; adding a new entry drops any
    entries ahead of the cursor (the usual back/forward behaviour).
    """

    def __init__(self) -> None:
        self._entries: List[HistoryEntry] = []
        self._position = -1

    def add(self, request: BrowserRequest) -> HistoryEntry:
        del self._entries[self._position + 1:]
        entry = HistoryEntry(request=request)
        self._entries.append(entry)
        self._position = len(self._entries) - 1
        return entry

    def is_empty(self) -> bool:
        return not self._entries

    def current(self) -> HistoryEntry:
        if self.is_empty():
            raise LookupError("The page history is empty.")
        return self._entries[self._position]

    def back(self) -> HistoryEntry:
        if self._position < 1:
            raise LookupError("You are already on the first page.")
        self._position -= 1
        return self._entries[self._position]

    def forward(self) -> HistoryEntry:
        if self._position > len(self._entries) - 2:
            raise LookupError("You are already on the last page.")
        self._position += 1
        return self._entries[self._position]

    def clear(self) -> None:
        self._entries = []
        self._position = -1

    def __len__(self) -> int:
        return len(self._entries)
