from __future__ import annotations

"""In-process reply cache.

Replies are keyed by the last user message only, lower-cased and trimmed.
Two conversations that end with the same message share one entry, and the
first reply stored wins until the process restarts. Nothing is evicted.
"""

from typing import Dict, Optional


class ResponseCache:
    def __init__(self) -> None:
        self._entries: Dict[str, str] = {}

    @staticmethod
    def normalize(message: str) -> str:
        return (message or "").strip().lower()

    def get(self, message: str) -> Optional[str]:
        return self._entries.get(self.normalize(message))

    def set(self, message: str, reply: str) -> None:
        self._entries[self.normalize(message)] = reply

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, message: object) -> bool:
        return isinstance(message, str) and self.normalize(message) in self._entries

    def __len__(self) -> int:
        return len(self._entries)
