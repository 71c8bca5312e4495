from __future__ import annotations

from enum import Enum
from typing import Callable, List, Optional, Tuple


class ResponseBlockedError(RuntimeError):
    """The upstream model refused to answer (finish reason SAFETY)."""


class FailureCategory(str, Enum):
    CAPACITY = "capacity"
    SAFETY = "safety"
    CONNECTIVITY = "connectivity"
    GENERIC = "generic"


FALLBACK_REPLIES = {
    FailureCategory.CAPACITY: (
        "I'm chatting with a lot of friends right now! "
        "Please wait a little while and try again."
    ),
    FailureCategory.SAFETY: (
        "I apologize, but I cannot provide a response to that query. "
        "Please try rephrasing your question in a more appropriate way."
    ),
    FailureCategory.CONNECTIVITY: (
        "I'm having trouble connecting right now. Please try again in a moment."
    ),
    FailureCategory.GENERIC: (
        "I encountered an issue processing your request. "
        "Please try again with a different question."
    ),
}


def error_status(exc: BaseException) -> Optional[int]:
    """Best-effort HTTP-like status carried by an upstream exception."""
    for attr in ("status", "status_code", "code"):
        value = getattr(exc, attr, None)
        if value is None or callable(value):
            continue
        try:
            return int(value)
        except (TypeError, ValueError):
            continue
    return None


def _message(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


def _is_capacity(exc: BaseException) -> bool:
    if error_status(exc) == 429:
        return True
    text = _message(exc).lower()
    return any(token in text for token in ("429", "quota", "exhausted"))


def _is_safety(exc: BaseException) -> bool:
    return isinstance(exc, ResponseBlockedError) or "SAFETY" in _message(exc)


def _is_connectivity(exc: BaseException) -> bool:
    text = _message(exc).lower()
    return "timeout" in text or "network" in text


_RULES: List[Tuple[Callable[[BaseException], bool], FailureCategory]] = [
    (_is_capacity, FailureCategory.CAPACITY),
    (_is_safety, FailureCategory.SAFETY),
    (_is_connectivity, FailureCategory.CONNECTIVITY),
]


def classify_failure(exc: BaseException) -> FailureCategory:
    for matches, category in _RULES:
        if matches(exc):
            return category
    return FailureCategory.GENERIC


def fallback_reply(category: FailureCategory) -> str:
    return FALLBACK_REPLIES[category]
