from __future__ import annotations

import logging
import math
import time
from collections import defaultdict, deque
from typing import Callable, Deque, Dict, Iterable, List, Tuple

from fastapi import Request
from fastapi.responses import PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp


logger = logging.getLogger("billybear")

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


class PrefixCORSMiddleware(CORSMiddleware):
    """CORS that accepts any origin starting with an allow-listed prefix.

    ``"null"`` (file:// pages) is accepted when listed. Requests without an
    Origin header never reach the origin check.
    """

    def __init__(self, app: ASGIApp, allowed_prefixes: Iterable[str], **kwargs) -> None:
        super().__init__(app, allow_origins=[], **kwargs)
        self.allowed_prefixes: List[str] = [p for p in allowed_prefixes if p]

    def is_allowed_origin(self, origin: str) -> bool:
        if origin == "null" and "null" in self.allowed_prefixes:
            return True
        if any(origin.startswith(prefix) for prefix in self.allowed_prefixes if prefix != "null"):
            return True
        logger.info("Blocked origin: %s", origin)
        return False


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rolling-window request limit per client address on selected paths."""

    def __init__(
        self,
        app: ASGIApp,
        max_requests: int,
        window_seconds: float,
        path_prefixes: Tuple[str, ...] = ("/chat",),
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(app)
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.path_prefixes = path_prefixes
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._last_sweep = clock()

    def _sweep(self, now: float) -> None:
        """Forget clients whose newest hit has left the window."""
        if now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        stale = [key for key, hits in self._hits.items() if not hits or now - hits[-1] >= self.window_seconds]
        for key in stale:
            del self._hits[key]

    def tracked_clients(self) -> int:
        return len(self._hits)

    def _client_key(self, request: Request) -> str:
        return request.client.host if request.client else "unknown"

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(self.path_prefixes):
            return await call_next(request)

        now = self._clock()
        self._sweep(now)
        hits = self._hits[self._client_key(request)]
        while hits and now - hits[0] >= self.window_seconds:
            hits.popleft()

        reset = math.ceil(self.window_seconds - (now - hits[0])) if hits else math.ceil(self.window_seconds)
        if len(hits) >= self.max_requests:
            response = PlainTextResponse(RATE_LIMIT_MESSAGE, status_code=429)
            self._set_headers(response, 0, reset)
            response.headers["Retry-After"] = str(reset)
            return response

        hits.append(now)
        response = await call_next(request)
        self._set_headers(response, self.max_requests - len(hits), reset)
        return response

    def _set_headers(self, response, remaining: int, reset: int) -> None:
        response.headers["RateLimit-Limit"] = str(self.max_requests)
        response.headers["RateLimit-Remaining"] = str(max(0, remaining))
        response.headers["RateLimit-Reset"] = str(max(0, reset))
