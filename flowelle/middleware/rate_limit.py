"""Per-IP throttling of the credential endpoints.

Only ``/api/auth/*`` is limited: login and register are the only routes an
anonymous client can use to guess passwords.  Counters live in process
memory, so the limit is per instance.
"""

from __future__ import annotations

import time
from collections import deque
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from flowelle.config import Settings, get_settings

LIMITED_PREFIX = "/api/auth/"
WINDOW_SECONDS = 60.0


class SlidingWindow:
    """Attempt timestamps per client over the last ``window`` seconds."""

    def __init__(self, limit: int, window: float = WINDOW_SECONDS) -> None:
        self.limit = limit
        self.window = window
        self._hits: dict[str, deque[float]] = {}

    def __len__(self) -> int:
        return len(self._hits)

    def _evict(self, key: str, now: float) -> deque[float]:
        hits = self._hits.get(key)
        if hits is None:
            return deque()
        while hits and hits[0] <= now - self.window:
            hits.popleft()
        if not hits:
            # Idle clients hold no entry
            del self._hits[key]
        return hits

    def retry_after(self, key: str, now: float) -> int | None:
        """Seconds until ``key`` may try again, or None if under the limit."""
        hits = self._evict(key, now)
        if len(hits) < self.limit:
            return None
        return max(int(self.window - (now - hits[0])), 1)

    def record(self, key: str, now: float) -> int:
        """Register an attempt and return how many remain in the window."""
        hits = self._hits.setdefault(key, deque())
        hits.append(now)
        return max(self.limit - len(hits), 0)


class AuthRateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: Any, settings: Settings | None = None) -> None:
        super().__init__(app)
        s = settings or get_settings()
        self._window = SlidingWindow(s.auth_rate_limit_per_minute)

    @staticmethod
    def _client_key(request: Request) -> str:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",", 1)[0].strip()
        return request.client.host if request.client else "unknown"

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method == "OPTIONS" or not request.url.path.startswith(LIMITED_PREFIX):
            return await call_next(request)

        key = self._client_key(request)
        now = time.monotonic()
        wait = self._window.retry_after(key, now)
        if wait is not None:
            return JSONResponse(
                {"detail": "Too many attempts, try again later"},
                status_code=429,
                headers={"Retry-After": str(wait)},
            )

        remaining = self._window.record(key, now)
        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self._window.limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        return response
