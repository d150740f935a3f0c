"""IP-based rate limiting with an in-memory sliding window.

Credential endpoints get a tight budget, the AI proxy endpoints a medium
one (each call costs provider tokens), everything else under /api/ a
general one. Single-instance only: the windows live in process memory.
"""
from __future__ import annotations

import logging
import time
from collections import defaultdict, deque

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class RateLimitStore:
    """Per-key deques of request timestamps."""

    def __init__(self, cleanup_interval: float = 300):
        self._windows: dict[str, deque[float]] = defaultdict(deque)
        self._last_cleanup = time.monotonic()
        self._cleanup_interval = cleanup_interval

    def check_and_record(self, key: str, limit: int, window_seconds: float) -> tuple[bool, int]:
        """Record a hit for ``key`` if under ``limit``.

        Returns (allowed, count_in_window).
        """
        now = time.monotonic()
        self._maybe_cleanup(now)
        hits = self._windows[key]
        while hits and hits[0] <= now - window_seconds:
            hits.popleft()
        if len(hits) >= limit:
            return False, len(hits)
        hits.append(now)
        return True, len(hits)

    def clear(self) -> None:
        self._windows.clear()

    def _maybe_cleanup(self, now: float) -> None:
        if now - self._last_cleanup < self._cleanup_interval:
            return
        self._last_cleanup = now
        for key in [k for k, hits in self._windows.items() if not hits]:
            del self._windows[key]


_store = RateLimitStore()


def reset_store():
    """Drop all windows — used between tests."""
    _store.clear()


# (path_prefix, bucket, requests, window_seconds); first match wins
_RATE_LIMITS: list[tuple[str, str, int, int]] = [
    ("/api/login", "auth", 10, 60),
    ("/api/register", "auth", 10, 60),
    ("/api/auth/", "auth", 10, 60),
    ("/api/ai/", "ai", 30, 60),
    ("/api/generate-", "ai", 30, 60),
    ("/api/", "api", 120, 60),
]

_EXEMPT = {"/health", "/ready", "/", "/docs", "/openapi.json"}


def _get_client_ip(request: Request) -> str:
    """Client IP, respecting X-Forwarded-For behind a proxy."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _find_limit(path: str) -> tuple[str, int, int] | None:
    if path in _EXEMPT:
        return None
    for prefix, bucket, limit, window in _RATE_LIMITS:
        if path.startswith(prefix):
            return bucket, limit, window
    return None


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Reject over-budget clients with 429 and a Retry-After header."""

    async def dispatch(self, request: Request, call_next):
        rate = _find_limit(request.url.path)
        if rate is None:
            return await call_next(request)

        bucket, limit, window = rate
        client_ip = _get_client_ip(request)
        allowed, count = _store.check_and_record(f"{client_ip}:{bucket}", limit, window)

        if not allowed:
            logger.warning(
                "Rate limited: %s on %s (%d/%d in %ds)",
                client_ip, request.url.path, count, limit, window,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limited",
                    "message": "Too many requests. Please try again later.",
                    "retry_after": window,
                },
                headers={"Retry-After": str(window)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, limit - count))
        return response
