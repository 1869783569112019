# src/common/middleware/rate_limit.py
"""Fixed-window rate limiting keyed by client IP."""

import math
import time
from typing import Dict, Optional, Tuple

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from src.common.exceptions.exceptions import TooManyRequestsException
from src.common.exceptions.handlers import error_response


class FixedWindowRateLimiter:
    """Counts hits per key inside fixed windows of ``window_seconds``."""

    def __init__(self, limit: int, window_seconds: int):
        self.limit = limit
        self.window_seconds = window_seconds
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._next_sweep = 0.0

    def hit(self, key: str, now: Optional[float] = None) -> Tuple[bool, int, float]:
        """
        Register one hit for ``key``.

        Returns ``(allowed, remaining, reset_at)``.
        """
        now = time.time() if now is None else now
        if now >= self._next_sweep:
            self.sweep(now)

        window_start, count = self._windows.get(key, (now, 0))
        if now - window_start >= self.window_seconds:
            window_start, count = now, 0

        count += 1
        self._windows[key] = (window_start, count)
        reset_at = window_start + self.window_seconds
        return count <= self.limit, max(self.limit - count, 0), reset_at

    def sweep(self, now: float) -> None:
        """Drop every window that has already elapsed."""
        expired = [key for key, (start, _) in self._windows.items() if now - start >= self.window_seconds]
        for key in expired:
            del self._windows[key]
        self._next_sweep = now + self.window_seconds

    def __len__(self) -> int:
        return len(self._windows)

    def reset(self) -> None:
        self._windows.clear()
        self._next_sweep = 0.0


def forwarded_client(forwarded_for: str, proxy_hops: int) -> Optional[str]:
    """
    Client address as seen by the outermost trusted proxy.

    Each proxy appends the peer it received the request from, so with
    ``proxy_hops`` trusted proxies the client is that many entries from the
    right. Entries further left are whatever the caller sent.
    """
    hops = [part.strip() for part in forwarded_for.split(",") if part.strip()]
    if not hops or proxy_hops < 1:
        return None
    return hops[max(len(hops) - proxy_hops, 0)]


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limit: int, window_seconds: int, proxy_hops: int = 1, path_prefix: str = "/api/"):
        super().__init__(app)
        self.limiter = FixedWindowRateLimiter(limit, window_seconds)
        self.proxy_hops = proxy_hops
        self.path_prefix = path_prefix

    def client_key(self, request: Request) -> str:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            client = forwarded_client(forwarded, self.proxy_hops)
            if client:
                return client
        return request.client.host if request.client else "unknown"

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        now = time.time()
        allowed, remaining, reset_at = self.limiter.hit(self.client_key(request), now)
        headers = {
            "RateLimit-Limit": str(self.limiter.limit),
            "RateLimit-Remaining": str(remaining),
            "RateLimit-Reset": str(max(math.ceil(reset_at - now), 0)),
        }

        if not allowed:
            # Raised exceptions never reach the app handlers from here
            exc = TooManyRequestsException()
            headers["Retry-After"] = headers["RateLimit-Reset"]
            return error_response(exc.status_code, exc.code, exc.message, headers=headers)

        response = await call_next(request)
        response.headers.update(headers)
        return response
