"""Per-IP sliding-window rate limiter for the public routes."""

from __future__ import annotations

import time
from collections import defaultdict, deque

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from keygate.auth.ip_gate import client_ip

SKIP_PATHS = {"/health", "/docs", "/openapi.json"}
WINDOW_SECONDS = 60.0


class RateLimitMiddleware(BaseHTTPMiddleware):
    """In-memory limiter keyed by client IP. Single-process only."""

    def __init__(self, app, limit: int = 30, trust_proxy: bool = False):
        super().__init__(app)
        self.limit = limit
        self.trust_proxy = trust_proxy
        self._windows: dict[str, deque[float]] = defaultdict(deque)
        self._last_sweep = time.monotonic()

    async def dispatch(self, request: Request, call_next):
        if request.url.path in SKIP_PATHS or self.limit <= 0:
            return await call_next(request)

        key = client_ip(request, self.trust_proxy) or "unknown"
        now = time.monotonic()
        window = self._windows[key]

        cutoff = now - WINDOW_SECONDS
        while window and window[0] < cutoff:
            window.popleft()

        if now - self._last_sweep >= WINDOW_SECONDS:
            self._sweep(cutoff, keep=key)
            self._last_sweep = now

        if len(window) >= self.limit:
            retry_after = int(WINDOW_SECONDS - (now - window[0])) + 1
            return JSONResponse(
                status_code=429,
                content={"success": False, "error": "Too many requests"},
                headers={"Retry-After": str(retry_after)},
            )

        window.append(now)
        return await call_next(request)

    def _sweep(self, cutoff: float, keep: str) -> None:
        """Drop clients whose newest request is older than the window."""
        stale = [k for k, w in self._windows.items() if k != keep and (not w or w[-1] < cutoff)]
        for k in stale:
            del self._windows[k]
