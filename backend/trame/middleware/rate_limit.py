"""
Trame Backend — Credential Rate Limiting Middleware
====================================================

What:  Per-IP sliding-window limit on the signup and login endpoints.
How:   Keeps a deque of request timestamps per client IP. Timestamps older
       than the window are dropped on each request; when the remaining count
       reaches the limit, the request is answered with 429 and Retry-After.
Who:   Applied to every request; only POST /api/signup and /api/login count.

Settings: rate_limit_requests per rate_limit_window seconds.

State is in-process memory. With several worker processes each worker keeps
its own window.
"""

import logging
import time
from collections import deque
from typing import Deque, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from trame.config import settings
from trame.exceptions import RateLimitExceededError
from trame.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

LIMITED_PATHS = {"/api/signup", "/api/login"}

# Sweep idle clients every N limited requests
SWEEP_INTERVAL = 500


class SlidingWindow:
    """Timestamps of recent requests per client."""

    def __init__(self, limit: int, window: float):
        self.limit = limit
        self.window = window
        self._hits: Dict[str, Deque[float]] = {}
        self._since_sweep = 0

    def hit(self, client: str, now: Optional[float] = None) -> int:
        """
        Records a request; returns 0 if allowed, else seconds until a slot frees.
        """
        now = time.time() if now is None else now
        hits = self._hits.setdefault(client, deque())
        while hits and hits[0] <= now - self.window:
            hits.popleft()

        if len(hits) >= self.limit:
            return int(hits[0] + self.window - now) + 1

        hits.append(now)
        self._since_sweep += 1
        if self._since_sweep >= SWEEP_INTERVAL:
            self.sweep(now)
        return 0

    def sweep(self, now: float) -> None:
        idle = [c for c, hits in self._hits.items() if not hits or hits[-1] <= now - self.window]
        for client in idle:
            del self._hits[client]
        self._since_sweep = 0
        if idle:
            logger.debug("Dropped %d idle rate-limit entries", len(idle))

    def __len__(self) -> int:
        return len(self._hits)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Returns 429 for clients over the credential-endpoint limit."""

    def __init__(self, app, limit: Optional[int] = None, window: Optional[int] = None):
        super().__init__(app)
        self.window = SlidingWindow(
            limit=limit or settings.rate_limit_requests,
            window=window or settings.rate_limit_window,
        )

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method != "POST" or request.url.path not in LIMITED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        retry_after = self.window.hit(client_ip)
        if not retry_after:
            return await call_next(request)

        logger.warning("Rate limit exceeded for IP %s on %s", client_ip, request.url.path)
        # Exception handlers do not run for responses produced in middleware,
        # so the error body is built here in the same shape.
        exc = RateLimitExceededError(retry_after=retry_after)
        return JSONResponse(
            status_code=429,
            content={
                "error": "rate_limit_exceeded",
                "message": exc.message,
                "details": exc.context,
                "request_id": request_id_var.get(""),
            },
            headers={"Retry-After": str(exc.retry_after)},
        )
