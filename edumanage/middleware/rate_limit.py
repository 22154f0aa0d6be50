"""Per-client rate limiting middleware."""
from __future__ import annotations

import logging
import os
import time
from collections import defaultdict

from fastapi.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger(__name__)

# {client_ip: [timestamp1, timestamp2, ...]}
_request_history: dict[str, list[float]] = defaultdict(list)

MAX_REQUESTS = int(os.getenv("RATE_LIMIT_PER_MINUTE", "100"))
WINDOW_SECONDS = 60


class RateLimitMiddleware:
    """Sliding-window limit of MAX_REQUESTS per client IP per minute."""

    def __init__(self, app: ASGIApp, max_requests: int = MAX_REQUESTS, window_seconds: int = WINDOW_SECONDS) -> None:
        self.app = app
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        client_ip = scope["client"][0] if scope.get("client") else "unknown"
        if not self._check_rate_limit(client_ip):
            logger.warning(f"Rate limit exceeded for {client_ip}")
            response = JSONResponse(
                status_code=429,
                content={"detail": "Too many requests. Please try again later."},
                headers={"Retry-After": str(self.window_seconds)},
            )
            await response(scope, receive, send)
            return

        await self.app(scope, receive, send)

    def _check_rate_limit(self, client_ip: str) -> bool:
        """Record the request and return False when the client is over the limit."""
        now = time.time()
        history = _request_history[client_ip]
        history[:] = [ts for ts in history if now - ts < self.window_seconds]
        if len(history) >= self.max_requests:
            return False
        history.append(now)
        return True


def reset() -> None:
    """Forget all request history."""
    _request_history.clear()


def setup_rate_limit(app: ASGIApp) -> ASGIApp:
    """Wrap the ASGI app with rate limiting middleware."""
    return RateLimitMiddleware(app)
