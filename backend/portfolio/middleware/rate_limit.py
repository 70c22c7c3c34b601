"""
Photography Portfolio Backend — Rate Limiting Middleware
=========================================================

What:  Per-IP sliding window rate limiter with a stricter budget for login.
Why:   Caps abuse of the public endpoints and slows down password guessing.
How:   Tracks request timestamps per (bucket, IP) in memory.
When:  First in the middleware chain (rejects abuse before any processing).

Buckets:
    login    POST /api/auth/login     LOGIN_RATE_LIMIT_REQUESTS per window (10)
    default  everything else          RATE_LIMIT_REQUESTS per window (100)

    Exempt: the Stripe webhook (the processor retries on 429 and would only
    delay confirmations), /health and the API docs.

Algorithm: Sliding Window Log
    1. Drop timestamps older than the window
    2. If remaining count >= limit, reject with 429 and Retry-After
    3. Otherwise record the request and let it through

    State lives in one process. Several uvicorn workers each enforce their
    own limit.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from portfolio.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)

LOGIN_PATH = "/api/auth/login"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window rate limiter.

    Args:
        max_requests:        Requests per window for the default bucket
        window_seconds:      Window length, shared by both buckets
        login_max_requests:  Requests per window for POST /api/auth/login
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc", "/api/stripe/webhook"}

    def __init__(
        self,
        app: ASGIApp,
        max_requests: int = 100,
        window_seconds: int = 900,
        login_max_requests: int = 10,
    ):
        super().__init__(app)
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.login_max_requests = login_max_requests
        self._requests: Dict[Tuple[str, str], List[float]] = defaultdict(list)
        self._seen = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in self.EXCLUDED_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        # Behind a proxy this is the proxy's address unless uvicorn runs
        # with --proxy-headers
        client_ip = request.client.host if request.client else "unknown"

        if path == LOGIN_PATH and request.method == "POST":
            bucket, limit = "login", self.login_max_requests
        else:
            bucket, limit = "default", self.max_requests
        key = (bucket, client_ip)

        now = time.time()
        window_start = now - self.window_seconds
        timestamps = [ts for ts in self._requests[key] if ts > window_start]
        self._requests[key] = timestamps

        if len(timestamps) >= limit:
            retry_after = int(timestamps[0] + self.window_seconds - now) + 1
            logger.warning(
                "Rate limit exceeded for IP %s (%s bucket): %d requests in %ds window",
                client_ip,
                bucket,
                len(timestamps),
                self.window_seconds,
            )
            error = RateLimitExceededError(retry_after=retry_after)
            return JSONResponse(
                status_code=error.status_code,
                content={
                    "error": "rate_limit_exceeded",
                    "message": error.message,
                    "details": {"retry_after": retry_after},
                },
                headers={"Retry-After": str(retry_after)},
            )

        timestamps.append(now)

        self._seen += 1
        if self._seen % 1000 == 0:
            self._cleanup_inactive(window_start)

        return await call_next(request)

    def _cleanup_inactive(self, window_start: float) -> None:
        """Forget clients with no request inside the current window."""
        inactive = [
            key for key, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] <= window_start
        ]
        for key in inactive:
            del self._requests[key]

        if inactive:
            logger.debug("Cleaned up %d inactive rate limit entries", len(inactive))
