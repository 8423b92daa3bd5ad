"""
TaskBoard — Rate Limiting Middleware
=====================================

What:  Per-IP sliding-window rate limits, with a tighter budget on the
       credential endpoints (sign-in, sign-up) to slow password guessing.
How:   Keeps a list of request timestamps per (bucket, IP). On each request,
       timestamps older than the window are dropped; if the remaining count is
       at the limit the request is rejected with 429 and a Retry-After header.

Algorithm: Sliding Window Log
    1. Each (bucket, IP) key maps to a list of request timestamps
    2. On each request, remove timestamps older than the window
    3. If remaining count >= limit, reject with 429
    4. Otherwise, record the current timestamp and allow through

State is in-process memory: correct for a single worker. Multi-worker
deployments need a shared store (e.g. Redis) behind the same interface.
"""

import logging
import time
from collections import defaultdict
from typing import Callable, Dict, FrozenSet, List, Optional, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from taskboard.exceptions import RateLimitExceededError
from taskboard.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

AUTH_PATHS = frozenset({"/api/auth/sign-in", "/api/auth/sign-up"})

# Health checks and API docs are never limited
EXCLUDED_PATHS = frozenset({"/health", "/docs", "/openapi.json", "/redoc"})

# Inactive keys are swept after this many recorded requests
CLEANUP_EVERY = 1000


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window rate limiter.

    Args:
        max_requests:      requests per window per IP across the API
        window_seconds:    window length
        auth_max_requests: requests per window per IP on AUTH_PATHS
        clock:             time source (injectable for tests)
    """

    def __init__(
        self,
        app,
        max_requests: int = 1000,
        window_seconds: int = 3600,
        auth_max_requests: int = 30,
        auth_paths: FrozenSet[str] = AUTH_PATHS,
        clock: Optional[Callable[[], float]] = None,
    ):
        super().__init__(app)
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.auth_max_requests = auth_max_requests
        self.auth_paths = auth_paths
        self._clock = clock or time.time
        self._requests: Dict[Tuple[str, str], List[float]] = defaultdict(list)
        self._recorded = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in EXCLUDED_PATHS:
            return await call_next(request)

        # Behind a proxy this is the proxy's address unless uvicorn is run
        # with --proxy-headers
        client_ip = request.client.host if request.client else "unknown"
        now = self._clock()

        buckets = [("api", self.max_requests)]
        if path in self.auth_paths:
            buckets.append(("auth", self.auth_max_requests))

        for bucket, limit in buckets:
            rejection = self._check(request, (bucket, client_ip), limit, now)
            if rejection is not None:
                return rejection

        for bucket, _ in buckets:
            self._requests[(bucket, client_ip)].append(now)
        self._recorded += 1
        if self._recorded % CLEANUP_EVERY == 0:
            self._cleanup_inactive(now - self.window_seconds)

        return await call_next(request)

    def _check(
        self, request: Request, key: Tuple[str, str], limit: int, now: float
    ) -> Optional[Response]:
        window_start = now - self.window_seconds
        timestamps = [ts for ts in self._requests[key] if ts > window_start]
        self._requests[key] = timestamps

        if len(timestamps) < limit:
            return None

        retry_after = int(timestamps[0] + self.window_seconds - now) + 1
        logger.warning(
            "Rate limit exceeded for %s bucket, IP %s: %d requests in %ds window",
            key[0],
            key[1],
            len(timestamps),
            self.window_seconds,
        )
        # Rendered here: exceptions raised in middleware never reach the app handlers
        error = RateLimitExceededError(retry_after=retry_after, context={"bucket": key[0]})
        return JSONResponse(
            status_code=429,
            content={
                "error": "rate_limit_exceeded",
                "message": error.message,
                "request_id": getattr(request.state, "request_id", "")
                or request_id_var.get(""),
                "details": error.context,
            },
            headers={"Retry-After": str(error.retry_after)},
        )

    def _cleanup_inactive(self, window_start: float) -> None:
        inactive = [
            key for key, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] <= window_start
        ]
        for key in inactive:
            del self._requests[key]
        if inactive:
            logger.debug("Cleaned up %d inactive rate-limit entries", len(inactive))
