# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Request middleware for logging, X-Request-ID tracking and rate limiting."""

from __future__ import annotations

import logging
import time
import uuid
from collections import defaultdict
from collections.abc import Callable

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from credproxy.api.errors import error_response

logger = logging.getLogger("credproxy.api.middleware")

_RATE_LIMIT_SKIP_PATHS: set[str] = {"/api/v1/health", "/api/v1/ready"}


class RateLimitMiddleware(BaseHTTPMiddleware):
    """In-memory sliding-window rate limiter, per API key or per client IP.

    * Requests carrying ``X-API-Key`` (admin callers) get ``per_key``
      requests per window.
    * Everything else, applications posting proxy requests included, is
      keyed by client IP and gets ``per_ip`` requests per window.
    * Over the limit the response is **429** with ``Retry-After``.
    * ``X-RateLimit-Limit`` and ``X-RateLimit-Remaining`` are set on
      every other response.

    State is per process and per app instance.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        per_ip: int = 60,
        per_key: int = 600,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(app)
        self._per_ip = per_ip
        self._per_key = per_key
        self._window = window_seconds
        self._clock = clock
        self._log: dict[str, list[float]] = defaultdict(list)
        self._last_cleanup = clock()

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in _RATE_LIMIT_SKIP_PATHS:
            return await call_next(request)

        api_key = request.headers.get("X-API-Key")
        if api_key:
            identity = f"key:{api_key}"
            limit = self._per_key
        else:
            client_ip = request.client.host if request.client else "unknown"
            identity = f"ip:{client_ip}"
            limit = self._per_ip

        now = self._clock()
        if now - self._last_cleanup > self._window:
            self._cleanup(now)

        timestamps = [t for t in self._log[identity] if now - t < self._window]
        self._log[identity] = timestamps

        if len(timestamps) >= limit:
            retry_after = int(self._window - (now - min(timestamps))) + 1
            logger.warning(
                "Rate limit exceeded for %s on %s", identity.split(":")[0], request.url.path
            )
            response = error_response(429, "Too many requests, please try again later")
            response.headers["Retry-After"] = str(retry_after)
            response.headers["X-RateLimit-Limit"] = str(limit)
            response.headers["X-RateLimit-Remaining"] = "0"
            return response

        timestamps.append(now)
        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, limit - len(timestamps)))
        return response

    def _cleanup(self, now: float) -> None:
        """Drop identities with no requests inside the window."""
        for identity in list(self._log):
            fresh = [t for t in self._log[identity] if now - t < self._window]
            if fresh:
                self._log[identity] = fresh
            else:
                del self._log[identity]
        self._last_cleanup = now


class RequestMiddleware(BaseHTTPMiddleware):
    """Adds request logging and an X-Request-ID header to every response.

    The id is for correlating HTTP logs and is unrelated to proxy request ids.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        start = time.monotonic()

        response = await call_next(request)

        duration_ms = round((time.monotonic() - start) * 1000, 1)
        response.headers["X-Request-ID"] = request_id

        logger.info(
            "%s %s %s %.1fms",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )

        return response
