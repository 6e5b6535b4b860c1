"""Rate limiting for the administrative toggle endpoints."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from fastapi import Response, status
from redis.asyncio import Redis
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

LOGGER = logging.getLogger(__name__)


class AdminRateLimitMiddleware(BaseHTTPMiddleware):
    """Redis-backed fixed window limiter applied to paths under ``path_prefix``."""

    def __init__(
        self,
        app,
        limit: int = 120,
        window_seconds: int = 60,
        path_prefix: str = "/admin/",
    ) -> None:
        super().__init__(app)
        self._limit = limit
        self._window = window_seconds
        self._prefix = path_prefix

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        redis: Redis | None = getattr(request.app.state, "redis", None)
        if redis is None or not request.url.path.startswith(self._prefix):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        key = f"feature_toggles:ratelimit:{client_ip}"
        try:
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, self._window)
        except RedisError as exc:
            LOGGER.warning("Rate limiter unavailable, letting request through: %s", exc)
            return await call_next(request)

        if count > self._limit:
            return JSONResponse(
                {"success": False, "message": "Too many requests"},
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            )
        return await call_next(request)
