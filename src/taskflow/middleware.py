"""HTTP middleware for the TaskFlow API."""

import logging

from fastapi import status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from .services.rate_limit import SlidingWindowRateLimiter

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Limits requests under `prefix` per client IP."""

    def __init__(self, app, limiter: SlidingWindowRateLimiter, prefix: str = "/api/"):
        super().__init__(app)
        self.limiter = limiter
        self.prefix = prefix

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(self.prefix):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        allowed, retry_after = await self.limiter.allow(client_ip)
        if not allowed:
            logger.warning(f"Rate limit exceeded for {client_ip} on {request.url.path}")
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"detail": "Too many requests from this IP, please try again later."},
                headers={"Retry-After": str(retry_after)},
            )
        return await call_next(request)
