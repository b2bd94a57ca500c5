"""Rate limiting middleware using Redis.

Sliding-window limits per client IP (or reviewer id for bearer-token
requests).  The resume lookup gets a much tighter window than the rest
of the API so resume tokens cannot be guessed by brute force.
Fails open if Redis is unavailable.
"""

import logging
import time
from typing import Callable, Optional

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware

from onboarding.auth.jwt import decode_token
from onboarding.config import settings
from onboarding.middleware.exceptions import create_error_response
from onboarding.utils.redis_client import get_redis

logger = logging.getLogger(__name__)

RESUME_PREFIX = "/api/applications/resume/"


def _limit_headers(limit: int, remaining: int, reset_time: float) -> dict[str, str]:
    return {
        "X-RateLimit-Limit": str(limit),
        "X-RateLimit-Remaining": str(remaining),
        "X-RateLimit-Reset": str(int(reset_time)),
    }


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        default_limit: int = 100,  # requests
        default_window: int = 60,  # seconds
        exempt_paths: Optional[list[str]] = None,
    ):
        super().__init__(app)
        self.default_limit = default_limit
        self.default_window = default_window
        self.exempt_paths = tuple(exempt_paths or ["/health", "/docs", "/openapi.json"])
        # prefix → (limit, window); first match wins
        self.custom_limits = {
            RESUME_PREFIX: (settings.resume_rate_limit, settings.resume_rate_window),
        }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if path.startswith(self.exempt_paths):
            return await call_next(request)

        limit, window, bucket = self._get_limit_for_path(path)
        key = f"ratelimit:{bucket}:{self._client_key(request)}"
        allowed, remaining, reset_time = await self._check_rate_limit(key, limit, window)

        if not allowed:
            retry_after = max(0, int(reset_time - time.time()))
            logger.warning("Rate limit hit on %s for %s", bucket, key)
            response = create_error_response(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                message=f"Too many requests. Try again in {retry_after} seconds.",
                error_code="RATE_LIMITED",
            )
            response.headers.update(_limit_headers(limit, 0, reset_time))
            response.headers["Retry-After"] = str(retry_after)
            return response

        response = await call_next(request)
        response.headers.update(_limit_headers(limit, remaining, reset_time))
        return response

    def _get_limit_for_path(self, path: str) -> tuple[int, int, str]:
        for prefix, (limit, window) in self.custom_limits.items():
            if path.startswith(prefix):
                return limit, window, prefix.strip("/").replace("/", ".")
        return self.default_limit, self.default_window, "default"

    @staticmethod
    def _client_key(request: Request) -> str:
        """Reviewer id for bearer-token requests, otherwise client IP."""
        auth_header = request.headers.get("authorization", "")
        if auth_header.startswith("Bearer "):
            user_id = decode_token(auth_header[7:]).get("sub")
            if user_id:
                return f"user:{user_id}"

        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return f"ip:{forwarded.split(',')[0].strip()}"
        return f"ip:{request.client.host if request.client else 'unknown'}"

    async def _check_rate_limit(
        self, key: str, limit: int, window: int
    ) -> tuple[bool, int, float]:
        """Sliding window over a sorted set of request timestamps.

        Returns:
            (allowed, remaining, reset_time)
        """
        now = time.time()
        try:
            redis_client = await get_redis()
            pipe = redis_client.pipeline()
            pipe.zremrangebyscore(key, 0, now - window)
            pipe.zcard(key)
            _, count = await pipe.execute()

            if count >= limit:
                oldest = await redis_client.zrange(key, 0, 0, withscores=True)
                reset_time = oldest[0][1] + window if oldest else now + window
                return False, 0, reset_time

            pipe = redis_client.pipeline()
            pipe.zadd(key, {str(now): now})
            pipe.expire(key, window)
            await pipe.execute()
            return True, limit - count - 1, now + window

        except Exception as e:
            logger.error("Rate limit check failed, allowing request: %s", e)
            return True, limit, now + window
