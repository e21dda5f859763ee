"""Rate limiting dependency factory for API routes."""

from collections.abc import Callable, Coroutine
from typing import Any, cast

import structlog
from fastapi import HTTPException, Request

from profyld.auth.client_ip import resolve_client_ip
from profyld.auth.rate_limiter import RateLimitBackend, RateLimitCategory, RateLimitResult
from profyld.config import settings

logger = structlog.get_logger()

REMAINING_HEADER = "X-RateLimit-Remaining"


class RateLimitExceededError(HTTPException):
    """429 with remaining-quota and Retry-After headers."""

    def __init__(self, result: RateLimitResult, message: str) -> None:
        super().__init__(
            status_code=429,
            detail=message,
            headers={
                REMAINING_HEADER: str(result.remaining),
                "Retry-After": str(result.retry_after),
            },
        )


def get_rate_limiter(request: Request) -> RateLimitBackend:
    """Retrieve the limiter from app state.

    Initialized during lifespan startup.
    """
    return cast(RateLimitBackend, request.app.state.rate_limiter)


def require_rate_limit(
    category: RateLimitCategory,
    message: str = "Too many requests. Please slow down.",
) -> Callable[..., Coroutine[Any, Any, RateLimitResult]]:
    """Dependency factory: count the request against ``category``.

    Usage as parameter dependency::

        async def endpoint(
            _limit: RateLimitResult = Depends(
                require_rate_limit(RateLimitCategory.USERNAME_CHECK)
            ),
        ): ...

    Raises:
        RateLimitExceededError: limit for this client and category exceeded.
    """

    async def _check_rate_limit(request: Request) -> RateLimitResult:
        identifier = resolve_client_ip(request.headers)
        preset = settings.rate_limit_for(category)
        result = get_rate_limiter(request).check(
            identifier, category, preset.limit, preset.window_seconds
        )
        request.state.rate_limit = result

        if not result.allowed:
            logger.info(
                "rate_limit_exceeded",
                category=str(category),
                client=identifier,
                path=request.url.path,
            )
            raise RateLimitExceededError(result, message)
        return result

    return _check_rate_limit
