"""Shared FastAPI dependencies: endpoint rate limiters."""
import logging
from functools import lru_cache

from fastapi import Depends, Request

from coincoach.config import get_settings
from coincoach.core.exceptions import TooManyRequests
from coincoach.core.rate_limiting import FixedWindowRateLimiter, client_identifier

logger = logging.getLogger(__name__)


@lru_cache
def get_chat_limiter() -> FixedWindowRateLimiter:
    settings = get_settings()
    return FixedWindowRateLimiter(
        max_requests=settings.chat_rate_limit,
        window_seconds=settings.rate_limit_window_seconds,
        name="chat",
    )


@lru_cache
def get_pattern_limiter() -> FixedWindowRateLimiter:
    settings = get_settings()
    return FixedWindowRateLimiter(
        max_requests=settings.pattern_rate_limit,
        window_seconds=settings.rate_limit_window_seconds,
        name="patterns",
    )


def enforce(limiter: FixedWindowRateLimiter, request: Request, message: str) -> None:
    """Count the request against ``limiter``; raise once the window is used up."""
    identifier = client_identifier(request)
    result = limiter.check_and_increment(identifier)
    if not result.allowed:
        logger.warning("Rate limit exceeded on %s for %s", limiter.name, identifier)
        raise TooManyRequests(
            message,
            limit=result.limit,
            remaining=result.remaining,
            retry_after=int(limiter.window_seconds),
        )


async def limit_chat(request: Request, limiter: FixedWindowRateLimiter = Depends(get_chat_limiter)) -> None:
    enforce(limiter, request, "Too many requests. Please wait a moment before trying again.")


async def limit_patterns(request: Request, limiter: FixedWindowRateLimiter = Depends(get_pattern_limiter)) -> None:
    enforce(limiter, request, "Too many requests. Please wait before analyzing again.")
