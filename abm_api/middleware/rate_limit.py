"""
Rate limiting middleware using slowapi.
"""
import logging
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from fastapi import FastAPI, Request
from abm_api.config import settings
from abm_api.core.logging_utils import get_client_ip

logger = logging.getLogger(__name__)


def rate_limit_key(request: Request) -> str:
    """Limit per client IP (first X-Forwarded-For hop when proxied)."""
    return get_client_ip(request) or get_remote_address(request)


limiter = Limiter(
    key_func=rate_limit_key,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    enabled=settings.RATE_LIMIT_ENABLED
)


def setup_rate_limiting(app: FastAPI) -> None:
    """
    Configure rate limiting for the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    if not settings.RATE_LIMIT_ENABLED:
        logger.info("Rate limiting is disabled")
        return

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    logger.info(
        f"Rate limiting enabled: default={settings.RATE_LIMIT_DEFAULT}, "
        f"capture={settings.RATE_LIMIT_CAPTURE}"
    )


def rate_limit_capture():
    """Rate limit decorator for public email capture endpoints."""
    return limiter.limit(settings.RATE_LIMIT_CAPTURE)
