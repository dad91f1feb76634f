"""Rate limiting utilities for the application."""
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from medaid.config import settings


def get_rate_limit_key(request: Request) -> str:
    """
    Get the key for rate limiting.

    Webhook deliveries are limited per provider so one noisy scheme cannot
    starve the others; everything else is limited per client IP.

    Args:
        request: Incoming request

    Returns:
        Rate limit key
    """
    provider_id = request.path_params.get("provider_id")
    if provider_id is not None and "/webhooks/" in request.url.path:
        return f"provider:{provider_id}"

    return get_remote_address(request)


limiter = Limiter(
    key_func=get_rate_limit_key,
    default_limits=[settings.RATE_LIMIT_DEFAULT] if settings.RATE_LIMIT_ENABLED else [],
    storage_uri=settings.RATE_LIMIT_STORAGE_URL,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)
