"""
Rate Limiter Configuration

slowapi limiter keyed on the real client IP. Storage defaults to in-memory;
set RATE_LIMIT_STORAGE_URI (e.g. redis://...) when running several
instances.
"""

import logging

from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request

from ..config import settings

logger = logging.getLogger(__name__)


def get_real_client_ip(request: Request) -> str:
    """Get real client IP behind a reverse proxy"""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # First IP is the original client
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


def create_limiter() -> Limiter:
    storage_uri = settings.rate_limit_storage_uri
    logger.info(f"📝 Rate limiter storage: {storage_uri.split('://')[0]}")
    return Limiter(
        key_func=get_real_client_ip,
        storage_uri=storage_uri,
        default_limits=["100/minute"],
        enabled=settings.rate_limit_enabled,
    )


# Global rate limiter instance
limiter = create_limiter()


# ================================
# RATE LIMIT CONFIGURATIONS
# ================================

RATE_LIMITS = {
    # Guest facing
    "availability_check": "60/minute",
    "search": "60/minute",
    "booking_create": "10/minute",
    "booking_cancel": "20/minute",

    # Admin
    "override_update": "60/minute",

    # Calendar sync hits third-party hosts - keep it low
    "ical_sync": "6/minute",
}


def get_rate_limit(operation: str) -> str:
    """Get rate limit for a specific operation."""
    return RATE_LIMITS.get(operation, "100/minute")
