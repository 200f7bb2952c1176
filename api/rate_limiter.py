"""
Rate Limiting Module for the vpdf API

Provides configurable rate limiting with:
- Per-endpoint limits
- IP-based limiting
- Custom error responses

Usage:
    from api.rate_limiter import limiter, rate_limit_config

    @router.post("/api/endpoint")
    @limiter.limit(rate_limit_config.get_limit("convert"))
    async def endpoint(request: Request):
        ...
"""

import os
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from config.settings import settings


@dataclass
class RateLimitConfig:
    """
    Centralized rate limit configuration.

    Limits are defined as "count/period", e.g. "10/minute".
    """

    # Default limits by endpoint category
    defaults: Dict[str, str] = field(default_factory=lambda: {
        # Health & status - high limit
        "health": "120/minute",
        "status": "120/minute",

        # Editing
        "session_create": "30/minute",
        "edit": "120/minute",

        # File operations - moderate limit
        "upload": "20/minute",
        "download": "30/minute",

        # Rendering - expensive
        "convert": settings.convert_rate_limit,

        # Fallback
        "default": settings.rate_limit,
    })

    # Override limits from environment
    env_overrides: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        """Load overrides from environment variables."""
        # Format: VPDF_RATE_LIMIT_CONVERT=5/minute
        for key in self.defaults.keys():
            env_key = f"VPDF_RATE_LIMIT_{key.upper()}"
            if env_value := os.getenv(env_key):
                self.env_overrides[key] = env_value

    def get_limit(self, endpoint: str) -> str:
        """
        Get rate limit for an endpoint.

        Args:
            endpoint: Endpoint category name

        Returns:
            Rate limit string (e.g., "10/minute")
        """
        if endpoint in self.env_overrides:
            return self.env_overrides[endpoint]
        if endpoint in self.defaults:
            return self.defaults[endpoint]
        return self.env_overrides.get("default", self.defaults["default"])


# Create global config instance
rate_limit_config = RateLimitConfig()


def create_limiter(
    key_func: Optional[Callable] = None,
    default_limits: Optional[list] = None,
    enabled: bool = True,
) -> Limiter:
    """
    Create a configured rate limiter instance.

    Args:
        key_func: Function to extract rate limit key from request
        default_limits: Default rate limits to apply
        enabled: False turns every limit off (tests)

    Returns:
        Configured Limiter instance
    """
    return Limiter(
        key_func=key_func or get_remote_address,
        default_limits=default_limits or [rate_limit_config.get_limit("default")],
        enabled=enabled,
    )


# Create default limiter instance
limiter = create_limiter(enabled=settings.rate_limit_enabled)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """
    Custom handler for rate limit exceeded errors.

    Returns a JSON response with a Retry-After header.
    """
    limit_value = str(exc.detail) if hasattr(exc, "detail") else "Rate limit exceeded"

    retry_after = 60
    if "second" in limit_value:
        retry_after = 1
    elif "hour" in limit_value:
        retry_after = 3600

    return JSONResponse(
        status_code=429,
        content={
            "error": "rate_limit_exceeded",
            "detail": "Too many requests. Please slow down.",
            "limit": limit_value,
            "retry_after_seconds": retry_after,
            "timestamp": time.time(),
        },
        headers={
            "Retry-After": str(retry_after),
            "X-RateLimit-Limit": limit_value,
        },
    )
