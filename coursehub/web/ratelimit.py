"""
Rate limiting for the student credential endpoints.

Register, login and forgot-password share one budget per client address:
`AUTH_RATE_LIMIT` requests per `AUTH_RATE_WINDOW_SECONDS`. Each app builds its
own `Limiter` with in-process storage, so a multi-instance deployment gets one
budget per instance. `AUTH_RATE_LIMIT=0` disables the limiter.
"""
from __future__ import annotations

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from .config import Settings

AUTH_SCOPE = "auth-credentials"


def build_auth_limiter(settings: Settings) -> Limiter:
    return Limiter(key_func=get_remote_address, enabled=settings.auth_rate_limit > 0)


def auth_rate(settings: Settings) -> str:
    return f"{settings.auth_rate_limit}/{settings.auth_rate_window_seconds} seconds"


def retry_after_seconds(exc: RateLimitExceeded) -> int:
    return int(exc.limit.limit.get_expiry())


__all__ = ["AUTH_SCOPE", "RateLimitExceeded", "auth_rate", "build_auth_limiter", "retry_after_seconds"]
