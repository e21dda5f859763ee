"""Client identity, rate limiting and login sessions.

Note: ``require_rate_limit`` lives in ``auth.limits`` and is NOT re-exported
here; it depends on FastAPI request state and settings.
Import directly: ``from profyld.auth.limits import require_rate_limit``.
"""

from profyld.auth.client_ip import resolve_client_ip
from profyld.auth.rate_limiter import (
    FixedWindowRateLimiter,
    RateLimitCategory,
    RateLimitResult,
)
from profyld.auth.sessions import Session, generate_session_token, hash_session_token

__all__ = [
    "FixedWindowRateLimiter",
    "RateLimitCategory",
    "RateLimitResult",
    "Session",
    "generate_session_token",
    "hash_session_token",
    "resolve_client_ip",
]
