"""In-memory fixed window rate limiter."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from threading import Lock
from typing import Protocol

import structlog

from profyld.config import RateLimitPreset

logger = structlog.get_logger()


class RateLimitCategory(StrEnum):
    """Endpoint categories; each has its own counter per client."""

    ANALYTICS = "analytics"
    EMAIL_CODE = "email_code"
    VERIFY_CODE = "verify_code"
    PARSE_CV = "parse_cv"
    ANALYZE_CV = "analyze_cv"
    USERNAME_CHECK = "username_check"
    DOMAIN_VERIFY = "domain_verify"
    DEFAULT = "default"


@dataclass
class RateRecord:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single ``check`` call.

    ``reset_at`` is on the limiter's clock (monotonic by default).
    """

    allowed: bool
    count: int
    remaining: int
    reset_at: float
    now: float

    @property
    def retry_after(self) -> int:
        """Whole seconds until the window resets (0 when allowed)."""
        if self.allowed:
            return 0
        return max(int(self.reset_at - self.now) + 1, 1)


class RateLimitBackend(Protocol):
    def check(
        self,
        identifier: str,
        category: str,
        limit: int,
        window_seconds: float,
    ) -> RateLimitResult: ...

    def sweep(self) -> int: ...


class FixedWindowRateLimiter:
    """Fixed window counter keyed by ``(identifier, category)``.

    Thread-safe via Lock. Single-instance only.
    For multi-instance deployments: implement RateLimitBackend on Redis.

    Fails closed: an internal error denies the request instead of raising.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._records: dict[tuple[str, str], RateRecord] = {}
        self._lock = Lock()

    def check(
        self,
        identifier: str,
        category: str,
        limit: int,
        window_seconds: float,
    ) -> RateLimitResult:
        """Count one request and report whether it is within the limit.

        Args:
            identifier: Client identity, usually the resolved client IP.
            category: Endpoint category, e.g. ``"username_check"``.
            limit: Max requests per window.
            window_seconds: Window length.

        Returns:
            RateLimitResult. The n-th call in a window has ``count == n``;
            ``allowed`` is ``count <= limit``.
        """
        now = 0.0
        try:
            now = self._clock()
            if limit <= 0 or window_seconds <= 0:
                raise ValueError(
                    f"invalid rate limit {limit}/{window_seconds}s for {category}"
                )
            key = (identifier, str(category))

            with self._lock:
                record = self._records.get(key)
                if record is None or now >= record.reset_at:
                    record = RateRecord(count=0, reset_at=now + window_seconds)
                    self._records[key] = record
                record.count += 1
                count = record.count
                reset_at = record.reset_at
        except Exception:
            logger.exception(
                "rate_limiter_error", identifier=identifier, category=str(category)
            )
            return RateLimitResult(
                allowed=False, count=0, remaining=0, reset_at=now, now=now
            )

        return RateLimitResult(
            allowed=count <= limit,
            count=count,
            remaining=max(0, limit - count),
            reset_at=reset_at,
            now=now,
        )

    def check_preset(
        self, identifier: str, category: str, preset: RateLimitPreset
    ) -> RateLimitResult:
        return self.check(identifier, category, preset.limit, preset.window_seconds)

    def sweep(self) -> int:
        """Remove records whose window has expired. Call periodically.

        Returns:
            Number of keys removed.
        """
        now = self._clock()
        with self._lock:
            expired = [key for key, rec in self._records.items() if now >= rec.reset_at]
            for key in expired:
                del self._records[key]
        return len(expired)

    def reset(self) -> None:
        """Drop all counters."""
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        return len(self._records)
