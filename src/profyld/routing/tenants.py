"""Tenant directory lookups for subdomains and custom domains."""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from profyld.errors import DirectoryLookupError
from profyld.storage.orm import Profile
from profyld.storage.repositories import ProfileRepository

logger = structlog.get_logger()


class SubscriptionTier(StrEnum):
    FREE = "free"
    PRO = "pro"
    PREMIUM = "premium"


@dataclass(frozen=True)
class TenantRecord:
    """Read-only view of a tenant, as far as routing cares."""

    account_id: uuid.UUID
    subscription_tier: str | None = None
    custom_domain: str | None = None
    custom_domain_verified: bool = False

    @property
    def is_free_tier(self) -> bool:
        """Absent tier counts as free."""
        return not self.subscription_tier or self.subscription_tier == SubscriptionTier.FREE

    @classmethod
    def from_profile(cls, profile: Profile) -> TenantRecord:
        return cls(
            account_id=profile.user_id,
            subscription_tier=profile.subscription_tier,
            custom_domain=profile.custom_domain,
            custom_domain_verified=bool(profile.custom_domain_verified),
        )


class TenantDirectory(Protocol):
    async def find_by_subdomain(self, name: str) -> TenantRecord | None: ...

    async def find_by_custom_domain(
        self, hostname: str, verified_only: bool = True
    ) -> TenantRecord | None: ...


class SqlTenantDirectory:
    """Tenant directory backed by the ``profiles`` table."""

    def __init__(self, session_factory: Callable[[], AsyncSession]) -> None:
        self._session_factory = session_factory

    async def _find(
        self, query: Callable[[ProfileRepository], Awaitable[Profile | None]]
    ) -> TenantRecord | None:
        try:
            async with self._session_factory() as session:
                profile = await query(ProfileRepository(session))
                if profile is None:
                    return None
                return TenantRecord.from_profile(profile)
        except SQLAlchemyError as exc:
            raise DirectoryLookupError(type(exc).__name__) from exc

    async def find_by_subdomain(self, name: str) -> TenantRecord | None:
        return await self._find(lambda repo: repo.get_by_username(name))

    async def find_by_custom_domain(
        self, hostname: str, verified_only: bool = True
    ) -> TenantRecord | None:
        return await self._find(
            lambda repo: repo.get_by_custom_domain(hostname, verified_only=verified_only)
        )


class TenantResolver:
    """Resolve subdomains and custom domains to tenants.

    A miss is a normal ``None``. Backend failures and timeouts are logged
    and also return ``None``: an unreachable directory must route to the
    not-found page, never to an allowed page.
    """

    def __init__(self, directory: TenantDirectory, timeout: float | None = None) -> None:
        self._directory = directory
        self._timeout = timeout

    async def _lookup(
        self, kind: str, key: str, call: Callable[[], Awaitable[TenantRecord | None]]
    ) -> TenantRecord | None:
        try:
            async with asyncio.timeout(self._timeout):
                return await call()
        except (DirectoryLookupError, TimeoutError) as exc:
            logger.warning(
                "tenant_lookup_failed", kind=kind, key=key, error=type(exc).__name__
            )
            return None
        except Exception as exc:
            logger.error(
                "tenant_lookup_unexpected",
                kind=kind,
                key=key,
                error=str(exc),
                exc_info=True,
            )
            return None

    async def resolve_subdomain(self, name: str) -> TenantRecord | None:
        name = name.lower()
        return await self._lookup(
            "subdomain", name, lambda: self._directory.find_by_subdomain(name)
        )

    async def resolve_custom_domain(self, hostname: str) -> TenantRecord | None:
        """Only verified custom domains match."""
        hostname = hostname.lower()
        record = await self._lookup(
            "custom_domain",
            hostname,
            lambda: self._directory.find_by_custom_domain(hostname, verified_only=True),
        )
        if record is not None and not record.custom_domain_verified:
            return None
        return record
