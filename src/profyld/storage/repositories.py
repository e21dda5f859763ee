"""CRUD repositories for database operations."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from profyld.storage.orm import CtaEvent, PageView, Profile, UserSession


class ProfileRepository:
    """Read access to portfolio profiles (the tenant directory table)."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_username(self, username: str) -> Profile | None:
        """Get profile by username (case-insensitive).

        Args:
            username: Subdomain / username to look up.

        Returns:
            Profile or None if not found.
        """
        stmt = select(Profile).where(Profile.username == username.lower())
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_custom_domain(
        self, hostname: str, *, verified_only: bool = True
    ) -> Profile | None:
        """Get profile bound to ``hostname``.

        Args:
            hostname: Custom domain, lower-cased, without port.
            verified_only: Only match domains whose TXT challenge passed.
        """
        stmt = select(Profile).where(Profile.custom_domain == hostname.lower())
        if verified_only:
            stmt = stmt.where(Profile.custom_domain_verified.is_(True))
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_user_id(self, user_id: uuid.UUID) -> Profile | None:
        stmt = select(Profile).where(Profile.user_id == user_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def username_exists(self, username: str) -> bool:
        stmt = select(func.count(Profile.id)).where(Profile.username == username.lower())
        result = await self._session.execute(stmt)
        return bool(result.scalar_one())

    async def custom_domain_taken(
        self, hostname: str, *, exclude_profile_id: uuid.UUID
    ) -> bool:
        """True when another profile already holds ``hostname``, verified or not."""
        stmt = select(func.count(Profile.id)).where(
            Profile.custom_domain == hostname.lower(),
            Profile.id != exclude_profile_id,
        )
        result = await self._session.execute(stmt)
        return bool(result.scalar_one())

    async def set_verification_token(self, profile: Profile, token: str) -> None:
        profile.domain_verification_token = token
        await self._session.flush()

    async def bind_custom_domain(self, profile: Profile, hostname: str) -> None:
        """Attach a verified custom domain.

        Raises:
            IntegrityError: another profile bound ``hostname`` concurrently.
        """
        profile.custom_domain = hostname.lower()
        profile.custom_domain_verified = True
        await self._session.flush()

    async def unbind_custom_domain(self, profile: Profile) -> None:
        profile.custom_domain = None
        profile.custom_domain_verified = False
        await self._session.flush()


class UserSessionRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_active_by_hash(
        self, token_hash: str, *, now: datetime
    ) -> UserSession | None:
        """Get a non-revoked, unexpired session by token hash."""
        stmt = select(UserSession).where(
            UserSession.token_hash == token_hash,
            UserSession.revoked_at.is_(None),
            UserSession.expires_at > now,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()


class AnalyticsRepository:
    """Write-only sink for anonymous portfolio analytics."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add_page_view(
        self,
        *,
        portfolio_user_id: uuid.UUID,
        visitor_hash: str,
        page_path: str,
        referrer: str | None,
        referrer_domain: str,
    ) -> PageView:
        view = PageView(
            portfolio_user_id=portfolio_user_id,
            visitor_hash=visitor_hash,
            page_path=page_path,
            referrer=referrer,
            referrer_domain=referrer_domain,
        )
        self._session.add(view)
        await self._session.flush()
        return view

    async def add_event(
        self,
        *,
        portfolio_user_id: uuid.UUID,
        event_type: str,
        event_data: dict[str, Any],
        visitor_hash: str,
    ) -> CtaEvent:
        event = CtaEvent(
            portfolio_user_id=portfolio_user_id,
            event_type=event_type,
            event_data=event_data,
            visitor_hash=visitor_hash,
        )
        self._session.add(event)
        await self._session.flush()
        return event
