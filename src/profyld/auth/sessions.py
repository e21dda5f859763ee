"""Login sessions: token generation, hashing and lookup."""

from __future__ import annotations

import asyncio
import hashlib
import secrets
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from profyld.errors import SessionLookupError
from profyld.storage.repositories import UserSessionRepository

logger = structlog.get_logger()


@dataclass(frozen=True)
class Session:
    """Authenticated visitor. Only used for ownership checks."""

    user_id: uuid.UUID


def generate_session_token() -> tuple[str, str]:
    """Generate a session token, return (token, token_hash).

    The token goes into the cookie; only the hash is stored in DB.
    """
    token = secrets.token_urlsafe(32)
    return token, hash_session_token(token)


def hash_session_token(token: str) -> str:
    """SHA-256 hex digest of a session token."""
    return hashlib.sha256(token.encode()).hexdigest()


class SessionProvider(Protocol):
    async def get_session(self, token: str | None) -> Session | None: ...


class SqlSessionProvider:
    """Resolve cookie tokens against the ``user_sessions`` table."""

    def __init__(self, session_factory: Callable[[], AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_session(self, token: str | None) -> Session | None:
        """Return the session for ``token`` or None.

        Raises:
            SessionLookupError: database unreachable or query failed.
        """
        if not token:
            return None
        try:
            async with self._session_factory() as db:
                record = await UserSessionRepository(db).get_active_by_hash(
                    hash_session_token(token), now=datetime.now(UTC)
                )
        except SQLAlchemyError as exc:
            raise SessionLookupError(type(exc).__name__) from exc
        if record is None:
            return None
        return Session(user_id=record.user_id)


async def safe_get_session(
    provider: SessionProvider,
    token: str | None,
    timeout: float | None = None,
) -> Session | None:
    """Resolve a session, degrading any backend failure to "no session"."""
    try:
        async with asyncio.timeout(timeout):
            return await provider.get_session(token)
    except (SessionLookupError, TimeoutError) as exc:
        logger.warning("session_lookup_failed", error=type(exc).__name__)
        return None
    except Exception as exc:
        logger.error("session_lookup_unexpected", error=str(exc), exc_info=True)
        return None
