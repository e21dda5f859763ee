"""SQLAlchemy ORM models for all project entities."""

import uuid
from datetime import datetime
from typing import Any

import uuid_utils as uuid7_lib
from sqlalchemy import (
    DateTime,
    ForeignKey,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _uuid7() -> uuid.UUID:
    """Generate a UUIDv7 (time-ordered) for use as default PK value."""
    return uuid.UUID(bytes=uuid7_lib.uuid7().bytes)


class Base(DeclarativeBase):
    """Base class for all ORM models."""


# ──────────────────────────────────────────────
# Accounts & Sessions
# ──────────────────────────────────────────────


class Profile(Base):
    """Public portfolio owner record (the tenant).

    ``user_id`` is the owning account; ``username`` doubles as the
    subdomain name.
    """

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid7)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, unique=True, index=True)
    username: Mapped[str] = mapped_column(String(20), unique=True, index=True)
    name: Mapped[str | None] = mapped_column(String(200))
    tagline: Mapped[str | None] = mapped_column(Text)
    subscription_tier: Mapped[str | None] = mapped_column(String(20), default="free")
    custom_domain: Mapped[str | None] = mapped_column(
        String(253), unique=True, index=True
    )
    custom_domain_verified: Mapped[bool] = mapped_column(default=False)
    # Value expected in the _profyld TXT record; issued before verification.
    domain_verification_token: Mapped[str | None] = mapped_column(String(64))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    page_views: Mapped[list["PageView"]] = relationship(
        back_populates="profile", cascade="all, delete-orphan"
    )


class UserSession(Base):
    """Login session. Only the SHA-256 of the cookie token is stored."""

    __tablename__ = "user_sessions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid7)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True)
    token_hash: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


# ──────────────────────────────────────────────
# Analytics
# ──────────────────────────────────────────────


class PageView(Base):
    __tablename__ = "page_views"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid7)
    portfolio_user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("profiles.user_id", ondelete="CASCADE"), index=True
    )
    visitor_hash: Mapped[str] = mapped_column(String(16))
    page_path: Mapped[str] = mapped_column(String(2048), default="/")
    referrer: Mapped[str | None] = mapped_column(Text)
    referrer_domain: Mapped[str] = mapped_column(String(253), default="direct")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    profile: Mapped["Profile"] = relationship(back_populates="page_views")


class CtaEvent(Base):
    __tablename__ = "cta_events"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid7)
    portfolio_user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("profiles.user_id", ondelete="CASCADE"), index=True
    )
    event_type: Mapped[str] = mapped_column(String(100))
    event_data: Mapped[dict[str, Any]] = mapped_column(JSONB, default=dict)
    visitor_hash: Mapped[str] = mapped_column(String(16))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
