"""Pydantic request/response schemas for the API."""

from __future__ import annotations

import uuid
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class UsernameCheckResponse(BaseModel):
    available: bool
    error: str | None = None


class TrackRequest(BaseModel):
    """Analytics beacon sent by public portfolio pages."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["page_view", "event"]
    user_id: uuid.UUID = Field(alias="userId")
    path: str | None = Field(default=None, max_length=2048)
    referrer: str | None = None
    event_type: str | None = Field(default=None, alias="eventType", max_length=100)
    event_data: dict[str, Any] | None = Field(default=None, alias="eventData")


class TrackResponse(BaseModel):
    success: bool


class DomainVerifyRequest(BaseModel):
    domain: str | None = Field(default=None, max_length=300)


class TxtInstructions(BaseModel):
    type: Literal["TXT"] = "TXT"
    host: str
    value: str


class DomainTokenResponse(BaseModel):
    success: bool = True
    token: str
    instructions: TxtInstructions


class DomainVerifyResponse(BaseModel):
    """Outcome of a DNS check. A missing record is not an HTTP error."""

    success: bool
    verified: bool
    domain: str
    message: str | None = None
    error: str | None = None
    expected: str | None = None
    found: list[str] | None = None


class DomainRemovedResponse(BaseModel):
    success: bool = True
    message: str = "Custom domain removed"


class PortfolioPage(BaseModel):
    """Data handed to the public page renderer."""

    model_config = ConfigDict(from_attributes=True)

    username: str
    name: str | None = None
    tagline: str | None = None
    path: str = "/"


class LockedPage(BaseModel):
    locked: bool = True
    user: str | None = None
    message: str
