"""Anonymous page-view and CTA tracking for public portfolios."""

from __future__ import annotations

import hashlib
from urllib.parse import urlparse

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from profyld.api.deps import get_request_router
from profyld.api.schemas import TrackRequest, TrackResponse
from profyld.auth.client_ip import resolve_client_ip
from profyld.auth.limits import require_rate_limit
from profyld.auth.rate_limiter import RateLimitCategory, RateLimitResult
from profyld.routing.hosts import CustomDomain, classify
from profyld.routing.pipeline import RequestRouter
from profyld.storage.database import get_session
from profyld.storage.repositories import AnalyticsRepository

logger = structlog.get_logger()

router = APIRouter(tags=["analytics"])

_get_session = Depends(get_session)
_get_router = Depends(get_request_router)
_analytics_limit = Depends(
    require_rate_limit(RateLimitCategory.ANALYTICS, message="Rate limit exceeded")
)


def visitor_hash(ip: str, user_agent: str) -> str:
    """Anonymous, stable-per-device visitor id (16 hex chars)."""
    return hashlib.sha256(f"{ip}-{user_agent}".encode()).hexdigest()[:16]


def referrer_domain(referrer: str | None) -> str:
    """Hostname of the referrer without ``www.``; ``direct`` when absent."""
    if not referrer:
        return "direct"
    hostname = urlparse(referrer).hostname
    if not hostname:
        return "unknown"
    return hostname.removeprefix("www.")


async def _origin_allowed(origin: str, request_router: RequestRouter) -> bool:
    """Platform hosts are allowed; custom domains only when verified."""
    hostname = urlparse(origin).hostname
    if not hostname:
        return False
    classification = classify(hostname, request_router.config)
    if not isinstance(classification, CustomDomain):
        return True
    tenant = await request_router.resolver.resolve_custom_domain(hostname)
    return tenant is not None


@router.post("/analytics/track", response_model=TrackResponse)
async def track(
    body: TrackRequest,
    request: Request,
    _limit: RateLimitResult = _analytics_limit,
    session: AsyncSession = _get_session,
    request_router: RequestRouter = _get_router,
) -> TrackResponse:
    """Record a page view or CTA event.

    Raises:
        HTTPException 403: origin is not a platform or verified custom domain.
        HTTPException 400: event without ``eventType``.
        HTTPException 500: storage failure.
    """
    origin = request.headers.get("origin")
    if origin and not await _origin_allowed(origin, request_router):
        raise HTTPException(status_code=403, detail="Forbidden")

    visitor = visitor_hash(
        resolve_client_ip(request.headers),
        request.headers.get("user-agent", "unknown"),
    )
    repo = AnalyticsRepository(session)

    try:
        if body.type == "page_view":
            await repo.add_page_view(
                portfolio_user_id=body.user_id,
                visitor_hash=visitor,
                page_path=body.path or "/",
                referrer=body.referrer,
                referrer_domain=referrer_domain(body.referrer),
            )
        else:
            if not body.event_type:
                raise HTTPException(status_code=400, detail="eventType required")
            await repo.add_event(
                portfolio_user_id=body.user_id,
                event_type=body.event_type,
                event_data=body.event_data or {},
                visitor_hash=visitor,
            )
    except SQLAlchemyError as e:
        logger.error("analytics_track_failed", type=body.type, error=type(e).__name__)
        raise HTTPException(status_code=500, detail="Failed to track") from e

    return TrackResponse(success=True)
