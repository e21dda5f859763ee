"""Custom-domain binding: TXT challenge, DNS check, unbind.

PUT issues a token, POST checks ``_profyld.<domain>`` for it and binds the
domain on a match, DELETE removes the binding. All three need a login
session; binding also needs a paid tier.
"""

import dns.exception
import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from profyld.api.deps import get_request_router, require_session
from profyld.api.schemas import (
    DomainRemovedResponse,
    DomainTokenResponse,
    DomainVerifyRequest,
    DomainVerifyResponse,
    TxtInstructions,
)
from profyld.auth.limits import require_rate_limit
from profyld.auth.rate_limiter import RateLimitCategory, RateLimitResult
from profyld.auth.sessions import Session
from profyld.config import settings
from profyld.routing.pipeline import RequestRouter
from profyld.routing.tenants import SubscriptionTier
from profyld.routing.verification import (
    challenge_name,
    custom_domain_error,
    expected_record,
    lookup_txt,
    new_verification_token,
    normalize_custom_domain,
    record_matches,
)
from profyld.storage.database import get_session
from profyld.storage.orm import Profile
from profyld.storage.repositories import ProfileRepository

logger = structlog.get_logger()

router = APIRouter(tags=["domains"])

CUSTOM_DOMAIN_TIERS = frozenset({SubscriptionTier.PRO, SubscriptionTier.PREMIUM})

_get_session = Depends(get_session)
_get_router = Depends(get_request_router)
_require_session = Depends(require_session)
_verify_limit = Depends(
    require_rate_limit(
        RateLimitCategory.DOMAIN_VERIFY, message="Rate limit exceeded. Please wait."
    )
)


async def _owned_profile(repo: ProfileRepository, user: Session) -> Profile:
    profile = await repo.get_by_user_id(user.user_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


@router.put("/domains/verify", response_model=DomainTokenResponse)
async def issue_token(
    user: Session = _require_session,
    session: AsyncSession = _get_session,
) -> DomainTokenResponse:
    """Issue a fresh TXT challenge token, replacing any previous one."""
    repo = ProfileRepository(session)
    profile = await _owned_profile(repo, user)

    token = new_verification_token()
    await repo.set_verification_token(profile, token)
    logger.info("domain_token_issued", profile_id=str(profile.id))

    return DomainTokenResponse(
        token=token,
        instructions=TxtInstructions(
            host=settings.domain_challenge_label,
            value=expected_record(token),
        ),
    )


@router.post("/domains/verify", response_model=DomainVerifyResponse)
async def verify_domain(
    body: DomainVerifyRequest,
    _limit: RateLimitResult = _verify_limit,
    user: Session = _require_session,
    session: AsyncSession = _get_session,
    request_router: RequestRouter = _get_router,
) -> DomainVerifyResponse:
    """Check the TXT record and bind the domain when it matches.

    A missing or wrong record is a 200 with ``verified: false`` so the
    dashboard can show what was found.

    Raises:
        HTTPException 400: domain missing or not bindable, or no token issued.
        HTTPException 401: no session.
        HTTPException 403: free tier.
        HTTPException 404: no profile for the session's account.
        HTTPException 409: another profile holds the domain.
    """
    domain = normalize_custom_domain(body.domain or "")
    error = custom_domain_error(domain, request_router.config)
    if error is not None:
        raise HTTPException(status_code=400, detail=error)

    repo = ProfileRepository(session)
    profile = await _owned_profile(repo, user)

    if profile.subscription_tier not in CUSTOM_DOMAIN_TIERS:
        raise HTTPException(status_code=403, detail="Custom domains require a Pro plan")
    if await repo.custom_domain_taken(domain, exclude_profile_id=profile.id):
        raise HTTPException(status_code=409, detail="This domain is already in use")

    token = profile.domain_verification_token
    if not token:
        raise HTTPException(
            status_code=400, detail="Request a verification token first"
        )

    try:
        records = await lookup_txt(
            challenge_name(domain, settings.domain_challenge_label),
            lifetime=settings.domain_dns_timeout_seconds,
        )
    except dns.exception.DNSException as e:
        logger.info("domain_dns_unresolved", domain=domain, error=type(e).__name__)
        return DomainVerifyResponse(
            success=False,
            verified=False,
            domain=domain,
            error="Could not resolve DNS records. Make sure the TXT record is added.",
        )

    if not record_matches(records, token):
        return DomainVerifyResponse(
            success=False,
            verified=False,
            domain=domain,
            error="TXT record not found or incorrect",
            expected=expected_record(token),
            found=records,
        )

    try:
        await repo.bind_custom_domain(profile, domain)
    except IntegrityError as e:
        raise HTTPException(
            status_code=409, detail="This domain is already in use"
        ) from e

    logger.info("domain_verified", profile_id=str(profile.id), domain=domain)
    return DomainVerifyResponse(
        success=True,
        verified=True,
        domain=domain,
        message="Domain verified successfully!",
    )


@router.delete("/domains/verify", response_model=DomainRemovedResponse)
async def remove_domain(
    user: Session = _require_session,
    session: AsyncSession = _get_session,
) -> DomainRemovedResponse:
    repo = ProfileRepository(session)
    profile = await _owned_profile(repo, user)
    await repo.unbind_custom_domain(profile)
    logger.info("domain_removed", profile_id=str(profile.id))
    return DomainRemovedResponse()
