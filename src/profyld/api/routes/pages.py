"""Page endpoints that routing decisions dispatch to.

Rendering is not done here: each endpoint returns the page payload the
frontend renderer needs, or 404.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from profyld.api.schemas import LockedPage, PortfolioPage
from profyld.storage.database import get_session
from profyld.storage.repositories import ProfileRepository

router = APIRouter(tags=["pages"])

_get_session = Depends(get_session)


def _page_path(rest: str) -> str:
    return f"/{rest}" if rest else "/"


@router.get("/u/{username}", response_model=PortfolioPage)
@router.get("/u/{username}/{rest:path}", response_model=PortfolioPage)
async def tenant_page(
    username: str,
    rest: str = "",
    session: AsyncSession = _get_session,
) -> PortfolioPage:
    """Public portfolio reached through a tenant subdomain."""
    profile = await ProfileRepository(session).get_by_username(username)
    if profile is None:
        raise HTTPException(status_code=404, detail="Portfolio not found")
    return PortfolioPage(
        username=profile.username,
        name=profile.name,
        tagline=profile.tagline,
        path=_page_path(rest),
    )


@router.get("/domain/{hostname}", response_model=PortfolioPage)
@router.get("/domain/{hostname}/{rest:path}", response_model=PortfolioPage)
async def custom_domain_page(
    hostname: str,
    rest: str = "",
    session: AsyncSession = _get_session,
) -> PortfolioPage:
    """Public portfolio reached through a custom domain.

    Only renders when ``hostname`` is the verified domain of a profile;
    an unverified or unknown domain is a 404, never the main app.
    """
    profile = await ProfileRepository(session).get_by_custom_domain(
        hostname, verified_only=True
    )
    if profile is None:
        raise HTTPException(status_code=404, detail="Portfolio not found")
    return PortfolioPage(
        username=profile.username,
        name=profile.name,
        tagline=profile.tagline,
        path=_page_path(rest),
    )


@router.get("/locked", response_model=LockedPage)
async def locked_page(user: str | None = None) -> LockedPage:
    who = f"@{user}" if user else "This user"
    return LockedPage(
        user=user,
        message=f"{who}'s portfolio is currently private.",
    )


@router.get("/")
async def home() -> dict[str, str]:
    return {"page": "home"}


@router.get("/login")
async def login_page() -> dict[str, str]:
    return {"page": "login"}


@router.get("/signup")
async def signup_page() -> dict[str, str]:
    return {"page": "signup"}


@router.get("/dashboard")
@router.get("/dashboard/{rest:path}")
async def dashboard_page(rest: str = "") -> dict[str, str]:
    return {"page": "dashboard", "section": rest or "overview"}
