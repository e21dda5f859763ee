"""Username availability check used by the signup form."""

import re

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from profyld.api.schemas import UsernameCheckResponse
from profyld.auth.limits import require_rate_limit
from profyld.auth.rate_limiter import RateLimitCategory, RateLimitResult
from profyld.storage.database import get_session
from profyld.storage.repositories import ProfileRepository

logger = structlog.get_logger()

router = APIRouter(tags=["username"])

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 20
USERNAME_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")

RESERVED_USERNAMES: frozenset[str] = frozenset(
    {
        "admin", "api", "dashboard", "login", "signup", "auth", "register",
        "settings", "profile", "user", "users", "account", "help", "support",
        "about", "contact", "blog", "pricing", "features", "terms", "privacy",
        "legal", "status", "system", "static", "assets", "public", "www",
        "mail", "ftp", "localhost", "root", "webmaster", "test", "demo",
        "null", "undefined", "void",
    }
)  # fmt: skip

_get_session = Depends(get_session)
_username_limit = Depends(require_rate_limit(RateLimitCategory.USERNAME_CHECK))


def validate_username(username: str) -> str | None:
    """Return an error message, or None when the format is acceptable.

    3-20 characters, lowercase letters, digits and underscores, starting
    with a letter, not reserved.
    """
    if not username:
        return "Username is required"
    if len(username) < USERNAME_MIN_LENGTH:
        return f"Username must be at least {USERNAME_MIN_LENGTH} characters"
    if len(username) > USERNAME_MAX_LENGTH:
        return f"Username must be {USERNAME_MAX_LENGTH} characters or less"
    if not USERNAME_PATTERN.match(username):
        return (
            "Username must start with a letter and contain only lowercase "
            "letters, numbers, and underscores"
        )
    if username.lower() in RESERVED_USERNAMES:
        return "This username is reserved"
    return None


@router.get("/username/check", response_model=UsernameCheckResponse)
async def check_username(
    username: str = "",
    _limit: RateLimitResult = _username_limit,
    session: AsyncSession = _get_session,
) -> UsernameCheckResponse | JSONResponse:
    """Check whether ``username`` can be registered.

    Format problems are a normal 200 answer; a failed lookup is a 500.
    """
    if not username:
        return JSONResponse(
            status_code=400,
            content={"available": False, "error": "Username is required"},
        )

    error = validate_username(username)
    if error is not None:
        return UsernameCheckResponse(available=False, error=error)

    try:
        taken = await ProfileRepository(session).username_exists(username)
    except SQLAlchemyError as e:
        logger.warning("username_check_db_error", error=type(e).__name__)
        return JSONResponse(
            status_code=500,
            content={"available": False, "error": "Error checking username"},
        )

    if taken:
        return UsernameCheckResponse(available=False, error="Username is taken")
    return UsernameCheckResponse(available=True)
