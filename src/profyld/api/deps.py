"""FastAPI dependency injection."""

from __future__ import annotations

from typing import cast

from fastapi import Depends, HTTPException, Request

from profyld.auth.limits import get_rate_limiter
from profyld.auth.sessions import Session
from profyld.config import settings
from profyld.routing.pipeline import RequestRouter
from profyld.storage.database import get_session

__all__ = [
    "get_current_session",
    "get_rate_limiter",
    "get_request_router",
    "get_session",
    "require_session",
]


async def get_request_router(request: Request) -> RequestRouter:
    """Retrieve RequestRouter from app state.

    Initialized during lifespan startup.
    """
    return cast(RequestRouter, request.app.state.router)


_get_router = Depends(get_request_router)


async def get_current_session(
    request: Request,
    request_router: RequestRouter = _get_router,
) -> Session | None:
    """Session behind the login cookie, or None."""
    token = request.cookies.get(settings.session_cookie_name)
    return await request_router.lookup_session(token)


_get_current_session = Depends(get_current_session)


async def require_session(
    session: Session | None = _get_current_session,
) -> Session:
    """Authenticated session for API routes.

    Raises:
        HTTPException 401: no cookie, unknown or expired token, or the
            session backend is down.
    """
    if session is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return session
