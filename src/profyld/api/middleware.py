"""HTTP middleware: request logging and host-based tenant routing."""

import time
from collections.abc import Iterable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response
from starlette.types import ASGIApp

from profyld.routing.decisions import (
    AccessDecision,
    Allow,
    NotFound,
    PassThrough,
    RedirectToDashboard,
    RedirectToLocked,
    RedirectToLogin,
    RewriteToCustomDomainPath,
    RewriteToPath,
)
from profyld.routing.pipeline import RequestRouter, is_excluded_path
from profyld.routing.rewrite import LOCKED_PAGE_PATH, locked_query, not_found_path

logger = structlog.get_logger()


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log HTTP requests with method, path, status code, and latency."""

    SKIP_PATHS: frozenset[str] = frozenset(
        {"/health", "/docs", "/openapi.json", "/redoc"}
    )

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Process request and log timing information."""
        if request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        start = time.perf_counter()
        response = await call_next(request)
        latency_ms = int((time.perf_counter() - start) * 1000)

        logger.info(
            "http_request",
            method=request.method,
            host=request.headers.get("host"),
            path=request.url.path,
            status_code=response.status_code,
            latency_ms=latency_ms,
        )
        return response


def _rewrite(request: Request, path: str, query: str | None = None) -> None:
    """Dispatch to ``path`` internally; the browser URL is unchanged."""
    request.scope["path"] = path
    request.scope["raw_path"] = path.encode()
    if query is not None:
        request.scope["query_string"] = query.encode()


class TenantRoutingMiddleware(BaseHTTPMiddleware):
    """Apply the routing decision for every non-excluded request.

    The router is read from ``app.state.router`` (set in lifespan) unless
    one is passed explicitly. Routing failures never become a 500: the
    request passes through to the main application.
    """

    def __init__(
        self,
        app: ASGIApp,
        excluded_prefixes: Iterable[str] = (),
        session_cookie: str = "profyld_session",
        router: RequestRouter | None = None,
    ) -> None:
        super().__init__(app)
        self._excluded = tuple(excluded_prefixes)
        self._session_cookie = session_cookie
        self._router = router

    def _get_router(self, request: Request) -> RequestRouter | None:
        if self._router is not None:
            return self._router
        return getattr(request.app.state, "router", None)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        router = self._get_router(request)
        if router is None or is_excluded_path(path, self._excluded):
            return await call_next(request)

        try:
            decision = await router.route(
                request.headers.get("host"),
                path,
                request.cookies.get(self._session_cookie),
            )
        except Exception:
            logger.exception("routing_error", path=path)
            return await call_next(request)

        return await self._apply(decision, request, call_next)

    async def _apply(
        self,
        decision: AccessDecision,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        config = self._get_router(request).config  # type: ignore[union-attr]

        if isinstance(decision, RedirectToLogin):
            return RedirectResponse(
                request.url.replace(path=config.login_path, query=""),
                status_code=307,
            )
        if isinstance(decision, RedirectToDashboard):
            return RedirectResponse(
                request.url.replace(path=config.authenticated_prefix, query=""),
                status_code=307,
            )

        if isinstance(decision, RedirectToLocked):
            # Rewrite, not redirect: the visitor keeps seeing the subdomain URL.
            _rewrite(request, LOCKED_PAGE_PATH, locked_query(decision.subdomain))
        elif isinstance(decision, RewriteToPath | RewriteToCustomDomainPath):
            _rewrite(request, decision.path)
        elif isinstance(decision, NotFound):
            _rewrite(request, not_found_path(decision.subdomain))
        elif not isinstance(decision, PassThrough | Allow):
            raise TypeError(f"unhandled routing decision: {decision!r}")
        return await call_next(request)
