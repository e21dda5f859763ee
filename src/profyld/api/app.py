"""FastAPI application with lifespan management."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager, suppress
from datetime import UTC, datetime

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from profyld.api.middleware import RequestLoggingMiddleware, TenantRoutingMiddleware
from profyld.api.routes.analytics import router as analytics_router
from profyld.api.routes.domains import router as domains_router
from profyld.api.routes.pages import router as pages_router
from profyld.api.routes.username import router as username_router
from profyld.auth.limits import RateLimitExceededError
from profyld.auth.rate_limiter import FixedWindowRateLimiter, RateLimitBackend
from profyld.auth.sessions import SqlSessionProvider
from profyld.config import Settings, settings
from profyld.logging_config import configure_logging
from profyld.routing.hosts import RoutingConfig
from profyld.routing.pipeline import RequestRouter
from profyld.routing.tenants import SqlTenantDirectory, TenantResolver
from profyld.storage.database import async_session, engine

logger = structlog.get_logger()

HEALTH_CHECK_TIMEOUT = 5.0


async def _sweep_loop(limiter: RateLimitBackend, interval: float) -> None:
    """Periodic removal of expired rate limit windows."""
    while True:
        await asyncio.sleep(interval)
        try:
            removed = await asyncio.to_thread(limiter.sweep)
            if removed:
                logger.debug("rate_limiter_sweep", keys_removed=removed)
        except Exception:
            logger.exception("rate_limiter_sweep_error")


def build_router(app_settings: Settings) -> RequestRouter:
    """Wire the routing pipeline to the database-backed collaborators.

    Raises:
        RoutingConfigError: invalid root domain; the app must not start.
    """
    return RequestRouter(
        config=RoutingConfig.from_settings(app_settings),
        resolver=TenantResolver(
            SqlTenantDirectory(async_session),
            timeout=app_settings.lookup_timeout_seconds,
        ),
        session_provider=SqlSessionProvider(async_session),
        lookup_timeout=app_settings.lookup_timeout_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application startup and shutdown.

    Startup:
        - Configure logging.
        - Start rate limiter sweep task.
    Shutdown:
        - Cancel sweep task.
        - Dispose database engine (close connection pool).
    """
    configure_logging(
        environment=str(settings.environment),
        log_level=settings.log_level,
    )
    sweep_task = asyncio.create_task(
        _sweep_loop(app.state.rate_limiter, settings.rate_limit_sweep_seconds)
    )
    logger.info(
        "app_started",
        environment=str(settings.environment),
        root_domain=settings.root_domain,
    )
    yield

    sweep_task.cancel()
    with suppress(asyncio.CancelledError):
        await sweep_task
    await engine.dispose()
    logger.info("app_stopped")


app = FastAPI(
    title="Profyld",
    description="Portfolio hosting on tenant subdomains and custom domains",
    version="0.1.0",
    lifespan=lifespan,
    debug=settings.is_dev,
)

# Owned here, not as module globals, so tests can swap them per app.
app.state.rate_limiter = FixedWindowRateLimiter()
app.state.router = build_router(settings)

app.add_middleware(
    TenantRoutingMiddleware,
    excluded_prefixes=settings.excluded_path_prefixes,
    session_cookie=settings.session_cookie_name,
)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allowed_methods,
    allow_headers=settings.cors_allowed_headers,
)


@app.get("/health")
async def health() -> JSONResponse:
    """Deep health check: verifies DB connectivity."""
    checks: dict[str, str] = {}
    overall = "ok"

    try:
        async with async_session() as session:
            await asyncio.wait_for(
                session.execute(text("SELECT 1")),
                timeout=HEALTH_CHECK_TIMEOUT,
            )
        checks["db"] = "ok"
    except (TimeoutError, OperationalError, SQLAlchemyError) as e:
        logger.warning("health_check_db_error", error=type(e).__name__)
        checks["db"] = f"error: {type(e).__name__}"
        overall = "degraded"
    except Exception as e:
        logger.error("health_check_db_unexpected", error=str(e), exc_info=True)
        checks["db"] = f"error: {type(e).__name__}"
        overall = "degraded"

    status_code = 200 if overall == "ok" else 503
    return JSONResponse(
        status_code=status_code,
        content={
            "status": overall,
            "checks": checks,
            "timestamp": datetime.now(UTC).isoformat(timespec="seconds"),
        },
    )


@app.exception_handler(RateLimitExceededError)
async def rate_limit_exceeded_handler(
    request: Request,
    exc: RateLimitExceededError,
) -> JSONResponse:
    """Rate limit denials use an ``{"error": ...}`` body."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Catch-all handler for unhandled exceptions."""
    logger.error("unhandled_exception", exc_info=exc, path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


app.include_router(username_router, prefix="/api")
app.include_router(analytics_router, prefix="/api")
app.include_router(domains_router, prefix="/api")
app.include_router(pages_router)
