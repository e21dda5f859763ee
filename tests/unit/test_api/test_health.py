"""Tests for FastAPI bootstrap: health, error handling, lifespan."""

import asyncio
from collections.abc import AsyncGenerator, Generator
from contextlib import contextmanager, suppress
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import Request
from httpx import ASGITransport, AsyncClient

from profyld.api.app import _sweep_loop, app, build_router
from profyld.auth.rate_limiter import FixedWindowRateLimiter
from profyld.config import Settings
from profyld.errors import RoutingConfigError


@contextmanager
def mock_db(*, db_error: Exception | None = None) -> Generator[AsyncMock]:
    """Mock the DB session factory used by the health check.

    Args:
        db_error: If set, async_session __aenter__ raises this exception.
    """
    mock_db_session = AsyncMock()
    mock_db_session.execute = AsyncMock()

    with patch("profyld.api.app.async_session") as mock_session_factory:
        if db_error:
            mock_session_factory.return_value.__aenter__ = AsyncMock(
                side_effect=db_error
            )
        else:
            mock_session_factory.return_value.__aenter__ = AsyncMock(
                return_value=mock_db_session
            )
        mock_session_factory.return_value.__aexit__ = AsyncMock(return_value=False)
        yield mock_db_session


@pytest.fixture()
async def client() -> AsyncGenerator[AsyncClient]:
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://profyld.com",
    ) as ac:
        yield ac


class TestHealth:
    async def test_health_ok(self, client: AsyncClient) -> None:
        """GET /health returns 200 when DB is reachable."""
        with mock_db():
            response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["checks"]["db"] == "ok"
        assert "timestamp" in data

    async def test_health_db_down(self, client: AsyncClient) -> None:
        """GET /health returns 503 when DB is unreachable."""
        with mock_db(db_error=TimeoutError("db timeout")):
            response = await client.get("/health")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "degraded"
        assert data["checks"]["db"] == "error: TimeoutError"

    async def test_health_skips_tenant_routing(self) -> None:
        """Health is reachable on any host, including tenant subdomains."""
        with mock_db():
            async with AsyncClient(
                transport=ASGITransport(app=app),
                base_url="http://alice.profyld.com",
            ) as ac:
                response = await ac.get("/health")

        assert response.status_code == 200

    async def test_health_method_not_allowed(self, client: AsyncClient) -> None:
        """POST /health returns 405."""
        response = await client.post("/health")
        assert response.status_code == 405


class TestErrorHandling:
    async def test_unhandled_exception_handler_returns_500(self) -> None:
        """Global exception handler returns 500 JSON response."""
        from profyld.api.app import unhandled_exception_handler

        mock_request = Request(
            scope={"type": "http", "method": "GET", "path": "/test", "headers": []}
        )
        response = await unhandled_exception_handler(mock_request, RuntimeError("boom"))
        assert response.status_code == 500
        assert response.body == b'{"detail":"Internal server error"}'


class TestBuildRouter:
    def test_uses_settings(self) -> None:
        router = build_router(
            Settings(root_domain="Portfolio.Example.", _env_file=None)  # type: ignore[call-arg]
        )
        assert router.config.root_domain == "portfolio.example"

    def test_invalid_root_domain_rejected(self) -> None:
        """A bad root domain stops startup instead of misrouting."""
        settings = Settings.model_construct(root_domain="localhost")
        with pytest.raises(RoutingConfigError):
            build_router(settings)


class TestLifespan:
    async def test_lifespan_disposes_engine(self) -> None:
        """Lifespan disposes engine on shutdown."""
        with patch("profyld.api.app.engine") as mock_engine:
            mock_engine.dispose = AsyncMock()

            from profyld.api.app import lifespan

            async with lifespan(app):
                pass
            mock_engine.dispose.assert_awaited_once()

    async def test_lifespan_finishes_sweep_task(self) -> None:
        """The sweep task is cancelled and awaited before shutdown completes."""
        created: list[asyncio.Task[None]] = []
        create_task = asyncio.create_task

        def _track(coro):  # type: ignore[no-untyped-def]
            task = create_task(coro)
            created.append(task)
            return task

        with (
            patch("profyld.api.app.engine") as mock_engine,
            patch("profyld.api.app.asyncio.create_task", side_effect=_track),
        ):
            mock_engine.dispose = AsyncMock()

            from profyld.api.app import lifespan

            async with lifespan(app):
                assert len(created) == 1
                assert not created[0].done()

        assert created[0].done()
        assert created[0].cancelled()

    async def test_sweep_loop_removes_expired(self) -> None:
        clock = [0.0]
        limiter = FixedWindowRateLimiter(clock=lambda: clock[0])
        limiter.check("ip", "default", limit=5, window_seconds=1)
        clock[0] = 2.0

        task = asyncio.create_task(_sweep_loop(limiter, 0.01))
        for _ in range(100):
            await asyncio.sleep(0.01)
            if len(limiter) == 0:
                break
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

        assert len(limiter) == 0
