"""Tests for POST /api/analytics/track."""

import uuid
from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import IntegrityError

from profyld.api.app import app
from profyld.api.deps import get_request_router
from profyld.api.routes.analytics import referrer_domain, visitor_hash
from profyld.storage.database import get_session
from profyld.storage.repositories import AnalyticsRepository
from tests.fakes import FakeSessionProvider, FakeTenantDirectory, make_router, make_tenant

OWNER_ID = uuid.uuid4()


@pytest.fixture()
def tenants() -> FakeTenantDirectory:
    directory = FakeTenantDirectory()
    directory.tenants["alice"] = make_tenant(
        "pro", account_id=OWNER_ID, custom_domain="alice.dev", verified=True
    )
    directory.tenants["bob"] = make_tenant(
        "pro", custom_domain="bob.dev", verified=False
    )
    return directory


@pytest.fixture()
async def client(tenants: FakeTenantDirectory) -> AsyncGenerator[AsyncClient]:
    mock_session = AsyncMock()
    mock_session.add = MagicMock()
    request_router = make_router(tenants, FakeSessionProvider())
    app.dependency_overrides[get_session] = lambda: mock_session
    app.dependency_overrides[get_request_router] = lambda: request_router
    app.state.rate_limiter.reset()
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://example.com",
    ) as ac:
        yield ac
    app.state.rate_limiter.reset()
    app.dependency_overrides.clear()


def _page_view(**overrides: object) -> dict[str, object]:
    body: dict[str, object] = {
        "type": "page_view",
        "userId": str(OWNER_ID),
        "path": "/projects",
        "referrer": "https://www.linkedin.com/feed",
    }
    body.update(overrides)
    return body


class TestHelpers:
    def test_visitor_hash_stable(self) -> None:
        first = visitor_hash("1.2.3.4", "Mozilla/5.0")
        assert first == visitor_hash("1.2.3.4", "Mozilla/5.0")
        assert len(first) == 16
        assert first != visitor_hash("1.2.3.5", "Mozilla/5.0")

    @pytest.mark.parametrize(
        ("referrer", "expected"),
        [
            (None, "direct"),
            ("", "direct"),
            ("https://www.google.com/search?q=x", "google.com"),
            ("https://news.ycombinator.com/item", "news.ycombinator.com"),
            ("not a url", "unknown"),
        ],
    )
    def test_referrer_domain(self, referrer: str | None, expected: str) -> None:
        assert referrer_domain(referrer) == expected


class TestTrack:
    async def test_page_view(self, client: AsyncClient) -> None:
        with patch.object(AnalyticsRepository, "add_page_view") as mock_add:
            response = await client.post(
                "/api/analytics/track",
                json=_page_view(),
                headers={"x-forwarded-for": "203.0.113.1", "user-agent": "UA"},
            )

        assert response.status_code == 200
        assert response.json() == {"success": True}
        kwargs = mock_add.call_args.kwargs
        assert kwargs["portfolio_user_id"] == OWNER_ID
        assert kwargs["page_path"] == "/projects"
        assert kwargs["referrer_domain"] == "linkedin.com"
        assert kwargs["visitor_hash"] == visitor_hash("203.0.113.1", "UA")

    async def test_page_view_default_path(self, client: AsyncClient) -> None:
        with patch.object(AnalyticsRepository, "add_page_view") as mock_add:
            await client.post("/api/analytics/track", json=_page_view(path=None))
        assert mock_add.call_args.kwargs["page_path"] == "/"

    async def test_event(self, client: AsyncClient) -> None:
        body = {
            "type": "event",
            "userId": str(OWNER_ID),
            "eventType": "contact_click",
            "eventData": {"button": "email"},
        }
        with patch.object(AnalyticsRepository, "add_event") as mock_add:
            response = await client.post("/api/analytics/track", json=body)

        assert response.status_code == 200
        assert mock_add.call_args.kwargs["event_type"] == "contact_click"
        assert mock_add.call_args.kwargs["event_data"] == {"button": "email"}

    async def test_event_without_type(self, client: AsyncClient) -> None:
        body = {"type": "event", "userId": str(OWNER_ID)}
        with patch.object(AnalyticsRepository, "add_event") as mock_add:
            response = await client.post("/api/analytics/track", json=body)
        assert response.status_code == 400
        mock_add.assert_not_called()

    @pytest.mark.parametrize(
        "body",
        [{"type": "click", "userId": str(uuid.uuid4())}, {"type": "page_view"}],
    )
    async def test_invalid_body(self, client: AsyncClient, body: dict) -> None:
        response = await client.post("/api/analytics/track", json=body)
        assert response.status_code == 422

    async def test_storage_failure(self, client: AsyncClient) -> None:
        with patch.object(
            AnalyticsRepository,
            "add_page_view",
            side_effect=IntegrityError("INSERT", {}, Exception("fk")),
        ):
            response = await client.post("/api/analytics/track", json=_page_view())
        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to track"


class TestOrigin:
    @pytest.mark.parametrize(
        "origin",
        [
            "https://example.com",
            "https://alice.example.com",
            "http://localhost:3000",
            "https://alice.dev",
        ],
    )
    async def test_allowed(self, client: AsyncClient, origin: str) -> None:
        with patch.object(AnalyticsRepository, "add_page_view"):
            response = await client.post(
                "/api/analytics/track", json=_page_view(), headers={"origin": origin}
            )
        assert response.status_code == 200

    @pytest.mark.parametrize("origin", ["https://evil.io", "https://bob.dev", "null"])
    async def test_forbidden(self, client: AsyncClient, origin: str) -> None:
        """Unknown and unverified custom domains cannot post analytics."""
        with patch.object(AnalyticsRepository, "add_page_view") as mock_add:
            response = await client.post(
                "/api/analytics/track", json=_page_view(), headers={"origin": origin}
            )
        assert response.status_code == 403
        mock_add.assert_not_called()


class TestTrackRateLimit:
    async def test_101st_request_denied(self, client: AsyncClient) -> None:
        headers = {"x-forwarded-for": "203.0.113.77"}
        with patch.object(AnalyticsRepository, "add_page_view"):
            for _ in range(100):
                ok = await client.post(
                    "/api/analytics/track", json=_page_view(), headers=headers
                )
                assert ok.status_code == 200
            denied = await client.post(
                "/api/analytics/track", json=_page_view(), headers=headers
            )

        assert denied.status_code == 429
        assert denied.json() == {"error": "Rate limit exceeded"}
        assert denied.headers["x-ratelimit-remaining"] == "0"
