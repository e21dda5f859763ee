"""Tests for page endpoints, reached directly and through tenant routing."""

import uuid
from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from profyld.api.app import app
from profyld.auth.sessions import Session
from profyld.config import settings
from profyld.storage.database import get_session
from profyld.storage.orm import Profile
from profyld.storage.repositories import ProfileRepository
from tests.fakes import FakeSessionProvider, FakeTenantDirectory, make_router, make_tenant

COOKIE = settings.session_cookie_name


def _profile(username: str = "alice", **kwargs: object) -> Profile:
    return Profile(
        user_id=uuid.uuid4(),
        username=username,
        name="Alice Example",
        tagline="Builds things",
        **kwargs,
    )


@pytest.fixture()
async def client(
    directory: FakeTenantDirectory, session_provider: FakeSessionProvider
) -> AsyncGenerator[AsyncClient]:
    """App with routing backed by in-memory fakes on ``example.com``."""
    previous_router = app.state.router
    app.state.router = make_router(directory, session_provider)
    app.dependency_overrides[get_session] = lambda: AsyncMock()
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://example.com",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
    app.state.router = previous_router


class TestDirectPages:
    async def test_tenant_page(self, client: AsyncClient) -> None:
        with patch.object(ProfileRepository, "get_by_username", return_value=_profile()):
            response = await client.get("/u/alice/projects")
        assert response.status_code == 200
        assert response.json() == {
            "username": "alice",
            "name": "Alice Example",
            "tagline": "Builds things",
            "path": "/projects",
        }

    async def test_unknown_tenant_404(self, client: AsyncClient) -> None:
        with patch.object(ProfileRepository, "get_by_username", return_value=None):
            response = await client.get("/u/ghost")
        assert response.status_code == 404
        assert response.json()["detail"] == "Portfolio not found"

    async def test_custom_domain_verified_only(self, client: AsyncClient) -> None:
        with patch.object(
            ProfileRepository, "get_by_custom_domain", return_value=None
        ) as mock_get:
            response = await client.get("/domain/bob.dev")
        assert response.status_code == 404
        mock_get.assert_awaited_once_with("bob.dev", verified_only=True)

    async def test_locked_page(self, client: AsyncClient) -> None:
        response = await client.get("/locked", params={"user": "bob"})
        assert response.json() == {
            "locked": True,
            "user": "bob",
            "message": "@bob's portfolio is currently private.",
        }

    async def test_locked_page_without_user(self, client: AsyncClient) -> None:
        response = await client.get("/locked")
        assert response.json()["message"] == "This user's portfolio is currently private."


class TestRoutedPages:
    async def test_pro_subdomain_renders_portfolio(
        self, client: AsyncClient, directory: FakeTenantDirectory
    ) -> None:
        directory.tenants["alice"] = make_tenant("pro")
        with patch.object(
            ProfileRepository, "get_by_username", return_value=_profile()
        ) as mock_get:
            response = await client.get("/", headers={"host": "alice.example.com"})
        assert response.status_code == 200
        assert response.json()["path"] == "/"
        mock_get.assert_awaited_once_with("alice")

    async def test_free_subdomain_locked_for_visitor(
        self, client: AsyncClient, directory: FakeTenantDirectory
    ) -> None:
        directory.tenants["bob"] = make_tenant("free")
        response = await client.get("/", headers={"host": "bob.example.com"})
        assert response.status_code == 200
        assert response.json()["user"] == "bob"
        assert response.json()["locked"] is True

    async def test_free_subdomain_visible_to_owner(
        self,
        client: AsyncClient,
        directory: FakeTenantDirectory,
        session_provider: FakeSessionProvider,
    ) -> None:
        tenant = make_tenant("free")
        directory.tenants["bob"] = tenant
        session_provider.sessions["tok"] = Session(user_id=tenant.account_id)
        with patch.object(
            ProfileRepository, "get_by_username", return_value=_profile("bob")
        ):
            response = await client.get(
                "/", headers={"host": "bob.example.com", "cookie": f"{COOKIE}=tok"}
            )
        assert response.json()["username"] == "bob"

    async def test_unknown_subdomain_404(self, client: AsyncClient) -> None:
        with patch.object(ProfileRepository, "get_by_username", return_value=None):
            response = await client.get("/", headers={"host": "ghost.example.com"})
        assert response.status_code == 404

    async def test_unverified_custom_domain_404(self, client: AsyncClient) -> None:
        """Custom-domain traffic never falls through to the main app."""
        with patch.object(ProfileRepository, "get_by_custom_domain", return_value=None):
            response = await client.get("/", headers={"host": "bob.dev"})
        assert response.status_code == 404

    async def test_verified_custom_domain(self, client: AsyncClient) -> None:
        profile = _profile(custom_domain="alice.dev", custom_domain_verified=True)
        with patch.object(
            ProfileRepository, "get_by_custom_domain", return_value=profile
        ) as mock_get:
            response = await client.get("/about", headers={"host": "alice.dev"})
        assert response.status_code == 200
        assert response.json()["path"] == "/about"
        mock_get.assert_awaited_once_with("alice.dev", verified_only=True)

    async def test_dashboard_requires_login(self, client: AsyncClient) -> None:
        response = await client.get("/dashboard/theme")
        assert response.status_code == 307
        assert response.headers["location"] == "http://example.com/login"

    async def test_dashboard_with_session(
        self, client: AsyncClient, session_provider: FakeSessionProvider
    ) -> None:
        session_provider.sessions["tok"] = Session(user_id=uuid.uuid4())
        response = await client.get(
            "/dashboard/theme", headers={"cookie": f"{COOKIE}=tok"}
        )
        assert response.json() == {"page": "dashboard", "section": "theme"}

    async def test_reserved_subdomain_is_main_app(self, client: AsyncClient) -> None:
        response = await client.get("/", headers={"host": "www.example.com"})
        assert response.json() == {"page": "home"}
