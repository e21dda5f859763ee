"""Shared pytest fixtures."""

import pytest

from profyld.routing.hosts import RoutingConfig
from tests.fakes import RESERVED, ROOT_DOMAIN, FakeSessionProvider, FakeTenantDirectory


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-db",
        action="store_true",
        default=False,
        help="Run tests that require a live PostgreSQL instance",
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    if config.getoption("--run-db"):
        return
    skip_db = pytest.mark.skip(reason="needs --run-db flag")
    for item in items:
        if "requires_db" in item.keywords:
            item.add_marker(skip_db)


@pytest.fixture()
def routing_config() -> RoutingConfig:
    return RoutingConfig(root_domain=ROOT_DOMAIN, reserved_subdomains=RESERVED)


@pytest.fixture()
def directory() -> FakeTenantDirectory:
    return FakeTenantDirectory()


@pytest.fixture()
def session_provider() -> FakeSessionProvider:
    return FakeSessionProvider()
