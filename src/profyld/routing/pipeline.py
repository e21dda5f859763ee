"""Request routing orchestrator.

Host Classifier -> Tenant Resolver -> Access Gate, with the Auth Gate for
main-application hosts. Each stage is a separate pure function or resolver;
this module only sequences them and decides which lookups are needed.
"""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from profyld.auth.sessions import Session, SessionProvider, safe_get_session
from profyld.routing.access import decide_access, is_auth_relevant
from profyld.routing.decisions import AccessDecision
from profyld.routing.hosts import (
    RoutingConfig,
    TenantSubdomain,
    classify,
    is_root_like,
)
from profyld.routing.tenants import TenantRecord, TenantResolver

logger = structlog.get_logger()


def is_excluded_path(path: str, prefixes: Iterable[str]) -> bool:
    """Static assets, framework internals and API routes skip routing.

    Any path whose last segment has an extension (``/favicon.ico``) is
    treated as a file.
    """
    for prefix in prefixes:
        if path == prefix or path.startswith(prefix.rstrip("/") + "/"):
            return True
    last_segment = path.rsplit("/", 1)[-1]
    return "." in last_segment


class RequestRouter:
    """Decide where a page request goes. Stateless between requests."""

    def __init__(
        self,
        config: RoutingConfig,
        resolver: TenantResolver,
        session_provider: SessionProvider,
        lookup_timeout: float | None = None,
    ) -> None:
        self._config = config
        self._resolver = resolver
        self._session_provider = session_provider
        self._lookup_timeout = lookup_timeout

    @property
    def config(self) -> RoutingConfig:
        return self._config

    @property
    def resolver(self) -> TenantResolver:
        return self._resolver

    async def lookup_session(self, token: str | None) -> Session | None:
        """Session for a cookie token; None when absent, unknown or on failure."""
        if not token:
            return None
        return await safe_get_session(
            self._session_provider, token, timeout=self._lookup_timeout
        )

    async def route(
        self, host: str | None, path: str, session_token: str | None = None
    ) -> AccessDecision:
        """Route one request.

        Args:
            host: Raw ``Host`` header (may include a port).
            path: Request path, starting with ``/``.
            session_token: Session cookie value, if any.
        """
        classification = classify(host, self._config)
        tenant: TenantRecord | None = None
        session: Session | None = None

        if isinstance(classification, TenantSubdomain):
            tenant = await self._resolver.resolve_subdomain(classification.name)
            # Owner check only matters for a tenant that exists.
            if tenant is not None:
                session = await self.lookup_session(session_token)
        elif is_root_like(classification) and is_auth_relevant(path, self._config):
            session = await self.lookup_session(session_token)

        decision = decide_access(classification, tenant, session, path, self._config)
        logger.debug(
            "request_routed",
            host=host,
            path=path,
            classification=type(classification).__name__,
            decision=type(decision).__name__,
        )
        return decision
