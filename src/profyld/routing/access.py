"""Access Gate and Auth Gate: pure decision functions."""

from __future__ import annotations

from profyld.auth.sessions import Session
from profyld.routing.decisions import (
    AccessDecision,
    NotFound,
    PassThrough,
    RedirectToDashboard,
    RedirectToLocked,
    RedirectToLogin,
    RewriteToCustomDomainPath,
    RewriteToPath,
)
from profyld.routing.hosts import (
    CustomDomain,
    HostClassification,
    RoutingConfig,
    TenantSubdomain,
    is_root_like,
)
from profyld.routing.rewrite import custom_domain_path, tenant_path
from profyld.routing.tenants import TenantRecord


def _under(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(f"{prefix}/")


def is_auth_relevant(path: str, config: RoutingConfig) -> bool:
    """Only these paths need the session on the main application host."""
    return _under(path, config.authenticated_prefix) or _under(path, config.login_path)


def decide_auth(
    path: str, session: Session | None, config: RoutingConfig
) -> AccessDecision:
    """Auth Gate for the main application host.

    The signup page is not redirected even with a session: right after
    account creation the same page still shows the theme selection step.
    """
    if _under(path, config.authenticated_prefix) and session is None:
        return RedirectToLogin()
    if _under(path, config.login_path) and session is not None:
        return RedirectToDashboard()
    return PassThrough()


def is_owner(session: Session | None, tenant: TenantRecord) -> bool:
    return session is not None and session.user_id == tenant.account_id


def decide_tenant(
    name: str, tenant: TenantRecord | None, session: Session | None, path: str
) -> AccessDecision:
    """Plan gate for a tenant subdomain.

    Owners always see their own page; everyone else gets the locked page
    for free-tier tenants.
    """
    if tenant is None:
        return NotFound(name)
    if not is_owner(session, tenant) and tenant.is_free_tier:
        return RedirectToLocked(name)
    return RewriteToPath(tenant_path(name, path))


def decide_access(
    classification: HostClassification,
    tenant: TenantRecord | None,
    session: Session | None,
    path: str,
    config: RoutingConfig,
) -> AccessDecision:
    """Map a classified request to its routing decision.

    Custom domains are always rewritten; whether the domain is verified is
    checked by the custom-domain page so an unverified domain renders
    "not found" rather than the main app.
    """
    if is_root_like(classification):
        return decide_auth(path, session, config)
    if isinstance(classification, TenantSubdomain):
        return decide_tenant(classification.name, tenant, session, path)
    if isinstance(classification, CustomDomain):
        hostname = classification.hostname
        return RewriteToCustomDomainPath(hostname, custom_domain_path(hostname, path))
    raise TypeError(f"unhandled host classification: {classification!r}")
