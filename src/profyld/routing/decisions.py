"""Routing outcomes. Exactly one is produced per request and it is terminal."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Allow:
    pass


@dataclass(frozen=True)
class PassThrough:
    pass


@dataclass(frozen=True)
class NotFound:
    """Tenant subdomain with no tenant; rendered by the not-found page."""

    subdomain: str


@dataclass(frozen=True)
class RedirectToLocked:
    subdomain: str


@dataclass(frozen=True)
class RewriteToPath:
    path: str


@dataclass(frozen=True)
class RewriteToCustomDomainPath:
    hostname: str
    path: str


@dataclass(frozen=True)
class RedirectToLogin:
    pass


@dataclass(frozen=True)
class RedirectToDashboard:
    pass


AccessDecision = (
    Allow
    | PassThrough
    | NotFound
    | RedirectToLocked
    | RewriteToPath
    | RewriteToCustomDomainPath
    | RedirectToLogin
    | RedirectToDashboard
)
