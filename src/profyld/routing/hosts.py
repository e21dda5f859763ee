"""Host header classification.

Maps a raw ``Host`` header to the kind of site being requested. Pure:
no I/O, same input always gives the same output.

Examples (root domain ``profyld.com``)::

    "profyld.com"            -> RootDomain()
    "alice.profyld.com"      -> TenantSubdomain("alice")
    "api.profyld.com"        -> ReservedSubdomain("api")
    "a.b.profyld.com"        -> AmbiguousSubdomain("a.b.profyld.com")
    "alice.localhost:3000"   -> TenantSubdomain("alice")
    "feature-x.vercel.app"   -> PreviewDomain("feature-x.vercel.app")
    "janedoe.com"            -> CustomDomain("janedoe.com")
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from profyld.config import Settings
from profyld.errors import RoutingConfigError

LOCAL_HOSTNAMES: frozenset[str] = frozenset({"localhost", "127.0.0.1", "0.0.0.0"})
_HOSTNAME_CHARS = re.compile(r"^[a-z0-9_.-]+$")


@dataclass(frozen=True)
class RootDomain:
    pass


@dataclass(frozen=True)
class Local:
    """Local development host with no usable subdomain, or unparseable input."""


@dataclass(frozen=True)
class PreviewDomain:
    """Managed-hosting preview URL; handled like the root domain."""

    hostname: str


@dataclass(frozen=True)
class ReservedSubdomain:
    name: str


@dataclass(frozen=True)
class TenantSubdomain:
    name: str


@dataclass(frozen=True)
class AmbiguousSubdomain:
    """More than one label in front of the root domain.

    Nested tenants are not supported, so this never resolves to a tenant.
    """

    hostname: str


@dataclass(frozen=True)
class CustomDomain:
    hostname: str


HostClassification = (
    RootDomain
    | Local
    | PreviewDomain
    | ReservedSubdomain
    | TenantSubdomain
    | AmbiguousSubdomain
    | CustomDomain
)

# Hosts that serve the main application (auth gate applies).
ROOT_LIKE: tuple[type, ...] = (
    RootDomain,
    Local,
    PreviewDomain,
    ReservedSubdomain,
    AmbiguousSubdomain,
)


def _normalize_suffixes(suffixes: Iterable[str]) -> tuple[str, ...]:
    normalized = []
    for suffix in suffixes:
        suffix = suffix.strip().lower()
        if not suffix:
            continue
        normalized.append(suffix if suffix.startswith(".") else f".{suffix}")
    return tuple(normalized)


@dataclass(frozen=True)
class RoutingConfig:
    """Static routing table: root domain, reserved names, dev/preview suffixes."""

    root_domain: str
    reserved_subdomains: frozenset[str] = frozenset()
    local_dev_suffixes: tuple[str, ...] = (".localhost", ".lvh.me")
    preview_suffixes: tuple[str, ...] = (".vercel.app",)
    authenticated_prefix: str = "/dashboard"
    login_path: str = "/login"
    signup_path: str = "/signup"

    def __post_init__(self) -> None:
        root = self.root_domain.strip().lower().rstrip(".")
        if not root or "." not in root or any(c in root for c in ":/ @"):
            raise RoutingConfigError(f"invalid root domain: {self.root_domain!r}")
        object.__setattr__(self, "root_domain", root)
        object.__setattr__(
            self,
            "reserved_subdomains",
            frozenset(name.strip().lower() for name in self.reserved_subdomains),
        )
        object.__setattr__(
            self, "local_dev_suffixes", _normalize_suffixes(self.local_dev_suffixes)
        )
        object.__setattr__(
            self, "preview_suffixes", _normalize_suffixes(self.preview_suffixes)
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> RoutingConfig:
        """Create from Settings fields.

        Raises:
            RoutingConfigError: root domain is missing or malformed.
        """
        return cls(
            root_domain=settings.root_domain,
            reserved_subdomains=frozenset(settings.reserved_subdomains),
            local_dev_suffixes=tuple(settings.local_dev_suffixes),
            preview_suffixes=tuple(settings.preview_suffixes),
            authenticated_prefix=settings.authenticated_prefix,
            login_path=settings.login_path,
            signup_path=settings.signup_path,
        )

    def is_reserved(self, name: str) -> bool:
        return name.lower() in self.reserved_subdomains


def split_host(host: str) -> str:
    """Return the lower-cased hostname without port, brackets or trailing dot.

    ``"[::1]:3000"`` becomes ``"::1"``; an unbracketed IPv6 literal is
    returned unchanged since its colons are not a port separator.
    """
    host = host.strip().lower()
    if host.startswith("["):
        end = host.find("]")
        return host[1:end] if end != -1 else host[1:]
    if host.count(":") == 1:
        host = host.split(":", 1)[0]
    return host.rstrip(".")


def _subdomain_or_reserved(name: str, config: RoutingConfig) -> HostClassification:
    if config.is_reserved(name):
        return ReservedSubdomain(name)
    return TenantSubdomain(name)


def classify(host: str | None, config: RoutingConfig) -> HostClassification:
    """Classify a raw ``Host`` header value.

    Never raises: empty or garbage input is ``Local()``, IPv6 literals are
    ``CustomDomain`` (no tenant can bind them, so they end up not found).
    """
    hostname = split_host(host or "")
    if not hostname or hostname in LOCAL_HOSTNAMES:
        return Local()

    if ":" in hostname:
        return CustomDomain(hostname)
    if not _HOSTNAME_CHARS.match(hostname):
        return Local()

    for suffix in config.local_dev_suffixes:
        if hostname.endswith(suffix):
            labels = hostname.split(".")
            if len(labels) >= 2 and labels[0]:
                return _subdomain_or_reserved(labels[0], config)
            return Local()

    root = config.root_domain
    if hostname == root:
        return RootDomain()

    if hostname.endswith(f".{root}"):
        prefix = hostname[: -len(root) - 1]
        if not prefix:
            return Local()
        if "." in prefix:
            return AmbiguousSubdomain(hostname)
        return _subdomain_or_reserved(prefix, config)

    for suffix in config.preview_suffixes:
        if hostname.endswith(suffix):
            return PreviewDomain(hostname)

    return CustomDomain(hostname)


def is_root_like(classification: HostClassification) -> bool:
    """True when the host serves the main application."""
    return isinstance(classification, ROOT_LIKE)
