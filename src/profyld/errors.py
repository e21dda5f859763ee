"""Domain-specific exceptions for profyld."""


class RoutingConfigError(Exception):
    """Static routing configuration is invalid; the router cannot start."""


class DirectoryLookupError(Exception):
    """Tenant directory backend failed (unreachable, query error)."""


class SessionLookupError(Exception):
    """Session backend failed while resolving a session token."""
