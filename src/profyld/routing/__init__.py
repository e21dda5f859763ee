"""Host classification, tenant resolution and access decisions."""

from profyld.routing.hosts import RoutingConfig, classify
from profyld.routing.pipeline import RequestRouter, is_excluded_path
from profyld.routing.tenants import TenantRecord, TenantResolver

__all__ = [
    "RequestRouter",
    "RoutingConfig",
    "TenantRecord",
    "TenantResolver",
    "classify",
    "is_excluded_path",
]
