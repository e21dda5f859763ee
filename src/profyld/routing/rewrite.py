"""Internal paths that routing decisions point at."""

from urllib.parse import urlencode

TENANT_PAGE_PREFIX = "/u"
CUSTOM_DOMAIN_PAGE_PREFIX = "/domain"
LOCKED_PAGE_PATH = "/locked"


def _suffix(request_path: str) -> str:
    return "" if request_path in ("", "/") else request_path


def tenant_path(name: str, request_path: str) -> str:
    """``/u/<name>`` plus the request path, except for the site root."""
    return f"{TENANT_PAGE_PREFIX}/{name}{_suffix(request_path)}"


def custom_domain_path(hostname: str, request_path: str) -> str:
    """``/domain/<hostname>`` plus the request path, except for the site root."""
    return f"{CUSTOM_DOMAIN_PAGE_PREFIX}/{hostname}{_suffix(request_path)}"


def locked_query(subdomain: str) -> str:
    """Query string for the locked page; shows the subdomain for context."""
    return urlencode({"user": subdomain})


def not_found_path(subdomain: str) -> str:
    """The tenant page itself renders 404 for unknown names."""
    return f"{TENANT_PAGE_PREFIX}/{subdomain}"
