"""Custom-domain ownership challenge over DNS TXT records.

The owner publishes ``profyld-verify=<token>`` as a TXT record on
``_profyld.<domain>``; a domain is bound to the profile only once that
record is seen.
"""

from __future__ import annotations

import re
import secrets

import dns.asyncresolver
import structlog

from profyld.routing.hosts import CustomDomain, RoutingConfig, classify, split_host

logger = structlog.get_logger()

RECORD_PREFIX = "profyld-verify="
DOMAIN_MAX_LENGTH = 253
_DOMAIN_RE = re.compile(
    r"^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?(\.[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?)+$"
)


def new_verification_token() -> str:
    """32 hex characters, stored on the profile until replaced."""
    return secrets.token_hex(16)


def expected_record(token: str) -> str:
    return f"{RECORD_PREFIX}{token}"


def challenge_name(domain: str, label: str = "_profyld") -> str:
    return f"{label}.{domain}"


def normalize_custom_domain(raw: str) -> str:
    """Lower-case and drop any port and trailing dot."""
    return split_host(raw)


def custom_domain_error(hostname: str, config: RoutingConfig) -> str | None:
    """Return an error message, or None when ``hostname`` can be bound.

    Platform hosts (root, subdomains, local and preview hosts) are refused
    since the router would never treat them as a custom domain.
    """
    if not hostname:
        return "Domain is required"
    if len(hostname) > DOMAIN_MAX_LENGTH or not _DOMAIN_RE.match(hostname):
        return "Invalid domain"
    if not isinstance(classify(hostname, config), CustomDomain):
        return "This domain cannot be used as a custom domain"
    return None


async def lookup_txt(name: str, *, lifetime: float) -> list[str]:
    """Resolve TXT records for ``name``, joining each record's strings.

    Raises:
        dns.exception.DNSException: NXDOMAIN, no answer, timeout or no
            reachable nameserver.
    """
    answer = await dns.asyncresolver.resolve(name, "TXT", lifetime=lifetime)
    records = [
        b"".join(rdata.strings).decode("utf-8", errors="replace") for rdata in answer
    ]
    logger.debug("dns_txt_resolved", name=name, count=len(records))
    return records


def record_matches(records: list[str], token: str) -> bool:
    expected = expected_record(token)
    return any(record.strip() == expected for record in records)
