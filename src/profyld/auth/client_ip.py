"""Client identity resolution from proxy headers.

The resolved value is attacker-controlled: any client can send its own
``X-Forwarded-For``. It is a best-effort identity for throttling only and
must never be used as an authorization credential.
"""

from __future__ import annotations

from collections.abc import Mapping

UNKNOWN_CLIENT = "unknown"

FORWARDED_FOR_HEADER = "x-forwarded-for"
REAL_IP_HEADER = "x-real-ip"


def _header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is not None:
        return value
    # Plain dicts are case-sensitive; Starlette Headers already are not.
    for key, candidate in headers.items():
        if key.lower() == name:
            return candidate
    return None


def resolve_client_ip(headers: Mapping[str, str]) -> str:
    """Return a stable client identifier for rate limiting.

    Precedence: first comma-separated ``X-Forwarded-For`` value, then
    ``X-Real-IP``, then ``"unknown"``.
    """
    forwarded = _header(headers, FORWARDED_FOR_HEADER)
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = _header(headers, REAL_IP_HEADER)
    if real_ip and real_ip.strip():
        return real_ip.strip()

    return UNKNOWN_CLIENT
