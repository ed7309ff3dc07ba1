"""
Request metadata carried into audit log entries.

Architecture position:
    Kernel > Domain -- pure value object, zero I/O.

Every field is optional; a mutation triggered outside an HTTP request simply
records None for all of them.
"""

from collections.abc import Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class RequestMetadata:
    method: str | None = None
    path: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None

    @classmethod
    def from_headers(
        cls,
        method: str | None,
        path: str | None,
        headers: Mapping[str, str] | None,
    ) -> "RequestMetadata":
        """
        Build metadata from raw request headers.

        The client IP is the first X-Forwarded-For entry, falling back to
        X-Real-IP.  Header names are matched case-insensitively.
        """
        lowered = {k.lower(): v for k, v in (headers or {}).items()}

        ip_address = None
        forwarded = lowered.get("x-forwarded-for")
        if forwarded:
            ip_address = forwarded.split(",")[0].strip() or None
        if ip_address is None:
            ip_address = lowered.get("x-real-ip") or None

        return cls(
            method=method,
            path=path,
            ip_address=ip_address,
            user_agent=lowered.get("user-agent") or None,
        )


EMPTY_REQUEST_METADATA = RequestMetadata()
