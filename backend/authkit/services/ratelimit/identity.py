"""Client identity derivation for admission control."""

from __future__ import annotations

from collections.abc import Mapping

FORWARDED_FOR_HEADER = "X-Forwarded-For"
UNKNOWN_CLIENT = "unknown"


def client_identity(headers: Mapping[str, str], remote_addr: str | None) -> str:
    """
    Return the first ``X-Forwarded-For`` entry, else the direct peer address.

    .. warning::
       Clients can set ``X-Forwarded-For`` themselves. The value is only
       trustworthy behind a reverse proxy that overwrites the header.

    :param headers: Request headers (case-insensitive mapping in Flask).
    :param remote_addr: Address of the direct connection.
    :returns: Identity string used as part of the limiter key.
    """
    forwarded = headers.get(FORWARDED_FOR_HEADER)
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return remote_addr or UNKNOWN_CLIENT
