"""Client identity resolution and the rate limit exemption policy.

The exemption policy is a pure predicate over a normalized client IP. It is
built once from configuration and, when a dynamic DNS hostname is
configured, extended once at startup with that host's addresses before the
server accepts traffic.
"""

from __future__ import annotations

import asyncio
import fnmatch
import ipaddress
import logging
import socket
from typing import Iterable

from fastapi import Request

logger = logging.getLogger(__name__)

IPNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network

_LOOPBACK_V6 = "::1"
_LOOPBACK_V4 = "127.0.0.1"


def normalize_ip(raw: str) -> str:
    """Normalize an address string for comparison and counting.

    ``::1`` becomes ``127.0.0.1`` and IPv4-mapped IPv6 addresses
    (``::ffff:10.0.0.1``) become their IPv4 form. Strings that are not IP
    addresses are returned stripped but otherwise untouched.
    """
    value = raw.strip()
    try:
        address = ipaddress.ip_address(value)
    except ValueError:
        return value

    if isinstance(address, ipaddress.IPv6Address):
        if str(address) == _LOOPBACK_V6:
            return _LOOPBACK_V4
        if address.ipv4_mapped is not None:
            return str(address.ipv4_mapped)
    return str(address)


def resolve_client_ip(request: Request, *, trust_forwarded_for: bool = True) -> str:
    """Return the normalized client IP for a request.

    Prefers the first X-Forwarded-For entry, falling back to the transport
    peer address.
    """
    if trust_forwarded_for:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            first = forwarded_for.split(",")[0].strip()
            if first:
                return normalize_ip(first)

    if request.client and request.client.host:
        return normalize_ip(request.client.host)
    return "unknown"


class ExemptionPolicy:
    """Immutable set of IP literals, CIDR ranges and wildcard patterns.

    Examples:
        >>> policy = ExemptionPolicy(["127.0.0.1", "192.168.222.0/24", "10.1.*.*"])
        >>> policy.is_exempt("192.168.222.17")
        True
        >>> policy.is_exempt("10.1.4.2")
        True
        >>> policy.is_exempt("8.8.8.8")
        False
    """

    def __init__(self, entries: Iterable[str] = ()) -> None:
        self._entries: tuple[str, ...] = tuple(dict.fromkeys(e.strip() for e in entries if e.strip()))
        networks: list[IPNetwork] = []
        wildcards: list[str] = []

        for entry in self._entries:
            if "*" in entry:
                if not _is_valid_wildcard(entry):
                    raise ValueError(f"Invalid exemption wildcard: {entry!r}")
                wildcards.append(entry)
                continue
            try:
                networks.append(ipaddress.ip_network(normalize_ip(entry), strict=False))
            except ValueError as exc:
                raise ValueError(f"Invalid exemption entry: {entry!r}") from exc

        self._networks = tuple(networks)
        self._wildcards = tuple(wildcards)

    @property
    def entries(self) -> tuple[str, ...]:
        return self._entries

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"ExemptionPolicy(entries={list(self._entries)!r})"

    def is_exempt(self, client_ip: str) -> bool:
        """Return True if ``client_ip`` matches any literal, CIDR or wildcard entry."""
        value = normalize_ip(client_ip)
        try:
            address = ipaddress.ip_address(value)
        except ValueError:
            return False

        if any(address in network for network in self._networks):
            return True
        return any(fnmatch.fnmatchcase(value, pattern) for pattern in self._wildcards)

    def with_addresses(self, addresses: Iterable[str]) -> "ExemptionPolicy":
        """Return a new policy that also exempts ``addresses``."""
        return ExemptionPolicy([*self._entries, *addresses])


def _is_valid_wildcard(entry: str) -> bool:
    # Only whole-octet wildcards on IPv4 patterns, e.g. 192.168.*.*
    parts = entry.split(".")
    if len(parts) != 4:
        return False
    for part in parts:
        if part == "*":
            continue
        if not part.isdigit() or int(part) > 255:
            return False
    return True


async def resolve_exempt_hostname(hostname: str) -> list[str]:
    """Resolve a dynamic DNS hostname to its addresses.

    Failures are logged and yield an empty list so startup continues without
    the extra exemption.
    """
    loop = asyncio.get_running_loop()
    try:
        infos = await loop.getaddrinfo(hostname, None, type=socket.SOCK_STREAM)
    except (socket.gaierror, OSError) as exc:
        logger.warning(
            "exemptions.hostname_unresolved",
            extra={"hostname": hostname, "error_msg": str(exc)},
        )
        return []

    addresses = list(dict.fromkeys(normalize_ip(info[4][0]) for info in infos))
    logger.info(
        "exemptions.hostname_resolved",
        extra={"hostname": hostname, "addresses": addresses},
    )
    return addresses
