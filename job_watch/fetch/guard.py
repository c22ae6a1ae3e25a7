"""Outbound address vetting against private and local networks."""

import ipaddress
import logging
import socket
from typing import Callable

from job_watch.errors import BlockedAddressError

logger = logging.getLogger("job_watch.fetch.guard")

BLOCKED_NETWORKS = [
    ipaddress.ip_network("0.0.0.0/8"),
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("169.254.0.0/16"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("::/128"),
    ipaddress.ip_network("::1/128"),
    ipaddress.ip_network("fe80::/10"),
    ipaddress.ip_network("fc00::/7"),
]

Resolver = Callable[..., list]


def is_blocked_hostname(hostname: str) -> bool:
    host = (hostname or "").strip().lower().rstrip(".")
    return not host or host == "localhost" or host.endswith(".local")


def is_blocked_address(ip_str: str) -> bool:
    """True when ip_str falls in any blocked range (or is not an IP at all)."""
    try:
        ip_obj = ipaddress.ip_address(ip_str.split("%", 1)[0])
    except ValueError:
        return True
    if isinstance(ip_obj, ipaddress.IPv6Address) and ip_obj.ipv4_mapped is not None:
        ip_obj = ip_obj.ipv4_mapped
    return any(ip_obj in network for network in BLOCKED_NETWORKS if ip_obj.version == network.version)


def ensure_public(hostname: str, resolver: Resolver = socket.getaddrinfo) -> None:
    """Raise BlockedAddressError unless every address of hostname is public.

    Must be called before the first request to a host and again for every
    redirect target.
    """
    if is_blocked_hostname(hostname):
        raise BlockedAddressError(f"Blocked hostname (localhost or .local): {hostname!r}")

    host = hostname.strip("[]")
    try:
        results = resolver(host, None, 0, socket.SOCK_STREAM)
    except (socket.gaierror, UnicodeError) as e:
        raise BlockedAddressError(f"Could not resolve {hostname!r}: {e}") from e

    addresses = {sockaddr[0] for _family, _type, _proto, _canon, sockaddr in results}
    if not addresses:
        raise BlockedAddressError(f"No addresses for {hostname!r}")

    for address in addresses:
        if is_blocked_address(address):
            logger.warning("Blocked %s: resolves to private address %s", hostname, address)
            raise BlockedAddressError(f"Blocked private address {address} for {hostname!r}")
