"""Resolve the address of the client behind the deployment's proxies."""

from __future__ import annotations

import ipaddress
from collections.abc import Iterable

from fastapi import Request

from ..config import TRUSTED_PROXIES

IPNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network


def parse_networks(values: Iterable[str]) -> tuple[IPNetwork, ...]:
    return tuple(ipaddress.ip_network(value, strict=False) for value in values)


_trusted_networks = parse_networks(TRUSTED_PROXIES)


def _parse_ip(value: str | None) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    if not value:
        return None
    try:
        return ipaddress.ip_address(value.strip())
    except ValueError:
        return None


def is_trusted_proxy(value: str | None, networks: Iterable[IPNetwork] | None = None) -> bool:
    """Return whether ``value`` may set ``X-Forwarded-For`` for us.

    Peers that are not IP addresses (in-process test transports) count as
    trusted.
    """

    if not value:
        return False
    ip = _parse_ip(value)
    if ip is None:
        return True
    return any(ip in network for network in (networks or _trusted_networks))


def get_client_ip(request: Request) -> str:
    """Return the client address used for rate limiting and logs.

    ``X-Forwarded-For`` is walked from the right, skipping our own proxies,
    so a client cannot pick its address by prepending entries.
    """

    peer = request.client.host if request.client else None
    if peer and not is_trusted_proxy(peer):
        return str(_parse_ip(peer))

    hops = [hop.strip() for hop in request.headers.get("X-Forwarded-For", "").split(",")]
    for hop in reversed([hop for hop in hops if hop]):
        ip = _parse_ip(hop)
        if ip is None:
            break
        if not is_trusted_proxy(hop):
            return str(ip)

    peer_ip = _parse_ip(peer)
    return str(peer_ip) if peer_ip is not None else "unknown"
