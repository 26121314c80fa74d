"""IP address utilities."""

import ipaddress
import re
from typing import Optional, Union

from django.http import HttpRequest

PRIVATE_NETWORKS = (
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("169.254.0.0/16"),
    ipaddress.ip_network("::1/128"),
    ipaddress.ip_network("fe80::/10"),
    ipaddress.ip_network("fc00::/7"),
)

_IPV4_WITH_PORT = re.compile(r"^(\d{1,3}(?:\.\d{1,3}){3}):\d+$")


def parse_ip(ip: str) -> Optional[Union[ipaddress.IPv4Address, ipaddress.IPv6Address]]:
    """
    Parse an address as it appears in headers or REMOTE_ADDR.

    Strips an IPv4 ``:port`` suffix and unwraps ``::ffff:``-mapped IPv4.
    Returns None when the value is not an IP address.
    """
    if not ip:
        return None
    value = ip.strip()
    match = _IPV4_WITH_PORT.match(value)
    if match:
        value = match.group(1)
    try:
        address = ipaddress.ip_address(value)
    except ValueError:
        return None
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped:
        return address.ipv4_mapped
    return address


def is_private_ip(ip: str) -> bool:
    """
    True for loopback, RFC 1918, link-local and unique-local addresses.

    Unparseable values are not private.
    """
    address = parse_ip(ip)
    if address is None:
        return False
    return any(
        address.version == network.version and address in network
        for network in PRIVATE_NETWORKS
    )


def get_client_ip(request: HttpRequest, trusted_header: Optional[str] = None) -> str:
    """
    Resolve the public client IP used for geolocation.

    Prefers the first value of the trusted proxy header, then REMOTE_ADDR.
    Private addresses are skipped; returns an empty string when no public
    address is available.

    Args:
        request: The Django HttpRequest object
        trusted_header: Header name set by the trusted proxy (e.g. 'CF-Connecting-IP')
    """
    if trusted_header:
        header_value = request.headers.get(trusted_header)
        if header_value:
            ip = header_value.split(",")[0].strip()
            if ip and not is_private_ip(ip):
                return ip

    direct_ip = request.META.get("REMOTE_ADDR", "") or ""
    if direct_ip and not is_private_ip(direct_ip):
        return direct_ip

    return ""
