"""
Local interface enumeration and subnet expansion
"""

import socket
import ipaddress
import logging
from typing import Iterator, List, Optional, Sequence

import psutil

logger = logging.getLogger(__name__)

DEFAULT_SUBNET_PREFIX = 24

# Interface name prefixes that never carry a sweepable LAN
_TUNNEL_PREFIXES = ("utun", "tun", "tap", "wg", "tailscale", "vpn", "ppp", "awdl", "llw", "docker", "veth", "virbr")


def _is_tunnel_interface(name: str) -> bool:
    return (name or "").lower().startswith(_TUNNEL_PREFIXES)


def list_local_ipv4_addresses(interfaces: Optional[Sequence[str]] = None) -> List[str]:
    """
    Return IPv4 addresses of operationally up wired/wireless interfaces.
    Loopback and tunnel style interfaces are skipped. When ``interfaces`` is
    given only those interface names are considered.
    """
    addresses = []
    stats = psutil.net_if_stats()

    for name, addrs in psutil.net_if_addrs().items():
        if interfaces and name not in interfaces:
            continue
        if_stats = stats.get(name)
        if not if_stats or not if_stats.isup:
            continue
        if _is_tunnel_interface(name):
            continue

        for addr in addrs:
            if addr.family != socket.AF_INET or not addr.address:
                continue
            try:
                ip = ipaddress.IPv4Address(addr.address)
            except ValueError:
                continue
            if ip.is_loopback or ip.is_link_local:
                continue
            if addr.address not in addresses:
                addresses.append(addr.address)

    logger.debug(f"Local IPv4 addresses: {', '.join(addresses) or 'none'}")
    return addresses


def subnet_hosts(address: str, prefix: int = DEFAULT_SUBNET_PREFIX) -> Iterator[str]:
    """
    Candidate hosts of the subnet containing ``address``.
    Every call returns a fresh iterator over the same addresses.
    """
    network = ipaddress.IPv4Network(f"{address}/{prefix}", strict=False)
    return (str(ip) for ip in network.hosts())


def generate_ip_range(ip_ranges: Sequence[str]) -> List[str]:
    """Expand configured ``start-end`` ranges and CIDR blocks into host addresses"""
    all_ips = []
    for ip_range in ip_ranges:
        if '-' in ip_range:
            try:
                start_ip, end_ip = ip_range.split('-')
                start = ipaddress.IPv4Address(start_ip.strip())
                end = ipaddress.IPv4Address(end_ip.strip())
            except ValueError:
                logger.warning(f"Invalid IP range format: {ip_range}")
                continue
            current = start
            while current <= end:
                all_ips.append(str(current))
                current += 1
        else:
            # Single IP or CIDR notation
            try:
                network = ipaddress.IPv4Network(ip_range.strip(), strict=False)
            except ValueError:
                logger.warning(f"Invalid IP range format: {ip_range}")
                continue
            if network.num_addresses == 1:
                all_ips.append(str(network.network_address))
            else:
                all_ips.extend(str(ip) for ip in network.hosts())
    return all_ips
