"""
Best-effort MAC address lookup from the local neighbor table
"""

import re
import logging
import platform
import subprocess
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

PROC_ARP_PATH = Path("/proc/net/arp")
ARP_TIMEOUT_SECONDS = 2

_MAC_PATTERN = re.compile(r"([0-9a-fA-F]{1,2}[:-]){5}[0-9a-fA-F]{1,2}")
_INCOMPLETE_MAC = "00:00:00:00:00:00"


def normalize_mac(value: str) -> Optional[str]:
    """Normalise to AA:BB:CC:DD:EE:FF; None for malformed or incomplete entries"""
    if not value:
        return None
    parts = re.split(r"[:-]", value.strip())
    if len(parts) != 6:
        return None
    try:
        mac = ":".join(f"{int(part, 16):02X}" for part in parts)
    except ValueError:
        return None
    if mac == _INCOMPLETE_MAC:
        return None
    return mac


def _lookup_proc_arp(address: str, path: Optional[Path] = None) -> Optional[str]:
    """Read the Linux kernel ARP table"""
    with open(path or PROC_ARP_PATH, 'r') as f:
        next(f, None)  # header
        for line in f:
            fields = line.split()
            if len(fields) >= 4 and fields[0] == address:
                return normalize_mac(fields[3])
    return None


def _lookup_arp_command(address: str, system: str) -> Optional[str]:
    """Query the platform arp command for a single address"""
    if "windows" in system:
        cmd = ["arp", "-a", address]
    else:
        cmd = ["arp", "-n", address]

    result = subprocess.run(
        cmd,
        capture_output=True,
        text=True,
        timeout=ARP_TIMEOUT_SECONDS
    )
    if result.returncode != 0:
        return None

    for line in result.stdout.splitlines():
        if address not in line:
            continue
        match = _MAC_PATTERN.search(line)
        if match:
            return normalize_mac(match.group(0))
    return None


def resolve_hardware_address(address: str) -> Optional[str]:
    """
    Resolve the link-layer address of ``address``.
    Never raises; any failure (no entry, unsupported platform, permission
    denied, command timeout) yields None.
    """
    system = platform.system().lower()
    try:
        if "linux" in system and PROC_ARP_PATH.exists():
            mac = _lookup_proc_arp(address)
            if mac:
                return mac
        return _lookup_arp_command(address, system)
    except Exception as e:
        logger.debug(f"MAC lookup failed for {address}: {e}")
        return None
