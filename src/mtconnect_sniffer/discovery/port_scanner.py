"""
TCP port checks for reachable hosts
"""

import asyncio
import logging
from typing import List, Sequence

logger = logging.getLogger(__name__)


async def check_port(address: str, port: int, timeout_ms: int = 500) -> bool:
    """Return True when a TCP connection to address:port opens within the timeout"""
    try:
        _reader, writer = await asyncio.wait_for(
            asyncio.open_connection(host=address, port=port),
            timeout=timeout_ms / 1000
        )
    except Exception:
        # Refused, timed out or unroutable are all "closed"
        return False

    writer.close()
    try:
        await writer.wait_closed()
    except Exception:
        pass
    return True


async def scan_ports(address: str, ports: Sequence[int], timeout_ms: int = 500) -> List[int]:
    """
    Check every port of ``ports`` on ``address`` concurrently.
    Open ports are returned in the order they were given.
    """
    if not ports:
        return []

    results = await asyncio.gather(
        *(check_port(address, port, timeout_ms) for port in ports),
        return_exceptions=True
    )
    open_ports = [port for port, is_open in zip(ports, results) if is_open is True]

    if open_ports:
        logger.debug(f"Open ports on {address}: {open_ports}")
    return open_ports
