"""
ICMP reachability checks using the platform ping command
"""

import asyncio
import logging
import platform
from typing import List

logger = logging.getLogger(__name__)


def build_ping_command(address: str, timeout_ms: int, system: str = None) -> List[str]:
    """Single echo request command line for the current platform"""
    system = (system or platform.system()).lower()
    if "windows" in system:
        return ["ping", "-n", "1", "-w", str(int(timeout_ms)), address]
    if "darwin" in system:
        # macOS takes the wait time in milliseconds
        return ["ping", "-c", "1", "-W", str(int(timeout_ms)), address]
    # iputils takes fractional seconds
    return ["ping", "-c", "1", "-W", f"{timeout_ms / 1000:g}", address]


async def ping(address: str, timeout_ms: int = 500) -> bool:
    """
    Send one echo request to ``address``.
    Returns True on a reply; False on no reply, timeout or any error.
    The wait never exceeds ``timeout_ms``.
    """
    cmd = build_ping_command(address, timeout_ms)
    proc = None
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        returncode = await asyncio.wait_for(proc.wait(), timeout=timeout_ms / 1000)
        return returncode == 0
    except asyncio.TimeoutError:
        logger.debug(f"Ping to {address} timed out")
        return False
    except Exception as e:
        logger.debug(f"Ping to {address} failed: {e}")
        return False
    finally:
        # Timed out, cancelled or failed while waiting
        if proc is not None and proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
