# HTTP Helper for MTConnect agent connections
# Agents on the shop floor are always plain HTTP

import aiohttp
import logging

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "application/xml, text/xml"
}

def create_agent_session(timeout_seconds: float = 5) -> aiohttp.ClientSession:
    """
    Create properly configured aiohttp session for a single MTConnect agent probe
    Prevents connection leaks with proper cleanup and limits
    """
    connector = aiohttp.TCPConnector(
        limit_per_host=2,           # Max 2 connections per agent
        ssl=False,                  # Agents use HTTP only
        force_close=True,           # Force connection cleanup
        enable_cleanup_closed=True  # Additional cleanup
    )

    return aiohttp.ClientSession(
        connector=connector,
        headers=DEFAULT_HEADERS,
        timeout=aiohttp.ClientTimeout(total=timeout_seconds)
    )

def build_agent_url(address: str, port: int) -> str:
    """Base URL of the agent listening on address:port"""
    return f"http://{address}:{port}/"
