"""
System health and monitoring API routes
"""

from fastapi import APIRouter
from pydantic import BaseModel
from typing import List
from datetime import datetime, timezone
import logging

from .. import __version__
from ..discovery import Sniffer

logger = logging.getLogger(__name__)

# Response models
class HealthResponse(BaseModel):
    status: str
    version: str
    discovery_running: bool
    timeout_ms: int
    ports: List[int]
    subnet_prefix: int
    timestamp: datetime

def create_system_routes(sniffer: Sniffer, config):
    """Create system monitoring routes"""
    router = APIRouter(prefix="/api", tags=["system"])

    @router.get("/system/health", response_model=HealthResponse)
    async def system_health():
        """System health check"""
        return HealthResponse(
            status="healthy",
            version=__version__,
            discovery_running=sniffer.running,
            timeout_ms=sniffer.timeout_ms,
            ports=sniffer.port_range,
            subnet_prefix=sniffer.subnet_prefix,
            timestamp=datetime.now(timezone.utc)
        )

    @router.get("/system/config")
    async def get_network_config():
        """Effective network configuration"""
        network = config.get('network', {})
        return {
            "timeout_ms": sniffer.timeout_ms,
            "ports": sniffer.port_range,
            "subnet_prefix": sniffer.subnet_prefix,
            "ip_ranges": network.get('ip_ranges', []),
            "interfaces": network.get('interfaces', []),
            "request_timeout": network.get('request_timeout', 5),
            "scan_interval_minutes": network.get('scan_interval_minutes', 0)
        }

    return router
