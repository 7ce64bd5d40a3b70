"""
Discovery control API routes
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from typing import List, Optional
import logging

from ..discovery import Sniffer, SweepInProgressError

logger = logging.getLogger(__name__)

# Response models
class DeviceResponse(BaseModel):
    address: str
    port: int
    mac_address: Optional[str] = None
    name: str

class DiscoveryStatusResponse(BaseModel):
    running: bool
    completed: bool
    sent_reachability: int
    received_reachability: int
    sent_probe: int
    received_probe: int
    elapsed_ms: int
    devices_found: int

class DiscoveryStartResponse(BaseModel):
    status: str
    hosts_to_check: int
    ports: List[int]
    timeout_ms: int


def _status_response(sniffer: Sniffer) -> DiscoveryStatusResponse:
    state = sniffer.state
    return DiscoveryStatusResponse(
        running=sniffer.running,
        completed=state.completed,
        sent_reachability=state.sent_reachability,
        received_reachability=state.received_reachability,
        sent_probe=state.sent_probe,
        received_probe=state.received_probe,
        elapsed_ms=state.elapsed_ms,
        devices_found=len(sniffer.devices)
    )

def create_discovery_routes(sniffer: Sniffer):
    """Create discovery control routes"""
    router = APIRouter(prefix="/api/discovery", tags=["discovery"])

    @router.post("/start", response_model=DiscoveryStartResponse)
    async def start_discovery():
        """Start a sweep of the local networks"""
        try:
            sniffer.start()
        except SweepInProgressError:
            raise HTTPException(status_code=409, detail="Discovery already in progress")

        logger.info("Discovery sweep started via API")
        return DiscoveryStartResponse(
            status="started",
            hosts_to_check=sniffer.state.sent_reachability,
            ports=sniffer.port_range,
            timeout_ms=sniffer.timeout_ms
        )

    @router.get("/status", response_model=DiscoveryStatusResponse)
    async def get_discovery_status():
        """Counters of the current or last sweep"""
        return _status_response(sniffer)

    @router.get("/devices", response_model=List[DeviceResponse])
    async def get_discovered_devices():
        """Devices found by the current or last sweep"""
        return [
            DeviceResponse(
                address=device.address,
                port=device.port,
                mac_address=device.mac_address,
                name=device.name
            )
            for device in sniffer.devices
        ]

    return router
