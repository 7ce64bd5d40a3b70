"""
Test doubles for the Sniffer collaborators.

- FakeNetwork: in-memory stand-ins for the ping, port check, probe and
  MAC lookup collaborators
- Recorder: captures device_found / run_completed signals in order
"""
import asyncio
from typing import Dict, List, Optional, Tuple

from mtconnect_sniffer.discovery.models import (
    DeviceDescription, ProbeConnectionError, ProbeContext, ProbeError, ProbeSuccess
)
from mtconnect_sniffer.discovery.sniffer import Sniffer


class FakeNetwork:
    """Scriptable network used in place of ping/port checks/agents"""

    def __init__(self, local_addresses=None, reachable=None, open_ports=None,
                 agents=None, macs=None):
        self.local_addresses: List[str] = list(local_addresses or [])
        self.reachable = set(reachable or [])
        self.open_ports: Dict[str, List[int]] = dict(open_ports or {})
        # (address, port) -> list of device names, "error", "transport" or an Exception
        self.agents: Dict[Tuple[str, int], object] = dict(agents or {})
        self.macs: Dict[str, Optional[str]] = dict(macs or {})

        self.pinged: List[str] = []
        self.scanned: List[str] = []
        self.probed: List[Tuple[str, ProbeContext]] = []
        self.mac_lookups: List[str] = []

    def list_addresses(self):
        return list(self.local_addresses)

    async def ping(self, address: str, timeout_ms: int) -> bool:
        self.pinged.append(address)
        await asyncio.sleep(0)
        return address in self.reachable

    async def scan_ports(self, address: str, ports: List[int], timeout_ms: int) -> List[int]:
        self.scanned.append(address)
        await asyncio.sleep(0)
        return [port for port in ports if port in self.open_ports.get(address, [])]

    async def probe(self, base_url: str, context: ProbeContext):
        self.probed.append((base_url, context))
        await asyncio.sleep(0)
        answer = self.agents.get((context.address, context.port), "transport")
        if isinstance(answer, Exception):
            raise answer
        if answer == "error":
            return ProbeError(context=context, errors=[("UNSUPPORTED", "Unsupported request")])
        if answer == "transport":
            return ProbeConnectionError(context=context, cause=ConnectionRefusedError("refused"))
        return ProbeSuccess(context=context, devices=[DeviceDescription(name=name) for name in answer])

    def resolve_mac(self, address: str) -> Optional[str]:
        self.mac_lookups.append(address)
        mac = self.macs.get(address)
        if isinstance(mac, Exception):
            raise mac
        return mac


class Recorder:
    """Collects sniffer signals in the order they were emitted"""

    def __init__(self):
        self.events: List[Tuple[str, object]] = []

    def device_found(self, device):
        self.events.append(("device", device))

    def run_completed(self, elapsed_ms):
        self.events.append(("completed", elapsed_ms))

    @property
    def devices(self):
        return [value for kind, value in self.events if kind == "device"]

    @property
    def completions(self):
        return [value for kind, value in self.events if kind == "completed"]


def build_sniffer(network: FakeNetwork, recorder: Recorder = None, config: Dict = None) -> Sniffer:
    """Sniffer wired to a FakeNetwork"""
    sniffer = Sniffer(
        config or {},
        interface_enumerator=network.list_addresses,
        pinger=network.ping,
        port_scanner=network.scan_ports,
        protocol_client=network,
        mac_resolver=network.resolve_mac,
    )
    if recorder:
        sniffer.add_device_listener(recorder.device_found)
        sniffer.add_completion_listener(recorder.run_completed)
    return sniffer


