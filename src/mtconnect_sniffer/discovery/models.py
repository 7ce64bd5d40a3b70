"""
Discovery data structures and models
"""

from typing import List, Optional, Union
from dataclasses import dataclass, field

@dataclass(frozen=True)
class MTConnectDevice:
    """Represents a device reported by an MTConnect agent"""
    address: str
    port: int
    mac_address: Optional[str]  # None when the neighbor lookup failed
    name: str

@dataclass(frozen=True)
class ProbeContext:
    """Correlates an in-flight probe with the address and port that issued it"""
    address: str
    port: int

@dataclass(frozen=True)
class DeviceDescription:
    """Single Device entry of an MTConnectDevices document"""
    name: str
    uuid: Optional[str] = None
    device_id: Optional[str] = None

@dataclass(frozen=True)
class ProbeSuccess:
    """Agent answered with an MTConnectDevices document"""
    context: ProbeContext
    devices: List[DeviceDescription] = field(default_factory=list)

@dataclass(frozen=True)
class ProbeError:
    """Agent answered with an MTConnectError document"""
    context: ProbeContext
    errors: List[tuple] = field(default_factory=list)  # (error_code, message)

@dataclass(frozen=True)
class ProbeConnectionError:
    """Transport or parse failure while probing"""
    context: ProbeContext
    cause: Exception

ProbeOutcome = Union[ProbeSuccess, ProbeError, ProbeConnectionError]

@dataclass(frozen=True)
class RunState:
    """Snapshot of the counters of one discovery run"""
    sent_reachability: int = 0
    received_reachability: int = 0
    sent_probe: int = 0
    received_probe: int = 0
    elapsed_ms: int = 0
    completed: bool = False

@dataclass
class SweepResult:
    """Results of a completed discovery run"""
    devices: List[MTConnectDevice]
    elapsed_ms: int
    state: RunState

    @property
    def device_count(self) -> int:
        return len(self.devices)
