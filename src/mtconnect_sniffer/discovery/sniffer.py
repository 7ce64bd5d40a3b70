"""
MTConnect sniffer - sweeps local subnets for MTConnect agents

Every candidate host gets one ping; reachable hosts get a TCP check of the
configured port range; every open port gets one MTConnect probe. Devices are
reported through ``device_found`` listeners as probes succeed, and
``run_completed`` listeners are called exactly once per run with the elapsed
milliseconds, after every ping and probe of that run has resolved.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Set

from .models import MTConnectDevice, ProbeContext, ProbeError, ProbeSuccess, RunState, SweepResult
from .interfaces import DEFAULT_SUBNET_PREFIX, generate_ip_range, list_local_ipv4_addresses, subnet_hosts
from .reachability import ping
from .port_scanner import scan_ports
from .hardware_address import resolve_hardware_address
from .protocol_client import MTConnectClient
from .tracker import CompletionTracker
from ..http_helper import build_agent_url

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 500
DEFAULT_PORT_RANGE_START = 5000
DEFAULT_PORT_RANGE_SIZE = 20
DEFAULT_PORT_RANGE = list(range(DEFAULT_PORT_RANGE_START, DEFAULT_PORT_RANGE_START + DEFAULT_PORT_RANGE_SIZE))

DeviceCallback = Callable[[MTConnectDevice], None]
CompletionCallback = Callable[[int], None]


class SweepInProgressError(RuntimeError):
    """start() was called before the previous run completed"""


class Sniffer:
    """Finds MTConnect devices on the local networks"""

    def __init__(
        self,
        config: Optional[Dict] = None,
        interface_enumerator: Optional[Callable[[], Iterable[str]]] = None,
        pinger: Optional[Callable[[str, int], Awaitable[bool]]] = None,
        port_scanner: Optional[Callable[[str, List[int], int], Awaitable[List[int]]]] = None,
        protocol_client=None,
        mac_resolver: Optional[Callable[[str], Optional[str]]] = None,
        on_device_found: Optional[DeviceCallback] = None,
        on_run_completed: Optional[CompletionCallback] = None,
    ):
        config = config or {}
        self.subnet_prefix = config.get('subnet_prefix', DEFAULT_SUBNET_PREFIX)
        self.ip_ranges = config.get('ip_ranges') or []
        self.interfaces = config.get('interfaces') or None
        self.request_timeout = config.get('request_timeout', 5)

        self.timeout_ms = DEFAULT_TIMEOUT_MS
        self.port_range = list(DEFAULT_PORT_RANGE)
        self.configure(
            timeout=config.get('timeout_ms', DEFAULT_TIMEOUT_MS),
            port_range=config.get('ports') or DEFAULT_PORT_RANGE
        )

        # Collaborators
        self._list_addresses = interface_enumerator or (lambda: list_local_ipv4_addresses(self.interfaces))
        self._ping = pinger or ping
        self._scan_ports = port_scanner or scan_ports
        self._client = protocol_client or MTConnectClient(self.request_timeout)
        self._resolve_mac = mac_resolver or resolve_hardware_address

        self.device_callbacks: List[DeviceCallback] = []
        self.completion_callbacks: List[CompletionCallback] = []
        if on_device_found:
            self.add_device_listener(on_device_found)
        if on_run_completed:
            self.add_completion_listener(on_run_completed)

        # Per-run state, replaced by start()
        self._tracker: Optional[CompletionTracker] = None
        self._devices: List[MTConnectDevice] = []
        self._completion: Optional[asyncio.Future] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._tasks: Set[asyncio.Task] = set()

    # ================== CONFIGURATION ==================

    def configure(self, timeout: Optional[int] = None, port_range: Optional[Iterable[int]] = None):
        """
        Set the timeout in milliseconds used for ping and port checks and
        the ordered set of candidate ports.
        """
        if timeout is not None:
            if isinstance(timeout, bool) or not isinstance(timeout, int) or timeout <= 0:
                raise ValueError(f"timeout must be a positive number of milliseconds, got {timeout!r}")
            self.timeout_ms = timeout

        if port_range is not None:
            ports = []
            for port in port_range:
                if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
                    raise ValueError(f"Invalid port: {port!r}")
                if port not in ports:
                    ports.append(port)
            if not ports:
                raise ValueError("port_range must contain at least one port")
            self.port_range = ports

    def add_device_listener(self, callback: DeviceCallback):
        """Add callback called with each MTConnectDevice found"""
        self.device_callbacks.append(callback)

    def add_completion_listener(self, callback: CompletionCallback):
        """Add callback called with the elapsed milliseconds when a run completes"""
        self.completion_callbacks.append(callback)

    # ================== RUN STATE ==================

    @property
    def running(self) -> bool:
        return self._tracker is not None and not self._tracker.completed

    @property
    def devices(self) -> List[MTConnectDevice]:
        """Devices found by the current or last run"""
        return list(self._devices)

    @property
    def state(self) -> RunState:
        if self._tracker is None:
            return RunState()
        return self._tracker.snapshot()

    # ================== RUN CONTROL ==================

    def start(self):
        """
        Start a sweep on the running event loop and return immediately.
        Raises SweepInProgressError while the previous run is outstanding.
        """
        loop = asyncio.get_running_loop()
        if self.running:
            raise SweepInProgressError("Sweep already in progress")

        self._loop = loop
        self._devices = []
        self._completion = loop.create_future()
        tracker = CompletionTracker(self._on_run_completed)
        self._tracker = tracker

        hosts = self._candidate_hosts()
        logger.info(f"[LAUNCH] Starting MTConnect sweep of {len(hosts)} hosts "
                    f"(ports {self.port_range[0]}-{self.port_range[-1]}, timeout {self.timeout_ms} ms)")

        for host in hosts:
            tracker.record_reachability_sent()
            self._spawn(self._check_host(tracker, host))

        tracker.close_dispatch()

    async def wait_completed(self) -> int:
        """Wait for the current run and return its elapsed milliseconds"""
        if self._completion is None:
            raise RuntimeError("Sweep has not been started")
        return await asyncio.shield(self._completion)

    async def sweep(self) -> SweepResult:
        """Run one complete sweep and return everything it found"""
        self.start()
        elapsed = await self.wait_completed()
        return SweepResult(devices=self.devices, elapsed_ms=elapsed, state=self.state)

    # ================== PIPELINE ==================

    def _candidate_hosts(self) -> List[str]:
        """Hosts to ping this run, from configured ranges or local interface subnets"""
        try:
            if self.ip_ranges:
                candidates = generate_ip_range(self.ip_ranges)
            else:
                candidates = []
                for address in self._list_addresses():
                    candidates.extend(subnet_hosts(address, self.subnet_prefix))
        except Exception as e:
            logger.error(f"Failed to enumerate candidate hosts: {e}")
            return []

        # Interfaces sharing a subnet would otherwise ping the same hosts twice
        return list(dict.fromkeys(candidates))

    async def _check_host(self, tracker: CompletionTracker, address: str):
        """Ping, then port check, then probe each open port"""
        try:
            if not await self._ping(address, self.timeout_ms):
                return
            open_ports = await self._scan_ports(address, self.port_range, self.timeout_ms)
            for port in open_ports:
                self._send_probe(tracker, address, port)
        except Exception as e:
            logger.debug(f"Host check failed for {address}: {e}")
        finally:
            # Only after any probes of this host were counted as sent
            tracker.record_reachability_received()

    def _send_probe(self, tracker: CompletionTracker, address: str, port: int):
        tracker.record_probe_sent()
        context = ProbeContext(address=address, port=port)
        self._spawn(self._probe(tracker, context))

    async def _probe(self, tracker: CompletionTracker, context: ProbeContext):
        try:
            outcome = await self._client.probe(build_agent_url(context.address, context.port), context)
            if isinstance(outcome, ProbeSuccess):
                await self._handle_probe_success(outcome)
            elif isinstance(outcome, ProbeError):
                logger.debug(f"MTConnect error from {context.address}:{context.port}: {outcome.errors}")
            else:
                logger.debug(f"Probe connection error for {context.address}:{context.port}: {outcome.cause}")
        except Exception as e:
            logger.debug(f"Probe failed for {context.address}:{context.port}: {e}")
        finally:
            tracker.record_probe_received()

    async def _handle_probe_success(self, outcome: ProbeSuccess):
        sender = outcome.context
        if not outcome.devices:
            logger.debug(f"Agent at {sender.address}:{sender.port} reported no devices")
            return

        mac_address = await self._lookup_mac(sender.address)

        for description in outcome.devices:
            device = MTConnectDevice(
                address=sender.address,
                port=sender.port,
                mac_address=mac_address,
                name=description.name
            )
            self._devices.append(device)
            logger.info(f"[OK] Found MTConnect device: {device.name} ({device.address}:{device.port})")
            self._emit(self.device_callbacks, device, "Device")

    async def _lookup_mac(self, address: str) -> Optional[str]:
        """Neighbor table lookup off the event loop"""
        try:
            return await self._loop.run_in_executor(None, self._resolve_mac, address)
        except Exception as e:
            logger.debug(f"MAC lookup failed for {address}: {e}")
            return None

    # ================== SIGNALS ==================

    def _on_run_completed(self, elapsed_ms: int):
        # Captured first; a listener may start the next run
        state = self._tracker.snapshot()
        completion = self._completion
        loop = self._loop

        logger.info(f"[PASS] MTConnect sweep complete: {len(self._devices)} devices found, "
                    f"{state.sent_reachability} hosts pinged, {state.sent_probe} probes sent "
                    f"in {elapsed_ms} ms")

        self._emit(self.completion_callbacks, elapsed_ms, "Completion")
        loop.call_soon_threadsafe(self._resolve_completion, completion, elapsed_ms)

    @staticmethod
    def _resolve_completion(completion: asyncio.Future, elapsed_ms: int):
        if not completion.done():
            completion.set_result(elapsed_ms)

    def _emit(self, callbacks: List[Callable], value, kind: str):
        for callback in list(callbacks):
            try:
                callback(value)
            except Exception as e:
                logger.error(f"{kind} callback failed: {e}")

    def _spawn(self, coro):
        task = self._loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
