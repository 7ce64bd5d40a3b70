"""
MTConnect Sniffer service
Runs discovery sweeps on startup and on a schedule, and serves the local API
"""

import asyncio
import logging
from typing import List

import uvicorn

from ..config_loader import load_config, setup_logging
from ..discovery import Sniffer, SweepInProgressError, SweepResult
from ..api import SnifferAPI

logger = logging.getLogger(__name__)

class SnifferServer:
    """Main server orchestrating discovery sweeps and the HTTP API"""

    def __init__(self, config_path: str = "config/config.yaml"):
        self.config = load_config(config_path)
        setup_logging(self.config)

        self.sniffer = Sniffer(self.config['network'])
        self.api = SnifferAPI(self.sniffer, self.config)

        self.running = False
        self.tasks: List[asyncio.Task] = []

    async def start(self):
        """Run the startup sweep, schedule periodic sweeps and serve the API"""
        logger.info("Starting MTConnect Sniffer...")

        try:
            self.running = True

            result = await self.run_sweep()
            self._log_result(result)

            scan_interval = self.config['network']['scan_interval_minutes']
            if scan_interval > 0:
                self.tasks.append(asyncio.create_task(self._discovery_service(scan_interval * 60)))

            logger.info(f"All services started successfully ({len(self.tasks)} background tasks)")

            if self.config['api']['enabled']:
                await self._start_api_server()
            elif self.tasks:
                await asyncio.gather(*self.tasks)

        except Exception as e:
            logger.error(f"Server startup failed: {e}")
            await self.stop()
            raise

    async def stop(self):
        """Stop all server services gracefully"""
        logger.info("Stopping server...")
        self.running = False

        # Cancel all tasks
        for task in self.tasks:
            task.cancel()

        # Wait for tasks to complete
        if self.tasks:
            await asyncio.gather(*self.tasks, return_exceptions=True)
        self.tasks = []

        logger.info("Server stopped")

    async def run_sweep(self) -> SweepResult:
        """One full sweep of the configured networks"""
        return await self.sniffer.sweep()

    def _log_result(self, result: SweepResult):
        if not result.devices:
            logger.info(f"No MTConnect devices found ({result.elapsed_ms} ms)")
            return
        for device in result.devices:
            mac = device.mac_address or "unknown MAC"
            logger.info(f"  {device.name} at {device.address}:{device.port} ({mac})")

    async def _discovery_service(self, scan_interval: float):
        """Background service for periodic sweeps"""
        logger.info(f"Discovery service started (every {scan_interval/60} minutes)")

        while self.running:
            try:
                await asyncio.sleep(scan_interval)
                if not self.running:
                    break

                logger.info("[REFRESH] Running periodic discovery...")
                result = await self.run_sweep()
                self._log_result(result)

            except SweepInProgressError:
                # A sweep started through the API is still running
                logger.info("Skipping periodic discovery, sweep already in progress")
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Discovery service error: {e}")

    async def _start_api_server(self):
        """Start the FastAPI server"""
        config = uvicorn.Config(
            self.api.app,
            host=self.config['api']['host'],
            port=self.config['api']['port'],
            log_level="info",
            access_log=False  # We handle our own logging
        )

        server = uvicorn.Server(config)

        logger.info(f"Starting API server on {self.config['api']['host']}:{self.config['api']['port']}")
        logger.info(f"API documentation: http://localhost:{self.config['api']['port']}/docs")

        await server.serve()
