"""
Main FastAPI application setup

Local HTTP API for the MTConnect Sniffer
Provides REST endpoints to start sweeps and read their results
"""

from fastapi import FastAPI
from typing import Dict
import logging

from .. import __version__
from ..discovery import Sniffer

# Import modular route factories
from .system_routes import create_system_routes
from .discovery_routes import create_discovery_routes

logger = logging.getLogger(__name__)


class SnifferAPI:
    """Local HTTP API for MTConnect discovery"""

    def __init__(self, sniffer: Sniffer, config: Dict):
        self.sniffer = sniffer
        self.config = config
        self.app = FastAPI(
            title="MTConnect Sniffer",
            description="Local API for finding MTConnect devices on the network",
            version=__version__
        )
        self._setup_routes()

    def _setup_routes(self):
        """Setup FastAPI routes using modular approach"""
        system_router = create_system_routes(self.sniffer, self.config)
        discovery_router = create_discovery_routes(self.sniffer)

        self.app.include_router(system_router)
        self.app.include_router(discovery_router)
