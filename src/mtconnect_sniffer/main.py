"""
MTConnect Sniffer - Main Entry Point
"""

import argparse
import asyncio
import signal
import sys
import logging
import os

from .config_loader import load_config, setup_logging
from .discovery import Sniffer
from .services.sniffer_server import SnifferServer

logger = logging.getLogger(__name__)

def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="mtconnect-sniffer",
        description="Find MTConnect devices on the local networks"
    )
    parser.add_argument(
        "-c", "--config",
        default=os.environ.get('CONFIG_FILE', 'config/config.yaml'),
        help="Path to the YAML configuration file (default: $CONFIG_FILE or config/config.yaml)"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single sweep, print the devices found and exit"
    )
    return parser.parse_args(argv)

async def run_once(config_path: str) -> int:
    """Single sweep without the API server"""
    config = load_config(config_path)
    setup_logging(config)

    sniffer = Sniffer(config['network'])
    result = await sniffer.sweep()

    for device in result.devices:
        print(f"{device.name}\t{device.address}:{device.port}\t{device.mac_address or '-'}")
    print(f"{result.device_count} device(s) found in {result.elapsed_ms} ms")
    return 0

async def main(config_path: str) -> int:
    """Main entry point"""

    # Handle graceful shutdown
    server = None

    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        if server:
            asyncio.create_task(server.stop())

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        logger.info(f"Using configuration file: {config_path}")
        server = SnifferServer(config_path=config_path)

        await server.start()

    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    except Exception as e:
        logger.error(f"Server failed: {e}")
        return 1
    finally:
        if server:
            await server.stop()

    return 0

def run(argv=None):
    """Console script entry"""
    args = parse_args(argv)
    try:
        if args.once:
            exit_code = asyncio.run(run_once(args.config))
        else:
            exit_code = asyncio.run(main(args.config))
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nSniffer stopped by user")
        sys.exit(0)

if __name__ == "__main__":
    run()
