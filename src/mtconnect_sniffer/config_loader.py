"""
Configuration loader for the MTConnect Sniffer
Loads and validates configuration from YAML files
"""

import yaml
import logging
from typing import Dict, Any
from pathlib import Path
from datetime import datetime
import pytz

logger = logging.getLogger(__name__)

def load_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file with validation
    """
    try:
        config_file = Path(config_path)
        if not config_file.exists():
            logger.error(f"Configuration file not found: {config_path}")
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_file, 'r') as f:
            config = yaml.safe_load(f) or {}

        # Validate required sections
        _validate_config(config)

        # Apply defaults
        config = _apply_defaults(config)

        logger.info(f"Configuration loaded from {config_path}")
        return config

    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        raise

def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0

def _validate_config(config: Dict) -> None:
    """Validate that required configuration sections exist"""
    if not isinstance(config, dict):
        raise ValueError("Configuration must be a mapping")

    if 'network' not in config or not isinstance(config['network'], dict):
        raise ValueError("Missing required configuration section: network")

    network = config['network']

    # Null values are left for _apply_defaults
    for field in ['timeout_ms', 'port_range_start', 'port_range_size', 'scan_interval_minutes']:
        if network.get(field) is not None and not (_is_positive_int(network[field]) or
                                                  (field == 'scan_interval_minutes' and network[field] == 0)):
            raise ValueError(f"network.{field} must be a positive integer")

    if network.get('port_range_start') is not None and \
            network['port_range_start'] + (network.get('port_range_size') or 20) > 65536:
        raise ValueError("network port range exceeds 65535")

    if network.get('ports') is not None:
        ports = network['ports']
        if not isinstance(ports, list) or not ports:
            raise ValueError("network.ports must be a non-empty list")
        for port in ports:
            if not _is_positive_int(port) or port > 65535:
                raise ValueError(f"Invalid port in network.ports: {port}")

    if network.get('subnet_prefix') is not None:
        prefix = network['subnet_prefix']
        if not isinstance(prefix, int) or isinstance(prefix, bool) or not 8 <= prefix <= 32:
            raise ValueError("network.subnet_prefix must be between 8 and 32")

    for field in ['ip_ranges', 'interfaces']:
        if field in network and network[field] is not None and not isinstance(network[field], list):
            raise ValueError(f"network.{field} must be a list")

    if 'logging' in config and 'timezone' in (config['logging'] or {}):
        try:
            pytz.timezone(config['logging']['timezone'])
        except pytz.UnknownTimeZoneError:
            raise ValueError(f"Unknown logging.timezone: {config['logging']['timezone']}")

def _apply_defaults(config: Dict) -> Dict:
    """Apply default values to configuration"""

    # Network defaults
    network_defaults = {
        'timeout_ms': 500,
        'port_range_start': 5000,
        'port_range_size': 20,
        'subnet_prefix': 24,
        'ip_ranges': [],
        'interfaces': [],
        'request_timeout': 5,
        'scan_interval_minutes': 0
    }
    for key, default_value in network_defaults.items():
        if config['network'].get(key) is None:
            config['network'][key] = default_value

    # Explicit port list wins over the start/size pair
    if not config['network'].get('ports'):
        start = config['network']['port_range_start']
        config['network']['ports'] = list(range(start, start + config['network']['port_range_size']))

    # API defaults
    if not config.get('api'):
        config['api'] = {}
    api_defaults = {
        'enabled': True,
        'host': '0.0.0.0',
        'port': 8000
    }
    for key, default_value in api_defaults.items():
        if key not in config['api']:
            config['api'][key] = default_value

    # Logging defaults
    if not config.get('logging'):
        config['logging'] = {}
    logging_defaults = {
        'level': 'INFO',
        'file': 'logs/sniffer.log',
        'console_output': True,
        'timezone': 'UTC'
    }
    for key, default_value in logging_defaults.items():
        if key not in config['logging']:
            config['logging'][key] = default_value

    return config


class TimezoneFormatter(logging.Formatter):
    """Formatter that renders timestamps in a configured timezone"""

    def __init__(self, fmt=None, timezone: str = 'UTC'):
        super().__init__(fmt)
        self.tz = pytz.timezone(timezone)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, tz=self.tz)
        if datefmt:
            return dt.strftime(datefmt)
        else:
            # Default format: YYYY-MM-DD HH:MM:SS TZ
            return dt.strftime('%Y-%m-%d %H:%M:%S %Z')

def setup_logging(config: Dict) -> None:
    """Setup logging based on configuration"""
    log_config = config.get('logging', {})
    level = log_config.get('level', 'INFO')
    timezone = log_config.get('timezone', 'UTC')

    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = TimezoneFormatter(log_format, timezone)

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper()))

    # Replace handlers from a previous setup
    for handler in list(root.handlers):
        root.removeHandler(handler)

    if log_config.get('console_output', True):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

    log_file = log_config.get('file')
    if log_file:
        # Create logs directory if it doesn't exist
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    logger.info(f"Logging configured: level={level}, timezone={timezone}, "
                f"console={log_config.get('console_output', True)}, file={log_file}")

def get_sample_config() -> Dict:
    """Return a sample configuration for reference"""
    return {
        "network": {
            "timeout_ms": 500,                  # Ping and port check timeout
            "port_range_start": 5000,           # MTConnect agents usually listen on 5000+
            "port_range_size": 20,
            "subnet_prefix": 24,                # Mask applied to each local address
            "ip_ranges": [],                    # e.g. ["10.0.60.1-10.0.60.254", "10.0.61.0/24"]
            "interfaces": [],                   # Restrict to these interface names
            "request_timeout": 5,               # Seconds allowed for an MTConnect probe
            "scan_interval_minutes": 0          # 0 = sweep once at startup
        },
        "api": {
            "enabled": True,
            "host": "0.0.0.0",
            "port": 8000
        },
        "logging": {
            "level": "INFO",
            "file": "logs/sniffer.log",
            "console_output": True,
            "timezone": "UTC"
        }
    }
