"""
Shared pytest fixtures for MTConnect Sniffer tests.

Provides fixtures for:
- Signal recording (device_found / run_completed)
- Logging isolation for tests that call setup_logging
- Config files written to a temporary directory
"""
import logging

import pytest
import yaml

from helpers import Recorder


# ============================================================================
# Core Fixtures
# ============================================================================

@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def restore_logging():
    """Undo handler and level changes made by setup_logging"""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            handler.close()
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


# ============================================================================
# Config Fixtures
# ============================================================================

@pytest.fixture
def write_config(tmp_path):
    """Write a config mapping to YAML and return its path"""
    def _write(config, name="config.yaml"):
        path = tmp_path / name
        path.write_text(yaml.safe_dump(config))
        return str(path)
    return _write


@pytest.fixture
def minimal_config():
    return {
        "network": {"ip_ranges": ["127.0.0.1"]},
        "api": {"enabled": False},
        "logging": {"file": None, "console_output": False},
    }
