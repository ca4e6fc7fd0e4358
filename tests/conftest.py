"""Shared pytest configuration and fixtures."""

import copy
import pytest
from pathlib import Path

from nginx_epagent.config.loader import ConfigLoader
from nginx_epagent.config.models import AgentConfig
from nginx_epagent.utils.logger import setup_logger


EXAMPLE_CONFIG_PATH = Path(__file__).parent.parent / "config" / "config.example.yaml"

STUB_STATUS_BODY = (
    "Active connections: 1\n"
    "server accepts handled requests\n"
    " 112 112 121\n"
    "Reading: 0 Writing: 1 Waiting: 0\n"
)

PLUS_STATUS = {
    "version": 8,
    "connections": {"accepted": 1000, "dropped": 2, "active": 5, "idle": 7},
    "requests": {"total": 5000, "current": 3},
    "ssl": {"handshakes": 40, "handshakes_failed": 1, "session_reuses": 10},
    "server_zones": {
        "site1": {
            "processing": 2,
            "requests": 3000,
            "responses": {"1xx": 0, "2xx": 2800, "3xx": 100, "4xx": 90, "5xx": 10, "total": 3000},
            "discarded": 0,
            "received": 100000,
            "sent": 900000,
        },
    },
    "upstreams": {
        "backend": [
            {
                "id": 0,
                "server": "10.0.0.1:80",
                "backup": False,
                "weight": 5,
                "state": "up",
                "active": 1,
                "requests": 600,
                "responses": {"1xx": 0, "2xx": 580, "3xx": 10, "4xx": 8, "5xx": 2, "total": 600},
                "sent": 50000,
                "received": 400000,
                "fails": 1,
                "unavail": 0,
                "health_checks": {"checks": 100, "fails": 0, "unhealthy": 0},
            },
            {
                "id": 1,
                "server": "10.0.0.2:80",
                "backup": True,
                "weight": 1,
                "state": "unavail",
                "active": 0,
                "requests": 10,
                "responses": {"1xx": 0, "2xx": 10, "3xx": 0, "4xx": 0, "5xx": 0, "total": 10},
                "sent": 900,
                "received": 8000,
                "fails": 4,
                "unavail": 2,
                "health_checks": {"checks": 100, "fails": 3, "unhealthy": 1},
            },
        ],
    },
}


@pytest.fixture
def logger():
    """Create logger for tests."""
    return setup_logger("test")


@pytest.fixture
def agent_config():
    """Minimal forwarder configuration with a fixed source."""
    return AgentConfig(
        monitoring={"poll_interval_seconds": 15, "source": "web-01"},
        nginx={"url": "http://127.0.0.1/nginx_status"},
        epagent={"host": "epagent.local", "port": 8080},
    )


@pytest.fixture
def example_config():
    """Configuration shipped in config/config.example.yaml."""
    return ConfigLoader.load_from_file(str(EXAMPLE_CONFIG_PATH))


@pytest.fixture
def stub_status_body():
    return STUB_STATUS_BODY


@pytest.fixture
def plus_status():
    """Fresh deep copy of an nginx plus status document."""
    return copy.deepcopy(PLUS_STATUS)
