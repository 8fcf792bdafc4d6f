"""
Pytest configuration and shared fixtures for bleprov tests.
"""

import os
import sys
import tempfile
from pathlib import Path
from typing import Generator
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bleprov.provisioning.peripheral import Peripheral, WriteEvent  # noqa: E402


# ============================================================================
# Temporary Directory Fixtures
# ============================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_config_file(temp_dir: Path) -> Path:
    """Create a temporary config file."""
    config_path = temp_dir / "config.yaml"
    config_path.write_text("""
ble:
  local_name: Test-Setup
network:
  interface: wlan0
  command_timeout_seconds: 5
provisioning:
  settle_delay_seconds: 0
""")
    return config_path


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def sample_config():
    """Return a sample configuration dictionary."""
    return {
        "ble": {
            "local_name": "Kitchen-Hub-Setup",
            "service_uuid": "A0A8E453-562A-49A3-A2E4-29A8E88B0E9B",
            "ssid_uuid": "B1B0AC35-A253-4258-A5A5-A2A6A928B03B",
            "passphrase_uuid": "C2C1BD48-B363-4369-B2B9-B3B8B5B6B4B3",
        },
        "network": {
            "nmcli_path": "/usr/bin/nmcli",
            "interface": "wlan0",
            "command_timeout_seconds": 45,
        },
        "provisioning": {
            "settle_delay_seconds": 0.5,
        },
    }


# ============================================================================
# Mock BLE / Network Fixtures
# ============================================================================

class FakePeripheral(Peripheral):
    """In-memory peripheral; tests push writes through ``write()``."""

    def __init__(self):
        self.enable_mock = AsyncMock()
        self.add_service_mock = AsyncMock()
        self.start_mock = AsyncMock()
        self.stop_mock = AsyncMock()
        self.handler = None
        self.descriptor = None
        self.advertising = False

    async def enable(self) -> None:
        await self.enable_mock()

    async def add_service(self, descriptor, handler) -> None:
        await self.add_service_mock(descriptor, handler)
        self.descriptor = descriptor
        self.handler = handler

    async def start_advertising(self, descriptor) -> None:
        await self.start_mock(descriptor)
        self.advertising = True

    async def stop_advertising(self) -> None:
        await self.stop_mock()
        self.advertising = False

    def write(self, target, payload: bytes) -> None:
        self.handler(WriteEvent(target=target, payload=payload))


@pytest.fixture
def fake_peripheral() -> FakePeripheral:
    """Peripheral that records calls instead of touching the radio."""
    return FakePeripheral()


@pytest.fixture
def mock_network():
    """NetworkManager stand-in whose connect_wifi succeeds."""
    network = MagicMock()
    network.initialize = AsyncMock(return_value=True)
    network.connect_wifi = AsyncMock(return_value="Device 'wlan0' successfully activated.")
    return network


# ============================================================================
# Clean Environment Fixture
# ============================================================================

@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Ensure clean environment for each test."""
    # Remove any bleprov-specific env vars that might interfere
    for key in list(os.environ.keys()):
        if key.startswith("BLEPROV_"):
            monkeypatch.delenv(key, raising=False)
