"""
Configuration management for bleprov.

Handles loading and access to configuration settings.
"""

import logging
import os
import yaml
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List
from pathlib import Path

logger = logging.getLogger(__name__)

# Environment variable pointing at an explicit config file
CONFIG_ENV_VAR = "BLEPROV_CONFIG"

# Default configuration paths
CONFIG_PATHS = [
    "/etc/bleprov/config.yaml",
    os.path.expanduser("~/.config/bleprov/config.yaml"),
    "config.yaml",
]

# Identifiers shared with the companion application
DEFAULT_LOCAL_NAME = "PiZero-WiFi-Setup"
DEFAULT_SERVICE_UUID = "A0A8E453-562A-49A3-A2E4-29A8E88B0E9B"
DEFAULT_SSID_UUID = "B1B0AC35-A253-4258-A5A5-A2A6A928B03B"
DEFAULT_PASSPHRASE_UUID = "C2C1BD48-B363-4369-B2B9-B3B8B5B6B4B3"


@dataclass
class BLEConfig:
    """Advertised name and GATT identifiers."""
    local_name: str = DEFAULT_LOCAL_NAME
    service_uuid: str = DEFAULT_SERVICE_UUID
    ssid_uuid: str = DEFAULT_SSID_UUID
    passphrase_uuid: str = DEFAULT_PASSPHRASE_UUID


@dataclass
class NetworkConfig:
    """NetworkManager invocation settings."""
    nmcli_path: str = "nmcli"
    interface: str = ""  # empty lets nmcli pick the wifi device
    command_timeout_seconds: Optional[float] = None  # None leaves the deadline to nmcli


@dataclass
class ProvisioningConfig:
    """Coordinator settings."""
    settle_delay_seconds: float = 1.0


@dataclass
class Config:
    """Main configuration class."""
    ble: BLEConfig = field(default_factory=BLEConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    provisioning: ProvisioningConfig = field(default_factory=ProvisioningConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create Config from dictionary."""
        config = cls()

        if "ble" in data:
            config.ble = BLEConfig(**data["ble"])

        if "network" in data:
            config.network = NetworkConfig(**data["network"])

        if "provisioning" in data:
            config.provisioning = ProvisioningConfig(**data["provisioning"])

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert Config to dictionary."""
        return {
            "ble": {
                "local_name": self.ble.local_name,
                "service_uuid": self.ble.service_uuid,
                "ssid_uuid": self.ble.ssid_uuid,
                "passphrase_uuid": self.ble.passphrase_uuid,
            },
            "network": {
                "nmcli_path": self.network.nmcli_path,
                "interface": self.network.interface,
                "command_timeout_seconds": self.network.command_timeout_seconds,
            },
            "provisioning": {
                "settle_delay_seconds": self.provisioning.settle_delay_seconds,
            },
        }

    def save(self, path: Optional[str] = None):
        """Save configuration to file."""
        if path is None:
            path = CONFIG_PATHS[0]

        # Ensure directory exists
        Path(path).parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False)


def _candidate_paths(path: Optional[str]) -> List[str]:
    if path is not None:
        return [path]

    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return [env_path]

    return CONFIG_PATHS


def load_config(path: Optional[str] = None) -> Config:
    """
    Load configuration from file.

    Args:
        path: Path to config file. If None, checks $BLEPROV_CONFIG and
            then the default locations.

    Returns:
        Config object with loaded or default settings.
    """
    for config_path in _candidate_paths(path):
        if os.path.exists(config_path):
            try:
                with open(config_path) as f:
                    data = yaml.safe_load(f)
                    if data:
                        logger.debug(f"Loaded config from {config_path}")
                        return Config.from_dict(data)
            except (OSError, TypeError, yaml.YAMLError) as e:
                logger.warning(f"Failed to load config from {config_path}: {e}")

    # Return default config
    return Config()


def get_config_path() -> Optional[str]:
    """Get the path to the active config file."""
    for path in _candidate_paths(None):
        if os.path.exists(path):
            return path
    return None
