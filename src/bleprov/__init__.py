"""
bleprov - Wi-Fi provisioning over Bluetooth LE

Exposes a short-lived BLE peripheral that accepts a Wi-Fi SSID and
passphrase from a companion app and applies them with NetworkManager.

Supports:
- Raspberry Pi OS / Debian with BlueZ and NetworkManager
"""

__version__ = "1.0.0"
__author__ = "bleprov Team"

from bleprov.core.agent import ProvisioningAgent
from bleprov.core.config import Config

__all__ = [
    "ProvisioningAgent",
    "Config",
    "__version__",
]
