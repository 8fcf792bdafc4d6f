"""
BLE provisioning module for bleprov.

Provides Wi-Fi credential provisioning:
- GATT service with SSID and passphrase characteristics
- Thread-safe credential collection
- NetworkManager credential application
"""

from bleprov.provisioning.credentials import CompletionSignal, CredentialStore
from bleprov.provisioning.descriptor import CredentialField, ServiceDescriptor, parse_uuid
from bleprov.provisioning.network import NetworkApplyError, NetworkManager
from bleprov.provisioning.peripheral import (
    BlessPeripheral,
    Peripheral,
    PeripheralError,
    WriteEvent,
)
from bleprov.provisioning.service import (
    ProvisioningCoordinator,
    ProvisioningResult,
    ProvisioningSetupError,
    ProvisioningState,
)

__all__ = [
    "CompletionSignal",
    "CredentialStore",
    "CredentialField",
    "ServiceDescriptor",
    "parse_uuid",
    "NetworkApplyError",
    "NetworkManager",
    "BlessPeripheral",
    "Peripheral",
    "PeripheralError",
    "WriteEvent",
    "ProvisioningCoordinator",
    "ProvisioningResult",
    "ProvisioningSetupError",
    "ProvisioningState",
]
