"""
GATT service descriptor for Wi-Fi provisioning.

The identifiers must match the companion application exactly, otherwise
it will not discover the service while scanning.
"""

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from bleprov.core.config import (
    BLEConfig,
    DEFAULT_LOCAL_NAME,
    DEFAULT_SERVICE_UUID,
    DEFAULT_SSID_UUID,
    DEFAULT_PASSPHRASE_UUID,
)


class CredentialField(Enum):
    """Credential slot targeted by a characteristic write."""
    SSID = "ssid"
    PASSPHRASE = "passphrase"


def parse_uuid(value: str) -> str:
    """
    Parse an identifier in canonical UUID string form.

    Returns:
        Lowercase canonical form, e.g. ``a0a8e453-562a-...``

    Raises:
        ValueError: If the value is not a valid UUID string
    """
    if not isinstance(value, str):
        raise ValueError(f"UUID must be a string, got {type(value).__name__}")
    try:
        return str(uuid.UUID(value.strip()))
    except ValueError:
        raise ValueError(f"invalid UUID {value!r}") from None


@dataclass(frozen=True)
class ServiceDescriptor:
    """Service identifier, the two characteristic identifiers and the advertised name."""
    service_uuid: str
    ssid_uuid: str
    passphrase_uuid: str
    local_name: str = DEFAULT_LOCAL_NAME

    @classmethod
    def parse(
        cls,
        service_uuid: str,
        ssid_uuid: str,
        passphrase_uuid: str,
        local_name: str = DEFAULT_LOCAL_NAME,
    ) -> "ServiceDescriptor":
        """Build a descriptor from UUID strings, normalising each one."""
        return cls(
            service_uuid=parse_uuid(service_uuid),
            ssid_uuid=parse_uuid(ssid_uuid),
            passphrase_uuid=parse_uuid(passphrase_uuid),
            local_name=local_name,
        )

    @classmethod
    def default(cls) -> "ServiceDescriptor":
        return cls.parse(DEFAULT_SERVICE_UUID, DEFAULT_SSID_UUID, DEFAULT_PASSPHRASE_UUID)

    @classmethod
    def from_config(cls, config: BLEConfig) -> "ServiceDescriptor":
        return cls.parse(
            config.service_uuid,
            config.ssid_uuid,
            config.passphrase_uuid,
            local_name=config.local_name,
        )

    @property
    def characteristics(self) -> Dict[str, CredentialField]:
        """Characteristic UUID -> credential field it carries."""
        return {
            self.ssid_uuid: CredentialField.SSID,
            self.passphrase_uuid: CredentialField.PASSPHRASE,
        }

    def field_for(self, characteristic_uuid: str) -> Optional[CredentialField]:
        """Map a written characteristic UUID to its credential field."""
        try:
            key = parse_uuid(characteristic_uuid)
        except ValueError:
            return None
        return self.characteristics.get(key)
