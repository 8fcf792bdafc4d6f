"""
BLE peripheral capability for provisioning.

The coordinator only talks to the abstract ``Peripheral`` interface; the
``BlessPeripheral`` implementation exposes the GATT service through bless
(BlueZ on Linux).
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

from bless import (
    BlessServer,
    BlessGATTCharacteristic,
    GATTCharacteristicProperties,
    GATTAttributePermissions,
)

from bleprov.provisioning.descriptor import CredentialField, ServiceDescriptor

logger = logging.getLogger(__name__)


class PeripheralError(Exception):
    """The BLE stack rejected an operation."""


@dataclass
class WriteEvent:
    """A central wrote to one of the credential characteristics."""
    target: CredentialField
    payload: bytes
    offset: int = 0
    client: Any = None


WriteHandler = Callable[[WriteEvent], None]


class Peripheral(ABC):
    """
    Abstract BLE peripheral.

    Write handlers may be invoked from any thread and must not block.
    """

    @abstractmethod
    async def enable(self) -> None:
        """Bring up the radio stack."""
        pass

    @abstractmethod
    async def add_service(self, descriptor: ServiceDescriptor, handler: WriteHandler) -> None:
        """Register the service with its two writable characteristics."""
        pass

    @abstractmethod
    async def start_advertising(self, descriptor: ServiceDescriptor) -> None:
        """Advertise the local name and service UUID."""
        pass

    @abstractmethod
    async def stop_advertising(self) -> None:
        """Tear the advertisement down."""
        pass


class BlessPeripheral(Peripheral):
    """Peripheral backed by a ``bless.BlessServer``."""

    WRITE_PROPERTIES = GATTCharacteristicProperties.write
    WRITE_PERMISSIONS = GATTAttributePermissions.writeable

    def __init__(self, local_name: str):
        self.local_name = local_name
        self._server: Optional[BlessServer] = None
        self._descriptor: Optional[ServiceDescriptor] = None
        self._handler: Optional[WriteHandler] = None

    @property
    def server(self) -> BlessServer:
        if self._server is None:
            raise PeripheralError("BLE stack not enabled")
        return self._server

    async def enable(self) -> None:
        try:
            self._server = BlessServer(name=self.local_name, loop=asyncio.get_running_loop())
            # BlueZ connects to the bus and finds the adapter in a background
            # setup task; is_advertising() awaits it so failures surface here
            await self._server.is_advertising()
        except Exception as e:
            self._server = None
            raise PeripheralError(str(e)) from e
        self._server.write_request_func = self._on_write
        logger.debug(f"BLE server created for {self.local_name}")

    async def add_service(self, descriptor: ServiceDescriptor, handler: WriteHandler) -> None:
        server = self.server
        self._descriptor = descriptor
        self._handler = handler

        try:
            await server.add_new_service(descriptor.service_uuid)
            for char_uuid in (descriptor.ssid_uuid, descriptor.passphrase_uuid):
                await server.add_new_characteristic(
                    descriptor.service_uuid,
                    char_uuid,
                    self.WRITE_PROPERTIES,
                    None,
                    self.WRITE_PERMISSIONS,
                )
        except Exception as e:
            raise PeripheralError(str(e)) from e

        logger.info(f"Registered service {descriptor.service_uuid}")

    async def start_advertising(self, descriptor: ServiceDescriptor) -> None:
        server = self.server
        try:
            started = await server.start()
        except Exception as e:
            raise PeripheralError(str(e)) from e

        # bless returns None on some backends, False only on failure
        if started is False:
            raise PeripheralError("advertisement was not started")
        logger.info(f"Advertising as {descriptor.local_name}")

    async def stop_advertising(self) -> None:
        server = self.server
        try:
            await server.stop()
        except Exception as e:
            raise PeripheralError(str(e)) from e
        logger.info("Advertising stopped")

    def _on_write(self, characteristic: BlessGATTCharacteristic, value: Any, **kwargs) -> None:
        """bless write_request_func; translates the write into a WriteEvent."""
        if self._descriptor is None or self._handler is None:
            return

        target = self._descriptor.field_for(str(characteristic.uuid))
        if target is None:
            logger.warning(f"Ignoring write to unknown characteristic {characteristic.uuid}")
            return

        self._handler(WriteEvent(
            target=target,
            payload=bytes(value or b""),
            offset=int(kwargs.get("offset", 0)),
            client=kwargs.get("device"),
        ))
