"""
Provisioning coordinator for bleprov.

Advertises the provisioning service, collects the SSID and passphrase
written by the companion app, then applies them with NetworkManager.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from bleprov.provisioning.credentials import CompletionSignal, CredentialStore
from bleprov.provisioning.descriptor import CredentialField, ServiceDescriptor
from bleprov.provisioning.network import NetworkApplyError, NetworkManager
from bleprov.provisioning.peripheral import Peripheral, PeripheralError, WriteEvent

logger = logging.getLogger(__name__)


class ProvisioningState(Enum):
    """Coordinator state."""
    IDLE = "idle"
    ADVERTISING = "advertising"
    COLLECTING = "collecting"
    APPLYING = "applying"
    DONE = "done"
    FAILED = "failed"


class ProvisioningSetupError(Exception):
    """Fatal BLE setup or teardown failure."""

    def __init__(self, action: str, cause: Exception):
        self.action = action
        self.cause = cause
        super().__init__(f"failed to {action}: {cause}")


@dataclass
class ProvisioningResult:
    """Outcome of the apply step."""
    success: bool
    ssid: str
    output: str = ""
    error: Optional[str] = None


class ProvisioningCoordinator:
    """
    Single-shot provisioning state machine.

    Workflow:
    1. Enable the BLE stack and register the service
    2. Advertise and wait until both credentials were written
    3. Stop advertising
    4. Apply the credentials
    """

    def __init__(
        self,
        peripheral: Peripheral,
        network: NetworkManager,
        descriptor: Optional[ServiceDescriptor] = None,
        settle_delay: float = 1.0,
    ):
        self.descriptor = descriptor or ServiceDescriptor.default()
        self.settle_delay = settle_delay

        self._peripheral = peripheral
        self._network = network
        self._signal = CompletionSignal()
        self._store = CredentialStore(on_ready=self._signal.fire)
        self._state = ProvisioningState.IDLE
        self._started = False
        self._state_lock = threading.RLock()

        # Callbacks
        self._on_state_change: Optional[Callable[[ProvisioningState], None]] = None

    @property
    def state(self) -> ProvisioningState:
        return self._state

    @property
    def store(self) -> CredentialStore:
        return self._store

    @property
    def signal(self) -> CompletionSignal:
        return self._signal

    def on_state_change(self, callback: Callable[[ProvisioningState], None]) -> None:
        """Set callback for state changes."""
        self._on_state_change = callback

    def _set_state(self, state: ProvisioningState) -> None:
        """Update provisioning state."""
        with self._state_lock:
            self._state = state
            logger.debug(f"Provisioning state: {state.value}")

            if self._on_state_change:
                self._on_state_change(state)

    def handle_write(self, event: WriteEvent) -> None:
        """
        Route a characteristic write to the credential store.

        Called from the peripheral stack, possibly off the event loop thread.
        """
        with self._state_lock:
            if self._state not in (ProvisioningState.ADVERTISING, ProvisioningState.COLLECTING):
                logger.debug(f"Ignoring {event.target.value} write in state {self._state.value}")
                return

            if self._state == ProvisioningState.ADVERTISING:
                self._set_state(ProvisioningState.COLLECTING)

            if event.target == CredentialField.SSID:
                logger.info(f"Received SSID: {event.payload.decode(errors='replace')}")
                self._store.set_ssid(event.payload)
            else:
                # Never log the passphrase itself
                logger.info("Received password.")
                self._store.set_passphrase(event.payload)

    async def _step(self, action: str, coro) -> None:
        try:
            await coro
        except PeripheralError as e:
            self._set_state(ProvisioningState.FAILED)
            raise ProvisioningSetupError(action, e) from e

    async def start(self) -> None:
        """
        Enable BLE, register the service and start advertising.

        Raises:
            ProvisioningSetupError: On any setup failure
        """
        self._signal.bind(asyncio.get_running_loop())

        logger.info("1. Enabling Bluetooth adapter...")
        await self._step("enable BLE stack", self._peripheral.enable())

        logger.info("2. Setting up BLE service and characteristics...")
        await self._step(
            "add BLE service",
            self._peripheral.add_service(self.descriptor, self.handle_write),
        )

        logger.info("3. Starting BLE advertisement...")
        self._set_state(ProvisioningState.ADVERTISING)
        await self._step(
            "start advertising",
            self._peripheral.start_advertising(self.descriptor),
        )
        logger.info("   ...waiting for connection. Open the companion app to scan.")

    async def apply(self) -> ProvisioningResult:
        """
        Stop advertising and apply the collected credentials.

        Raises:
            ProvisioningSetupError: If advertising cannot be stopped
        """
        self._set_state(ProvisioningState.APPLYING)

        logger.info("4. Both SSID and Password received. Stopping advertisement.")
        await self._step("stop advertising", self._peripheral.stop_advertising())

        # Let in-flight BLE operations finalize
        if self.settle_delay > 0:
            await asyncio.sleep(self.settle_delay)

        raw_ssid, raw_passphrase = self._store.credentials()
        ssid = raw_ssid.decode("utf-8", errors="replace")
        passphrase = raw_passphrase.decode("utf-8", errors="replace")

        logger.info("5. Attempting to configure Wi-Fi...")
        try:
            output = await self._network.connect_wifi(ssid, passphrase)
        except NetworkApplyError as e:
            logger.error(f"Failed to configure Wi-Fi: {e}")
            self._set_state(ProvisioningState.FAILED)
            return ProvisioningResult(success=False, ssid=ssid, output=e.output, error=str(e))

        self._set_state(ProvisioningState.DONE)
        return ProvisioningResult(success=True, ssid=ssid, output=output)

    async def run(self) -> ProvisioningResult:
        """
        Run the provisioning workflow.

        Waits indefinitely for both credentials.

        Returns:
            Result of applying the credentials
        """
        if self._started:
            raise RuntimeError("Provisioning coordinator can only run once")
        self._started = True

        await self.start()
        await self._signal.wait()
        return await self.apply()
