"""
Credential collection state for BLE provisioning.

Write callbacks from the peripheral stack may run on the event loop or on a
backend thread, so both the store and the completion signal are safe to use
from any thread.
"""

import asyncio
import logging
import threading
from typing import Callable, Optional, Tuple

logger = logging.getLogger(__name__)


class CompletionSignal:
    """
    One-shot wake-up for the coordinator.

    ``fire()`` never blocks and may be called any number of times; only the
    first call wakes the waiter, later calls are dropped.
    """

    def __init__(self):
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._event: Optional[asyncio.Event] = None
        self._lock = threading.Lock()
        self._fired = False

    @property
    def fired(self) -> bool:
        with self._lock:
            return self._fired

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        """Attach the loop the waiter runs on. Must be called from that loop."""
        with self._lock:
            self._loop = loop
            self._event = asyncio.Event()
            if self._fired:
                self._event.set()

    def fire(self) -> bool:
        """
        Signal completion.

        Returns:
            True if this call delivered the wake-up, False if dropped
        """
        with self._lock:
            if self._fired:
                return False
            self._fired = True
            loop, event = self._loop, self._event

        if loop is not None and event is not None:
            try:
                loop.call_soon_threadsafe(event.set)
            except RuntimeError:
                # Loop already closed; nobody is left waiting
                logger.debug("Completion fired after event loop closed")
        return True

    async def wait(self) -> None:
        """Suspend until the first ``fire()``."""
        if self._event is None:
            self.bind(asyncio.get_running_loop())
        await self._event.wait()


class CredentialStore:
    """
    Pending SSID and passphrase.

    Setters overwrite unconditionally (last write wins). After every set the
    store re-checks readiness and calls ``on_ready`` when both fields are
    non-empty.
    """

    def __init__(self, on_ready: Optional[Callable[[], None]] = None):
        self._lock = threading.Lock()
        self._ssid: Optional[bytes] = None
        self._passphrase: Optional[bytes] = None
        self._on_ready = on_ready

    def set_ssid(self, value: bytes) -> bool:
        with self._lock:
            self._ssid = bytes(value)
            ready = self._ready_locked()
        return self._after_set(ready)

    def set_passphrase(self, value: bytes) -> bool:
        with self._lock:
            self._passphrase = bytes(value)
            ready = self._ready_locked()
        return self._after_set(ready)

    def is_ready(self) -> bool:
        with self._lock:
            return self._ready_locked()

    def credentials(self) -> Tuple[bytes, bytes]:
        """Consistent snapshot of (ssid, passphrase); unset fields are empty."""
        with self._lock:
            return self._ssid or b"", self._passphrase or b""

    def _ready_locked(self) -> bool:
        return bool(self._ssid) and bool(self._passphrase)

    def _after_set(self, ready: bool) -> bool:
        if ready and self._on_ready is not None:
            self._on_ready()
        return ready
