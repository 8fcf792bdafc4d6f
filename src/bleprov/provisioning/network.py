"""
Network configuration for bleprov.

Applies WiFi credentials using NetworkManager (nmcli).
"""

import asyncio
import logging
from typing import Optional, Tuple

from bleprov.core.config import NetworkConfig

logger = logging.getLogger(__name__)


class NetworkApplyError(Exception):
    """nmcli could not apply the credentials."""

    def __init__(self, output: str, cause: str, returncode: Optional[int] = None):
        self.output = output
        self.cause = cause
        self.returncode = returncode
        super().__init__(f"nmcli command failed: {output}\nError: {cause}")


class NetworkManager:
    """
    Network configuration manager.

    Uses NetworkManager (nmcli) to join a WiFi network. The command runs
    without a shell, so SSID and password are passed through verbatim.
    """

    def __init__(self, config: Optional[NetworkConfig] = None):
        self.config = config or NetworkConfig()
        self._nm_available = False

    @property
    def available(self) -> bool:
        return self._nm_available

    async def initialize(self) -> bool:
        """Check if NetworkManager is available."""
        try:
            returncode, output = await self._run_command(self.config.nmcli_path, "--version")
        except (OSError, asyncio.TimeoutError) as e:
            logger.warning(f"NetworkManager not available: {e}")
            return False

        if returncode != 0:
            logger.warning(f"NetworkManager not available: {output.strip()}")
            return False

        self._nm_available = True
        logger.info(f"NetworkManager available ({output.strip()})")
        return True

    async def _run_command(self, *args) -> Tuple[int, str]:
        """Run a command and return (returncode, combined stdout/stderr)."""
        process = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )

        try:
            stdout, _ = await asyncio.wait_for(
                process.communicate(),
                timeout=self.config.command_timeout_seconds,
            )
        except BaseException:
            # Timeout or cancellation; don't leave nmcli running behind us
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise

        return process.returncode, stdout.decode(errors="replace")

    async def connect_wifi(self, ssid: str, password: str) -> str:
        """
        Connect to a WiFi network.

        Args:
            ssid: Network name
            password: Network passphrase

        Returns:
            nmcli output

        Raises:
            NetworkApplyError: If nmcli is missing, times out or exits non-zero
        """
        cmd = [
            self.config.nmcli_path, "device", "wifi", "connect", ssid,
            "password", password,
        ]
        if self.config.interface:
            cmd.extend(["ifname", self.config.interface])

        logger.info(f"Executing: nmcli device wifi connect \"{ssid}\" password <hidden>")

        try:
            returncode, output = await self._run_command(*cmd)
        except asyncio.TimeoutError:
            raise NetworkApplyError(
                "", f"timed out after {self.config.command_timeout_seconds}s"
            ) from None
        except OSError as e:
            raise NetworkApplyError("", str(e)) from e

        if returncode != 0:
            raise NetworkApplyError(output, f"exit status {returncode}", returncode)

        logger.info(f"nmcli command successful. Output:\n{output}")
        return output
