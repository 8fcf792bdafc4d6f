"""
bleprov Agent - process entry point.

Builds the provisioning coordinator from configuration, runs it once and
maps the outcome to the process exit status.
"""

import asyncio
import logging
import signal
import sys
from typing import Optional

from bleprov.core.config import Config, get_config_path, load_config
from bleprov.provisioning.descriptor import ServiceDescriptor
from bleprov.provisioning.network import NetworkManager
from bleprov.provisioning.peripheral import BlessPeripheral, Peripheral
from bleprov.provisioning.service import (
    ProvisioningCoordinator,
    ProvisioningResult,
    ProvisioningSetupError,
)

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


class ProvisioningAgent:
    """
    Wires configuration, BLE peripheral and NetworkManager together.

    The agent is responsible for:
    - Loading configuration
    - Parsing the service identifiers
    - Handling system signals
    - Reporting the result to the operator
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        peripheral: Optional[Peripheral] = None,
        network: Optional[NetworkManager] = None,
    ):
        self.config = config or Config()

        try:
            self.descriptor = ServiceDescriptor.from_config(self.config.ble)
        except ValueError as e:
            raise ProvisioningSetupError("parse service UUIDs", e) from e

        self.network = network or NetworkManager(self.config.network)
        self.peripheral = peripheral or BlessPeripheral(self.descriptor.local_name)
        self.coordinator = ProvisioningCoordinator(
            self.peripheral,
            self.network,
            descriptor=self.descriptor,
            settle_delay=self.config.provisioning.settle_delay_seconds,
        )

        self._main_task: Optional[asyncio.Task] = None

    def _setup_signal_handlers(self) -> None:
        """Cancel the run on SIGINT/SIGTERM."""
        loop = asyncio.get_running_loop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self._handle_signal, sig)
            except (NotImplementedError, RuntimeError):
                # Not supported on this platform or not on the main thread
                pass

    def _handle_signal(self, sig: signal.Signals) -> None:
        logger.info(f"Received signal {sig.name}, stopping...")
        if self._main_task and not self._main_task.done():
            self._main_task.cancel()

    async def run(self) -> ProvisioningResult:
        """
        Run provisioning once.

        Raises:
            ProvisioningSetupError: On fatal BLE setup errors
            asyncio.CancelledError: If interrupted by a signal
        """
        await self.network.initialize()
        self._setup_signal_handlers()

        self._main_task = asyncio.ensure_future(self.coordinator.run())
        result = await self._main_task
        self.report(result)
        return result

    @staticmethod
    def report(result: ProvisioningResult) -> None:
        """Surface the result to the operator."""
        if result.success:
            logger.info("Success! Wi-Fi has been configured.")
            print(f"Success! Wi-Fi has been configured for network \"{result.ssid}\".")
            print("The device should now connect to the new network.")
            print("You can reboot with 'sudo reboot' to ensure changes apply.")
        else:
            print(f"Failed to configure Wi-Fi: {result.error}", file=sys.stderr)


async def run_agent(config_path: Optional[str] = None) -> int:
    """
    Run the provisioning agent.

    Args:
        config_path: Optional path to configuration file.

    Returns:
        Process exit status.
    """
    config = load_config(config_path)
    logger.info(f"Using configuration from {config_path or get_config_path() or 'built-in defaults'}")

    try:
        agent = ProvisioningAgent(config)
        result = await agent.run()
    except ProvisioningSetupError as e:
        logger.error(str(e))
        print(f"Fatal: {e}", file=sys.stderr)
        return EXIT_FAILURE
    except asyncio.CancelledError:
        logger.info("Provisioning cancelled")
        return EXIT_INTERRUPTED

    return EXIT_SUCCESS if result.success else EXIT_FAILURE


def main() -> None:
    """Main entry point for the provisioning agent."""
    import argparse

    parser = argparse.ArgumentParser(description="Wi-Fi provisioning over Bluetooth LE")
    parser.add_argument(
        "-c", "--config",
        help="Path to configuration file",
        default=None
    )
    parser.add_argument(
        "-v", "--verbose",
        help="Log each provisioning step (advertising, credentials received, nmcli output)",
        action="store_true"
    )
    parser.add_argument(
        "--debug",
        help="Also log state transitions, ignored BLE writes and bless internals",
        action="store_true"
    )

    args = parser.parse_args()

    # Setup logging
    log_level = logging.DEBUG if args.debug else (logging.INFO if args.verbose else logging.WARNING)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    try:
        exit_code = asyncio.run(run_agent(args.config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        exit_code = EXIT_INTERRUPTED

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
