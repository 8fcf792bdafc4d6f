"""
Tests for bleprov.provisioning.peripheral module.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from bleprov.provisioning.descriptor import CredentialField, ServiceDescriptor
from bleprov.provisioning.peripheral import (
    BlessPeripheral,
    PeripheralError,
    WriteEvent,
)
from bleprov.provisioning.service import ProvisioningCoordinator, ProvisioningSetupError


@pytest.fixture
def mock_bless_server():
    """Patch BlessServer with an async mock."""
    with patch("bleprov.provisioning.peripheral.BlessServer") as server_cls:
        server = MagicMock()
        server.add_new_service = AsyncMock()
        server.add_new_characteristic = AsyncMock()
        server.start = AsyncMock(return_value=True)
        server.stop = AsyncMock(return_value=True)
        server.is_advertising = AsyncMock(return_value=False)
        server_cls.return_value = server
        yield server_cls


def characteristic(uuid):
    char = MagicMock()
    char.uuid = uuid
    return char


class TestWriteEvent:
    """Tests for WriteEvent dataclass."""

    def test_defaults(self):
        event = WriteEvent(target=CredentialField.SSID, payload=b"HomeNet")
        assert event.offset == 0
        assert event.client is None


class TestBlessPeripheral:
    """Tests for BlessPeripheral."""

    def test_not_enabled(self):
        peripheral = BlessPeripheral("PiZero-WiFi-Setup")
        with pytest.raises(PeripheralError):
            peripheral.server

    @pytest.mark.asyncio
    async def test_enable(self, mock_bless_server):
        peripheral = BlessPeripheral("PiZero-WiFi-Setup")
        await peripheral.enable()

        assert mock_bless_server.call_args.kwargs["name"] == "PiZero-WiFi-Setup"
        assert peripheral.server.write_request_func == peripheral._on_write

    @pytest.mark.asyncio
    async def test_enable_waits_for_adapter(self, mock_bless_server):
        peripheral = BlessPeripheral("PiZero-WiFi-Setup")
        await peripheral.enable()
        mock_bless_server.return_value.is_advertising.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_enable_adapter_failure(self, mock_bless_server):
        """Test a bus/adapter failure after construction is reported by enable()."""
        server = mock_bless_server.return_value
        server.is_advertising.side_effect = FileNotFoundError(2, "No such file or directory")
        peripheral = BlessPeripheral("PiZero-WiFi-Setup")

        with pytest.raises(PeripheralError, match="No such file or directory"):
            await peripheral.enable()
        with pytest.raises(PeripheralError, match="not enabled"):
            peripheral.server

    @pytest.mark.asyncio
    async def test_enable_constructor_failure(self, mock_bless_server):
        mock_bless_server.side_effect = Exception("No adapter found")
        peripheral = BlessPeripheral("PiZero-WiFi-Setup")
        with pytest.raises(PeripheralError, match="No adapter found"):
            await peripheral.enable()

    @pytest.mark.asyncio
    async def test_adapter_failure_reported_as_enable_step(self, mock_bless_server):
        """Test the coordinator attributes an adapter failure to enabling BLE."""
        server = mock_bless_server.return_value
        server.is_advertising.side_effect = FileNotFoundError(2, "No such file or directory")
        coordinator = ProvisioningCoordinator(
            BlessPeripheral("PiZero-WiFi-Setup"), MagicMock(), settle_delay=0
        )

        with pytest.raises(ProvisioningSetupError) as exc_info:
            await coordinator.run()

        assert exc_info.value.action == "enable BLE stack"
        server.add_new_service.assert_not_called()

    @pytest.mark.asyncio
    async def test_add_service(self, mock_bless_server):
        """Test service and both write-only characteristics are registered."""
        descriptor = ServiceDescriptor.default()
        peripheral = BlessPeripheral(descriptor.local_name)
        await peripheral.enable()
        await peripheral.add_service(descriptor, MagicMock())

        server = mock_bless_server.return_value
        server.add_new_service.assert_awaited_once_with(descriptor.service_uuid)
        registered = [c.args[1] for c in server.add_new_characteristic.await_args_list]
        assert registered == [descriptor.ssid_uuid, descriptor.passphrase_uuid]
        for call in server.add_new_characteristic.await_args_list:
            assert call.args[0] == descriptor.service_uuid
            assert call.args[2] == BlessPeripheral.WRITE_PROPERTIES
            assert call.args[4] == BlessPeripheral.WRITE_PERMISSIONS

    @pytest.mark.asyncio
    async def test_add_service_failure(self, mock_bless_server):
        mock_bless_server.return_value.add_new_service.side_effect = Exception("GATT rejected")
        peripheral = BlessPeripheral("PiZero-WiFi-Setup")
        await peripheral.enable()
        with pytest.raises(PeripheralError):
            await peripheral.add_service(ServiceDescriptor.default(), MagicMock())

    @pytest.mark.asyncio
    async def test_start_and_stop(self, mock_bless_server):
        descriptor = ServiceDescriptor.default()
        peripheral = BlessPeripheral(descriptor.local_name)
        await peripheral.enable()
        await peripheral.start_advertising(descriptor)
        await peripheral.stop_advertising()

        server = mock_bless_server.return_value
        server.start.assert_awaited_once()
        server.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_start_returns_false(self, mock_bless_server):
        mock_bless_server.return_value.start.return_value = False
        peripheral = BlessPeripheral("PiZero-WiFi-Setup")
        await peripheral.enable()
        with pytest.raises(PeripheralError):
            await peripheral.start_advertising(ServiceDescriptor.default())

    @pytest.mark.asyncio
    async def test_stop_failure(self, mock_bless_server):
        mock_bless_server.return_value.stop.side_effect = Exception("busy")
        peripheral = BlessPeripheral("PiZero-WiFi-Setup")
        await peripheral.enable()
        with pytest.raises(PeripheralError, match="busy"):
            await peripheral.stop_advertising()

    @pytest.mark.asyncio
    async def test_write_routing(self, mock_bless_server):
        """Test bless writes become WriteEvents for the right field."""
        descriptor = ServiceDescriptor.default()
        handler = MagicMock()
        peripheral = BlessPeripheral(descriptor.local_name)
        await peripheral.enable()
        await peripheral.add_service(descriptor, handler)

        write = peripheral.server.write_request_func
        write(characteristic("B1B0AC35-A253-4258-A5A5-A2A6A928B03B"), bytearray(b"HomeNet"))
        write(characteristic(descriptor.passphrase_uuid), bytearray(b"s3cr3t!"))

        events = [c.args[0] for c in handler.call_args_list]
        assert events[0].target == CredentialField.SSID
        assert events[0].payload == b"HomeNet"
        assert events[1].target == CredentialField.PASSPHRASE
        assert events[1].payload == b"s3cr3t!"

    @pytest.mark.asyncio
    async def test_write_unknown_characteristic(self, mock_bless_server):
        descriptor = ServiceDescriptor.default()
        handler = MagicMock()
        peripheral = BlessPeripheral(descriptor.local_name)
        await peripheral.enable()
        await peripheral.add_service(descriptor, handler)

        peripheral.server.write_request_func(
            characteristic("0000fff1-0000-1000-8000-00805f9b34fb"), b"x"
        )
        handler.assert_not_called()

    def test_write_before_service(self):
        """Test writes before registration are dropped."""
        peripheral = BlessPeripheral("PiZero-WiFi-Setup")
        peripheral._on_write(characteristic(ServiceDescriptor.default().ssid_uuid), b"HomeNet")
