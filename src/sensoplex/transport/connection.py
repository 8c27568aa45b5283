"""BLE connection management."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from bleak import BleakClient, BleakScanner
from bleak_retry_connector import BleakClientWithServiceCache, establish_connection

from ..exceptions import BLEConnectionError, BLETimeoutError
from ..protocol import (
    NOTIFY_CHARACTERISTIC_UUID,
    SERVICE_UUID,
    WRITE_CHARACTERISTIC_UUID,
)

if TYPE_CHECKING:
    from bleak.backends.device import BLEDevice

_LOGGER = logging.getLogger(__name__)


class BLEConnection:
    """Manages the BLE link to an SP-10BN module.

    Features:
    - Automatic retry logic with bleak-retry-connector
    - Service caching for faster reconnections
    - Raw notification bytes handed to ``on_data`` in arrival order
    - ``on_disconnect`` called when the link drops
    """

    def __init__(
            self,
            address: str | None = None,
            ble_device: BLEDevice | None = None,
            *,
            on_data: Callable[[bytes], None] | None = None,
            on_disconnect: Callable[[], None] | None = None,
            timeout: float = 10.0,
            max_attempts: int = 4,
            use_services_cache: bool = True,
    ):
        """Initialize BLE connection manager.

        Args:
            address: Device address (optional if ble_device is given)
            ble_device: Optional BLEDevice, e.g. from a scan
            on_data: Called with every notification payload
            on_disconnect: Called when the device disconnects
            timeout: Connection timeout in seconds (default: 10)
            max_attempts: Maximum connection attempts for bleak-retry-connector (default: 4)
            use_services_cache: Enable GATT service caching for faster reconnections (default: True)
        """
        self.address = address or (ble_device.address if ble_device else None)
        self.ble_device = ble_device
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.use_services_cache = use_services_cache
        self.on_data = on_data
        self.on_disconnect = on_disconnect

        self._client: BleakClient | None = None
        self._notifying = False

    async def __aenter__(self) -> BLEConnection:
        """Connect to device (context manager entry)."""
        await self.connect()
        await self.start_notifications()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Disconnect from device (context manager exit)."""
        await self.disconnect()

    async def connect(self, ble_device: BLEDevice | None = None) -> None:
        """Establish BLE connection to device.

        Args:
            ble_device: Device to connect to (overrides the one given at init)

        Raises:
            BLEConnectionError: If connection fails
            BLETimeoutError: If connection times out
        """
        if self._client and self._client.is_connected:
            return  # Already connected

        if ble_device is not None:
            self.ble_device = ble_device
            self.address = ble_device.address

        try:
            _LOGGER.debug(
                "Connecting to %s with bleak-retry-connector (max_attempts=%d)",
                self.address,
                self.max_attempts
            )

            # Resolve address to BLEDevice if not provided
            if self.ble_device:
                device = self.ble_device
            else:
                if not self.address:
                    raise BLEConnectionError("No device address or BLEDevice given")
                device = await BleakScanner.find_device_by_address(
                    self.address,
                    timeout=self.timeout
                )
                if device is None:
                    raise BLEConnectionError(
                        f"Device {self.address} not found during scan"
                    )

            self._client = await establish_connection(
                client_class=BleakClientWithServiceCache,
                device=device,
                name=device.name or device.address,
                disconnected_callback=self._disconnected_callback,
                max_attempts=self.max_attempts,
                use_services_cache=self.use_services_cache,
                timeout=self.timeout,
            )

            _LOGGER.debug("Connected to %s", self.address)

        except asyncio.TimeoutError as e:
            raise BLETimeoutError(
                f"Connection timeout after {self.timeout}s"
            ) from e
        except BLEConnectionError:
            raise
        except Exception as e:
            raise BLEConnectionError(
                f"Failed to connect: {e}"
            ) from e

    async def start_notifications(self) -> None:
        """Subscribe to the notify characteristic.

        Raises:
            BLEConnectionError: If not connected or the transfer service is missing
        """
        if not self._client or not self._client.is_connected:
            raise BLEConnectionError("Not connected")

        service = self._client.services.get_service(SERVICE_UUID)
        if not service:
            raise BLEConnectionError(
                f"Service {SERVICE_UUID} not found"
            )

        try:
            await self._client.start_notify(
                NOTIFY_CHARACTERISTIC_UUID,
                self._notification_callback,
            )
        except Exception as e:
            raise BLEConnectionError(f"Failed to start notifications: {e}") from e

        self._notifying = True
        _LOGGER.debug("Notifications started")

    async def disconnect(self) -> None:
        """Disconnect from device."""
        if self._client and self._client.is_connected:
            try:
                _LOGGER.debug("Disconnecting from %s", self.address)
                if self._notifying:
                    await self._client.stop_notify(NOTIFY_CHARACTERISTIC_UUID)
                await self._client.disconnect()
            except Exception as e:
                _LOGGER.warning("Error during disconnect: %s", e)
            finally:
                self._client = None
                self._notifying = False

    def _disconnected_callback(self, client: BleakClient) -> None:
        _LOGGER.debug("Device %s disconnected", self.address)
        self._notifying = False
        if self.on_disconnect:
            self.on_disconnect()

    def _notification_callback(self, sender, data: bytearray) -> None:
        """Handle incoming BLE notifications.

        Args:
            sender: Characteristic that sent notification
            data: Notification data
        """
        if self.on_data:
            self.on_data(bytes(data))

    async def write_command(self, data: bytes) -> None:
        """Write an encoded frame to the module.

        Args:
            data: Frame bytes to write

        Raises:
            BLEConnectionError: If not connected or write fails
        """
        if not self._client or not self._client.is_connected:
            raise BLEConnectionError("Not connected")

        try:
            await self._client.write_gatt_char(
                WRITE_CHARACTERISTIC_UUID,
                data,
                response=True,  # Wait for write confirmation
            )
        except Exception as e:
            raise BLEConnectionError(f"Write failed: {e}") from e

    @property
    def is_connected(self) -> bool:
        """Check if currently connected to device."""
        return self._client is not None and self._client.is_connected
