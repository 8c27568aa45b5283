"""Discovery of SensoPlex modules over BLE."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from bleak import BleakScanner

from .protocol import SERVICE_UUID

if TYPE_CHECKING:
    from bleak.backends.device import BLEDevice
    from bleak.backends.scanner import AdvertisementData

_LOGGER = logging.getLogger(__name__)


def is_sensoplex(advertisement: AdvertisementData) -> bool:
    """Check whether an advertisement announces the SensoPlex transfer service."""
    return SERVICE_UUID.lower() in (uuid.lower() for uuid in advertisement.service_uuids)


async def discover_devices(timeout: float = 10.0) -> dict[str, BLEDevice]:
    """Scan for SensoPlex modules.

    Args:
        timeout: Scan duration in seconds (default: 10)

    Returns:
        Mapping of device address to BLEDevice
    """
    _LOGGER.debug("Scanning for SensoPlex modules for %.1fs", timeout)
    found = await BleakScanner.discover(
        timeout=timeout,
        return_adv=True,
        service_uuids=[SERVICE_UUID],
    )

    devices = {
        address: device
        for address, (device, advertisement) in found.items()
        if is_sensoplex(advertisement)
    }
    _LOGGER.info("Found %d SensoPlex module(s)", len(devices))
    return devices


async def find_sensoplex(
        should_connect: Callable[[BLEDevice], bool] | None = None,
        timeout: float = 10.0,
) -> BLEDevice | None:
    """Find the first SensoPlex module accepted by should_connect.

    Args:
        should_connect: Optional predicate over recognised SensoPlex
            devices; the first device it accepts is returned
        timeout: Scan timeout in seconds (default: 10)

    Returns:
        The accepted BLEDevice, or None if none was seen before the timeout
    """
    def _filter(device: BLEDevice, advertisement: AdvertisementData) -> bool:
        if not is_sensoplex(advertisement):
            return False
        if should_connect is not None and not should_connect(device):
            _LOGGER.debug("Skipping %s (rejected by filter)", device.address)
            return False
        return True

    device = await BleakScanner.find_device_by_filter(
        _filter,
        timeout=timeout,
        service_uuids=[SERVICE_UUID],
    )
    if device is not None:
        _LOGGER.debug("Found SensoPlex module %s (%s)", device.address, device.name)
    return device
