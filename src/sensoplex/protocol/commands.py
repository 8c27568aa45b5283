"""Command codes and command builders for the SP-10BN module."""

from __future__ import annotations

from enum import IntEnum

from ..models.enums import LEDState, SensorOption
from .framing import encode_frame


class CommandCode(IntEnum):
    """Command codes for the SensoPlex packet interface.

    Responses carry the same code as the command they answer.
    """

    # Status commands
    STATUS = 0x30                 # Module status (model, charger, battery, errors)
    VERSION = 0x34                # Firmware version
    GET_CONFIG = 0x35             # Module configuration

    # Data logging commands
    LOG_GET_STATUS = 0x58         # On-module log status
    LOG_CLEAR = 0x59              # Erase the on-module log
    LOG_ENABLE = 0x5E             # 2nd byte: 0=disable, 1=enable

    # Data streaming commands
    STREAM_RECORD = 0x60          # Streamed sensor record (module to host only)
    STREAM_GET_CONFIG = 0x61      # Read streaming field selection
    STREAM_SET_CONFIG = 0x62      # Write streaming field selection
    STREAM_ENABLE = 0x63          # 2nd byte: 0=disable, 1=enable

    # Misc commands
    SET_LED = 0x80                # 2nd byte: bit0=green, bit1=red, bit7=system control
    GET_RTC = 0x83                # Module real-time clock
    GET_PRESSURE = 0x86           # Barometric pressure
    GET_TEMPERATURE = 0x87        # Temperature


# BLE service and characteristics of the SP-10BN transfer service
SERVICE_UUID = "01000000-0000-0000-0000-000000000080"
NOTIFY_CHARACTERISTIC_UUID = "02000000-0000-0000-0000-000000000080"
INDICATE_CHARACTERISTIC_UUID = "03000000-0000-0000-0000-000000000080"  # Not used
WRITE_CHARACTERISTIC_UUID = "04000000-0000-0000-0000-000000000080"

# SET_LED argument bits
LED_GREEN = 0x01
LED_RED = 0x02
LED_SYSTEM_CONTROL = 0x80

_LED_ARGS = {
    LEDState.SYSTEM_CONTROL: LED_SYSTEM_CONTROL,
    LEDState.GREEN: LED_GREEN,
    LEDState.RED: LED_RED,
}


def build_status_command() -> bytes:
    """Build command to read the module status."""
    return encode_frame(CommandCode.STATUS)


def build_version_command() -> bytes:
    """Build command to read the firmware version."""
    return encode_frame(CommandCode.VERSION)


def build_get_config_command() -> bytes:
    """Build command to read the module configuration."""
    return encode_frame(CommandCode.GET_CONFIG)


def build_log_status_command() -> bytes:
    """Build command to read the on-module log status."""
    return encode_frame(CommandCode.LOG_GET_STATUS)


def build_log_clear_command() -> bytes:
    """Build command to erase the on-module log."""
    return encode_frame(CommandCode.LOG_CLEAR)


def build_log_enable_command(enable: bool) -> bytes:
    """Build command to enable or disable on-module logging."""
    return encode_frame(CommandCode.LOG_ENABLE, bytes([1 if enable else 0]))


def build_stream_get_config_command() -> bytes:
    """Build command to read the streaming field selection."""
    return encode_frame(CommandCode.STREAM_GET_CONFIG)


def build_stream_set_config_command(options: SensorOption | int) -> bytes:
    """Build command to select which fields the module streams.

    Args:
        options: SensorOption bitmask

    Returns:
        Frame carrying 0x62 + options (uint16, little-endian)
    """
    if not 0 <= int(options) <= 0xFFFF:
        raise ValueError(f"Options out of range: {options} (must be 0-0xFFFF)")
    return encode_frame(
        CommandCode.STREAM_SET_CONFIG,
        int(options).to_bytes(2, byteorder="little"),
    )


def build_stream_enable_command(enable: bool) -> bytes:
    """Build command to start or stop streaming sensor records."""
    return encode_frame(CommandCode.STREAM_ENABLE, bytes([1 if enable else 0]))


def build_set_led_command(state: LEDState) -> bytes:
    """Build command to set the LED.

    Args:
        state: LEDState (SYSTEM_CONTROL hands the LED back to the firmware)
    """
    return encode_frame(CommandCode.SET_LED, bytes([led_argument(state)]))


def led_argument(state: LEDState) -> int:
    """Get the SET_LED argument byte for an LED state."""
    try:
        return _LED_ARGS[LEDState(state)]
    except (ValueError, KeyError) as e:
        raise ValueError(f"Unknown LED state: {state}") from e


def build_get_rtc_command() -> bytes:
    """Build command to read the module real-time clock."""
    return encode_frame(CommandCode.GET_RTC)


def build_get_pressure_command() -> bytes:
    """Build command to read barometric pressure."""
    return encode_frame(CommandCode.GET_PRESSURE)


def build_get_temperature_command() -> bytes:
    """Build command to read temperature."""
    return encode_frame(CommandCode.GET_TEMPERATURE)
