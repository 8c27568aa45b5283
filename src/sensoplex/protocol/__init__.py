"""SensoPlex packet interface implementation."""

from .commands import (
    INDICATE_CHARACTERISTIC_UUID,
    NOTIFY_CHARACTERISTIC_UUID,
    SERVICE_UUID,
    WRITE_CHARACTERISTIC_UUID,
    CommandCode,
    build_get_config_command,
    build_get_pressure_command,
    build_get_rtc_command,
    build_get_temperature_command,
    build_log_clear_command,
    build_log_enable_command,
    build_log_status_command,
    build_set_led_command,
    build_status_command,
    build_stream_enable_command,
    build_stream_get_config_command,
    build_stream_set_config_command,
    build_version_command,
)
from .framing import (
    BYTE_STUFFING,
    END_OF_PACKET,
    MAX_PAYLOAD_SIZE,
    START_OF_PACKET,
    FrameDecoder,
    Packet,
    calculate_checksum,
    decode_frame,
    encode_frame,
)
from .responses import RESPONSE_TYPES, DecodedRecord, decode_packet

__all__ = [
    "CommandCode",
    "SERVICE_UUID",
    "NOTIFY_CHARACTERISTIC_UUID",
    "WRITE_CHARACTERISTIC_UUID",
    "INDICATE_CHARACTERISTIC_UUID",
    "START_OF_PACKET",
    "END_OF_PACKET",
    "BYTE_STUFFING",
    "MAX_PAYLOAD_SIZE",
    "Packet",
    "FrameDecoder",
    "calculate_checksum",
    "encode_frame",
    "decode_frame",
    "DecodedRecord",
    "RESPONSE_TYPES",
    "decode_packet",
    "build_status_command",
    "build_version_command",
    "build_get_config_command",
    "build_log_status_command",
    "build_log_clear_command",
    "build_log_enable_command",
    "build_stream_get_config_command",
    "build_stream_set_config_command",
    "build_stream_enable_command",
    "build_set_led_command",
    "build_get_rtc_command",
    "build_get_pressure_command",
    "build_get_temperature_command",
]
