"""SensoPlex BLE Protocol Package.

  Pure Python package for communicating with SensoPlex SP-10BN sensor modules.
  """

from .discovery import discover_devices, find_sensoplex
from .exceptions import (
    BLEConnectionError,
    BLETimeoutError,
    CommandAlreadyPendingError,
    CommandError,
    CommandTimeoutError,
    DecodeError,
    FrameChecksumError,
    FrameError,
    FrameTruncatedError,
    ProtocolError,
    SensoPlexError,
    TruncatedPayloadError,
    UnknownCommandError,
)
from .export import delete_serialized_sensor_data, sample_to_row, serialize_sensor_data
from .models import (
    ALL_SENSOR_OPTIONS,
    ChargerState,
    CommandAck,
    FirmwareVersion,
    LEDState,
    LogStatus,
    ModuleConfig,
    ModuleErrorType,
    ModuleStatus,
    Pressure,
    Quaternion,
    RotationMatrix,
    SensorOption,
    SensorSample,
    SessionState,
    StreamConfig,
    SystemTime,
    Temperature,
    Vector3,
)
from .protocol import (
    SERVICE_UUID,
    CommandCode,
    FrameDecoder,
    Packet,
    decode_frame,
    decode_packet,
    encode_frame,
)
from .session import SensoPlexSession
from .store import SensorRecordStore

__version__ = "0.1.0"

__all__ = [
    # Main API
    "SensoPlexSession",
    "discover_devices",
    "find_sensoplex",
    # Exceptions
    "SensoPlexError",
    "BLEConnectionError",
    "BLETimeoutError",
    "ProtocolError",
    "FrameError",
    "FrameChecksumError",
    "FrameTruncatedError",
    "DecodeError",
    "UnknownCommandError",
    "TruncatedPayloadError",
    "CommandError",
    "CommandTimeoutError",
    "CommandAlreadyPendingError",
    # Models - Records
    "FirmwareVersion",
    "ModuleStatus",
    "SensorSample",
    "Vector3",
    "Quaternion",
    "RotationMatrix",
    "Temperature",
    "Pressure",
    "SystemTime",
    "ModuleConfig",
    "StreamConfig",
    "LogStatus",
    "CommandAck",
    # Enums
    "SessionState",
    "SensorOption",
    "LEDState",
    "ChargerState",
    "ModuleErrorType",
    # Protocol
    "CommandCode",
    "Packet",
    "FrameDecoder",
    "encode_frame",
    "decode_frame",
    "decode_packet",
    # Storage and export
    "SensorRecordStore",
    "serialize_sensor_data",
    "delete_serialized_sensor_data",
    "sample_to_row",
    # Constants
    "SERVICE_UUID",
    "ALL_SENSOR_OPTIONS",
]
