"""Data models for SensoPlex modules."""

from .enums import (
    ALL_SENSOR_OPTIONS,
    MODULE_ERROR_COUNT,
    ChargerState,
    LEDState,
    ModuleErrorType,
    SensorOption,
    SessionState,
)
from .firmware import FirmwareVersion
from .readings import (
    CommandAck,
    LogStatus,
    ModuleConfig,
    Pressure,
    StreamConfig,
    SystemTime,
    Temperature,
)
from .sensor_data import Quaternion, RotationMatrix, SensorSample, Vector3
from .status import ModuleStatus

__all__ = [
    "ALL_SENSOR_OPTIONS",
    "MODULE_ERROR_COUNT",
    "ChargerState",
    "CommandAck",
    "FirmwareVersion",
    "LEDState",
    "LogStatus",
    "ModuleConfig",
    "ModuleErrorType",
    "ModuleStatus",
    "Pressure",
    "Quaternion",
    "RotationMatrix",
    "SensorOption",
    "SensorSample",
    "SessionState",
    "StreamConfig",
    "SystemTime",
    "Temperature",
    "Vector3",
]
