"""Single-value readings and small command responses."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .enums import SensorOption


@dataclass(frozen=True, slots=True)
class Temperature:
    """Temperature reading (GET_TEMPERATURE)."""

    celsius: float


@dataclass(frozen=True, slots=True)
class Pressure:
    """Barometric pressure reading (GET_PRESSURE)."""

    pascals: int


@dataclass(frozen=True, slots=True)
class SystemTime:
    """Module real-time clock (GET_RTC)."""

    month: int
    day: int
    year: int
    hour: int
    minute: int
    second: int

    def to_datetime(self) -> datetime | None:
        """Convert to datetime, or None if the clock holds an invalid value."""
        try:
            return datetime(
                2000 + self.year, self.month, self.day,
                self.hour, self.minute, self.second,
            )
        except ValueError:
            return None


@dataclass(frozen=True, slots=True)
class ModuleConfig:
    """Module configuration (GET_CONFIG)."""

    bd_address: bytes
    debug_enable: int
    options: int

    @property
    def address(self) -> str:
        """Bluetooth device address as ``AA:BB:CC:DD:EE:FF``."""
        return ":".join(f"{b:02X}" for b in reversed(self.bd_address))


@dataclass(frozen=True, slots=True)
class StreamConfig:
    """Streaming field selection (STREAM_GET_CONFIG)."""

    options: SensorOption


@dataclass(frozen=True, slots=True)
class LogStatus:
    """On-module data log status (LOG_GET_STATUS)."""

    enabled: bool
    record_count: int
    used_bytes: int
    total_bytes: int


@dataclass(frozen=True, slots=True)
class CommandAck:
    """Echo sent by the module to acknowledge a command with no data to return."""

    command: int
    payload: bytes = b""
