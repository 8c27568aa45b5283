"""Streamed sensor record model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .enums import SensorOption


@dataclass(frozen=True, slots=True)
class Vector3:
    """Three-axis reading."""

    x: float
    y: float
    z: float


@dataclass(frozen=True, slots=True)
class Quaternion:
    """Orientation quaternion."""

    w: float
    x: float
    y: float
    z: float


@dataclass(frozen=True, slots=True)
class RotationMatrix:
    """3x3 rotation matrix, row-major (a b c / d e f / g h i)."""

    values: tuple[float, float, float, float, float, float, float, float, float]

    def row(self, index: int) -> tuple[float, float, float]:
        """Get one row of the matrix."""
        if not 0 <= index <= 2:
            raise IndexError(f"row index out of range: {index}")
        start = index * 3
        return self.values[start], self.values[start + 1], self.values[start + 2]


@dataclass(frozen=True, slots=True)
class SensorSample:
    """One streamed sensor record.

    Only the field groups whose bit is set in ``options`` are populated;
    every other group is None. A None field means "not sent", never zero.

    Attributes:
        options: Field-presence bitmask as sent by the module
        date_time: Module wall-clock time (None if not sent or invalid)
        timestamp: Module timestamp in milliseconds
        battery_volts: Battery voltage (V)
        ble_state: BLE stack state byte
        gyroscope: Angular rate (deg/s)
        accelerometer: Acceleration (g)
        quaternion: Orientation quaternion
        compass: Magnetic field (uT)
        pressure: Barometric pressure (Pa)
        temperature: Temperature (C)
        linear_acceleration: Acceleration with gravity removed (g)
        euler: Euler angles (degrees)
        rssi: Received signal strength (dBm)
        rotation_matrix: Orientation as a rotation matrix
        heading: Compass heading (degrees)
    """

    options: SensorOption
    date_time: datetime | None = None
    timestamp: int | None = None
    battery_volts: float | None = None
    ble_state: int | None = None
    gyroscope: Vector3 | None = None
    accelerometer: Vector3 | None = None
    quaternion: Quaternion | None = None
    compass: Vector3 | None = None
    pressure: int | None = None
    temperature: float | None = None
    linear_acceleration: Vector3 | None = None
    euler: Vector3 | None = None
    rssi: int | None = None
    rotation_matrix: RotationMatrix | None = None
    heading: float | None = None

    def has(self, option: SensorOption) -> bool:
        """Check whether the module sent the given field group."""
        return bool(self.options & option)
