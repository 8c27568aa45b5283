"""Decoding of validated packets into typed records."""

from __future__ import annotations

import logging
import struct
from collections.abc import Callable
from datetime import datetime
from typing import Union

from ..exceptions import TruncatedPayloadError, UnknownCommandError
from ..models.enums import ALL_SENSOR_OPTIONS, MODULE_ERROR_COUNT, SensorOption
from ..models.firmware import FirmwareVersion
from ..models.readings import (
    CommandAck,
    LogStatus,
    ModuleConfig,
    Pressure,
    StreamConfig,
    SystemTime,
    Temperature,
)
from ..models.sensor_data import Quaternion, RotationMatrix, SensorSample, Vector3
from ..models.status import ModuleStatus
from .commands import CommandCode
from .framing import Packet

_LOGGER = logging.getLogger(__name__)

DecodedRecord = Union[
    FirmwareVersion,
    ModuleStatus,
    SensorSample,
    Temperature,
    Pressure,
    SystemTime,
    ModuleConfig,
    StreamConfig,
    LogStatus,
    CommandAck,
]

# DC-in ADC counts to volts (the module reports millivolts)
BATTERY_VOLTS_PER_COUNT = 0.001

# Stream record scale factors
GYRO_COUNTS_PER_DPS = 16.4        # +/-2000 deg/s full scale
ACCEL_COUNTS_PER_G = 8192.0       # +/-4 g full scale
COMPASS_UT_PER_COUNT = 0.3
TEMPERATURE_COUNTS_PER_C = 100.0
Q30 = float(1 << 30)
Q16 = float(1 << 16)

VERSION_LENGTH = 7
STATUS_MIN_LENGTH = 4
RTC_LENGTH = 6
CONFIG_LENGTH = 10
LOG_STATUS_LENGTH = 12

_ACK_COMMANDS = frozenset((
    CommandCode.LOG_CLEAR,
    CommandCode.LOG_ENABLE,
    CommandCode.STREAM_SET_CONFIG,
    CommandCode.STREAM_ENABLE,
    CommandCode.SET_LED,
))


def _require(command: int, data: bytes, length: int) -> None:
    if len(data) < length:
        raise TruncatedPayloadError(command, needed=length, available=len(data))


def parse_firmware_version(data: bytes) -> FirmwareVersion:
    """Parse VERSION payload.

    Format: [version][revision][subrevision][month][day][year][model]

    Raises:
        TruncatedPayloadError: If payload is shorter than 7 bytes
    """
    _require(CommandCode.VERSION, data, VERSION_LENGTH)
    return FirmwareVersion(*data[:VERSION_LENGTH])


def parse_status(data: bytes) -> ModuleStatus:
    """Parse STATUS payload.

    Format: [model][charger_state][dcin_adc:2 LE][error counters:12]

    Older firmware may send fewer error counters; whatever is present is kept.

    Raises:
        TruncatedPayloadError: If payload is shorter than 4 bytes
    """
    _require(CommandCode.STATUS, data, STATUS_MIN_LENGTH)
    battery_raw = struct.unpack_from("<H", data, 2)[0]
    errors = tuple(data[4:4 + MODULE_ERROR_COUNT])
    return ModuleStatus(
        model=data[0],
        charger_state=data[1],
        battery_raw=battery_raw,
        battery_volts=battery_raw * BATTERY_VOLTS_PER_COUNT,
        errors=errors,
    )


def _to_datetime(values: tuple[int, ...]) -> datetime | None:
    month, day, year, hour, minute, second = values
    try:
        return datetime(2000 + year, month, day, hour, minute, second)
    except ValueError:
        return None


class _RecordReader:
    """Sequential little-endian reader over a stream record payload."""

    def __init__(self, data: bytes, offset: int):
        self._data = data
        self._offset = offset

    def unpack(self, fmt: str) -> tuple:
        size = struct.calcsize(fmt)
        if self._offset + size > len(self._data):
            raise TruncatedPayloadError(
                CommandCode.STREAM_RECORD,
                needed=self._offset + size,
                available=len(self._data),
            )
        values = struct.unpack_from(fmt, self._data, self._offset)
        self._offset += size
        return values


def _read_vector(reader: _RecordReader, scale: Callable[[int], float]) -> Vector3:
    x, y, z = reader.unpack("<3h")
    return Vector3(scale(x), scale(y), scale(z))


def _read_gyroscope(reader: _RecordReader) -> Vector3:
    return _read_vector(reader, lambda v: v / GYRO_COUNTS_PER_DPS)


def _read_acceleration(reader: _RecordReader) -> Vector3:
    return _read_vector(reader, lambda v: v / ACCEL_COUNTS_PER_G)


def _read_compass(reader: _RecordReader) -> Vector3:
    return _read_vector(reader, lambda v: v * COMPASS_UT_PER_COUNT)


def _read_quaternion(reader: _RecordReader) -> Quaternion:
    w, x, y, z = reader.unpack("<4i")
    return Quaternion(w / Q30, x / Q30, y / Q30, z / Q30)


def _read_euler(reader: _RecordReader) -> Vector3:
    x, y, z = reader.unpack("<3i")
    return Vector3(x / Q16, y / Q16, z / Q16)


def _read_rotation_matrix(reader: _RecordReader) -> RotationMatrix:
    return RotationMatrix(tuple(v / Q30 for v in reader.unpack("<9i")))


# Field readers in payload order: (option, attribute, reader)
_SAMPLE_FIELDS: tuple[tuple[SensorOption, str, Callable[[_RecordReader], object]], ...] = (
    (SensorOption.DATE_TIME, "date_time", lambda r: _to_datetime(r.unpack("<6B"))),
    (SensorOption.TIMESTAMP, "timestamp", lambda r: r.unpack("<i")[0]),
    (SensorOption.BATTERY_VOLTS, "battery_volts", lambda r: r.unpack("<H")[0] / 1000.0),
    (SensorOption.BLE_STATE, "ble_state", lambda r: r.unpack("<B")[0]),
    (SensorOption.GYROSCOPE, "gyroscope", _read_gyroscope),
    (SensorOption.ACCELEROMETER, "accelerometer", _read_acceleration),
    (SensorOption.QUATERNION, "quaternion", _read_quaternion),
    (SensorOption.COMPASS, "compass", _read_compass),
    (SensorOption.PRESSURE, "pressure", lambda r: r.unpack("<i")[0]),
    (SensorOption.TEMPERATURE, "temperature",
     lambda r: r.unpack("<h")[0] / TEMPERATURE_COUNTS_PER_C),
    (SensorOption.LINEAR_ACCELERATION, "linear_acceleration", _read_acceleration),
    (SensorOption.EULER, "euler", _read_euler),
    (SensorOption.RSSI, "rssi", lambda r: r.unpack("<b")[0]),
    (SensorOption.ROTATION_MATRIX, "rotation_matrix", _read_rotation_matrix),
    (SensorOption.HEADING, "heading", lambda r: r.unpack("<i")[0] / Q16),
)

_KNOWN_OPTIONS = int(ALL_SENSOR_OPTIONS)


def parse_sensor_sample(data: bytes) -> SensorSample:
    """Parse a streamed sensor record.

    Format: [options:2 LE][field data...]

    Each field whose bit is set in options follows in ascending bit order.
    Fields whose bit is clear are left as None.

    Raises:
        TruncatedPayloadError: If payload is shorter than the options require
    """
    _require(CommandCode.STREAM_RECORD, data, 2)
    raw_options = struct.unpack_from("<H", data, 0)[0]

    unknown = raw_options & ~_KNOWN_OPTIONS
    if unknown:
        # Undefined bits sit above every known field, so known fields still decode
        _LOGGER.debug("Ignoring undefined sensor option bits 0x%04X", unknown)

    options = SensorOption(raw_options & _KNOWN_OPTIONS)
    reader = _RecordReader(data, 2)
    values = {}
    for option, attribute, read in _SAMPLE_FIELDS:
        if options & option:
            values[attribute] = read(reader)

    return SensorSample(options=options, **values)


def parse_temperature(data: bytes) -> Temperature:
    """Parse GET_TEMPERATURE payload: [celsius * 100: int16 LE]."""
    _require(CommandCode.GET_TEMPERATURE, data, 2)
    raw = struct.unpack_from("<h", data, 0)[0]
    return Temperature(celsius=raw / TEMPERATURE_COUNTS_PER_C)


def parse_pressure(data: bytes) -> Pressure:
    """Parse GET_PRESSURE payload: [pascals: int32 LE]."""
    _require(CommandCode.GET_PRESSURE, data, 4)
    return Pressure(pascals=struct.unpack_from("<i", data, 0)[0])


def parse_system_time(data: bytes) -> SystemTime:
    """Parse GET_RTC payload: [month][day][year][hour][minute][second][extra]."""
    _require(CommandCode.GET_RTC, data, RTC_LENGTH)
    return SystemTime(*data[:RTC_LENGTH])


def parse_module_config(data: bytes) -> ModuleConfig:
    """Parse GET_CONFIG payload.

    Format: [bd_addr:6][debug_enable][unused][options:2 LE]
    """
    _require(CommandCode.GET_CONFIG, data, CONFIG_LENGTH)
    return ModuleConfig(
        bd_address=bytes(data[0:6]),
        debug_enable=data[6],
        options=struct.unpack_from("<H", data, 8)[0],
    )


def parse_stream_config(data: bytes) -> StreamConfig:
    """Parse STREAM_GET_CONFIG payload: [options:2 LE]."""
    _require(CommandCode.STREAM_GET_CONFIG, data, 2)
    raw = struct.unpack_from("<H", data, 0)[0]
    return StreamConfig(options=SensorOption(raw & _KNOWN_OPTIONS))


def parse_log_status(data: bytes) -> LogStatus:
    """Parse LOG_GET_STATUS payload.

    Format: [enabled][unused][records:2 LE][used_bytes:4 LE][total_bytes:4 LE]
    """
    _require(CommandCode.LOG_GET_STATUS, data, LOG_STATUS_LENGTH)
    enabled, _, records, used, total = struct.unpack_from("<BBHII", data, 0)
    return LogStatus(
        enabled=bool(enabled),
        record_count=records,
        used_bytes=used,
        total_bytes=total,
    )


_PARSERS: dict[int, Callable[[bytes], DecodedRecord]] = {
    CommandCode.VERSION: parse_firmware_version,
    CommandCode.STATUS: parse_status,
    CommandCode.STREAM_RECORD: parse_sensor_sample,
    CommandCode.GET_TEMPERATURE: parse_temperature,
    CommandCode.GET_PRESSURE: parse_pressure,
    CommandCode.GET_RTC: parse_system_time,
    CommandCode.GET_CONFIG: parse_module_config,
    CommandCode.STREAM_GET_CONFIG: parse_stream_config,
    CommandCode.LOG_GET_STATUS: parse_log_status,
}

# Record type each command is answered with
RESPONSE_TYPES: dict[int, type] = {
    CommandCode.VERSION: FirmwareVersion,
    CommandCode.STATUS: ModuleStatus,
    CommandCode.GET_TEMPERATURE: Temperature,
    CommandCode.GET_PRESSURE: Pressure,
    CommandCode.GET_RTC: SystemTime,
    CommandCode.GET_CONFIG: ModuleConfig,
    CommandCode.STREAM_GET_CONFIG: StreamConfig,
    CommandCode.LOG_GET_STATUS: LogStatus,
    **{command: CommandAck for command in _ACK_COMMANDS},
}


def decode_packet(packet: Packet) -> DecodedRecord:
    """Decode a validated packet into a typed record.

    Args:
        packet: Packet recovered by the frame decoder

    Returns:
        FirmwareVersion, ModuleStatus, SensorSample or one of the smaller
        reading/acknowledgement records

    Raises:
        UnknownCommandError: If the command code is not known
        TruncatedPayloadError: If the payload is too short for its layout
    """
    if packet.command in _ACK_COMMANDS:
        return CommandAck(command=packet.command, payload=packet.payload)

    parser = _PARSERS.get(packet.command)
    if parser is None:
        raise UnknownCommandError(packet.command)

    return parser(packet.payload)
