"""CSV export of captured sensor samples."""

from __future__ import annotations

import csv
import logging
from collections.abc import Iterable
from pathlib import Path

from .models.sensor_data import SensorSample

_LOGGER = logging.getLogger(__name__)

DEFAULT_FILE_NAME = "sensor-data.csv"

# Columns in stream record field order
CSV_COLUMNS: tuple[str, ...] = (
    "options",
    "date_time",
    "timestamp_ms",
    "battery_volts",
    "ble_state",
    "gyro_x", "gyro_y", "gyro_z",
    "accel_x", "accel_y", "accel_z",
    "quat_w", "quat_x", "quat_y", "quat_z",
    "compass_x", "compass_y", "compass_z",
    "pressure_pa",
    "temperature_c",
    "linear_accel_x", "linear_accel_y", "linear_accel_z",
    "euler_x", "euler_y", "euler_z",
    "rssi",
    "rot_a", "rot_b", "rot_c", "rot_d", "rot_e", "rot_f", "rot_g", "rot_h", "rot_i",
    "heading",
)


def _cells(value) -> list:
    if value is None:
        return [""]
    return [value]


def _vector(vector) -> list:
    if vector is None:
        return ["", "", ""]
    return [vector.x, vector.y, vector.z]


def sample_to_row(sample: SensorSample) -> list:
    """Flatten a sample into one CSV row matching CSV_COLUMNS.

    Absent fields become empty cells.
    """
    row: list = [f"0x{int(sample.options):04X}"]
    row += _cells(sample.date_time.isoformat(sep=" ") if sample.date_time else None)
    row += _cells(sample.timestamp)
    row += _cells(sample.battery_volts)
    row += _cells(sample.ble_state)
    row += _vector(sample.gyroscope)
    row += _vector(sample.accelerometer)
    if sample.quaternion is None:
        row += [""] * 4
    else:
        q = sample.quaternion
        row += [q.w, q.x, q.y, q.z]
    row += _vector(sample.compass)
    row += _cells(sample.pressure)
    row += _cells(sample.temperature)
    row += _vector(sample.linear_acceleration)
    row += _vector(sample.euler)
    row += _cells(sample.rssi)
    if sample.rotation_matrix is None:
        row += [""] * 9
    else:
        row += list(sample.rotation_matrix.values)
    row += _cells(sample.heading)
    return row


def serialize_sensor_data(
        samples: Iterable[SensorSample],
        directory: Path | str,
        file_name: str = DEFAULT_FILE_NAME,
) -> Path:
    """Write samples to a CSV file.

    Args:
        samples: Samples in the order they should appear
        directory: Output directory (created if missing)
        file_name: CSV file name (default: sensor-data.csv)

    Returns:
        Full path of the written file
    """
    path = Path(directory) / file_name
    path.parent.mkdir(parents=True, exist_ok=True)

    count = 0
    with path.open("w", newline="", encoding="utf-8") as csvfile:
        writer = csv.writer(csvfile)
        writer.writerow(CSV_COLUMNS)
        for sample in samples:
            writer.writerow(sample_to_row(sample))
            count += 1

    _LOGGER.info("Wrote %d samples to %s", count, path)
    return path


def delete_serialized_sensor_data(directory: Path | str) -> int:
    """Delete every CSV file in directory.

    Returns:
        Number of files deleted
    """
    directory = Path(directory)
    if not directory.is_dir():
        return 0

    deleted = 0
    for path in directory.glob("*.csv"):
        path.unlink()
        deleted += 1

    _LOGGER.debug("Deleted %d CSV files from %s", deleted, directory)
    return deleted
