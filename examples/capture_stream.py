"""Connect to a SensoPlex module, capture streamed samples and export them.

Usage:
    uv run python examples/capture_stream.py --duration 10
    uv run python examples/capture_stream.py --address AA:BB:CC:DD:EE:FF --fields accel,gyro
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import datetime

from sensoplex import (
    SensoPlexSession,
    SensorOption,
    SensorSample,
    SessionState,
    serialize_sensor_data,
)

FIELDS = {
    "time": SensorOption.DATE_TIME,
    "timestamp": SensorOption.TIMESTAMP,
    "battery": SensorOption.BATTERY_VOLTS,
    "gyro": SensorOption.GYROSCOPE,
    "accel": SensorOption.ACCELEROMETER,
    "quat": SensorOption.QUATERNION,
    "compass": SensorOption.COMPASS,
    "pressure": SensorOption.PRESSURE,
    "temp": SensorOption.TEMPERATURE,
    "linear": SensorOption.LINEAR_ACCELERATION,
    "euler": SensorOption.EULER,
    "rssi": SensorOption.RSSI,
    "heading": SensorOption.HEADING,
}


def _timestamp() -> str:
    return datetime.now().strftime("%H:%M:%S")


def _print_state(state: SessionState) -> None:
    print(f"[{_timestamp()}] state={state.value}")


def _print_sample(sample: SensorSample) -> None:
    parts = [f"ts={sample.timestamp}"]
    if sample.accelerometer:
        a = sample.accelerometer
        parts.append(f"accel=({a.x:+.3f},{a.y:+.3f},{a.z:+.3f})g")
    if sample.gyroscope:
        g = sample.gyroscope
        parts.append(f"gyro=({g.x:+.1f},{g.y:+.1f},{g.z:+.1f})dps")
    if sample.battery_volts is not None:
        parts.append(f"battery={sample.battery_volts:.2f}V")
    print(f"[{_timestamp()}] " + " ".join(parts))


def parse_fields(text: str) -> SensorOption:
    options = SensorOption(0)
    for name in text.split(","):
        name = name.strip()
        if name not in FIELDS:
            raise argparse.ArgumentTypeError(
                f"unknown field {name!r} (choose from {', '.join(FIELDS)})"
            )
        options |= FIELDS[name]
    return options


async def capture(args: argparse.Namespace) -> None:
    """Connect, print module info, capture for a while and write a CSV file."""
    session = SensoPlexSession(args.address, log_packets=args.verbose)
    session.add_state_callback(_print_state)
    if not args.quiet:
        session.add_sample_callback(_print_sample)

    async with session:
        print(f"Firmware: {session.firmware_version}")
        print(
            f"Battery: {session.battery_volts:.2f}V"
            + (" (charging)" if session.is_battery_charging else "")
        )

        await session.start_capture(args.fields)
        try:
            await asyncio.sleep(args.duration)
        finally:
            if session.is_ready:
                await session.stop_capture()

        samples = session.records.all()

    path = serialize_sensor_data(samples, args.output)
    print("\nSummary:")
    print(f"  samples={len(samples)}")
    print(f"  checksum_errors={session.checksum_error_count}")
    print(f"  framing_errors={session.framing_error_count}")
    print(f"  output={path}")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Capture streamed sensor samples from a SensoPlex SP-10BN module."
    )
    parser.add_argument(
        "--address",
        default=None,
        help="Device address (default: connect to the first module found)",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=10.0,
        help="Capture duration in seconds. Default: 10",
    )
    parser.add_argument(
        "--fields",
        type=parse_fields,
        default=SensorOption.TIMESTAMP | SensorOption.BATTERY_VOLTS | SensorOption.ACCELEROMETER,
        help=f"Comma-separated fields to stream ({','.join(FIELDS)}). Default: timestamp,battery,accel",
    )
    parser.add_argument(
        "--output",
        default=".",
        help="Directory for sensor-data.csv. Default: current directory",
    )
    parser.add_argument("--quiet", action="store_true", help="Do not print each sample.")
    parser.add_argument("--verbose", action="store_true", help="Log raw notifications.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    try:
        asyncio.run(capture(args))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
