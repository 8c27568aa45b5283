"""Test streaming capture on SensoPlexSession."""

from __future__ import annotations

import asyncio
import struct

import pytest

from sensoplex.exceptions import BLEConnectionError, CommandTimeoutError
from sensoplex.models import SensorOption, SessionState
from sensoplex.protocol import CommandCode, encode_frame

TIMESTAMP_AND_BATTERY = SensorOption.TIMESTAMP | SensorOption.BATTERY_VOLTS


def _sample_frame(timestamp: int, millivolts: int) -> bytes:
    """Stream record carrying timestamp and battery only."""
    payload = struct.pack("<HiH", TIMESTAMP_AND_BATTERY, timestamp, millivolts)
    return encode_frame(CommandCode.STREAM_RECORD, payload)


@pytest.fixture
def streaming_connection(fake_connection, stream_enable_ack):
    """Fake module that acknowledges stream configuration and enable."""
    fake_connection.replies[CommandCode.STREAM_SET_CONFIG] = encode_frame(
        CommandCode.STREAM_SET_CONFIG, b"\x06\x00"
    )
    fake_connection.replies[CommandCode.STREAM_ENABLE] = stream_enable_ack
    return fake_connection


@pytest.mark.asyncio
async def test_capture_stores_samples_in_order(session, streaming_connection) -> None:
    await session.connect()

    await session.start_capture(TIMESTAMP_AND_BATTERY)
    assert session.is_capturing

    for i, millivolts in enumerate((3900, 3890, 3880)):
        session.data_received(_sample_frame(1000 + i * 10, millivolts))

    await session.stop_capture()

    samples = session.records.all()
    assert [s.timestamp for s in samples] == [1000, 1010, 1020]
    assert all(s.options == TIMESTAMP_AND_BATTERY for s in samples)
    assert samples[0].accelerometer is None
    assert session.battery_volts == pytest.approx(3.88)
    assert not session.is_capturing
    assert streaming_connection.written == [
        encode_frame(CommandCode.STREAM_SET_CONFIG, b"\x06\x00"),
        encode_frame(CommandCode.STREAM_ENABLE, b"\x01"),
        encode_frame(CommandCode.STREAM_ENABLE, b"\x00"),
    ]


@pytest.mark.asyncio
async def test_start_capture_keeps_current_selection(session, streaming_connection) -> None:
    await session.connect()

    await session.start_capture()

    assert streaming_connection.written_commands == [CommandCode.STREAM_ENABLE]


@pytest.mark.asyncio
async def test_samples_before_enable_ack_are_kept(session, streaming_connection, stream_enable_ack) -> None:
    """The module may stream before it acknowledges the enable command."""
    streaming_connection.replies[CommandCode.STREAM_ENABLE] = _sample_frame(5, 4000) + stream_enable_ack
    await session.connect()

    await session.start_capture()

    assert [s.timestamp for s in session.records] == [5]


@pytest.mark.asyncio
async def test_samples_before_stop_ack_are_kept(session, streaming_connection, stream_enable_ack) -> None:
    await session.connect()
    await session.start_capture()
    streaming_connection.replies[CommandCode.STREAM_ENABLE] = _sample_frame(7, 4000) + stream_enable_ack

    await session.stop_capture()
    session.data_received(_sample_frame(8, 4000))

    assert [s.timestamp for s in session.records] == [7]


@pytest.mark.asyncio
async def test_samples_fragmented_across_notifications(session, streaming_connection) -> None:
    await session.connect()
    await session.start_capture()
    stream = _sample_frame(1, 3700) + _sample_frame(2, 3700)

    for i in range(0, len(stream), 5):
        session.data_received(stream[i:i + 5])

    assert [s.timestamp for s in session.records] == [1, 2]


@pytest.mark.asyncio
async def test_unacknowledged_start_turns_capture_off(session, fake_connection) -> None:
    await session.connect()

    with pytest.raises(CommandTimeoutError):
        await session.start_capture(timeout=0.05)

    assert not session.is_capturing


@pytest.mark.asyncio
async def test_disconnect_stops_capture(session, streaming_connection) -> None:
    await session.connect()
    await session.start_capture()

    streaming_connection.on_disconnect()

    assert not session.is_capturing


@pytest.mark.asyncio
async def test_sample_callbacks(session, streaming_connection) -> None:
    await session.connect()
    seen = []
    remove = session.add_sample_callback(seen.append)

    def broken(sample):
        raise RuntimeError("boom")

    session.add_sample_callback(broken)
    await session.start_capture()

    session.data_received(_sample_frame(1, 3700))
    remove()
    session.data_received(_sample_frame(2, 3700))

    assert [s.timestamp for s in seen] == [1]
    assert len(session.records) == 2


@pytest.mark.asyncio
async def test_clear_records(session, streaming_connection) -> None:
    await session.connect()
    await session.start_capture()
    session.data_received(_sample_frame(1, 3700))

    session.clear_records()

    assert len(session.records) == 0
    assert session.is_capturing


@pytest.mark.asyncio
async def test_link_loss_during_restart_leaves_capture_off(session, streaming_connection) -> None:
    """Losing the link while re-enabling streaming does not revive the old capture flag."""
    await session.connect()
    await session.start_capture()
    del streaming_connection.replies[CommandCode.STREAM_ENABLE]

    task = asyncio.create_task(session.start_capture(timeout=1.0))
    await asyncio.sleep(0)
    streaming_connection.on_disconnect()

    with pytest.raises(BLEConnectionError):
        await task
    assert session.state is SessionState.DISCONNECTED
    assert not session.is_capturing

    await session.connect()
    session.data_received(_sample_frame(1, 3700))
    assert len(session.records) == 0


@pytest.mark.asyncio
async def test_failed_restart_keeps_active_capture(session, streaming_connection) -> None:
    """A timed-out enable while still connected keeps the capture that was running."""
    await session.connect()
    await session.start_capture()
    del streaming_connection.replies[CommandCode.STREAM_ENABLE]

    with pytest.raises(CommandTimeoutError):
        await session.start_capture(timeout=0.05)

    assert session.is_capturing
