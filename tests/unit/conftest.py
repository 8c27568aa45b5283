"""Shared fixtures: captured frames and a fake BLE connection."""

from __future__ import annotations

import asyncio

import pytest

from sensoplex import SensoPlexSession
from sensoplex.exceptions import BLEConnectionError
from sensoplex.protocol import decode_frame, encode_frame


class FakeConnection:
    """Stands in for BLEConnection.

    Records every written frame and, when a reply is registered for the
    written command, feeds it straight back through ``on_data``.
    """

    def __init__(self, replies: dict[int, bytes] | None = None, address: str | None = "AA:BB:CC:DD:EE:FF"):
        self.address = address
        self.ble_device = None
        self.replies = dict(replies or {})
        self.written: list[bytes] = []
        self.on_data = None
        self.on_disconnect = None
        self.connected = False
        self.connect_error: Exception | None = None
        self.notify_error: Exception | None = None
        self.write_error: Exception | None = None
        self.connect_delay = 0.0
        self.notify_delay = 0.0

    async def connect(self, ble_device=None) -> None:
        if self.connect_delay:
            await asyncio.sleep(self.connect_delay)
        if self.connect_error:
            raise self.connect_error
        if ble_device is not None:
            self.ble_device = ble_device
            self.address = ble_device.address
        self.connected = True

    async def start_notifications(self) -> None:
        if self.notify_delay:
            await asyncio.sleep(self.notify_delay)
        if self.notify_error:
            raise self.notify_error

    async def write_command(self, data: bytes) -> None:
        if self.write_error:
            raise self.write_error
        if not self.connected:
            raise BLEConnectionError("Not connected")
        self.written.append(data)
        reply = self.replies.get(decode_frame(data).command)
        if reply is not None and self.on_data:
            self.on_data(reply)

    async def disconnect(self) -> None:
        self.connected = False

    @property
    def is_connected(self) -> bool:
        return self.connected

    @property
    def written_commands(self) -> list[int]:
        return [decode_frame(frame).command for frame in self.written]


@pytest.fixture
def status_frame() -> bytes:
    """STATUS response: model 2, charging, 3.6V, no errors."""
    # [0xD1][0x30][model][charger][dcin:2 LE][errors:12][checksum][0xDF]
    return bytes.fromhex("D1 30 02 01 10 0E" + " 00" * 12 + " 51 DF")


@pytest.fixture
def version_frame() -> bytes:
    """VERSION response: 1.4.2 built 2013-07-16, model 0."""
    return encode_frame(0x34, bytes([1, 4, 2, 7, 16, 13, 0]))


@pytest.fixture
def stream_enable_ack() -> bytes:
    return encode_frame(0x63, b"\x01")


@pytest.fixture
def fake_connection() -> FakeConnection:
    return FakeConnection()


def attach(session: SensoPlexSession, fake: FakeConnection) -> SensoPlexSession:
    fake.on_data = session.data_received
    fake.on_disconnect = session.connection_lost
    session._connection = fake  # Inject fake connection
    return session


@pytest.fixture
def make_session():
    """Factory for sessions wired to their own fake connection."""
    def _make(address: str | None = "AA:BB:CC:DD:EE:FF", **kwargs) -> SensoPlexSession:
        kwargs.setdefault("command_timeout", 0.5)
        return attach(SensoPlexSession(address, **kwargs), FakeConnection(address=address))

    return _make


@pytest.fixture
def session(fake_connection: FakeConnection) -> SensoPlexSession:
    """Session wired to the fake connection (not yet connected)."""
    return attach(SensoPlexSession("AA:BB:CC:DD:EE:FF", command_timeout=0.5), fake_connection)
