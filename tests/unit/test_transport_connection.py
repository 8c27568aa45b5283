"""Test BLEConnection against a fake bleak client."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from sensoplex.exceptions import BLEConnectionError, BLETimeoutError
from sensoplex.protocol import (
    NOTIFY_CHARACTERISTIC_UUID,
    SERVICE_UUID,
    WRITE_CHARACTERISTIC_UUID,
)
from sensoplex.transport import BLEConnection

DEVICE = SimpleNamespace(address="AA:BB:CC:DD:EE:FF", name="SP-10BN")


class _FakeServices:
    def __init__(self, uuids):
        self._uuids = set(uuids)

    def get_service(self, uuid):
        return object() if uuid in self._uuids else None


class _FakeClient:
    def __init__(self, services=(SERVICE_UUID,)):
        self.is_connected = True
        self.services = _FakeServices(services)
        self.notify_handlers = {}
        self.writes: list[tuple[str, bytes, bool]] = []
        self.stopped: list[str] = []

    async def start_notify(self, uuid, callback):
        self.notify_handlers[uuid] = callback

    async def stop_notify(self, uuid):
        self.stopped.append(uuid)

    async def write_gatt_char(self, uuid, data, response=False):
        self.writes.append((uuid, bytes(data), response))

    async def disconnect(self):
        self.is_connected = False


def _patch_connect(monkeypatch: pytest.MonkeyPatch, client=None, error: Exception | None = None) -> dict:
    calls = {}

    async def fake_establish_connection(**kwargs):
        calls.update(kwargs)
        if error is not None:
            raise error
        return client

    monkeypatch.setattr(
        "sensoplex.transport.connection.establish_connection",
        fake_establish_connection,
    )
    return calls


@pytest.mark.asyncio
async def test_connect_uses_retry_connector(monkeypatch) -> None:
    client = _FakeClient()
    calls = _patch_connect(monkeypatch, client)
    connection = BLEConnection(ble_device=DEVICE, max_attempts=2, timeout=3.0)

    await connection.connect()

    assert connection.is_connected
    assert connection.address == "AA:BB:CC:DD:EE:FF"
    assert calls["device"] is DEVICE
    assert calls["name"] == "SP-10BN"
    assert calls["max_attempts"] == 2
    assert calls["timeout"] == 3.0


@pytest.mark.asyncio
async def test_connect_timeout(monkeypatch) -> None:
    _patch_connect(monkeypatch, error=asyncio.TimeoutError())
    connection = BLEConnection(ble_device=DEVICE, timeout=1.0)

    with pytest.raises(BLETimeoutError, match="1.0s"):
        await connection.connect()


@pytest.mark.asyncio
async def test_connect_failure_is_wrapped(monkeypatch) -> None:
    _patch_connect(monkeypatch, error=OSError("le-connection-abort-by-local"))
    connection = BLEConnection(ble_device=DEVICE)

    with pytest.raises(BLEConnectionError, match="le-connection-abort"):
        await connection.connect()
    assert not connection.is_connected


@pytest.mark.asyncio
async def test_connect_without_address() -> None:
    connection = BLEConnection()

    with pytest.raises(BLEConnectionError, match="No device address"):
        await connection.connect()


@pytest.mark.asyncio
async def test_notifications_are_forwarded(monkeypatch) -> None:
    client = _FakeClient()
    _patch_connect(monkeypatch, client)
    received = []
    connection = BLEConnection(ble_device=DEVICE, on_data=received.append)

    await connection.connect()
    await connection.start_notifications()
    client.notify_handlers[NOTIFY_CHARACTERISTIC_UUID](None, bytearray(b"\xD1\x34"))

    assert received == [b"\xD1\x34"]
    assert isinstance(received[0], bytes)


@pytest.mark.asyncio
async def test_missing_service(monkeypatch) -> None:
    _patch_connect(monkeypatch, _FakeClient(services=()))
    connection = BLEConnection(ble_device=DEVICE)
    await connection.connect()

    with pytest.raises(BLEConnectionError, match="not found"):
        await connection.start_notifications()


@pytest.mark.asyncio
async def test_write_command_with_response(monkeypatch) -> None:
    client = _FakeClient()
    _patch_connect(monkeypatch, client)
    connection = BLEConnection(ble_device=DEVICE)
    await connection.connect()

    await connection.write_command(b"\xD1\x30\x30\xDF")

    assert client.writes == [(WRITE_CHARACTERISTIC_UUID, b"\xD1\x30\x30\xDF", True)]


@pytest.mark.asyncio
async def test_write_requires_connection() -> None:
    connection = BLEConnection(ble_device=DEVICE)

    with pytest.raises(BLEConnectionError, match="Not connected"):
        await connection.write_command(b"\xD1\x30\x30\xDF")


@pytest.mark.asyncio
async def test_disconnect_stops_notifications(monkeypatch) -> None:
    client = _FakeClient()
    _patch_connect(monkeypatch, client)
    connection = BLEConnection(ble_device=DEVICE)

    async with connection:
        assert connection.is_connected

    assert client.stopped == [NOTIFY_CHARACTERISTIC_UUID]
    assert not connection.is_connected


@pytest.mark.asyncio
async def test_disconnected_callback(monkeypatch) -> None:
    client = _FakeClient()
    calls = _patch_connect(monkeypatch, client)
    lost = []
    connection = BLEConnection(ble_device=DEVICE, on_disconnect=lambda: lost.append(True))
    await connection.connect()

    calls["disconnected_callback"](client)

    assert lost == [True]
