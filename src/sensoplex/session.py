"""SensoPlex session: connection lifecycle, commands and streaming capture."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .discovery import find_sensoplex
from .exceptions import (
    BLEConnectionError,
    BLETimeoutError,
    CommandAlreadyPendingError,
    CommandTimeoutError,
    DecodeError,
    UnknownCommandError,
)
from .models.enums import LEDState, SensorOption, SessionState
from .models.firmware import FirmwareVersion
from .models.readings import (
    CommandAck,
    LogStatus,
    ModuleConfig,
    Pressure,
    StreamConfig,
    SystemTime,
    Temperature,
)
from .models.sensor_data import SensorSample
from .models.status import ModuleStatus
from .protocol import (
    RESPONSE_TYPES,
    CommandCode,
    DecodedRecord,
    FrameDecoder,
    Packet,
    build_get_config_command,
    build_get_pressure_command,
    build_get_rtc_command,
    build_get_temperature_command,
    build_log_clear_command,
    build_log_enable_command,
    build_log_status_command,
    build_set_led_command,
    build_status_command,
    build_stream_enable_command,
    build_stream_get_config_command,
    build_stream_set_config_command,
    build_version_command,
    decode_packet,
    encode_frame,
)
from .store import SensorRecordStore
from .transport import BLEConnection

if TYPE_CHECKING:
    from bleak.backends.device import BLEDevice

_LOGGER = logging.getLogger(__name__)

StateCallback = Callable[[SessionState], None]
SampleCallback = Callable[[SensorSample], None]
RecordCallback = Callable[[DecodedRecord], None]

# States from which a new scan or connection attempt may start
_IDLE_STATES = frozenset((
    SessionState.DISCONNECTED,
    SessionState.FAILED_TO_CONNECT,
    SessionState.TRANSPORT_ERROR,
))


@dataclass
class PendingCommand:
    """The single command awaiting its response."""

    command: int
    response_type: type
    timeout: float
    issued_at: float
    future: asyncio.Future = field(repr=False)
    timer: asyncio.TimerHandle | None = field(default=None, repr=False)

    def matches(self, record: DecodedRecord) -> bool:
        """Check whether record answers this command."""
        if not isinstance(record, self.response_type):
            return False
        if isinstance(record, CommandAck):
            return record.command == self.command
        return True


class SensoPlexSession:
    """Session with one SP-10BN module.

    Owns the connection state, the single pending-command slot and the
    streaming capture. Inbound packets answer the pending command first;
    streamed samples are stored only while capture is active; anything
    else is logged and dropped.

    Usage:
        async with SensoPlexSession("AA:BB:CC:DD:EE:FF") as session:
            print(session.firmware_version, session.battery_volts)
            await session.start_capture(SensorOption.TIMESTAMP | SensorOption.ACCELEROMETER)
            await asyncio.sleep(10)
            await session.stop_capture()
            samples = session.records.all()

        # Scan and connect to the first module the predicate accepts
        session = SensoPlexSession()
        await session.connect(should_connect=lambda device: device.name == "SP-10BN")
    """

    TIMEOUT_COMMAND = 5.0
    TIMEOUT_SCAN = 10.0

    def __init__(
            self,
            address: str | None = None,
            ble_device: BLEDevice | None = None,
            *,
            timeout: float = 10.0,
            max_attempts: int = 4,
            use_services_cache: bool = True,
            command_timeout: float = TIMEOUT_COMMAND,
            auto_interrogate: bool = True,
            log_packets: bool = False,
            logger: logging.Logger | None = None,
    ):
        """Initialize session.

        Args:
            address: Device address (scan for a module if neither this nor ble_device is given)
            ble_device: Optional BLEDevice, e.g. from discover_devices()
            timeout: BLE connection timeout in seconds (default: 10)
            max_attempts: Maximum connection attempts (default: 4)
            use_services_cache: Enable GATT service caching (default: True)
            command_timeout: Default command response timeout in seconds (default: 5)
            auto_interrogate: Read firmware version and status on context entry (default: True)
            log_packets: Log every received notification in hex (default: False)
            logger: Logger to write diagnostics to (default: module logger)
        """
        self.command_timeout = command_timeout
        self.auto_interrogate = auto_interrogate
        self.log_packets = log_packets
        self._log = logger or _LOGGER

        self._connection = BLEConnection(
            address,
            ble_device,
            on_data=self.data_received,
            on_disconnect=self.connection_lost,
            timeout=timeout,
            max_attempts=max_attempts,
            use_services_cache=use_services_cache,
        )
        self._decoder = FrameDecoder()
        self._store = SensorRecordStore()

        self._state = SessionState.DISCONNECTED
        self._pending: PendingCommand | None = None
        self._capturing = False

        self._firmware: FirmwareVersion | None = None
        self._status: ModuleStatus | None = None
        self._battery_volts: float | None = None
        self._temperature: float | None = None
        self._pressure: int | None = None

        self._state_callbacks: list[StateCallback] = []
        self._sample_callbacks: list[SampleCallback] = []
        self._record_callbacks: list[RecordCallback] = []

    async def __aenter__(self) -> SensoPlexSession:
        """Connect and optionally interrogate the module."""
        await self.connect()
        if self.auto_interrogate:
            await self.interrogate()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Disconnect from the module."""
        await self.disconnect()

    @property
    def state(self) -> SessionState:
        """Current connection state."""
        return self._state

    @property
    def is_ready(self) -> bool:
        """True when commands can be sent."""
        return self._state is SessionState.READY

    @property
    def is_capturing(self) -> bool:
        """True while streamed samples are being captured."""
        return self._capturing

    @property
    def records(self) -> SensorRecordStore:
        """Samples captured so far."""
        return self._store

    @property
    def firmware(self) -> FirmwareVersion | None:
        """Last firmware version read from the module."""
        return self._firmware

    @property
    def firmware_version(self) -> str | None:
        """Last firmware version as text, e.g. ``"1.2.3"``."""
        return self._firmware.text if self._firmware else None

    @property
    def status(self) -> ModuleStatus | None:
        """Last module status read from the module."""
        return self._status

    @property
    def battery_volts(self) -> float | None:
        """Last known battery voltage (from status or captured samples)."""
        return self._battery_volts

    @property
    def is_battery_charging(self) -> bool:
        """True if the last status reported the battery as charging."""
        return self._status is not None and self._status.is_charging

    @property
    def temperature(self) -> float | None:
        """Last temperature reading in Celsius."""
        return self._temperature

    @property
    def pressure(self) -> int | None:
        """Last pressure reading in pascals."""
        return self._pressure

    @property
    def checksum_error_count(self) -> int:
        """Frames dropped because of a checksum mismatch."""
        return self._decoder.checksum_errors

    @property
    def framing_error_count(self) -> int:
        """Frames dropped because they were truncated, oversized or malformed."""
        return self._decoder.framing_errors

    def add_state_callback(self, callback: StateCallback) -> Callable[[], None]:
        """Call callback with the new state on every state change.

        Returns:
            Function that removes the callback
        """
        return self._subscribe(self._state_callbacks, callback)

    def add_sample_callback(self, callback: SampleCallback) -> Callable[[], None]:
        """Call callback with every captured sample.

        Returns:
            Function that removes the callback
        """
        return self._subscribe(self._sample_callbacks, callback)

    def add_record_callback(self, callback: RecordCallback) -> Callable[[], None]:
        """Call callback with every record that answers a command.

        Returns:
            Function that removes the callback
        """
        return self._subscribe(self._record_callbacks, callback)

    @staticmethod
    def _subscribe(callbacks: list, callback: Callable) -> Callable[[], None]:
        callbacks.append(callback)

        def _remove() -> None:
            if callback in callbacks:
                callbacks.remove(callback)

        return _remove

    def _notify(self, callbacks: list, value: Any) -> None:
        for callback in list(callbacks):
            try:
                callback(value)
            except Exception:
                self._log.exception("Callback %r failed", callback)

    def _set_state(self, state: SessionState) -> None:
        if state is self._state:
            return
        self._log.debug("State %s -> %s", self._state.value, state.value)
        self._state = state
        self._notify(self._state_callbacks, state)

    async def scan(
            self,
            should_connect: Callable[[BLEDevice], bool] | None = None,
            timeout: float | None = None,
    ) -> BLEDevice:
        """Scan for a SensoPlex module.

        Args:
            should_connect: Optional predicate choosing which module to accept
            timeout: Scan timeout in seconds (default: TIMEOUT_SCAN)

        Returns:
            The accepted device

        Raises:
            BLETimeoutError: If no module was accepted before the timeout
            BLEConnectionError: If the session is busy or the scan fails
        """
        if self._state not in _IDLE_STATES:
            raise BLEConnectionError(f"Cannot scan while {self._state.value}")

        timeout = self.TIMEOUT_SCAN if timeout is None else timeout
        self._set_state(SessionState.SCANNING)
        try:
            device = await find_sensoplex(should_connect, timeout=timeout)
        except asyncio.CancelledError:
            self._log.debug("Scan cancelled")
            self._set_state(SessionState.DISCONNECTED)
            raise
        except Exception as e:
            self._set_state(SessionState.DISCONNECTED)
            raise BLEConnectionError(f"Scan failed: {e}") from e

        if device is None:
            self._set_state(SessionState.DISCONNECTED)
            raise BLETimeoutError(f"No SensoPlex module found within {timeout}s")

        self._log.info("Found SensoPlex module %s", device.address)
        return device

    async def connect(
            self,
            should_connect: Callable[[BLEDevice], bool] | None = None,
    ) -> None:
        """Connect to the module and subscribe to its notifications.

        Scans first when the session was created without an address.

        Args:
            should_connect: Optional predicate used when scanning

        Raises:
            BLEConnectionError: If connecting or subscribing fails
            BLETimeoutError: If scanning or connecting times out
        """
        if self._state is SessionState.READY:
            return
        if self._state not in _IDLE_STATES:
            raise BLEConnectionError(f"Cannot connect while {self._state.value}")

        device = None
        if self._connection.address is None and self._connection.ble_device is None:
            device = await self.scan(should_connect)

        self._set_state(SessionState.CONNECTING)
        try:
            await self._connection.connect(device)
        except (BLEConnectionError, BLETimeoutError, asyncio.CancelledError):
            self._set_state(SessionState.FAILED_TO_CONNECT)
            raise

        self._set_state(SessionState.CONNECTED)
        self._decoder.reset()

        try:
            await self._connection.start_notifications()
        except (BLEConnectionError, asyncio.CancelledError):
            self._set_state(SessionState.TRANSPORT_ERROR)
            raise

        self._set_state(SessionState.READY)
        self._log.info("Connected to %s", self._connection.address)

    async def interrogate(self) -> None:
        """Read firmware version and status from the module."""
        firmware = await self.get_firmware_version()
        status = await self.get_status()
        self._log.info(
            "Module firmware %s, battery %.2fV%s",
            firmware.text,
            status.battery_volts,
            " (charging)" if status.is_charging else "",
        )

    async def disconnect(self) -> None:
        """Disconnect from the module and tear down the session."""
        self._teardown("Disconnected")
        await self._connection.disconnect()

    async def cleanup(self) -> None:
        """Disconnect and remove every registered callback."""
        await self.disconnect()
        self._state_callbacks.clear()
        self._sample_callbacks.clear()
        self._record_callbacks.clear()

    def connection_lost(self) -> None:
        """Handle a transport-level disconnect."""
        if self._state is SessionState.DISCONNECTED:
            return
        self._log.warning("Connection to %s lost", self._connection.address)
        self._teardown("Connection lost")

    def _teardown(self, reason: str) -> None:
        self._fail_pending(BLEConnectionError(reason))
        self._capturing = False
        self._decoder.reset()
        self._set_state(SessionState.DISCONNECTED)

    def data_received(self, data: bytes) -> None:
        """Feed notification bytes from the transport, in arrival order."""
        if self.log_packets:
            self._log.debug("RX %s", data.hex(" "))
        for packet in self._decoder.feed_bytes(data):
            self._handle_packet(packet)

    def _handle_packet(self, packet: Packet) -> None:
        try:
            record = decode_packet(packet)
        except UnknownCommandError as e:
            self._log.warning("%s, dropping packet", e)
            return
        except DecodeError as e:
            self._log.warning("Dropping packet: %s", e)
            return
        self._route(record)

    def _route(self, record: DecodedRecord) -> None:
        pending = self._pending
        if pending is not None and pending.matches(record):
            self._resolve(pending, record)
            return

        if isinstance(record, SensorSample) and self._capturing:
            self._store.append(record)
            if record.battery_volts is not None:
                self._battery_volts = record.battery_volts
            self._notify(self._sample_callbacks, record)
            return

        self._log.debug("Discarding unsolicited %s", type(record).__name__)

    def _remember(self, record: DecodedRecord) -> None:
        if isinstance(record, FirmwareVersion):
            self._firmware = record
        elif isinstance(record, ModuleStatus):
            self._status = record
            self._battery_volts = record.battery_volts
        elif isinstance(record, Temperature):
            self._temperature = record.celsius
        elif isinstance(record, Pressure):
            self._pressure = record.pascals

    def _resolve(self, pending: PendingCommand, record: DecodedRecord) -> None:
        if pending.future.done():
            return
        self._clear_pending(pending)
        self._remember(record)
        self._log.debug(
            "Command 0x%02X answered in %.1f ms",
            pending.command,
            (pending.future.get_loop().time() - pending.issued_at) * 1000,
        )
        pending.future.set_result(record)
        self._notify(self._record_callbacks, record)

    def _expire(self, pending: PendingCommand) -> None:
        if pending.future.done():
            return
        self._clear_pending(pending)
        self._log.debug("Command 0x%02X timed out after %ss", pending.command, pending.timeout)
        pending.future.set_exception(CommandTimeoutError(pending.command, pending.timeout))

    def _clear_pending(self, pending: PendingCommand) -> None:
        if pending.timer is not None:
            pending.timer.cancel()
            pending.timer = None
        if self._pending is pending:
            self._pending = None

    def _fail_pending(self, error: Exception) -> None:
        pending = self._pending
        if pending is None:
            return
        self._clear_pending(pending)
        if not pending.future.done():
            pending.future.set_exception(error)

    def _require_ready(self) -> None:
        if self._state is not SessionState.READY:
            raise BLEConnectionError(
                f"Session not ready (state: {self._state.value}) - connect first"
            )

    async def _transact(
            self,
            frame: bytes,
            command: int,
            response_type: type | None,
            timeout: float | None = None,
    ) -> Any:
        """Write one frame and wait for its response.

        The not-ready and already-pending checks happen before anything is
        written. With response_type None the frame is written and None is
        returned without occupying the pending slot.
        """
        self._require_ready()

        if response_type is None:
            await self._connection.write_command(frame)
            return None

        if self._pending is not None:
            raise CommandAlreadyPendingError(self._pending.command)

        loop = asyncio.get_running_loop()
        timeout = self.command_timeout if timeout is None else timeout
        pending = PendingCommand(
            command=command,
            response_type=response_type,
            timeout=timeout,
            issued_at=loop.time(),
            future=loop.create_future(),
        )
        self._pending = pending

        try:
            self._log.debug("TX command 0x%02X (%d bytes)", command, len(frame))
            await self._connection.write_command(frame)
        except BaseException:
            self._clear_pending(pending)
            if pending.future.done() and not pending.future.cancelled():
                pending.future.exception()  # Mark retrieved; the write error wins
            raise

        # The response may already have arrived during the write
        if not pending.future.done():
            pending.timer = loop.call_later(timeout, self._expire, pending)

        try:
            return await pending.future
        finally:
            self._clear_pending(pending)

    async def send_command(
            self,
            command: int,
            args: bytes = b"",
            *,
            response_type: type | None = None,
            wait_for_response: bool = True,
            timeout: float | None = None,
    ) -> DecodedRecord | None:
        """Send a raw command and wait for the record that answers it.

        Args:
            command: Command code
            args: Argument bytes
            response_type: Record type expected in reply (default: looked up
                from the command code)
            wait_for_response: False to write the command and return at once
            timeout: Response timeout in seconds (default: command_timeout)

        Returns:
            The answering record, or None if not waiting for a response

        Raises:
            BLEConnectionError: If not ready, the write fails or the link drops
            CommandAlreadyPendingError: If another command is still pending
            CommandTimeoutError: If no answer arrives in time
            ValueError: If the response type is unknown for this command
        """
        if wait_for_response and response_type is None:
            response_type = RESPONSE_TYPES.get(command)
            if response_type is None:
                raise ValueError(
                    f"No known response for command 0x{command:02X}; pass response_type"
                )
        frame = encode_frame(command, args)
        return await self._transact(
            frame,
            command,
            response_type if wait_for_response else None,
            timeout,
        )

    async def get_firmware_version(self, timeout: float | None = None) -> FirmwareVersion:
        """Read the firmware version."""
        return await self._transact(
            build_version_command(), CommandCode.VERSION, FirmwareVersion, timeout
        )

    async def get_status(self, timeout: float | None = None) -> ModuleStatus:
        """Read model, charger state, battery voltage and error counters."""
        return await self._transact(
            build_status_command(), CommandCode.STATUS, ModuleStatus, timeout
        )

    async def get_temperature(self, timeout: float | None = None) -> Temperature:
        """Read the temperature sensor."""
        return await self._transact(
            build_get_temperature_command(), CommandCode.GET_TEMPERATURE, Temperature, timeout
        )

    async def get_pressure(self, timeout: float | None = None) -> Pressure:
        """Read the barometric pressure sensor."""
        return await self._transact(
            build_get_pressure_command(), CommandCode.GET_PRESSURE, Pressure, timeout
        )

    async def get_system_time(self, timeout: float | None = None) -> SystemTime:
        """Read the module real-time clock."""
        return await self._transact(
            build_get_rtc_command(), CommandCode.GET_RTC, SystemTime, timeout
        )

    async def get_config(self, timeout: float | None = None) -> ModuleConfig:
        """Read the module configuration (BD address, debug flag, options)."""
        return await self._transact(
            build_get_config_command(), CommandCode.GET_CONFIG, ModuleConfig, timeout
        )

    async def get_log_status(self, timeout: float | None = None) -> LogStatus:
        """Read whether on-module logging is enabled and how full the log is."""
        return await self._transact(
            build_log_status_command(), CommandCode.LOG_GET_STATUS, LogStatus, timeout
        )

    async def get_stream_config(self, timeout: float | None = None) -> StreamConfig:
        """Read which fields the module includes in streamed records."""
        return await self._transact(
            build_stream_get_config_command(), CommandCode.STREAM_GET_CONFIG, StreamConfig, timeout
        )

    async def set_stream_config(
            self,
            options: SensorOption | int,
            timeout: float | None = None,
    ) -> CommandAck:
        """Select which fields the module includes in streamed records."""
        return await self._transact(
            build_stream_set_config_command(options),
            CommandCode.STREAM_SET_CONFIG,
            CommandAck,
            timeout,
        )

    async def clear_log(self, timeout: float | None = None) -> CommandAck:
        """Erase the on-module data log."""
        return await self._transact(
            build_log_clear_command(), CommandCode.LOG_CLEAR, CommandAck, timeout
        )

    async def set_logging(self, enable: bool, timeout: float | None = None) -> CommandAck:
        """Enable or disable on-module data logging."""
        return await self._transact(
            build_log_enable_command(enable), CommandCode.LOG_ENABLE, CommandAck, timeout
        )

    async def set_led(self, state: LEDState) -> None:
        """Set the LED (not acknowledged, returns once written)."""
        await self._transact(build_set_led_command(state), CommandCode.SET_LED, None)

    async def start_capture(
            self,
            options: SensorOption | int | None = None,
            timeout: float | None = None,
    ) -> None:
        """Start streaming and capturing sensor samples.

        Args:
            options: Fields to stream; None keeps the module's current selection
            timeout: Per-command response timeout

        Samples are accepted from the moment the enable command is written.
        If the module does not acknowledge, capture is switched back off.
        """
        if options is not None:
            await self.set_stream_config(options, timeout)

        was_capturing = self._capturing
        self._capturing = True
        try:
            await self._transact(
                build_stream_enable_command(True),
                CommandCode.STREAM_ENABLE,
                CommandAck,
                timeout,
            )
        except BaseException:
            # A dropped link has already cleared capture
            if self._state is SessionState.READY:
                self._capturing = was_capturing
            raise
        self._log.info("Capture started")

    async def stop_capture(self, timeout: float | None = None) -> None:
        """Stop streaming.

        Samples that arrive before the module acknowledges are still stored.
        """
        await self._transact(
            build_stream_enable_command(False),
            CommandCode.STREAM_ENABLE,
            CommandAck,
            timeout,
        )
        self._capturing = False
        self._log.info("Capture stopped (%d samples stored)", len(self._store))

    def clear_records(self) -> None:
        """Discard all captured samples."""
        self._store.clear()
