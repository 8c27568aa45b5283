"""Packet framing for the SensoPlex packet interface.

Frame format:
    [0xD1][command][payload...][checksum][0xDF]

- checksum: sum of command + payload bytes, modulo 256
- Any 0xD1, 0xDF or 0xDE between the sentinels is sent as
  [0xDE][value ^ 0x20]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from ..exceptions import FrameChecksumError, FrameTruncatedError

_LOGGER = logging.getLogger(__name__)

START_OF_PACKET = 0xD1
END_OF_PACKET = 0xDF
BYTE_STUFFING = 0xDE
STUFFING_MASK = 0x20

MAX_PAYLOAD_SIZE = 132  # Largest payload observed (stream record: 2 + 129 data + pad)

_RESERVED = frozenset((START_OF_PACKET, END_OF_PACKET, BYTE_STUFFING))

# command + payload + checksum
_MAX_FRAME_CONTENT = 1 + MAX_PAYLOAD_SIZE + 1


@dataclass(frozen=True, slots=True)
class Packet:
    """Validated packet recovered from a frame."""

    command: int
    payload: bytes = b""


def calculate_checksum(data: bytes) -> int:
    """Calculate the 8-bit additive checksum over command + payload."""
    return sum(data) & 0xFF


def _stuff(data: bytes) -> bytes:
    out = bytearray()
    for byte in data:
        if byte in _RESERVED:
            out.append(BYTE_STUFFING)
            out.append(byte ^ STUFFING_MASK)
        else:
            out.append(byte)
    return bytes(out)


def encode_frame(command: int, args: bytes = b"") -> bytes:
    """Build a complete frame ready to write to the module.

    Args:
        command: Command code (0-255)
        args: Command argument bytes

    Returns:
        Stuffed, checksummed, sentinel-delimited frame

    Raises:
        ValueError: If command is not a byte or args are too long
    """
    if not 0 <= command <= 0xFF:
        raise ValueError(f"Command out of range: {command} (must be 0-255)")
    if len(args) > MAX_PAYLOAD_SIZE:
        raise ValueError(
            f"Payload size {len(args)} exceeds maximum {MAX_PAYLOAD_SIZE}"
        )

    content = bytes([command]) + bytes(args)
    content += bytes([calculate_checksum(content)])

    return bytes([START_OF_PACKET]) + _stuff(content) + bytes([END_OF_PACKET])


class _State(Enum):
    IDLE = 0
    COLLECTING = 1


class FrameDecoder:
    """Recovers packets from the raw notification byte stream.

    Feed bytes in arrival order from a single stream. Corrupted or truncated
    frames are dropped and counted; feeding never raises.
    """

    def __init__(self) -> None:
        self._state = _State.IDLE
        self._buffer = bytearray()
        self._escaped = False
        self.checksum_errors = 0
        self.framing_errors = 0
        self.last_checksum_error: tuple[int, int] | None = None  # (expected, received)

    @property
    def in_frame(self) -> bool:
        """True while a frame is partially collected."""
        return self._state is _State.COLLECTING

    def reset(self) -> None:
        """Drop any partially collected frame."""
        if self._state is _State.COLLECTING:
            _LOGGER.debug("Dropping partial frame (%d bytes)", len(self._buffer))
        self._restart(_State.IDLE)

    def _restart(self, state: _State) -> None:
        self._state = state
        self._buffer.clear()
        self._escaped = False

    def feed(self, byte: int) -> Packet | None:
        """Process one byte.

        Returns:
            A Packet when this byte closes a valid frame, otherwise None
        """
        if byte == START_OF_PACKET:
            if self._state is _State.COLLECTING and self._buffer:
                _LOGGER.debug("Start of packet inside frame, resynchronising")
            self._restart(_State.COLLECTING)
            return None

        if self._state is _State.IDLE:
            return None

        if byte == END_OF_PACKET:
            if self._escaped:
                _LOGGER.debug("End of packet directly after stuffing byte")
                self.framing_errors += 1
                self._restart(_State.IDLE)
                return None
            return self._close()

        if self._escaped:
            self._escaped = False
            byte ^= STUFFING_MASK
        elif byte == BYTE_STUFFING:
            self._escaped = True
            return None

        if len(self._buffer) >= _MAX_FRAME_CONTENT:
            _LOGGER.debug("Frame exceeds %d bytes, dropping", _MAX_FRAME_CONTENT)
            self.framing_errors += 1
            self._restart(_State.IDLE)
            return None

        self._buffer.append(byte)
        return None

    def feed_bytes(self, data: bytes) -> list[Packet]:
        """Process a burst of bytes and return every packet it completes."""
        packets = []
        for byte in data:
            packet = self.feed(byte)
            if packet is not None:
                packets.append(packet)
        return packets

    def _close(self) -> Packet | None:
        content = bytes(self._buffer)
        self._restart(_State.IDLE)

        if len(content) < 2:
            _LOGGER.debug("Frame too short: %d bytes", len(content))
            self.framing_errors += 1
            return None

        expected = calculate_checksum(content[:-1])
        if expected != content[-1]:
            self.checksum_errors += 1
            self.last_checksum_error = (expected, content[-1])
            _LOGGER.debug(
                "Checksum error on command 0x%02X: expected 0x%02X, got 0x%02X (total %d)",
                content[0],
                expected,
                content[-1],
                self.checksum_errors,
            )
            return None

        return Packet(command=content[0], payload=content[1:-1])


def decode_frame(data: bytes) -> Packet:
    """Decode exactly one complete frame.

    Args:
        data: Frame bytes including sentinels

    Returns:
        The packet carried by the first valid frame in data

    Raises:
        FrameChecksumError: If the frame checksum does not match
        FrameTruncatedError: If data holds no complete frame
    """
    decoder = FrameDecoder()
    for byte in data:
        before = decoder.checksum_errors
        packet = decoder.feed(byte)
        if packet is not None:
            return packet
        if decoder.checksum_errors != before:
            expected, received = decoder.last_checksum_error
            raise FrameChecksumError(expected=expected, received=received)
    raise FrameTruncatedError(f"No complete frame in {len(data)} bytes")

