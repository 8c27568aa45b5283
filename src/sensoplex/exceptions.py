"""Exceptions raised by the SensoPlex package."""

from __future__ import annotations


class SensoPlexError(Exception):
    """Base exception for all SensoPlex errors."""


class BLEConnectionError(SensoPlexError):
    """BLE connection failed, was lost, or is not established."""


class BLETimeoutError(SensoPlexError):
    """BLE scan or connection timed out."""


class ProtocolError(SensoPlexError):
    """Wire protocol violation."""


class FrameError(ProtocolError):
    """A frame on the wire could not be recovered."""


class FrameChecksumError(FrameError):
    """Frame checksum did not match its contents."""

    def __init__(self, expected: int, received: int):
        self.expected = expected
        self.received = received
        super().__init__(
            f"Checksum mismatch: expected 0x{expected:02X}, received 0x{received:02X}"
        )


class FrameTruncatedError(FrameError):
    """Stream ended before a complete frame was received."""


class DecodeError(ProtocolError):
    """A validated packet could not be decoded into a record."""


class UnknownCommandError(DecodeError):
    """Packet carries a command code the decoder does not know."""

    def __init__(self, command: int):
        self.command = command
        super().__init__(f"Unknown command 0x{command:02X}")


class TruncatedPayloadError(DecodeError):
    """Packet payload is shorter than its layout requires."""

    def __init__(self, command: int, needed: int, available: int):
        self.command = command
        self.needed = needed
        self.available = available
        super().__init__(
            f"Payload for command 0x{command:02X} too short: "
            f"need {needed} bytes, have {available}"
        )


class CommandError(SensoPlexError):
    """A command could not be completed."""


class CommandTimeoutError(CommandError):
    """No matching response arrived before the command timed out."""

    def __init__(self, command: int, timeout: float):
        self.command = command
        self.timeout = timeout
        super().__init__(f"No response to command 0x{command:02X} within {timeout}s")


class CommandAlreadyPendingError(CommandError):
    """A command was issued while another one is still awaiting its response."""

    def __init__(self, pending_command: int):
        self.pending_command = pending_command
        super().__init__(
            f"Command 0x{pending_command:02X} is still pending; "
            "wait for it to complete before sending another"
        )
