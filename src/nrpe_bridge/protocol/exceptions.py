"""Custom exception types for NRPE protocol errors.

This module defines the exception hierarchy for protocol-related errors,
following the "No Nullability" principle where errors raise exceptions
instead of returning None.
"""

from __future__ import annotations


class NrpeProtocolError(Exception):
    """Base exception for all NRPE protocol errors.

    All protocol-related exceptions inherit from this base class,
    enabling catch-all error handling when needed while maintaining
    specific exception types for detailed handling.
    """


class PacketDecodeError(NrpeProtocolError):
    """Packet cannot be decoded.

    Raised when packet parsing fails due to malformed data, invalid checksum,
    unexpected type, invalid length, or unknown result code.

    Attributes:
        reason: Specific failure reason (e.g., "short_read", "checksum_mismatch")
        data_preview: First 16 bytes of packet data (security: prevents command leakage)
    """

    def __init__(self, reason: str, data: bytes = b"", detail: str = ""):
        self.reason = reason
        # Security: Only store first 16 bytes to keep command arguments out of logs/tracebacks
        self.data_preview = data[:16] if data else b""
        message = f"Packet decode failed: {reason}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class ShortReadError(PacketDecodeError):
    """Byte count does not match the fixed packet length of the declared version."""

    def __init__(self, expected: int, actual: int, data: bytes = b""):
        self.expected = expected
        self.actual = actual
        super().__init__("short_read", data, f"expected {expected} bytes, got {actual}")


class TypeMismatchError(PacketDecodeError):
    """Packet type is not the one the caller expected (query vs response)."""

    def __init__(self, expected: int, actual: int, data: bytes = b""):
        self.expected = expected
        self.actual = actual
        super().__init__("type_mismatch", data, f"expected type {expected}, got {actual}")


class ChecksumMismatchError(PacketDecodeError):
    """Recomputed CRC-32 does not match the value stored in the packet."""

    def __init__(self, expected: int, actual: int, data: bytes = b""):
        self.expected = expected
        self.actual = actual
        super().__init__(
            "checksum_mismatch",
            data,
            f"stored 0x{expected:08x}, computed 0x{actual:08x}",
        )


class UnknownStatusError(PacketDecodeError):
    """Response packet carries a result code outside OK/WARNING/CRITICAL/UNKNOWN."""

    def __init__(self, result_code: int, data: bytes = b""):
        self.result_code = result_code
        super().__init__("unknown_status", data, f"result code {result_code}")


class UnsupportedVersionError(PacketDecodeError):
    """Packet version has no known fixed layout."""

    def __init__(self, version: int, data: bytes = b""):
        self.version = version
        super().__init__("unsupported_version", data, f"version {version}")


class CommandTooLongError(NrpeProtocolError):
    """Serialized command does not fit in the payload buffer.

    Raised before any I/O. Oversize commands are rejected rather than
    truncated so a different command is never sent.

    Attributes:
        length: Serialized length including the NUL terminator
        max_length: Payload capacity
    """

    def __init__(self, length: int, max_length: int):
        self.length = length
        self.max_length = max_length
        super().__init__(
            f"Command is too long: got {length} bytes with terminator, max allowed {max_length}",
        )
