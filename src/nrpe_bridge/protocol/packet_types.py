"""NRPE packet type definitions and dataclass structures.

This module defines the packet constants and immutable dataclasses for the
NRPE v2 wire protocol.

Packet layout (big-endian, fixed length per protocol version):
- Bytes 0-1: packet version (2)
- Bytes 2-3: packet type (1 = query, 2 = response)
- Bytes 4-7: CRC-32 of the whole packet with this field zeroed
- Bytes 8-9: result code (0 = OK, 1 = WARNING, 2 = CRITICAL, 3 = UNKNOWN)
- Bytes 10-1033: payload buffer (NUL-terminated text, random padding after)
- Bytes 1034-1035: trailer (random padding)
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Final

# Packet Type Constants
QUERY_PACKET: Final = 1  # Client → Agent: command request
RESPONSE_PACKET: Final = 2  # Agent → Client: command result

# Packet Version Constants
NRPE_PACKET_VERSION_2: Final = 2

# Payload capacity (NUL terminator included)
MAX_PACKETBUFFER_LENGTH: Final = 1024

# version(2) + type(2) + crc32(4) + result_code(2) + buffer + trailer(2)
PACKET_STRUCT: Final = struct.Struct(f">HHIH{MAX_PACKETBUFFER_LENGTH}sH")
HEADER_STRUCT: Final = struct.Struct(">HHIH")
PACKET_LENGTH: Final = PACKET_STRUCT.size

# Byte offsets inside a serialized packet
CHECKSUM_OFFSET: Final = 4
CHECKSUM_LENGTH: Final = 4
PAYLOAD_OFFSET: Final = 10

# Fixed packet length for every supported protocol version
PACKET_LENGTHS: Final[dict[int, int]] = {
    NRPE_PACKET_VERSION_2: PACKET_LENGTH,
}

COMMAND_ARG_SEPARATOR: Final = "!"


class NrpeStatus(IntEnum):
    """Check result codes carried in the result_code field."""

    OK = 0
    WARNING = 1
    CRITICAL = 2
    UNKNOWN = 3


VALID_STATUS_CODES: Final = frozenset(status.value for status in NrpeStatus)

PACKET_TYPE_NAMES: Final[dict[int, str]] = {
    QUERY_PACKET: "query",
    RESPONSE_PACKET: "response",
}


@dataclass(frozen=True)
class NrpeCommand:
    """Logical NRPE request: a check name plus ordered arguments.

    Attributes:
        name: Command name as configured on the remote agent (e.g. "check_load")
        args: Ordered arguments, joined with "!" on the wire

    """

    name: str
    args: tuple[str, ...] = field(default_factory=tuple)

    def to_wire_text(self) -> str:
        """Serialize as ``name[!arg1[!arg2...]]``."""
        if self.args:
            return COMMAND_ARG_SEPARATOR.join((self.name, *self.args))
        return self.name

    @classmethod
    def from_wire_text(cls, text: str) -> NrpeCommand:
        """Split ``name!arg1!arg2`` back into a command."""
        name, *args = text.split(COMMAND_ARG_SEPARATOR)
        return cls(name=name, args=tuple(args))

    def __str__(self) -> str:
        return self.to_wire_text()


@dataclass(frozen=True)
class NrpePacket:
    """Decoded or freshly encoded NRPE packet.

    Instances are only produced once the checksum is final, either by the
    encoder after writing it or by the decoder after verifying it.

    Attributes:
        version: Protocol version (NRPE_PACKET_VERSION_2)
        packet_type: QUERY_PACKET or RESPONSE_PACKET
        checksum: CRC-32 stored in the packet
        result_code: Raw result code field
        payload: Full payload buffer (text, NUL, padding)
        trailer: Reserved trailer field
        raw: Complete serialized packet bytes

    """

    version: int
    packet_type: int
    checksum: int
    result_code: int
    payload: bytes
    trailer: int
    raw: bytes

    @property
    def text(self) -> str:
        """Payload bytes up to the first NUL, decoded as text."""
        end = self.payload.find(b"\x00")
        content = self.payload if end == -1 else self.payload[:end]
        return content.decode("utf-8", errors="replace")

    @property
    def status(self) -> NrpeStatus:
        """Result code as NrpeStatus (raises ValueError for unknown codes)."""
        return NrpeStatus(self.result_code)
