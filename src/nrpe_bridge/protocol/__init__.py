"""NRPE protocol package - packet encoding, decoding, and checksums.

This package implements the NRPE v2 codec. It provides packet type
definitions, the encoder/decoder and the protocol exception hierarchy.
No I/O happens here.

Public API:
- Packet type constants (QUERY_PACKET, RESPONSE_PACKET, ...)
- Packet dataclasses (NrpePacket, NrpeCommand)
- Protocol encoder/decoder (NrpeProtocol)
"""

from nrpe_bridge.protocol.exceptions import (
    ChecksumMismatchError,
    CommandTooLongError,
    NrpeProtocolError,
    PacketDecodeError,
    ShortReadError,
    TypeMismatchError,
    UnknownStatusError,
    UnsupportedVersionError,
)
from nrpe_bridge.protocol.nrpe_protocol import NrpeProtocol, decode_query
from nrpe_bridge.protocol.packet_types import (
    MAX_PACKETBUFFER_LENGTH,
    NRPE_PACKET_VERSION_2,
    PACKET_LENGTH,
    QUERY_PACKET,
    RESPONSE_PACKET,
    NrpeCommand,
    NrpePacket,
    NrpeStatus,
)

__all__ = [
    # Protocol encoder/decoder
    "NrpeProtocol",
    "decode_query",
    # Packet constants
    "MAX_PACKETBUFFER_LENGTH",
    "NRPE_PACKET_VERSION_2",
    "PACKET_LENGTH",
    "QUERY_PACKET",
    "RESPONSE_PACKET",
    # Dataclasses
    "NrpeCommand",
    "NrpePacket",
    "NrpeStatus",
    # Exceptions
    "ChecksumMismatchError",
    "CommandTooLongError",
    "NrpeProtocolError",
    "PacketDecodeError",
    "ShortReadError",
    "TypeMismatchError",
    "UnknownStatusError",
    "UnsupportedVersionError",
]
