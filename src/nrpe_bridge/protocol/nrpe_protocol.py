"""NRPE protocol encoder/decoder implementation.

This module implements packet encoding and decoding for the NRPE v2 wire
protocol: fixed-length big-endian frames with random padding and a CRC-32
computed over the whole frame.
"""

from __future__ import annotations

import logging
import random
import secrets

from nrpe_bridge.protocol.checksum import calculate_checksum, insert_checksum_in_place
from nrpe_bridge.protocol.exceptions import (
    ChecksumMismatchError,
    CommandTooLongError,
    ShortReadError,
    TypeMismatchError,
    UnknownStatusError,
    UnsupportedVersionError,
)
from nrpe_bridge.protocol.packet_types import (
    HEADER_STRUCT,
    MAX_PACKETBUFFER_LENGTH,
    NRPE_PACKET_VERSION_2,
    PACKET_LENGTHS,
    PACKET_STRUCT,
    PAYLOAD_OFFSET,
    QUERY_PACKET,
    RESPONSE_PACKET,
    VALID_STATUS_CODES,
    NrpeCommand,
    NrpePacket,
    NrpeStatus,
)

VERSION_FIELD_LENGTH = 2

logger = logging.getLogger(__name__)


class NrpeProtocol:
    """NRPE protocol encoder/decoder.

    Each instance owns the pseudorandom source used for padding, seeded once
    at construction. Padding only defeats traffic-size fingerprinting, so a
    non-cryptographic generator is sufficient. Pass an explicitly seeded
    ``random.Random`` for reproducible output in tests.
    """

    def __init__(self, rng: random.Random | None = None):
        self.rng = rng if rng is not None else random.Random(secrets.randbits(64))

    def encode_packet(
        self,
        text: str | bytes,
        packet_type: int,
        result_code: int = NrpeStatus.OK,
        version: int = NRPE_PACKET_VERSION_2,
    ) -> NrpePacket:
        """Encode one fixed-length packet.

        Steps:
        1. Fill the whole buffer with random bytes (payload remainder and trailer
           keep them as padding)
        2. Write version, type, zero checksum and result code
        3. Copy the text plus a NUL terminator into the payload
        4. Compute CRC-32 over the buffer with the checksum zeroed and write it back

        Args:
            text: Command text (query) or check output (response)
            packet_type: QUERY_PACKET or RESPONSE_PACKET
            result_code: Result code field (queries send OK)
            version: Protocol version

        Returns:
            Immutable NrpePacket with the final checksum

        Raises:
            CommandTooLongError: If text plus terminator exceeds the payload buffer
            UnsupportedVersionError: If the version has no known layout

        Example:
            >>> codec = NrpeProtocol(random.Random(0))
            >>> packet = codec.encode_packet("check_load", QUERY_PACKET)
            >>> packet.text
            'check_load'

        """
        if version not in PACKET_LENGTHS:
            raise UnsupportedVersionError(version)

        data = text.encode("utf-8") if isinstance(text, str) else text
        if len(data) + 1 > MAX_PACKETBUFFER_LENGTH:
            raise CommandTooLongError(len(data) + 1, MAX_PACKETBUFFER_LENGTH)

        buffer = bytearray(self.rng.randbytes(PACKET_LENGTHS[version]))
        HEADER_STRUCT.pack_into(buffer, 0, version, packet_type, 0, result_code)
        buffer[PAYLOAD_OFFSET : PAYLOAD_OFFSET + len(data) + 1] = data + b"\x00"

        checksum = insert_checksum_in_place(buffer)

        logger.debug(
            "Encoded packet: type=%d, version=%d, text_len=%d, crc=0x%08x",
            packet_type,
            version,
            len(data),
            checksum,
        )

        return self._unpack(bytes(buffer))

    def encode_query(self, command: NrpeCommand, version: int = NRPE_PACKET_VERSION_2) -> NrpePacket:
        """Encode a QUERY packet for the given command."""
        return self.encode_packet(command.to_wire_text(), QUERY_PACKET, NrpeStatus.OK, version)

    def encode_response(
        self,
        status: int,
        output_text: str,
        version: int = NRPE_PACKET_VERSION_2,
    ) -> NrpePacket:
        """Encode a RESPONSE packet carrying a check result."""
        return self.encode_packet(output_text, RESPONSE_PACKET, status, version)

    @staticmethod
    def validate_command(command: NrpeCommand) -> None:
        """Reject a command that would not fit in the payload buffer.

        Raises:
            CommandTooLongError: If the serialized command plus terminator is too long

        """
        length = len(command.to_wire_text().encode("utf-8")) + 1
        if length > MAX_PACKETBUFFER_LENGTH:
            raise CommandTooLongError(length, MAX_PACKETBUFFER_LENGTH)

    @staticmethod
    def expected_length(version: int = NRPE_PACKET_VERSION_2) -> int:
        """Return the fixed serialized length for a protocol version."""
        if version not in PACKET_LENGTHS:
            raise UnsupportedVersionError(version)
        return PACKET_LENGTHS[version]

    @staticmethod
    def decode_packet(data: bytes, expected_type: int) -> NrpePacket:
        """Decode and verify a complete packet.

        Checks run in this order: declared version, exact length, packet type,
        checksum, then result code (RESPONSE packets only).

        Args:
            data: Complete packet bytes
            expected_type: QUERY_PACKET or RESPONSE_PACKET

        Returns:
            Verified NrpePacket

        Raises:
            ShortReadError: If the length differs from the version's fixed length
            UnsupportedVersionError: If the declared version is unknown
            TypeMismatchError: If the packet type is not expected_type
            ChecksumMismatchError: If the CRC-32 does not verify
            UnknownStatusError: If a response carries an unknown result code

        """
        logger.debug("Decoding packet", extra={"bytes": len(data)})

        if len(data) < VERSION_FIELD_LENGTH:
            raise ShortReadError(PACKET_LENGTHS[NRPE_PACKET_VERSION_2], len(data), data)

        version = int.from_bytes(data[:VERSION_FIELD_LENGTH], "big")
        if version not in PACKET_LENGTHS:
            raise UnsupportedVersionError(version, data)

        expected_length = PACKET_LENGTHS[version]
        if len(data) != expected_length:
            raise ShortReadError(expected_length, len(data), data)

        packet = NrpeProtocol._unpack(data)

        if packet.packet_type != expected_type:
            raise TypeMismatchError(expected_type, packet.packet_type, data)

        calculated = calculate_checksum(data)
        if calculated != packet.checksum:
            raise ChecksumMismatchError(packet.checksum, calculated, data)

        if packet.packet_type == RESPONSE_PACKET and packet.result_code not in VALID_STATUS_CODES:
            raise UnknownStatusError(packet.result_code, data)

        logger.debug(
            "Decoded packet: type=%d, result_code=%d, crc=0x%08x",
            packet.packet_type,
            packet.result_code,
            packet.checksum,
        )
        return packet

    @staticmethod
    def _unpack(raw: bytes) -> NrpePacket:
        version, packet_type, checksum, result_code, payload, trailer = PACKET_STRUCT.unpack(raw)
        return NrpePacket(
            version=version,
            packet_type=packet_type,
            checksum=checksum,
            result_code=result_code,
            payload=payload,
            trailer=trailer,
            raw=raw,
        )


def decode_query(data: bytes) -> NrpeCommand:
    """Decode a QUERY packet into the command it carries (agent side)."""
    return NrpeCommand.from_wire_text(NrpeProtocol.decode_packet(data, QUERY_PACKET).text)
