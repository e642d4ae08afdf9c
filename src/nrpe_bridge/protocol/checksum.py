"""CRC-32 utilities for NRPE packets.

NRPE stores a CRC-32 (IEEE polynomial) of the complete serialized packet,
computed while the 4-byte checksum field holds zero. Encoder and decoder both
go through this module so the computation is byte-identical on both sides.
"""

from __future__ import annotations

import zlib

from nrpe_bridge.protocol.packet_types import CHECKSUM_LENGTH, CHECKSUM_OFFSET


def calculate_checksum(packet: bytes | bytearray) -> int:
    """
    Compute the NRPE checksum of a serialized packet.

    The checksum slot is zeroed on a copy, the input is left untouched.

    Args:
        packet: Complete serialized packet

    Returns:
        Unsigned 32-bit CRC
    """
    if len(packet) < CHECKSUM_OFFSET + CHECKSUM_LENGTH:
        raise ValueError("Packet too short to hold a checksum field")

    scratch = bytearray(packet)
    scratch[CHECKSUM_OFFSET : CHECKSUM_OFFSET + CHECKSUM_LENGTH] = bytes(CHECKSUM_LENGTH)
    return zlib.crc32(scratch) & 0xFFFFFFFF


def insert_checksum_in_place(packet: bytearray) -> int:
    """
    Compute and write the checksum into a mutable packet buffer.

    Args:
        packet: Mutable packet buffer

    Returns:
        The checksum written
    """
    checksum = calculate_checksum(packet)
    packet[CHECKSUM_OFFSET : CHECKSUM_OFFSET + CHECKSUM_LENGTH] = checksum.to_bytes(
        CHECKSUM_LENGTH,
        "big",
    )
    return checksum
