"""
Byte-level framing for the Renogy register protocol.

Builds "read holding registers" request frames and computes/verifies the
Modbus CRC16 (reflected polynomial 0xA001, seed 0xFFFF).  The CRC is
transmitted low byte first.

This module is pure: no I/O, no clock, no logging.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-102)

TODO:
- None
"""

from __future__ import annotations

import struct

from rover.src.errors import CodecError

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

FUNCTION_READ_REGISTERS: int = 0x03
"""Modbus function code for "read holding registers"."""

FUNCTION_READ_REGISTERS_ERROR: int = FUNCTION_READ_REGISTERS | 0x80
"""Function code echoed back in an exception response (0x83)."""

MAX_START_ADDRESS: int = 0x1000
MAX_WORD_COUNT: int = 0x7D

_CRC_SEED: int = 0xFFFF
_CRC_POLY: int = 0xA001


def _build_table() -> tuple[int, ...]:
    table = []
    for byte in range(256):
        crc = byte
        for _ in range(8):
            if crc & 0x0001:
                crc = (crc >> 1) ^ _CRC_POLY
            else:
                crc >>= 1
        table.append(crc)
    return tuple(table)


_CRC_TABLE: tuple[int, ...] = _build_table()


# ---------------------------------------------------------------------------
# CRC16
# ---------------------------------------------------------------------------


def compute_crc16(data: bytes) -> int:
    """Compute the Modbus CRC16 of *data*.

    Args:
        data: Every frame byte preceding the CRC.

    Returns:
        The 16-bit CRC.  The CRC of an empty sequence is ``0xFFFF``.
    """
    crc = _CRC_SEED
    for byte in data:
        crc = (crc >> 8) ^ _CRC_TABLE[(crc ^ byte) & 0xFF]
    return crc


def crc_bytes(crc: int) -> bytes:
    """Encode a CRC the way it goes on the wire: low byte, then high byte."""
    return struct.pack("<H", crc)


def verify_crc(frame: bytes, trailing_crc: bytes) -> bool:
    """Return True when *trailing_crc* is the wire CRC of *frame*."""
    return len(trailing_crc) == 2 and crc_bytes(compute_crc16(frame)) == trailing_crc


def check_crc(frame: bytes, trailing_crc: bytes) -> None:
    """Raise :class:`CodecError` unless *trailing_crc* matches *frame*.

    Args:
        frame: The header and payload bytes of a received frame.
        trailing_crc: The two CRC bytes that followed them.

    Raises:
        CodecError: On a CRC of the wrong size or a checksum mismatch.
    """
    if len(trailing_crc) != 2:
        raise CodecError(f"{trailing_crc.hex()}: CRC must be 2 bytes")
    if not verify_crc(frame, trailing_crc):
        expected = compute_crc16(frame)
        (actual,) = struct.unpack("<H", trailing_crc)
        raise CodecError(
            f"Checksum mismatch: expected {expected:04x} but got {actual:04x}"
        )


# ---------------------------------------------------------------------------
# Request frames
# ---------------------------------------------------------------------------


def build_read_request(device_address: int, start_address: int, word_count: int) -> bytes:
    """Build the 8-byte "read holding registers" request frame.

    Layout: address, 0x03, start hi, start lo, words hi, words lo, CRC lo,
    CRC hi.  The CRC covers the first six bytes.

    Args:
        device_address: Controller address (0x00..0xFF).
        start_address: First register address, 0..0x1000.
        word_count: Number of 16-bit registers to read, 1..0x7D.

    Raises:
        ValueError: If any argument is out of range.
    """
    if not 0 <= device_address <= 0xFF:
        raise ValueError(f"{device_address}: device address must fit in one byte")
    if not 0 <= start_address <= MAX_START_ADDRESS:
        raise ValueError(f"{start_address}: must be 0..0x1000")
    if not 1 <= word_count <= MAX_WORD_COUNT:
        raise ValueError(f"{word_count}: must be 0x0001..0x007D")
    head = struct.pack(
        ">BBHH", device_address, FUNCTION_READ_REGISTERS, start_address, word_count
    )
    return head + crc_bytes(compute_crc16(head))
