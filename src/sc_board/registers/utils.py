"""
Low-level utility functions for the byte formats used by board devices.

PMBus words travel little-endian, transceiver and DIMM sensor words travel
big-endian; both are handled here so that decoders only deal with integers.
"""

import logging
import struct

from ..errors import FormatError, ValidationError

logger = logging.getLogger(__name__)


def int_to_le16(value: int) -> bytes:
    """
    Converts a signed 16-bit integer to the two bytes sent on the wire (LSB first).

    Process:
    1. Pack as signed short (two's complement for negative values)
    2. Little-endian byte order, low byte first

    Example:
        100 -> 0x0064 -> b"\\x64\\x00"

    Args:
        value: Signed 16-bit integer (-32768 to 32767)

    Returns:
        Two bytes in little-endian order

    Raises:
        ValidationError: If value does not fit in a signed 16-bit word.
    """
    try:
        return struct.pack("<h", value)
    except struct.error as e:
        logger.error(f"Error encoding int value '{value}': {e}")
        raise ValidationError(f"Value {value} does not fit in a signed 16-bit word") from e


def _unpack_word(fmt: str, raw: bytes) -> int:
    if len(raw) < 2:
        raise FormatError(f"16-bit word needs 2 bytes, got {len(raw)}")
    return struct.unpack(fmt, bytes(raw[:2]))[0]


def le16_to_int(raw: bytes) -> int:
    """
    Converts a little-endian byte pair to a signed 16-bit integer.
    e.g., b"\\x64\\x00" -> 0x0064 -> 100

    Raises:
        FormatError: If fewer than two bytes are given.
    """
    return _unpack_word("<h", raw)


def be16_to_uint(raw: bytes) -> int:
    """Converts a big-endian byte pair (MSB first) to an unsigned integer."""
    return _unpack_word(">H", raw)


def be16_to_int(raw: bytes) -> int:
    """Converts a big-endian byte pair (MSB first) to a signed 16-bit integer."""
    return _unpack_word(">h", raw)


def to_signed16(value: int) -> int:
    """Interprets the low 16 bits of value as a two's complement integer."""
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


def swap16(value: int) -> int:
    """Swaps the two bytes of a 16-bit word."""
    return ((value & 0xFF) << 8) | ((value >> 8) & 0xFF)


def get_bit(value: int, bit_index: int) -> bool:
    """
    Checks if a specific bit is set in an integer.

    Note: This is a low-level utility function.
    """
    return (value & (1 << bit_index)) != 0


def format_mac(raw: bytes) -> str:
    """Formats six bytes as a colon-separated MAC address (e.g. '00:0a:35:...')."""
    return ":".join(f"{b:02x}" for b in raw)


def format_hex(raw: bytes) -> str:
    """Formats bytes as a contiguous lowercase hex string."""
    return raw.hex()
