"""
FRU common header: the fixed 8-byte prefix of every FRU EEPROM image.
"""

import logging
from dataclasses import dataclass
from typing import Union

from ..errors import FormatError
from ..registers.cursor import ByteCursor

logger = logging.getLogger(__name__)

COMMON_HEADER_SIZE = 8
AREA_OFFSET_UNIT = 8


@dataclass(frozen=True)
class CommonHeader:
    """Decoded common header. Area offsets are in bytes (already multiplied by 8)."""

    version: int
    internal_use_offset: int
    chassis_offset: int
    board_offset: int
    product_offset: int
    multirecord_offset: int
    pad: int
    checksum: int


def decode_common_header(buf: Union[bytes, bytearray]) -> CommonHeader:
    """Decode the common header of an EEPROM image.

    Args:
        buf: Full EEPROM image as read from the device

    Returns:
        CommonHeader with byte offsets

    Raises:
        FormatError: If the image is shorter than the header or an area
            offset points past the end of the image.
    """
    cursor = ByteCursor(buf)
    if len(cursor) < COMMON_HEADER_SIZE:
        raise FormatError(
            f"Image of {len(cursor)} bytes is shorter than the {COMMON_HEADER_SIZE}-byte common header"
        )

    version = cursor.read_byte()
    offsets = [cursor.read_byte() * AREA_OFFSET_UNIT for _ in range(5)]
    pad = cursor.read_byte()
    checksum = cursor.read_byte()

    names = ("internal use", "chassis info", "board", "product info", "multirecord")
    for name, offset in zip(names, offsets):
        if offset > len(cursor):
            logger.error(
                f"Common header {name} offset 0x{offset:x} exceeds image size {len(cursor)}"
            )
            raise FormatError(
                f"{name} area offset 0x{offset:x} exceeds image size {len(cursor)}"
            )

    header = CommonHeader(version, *offsets, pad=pad, checksum=checksum)
    logger.debug(f"Decoded common header: {header}")
    return header
