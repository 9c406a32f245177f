"""
Summary view of an on-board EEPROM and raw dump rows.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from ..registers.cursor import ByteCursor
from ..registers.utils import format_mac
from .board import read_board

logger = logging.getLogger(__name__)

MAC_ADDRESS_OFFSETS = (0x80, 0x86)


@dataclass(frozen=True)
class BoardSummary:
    language: int
    manufacturing_date: datetime
    manufacturer: Optional[str]
    product_name: Optional[str]
    serial_number: Optional[str]
    part_number: Optional[str]
    revision: Optional[str]
    mac_addresses: tuple[str, ...]


def decode_summary(buf: Union[bytes, bytearray]) -> BoardSummary:
    """Board identity plus the two MAC addresses stored at 0x80 and 0x86.

    Unlike decode_board_area, this does not require the End-of-Record
    sentinel after the revision field.
    """
    info = read_board(buf, is_pcie=False, require_end=False)
    cursor = ByteCursor(buf)
    macs = []
    for offset in MAC_ADDRESS_OFFSETS:
        cursor.seek(offset)
        macs.append(format_mac(cursor.read_bytes(6)))
    return BoardSummary(
        language=info.language,
        manufacturing_date=info.manufacturing_date,
        manufacturer=info.manufacturer,
        product_name=info.product_name,
        serial_number=info.serial_number,
        part_number=info.part_number,
        revision=info.revision,
        mac_addresses=tuple(macs),
    )


def hexdump_rows(
    buf: Union[bytes, bytearray], width: int = 16
) -> list[tuple[int, bytes]]:
    """Split an image into (offset, row bytes) pairs of `width` bytes each."""
    if width <= 0:
        raise ValueError(f"Row width must be positive, got {width}")
    return [(i, bytes(buf[i : i + width])) for i in range(0, len(buf), width)]
