"""
FRU Board Info Area decoder.

The area starts with version, length, language code and a 3-byte manufacturing
timestamp (minutes since 1996-01-01, little-endian), followed by a chain of
Type-Length fields. Each lead byte packs the type in bits 7:6 and the length in
bits 5:0; the field content is the next `length` bytes. The six mandatory
fields are always read by length: 0xC1 is also the lead byte of a one-byte
ASCII field (a one-byte FRU file ID or a one-character revision). The
End-of-Record byte 0xC1 is only recognised after the revision, in place of
the optional PCIe info and UUID fields, or after the last field.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Union

from ..errors import FormatError
from ..registers.cursor import ByteCursor
from ..registers.decoders import decode_ascii
from .header import AREA_OFFSET_UNIT, decode_common_header

logger = logging.getLogger(__name__)

END_OF_RECORD = 0xC1
TYPE_LENGTH_MASK = 0x3F
DEFAULT_BOARD_OFFSET = 0x08
MANUFACTURING_EPOCH = datetime(1996, 1, 1)

BOARD_FIELDS = (
    "manufacturer",
    "product_name",
    "serial_number",
    "part_number",
    "fru_file_id",
    "revision",
)
PCIE_FIELDS = ("pcie_info", "uuid")

# UUID bytes after which a dash is inserted
UUID_DASH_AFTER = (3, 5, 7, 9)


@dataclass(frozen=True)
class BoardInfo:
    """Decoded Board Info Area."""

    version: int
    length: int
    language: int
    manufacturing_date: datetime
    manufacturer: Optional[str] = None
    product_name: Optional[str] = None
    serial_number: Optional[str] = None
    part_number: Optional[str] = None
    fru_file_id: Optional[str] = None
    revision: Optional[str] = None
    pcie_info: Optional[str] = None
    uuid: Optional[str] = None
    end_offset: Optional[int] = None


def manufacturing_date(minutes: int) -> datetime:
    """Convert minutes since 1996-01-01 00:00 to a datetime.

    Raises:
        FormatError: If the date cannot be computed.
    """
    try:
        return MANUFACTURING_EPOCH + timedelta(minutes=minutes)
    except (OverflowError, ValueError) as e:
        logger.error(f"Invalid manufacturing date ({minutes} minutes): {e}")
        raise FormatError(f"Invalid manufacturing date: {e}") from e


def format_uuid(raw: bytes) -> str:
    parts = []
    for i, b in enumerate(raw):
        parts.append(f"{b:02x}")
        if i in UUID_DASH_AFTER:
            parts.append("-")
    return "".join(parts)


def _render(name: str, raw: bytes) -> str:
    if name == "fru_file_id" and len(raw) == 1:
        return f"{raw[0]:02x}"
    if name == "pcie_info":
        return raw.hex()
    if name == "uuid":
        return format_uuid(raw)
    return decode_ascii(raw)


def board_area_offset(buf: Union[bytes, bytearray]) -> int:
    """Board area offset from the common header, 0x08 when the header leaves it unset."""
    offset = decode_common_header(buf).board_offset
    return offset if offset else DEFAULT_BOARD_OFFSET


def read_type_length_fields(
    cursor: ByteCursor, names: tuple[str, ...], optional: bool = False
) -> tuple[dict[str, str], bool]:
    """Walk Type-Length fields in order.

    Args:
        cursor: Positioned on the lead byte of the first field
        names: Field names, in order
        optional: The fields may be left out, so a 0xC1 lead byte in place of
            a field is the End-of-Record sentinel rather than a one-byte field.

    Returns:
        (fields, ended): decoded fields by name, and whether the sentinel was
        met before all names were consumed. The cursor is left on the first
        byte after the last field read (or on the sentinel).
    """
    fields: dict[str, str] = {}
    for name in names:
        if optional and cursor.peek_byte() == END_OF_RECORD:
            logger.debug(f"End-of-Record at 0x{cursor.position:02x} before {name}")
            return fields, True
        lead = cursor.read_byte()
        offset = cursor.position
        raw = cursor.read_bytes(lead & TYPE_LENGTH_MASK)
        fields[name] = _render(name, raw)
        logger.debug(f"0x{offset:02x} - {name}: {fields[name]!r}")
    return fields, False


def read_board(
    buf: Union[bytes, bytearray], is_pcie: bool, require_end: bool
) -> BoardInfo:
    """Shared walk of the board area; the End-of-Record check is optional."""
    cursor = ByteCursor(buf, board_area_offset(buf))
    version = cursor.read_byte()
    length = cursor.read_byte() * AREA_OFFSET_UNIT
    language = cursor.read_byte()
    date = manufacturing_date(cursor.read_u24_le())

    fields, _ = read_type_length_fields(cursor, BOARD_FIELDS)
    if is_pcie:
        pcie_fields, _ = read_type_length_fields(cursor, PCIE_FIELDS, optional=True)
        fields.update(pcie_fields)

    at_end = cursor.remaining > 0 and cursor.peek_byte() == END_OF_RECORD
    if require_end and not at_end:
        logger.error(f"End-of-Record was not found at 0x{cursor.position:02x}")
        raise FormatError("missing end-of-record")
    end_offset = cursor.position if at_end else None

    return BoardInfo(
        version=version,
        length=length,
        language=language,
        manufacturing_date=date,
        end_offset=end_offset,
        **fields,
    )


def decode_board_area(buf: Union[bytes, bytearray], is_pcie: bool) -> BoardInfo:
    """Decode the Board Info Area of an EEPROM image.

    Args:
        buf: Full EEPROM image
        is_pcie: Whether the board carries the PCIe info and UUID fields

    Returns:
        BoardInfo. PCIe info and UUID are None when the area leaves them out.

    Raises:
        FormatError: If the End-of-Record sentinel is not where expected, the
            date is invalid, or a field runs past the end of the image.
    """
    info = read_board(buf, is_pcie, require_end=True)
    logger.debug(f"Decoded board area: {info}")
    return info


def decode_board_identity(buf: Union[bytes, bytearray]) -> tuple[str, str]:
    """Manufacturer and product name only, as used when listing cards."""
    cursor = ByteCursor(buf, board_area_offset(buf) + 6)
    fields, _ = read_type_length_fields(cursor, ("manufacturer", "product_name"))
    return fields.get("manufacturer", ""), fields.get("product_name", "")
