"""
FRU Multirecord Area decoder.

The area is a chain of records, each with a 5-byte header:

    byte 0  Type
    byte 1  Format (bit 7 set on the last record)
    byte 2  Length of the payload
    byte 3  Record checksum
    byte 4  Header checksum

followed by `Length` bytes of payload. Only five record types are understood;
anything else aborts the whole decode.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

from ..errors import ChecksumError, FormatError
from ..registers.cursor import ByteCursor
from ..registers.enums import MacIdVersion, MultirecordType
from ..registers.utils import format_hex, format_mac
from .header import decode_common_header

logger = logging.getLogger(__name__)

RECORD_HEADER_SIZE = 5
LAST_RECORD_FLAG = 0x80
MAX_DC_LOAD_OUTPUT = 0x0F
VADJ_OUTPUT_NUMBER = 0x00

# Some early VCK190/VMK180 boards have the multirecord offset in the common
# header mis-programmed. When the byte it points to is not a known record type,
# the area is read from this fixed offset instead.
ERRATUM_MULTIRECORD_OFFSET = 0x68


@dataclass(frozen=True)
class MultirecordHeader:
    offset: int
    type: int
    format: int
    length: int
    record_checksum: int
    header_checksum: int

    @property
    def is_last(self) -> bool:
        return bool(self.format & LAST_RECORD_FLAG)

    @property
    def next_offset(self) -> int:
        return self.offset + RECORD_HEADER_SIZE + self.length


@dataclass(frozen=True)
class DcOutputRecord:
    """DC Output record; voltages in V, ripple in mV, currents in mA."""

    output_number: int
    nominal_voltage: float
    min_voltage: float
    max_voltage: float
    ripple_noise: int
    min_current: int
    max_current: int


@dataclass(frozen=True)
class DcLoadRecord(DcOutputRecord):
    """DC Load record. Output number 0 is the adjustable (VADJ) rail."""

    @property
    def is_voltage_adjust(self) -> bool:
        return self.output_number == VADJ_OUTPUT_NUMBER


@dataclass(frozen=True)
class MacIdRecord:
    iana_id: str
    version: int
    mac_addresses: tuple[str, ...]


@dataclass(frozen=True)
class MemoryRecord:
    iana_id: str
    memory_type: str
    voltage_supply: str


@dataclass(frozen=True)
class Vita57Record:
    oui: str
    subtype_version: int
    connector_type: int
    p1_bank_a_signals: int
    p1_bank_b_signals: int
    p2_bank_a_signals: int
    p2_bank_b_signals: int
    p1_gbt_signals: int
    max_tck_mhz: int


MultirecordPayload = Union[
    DcOutputRecord, DcLoadRecord, MacIdRecord, MemoryRecord, Vita57Record
]


@dataclass(frozen=True)
class MultirecordEntry:
    header: MultirecordHeader
    payload: MultirecordPayload

    @property
    def type(self) -> MultirecordType:
        return MultirecordType(self.header.type)


def _read_dc_fields(cursor: ByteCursor) -> dict:
    return {
        "output_number": cursor.read_byte(),
        "nominal_voltage": cursor.read_u16_le() / 100.0,
        "min_voltage": cursor.read_u16_le() / 100.0,
        "max_voltage": cursor.read_u16_le() / 100.0,
        "ripple_noise": cursor.read_u16_le(),
        "min_current": cursor.read_u16_le(),
        "max_current": cursor.read_u16_le(),
    }


def _decode_dc_output(cursor: ByteCursor) -> DcOutputRecord:
    return DcOutputRecord(**_read_dc_fields(cursor))


def _decode_dc_load(cursor: ByteCursor) -> DcLoadRecord:
    fields = _read_dc_fields(cursor)
    if fields["output_number"] > MAX_DC_LOAD_OUTPUT:
        raise FormatError(
            f"Unsupported DC Load output number 0x{fields['output_number']:02x}"
        )
    return DcLoadRecord(**fields)


def _decode_mac_id(cursor: ByteCursor) -> MacIdRecord:
    iana_id = format_hex(cursor.read_bytes(3))
    version = cursor.read_byte()
    if version == MacIdVersion.SC:
        count = 1
    elif version == MacIdVersion.VERSAL:
        count = 2
    else:
        raise FormatError(f"Unsupported MAC-ID record version 0x{version:02x}")
    macs = tuple(format_mac(cursor.read_bytes(6)) for _ in range(count))
    return MacIdRecord(iana_id=iana_id, version=version, mac_addresses=macs)


def _decode_memory(cursor: ByteCursor) -> MemoryRecord:
    iana_id = format_hex(cursor.read_bytes(3))
    memory_type = cursor.read_cstring()
    voltage_supply = cursor.read_cstring()
    return MemoryRecord(
        iana_id=iana_id, memory_type=memory_type, voltage_supply=voltage_supply
    )


def _decode_vita57(cursor: ByteCursor) -> Vita57Record:
    oui = format_hex(cursor.read_bytes(3))
    values = cursor.read_bytes(8)
    return Vita57Record(oui, *values)


PAYLOAD_DECODERS: dict[MultirecordType, Callable[[ByteCursor], MultirecordPayload]] = {
    MultirecordType.DC_OUTPUT: _decode_dc_output,
    MultirecordType.DC_LOAD: _decode_dc_load,
    MultirecordType.OEM_MAC_ID: _decode_mac_id,
    MultirecordType.OEM_MEMORY: _decode_memory,
    MultirecordType.OEM_VITA_57_1: _decode_vita57,
}


def is_known_type(type_code: int) -> bool:
    return type_code in PAYLOAD_DECODERS


def decode_record_header(cursor: ByteCursor) -> MultirecordHeader:
    """Read the 5-byte record header at the cursor position."""
    offset = cursor.position
    type_code, fmt, length, record_cs, header_cs = cursor.read_bytes(RECORD_HEADER_SIZE)
    return MultirecordHeader(offset, type_code, fmt, length, record_cs, header_cs)


def verify_checksums(buf: Union[bytes, bytearray], header: MultirecordHeader) -> bool:
    """Check the header and record checksums of one entry.

    Both checksums are zero-sum: the covered bytes plus the checksum add up to
    0 modulo 256.

    Raises:
        OutOfBounds: If the payload extends past the end of the image.
    """
    cursor = ByteCursor(buf, header.offset)
    header_bytes = cursor.read_bytes(RECORD_HEADER_SIZE)
    payload = cursor.read_bytes(header.length)
    header_ok = sum(header_bytes) & 0xFF == 0
    record_ok = (sum(payload) + header.record_checksum) & 0xFF == 0
    return header_ok and record_ok


def multirecord_start(buf: Union[bytes, bytearray]) -> int:
    """Offset of the first multirecord, applying the mis-programmed-offset erratum.

    An offset of 0 points at the common header itself, whose version byte
    would pass for a DC Output type, so it takes the erratum path too.
    """
    offset = decode_common_header(buf).multirecord_offset
    if offset == 0 or offset >= len(buf) or not is_known_type(buf[offset]):
        logger.warning(
            f"No known record type at multirecord offset 0x{offset:02x}; "
            f"using 0x{ERRATUM_MULTIRECORD_OFFSET:02x}"
        )
        return ERRATUM_MULTIRECORD_OFFSET
    return offset


def decode_multirecord_area(
    buf: Union[bytes, bytearray], strict: bool = False
) -> list[MultirecordEntry]:
    """Decode the chain of multirecords of an EEPROM image.

    Args:
        buf: Full EEPROM image
        strict: Reject entries whose checksums do not match. Off by default,
            field EEPROMs are known to carry bad checksums.

    Returns:
        Entries in byte order, ending with the one flagged as last.

    Raises:
        FormatError: On an unknown record type, an unsupported payload, a
            checksum mismatch in strict mode, or a read past the image
            (OutOfBounds) when the last-record flag is missing.
    """
    cursor = ByteCursor(buf, multirecord_start(buf))
    entries: list[MultirecordEntry] = []
    while True:
        header = decode_record_header(cursor)
        try:
            record_type = MultirecordType(header.type)
        except ValueError as e:
            logger.error(
                f"Unsupported multirecord type 0x{header.type:02x} at 0x{header.offset:02x}"
            )
            raise FormatError(
                f"Unsupported multirecord type 0x{header.type:02x} at offset 0x{header.offset:02x}"
            ) from e

        if strict and not verify_checksums(buf, header):
            raise ChecksumError(
                f"Checksum mismatch in {record_type.name} record at 0x{header.offset:02x}"
            )

        payload = PAYLOAD_DECODERS[record_type](cursor)
        logger.debug(f"0x{header.offset:02x} - {record_type.name}: {payload}")
        entries.append(MultirecordEntry(header, payload))

        if header.is_last:
            return entries
        cursor.seek(header.next_offset)


def find_vadj_range(buf: Union[bytes, bytearray]) -> tuple[float, float]:
    """Min/max voltage of the adjustable rail of a mezzanine card.

    Walks consecutive DC Load records from the header's multirecord offset and
    stops at the first one for output 0. The walk ends at the first other
    record type or after the last record, and never reads past the image.

    Returns:
        (min_voltage, max_voltage), or (0.0, 0.0) when no VADJ record exists.

    Raises:
        OutOfBounds: If a DC Load record is truncated by the end of the image.
    """
    cursor = ByteCursor(buf, decode_common_header(buf).multirecord_offset)
    while cursor.remaining >= RECORD_HEADER_SIZE:
        header = decode_record_header(cursor)
        if header.type != MultirecordType.DC_LOAD:
            break
        record = DcLoadRecord(**_read_dc_fields(cursor))
        if record.is_voltage_adjust:
            logger.debug(
                f"VADJ range at 0x{header.offset:02x}: {record.min_voltage}-{record.max_voltage} V"
            )
            return record.min_voltage, record.max_voltage
        if header.is_last or header.next_offset > len(cursor):
            break
        cursor.seek(header.next_offset)
    logger.debug("No VADJ DC Load record found")
    return 0.0, 0.0


def find_record(
    entries: list[MultirecordEntry], record_type: MultirecordType
) -> Optional[MultirecordEntry]:
    """First entry of the given type, or None."""
    for entry in entries:
        if entry.header.type == record_type:
            return entry
    return None
