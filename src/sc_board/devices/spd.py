"""
DDR4 Serial Presence Detect (SPD) decoding.

Only the first 16 bytes of the SPD EEPROM are used: the memory type, the
density nibble and the thermal-sensor flag.
"""

import logging
from dataclasses import dataclass
from typing import Union

from ..errors import FormatError
from ..registers.cursor import ByteCursor
from ..registers.decoders import decode_dimm_temperature
from ..registers.utils import get_bit

logger = logging.getLogger(__name__)

SPD_PREFIX_SIZE = 16
MEMORY_TYPE_OFFSET = 2
DENSITY_OFFSET = 4
DENSITY_MASK = 0x0F
THERMAL_SENSOR_OFFSET = 14
THERMAL_SENSOR_BIT = 7
DDR4_SDRAM = 0x0C


@dataclass(frozen=True)
class SpdInfo:
    memory_type: int
    size_code: int
    has_temp_sensor: bool

    @property
    def is_ddr4(self) -> bool:
        return self.memory_type == DDR4_SDRAM

    @property
    def size(self) -> str:
        return spd_size(self.size_code)


def spd_size(code: int) -> str:
    """Human-readable density for a size code: 0, 512 Mb, or 2^(code-2) Gb."""
    if code == 0:
        return "0"
    if code == 1:
        return "512 Mb"
    return f"{1 << (code - 2)} Gb"


def decode_spd(raw: Union[bytes, bytearray]) -> SpdInfo:
    """Decode the 16-byte SPD prefix.

    Raises:
        FormatError: If fewer than 16 bytes are supplied.
    """
    if len(raw) < SPD_PREFIX_SIZE:
        raise FormatError(
            f"SPD prefix needs {SPD_PREFIX_SIZE} bytes, got {len(raw)}"
        )
    cursor = ByteCursor(raw, MEMORY_TYPE_OFFSET)
    memory_type = cursor.read_byte()
    cursor.seek(DENSITY_OFFSET)
    size_code = cursor.read_byte() & DENSITY_MASK
    cursor.seek(THERMAL_SENSOR_OFFSET)
    has_sensor = get_bit(cursor.read_byte(), THERMAL_SENSOR_BIT)

    info = SpdInfo(memory_type, size_code, has_sensor)
    logger.debug(
        f"SPD: type 0x{memory_type:02x} (DDR4: {info.is_ddr4}), size {info.size}, "
        f"thermal sensor: {has_sensor}"
    )
    return info


def decode_temperature(raw: Union[bytes, bytearray]) -> float:
    """Decode a DIMM thermal sensor reading to degrees C."""
    return decode_dimm_temperature(bytes(raw))
