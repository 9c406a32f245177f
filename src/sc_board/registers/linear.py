"""
Linear16 voltage format used by PMBus regulator telemetry and control.

A voltage is carried as a 16-bit mantissa (little-endian on the wire) and an
exponent shared by all VOUT registers of the device:

    volts = mantissa * 2 ** exponent

The exponent is normally read from the VOUT_MODE register, which reports it
biased by 32 so that it fits one unsigned byte. Some parts do not implement
VOUT_MODE at all and use a fixed exponent instead; those are listed in
FIXED_EXPONENT_PARTS.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

from ..errors import ValidationError
from .utils import int_to_le16, le16_to_int

logger = logging.getLogger(__name__)

VOUT_MODE_BIAS = 32

# Parts that lack the VOUT_MODE register, keyed by part identifier.
FIXED_EXPONENT_PARTS: dict[str, int] = {
    "IR38164": -8,
}


@dataclass(frozen=True)
class LinearValue:
    """Mantissa/exponent pair as read from or written to a VOUT register."""

    mantissa: int
    exponent: int

    @property
    def volts(self) -> float:
        return self.mantissa * math.pow(2, self.exponent)


def fixed_exponent_for(part: str) -> Optional[int]:
    """Return the fixed exponent for parts without VOUT_MODE, else None."""
    return FIXED_EXPONENT_PARTS.get(part)


def exponent_from_vout_mode(mode: int) -> int:
    """Converts a raw VOUT_MODE byte to the exponent, e.g. 0x18 (24) -> -8."""
    exponent = (mode & 0xFF) - VOUT_MODE_BIAS
    logger.debug(f"VOUT_MODE 0x{mode:02x} -> exponent {exponent}")
    return exponent


def decode_linear(raw: bytes, exponent: int) -> float:
    """Decode a little-endian mantissa byte pair to volts.

    Args:
        raw: Two bytes as read from the device (low byte first)
        exponent: Exponent resolved for the device

    Returns:
        Voltage in volts
    """
    return LinearValue(le16_to_int(raw), exponent).volts


def encode_linear(volts: float, exponent: int) -> bytes:
    """Encode volts to a little-endian mantissa byte pair.

    The mantissa is round(volts / 2 ** exponent).

    Raises:
        ValidationError: If the value is not finite or the mantissa does not
            fit in a signed 16-bit word at this exponent.
    """
    if not math.isfinite(volts):
        raise ValidationError(f"Voltage {volts!r} is not a finite number")
    mantissa = round(volts / math.pow(2, exponent))
    raw = int_to_le16(mantissa)
    logger.debug(
        f"Encoded {volts} V at exponent {exponent}: mantissa {mantissa} -> {raw.hex()}"
    )
    return raw
