"""Board-management library: FRU EEPROM, regulator, transceiver and DIMM access over I2C."""

from .errors import (
    BoardError,
    CatalogConfigError,
    ChecksumError,
    FormatError,
    OutOfBounds,
    RegulatorSequenceError,
    TransactionError,
    ValidationError,
)

__all__ = [
    "BoardError",
    "CatalogConfigError",
    "ChecksumError",
    "FormatError",
    "OutOfBounds",
    "RegulatorSequenceError",
    "TransactionError",
    "ValidationError",
]
