from enum import Enum, IntEnum


class PmbusCommand(IntEnum):
    """PMBus command codes used for regulator telemetry and control."""

    PAGE = 0x00
    OPERATION = 0x01
    VOUT_MODE = 0x20
    VOUT_COMMAND = 0x21
    VOUT_OV_FAULT_LIMIT = 0x40
    VOUT_OV_WARN_LIMIT = 0x42
    VOUT_UV_WARN_LIMIT = 0x43
    VOUT_UV_FAULT_LIMIT = 0x44
    READ_VOUT = 0x8B


class Operation(IntEnum):
    """Values written to the OPERATION register."""

    OFF = 0x00  # Immediate off
    ON = 0x80  # Output enabled


class MultirecordType(IntEnum):
    """FRU multirecord type codes understood by the decoder."""

    DC_OUTPUT = 0x01
    DC_LOAD = 0x02
    OEM_MAC_ID = 0xD2
    OEM_MEMORY = 0xD3
    OEM_VITA_57_1 = 0xFA


class MacIdVersion(IntEnum):
    """Version byte of the OEM MAC-ID record."""

    SC = 0x11  # One MAC address (system controller)
    VERSAL = 0x31  # Two MAC addresses


class TransceiverVariant(Enum):
    """Register-map variant of an optical module."""

    SFP = "sfp"  # Single page, diagnostics at address + 1
    QSFP = "qsfp"  # Paged, everything at the base address
