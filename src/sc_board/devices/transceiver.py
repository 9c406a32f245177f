"""
Optical transceiver (SFP / QSFP) register-map decoding.

A register map is a table of named fixed-offset fields loaded from YAML (see
controller.catalog.load_register_map). This module only holds the table types
and turns raw field bytes into values; the bus reads live in the controller.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..errors import FormatError, ValidationError
from ..registers.decoders import Decoder
from ..registers.enums import TransceiverVariant

logger = logging.getLogger(__name__)

ALARM_PREFIX = "alarm"
MAX_POWER_MODE = 0xFF


@dataclass(frozen=True)
class FieldDefinition:
    """Location and decoder of one register-map field."""

    offset: int
    length: int
    decode_function: Decoder
    address_offset: int = 0  # added to the module's bus address (SFP diagnostics page)

    def decode(self, raw: bytes) -> Any:
        if len(raw) != self.length:
            raise FormatError(
                f"Field at 0x{self.offset:02x}: expected {self.length} bytes, got {len(raw)}"
            )
        return self.decode_function(raw)


@dataclass(frozen=True)
class RegisterMap:
    """Register map of one transceiver variant.

    power_mode_field is read back as the current power mode. power_mode_fields
    are written in order with write_delay seconds between consecutive writes;
    some modules reject back-to-back writes.
    """

    variant: TransceiverVariant
    fields: Mapping[str, FieldDefinition]
    info_fields: tuple[str, ...]
    power_mode_field: str
    power_mode_fields: tuple[str, ...]
    write_delay: float = 0.0
    override_field: Optional[str] = None
    override_values: frozenset[int] = field(default_factory=frozenset)


@dataclass(frozen=True)
class TransceiverInfo:
    vendor_name: str
    serial_number: str
    temperature: float
    supply_voltage: float
    part_number: Optional[str] = None
    alarms: Mapping[str, int] = field(default_factory=dict)


def decode_fields(
    register_map: RegisterMap, raw_by_field: Mapping[str, bytes]
) -> dict[str, Any]:
    """Decode raw field bytes by name. Names not in the map are rejected."""
    values: dict[str, Any] = {}
    for name, raw in raw_by_field.items():
        if name not in register_map.fields:
            raise FormatError(
                f"Field {name!r} is not in the {register_map.variant.value} register map"
            )
        values[name] = register_map.fields[name].decode(raw)
        logger.debug(f"{register_map.variant.value} {name}: {raw.hex()} -> {values[name]!r}")
    return values


def build_info(values: Mapping[str, Any]) -> TransceiverInfo:
    """Assemble TransceiverInfo from decoded info fields."""
    try:
        return TransceiverInfo(
            vendor_name=values["vendor_name"],
            serial_number=values["serial_number"],
            temperature=values["temperature"],
            supply_voltage=values["supply_voltage"],
            part_number=values.get("part_number"),
            alarms={k: v for k, v in values.items() if k.startswith(ALARM_PREFIX)},
        )
    except KeyError as e:
        raise FormatError(f"Register map has no {e.args[0]!r} field") from e


def validate_power_mode(value: int) -> int:
    if not 0 <= value <= MAX_POWER_MODE:
        raise ValidationError(f"Invalid power mode value 0x{value:x} (0x00-0xff)")
    return value


def override_field(register_map: RegisterMap) -> str:
    """Name of the low-power-mode override field; ValidationError if the variant has none."""
    if register_map.override_field is None:
        raise ValidationError(
            f"{register_map.variant.value} modules have no power mode override"
        )
    return register_map.override_field


def validate_override(register_map: RegisterMap, value: int) -> int:
    override_field(register_map)
    if value not in register_map.override_values:
        allowed = ", ".join(f"0x{v:x}" for v in sorted(register_map.override_values))
        raise ValidationError(
            f"Invalid power mode override 0x{value:x}; valid values: {allowed}"
        )
    return value
