"""
Catalog of the board's devices. It lists the regulators, transceivers, DIMMs, EEPROMs
and power sensors of a board with the bus coordinates needed to reach them.

Catalogs and transceiver register maps are loaded from YAML config files via
load_catalog(name) and load_register_map(variant). Configs live in the package
configs/ directory. A loaded catalog is read-only.
"""

import logging
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Annotated, Any, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError as SchemaError, model_validator

from ..devices.transceiver import FieldDefinition, RegisterMap
from ..errors import CatalogConfigError, ValidationError
from ..registers import DECODER_REGISTRY
from ..registers.decoders import Decoder
from ..registers.enums import TransceiverVariant
from ..registers.linear import fixed_exponent_for

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegulatorDescriptor:
    """Static description of one voltage regulator rail."""

    name: str
    bus: str
    address: int
    part: str
    typical_volt: float
    page_select: Optional[int] = None
    supported_volts: Optional[tuple[float, ...]] = None  # None: any value

    @property
    def fixed_exponent(self) -> Optional[int]:
        """Exponent for parts that do not report VOUT_MODE, else None."""
        return fixed_exponent_for(self.part)

    def supports(self, volts: float) -> bool:
        return self.supported_volts is None or volts in self.supported_volts


@dataclass(frozen=True)
class TransceiverDescriptor:
    name: str
    bus: str
    address: int
    variant: TransceiverVariant


@dataclass(frozen=True)
class DimmDescriptor:
    name: str
    bus: str
    spd_address: int
    thermal_address: int


@dataclass(frozen=True)
class EepromDescriptor:
    """An on-board or mezzanine FRU EEPROM."""

    name: str
    bus: str
    address: int
    address_width: int = 1
    is_pcie: bool = False
    size: int = 256


@dataclass(frozen=True)
class PowerSensorDescriptor:
    name: str
    bus: str
    address: int
    shunt_resistor: float  # uOhm
    phase_multiplier: int = 1


@dataclass(frozen=True)
class BoardCatalog:
    """Read-only device tables of one board."""

    board: str
    regulators: Mapping[str, RegulatorDescriptor]
    transceivers: Mapping[str, TransceiverDescriptor]
    dimms: Mapping[str, DimmDescriptor]
    eeprom: Optional[EepromDescriptor]
    fmcs: Mapping[str, EepromDescriptor]
    power_sensors: Mapping[str, PowerSensorDescriptor]
    power_domains: Mapping[str, tuple[str, ...]]


# --- Pydantic schema for YAML validation ---

I2cAddress = Annotated[int, Field(ge=0x03, le=0x77)]


class RegulatorSpec(BaseModel):
    """Schema for a single regulator in YAML config."""

    bus: str = Field(..., min_length=1)
    address: I2cAddress
    part: str = Field(..., min_length=1)
    typical_volt: float = Field(..., ge=0)
    page_select: Optional[int] = Field(None, ge=0, le=0xFF)
    supported_volts: Optional[list[float]] = Field(None, min_length=1)

    @model_validator(mode="after")
    def _typical_is_supported(self) -> "RegulatorSpec":
        if self.supported_volts is not None and self.typical_volt not in self.supported_volts:
            raise ValueError(
                f"typical_volt {self.typical_volt} is not one of {self.supported_volts}"
            )
        return self


class TransceiverSpec(BaseModel):
    bus: str = Field(..., min_length=1)
    address: I2cAddress
    variant: TransceiverVariant


class DimmSpec(BaseModel):
    bus: str = Field(..., min_length=1)
    spd_address: I2cAddress
    thermal_address: I2cAddress


class EepromSpec(BaseModel):
    bus: str = Field(..., min_length=1)
    address: I2cAddress
    address_width: int = Field(1, ge=1, le=2)
    is_pcie: bool = False
    size: int = Field(256, ge=8)


class PowerSensorSpec(BaseModel):
    bus: str = Field(..., min_length=1)
    address: I2cAddress
    shunt_resistor: float = Field(..., gt=0)
    phase_multiplier: int = Field(1, ge=1)


class CatalogSpec(BaseModel):
    """Schema for a whole board catalog."""

    board: str = Field(..., min_length=1)
    regulators: dict[str, RegulatorSpec] = Field(default_factory=dict)
    transceivers: dict[str, TransceiverSpec] = Field(default_factory=dict)
    dimms: dict[str, DimmSpec] = Field(default_factory=dict)
    eeprom: Optional[EepromSpec] = None
    fmcs: dict[str, EepromSpec] = Field(default_factory=dict)
    power_sensors: dict[str, PowerSensorSpec] = Field(default_factory=dict)
    power_domains: dict[str, list[str]] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _domains_reference_sensors(self) -> "CatalogSpec":
        for domain, rails in self.power_domains.items():
            unknown = [r for r in rails if r not in self.power_sensors]
            if unknown:
                raise ValueError(f"Power domain {domain!r} references unknown sensors {unknown}")
        return self


class FieldSpec(BaseModel):
    """Schema for a single register-map field."""

    offset: int = Field(..., ge=0, le=0xFF)
    length: int = Field(..., ge=1, le=0x80)
    decode: str = Field(..., min_length=1)
    address_offset: int = Field(0, ge=0, le=1)


class RegisterMapSpec(BaseModel):
    variant: TransceiverVariant
    fields: dict[str, FieldSpec] = Field(..., min_length=1)
    info_fields: list[str] = Field(..., min_length=1)
    power_mode_field: str = Field(..., min_length=1)
    power_mode_fields: list[str] = Field(..., min_length=1)
    write_delay: float = Field(0.0, ge=0)
    override_field: Optional[str] = None
    override_values: list[int] = Field(default_factory=list)

    @model_validator(mode="after")
    def _names_are_fields(self) -> "RegisterMapSpec":
        named = [*self.info_fields, self.power_mode_field, *self.power_mode_fields]
        if self.override_field is not None:
            named.append(self.override_field)
        unknown = [n for n in named if n not in self.fields]
        if unknown:
            raise ValueError(f"Unknown field names {unknown}")
        return self


def _resolve_decode(spec: str, field_name: str) -> Decoder:
    """Resolve decoder name to a decoder callable using DECODER_REGISTRY."""
    if spec not in DECODER_REGISTRY:
        raise CatalogConfigError(
            f"Unknown decoder {spec!r} for field {field_name!r}. "
            f"Known: {list(DECODER_REGISTRY.keys())}."
        )
    return DECODER_REGISTRY[spec]


def _read_config(name: str, config_dir: Optional[Path]) -> dict[str, Any]:
    """Read and parse a YAML config by name. Root must be a non-empty mapping."""
    if config_dir is not None:
        config_path = Path(config_dir) / f"{name}.yaml"
        if not config_path.exists():
            logger.error(f"Config file not found: {config_path}")
            raise CatalogConfigError(f"Config {name!r} not found at {config_path}.")
        content = config_path.read_text()
    else:
        try:
            pkg = resources.files("sc_board")
            content = (pkg / "configs" / f"{name}.yaml").read_text()
        except FileNotFoundError as e:
            logger.error(f"Config not found: {e}")
            raise CatalogConfigError(
                f"Config {name!r} not found in package configs."
            ) from e

    try:
        raw = yaml.safe_load(content)
    except yaml.YAMLError as e:
        logger.error(f"Invalid YAML in config {name}: {e}")
        raise CatalogConfigError(f"Invalid YAML in config {name!r}: {e}.") from e

    if not isinstance(raw, dict):
        logger.error(f"Config {name} root must be a dict, got {type(raw)}")
        raise CatalogConfigError(
            f"Config {name!r} root must be a mapping, got {type(raw).__name__}."
        )
    if not raw:
        logger.error(f"Config {name} is empty")
        raise CatalogConfigError(f"Config {name!r} is empty.")
    return raw


def _validate(model: type[BaseModel], raw: dict[str, Any], name: str) -> Any:
    try:
        return model.model_validate(raw)
    except SchemaError as e:
        logger.error(f"Config {name} failed validation: {e}")
        raise CatalogConfigError(f"Config {name!r} is invalid: {e}") from e


def _eeprom(name: str, spec: EepromSpec) -> EepromDescriptor:
    return EepromDescriptor(
        name=name,
        bus=spec.bus,
        address=spec.address,
        address_width=spec.address_width,
        is_pcie=spec.is_pcie,
        size=spec.size,
    )


def load_catalog(
    name: str,
    config_dir: Optional[Union[str, Path]] = None,
) -> BoardCatalog:
    """Load a board catalog from YAML config by name.

    Args:
        name: Config file name without extension (e.g. 'vck190').
        config_dir: Optional directory for config files (used in tests). If None, loads from package configs/.

    Returns:
        BoardCatalog with read-only descriptor tables.

    Raises:
        CatalogConfigError: If config is invalid, incomplete, or not found.
    """
    spec: CatalogSpec = _validate(CatalogSpec, _read_config(name, config_dir), name)

    regulators = {
        rail: RegulatorDescriptor(
            name=rail,
            bus=r.bus,
            address=r.address,
            part=r.part,
            typical_volt=r.typical_volt,
            page_select=r.page_select,
            supported_volts=None if r.supported_volts is None else tuple(r.supported_volts),
        )
        for rail, r in spec.regulators.items()
    }
    transceivers = {
        module: TransceiverDescriptor(module, t.bus, t.address, t.variant)
        for module, t in spec.transceivers.items()
    }
    dimms = {
        dimm: DimmDescriptor(dimm, d.bus, d.spd_address, d.thermal_address)
        for dimm, d in spec.dimms.items()
    }
    sensors = {
        rail: PowerSensorDescriptor(
            rail, s.bus, s.address, s.shunt_resistor, s.phase_multiplier
        )
        for rail, s in spec.power_sensors.items()
    }

    catalog = BoardCatalog(
        board=spec.board,
        regulators=MappingProxyType(regulators),
        transceivers=MappingProxyType(transceivers),
        dimms=MappingProxyType(dimms),
        eeprom=None if spec.eeprom is None else _eeprom("onboard", spec.eeprom),
        fmcs=MappingProxyType({fmc: _eeprom(fmc, f) for fmc, f in spec.fmcs.items()}),
        power_sensors=MappingProxyType(sensors),
        power_domains=MappingProxyType(
            {domain: tuple(rails) for domain, rails in spec.power_domains.items()}
        ),
    )
    logger.debug(
        f"Loaded catalog {spec.board}: {len(regulators)} regulators, "
        f"{len(transceivers)} transceivers, {len(sensors)} power sensors"
    )
    return catalog


def load_register_map(
    variant: Union[str, TransceiverVariant],
    config_dir: Optional[Union[str, Path]] = None,
) -> RegisterMap:
    """Load the register map of a transceiver variant ('sfp' or 'qsfp').

    Raises:
        CatalogConfigError: If config is invalid, not found, or names an unknown decoder.
    """
    name = variant.value if isinstance(variant, TransceiverVariant) else variant
    spec: RegisterMapSpec = _validate(RegisterMapSpec, _read_config(name, config_dir), name)

    fields = {
        field_name: FieldDefinition(
            offset=f.offset,
            length=f.length,
            decode_function=_resolve_decode(f.decode, field_name),
            address_offset=f.address_offset,
        )
        for field_name, f in spec.fields.items()
    }
    return RegisterMap(
        variant=spec.variant,
        fields=MappingProxyType(fields),
        info_fields=tuple(spec.info_fields),
        power_mode_field=spec.power_mode_field,
        power_mode_fields=tuple(spec.power_mode_fields),
        write_delay=spec.write_delay,
        override_field=spec.override_field,
        override_values=frozenset(spec.override_values),
    )


def lookup(table: Mapping[str, Any], target: Any, kind: str) -> Any:
    """Resolve a catalog name to its descriptor; descriptors pass through.

    Raises:
        ValidationError: If the name is not in the table.
    """
    if not isinstance(target, str):
        return target
    try:
        return table[target]
    except KeyError:
        raise ValidationError(
            f"Unknown {kind} {target!r}. Known: {', '.join(sorted(table))}."
        ) from None
