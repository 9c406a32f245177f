"""
Optical transceiver reads and power-mode control.

Field locations come from the variant's register map. SFP modules answer on
two bus addresses (identity at the base address, diagnostics and power
control at base + 1), so a read may span two transactions.
"""

import logging
import time
from collections import defaultdict
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from ..bus.backend import BusBackend
from ..devices.transceiver import (
    RegisterMap,
    TransceiverInfo,
    build_info,
    decode_fields,
    override_field,
    validate_override,
    validate_power_mode,
)
from ..registers.enums import TransceiverVariant
from .catalog import BoardCatalog, TransceiverDescriptor, load_register_map, lookup

logger = logging.getLogger(__name__)

TransceiverTarget = Union[str, TransceiverDescriptor]


class TransceiverController:
    """Reads identity/diagnostics of catalog transceivers and drives their power mode."""

    def __init__(
        self,
        backend: BusBackend,
        catalog: BoardCatalog,
        register_maps: Optional[Mapping[TransceiverVariant, RegisterMap]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize with a bus backend and the board catalog.

        Args:
            backend: BusBackend for transactions
            catalog: Board catalog listing the transceivers
            register_maps: Register maps by variant. Loaded from package configs when omitted.
            sleep: Delay function used between power-mode writes
        """
        self._backend = backend
        self._catalog = catalog
        self._register_maps = dict(register_maps or {})
        self._sleep = sleep

    def list_transceivers(self) -> list[str]:
        return list(self._catalog.transceivers)

    def register_map(self, variant: TransceiverVariant) -> RegisterMap:
        if variant not in self._register_maps:
            self._register_maps[variant] = load_register_map(variant)
        return self._register_maps[variant]

    def _resolve(self, target: TransceiverTarget) -> tuple[TransceiverDescriptor, RegisterMap]:
        module = lookup(self._catalog.transceivers, target, "transceiver")
        return module, self.register_map(module.variant)

    def read_fields(self, target: TransceiverTarget, names: Iterable[str]) -> dict[str, Any]:
        """Read and decode named fields, one transaction per bus address."""
        module, register_map = self._resolve(target)
        by_address: dict[int, list[str]] = defaultdict(list)
        for name in names:
            definition = register_map.fields[name]
            by_address[module.address + definition.address_offset].append(name)

        raw: dict[str, bytes] = {}
        for address, group in by_address.items():
            with self._backend.transaction(module.bus, address) as tx:
                for name in group:
                    definition = register_map.fields[name]
                    raw[name] = tx.read(definition.offset, definition.length)
        return decode_fields(register_map, raw)

    def read_info(self, target: TransceiverTarget) -> TransceiverInfo:
        """Vendor, serial number, temperature, supply voltage and alarm flags."""
        _, register_map = self._resolve(target)
        info = build_info(self.read_fields(target, register_map.info_fields))
        logger.debug(f"Transceiver info: {info}")
        return info

    def get_power_mode(self, target: TransceiverTarget) -> int:
        _, register_map = self._resolve(target)
        return self.read_fields(target, [register_map.power_mode_field])[
            register_map.power_mode_field
        ]

    def set_power_mode(self, target: TransceiverTarget, value: int) -> None:
        """Write the power-mode value to every power-mode register of the module.

        Consecutive writes are separated by the register map's write delay.

        Raises:
            ValidationError: If value is outside 0x00-0xff. Nothing is written.
            TransactionError: If a write fails. Earlier writes stay applied.
        """
        module, register_map = self._resolve(target)
        validate_power_mode(value)
        fields = [register_map.fields[n] for n in register_map.power_mode_fields]
        # All power-mode registers of a variant live at the same bus address.
        address = module.address + fields[0].address_offset
        with self._backend.transaction(module.bus, address) as tx:
            for i, definition in enumerate(fields):
                if i:
                    logger.debug(f"Waiting {register_map.write_delay} s before next write")
                    self._sleep(register_map.write_delay)
                tx.write(definition.offset, bytes([value]))
        logger.info(f"{module.name}: power mode set to 0x{value:02x}")

    def get_power_override(self, target: TransceiverTarget) -> int:
        _, register_map = self._resolve(target)
        name = override_field(register_map)
        return self.read_fields(target, [name])[name]

    def set_power_override(self, target: TransceiverTarget, value: int) -> None:
        """Write the low-power-mode override register (QSFP only).

        Raises:
            ValidationError: If the module has no override register or value is not allowed.
        """
        module, register_map = self._resolve(target)
        validate_override(register_map, value)
        definition = register_map.fields[register_map.override_field]
        address = module.address + definition.address_offset
        with self._backend.transaction(module.bus, address) as tx:
            tx.write(definition.offset, bytes([value]))
        logger.info(f"{module.name}: power mode override set to 0x{value:x}")
