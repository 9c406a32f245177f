"""
DDR4 DIMM identification and temperature.
"""

import logging
from typing import Union

from ..bus.backend import BusBackend
from ..devices.spd import SPD_PREFIX_SIZE, SpdInfo, decode_spd, decode_temperature
from .catalog import BoardCatalog, DimmDescriptor, lookup

logger = logging.getLogger(__name__)

TEMPERATURE_REGISTER = 0x05

DimmTarget = Union[str, DimmDescriptor]


class DimmController:
    def __init__(self, backend: BusBackend, catalog: BoardCatalog):
        self._backend = backend
        self._catalog = catalog

    def _dimm(self, target: DimmTarget) -> DimmDescriptor:
        return lookup(self._catalog.dimms, target, "DIMM")

    def read_spd(self, target: DimmTarget) -> SpdInfo:
        """Read the first 16 SPD bytes and decode type, density and sensor presence."""
        dimm = self._dimm(target)
        with self._backend.transaction(dimm.bus, dimm.spd_address) as tx:
            raw = tx.read(0x00, SPD_PREFIX_SIZE)
        return decode_spd(raw)

    def read_temperature(self, target: DimmTarget) -> float:
        """Read the thermal sensor's ambient temperature register, in degrees C."""
        dimm = self._dimm(target)
        with self._backend.transaction(dimm.bus, dimm.thermal_address) as tx:
            raw = tx.read(TEMPERATURE_REGISTER, 2)
        temperature = decode_temperature(raw)
        logger.debug(f"{dimm.name}: temperature {raw.hex()} -> {temperature} C")
        return temperature
