"""
Rail power readings from INA226 monitors, and totals per power domain.
"""

import logging
from typing import Union

from ..bus.backend import BusBackend
from ..devices.ina226 import (
    BUS_VOLTAGE_REGISTER,
    SHUNT_VOLTAGE_REGISTER,
    PowerReading,
    decode_ina226,
)
from ..errors import ValidationError
from .catalog import BoardCatalog, PowerSensorDescriptor, lookup

logger = logging.getLogger(__name__)

SensorTarget = Union[str, PowerSensorDescriptor]


class PowerController:
    def __init__(self, backend: BusBackend, catalog: BoardCatalog):
        self._backend = backend
        self._catalog = catalog

    def list_sensors(self) -> list[str]:
        return list(self._catalog.power_sensors)

    def list_domains(self) -> list[str]:
        return list(self._catalog.power_domains)

    def read(self, target: SensorTarget) -> PowerReading:
        """Voltage, current and power of one rail."""
        sensor = lookup(self._catalog.power_sensors, target, "power sensor")
        with self._backend.transaction(sensor.bus, sensor.address) as tx:
            shunt_raw = tx.read(SHUNT_VOLTAGE_REGISTER, 2)
            bus_raw = tx.read(BUS_VOLTAGE_REGISTER, 2)
        reading = decode_ina226(
            shunt_raw, bus_raw, sensor.shunt_resistor, sensor.phase_multiplier
        )
        logger.debug(
            f"{sensor.name}: {reading.voltage:.3f} V, {reading.current:.3f} A, "
            f"{reading.power:.3f} W"
        )
        return reading

    def read_domain(self, domain: str) -> float:
        """Total power of a power domain (sum over its rails), in watts."""
        try:
            rails = self._catalog.power_domains[domain]
        except KeyError:
            raise ValidationError(
                f"Unknown power domain {domain!r}. "
                f"Known: {', '.join(sorted(self._catalog.power_domains))}."
            ) from None
        total = sum(self.read(rail).power for rail in rails)
        logger.debug(f"Power domain {domain}: {total:.3f} W")
        return total
