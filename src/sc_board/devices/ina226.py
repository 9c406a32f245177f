"""
INA226 current/power monitor sample decoding.
"""

from dataclasses import dataclass

from ..errors import FormatError
from ..registers.utils import be16_to_uint

SHUNT_VOLTAGE_REGISTER = 0x01
BUS_VOLTAGE_REGISTER = 0x02
SHUNT_LSB_UV = 2.5
BUS_LSB_MV = 1.25


@dataclass(frozen=True)
class PowerReading:
    voltage: float  # V
    current: float  # A
    power: float  # W


def decode_ina226(
    shunt_raw: bytes,
    bus_raw: bytes,
    shunt_resistor: float,
    phase_multiplier: int = 1,
) -> PowerReading:
    """Convert raw shunt and bus voltage registers into a power reading.

    Negative shunt readings are clamped to zero. Current is shunt voltage (uV)
    over the shunt resistor (uOhm), times the number of phases sharing it.
    """
    if len(shunt_raw) != 2 or len(bus_raw) != 2:
        raise FormatError("INA226 registers are 2 bytes wide")

    shunt = be16_to_uint(shunt_raw)
    if shunt >= 0x8000:
        shunt = 0
    current = shunt * SHUNT_LSB_UV / shunt_resistor * phase_multiplier
    voltage = be16_to_uint(bus_raw) * BUS_LSB_MV / 1000.0
    return PowerReading(voltage=voltage, current=current, power=voltage * current)
