"""
Device decoders: DDR4 SPD, optical transceivers and INA226 power monitors.
"""

from .ina226 import PowerReading, decode_ina226
from .spd import SpdInfo, decode_spd
from .transceiver import FieldDefinition, RegisterMap, TransceiverInfo

__all__ = [
    "FieldDefinition",
    "PowerReading",
    "RegisterMap",
    "SpdInfo",
    "TransceiverInfo",
    "decode_ina226",
    "decode_spd",
]
