"""
Controllers: catalog-driven device operations over a bus backend.
"""

from .catalog import BoardCatalog, load_catalog, load_register_map
from .dimm import DimmController
from .eeprom import EepromController, FmcCard
from .power import PowerController
from .regulator import RegulatorController
from .transceiver import TransceiverController

__all__ = [
    "BoardCatalog",
    "DimmController",
    "EepromController",
    "FmcCard",
    "PowerController",
    "RegulatorController",
    "TransceiverController",
    "load_catalog",
    "load_register_map",
]
