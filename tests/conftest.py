"""Shared pytest fixtures for sc-board-lib tests."""

from types import MappingProxyType

import pytest

from fixtures import RecordingBackend
from sc_board.controller.catalog import (
    BoardCatalog,
    DimmDescriptor,
    EepromDescriptor,
    PowerSensorDescriptor,
    RegulatorDescriptor,
    TransceiverDescriptor,
)
from sc_board.registers.enums import TransceiverVariant

BUS = "/dev/i2c-3"


@pytest.fixture
def backend() -> RecordingBackend:
    """Empty in-memory bus; tests add the devices they need."""
    return RecordingBackend()


@pytest.fixture
def catalog() -> BoardCatalog:
    """Small board with one device of each kind."""
    regulators = {
        "VCCINT": RegulatorDescriptor("VCCINT", BUS, 0x46, "IR35215", 0.8, page_select=0),
        "VCC_SOC": RegulatorDescriptor("VCC_SOC", BUS, 0x4C, "IR38164", 0.8),
        "VCCO_MIO": RegulatorDescriptor(
            "VCCO_MIO", BUS, 0x4E, "IR38164", 1.8, supported_volts=(1.8, 2.5, 3.3)
        ),
    }
    transceivers = {
        "SFP0": TransceiverDescriptor("SFP0", BUS, 0x50, TransceiverVariant.SFP),
        "QSFP1": TransceiverDescriptor("QSFP1", "/dev/i2c-4", 0x50, TransceiverVariant.QSFP),
    }
    sensors = {
        "VCCINT": PowerSensorDescriptor("VCCINT", BUS, 0x40, 500, 6),
        "VCC_SOC": PowerSensorDescriptor("VCC_SOC", BUS, 0x41, 5000),
    }
    return BoardCatalog(
        board="TEST",
        regulators=MappingProxyType(regulators),
        transceivers=MappingProxyType(transceivers),
        dimms=MappingProxyType({"DIMM1": DimmDescriptor("DIMM1", BUS, 0x51, 0x19)}),
        eeprom=EepromDescriptor("onboard", BUS, 0x54, address_width=2, is_pcie=True),
        fmcs=MappingProxyType(
            {
                "FMC1": EepromDescriptor("FMC1", "/dev/i2c-5", 0x50),
                "FMC2": EepromDescriptor("FMC2", "/dev/i2c-6", 0x50),
            }
        ),
        power_sensors=MappingProxyType(sensors),
        power_domains=MappingProxyType({"FPD": ("VCCINT", "VCC_SOC")}),
    )
