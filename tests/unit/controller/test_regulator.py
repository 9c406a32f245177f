"""Unit tests for controller.regulator (RegulatorController)."""

from pathlib import Path

import pytest

from fixtures import RecordingBackend
from sc_board.bus import simulator
from sc_board.bus.backend import YamlBusBackend
from sc_board.controller.catalog import BoardCatalog
from sc_board.controller.regulator import RegulatorController, over_voltage_limit
from sc_board.errors import RegulatorSequenceError, TransactionError, ValidationError

BUS = "/dev/i2c-3"
VCCINT = 0x46  # VOUT_MODE capable, page 0
VCC_SOC = 0x4C  # IR38164, fixed exponent
VCCO_MIO = 0x4E  # discrete voltages


@pytest.fixture
def regulators(backend: RecordingBackend) -> RecordingBackend:
    backend.add_device(BUS, VCCINT, {0x20: b"\x18", 0x8B: b"\x64\x00"}, registers=True)
    backend.add_device(BUS, VCC_SOC, {0x8B: b"\xcd\x00"}, registers=True)
    backend.add_device(BUS, VCCO_MIO, {0x8B: b"\xcd\x01"}, registers=True)
    return backend


class TestOverVoltageLimit:
    """Limits are 30% above the setpoint, with a 0.1 V floor for a 0 V target."""

    def test_limit(self) -> None:
        assert over_voltage_limit(0.8) == pytest.approx(1.04)

    def test_zero_target(self) -> None:
        assert over_voltage_limit(0.0) == pytest.approx(0.13)


class TestGetVoltage:
    """Tests for get_voltage."""

    def test_exponent_from_vout_mode(self, regulators: RecordingBackend, catalog: BoardCatalog) -> None:
        """VOUT_MODE 0x18 gives exponent -8; READ_VOUT 0x0064 is 0.390625 V."""
        controller = RegulatorController(regulators, catalog)
        assert controller.get_voltage("VCCINT") == 0.390625
        assert regulators.log == [
            ("open", BUS, VCCINT),
            ("write", VCCINT, 0x00, b"\x00"),
            ("read", VCCINT, 0x20, 1),
            ("read", VCCINT, 0x8B, 2),
            ("close", BUS, VCCINT),
        ]

    def test_fixed_exponent_part_skips_vout_mode(
        self, regulators: RecordingBackend, catalog: BoardCatalog
    ) -> None:
        controller = RegulatorController(regulators, catalog)
        assert controller.get_voltage(catalog.regulators["VCC_SOC"]) == 0.80078125
        assert regulators.reads() == [(VCC_SOC, 0x8B, 2)]
        assert regulators.writes() == []

    def test_read_failure(self, regulators: RecordingBackend, catalog: BoardCatalog) -> None:
        regulators.fail_on.add(("read", VCCINT, 0x8B))
        with pytest.raises(TransactionError):
            RegulatorController(regulators, catalog).get_voltage("VCCINT")
        assert regulators.opened == regulators.closed == 1

    def test_unknown_regulator(self, regulators: RecordingBackend, catalog: BoardCatalog) -> None:
        with pytest.raises(ValidationError, match="Unknown regulator"):
            RegulatorController(regulators, catalog).get_voltage("VCCAUX")


class TestSetVoltage:
    """Tests for the set_voltage write sequence."""

    def test_sequence_order(self, regulators: RecordingBackend, catalog: BoardCatalog) -> None:
        """Off, relax limits, program, on; all in one transaction."""
        RegulatorController(regulators, catalog).set_voltage("VCCINT", 0.8)

        assert regulators.opened == regulators.closed == 1
        assert regulators.writes() == [
            (VCCINT, 0x00, b"\x00"),  # page select
            (VCCINT, 0x01, b"\x00"),  # output off
            (VCCINT, 0x44, b"\x00\x00"),  # UV fault
            (VCCINT, 0x43, b"\x00\x00"),  # UV warn
            (VCCINT, 0x40, b"\x0a\x01"),  # OV fault: 1.04 V
            (VCCINT, 0x42, b"\x0a\x01"),  # OV warn
            (VCCINT, 0x21, b"\xcd\x00"),  # VOUT_COMMAND: 0.8 V
            (VCCINT, 0x01, b"\x80"),  # output on
        ]
        assert regulators.reads() == [(VCCINT, 0x20, 1)]

    def test_zero_volt_target_uses_floor(
        self, regulators: RecordingBackend, catalog: BoardCatalog
    ) -> None:
        RegulatorController(regulators, catalog).set_voltage("VCC_SOC", 0.0)
        writes = dict(((reg, payload) for _, reg, payload in regulators.writes()[1:-1]))
        assert writes[0x40] == b"\x21\x00"  # round(0.13 * 256) = 33
        assert writes[0x21] == b"\x00\x00"

    def test_discrete_voltage_accepted(
        self, regulators: RecordingBackend, catalog: BoardCatalog
    ) -> None:
        RegulatorController(regulators, catalog).set_voltage("VCCO_MIO", 2.5)
        assert (VCCO_MIO, 0x21, b"\x80\x02") in regulators.writes()

    def test_unsupported_discrete_voltage(
        self, regulators: RecordingBackend, catalog: BoardCatalog
    ) -> None:
        """Rejected before any bus activity."""
        with pytest.raises(ValidationError, match="does not support 1.2 V"):
            RegulatorController(regulators, catalog).set_voltage("VCCO_MIO", 1.2)
        assert regulators.log == []

    def test_unencodable_voltage(self, regulators: RecordingBackend, catalog: BoardCatalog) -> None:
        """A setpoint that does not fit the mantissa is rejected with no OPERATION write."""
        with pytest.raises(ValidationError):
            RegulatorController(regulators, catalog).set_voltage("VCC_SOC", 200.0)
        assert regulators.writes() == []
        assert regulators.opened == regulators.closed == 1

    def test_step_failure(self, regulators: RecordingBackend, catalog: BoardCatalog) -> None:
        """A failed step aborts the sequence; earlier writes stay applied."""
        regulators.fail_on.add(("write", VCCINT, 0x40))
        with pytest.raises(RegulatorSequenceError) as excinfo:
            RegulatorController(regulators, catalog).set_voltage("VCCINT", 0.8)

        error = excinfo.value
        assert error.regulator == "VCCINT"
        assert error.step == "over-voltage fault limit"
        assert "mid-transition" in str(error)
        assert isinstance(error, TransactionError)
        assert [reg for _, reg, _ in regulators.writes()] == [0x00, 0x01, 0x44, 0x43]
        assert regulators.opened == regulators.closed == 1

    def test_vout_mode_failure(self, regulators: RecordingBackend, catalog: BoardCatalog) -> None:
        regulators.fail_on.add(("read", VCCINT, 0x20))
        with pytest.raises(RegulatorSequenceError) as excinfo:
            RegulatorController(regulators, catalog).set_voltage("VCCINT", 0.8)
        assert excinfo.value.step == "resolve exponent"
        assert [reg for _, reg, _ in regulators.writes()] == [0x00]


class TestRestoreDefault:
    """restore_default programs the typical voltage."""

    def test_restore(self, regulators: RecordingBackend, catalog: BoardCatalog) -> None:
        controller = RegulatorController(regulators, catalog)
        controller.restore_default("VCCO_MIO")
        assert (VCCO_MIO, 0x21, b"\xcd\x01") in regulators.writes()  # 1.8 V

    def test_list_regulators(self, regulators: RecordingBackend, catalog: BoardCatalog) -> None:
        assert RegulatorController(regulators, catalog).list_regulators() == [
            "VCCINT",
            "VCC_SOC",
            "VCCO_MIO",
        ]


class TestSimulatedVoltageChange:
    """set_voltage against the YAML simulator leaves every limit register readable."""

    def test_limits_read_back(self, tmp_path: Path, catalog: BoardCatalog) -> None:
        state = tmp_path / "state.yaml"
        simulator.add_device(state, BUS, VCCINT, {0x20: b"\x18"}, registers=True)

        RegulatorController(YamlBusBackend(state), catalog).set_voltage("VCCINT", 0.8)

        def read(register: int, length: int = 2) -> bytes:
            return simulator.read_block(state, BUS, VCCINT, register, length)

        assert read(0x44) == b"\x00\x00"
        assert read(0x43) == b"\x00\x00"
        assert read(0x40) == b"\x0a\x01"
        assert read(0x42) == b"\x0a\x01"
        assert read(0x21) == b"\xcd\x00"
        assert read(0x20, 1) == b"\x18"
        assert read(0x01, 1) == b"\x80"

    def test_get_voltage_after_set(self, tmp_path: Path, catalog: BoardCatalog) -> None:
        state = tmp_path / "state.yaml"
        simulator.add_device(state, BUS, VCC_SOC, registers=True)
        controller = RegulatorController(YamlBusBackend(state), catalog)

        controller.set_voltage("VCC_SOC", 0.8)
        simulator.write_block(state, BUS, VCC_SOC, 0x8B, b"\xcd\x00")  # READ_VOUT

        assert simulator.read_block(state, BUS, VCC_SOC, 0x40, 2) == b"\x0a\x01"
        assert simulator.read_block(state, BUS, VCC_SOC, 0x21, 2) == b"\xcd\x00"
        assert controller.get_voltage("VCC_SOC") == 0.80078125
