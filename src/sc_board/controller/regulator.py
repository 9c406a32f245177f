"""
Voltage regulator control over PMBus.

Reads use READ_VOUT. A voltage change is a fixed sequence of writes that
first turns the output off, relaxes the limits around the new setpoint,
programs the setpoint and turns the output back on. The whole sequence runs
inside a single bus transaction.
"""

import logging
from typing import Callable, Union

from ..bus.backend import BusBackend, BusTransaction
from ..errors import RegulatorSequenceError, TransactionError, ValidationError
from ..registers.enums import Operation, PmbusCommand
from ..registers.linear import decode_linear, encode_linear, exponent_from_vout_mode
from .catalog import BoardCatalog, RegulatorDescriptor, lookup

logger = logging.getLogger(__name__)

OVER_VOLTAGE_MARGIN = 0.3
MIN_OVER_VOLTAGE_BASE = 0.1  # V, used when the target is 0
ZERO_LIMIT = b"\x00\x00"

RegulatorTarget = Union[str, RegulatorDescriptor]


def over_voltage_limit(volts: float) -> float:
    """Over-voltage fault/warn limit for a setpoint: 30% above it."""
    base = max(volts, MIN_OVER_VOLTAGE_BASE)
    return base + base * OVER_VOLTAGE_MARGIN


def select_page(tx: BusTransaction, regulator: RegulatorDescriptor) -> None:
    """Select the regulator's output page when it has one."""
    if regulator.page_select is not None:
        tx.write(PmbusCommand.PAGE, bytes([regulator.page_select]))


def resolve_exponent(tx: BusTransaction, regulator: RegulatorDescriptor) -> int:
    """Exponent from the part table, or from VOUT_MODE for parts that report it."""
    if regulator.fixed_exponent is not None:
        return regulator.fixed_exponent
    return exponent_from_vout_mode(tx.read(PmbusCommand.VOUT_MODE, 1)[0])


class RegulatorController:
    """Reads and programs the output voltage of catalog regulators."""

    def __init__(self, backend: BusBackend, catalog: BoardCatalog):
        """Initialize with a bus backend and the board catalog.

        Args:
            backend: BusBackend for transactions (e.g. SmbusBackend or YamlBusBackend)
            catalog: Board catalog listing the regulators
        """
        self._backend = backend
        self._catalog = catalog

    def list_regulators(self) -> list[str]:
        return list(self._catalog.regulators)

    def _regulator(self, target: RegulatorTarget) -> RegulatorDescriptor:
        return lookup(self._catalog.regulators, target, "regulator")

    def get_voltage(self, target: RegulatorTarget) -> float:
        """Read the output voltage.

        Raises:
            TransactionError: If any bus access fails.
        """
        regulator = self._regulator(target)
        with self._backend.transaction(regulator.bus, regulator.address) as tx:
            select_page(tx, regulator)
            exponent = resolve_exponent(tx, regulator)
            raw = tx.read(PmbusCommand.READ_VOUT, 2)
        volts = decode_linear(raw, exponent)
        logger.debug(f"{regulator.name}: READ_VOUT {raw.hex()} -> {volts} V")
        return volts

    def set_voltage(self, target: RegulatorTarget, volts: float) -> None:
        """Program a new output voltage.

        Args:
            target: Regulator name or descriptor
            volts: New setpoint

        Raises:
            ValidationError: If the regulator only supports discrete values and
                volts is not one of them, or the setpoint or its limits do not
                encode at the device exponent. No write has been issued.
            RegulatorSequenceError: If a step of the sequence fails. Earlier
                steps stay applied.
        """
        regulator = self._regulator(target)
        if not regulator.supports(volts):
            logger.error(
                f"{regulator.name}: {volts} V not supported ({regulator.supported_volts})"
            )
            raise ValidationError(
                f"Regulator {regulator.name!r} does not support {volts} V; "
                f"supported: {', '.join(str(v) for v in regulator.supported_volts)}"
            )

        with self._backend.transaction(regulator.bus, regulator.address) as tx:
            step = _Steps(regulator)
            step("select page", lambda: select_page(tx, regulator))
            exponent = step("resolve exponent", lambda: resolve_exponent(tx, regulator))

            limit = encode_linear(over_voltage_limit(volts), exponent)
            command = encode_linear(volts, exponent)

            writes = (
                ("output off", PmbusCommand.OPERATION, bytes([Operation.OFF])),
                ("under-voltage fault limit", PmbusCommand.VOUT_UV_FAULT_LIMIT, ZERO_LIMIT),
                ("under-voltage warn limit", PmbusCommand.VOUT_UV_WARN_LIMIT, ZERO_LIMIT),
                ("over-voltage fault limit", PmbusCommand.VOUT_OV_FAULT_LIMIT, limit),
                ("over-voltage warn limit", PmbusCommand.VOUT_OV_WARN_LIMIT, limit),
                ("output voltage", PmbusCommand.VOUT_COMMAND, command),
                ("output on", PmbusCommand.OPERATION, bytes([Operation.ON])),
            )
            for name, register, payload in writes:
                step(name, lambda: tx.write(register, payload))

        logger.info(f"{regulator.name}: output set to {volts} V")

    def restore_default(self, target: RegulatorTarget) -> None:
        """Program the regulator back to its typical voltage."""
        regulator = self._regulator(target)
        logger.info(f"{regulator.name}: restoring {regulator.typical_volt} V")
        self.set_voltage(regulator, regulator.typical_volt)


class _Steps:
    """Runs named sequence steps, turning bus failures into RegulatorSequenceError."""

    def __init__(self, regulator: RegulatorDescriptor):
        self._regulator = regulator

    def __call__(self, name: str, action: Callable[[], object]):
        try:
            result = action()
        except TransactionError as e:
            logger.error(f"{self._regulator.name}: step {name!r} failed: {e}")
            raise RegulatorSequenceError(self._regulator.name, name, e) from e
        logger.debug(f"{self._regulator.name}: {name} done")
        return result
