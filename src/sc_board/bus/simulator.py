"""
Simulated bus devices for development without board access.

Device register images are kept in a YAML state file so that a sequence of
operations (e.g. a voltage change followed by a read-back) can be replayed
and inspected. Layout:

    "/dev/i2c-3":          # bus
      "0x46":              # device address; present key = device answers
        "0x20": "18"       # register -> hex bytes starting at that register

A device has one of two layouts. The default "memory" layout models an
EEPROM: a value of more than one byte fills consecutive registers, and a read
may span several of them. The "registers" layout models a command-addressed
device (PMBus regulator, INA226): each register keeps the whole value last
written to it, and a read returns that value:

    "0x46":
      layout: "registers"
      "0x40": "0a01"

Registers that were never written read back as 00. Accessing an address that
is not in the state behaves like a missing device and raises TransactionError.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Union

import yaml

from ..errors import TransactionError

logger = logging.getLogger(__name__)

LAYOUT_KEY = "layout"
MEMORY_LAYOUT = "memory"
REGISTERS_LAYOUT = "registers"


def _str_presenter(dumper, data) -> yaml.ScalarNode:
    """
    Custom representer to ensure all string keys and register values are quoted.

    Register values are hex strings (e.g., "18", "6400").
    All other strings are also quoted for consistency.
    """
    return dumper.represent_scalar("tag:yaml.org,2002:str", data, style='"')


class _StateDumper(yaml.SafeDumper):
    pass


_StateDumper.add_representer(str, _str_presenter)


@dataclass
class SimulatedDevice:
    """Register contents of one simulated device.

    In the memory layout every register holds one byte. In the registers
    layout every register holds the whole value last written to it.
    """

    registers: bool = False
    cells: Dict[int, bytes] = field(default_factory=dict)

    def read(self, register: int, length: int) -> bytes:
        if self.registers:
            value = self.cells.get(register, b"")
            return (value + bytes(length))[:length]
        return b"".join(self.cells.get(register + i, b"\x00") for i in range(length))

    def write(self, register: int, data: bytes) -> None:
        if not data:
            return
        if self.registers:
            self.cells[register] = bytes(data)
            return
        for i, b in enumerate(data):
            self.cells[register + i] = bytes([b])

    def to_state(self) -> Dict[str, str]:
        state = {f"0x{reg:02x}": value.hex() for reg, value in sorted(self.cells.items())}
        if self.registers:
            state[LAYOUT_KEY] = REGISTERS_LAYOUT
        return state


class SimulatorBusState:
    """Manages simulated devices with file-based persistence."""

    def __init__(self, state_file: Union[str, Path]):
        """
        Initialize simulator state.

        Args:
            state_file: Path to the YAML state file. A missing file is an empty bus.
        """
        self.state_file = Path(state_file)
        self.devices: Dict[str, Dict[int, SimulatedDevice]] = {}

    def load(self) -> None:
        """Load devices from file if it exists."""
        if not self.state_file.exists():
            logger.debug(f"No simulator state at {self.state_file}; starting empty")
            self.devices = {}
            return
        try:
            raw = yaml.safe_load(self.state_file.read_text()) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Could not load simulator state from {self.state_file}: {e}")
            raise TransactionError(f"Could not load simulator state: {e}") from e
        if not isinstance(raw, dict):
            raise TransactionError(
                f"Simulator state root must be a mapping, got {type(raw).__name__}"
            )

        self.devices = {}
        for bus, devices in raw.items():
            for address, registers in (devices or {}).items():
                entries = dict(registers or {})
                layout = entries.pop(LAYOUT_KEY, MEMORY_LAYOUT)
                if layout not in (MEMORY_LAYOUT, REGISTERS_LAYOUT):
                    raise TransactionError(
                        f"Unknown layout {layout!r} for device {bus} {address}"
                    )
                device = SimulatedDevice(registers=layout == REGISTERS_LAYOUT)
                for register, value in entries.items():
                    device.write(_parse_int(register), bytes.fromhex(str(value)))
                self.devices.setdefault(str(bus), {})[_parse_int(address)] = device

    def save(self) -> None:
        """Save devices to file."""
        content = yaml.dump(
            {
                bus: {
                    f"0x{address:02x}": device.to_state()
                    for address, device in sorted(devices.items())
                }
                for bus, devices in self.devices.items()
            },
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=True,
            Dumper=_StateDumper,
        )
        try:
            self.state_file.parent.mkdir(parents=True, exist_ok=True)
            self.state_file.write_text(content)
        except OSError as e:
            logger.error(f"Could not save simulator state to {self.state_file}: {e}")
            raise TransactionError(f"Could not save simulator state: {e}") from e

    def device(self, bus: str, address: int) -> SimulatedDevice:
        """Device at address, raising TransactionError if nothing answers there."""
        try:
            return self.devices[bus][address]
        except KeyError:
            logger.debug(f"[SIMULATOR] No device at {bus} 0x{address:02x}")
            raise TransactionError(f"No device at {bus} address 0x{address:02x}") from None


def _parse_int(value: Union[int, str]) -> int:
    if isinstance(value, int):
        return value
    return int(value, 0)


def add_device(
    state_file: Union[str, Path],
    bus: str,
    address: int,
    image: Optional[Union[bytes, Dict[int, bytes]]] = None,
    registers: bool = False,
) -> None:
    """
    Declare a simulated device, optionally pre-loading its registers.

    Args:
        state_file: Path to the YAML state file
        bus: Bus device path (e.g. "/dev/i2c-1")
        address: 7-bit device address
        image: Either a contiguous image starting at register 0, or a mapping
            of start register -> bytes
        registers: Use the registers layout (one whole value per command)
            instead of byte memory
    """
    state = SimulatorBusState(state_file)
    state.load()
    device = state.devices.setdefault(bus, {}).setdefault(
        address, SimulatedDevice(registers=registers)
    )
    blocks = {0: image} if isinstance(image, (bytes, bytearray)) else (image or {})
    for start, data in blocks.items():
        device.write(start, bytes(data))
    state.save()
    logger.debug(f"[SIMULATOR] Added device {bus} 0x{address:02x}")


def read_block(
    state_file: Union[str, Path], bus: str, address: int, register: int, length: int
) -> bytes:
    """
    Simulator implementation of a register read.

    Returns:
        `length` bytes read at `register` (00 for registers never written)
    """
    state = SimulatorBusState(state_file)
    state.load()
    data = state.device(bus, address).read(register, length)
    logger.debug(
        f"[SIMULATOR] READ {bus} 0x{address:02x} reg 0x{register:02x} ({length}): {data.hex()}"
    )
    return data


def write_block(
    state_file: Union[str, Path], bus: str, address: int, register: int, data: bytes
) -> None:
    """
    Simulator implementation of a register write. An empty payload only
    addresses the device (presence probe).
    """
    state = SimulatorBusState(state_file)
    state.load()
    device = state.device(bus, address)
    old = device.read(register, len(data))
    device.write(register, data)
    if data:
        state.save()
    logger.debug(
        f"[SIMULATOR] WRITE {bus} 0x{address:02x} reg 0x{register:02x}: "
        f"{old.hex()} → {data.hex()}"
    )
