"""
Bus backend abstraction: Protocols and implementations (SMBus, YAML).

Controllers depend only on BusBackend. Transport is chosen at construction:
SmbusBackend() for a real I2C adapter or YamlBusBackend(state_file) for the
simulator. Every logical operation runs inside one transaction scoped to a
single device:

    with backend.transaction("/dev/i2c-3", 0x46) as tx:
        tx.write(0x00, bytes([page]))
        raw = tx.read(0x8B, 2)

The transaction is closed when the block exits, also when it exits with an
exception. Failures of the transport surface as TransactionError.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Optional, Protocol, Union, runtime_checkable

from smbus2 import SMBus, i2c_msg

from ..errors import TransactionError
from . import simulator as simulator_io

logger = logging.getLogger(__name__)


def register_bytes(register: int, width: int) -> bytes:
    """Register address as sent on the wire (big-endian, `width` bytes)."""
    if width not in (1, 2):
        raise TransactionError(f"Unsupported register address width {width}")
    if not 0 <= register < (1 << (8 * width)):
        raise TransactionError(
            f"Register 0x{register:x} does not fit a {width}-byte address"
        )
    return register.to_bytes(width, "big")


@runtime_checkable
class BusTransaction(Protocol):
    """Register access to one device for the lifetime of a transaction."""

    def read(self, register: int, length: int, width: int = 1) -> bytes:
        """Read `length` bytes starting at `register`."""
        ...

    def write(self, register: int, payload: bytes = b"", width: int = 1) -> None:
        """Write `payload` starting at `register`. Empty payload addresses the device only."""
        ...


@runtime_checkable
class BusBackend(Protocol):
    """Protocol for bus access. Opens one transaction per logical operation."""

    def transaction(self, bus: str, address: int):
        """Context manager yielding a BusTransaction for (bus, address)."""
        ...


class SmbusTransaction:
    """Combined-format I2C transfers on an open SMBus handle."""

    def __init__(self, handle: SMBus, bus: str, address: int):
        self._handle = handle
        self._bus = bus
        self._address = address

    def read(self, register: int, length: int, width: int = 1) -> bytes:
        select = i2c_msg.write(self._address, register_bytes(register, width))
        data = i2c_msg.read(self._address, length)
        try:
            self._handle.i2c_rdwr(select, data)
        except OSError as e:
            logger.error(
                f"Read failed: {self._bus} 0x{self._address:02x} reg 0x{register:02x}: {e}"
            )
            raise TransactionError(
                f"Read of 0x{register:02x} from 0x{self._address:02x} failed: {e}"
            ) from e
        raw = bytes(data)
        logger.debug(
            f"READ {self._bus} 0x{self._address:02x} reg 0x{register:02x}: {raw.hex()}"
        )
        return raw

    def write(self, register: int, payload: bytes = b"", width: int = 1) -> None:
        msg = i2c_msg.write(self._address, register_bytes(register, width) + bytes(payload))
        try:
            self._handle.i2c_rdwr(msg)
        except OSError as e:
            logger.error(
                f"Write failed: {self._bus} 0x{self._address:02x} reg 0x{register:02x}: {e}"
            )
            raise TransactionError(
                f"Write of 0x{register:02x} to 0x{self._address:02x} failed: {e}"
            ) from e
        logger.debug(
            f"WRITE {self._bus} 0x{self._address:02x} reg 0x{register:02x}: {bytes(payload).hex()}"
        )


class SmbusBackend:
    """Backend that talks to I2C devices through the kernel i2c-dev interface."""

    def __init__(self, open_bus: Optional[Callable[[str], SMBus]] = None):
        """
        Initialize SMBus backend.

        Args:
            open_bus: Factory returning an SMBus handle for a bus device path.
                Defaults to smbus2.SMBus.
        """
        self._open_bus = open_bus or SMBus

    @contextmanager
    def transaction(self, bus: str, address: int) -> Iterator[SmbusTransaction]:
        try:
            handle = self._open_bus(bus)
        except OSError as e:
            logger.error(f"Could not open {bus}: {e}")
            raise TransactionError(f"Could not open {bus}: {e}") from e
        logger.debug(f"Transaction opened: {bus} 0x{address:02x}")
        try:
            yield SmbusTransaction(handle, bus, address)
        finally:
            handle.close()
            logger.debug(f"Transaction closed: {bus} 0x{address:02x}")


class YamlTransaction:
    """Transaction against the YAML simulator. Delegates to simulator module."""

    def __init__(self, state_file: Path, bus: str, address: int):
        self._state_file = state_file
        self._bus = bus
        self._address = address

    def read(self, register: int, length: int, width: int = 1) -> bytes:
        register_bytes(register, width)
        return simulator_io.read_block(
            self._state_file, self._bus, self._address, register, length
        )

    def write(self, register: int, payload: bytes = b"", width: int = 1) -> None:
        register_bytes(register, width)
        simulator_io.write_block(
            self._state_file, self._bus, self._address, register, bytes(payload)
        )


class YamlBusBackend:
    """Backend that uses a YAML file for device register state."""

    def __init__(self, state_file: Union[str, Path]):
        """
        Initialize YAML backend.

        Args:
            state_file: Path to the YAML state file (required; no env var).
        """
        self._state_file = Path(state_file)

    @contextmanager
    def transaction(self, bus: str, address: int) -> Iterator[YamlTransaction]:
        logger.debug(f"[SIMULATOR] Transaction opened: {bus} 0x{address:02x}")
        try:
            yield YamlTransaction(self._state_file, bus, address)
        finally:
            logger.debug(f"[SIMULATOR] Transaction closed: {bus} 0x{address:02x}")
