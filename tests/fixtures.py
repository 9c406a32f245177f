"""Shared test fixtures: in-memory bus backend and FRU image builders."""

from contextlib import contextmanager
from typing import Iterator

from sc_board.errors import TransactionError

TYPE_ASCII = 0xC0
END_OF_RECORD = 0xC1


class RecordingBackend:
    """In-memory bus backend that keeps a log of every bus access.

    Devices are keyed by (bus, address). Memory devices hold one byte per
    cell; register devices (registers=True) keep each command's whole value.
    Accessing an address with no device raises TransactionError, as does any
    access listed in fail_on as (kind, address, register).
    """

    def __init__(self) -> None:
        self.devices: dict[tuple[str, int], dict[int, int | bytes]] = {}
        self.register_devices: set[tuple[str, int]] = set()
        self.fail_on: set[tuple[str, int, int]] = set()
        self.log: list[tuple] = []
        self.read_widths: list[int] = []
        self.opened = 0
        self.closed = 0

    def add_device(
        self,
        bus: str,
        address: int,
        image: bytes | dict[int, bytes] = b"",
        registers: bool = False,
    ) -> None:
        device = self.devices.setdefault((bus, address), {})
        blocks = {0: image} if isinstance(image, (bytes, bytearray)) else image
        if registers:
            self.register_devices.add((bus, address))
            device.update((reg, bytes(value)) for reg, value in blocks.items())
            return
        for start, data in blocks.items():
            for i, b in enumerate(data):
                device[start + i] = b

    @contextmanager
    def transaction(self, bus: str, address: int) -> Iterator["RecordingTransaction"]:
        self.opened += 1
        self.log.append(("open", bus, address))
        try:
            yield RecordingTransaction(self, bus, address)
        finally:
            self.closed += 1
            self.log.append(("close", bus, address))

    def writes(self) -> list[tuple[int, int, bytes]]:
        """(address, register, payload) of every write, in order."""
        return [(e[1], e[2], e[3]) for e in self.log if e[0] == "write"]

    def reads(self) -> list[tuple[int, int, int]]:
        """(address, register, length) of every read, in order."""
        return [(e[1], e[2], e[3]) for e in self.log if e[0] == "read"]


class RecordingTransaction:
    def __init__(self, backend: RecordingBackend, bus: str, address: int) -> None:
        self._backend = backend
        self._bus = bus
        self._address = address

    @property
    def _registers(self) -> bool:
        return (self._bus, self._address) in self._backend.register_devices

    def _device(self, kind: str, register: int) -> dict[int, int | bytes]:
        if (kind, self._address, register) in self._backend.fail_on:
            raise TransactionError(f"injected {kind} failure at 0x{register:02x}")
        try:
            return self._backend.devices[(self._bus, self._address)]
        except KeyError:
            raise TransactionError(f"no device at 0x{self._address:02x}") from None

    def read(self, register: int, length: int, width: int = 1) -> bytes:
        device = self._device("read", register)
        self._backend.log.append(("read", self._address, int(register), length))
        self._backend.read_widths.append(width)
        if self._registers:
            return (device.get(register, b"") + bytes(length))[:length]
        return bytes(device.get(register + i, 0) for i in range(length))

    def write(self, register: int, payload: bytes = b"", width: int = 1) -> None:
        device = self._device("write", register)
        self._backend.log.append(("write", self._address, int(register), bytes(payload)))
        if self._registers:
            if payload:
                device[register] = bytes(payload)
            return
        for i, b in enumerate(payload):
            device[register + i] = b


# --- FRU image builders ---


def type_length(content: bytes, type_bits: int = TYPE_ASCII) -> bytes:
    """Type-Length encoded field."""
    return bytes([type_bits | len(content)]) + content


def board_area(
    fields: list[bytes],
    minutes: int = 0,
    end: bool = True,
    language: int = 0x00,
) -> bytes:
    """Board Info Area: version 1, length, language, date, fields, End-of-Record."""
    body = b"".join(type_length(f) for f in fields)
    if end:
        body += bytes([END_OF_RECORD])
    prefix_len = 6
    units = (prefix_len + len(body) + 7) // 8
    return bytes([0x01, units, language]) + minutes.to_bytes(3, "little") + body


def multirecord(type_code: int, payload: bytes, last: bool = False) -> bytes:
    """One multirecord with valid header and record checksums."""
    fmt = 0x02 | (0x80 if last else 0x00)
    head = bytes([type_code, fmt, len(payload), (-sum(payload)) & 0xFF])
    return head + bytes([(-sum(head)) & 0xFF]) + payload


def dc_payload(
    output: int,
    nominal: int,
    minimum: int,
    maximum: int,
    ripple: int = 0,
    min_current: int = 0,
    max_current: int = 0,
) -> bytes:
    """DC Output/Load payload; voltages in units of 10 mV."""
    words = (nominal, minimum, maximum, ripple, min_current, max_current)
    return bytes([output]) + b"".join(w.to_bytes(2, "little") for w in words)


def fru_image(
    board: bytes | None = None,
    records: list[bytes] | None = None,
    multirecord_offset: int = 0x68,
    records_at: int | None = None,
    size: int = 256,
) -> bytearray:
    """EEPROM image with a common header, a board area at 0x08 and a record chain.

    records_at places the chain somewhere other than the header's offset.
    """
    image = bytearray(size)
    header = bytes([0x01, 0x00, 0x00, 0x01 if board else 0x00, 0x00,
                    multirecord_offset // 8 if records else 0x00, 0x00])
    image[0:8] = header + bytes([(-sum(header)) & 0xFF])
    if board:
        image[0x08 : 0x08 + len(board)] = board
    if records:
        start = multirecord_offset if records_at is None else records_at
        chain = b"".join(records)
        image[start : start + len(chain)] = chain
    return image


BOARD_FIELDS = [b"Xilinx", b"VCK190", b"XFL1ABCDEF01", b"ADK-VCK190-G", b"\x01", b"A"]
PCIE_INFO = bytes.fromhex("10ee503c10ee0007")
UUID = bytes(range(16))
