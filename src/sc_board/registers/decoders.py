"""
This module contains tools to decode human-readable values from fixed-offset device registers.

A field read from a register map is a short raw byte string; a decoder turns it into a
string, a scaled float, or an integer bitfield. Decoders are referenced by name from the
register-map YAML configs through DECODER_REGISTRY.
"""

from typing import Callable, Protocol, TypeVar

from ..errors import FormatError
from .utils import be16_to_int, be16_to_uint, swap16, to_signed16

T = TypeVar("T", covariant=True)


class Decoder(Protocol[T]):
    """Decoder takes the raw bytes of a field and returns a readable value.

    Args:
        raw: Bytes read from the device for this field

    Returns:
        T: Readable value (str, float, int depending on decoder)

    Raises:
        FormatError: If raw does not have the length the decoder expects
    """

    def __call__(self, raw: bytes) -> T: ...


def _require_length(raw: bytes, length: int, what: str) -> None:
    if raw is None or len(raw) != length:
        got = "None" if raw is None else str(len(raw))
        raise FormatError(f"{what}: expected {length} bytes, got {got}")


def decode_ascii(raw: bytes) -> str:
    """Decode a fixed-width ASCII field, dropping NUL and space padding."""
    return raw.split(b"\x00", 1)[0].decode("ascii", errors="replace").strip()


def decode_module_temperature(raw: bytes) -> float:
    """Decode a transceiver temperature (signed, MSB first, 1/256 degree C per bit)."""
    _require_length(raw, 2, "temperature")
    return be16_to_int(raw) / 256.0


def decode_supply_voltage(raw: bytes) -> float:
    """Decode a transceiver supply voltage (unsigned, MSB first, 100 uV per bit)."""
    _require_length(raw, 2, "supply voltage")
    return be16_to_uint(raw) * 0.0001


def decode_bitfield(raw: bytes) -> int:
    """Decode an alarm/flag field of any width as a big-endian integer."""
    if not raw:
        raise FormatError("bitfield: empty field")
    return int.from_bytes(raw, "big")


def decode_byte(raw: bytes) -> int:
    """Decode a single-byte register."""
    _require_length(raw, 1, "byte register")
    return raw[0]


def decode_dimm_temperature(raw: bytes) -> float:
    """Decode a DIMM thermal sensor word to degrees C.

    The sensor sends XXXS_TTTT then tttt_tttt, so a little-endian load gives
    tttt_tttt_XXXS_TTTT. The bytes are swapped back, shifted left by 3 so that
    the sign bit lands in bit 15, sign-extended, and scaled by 0.125 / 16
    (0.0625 degree C per count).
    """
    _require_length(raw, 2, "DIMM temperature")
    host_word = raw[0] | (raw[1] << 8)  # native (little-endian) load
    shifted = to_signed16(swap16(host_word) << 3)
    return 0.125 * shifted / 16


# Registry for config loader: maps YAML decoder names to decoder functions.
DECODER_REGISTRY: dict[str, Callable[[bytes], object]] = {
    "ascii": decode_ascii,
    "module_temperature": decode_module_temperature,
    "supply_voltage": decode_supply_voltage,
    "bitfield": decode_bitfield,
    "byte": decode_byte,
}
