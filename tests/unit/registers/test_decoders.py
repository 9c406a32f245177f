"""Unit tests for registers.decoders."""

import pytest

from sc_board.controller.catalog import load_register_map
from sc_board.errors import FormatError
from sc_board.registers.decoders import (
    DECODER_REGISTRY,
    decode_ascii,
    decode_bitfield,
    decode_byte,
    decode_dimm_temperature,
    decode_module_temperature,
    decode_supply_voltage,
)


class TestDecodeAscii:
    """Tests for decode_ascii (fixed-width padded strings)."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (b"FINISAR CORP.   ", "FINISAR CORP."),
            (b"AMPHENOL\x00\x00\x00\x00\x00\x00\x00\x00", "AMPHENOL"),
            (b"                ", ""),
            (b"AB\x00CD", "AB"),  # content after the first NUL is ignored
        ],
    )
    def test_strips_padding(self, raw: bytes, expected: str) -> None:
        assert decode_ascii(raw) == expected


class TestDecodeModuleTemperature:
    """Tests for decode_module_temperature (signed, 1/256 degree C)."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (b"\x19\x80", 25.5),
            (b"\x00\x00", 0.0),
            (b"\xff\x00", -1.0),
        ],
    )
    def test_valid(self, raw: bytes, expected: float) -> None:
        assert decode_module_temperature(raw) == expected

    def test_wrong_length_raises(self) -> None:
        with pytest.raises(FormatError, match="expected 2 bytes"):
            decode_module_temperature(b"\x19")


class TestDecodeSupplyVoltage:
    """Tests for decode_supply_voltage (unsigned, 100 uV)."""

    def test_valid(self) -> None:
        assert decode_supply_voltage(b"\x80\xe8") == pytest.approx(3.3)

    def test_wrong_length_raises(self) -> None:
        with pytest.raises(FormatError):
            decode_supply_voltage(b"\x80\xe8\x00")


class TestDecodeBitfield:
    """Tests for decode_bitfield (any width, MSB first)."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (b"\x00\x01", 0x0001),
            (b"\x80\x00", 0x8000),
            (b"\x01\x02\x03\x04", 0x01020304),
        ],
    )
    def test_valid(self, raw: bytes, expected: int) -> None:
        assert decode_bitfield(raw) == expected

    def test_empty_raises(self) -> None:
        with pytest.raises(FormatError):
            decode_bitfield(b"")


class TestDecodeDimmTemperature:
    """Tests for decode_dimm_temperature (swapped, sign in bit 12)."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (b"\x01\x90", 25.0),
            (b"\x00\x00", 0.0),
            (b"\x1f\xf0", -1.0),
            (b"\x00\x01", 0.0625),
        ],
    )
    def test_valid(self, raw: bytes, expected: float) -> None:
        assert decode_dimm_temperature(raw) == expected


class TestSmallDecoders:
    """Tests for decode_byte."""

    def test_decode_byte(self) -> None:
        assert decode_byte(b"\x05") == 5

    def test_decode_byte_wrong_length(self) -> None:
        with pytest.raises(FormatError):
            decode_byte(b"\x05\x06")


class TestDecoderRegistry:
    """DECODER_REGISTRY maps config names to decoder functions."""

    def test_names(self) -> None:
        assert DECODER_REGISTRY["ascii"] is decode_ascii
        assert DECODER_REGISTRY["module_temperature"] is decode_module_temperature
        assert DECODER_REGISTRY["supply_voltage"] is decode_supply_voltage
        assert DECODER_REGISTRY["bitfield"] is decode_bitfield
        assert DECODER_REGISTRY["byte"] is decode_byte

    def test_every_name_is_used_by_a_register_map(self) -> None:
        """The registry holds exactly the decoders the shipped register maps name."""
        used = {
            field.decode_function
            for variant in ("sfp", "qsfp")
            for field in load_register_map(variant).fields.values()
        }
        assert used == set(DECODER_REGISTRY.values())
