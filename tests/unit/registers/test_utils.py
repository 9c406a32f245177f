"""Unit tests for registers.utils (word conversions and bit utilities)."""

import pytest

from sc_board.errors import FormatError, ValidationError
from sc_board.registers.utils import (
    be16_to_int,
    be16_to_uint,
    format_hex,
    format_mac,
    get_bit,
    int_to_le16,
    le16_to_int,
    swap16,
    to_signed16,
)


class TestLe16ToInt:
    """Tests for le16_to_int (little-endian byte pair to signed 16-bit int)."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (b"\x64\x00", 100),
            (b"\x00\x00", 0),
            (b"\xff\xff", -1),  # negative, two's complement
            (b"\xff\x7f", 32767),
            (b"\x00\x80", -32768),
        ],
    )
    def test_decodes_signed_word(self, raw: bytes, expected: int) -> None:
        """Low byte first, sign taken from bit 15."""
        assert le16_to_int(raw) == expected

    @pytest.mark.parametrize("convert", [le16_to_int, be16_to_uint, be16_to_int])
    @pytest.mark.parametrize("raw", [b"", b"\x64"])
    def test_short_input_raises_format_error(self, convert, raw: bytes) -> None:
        """A truncated word is a format error, not a struct error."""
        with pytest.raises(FormatError, match="needs 2 bytes"):
            convert(raw)


class TestIntToLe16:
    """Tests for int_to_le16 (signed 16-bit int to the bytes sent on the wire)."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (0, b"\x00\x00"),
            (205, b"\xcd\x00"),
            (266, b"\x0a\x01"),
            (-1, b"\xff\xff"),
        ],
    )
    def test_specific_values(self, value: int, expected: bytes) -> None:
        """Known values produce expected byte pairs."""
        assert int_to_le16(value) == expected

    @pytest.mark.parametrize("value", [32768, -32769, 100000])
    def test_out_of_range_raises(self, value: int) -> None:
        """Values outside -32768..32767 are rejected instead of wrapping."""
        with pytest.raises(ValidationError, match="signed 16-bit"):
            int_to_le16(value)


class TestBigEndianWords:
    """Tests for be16_to_uint / be16_to_int (MSB first)."""

    def test_unsigned(self) -> None:
        assert be16_to_uint(b"\x80\xe8") == 33000

    def test_signed_positive(self) -> None:
        assert be16_to_int(b"\x19\x80") == 6528

    def test_signed_negative(self) -> None:
        assert be16_to_int(b"\xff\x00") == -256


class TestWordHelpers:
    """Tests for to_signed16 and swap16."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (0x0000, 0),
            (0x7FFF, 32767),
            (0x8000, -32768),
            (0xFF80, -128),
            (0x1FF80, -128),  # bits above 15 are ignored
        ],
    )
    def test_to_signed16(self, value: int, expected: int) -> None:
        assert to_signed16(value) == expected

    def test_swap16(self) -> None:
        assert swap16(0x9001) == 0x0190
        assert swap16(0x00FF) == 0xFF00


class TestGetBit:
    """Tests for get_bit (check if bit is set)."""

    @pytest.mark.parametrize(
        ("value", "bit_index", "expected"),
        [
            (0x80, 7, True),
            (0x7F, 7, False),
            (1, 0, True),
            (0, 0, False),
        ],
    )
    def test_get_bit(self, value: int, bit_index: int, expected: bool) -> None:
        assert get_bit(value, bit_index) is expected


class TestFormatting:
    """Tests for format_mac and format_hex."""

    def test_format_mac(self) -> None:
        assert format_mac(bytes([0x00, 0x0A, 0x35, 0x00, 0x1E, 0x53])) == "00:0a:35:00:1e:53"

    def test_format_hex(self) -> None:
        assert format_hex(b"\xda\x10\x00") == "da1000"
