"""
FRU package: decoders for the common header, board info area and multirecord area.
"""

from .board import BoardInfo, decode_board_area, decode_board_identity
from .header import CommonHeader, decode_common_header
from .multirecord import (
    ERRATUM_MULTIRECORD_OFFSET,
    MultirecordEntry,
    decode_multirecord_area,
    find_vadj_range,
    verify_checksums,
)
from .summary import BoardSummary, decode_summary, hexdump_rows

__all__ = [
    "BoardInfo",
    "BoardSummary",
    "CommonHeader",
    "ERRATUM_MULTIRECORD_OFFSET",
    "MultirecordEntry",
    "decode_board_area",
    "decode_board_identity",
    "decode_common_header",
    "decode_multirecord_area",
    "decode_summary",
    "find_vadj_range",
    "hexdump_rows",
    "verify_checksums",
]
