"""
Registers package: byte cursor, word helpers, the Linear16 codec and field decoders.
"""

from .cursor import ByteCursor
from .decoders import DECODER_REGISTRY
from .linear import FIXED_EXPONENT_PARTS, decode_linear, encode_linear

__all__ = [
    "ByteCursor",
    "DECODER_REGISTRY",
    "FIXED_EXPONENT_PARTS",
    "decode_linear",
    "encode_linear",
]
