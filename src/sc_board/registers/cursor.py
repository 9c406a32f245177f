"""
Bounds-checked sequential reader over a fixed-size byte buffer.

All FRU and register-map decoders read through a ByteCursor so that length
and offset fields coming from the device can never push a read past the end
of the buffer that was actually fetched.
"""

import logging
from typing import Union

from ..errors import OutOfBounds

logger = logging.getLogger(__name__)


class ByteCursor:
    """Read position over an immutable byte buffer.

    Every accessor raises OutOfBounds (and leaves the position untouched)
    when the requested access does not fit inside the buffer.
    """

    def __init__(self, buf: Union[bytes, bytearray], position: int = 0):
        self._buf = bytes(buf)
        self._pos = 0
        self.seek(position)

    def __len__(self) -> int:
        return len(self._buf)

    @property
    def position(self) -> int:
        return self._pos

    @property
    def remaining(self) -> int:
        return len(self._buf) - self._pos

    def _check(self, offset: int, count: int) -> None:
        if offset < 0 or count < 0 or offset + count > len(self._buf):
            logger.debug(
                f"Out-of-bounds access: offset 0x{offset:x}, count {count}, "
                f"buffer size {len(self._buf)}"
            )
            raise OutOfBounds(
                f"Access of {count} byte(s) at offset 0x{offset:x} exceeds "
                f"buffer size {len(self._buf)}"
            )

    def seek(self, offset: int) -> None:
        """Move to an absolute offset. Seeking to the very end is allowed."""
        self._check(offset, 0)
        self._pos = offset

    def skip(self, count: int) -> None:
        self._check(self._pos, count)
        self._pos += count

    def peek_byte(self) -> int:
        self._check(self._pos, 1)
        return self._buf[self._pos]

    def read_byte(self) -> int:
        value = self.peek_byte()
        self._pos += 1
        return value

    def read_bytes(self, count: int) -> bytes:
        self._check(self._pos, count)
        data = self._buf[self._pos : self._pos + count]
        self._pos += count
        return data

    def read_u16_le(self) -> int:
        return int.from_bytes(self.read_bytes(2), "little")

    def read_u24_le(self) -> int:
        return int.from_bytes(self.read_bytes(3), "little")

    def read_cstring(self) -> str:
        """Read a NUL-terminated ASCII string, consuming the terminator."""
        end = self._buf.find(b"\x00", self._pos)
        if end < 0:
            raise OutOfBounds(
                f"Unterminated string at offset 0x{self._pos:x} "
                f"(buffer size {len(self._buf)})"
            )
        text = self._buf[self._pos : end].decode("ascii", errors="replace")
        self._pos = end + 1
        return text
