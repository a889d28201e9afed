"""
Bounds-checked little-endian reads over stream buffers.

Every function takes the buffer and an explicit offset, so the same
``bytes`` object can be handed to several decoders without a shared cursor.
A read that would run past the end of the buffer raises ``OutOfRangeError``
instead of returning a truncated value.
"""

import struct

from msdocreader.exceptions import OutOfRangeError


def _check(data: bytes, offset: int, width: int) -> None:
    if offset < 0 or width < 0 or offset + width > len(data):
        raise OutOfRangeError(offset, width, len(data))


def read_u8(data: bytes, offset: int) -> int:
    _check(data, offset, 1)
    return data[offset]


def read_u16(data: bytes, offset: int) -> int:
    _check(data, offset, 2)
    return struct.unpack_from("<H", data, offset)[0]


def read_u16_be(data: bytes, offset: int) -> int:
    """Big-endian 16-bit read, only needed for Mac-authored FIB headers."""
    _check(data, offset, 2)
    return struct.unpack_from(">H", data, offset)[0]


def read_i16(data: bytes, offset: int) -> int:
    _check(data, offset, 2)
    return struct.unpack_from("<h", data, offset)[0]


def read_u24(data: bytes, offset: int) -> int:
    _check(data, offset, 3)
    return int.from_bytes(data[offset : offset + 3], "little")


def read_u32(data: bytes, offset: int) -> int:
    _check(data, offset, 4)
    return struct.unpack_from("<I", data, offset)[0]


def read_i32(data: bytes, offset: int) -> int:
    """
    Read a two's-complement signed 32-bit value.

    The sign comes from the top byte, so ``ff ff ff ff`` is -1 and
    ``00 00 00 80`` is -2**31 regardless of the platform word size.
    """
    _check(data, offset, 4)
    return struct.unpack_from("<i", data, offset)[0]


def read_bytes(data: bytes, offset: int, length: int) -> bytes:
    _check(data, offset, length)
    return bytes(data[offset : offset + length])


def read_utf16(data: bytes, offset: int, cch: int) -> str:
    """Read ``cch`` UTF-16LE code units starting at ``offset``."""
    raw = read_bytes(data, offset, cch * 2)
    return raw.decode("utf-16-le", errors="replace")


def read_utf16z(data: bytes, offset: int) -> tuple[str, int]:
    """
    Read a NUL-terminated UTF-16LE string.

    Returns:
        The decoded text and the offset just past the terminator.
    """
    end = offset
    while read_u16(data, end) != 0:
        end += 2
    return data[offset:end].decode("utf-16-le", errors="replace"), end + 2
