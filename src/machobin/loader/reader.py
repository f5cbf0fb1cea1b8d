"""Primitive binary reads with byte-order handling."""

import struct
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from typing import BinaryIO


class _Primitives(ABC):
    """Fixed-width reads built on top of ``_word``.

    ``_word(size)`` returns ``size`` bytes in big-endian order, so every
    multi-byte read below can unpack with a ``>`` format.
    """

    @abstractmethod
    def read_bytes(self, size: int) -> bytes:
        """Read ``size`` bytes exactly as stored."""

    @abstractmethod
    def _word(self, size: int) -> bytes:
        """Read ``size`` bytes reordered to big-endian."""

    def read_u8(self) -> int:
        return self.read_bytes(1)[0]

    def read_i8(self) -> int:
        return struct.unpack(">b", self.read_bytes(1))[0]

    def read_u16(self) -> int:
        return struct.unpack(">H", self._word(2))[0]

    def read_i16(self) -> int:
        return struct.unpack(">h", self._word(2))[0]

    def read_u32(self) -> int:
        return struct.unpack(">I", self._word(4))[0]

    def read_i32(self) -> int:
        return struct.unpack(">i", self._word(4))[0]

    def read_u64(self) -> int:
        return struct.unpack(">Q", self._word(8))[0]

    def read_i64(self) -> int:
        return struct.unpack(">q", self._word(8))[0]

    def read_f32(self) -> float:
        return struct.unpack(">f", self._word(4))[0]

    def read_f64(self) -> float:
        return struct.unpack(">d", self._word(8))[0]


class StreamReader(_Primitives):
    """Big-endian reader over a seekable binary stream."""

    def __init__(self, stream: BinaryIO) -> None:
        self.stream = stream

    def tell(self) -> int:
        return self.stream.tell()

    def seek(self, offset: int) -> int:
        return self.stream.seek(offset)

    def read_bytes(self, size: int) -> bytes:
        offset = self.stream.tell()
        data = self.stream.read(size)
        if len(data) != size:
            raise EOFError(
                f"Unexpected end of file at {offset:#x}: "
                f"wanted {size} bytes, got {len(data)}"
            )
        return data

    def _word(self, size: int) -> bytes:
        return self.read_bytes(size)


class ByteOrderAdapter(_Primitives):
    """Wraps a reader and swaps the bytes of every multi-byte value.

    Used for little-endian files so callers can read fields the same way
    regardless of the file's byte order. Byte runs and single bytes pass
    through untouched.
    """

    def __init__(self, delegate: _Primitives) -> None:
        self.delegate = delegate

    def read_bytes(self, size: int) -> bytes:
        return self.delegate.read_bytes(size)

    def _word(self, size: int) -> bytes:
        return self.delegate.read_bytes(size)[::-1]


def make_reader(stream: BinaryIO, little_endian: bool) -> _Primitives:
    """Return a reader that decodes ``stream`` in the given byte order."""
    reader = StreamReader(stream)
    if little_endian:
        return ByteOrderAdapter(reader)
    return reader


@contextmanager
def restore_position(stream: BinaryIO) -> Iterator[int]:
    """Seek back to the current offset when the block exits, even on error."""
    mark = stream.tell()
    try:
        yield mark
    finally:
        stream.seek(mark)


def _decode(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


def read_c_string(reader: _Primitives) -> str:
    """Read a NUL-terminated string from the reader's current position."""
    chars = bytearray()
    byte = reader.read_u8()
    while byte != 0:
        chars.append(byte)
        byte = reader.read_u8()
    return _decode(bytes(chars))


def read_c_string_at(view, offset: int) -> str:
    """Read a NUL-terminated string at ``offset`` inside a mapped view.

    The view is only indexed, never positioned, so concurrent lookups on
    the same mapping don't interfere. A string with no terminator runs to
    the end of the view; offsets outside the view give an empty string.
    """
    if offset < 0 or offset >= len(view):
        return ""
    end = view.find(b"\x00", offset)
    if end == -1:
        end = len(view)
    return _decode(bytes(view[offset:end]))
