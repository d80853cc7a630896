"""Big-endian primitive reader over a seekable binary stream."""
from __future__ import annotations

import io
import struct
from contextlib import contextmanager
from typing import BinaryIO, Iterator

from d2odatamine.d2o.errors import ReadError


# Struct formats (big-endian)
_INT8 = struct.Struct(">b")
_UINT8 = struct.Struct(">B")
_INT16 = struct.Struct(">h")
_UINT16 = struct.Struct(">H")
_INT32 = struct.Struct(">i")
_UINT32 = struct.Struct(">I")
_FLOAT = struct.Struct(">f")
_DOUBLE = struct.Struct(">d")


class ByteReader:
    """Typed reads over a file object with absolute and relative seeks.

    Every read advances the shared cursor of the wrapped stream. A short
    read raises ReadError; OSError from the stream propagates unchanged.
    """

    def __init__(self, stream: BinaryIO):
        self.stream = stream

    @classmethod
    def from_bytes(cls, data: bytes) -> ByteReader:
        return cls(io.BytesIO(data))

    def read_bytes(self, size: int) -> bytes:
        """Read exactly `size` bytes."""
        data = self.stream.read(size)
        if len(data) != size:
            raise ReadError(
                f"unexpected end of stream at offset {self.position() - len(data)}: "
                f"wanted {size} bytes, got {len(data)}"
            )
        return data

    def _unpack(self, fmt: struct.Struct):
        return fmt.unpack(self.read_bytes(fmt.size))[0]

    def read_bool(self) -> bool:
        return self._unpack(_UINT8) != 0

    def read_int8(self) -> int:
        return self._unpack(_INT8)

    def read_uint8(self) -> int:
        return self._unpack(_UINT8)

    def read_int16(self) -> int:
        return self._unpack(_INT16)

    def read_uint16(self) -> int:
        return self._unpack(_UINT16)

    def read_int32(self) -> int:
        return self._unpack(_INT32)

    def read_uint32(self) -> int:
        return self._unpack(_UINT32)

    def read_float(self) -> float:
        return self._unpack(_FLOAT)

    def read_double(self) -> float:
        return self._unpack(_DOUBLE)

    def read_string(self) -> str:
        """Decode a uint16 length-prefixed string."""
        length = self.read_uint16()
        return self.read_bytes(length).decode("utf-8", errors="replace")

    def position(self) -> int:
        return self.stream.tell()

    def goto(self, offset: int) -> None:
        """Move the cursor to an absolute offset."""
        if offset < 0:
            raise ReadError(f"cannot seek to negative offset {offset}")
        self.stream.seek(offset, io.SEEK_SET)

    def skip(self, count: int) -> None:
        """Move the cursor relative to its current position."""
        self.goto(self.position() + count)

    @contextmanager
    def preserve_position(self) -> Iterator[int]:
        """Restore the cursor to where it was when the block exits."""
        saved = self.position()
        try:
            yield saved
        finally:
            self.goto(saved)
