"""Seekable, bounds-checked byte buffer shared by every detection stage."""

from __future__ import annotations

import os
import struct
from pathlib import Path
from typing import Union

from .exceptions import ReadError

BytesLike = Union[bytes, bytearray, memoryview]

_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")


class ByteImage:
    """A mutable executable image with a cursor.

    Wrapping a ``bytearray`` adopts it rather than copying it, so decryption
    performed through the image is visible to whoever handed the buffer in.
    Any other bytes-like object is copied into a fresh ``bytearray``.
    """

    __slots__ = ("_data", "_position")

    def __init__(self, data: BytesLike = b"", position: int = 0) -> None:
        if isinstance(data, bytearray):
            self._data = data
        else:
            self._data = bytearray(data)
        self._position = 0
        self.set_position(position)

    @classmethod
    def from_path(cls, path: Path | str) -> "ByteImage":
        return cls(bytearray(Path(path).read_bytes()))

    @property
    def data(self) -> bytearray:
        """The underlying buffer; writes go straight into the image."""

        return self._data

    @property
    def position(self) -> int:
        return self._position

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"ByteImage(size={len(self._data)}, position=0x{self._position:X})"

    def tell(self) -> int:
        return self._position

    def set_position(self, position: int) -> None:
        if position < 0 or position > len(self._data):
            raise ReadError(
                f"seek to 0x{position:X} outside image of {len(self._data)} bytes"
            )
        self._position = position

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        """Move the cursor like :meth:`io.IOBase.seek` but refuse to leave the image."""

        if whence == os.SEEK_SET:
            target = offset
        elif whence == os.SEEK_CUR:
            target = self._position + offset
        elif whence == os.SEEK_END:
            target = len(self._data) + offset
        else:
            raise ValueError(f"invalid whence: {whence!r}")
        self.set_position(target)
        return self._position

    def _take(self, size: int) -> int:
        start = self._position
        end = start + size
        if size < 0 or end > len(self._data):
            raise ReadError(
                f"read of {size} bytes at 0x{start:X} past end of image ({len(self._data)} bytes)"
            )
        self._position = end
        return start

    def read(self, size: int) -> bytes:
        """Return exactly ``size`` bytes from the cursor."""

        start = self._take(size)
        return bytes(self._data[start : start + size])

    def read_u8(self) -> int:
        start = self._take(1)
        return self._data[start]

    def read_u16_le(self) -> int:
        start = self._take(2)
        return _U16.unpack_from(self._data, start)[0]

    def read_u32_le(self) -> int:
        start = self._take(4)
        return _U32.unpack_from(self._data, start)[0]

    def peek_u32_le(self, offset: int) -> int:
        """Read a dword at ``offset`` without moving the cursor."""

        if offset < 0 or offset + 4 > len(self._data):
            raise ReadError(f"dword at 0x{offset:X} outside image of {len(self._data)} bytes")
        return _U32.unpack_from(self._data, offset)[0]

    def write_u32_le(self, offset: int, value: int) -> None:
        """Store ``value`` at ``offset`` without moving the cursor."""

        if offset < 0 or offset + 4 > len(self._data):
            raise ReadError(f"dword at 0x{offset:X} outside image of {len(self._data)} bytes")
        _U32.pack_into(self._data, offset, value & 0xFFFFFFFF)


__all__ = ["ByteImage", "BytesLike"]
