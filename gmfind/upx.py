"""UPX unpacking for compressed runners.

UPX stores the runner's sections as a single NRV2B stream at the start of the
``UPX1`` section. Control bits come from little-endian dwords consumed most
significant bit first, interleaved in the same stream as the literal and
offset bytes they describe.
"""

from __future__ import annotations

import logging
from typing import Optional

from .exceptions import UnpackError
from .image import ByteImage
from .logging_config import DiagnosticSink, emit

LOG = logging.getLogger(__name__)

_END_OF_STREAM = 0xFFFFFFFF
# Matches further back than this are one byte longer than encoded.
_LONG_OFFSET = 0xD00


class _BitReader:
    def __init__(self, image: ByteImage) -> None:
        self.image = image
        self.bits = 0
        self.count = 0

    def bit(self) -> int:
        if self.count == 0:
            self.bits = self.image.read_u32_le()
            self.count = 32
        self.count -= 1
        return (self.bits >> self.count) & 1

    def byte(self) -> int:
        return self.image.read_u8()


def _decompress(reader: _BitReader, max_size: int) -> bytearray:
    out = bytearray()
    last_offset = 1
    while True:
        while reader.bit():
            if len(out) >= max_size:
                raise UnpackError(f"UPX output exceeds the declared {max_size} bytes")
            out.append(reader.byte())

        offset = 1
        while True:
            offset = offset * 2 + reader.bit()
            if reader.bit():
                break
            if offset > _END_OF_STREAM:
                raise UnpackError("corrupt UPX stream: match offset overflow")
        if offset == 2:
            offset = last_offset
        else:
            offset = ((offset - 3) * 256 + reader.byte()) & 0xFFFFFFFF
            if offset == _END_OF_STREAM:
                return out
            offset += 1
            last_offset = offset

        length = reader.bit() * 2 + reader.bit()
        if length == 0:
            length = 1
            while True:
                length = length * 2 + reader.bit()
                if reader.bit():
                    break
            length += 2
        if offset > _LONG_OFFSET:
            length += 1
        length += 1

        if offset > len(out):
            raise UnpackError(
                f"corrupt UPX stream: match 0x{offset:X} bytes back at output 0x{len(out):X}"
            )
        if len(out) + length > max_size:
            raise UnpackError(f"UPX output exceeds the declared {max_size} bytes")
        start = len(out) - offset
        for index in range(length):
            out.append(out[start + index])


def unpack(
    image: ByteImage,
    max_size: int,
    disk_offset: int,
    logger: Optional[DiagnosticSink] = None,
) -> ByteImage:
    """Decompress the UPX payload at ``disk_offset`` into a new image.

    The source image is only read; its cursor is restored afterwards.
    """

    emit(logger, LOG, "Unpacking UPX payload at 0x%X (max output %d bytes)", disk_offset, max_size)
    saved = image.position
    try:
        image.set_position(disk_offset)
        out = _decompress(_BitReader(image), max_size)
    finally:
        image.set_position(saved)
    return ByteImage(out)


__all__ = ["unpack"]
