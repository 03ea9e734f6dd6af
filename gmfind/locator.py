"""Byte-granular search for a relocated GameMaker 8.1 header."""

from __future__ import annotations

import logging
from typing import Optional

from .image import ByteImage

LOG = logging.getLogger(__name__)

GM81_MAGIC = 0xF7140067
HIGH_LANES = 0xFF00FF00
LOW_LANES = 0x00FF00FF


def masked_combine(first: int, second: int) -> int:
    """Merge the odd byte lanes of ``first`` with the even lanes of ``second``."""

    return ((first & HIGH_LANES) + (second & LOW_LANES)) & 0xFFFFFFFF


def find_header(image: ByteImage, start: int, *, magic: int = GM81_MAGIC) -> Optional[int]:
    """Return the first offset at or after ``start`` whose two dwords combine to ``magic``.

    On a match the cursor is left just past the eight bytes that were tested.
    The scan gives up, without reading, once fewer than nine bytes remain
    past the next candidate offset. The probe at ``start`` itself is not
    guarded and raises :class:`~gmfind.exceptions.ReadError` if it runs off
    the end of the image.
    """

    offset = start
    length = len(image)
    while True:
        image.set_position(offset)
        value = masked_combine(image.read_u32_le(), image.read_u32_le())
        if value == magic:
            LOG.debug("header magic 0x%08X found at 0x%X (scan began at 0x%X)", magic, offset, start)
            return offset
        offset += 1
        if offset + 8 >= length:
            LOG.debug("no header magic between 0x%X and end of image", start)
            return None


__all__ = ["GM81_MAGIC", "masked_combine", "find_header"]
