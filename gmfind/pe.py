"""Minimal PE section-table inspection used to spot UPX-compressed runners."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List, Optional

from .exceptions import ReadError
from .image import ByteImage
from .models import CompressionHint

LOG = logging.getLogger(__name__)

MZ_MAGIC = b"MZ"
PE_MAGIC = b"PE\x00\x00"
# e_lfanew
_PE_POINTER_OFFSET = 0x3C
# PE signature plus IMAGE_FILE_HEADER
_FILE_HEADER_SIZE = 4 + 20
_SECTION_HEADER_SIZE = 40


@dataclass(frozen=True)
class SectionHeader:
    name: str
    virtual_size: int
    virtual_address: int
    raw_size: int
    raw_offset: int


def read_sections(image: ByteImage) -> Optional[List[SectionHeader]]:
    """Return the section table, or ``None`` if the image is not a PE file.

    The cursor is restored before returning.
    """

    saved = image.position
    try:
        if len(image) < _PE_POINTER_OFFSET + 4 or bytes(image.data[:2]) != MZ_MAGIC:
            return None
        pe_offset = image.peek_u32_le(_PE_POINTER_OFFSET)
        if bytes(image.data[pe_offset : pe_offset + 4]) != PE_MAGIC:
            return None

        image.set_position(pe_offset + 6)
        section_count = image.read_u16_le()
        image.set_position(pe_offset + 20)
        optional_header_size = image.read_u16_le()

        image.set_position(pe_offset + _FILE_HEADER_SIZE + optional_header_size)
        sections: List[SectionHeader] = []
        for _ in range(section_count):
            raw_name = image.read(8)
            virtual_size = image.read_u32_le()
            virtual_address = image.read_u32_le()
            raw_size = image.read_u32_le()
            raw_offset = image.read_u32_le()
            image.seek(_SECTION_HEADER_SIZE - 24, os.SEEK_CUR)
            sections.append(
                SectionHeader(
                    name=raw_name.rstrip(b"\x00").decode("latin-1"),
                    virtual_size=virtual_size,
                    virtual_address=virtual_address,
                    raw_size=raw_size,
                    raw_offset=raw_offset,
                )
            )
        return sections
    except ReadError:
        LOG.debug("truncated PE headers", exc_info=True)
        return None
    finally:
        image.set_position(saved)


def find_upx_hint(image: ByteImage) -> Optional[CompressionHint]:
    """Derive the unpack hint from the ``UPX0``/``UPX1`` sections, if present."""

    sections = read_sections(image)
    if not sections:
        return None
    by_name = {section.name: section for section in sections}
    upx0 = by_name.get("UPX0")
    upx1 = by_name.get("UPX1")
    if upx0 is None or upx1 is None:
        return None
    max_size = (upx0.virtual_size + upx1.virtual_size) & 0xFFFFFFFF
    LOG.debug("UPX sections found: max size 0x%X, payload at 0x%X", max_size, upx1.raw_offset)
    return CompressionHint(max_size=max_size, disk_offset=upx1.raw_offset)


__all__ = ["SectionHeader", "read_sections", "find_upx_hint"]
