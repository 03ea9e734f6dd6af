"""Detection and removal of the antidec gamedata protector.

antidec splices a small loader in front of the runner's entry point. The
loader carries, xored with a single key byte, the parameters of a dword
cipher that it undoes at startup: where the protected gamedata was loaded
from, where the header sits inside it, and three rolling masks. Two loader
builds are known, one for GameMaker 8.0 runners and one for 8.1 runners; they
differ only in where these fields live.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .image import ByteImage
from .models import ProtectionSettings

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoaderLayout:
    """Fixed offsets of one antidec loader build."""

    name: str
    signature_offset: int
    signature: bytes
    load_offset_at: int
    header_start_at: int
    xor_mask_at: int
    add_mask_at: int
    sub_mask_at: int
    header_start_masked: bool = True

    @property
    def key_offset(self) -> int:
        # The key byte is the immediate just before the signature.
        return self.signature_offset - 1

    @property
    def min_size(self) -> int:
        return max(
            self.signature_offset + len(self.signature),
            self.load_offset_at + 4,
            self.header_start_at + 4,
            self.xor_mask_at + 4,
            self.add_mask_at + 4,
            self.sub_mask_at + 4,
        )


# antidec2, found on GameMaker 8.0 runners. The header offset lives in the
# data section and is stored in the clear.
ANTIDEC_80 = LoaderLayout(
    name="antidec80",
    signature_offset=0x00032337,
    signature=bytes((0xE2, 0xF7, 0xC7, 0x05, 0x2E, 0x2F, 0x43, 0x00)),
    load_offset_at=0x000322A9,
    header_start_at=0x00144AC0,
    xor_mask_at=0x000322D3,
    add_mask_at=0x000322D8,
    sub_mask_at=0x000322E4,
    header_start_masked=False,
)

# antidec for GameMaker 8.1 runners.
ANTIDEC_81 = LoaderLayout(
    name="antidec81",
    signature_offset=0x00045B6B,
    signature=bytes((0xE2, 0xF7, 0xC7, 0x05, 0x46, 0x45, 0x44, 0x00)),
    load_offset_at=0x00045ADD,
    header_start_at=0x00045AEC,
    xor_mask_at=0x00045B07,
    add_mask_at=0x00045B0C,
    sub_mask_at=0x00045B18,
)


def _check(image: ByteImage, layout: LoaderLayout) -> Optional[ProtectionSettings]:
    if len(image) < layout.min_size:
        return None
    start = layout.signature_offset
    if bytes(image.data[start : start + len(layout.signature)]) != layout.signature:
        return None

    key = image.data[layout.key_offset]
    dword_key = key * 0x01010101
    header_start = image.peek_u32_le(layout.header_start_at)
    if layout.header_start_masked:
        header_start ^= dword_key

    settings = ProtectionSettings(
        load_offset=image.peek_u32_le(layout.load_offset_at) ^ dword_key,
        header_start=header_start,
        xor_mask=image.peek_u32_le(layout.xor_mask_at) ^ dword_key,
        add_mask=image.peek_u32_le(layout.add_mask_at) ^ dword_key,
        sub_mask=image.peek_u32_le(layout.sub_mask_at) ^ dword_key,
    )
    LOG.debug("%s loader matched with key byte 0x%02X", layout.name, key)
    return settings


def check80(image: ByteImage, layout: LoaderLayout = ANTIDEC_80) -> Optional[ProtectionSettings]:
    """Return the cipher parameters if the 8.0 antidec loader is present."""

    return _check(image, layout)


def check81(image: ByteImage, layout: LoaderLayout = ANTIDEC_81) -> Optional[ProtectionSettings]:
    """Return the cipher parameters if the 8.1 antidec loader is present."""

    return _check(image, layout)


def _swap32(value: int) -> int:
    return int.from_bytes(value.to_bytes(4, "little"), "big")


def decrypt(image: ByteImage, settings: ProtectionSettings) -> bool:
    """Undo the antidec dword cipher in place.

    Returns ``False`` without touching the image when the settings point
    outside it. Otherwise the whole region from ``load_offset`` to the end is
    decrypted, last dword first, and the cursor is left on the header.
    """

    size = len(image)
    header = settings.load_offset + settings.header_start
    if settings.load_offset > size or header + 4 > size:
        LOG.debug("antidec settings point outside the image (header at 0x%X, size %d)", header, size)
        return False

    xor_mask = settings.xor_mask
    add_mask = settings.add_mask
    sub_mask = settings.sub_mask
    offset = size - 4
    while offset >= settings.load_offset:
        value = image.peek_u32_le(offset)
        image.write_u32_le(offset, (value ^ xor_mask) + add_mask)
        xor_mask = (xor_mask - sub_mask) & 0xFFFFFFFF
        add_mask = (_swap32(add_mask) + 1) & 0xFFFFFFFF
        offset -= 4

    image.set_position(header)
    return True


__all__ = ["LoaderLayout", "ANTIDEC_80", "ANTIDEC_81", "check80", "check81", "decrypt"]
