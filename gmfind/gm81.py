"""GameMaker 8.1 runner layouts and the header XOR pass.

8.1 runners xor the gamedata that follows the header with a keystream seeded
from two dwords stored right after the header magic. The first dword is
turned into a ``_MJD<n>#RWK`` key string whose CRC-32 seeds the second half
of the keystream.
"""

from __future__ import annotations

import logging
import os
import struct
import zlib
from enum import Enum
from typing import Optional

from .image import ByteImage
from .locator import find_header
from .logging_config import DiagnosticSink, emit

LOG = logging.getLogger(__name__)

STANDARD_HEADER_OFFSET = 3800004
# ``call`` then ``mov dword [ebp-0x10], imm32`` in the runner's loader; the
# immediate that follows is the header magic.
LOADER_SIGNATURE_OFFSET = 0x00226CF3
LOADER_SIGNATURE = bytes.fromhex("E880F2DDFFC745F0")
STRICT_PROLOGUE_SIZE = 20
LAZY_PROLOGUE_SIZE = 16
_SEEDS_SIZE = 8

_DWORD = struct.Struct("<I")


class XorMethod(str, Enum):
    """Keystream placement variants."""

    NORMAL = "normal"
    # Runners rebuilt by the sudalv tool start the encrypted region earlier.
    SUDALV = "sudalv"


_ENCRYPTION_SKIP = {
    XorMethod.NORMAL: 16,
    XorMethod.SUDALV: 4,
}


def _key_crc(hash_key: int) -> int:
    text = f"_MJD{hash_key}#RWK"
    # The runner's CRC omits the final inversion zlib applies.
    return zlib.crc32(text.encode("utf-16-le")) ^ 0xFFFFFFFF


def decrypt(image: ByteImage, logger: Optional[DiagnosticSink] = None, method: XorMethod = XorMethod.NORMAL) -> None:
    """Remove the header XOR layer, reading its seeds from the cursor."""

    hash_key = image.read_u32_le()
    seed1 = image.read_u32_le()
    seed2 = _key_crc(hash_key)
    start = image.position + _ENCRYPTION_SKIP[XorMethod(method)]
    emit(
        logger,
        LOG,
        "Decrypting GM8.1 data (%s) from 0x%X with hash key %d, seeds 0x%X / 0x%X",
        XorMethod(method).value,
        start,
        hash_key,
        seed1,
        seed2,
    )

    data = image.data
    for offset in range(start, len(data) - 3, 4):
        seed1 = (seed1 & 0xFFFF) * 0x9069 + (seed1 >> 16)
        seed2 = (seed2 & 0xFFFF) * 0x4650 + (seed2 >> 16)
        mask = ((seed1 << 16) + (seed2 & 0xFFFF)) & 0xFFFFFFFF
        (value,) = _DWORD.unpack_from(data, offset)
        _DWORD.pack_into(data, offset, value ^ mask)


def _has_room(image: ByteImage, found: int, prologue: int, logger: Optional[DiagnosticSink]) -> bool:
    # magic pattern, hash key and seed, then the skipped prologue
    if found + 8 + _SEEDS_SIZE + prologue <= len(image):
        return True
    emit(logger, LOG, "GM8.1 magic at 0x%X is too close to the end of the file", found)
    return False


def check(image: ByteImage, logger: Optional[DiagnosticSink] = None) -> bool:
    """Strict check for a plain 8.1 runner; decrypts the header on success.

    The magic is taken from the runner's own loader code, so the image only
    matches when that code sequence is present byte for byte.
    """

    emit(logger, LOG, "Checking for standard GM8.1 format")
    if len(image) < STANDARD_HEADER_OFFSET + 12:
        emit(logger, LOG, "File too short for this format (0x%X bytes)", len(image))
        return False

    image.set_position(LOADER_SIGNATURE_OFFSET)
    if image.read(len(LOADER_SIGNATURE)) != LOADER_SIGNATURE:
        emit(logger, LOG, "GM8.1 loader sequence not found")
        return False
    magic = image.read_u32_le()
    emit(logger, LOG, "GM8.1 magic value from loader: 0x%08X", magic)

    found = find_header(image, STANDARD_HEADER_OFFSET, magic=magic)
    if found is None:
        emit(logger, LOG, "Magic value 0x%08X not present after 0x%X", magic, STANDARD_HEADER_OFFSET)
        return False
    if not _has_room(image, found, STRICT_PROLOGUE_SIZE, logger):
        return False

    emit(logger, LOG, "Found GM8.1 header magic at 0x%X", found)
    decrypt(image, logger, XorMethod.NORMAL)
    image.seek(STRICT_PROLOGUE_SIZE, os.SEEK_CUR)
    return True


def check_lazy(image: ByteImage, logger: Optional[DiagnosticSink] = None) -> bool:
    """Heuristic 8.1 check: scan for the lane-masked magic instead of trusting the loader."""

    emit(logger, LOG, "Checking for lazy GM8.1 format")
    if len(image) < STANDARD_HEADER_OFFSET + 9:
        emit(logger, LOG, "File too short for this format (0x%X bytes)", len(image))
        return False

    found = find_header(image, STANDARD_HEADER_OFFSET)
    if found is None:
        emit(logger, LOG, "No GM8.1 magic value found")
        return False
    if not _has_room(image, found, LAZY_PROLOGUE_SIZE, logger):
        return False

    emit(logger, LOG, "Found lane-masked GM8.1 magic at 0x%X", found)
    decrypt(image, logger, XorMethod.SUDALV)
    image.seek(LAZY_PROLOGUE_SIZE, os.SEEK_CUR)
    return True


__all__ = [
    "STANDARD_HEADER_OFFSET",
    "LOADER_SIGNATURE_OFFSET",
    "LOADER_SIGNATURE",
    "XorMethod",
    "decrypt",
    "check",
    "check_lazy",
]
