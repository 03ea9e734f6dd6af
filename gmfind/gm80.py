"""Standard (unprotected) GameMaker 8.0 runner layout."""

from __future__ import annotations

import logging
from typing import Optional

from .image import ByteImage
from .logging_config import DiagnosticSink, emit

LOG = logging.getLogger(__name__)

HEADER_OFFSET = 2000000
HEADER_MAGIC = 1234321
HEADER_VERSION = 800
# magic, version, reserved
HEADER_PROLOGUE_SIZE = 12


def check(image: ByteImage, logger: Optional[DiagnosticSink] = None) -> bool:
    """Return ``True`` and skip the header prologue if this is a plain 8.0 runner."""

    emit(logger, LOG, "Checking for standard GM8.0 format")
    if len(image) < HEADER_OFFSET + HEADER_PROLOGUE_SIZE:
        emit(logger, LOG, "File too short for this format (0x%X bytes)", len(image))
        return False

    image.set_position(HEADER_OFFSET)
    magic = image.read_u32_le()
    if magic != HEADER_MAGIC:
        emit(logger, LOG, "Invalid magic number: %d (expected %d)", magic, HEADER_MAGIC)
        return False
    version = image.read_u32_le()
    if version != HEADER_VERSION:
        emit(logger, LOG, "Invalid header version: %d (expected %d)", version, HEADER_VERSION)
        return False

    image.set_position(HEADER_OFFSET + HEADER_PROLOGUE_SIZE)
    emit(logger, LOG, "Found GM8.0 header at 0x%X", HEADER_OFFSET)
    return True


__all__ = ["HEADER_OFFSET", "HEADER_MAGIC", "HEADER_VERSION", "check"]
