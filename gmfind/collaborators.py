"""Interfaces for the stages the dispatcher composes, plus the default wiring."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from . import antidec, gm80, gm81, upx
from .gm81 import XorMethod
from .image import ByteImage
from .logging_config import DiagnosticSink
from .models import ProtectionSettings


class Unpacker(Protocol):
    def __call__(
        self,
        image: ByteImage,
        max_size: int,
        disk_offset: int,
        logger: Optional[DiagnosticSink] = None,
    ) -> ByteImage:
        ...


class ProtectionProbe(Protocol):
    """Non-mutating check returning cipher settings when a protector is present."""

    def __call__(self, image: ByteImage) -> Optional[ProtectionSettings]:
        ...


class DecryptTransform(Protocol):
    """Decrypts in place; ``False`` means the settings were not self-consistent.

    On success the cursor must be left at ``load_offset + header_start``; the
    antidec branches seek relative to it.
    """

    def __call__(self, image: ByteImage, settings: ProtectionSettings) -> bool:
        ...


class SecondaryXorPass(Protocol):
    def __call__(
        self,
        image: ByteImage,
        logger: Optional[DiagnosticSink] = None,
        method: XorMethod = XorMethod.NORMAL,
    ) -> None:
        ...


class StandardDetector(Protocol):
    def __call__(self, image: ByteImage, logger: Optional[DiagnosticSink] = None) -> bool:
        ...


@dataclass(frozen=True)
class Collaborators:
    """Everything :class:`~gmfind.gamedata.GameDataFinder` delegates to."""

    unpack: Unpacker
    probe_antidec80: ProtectionProbe
    probe_antidec81: ProtectionProbe
    decrypt: DecryptTransform
    secondary_xor: SecondaryXorPass
    check_gm80: StandardDetector
    check_gm81: StandardDetector
    check_gm81_lazy: StandardDetector


def default_collaborators() -> Collaborators:
    return Collaborators(
        unpack=upx.unpack,
        probe_antidec80=antidec.check80,
        probe_antidec81=antidec.check81,
        decrypt=antidec.decrypt,
        secondary_xor=gm81.decrypt,
        check_gm80=gm80.check,
        check_gm81=gm81.check,
        check_gm81_lazy=gm81.check_lazy,
    )


__all__ = [
    "Unpacker",
    "ProtectionProbe",
    "DecryptTransform",
    "SecondaryXorPass",
    "StandardDetector",
    "Collaborators",
    "default_collaborators",
]
