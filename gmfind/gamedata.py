"""Identify the runner version and locate the start of the gamedata header.

Detection is a fixed-order chain. Protector probes run first; the first one
that recognises its loader commits the whole run to that branch, which
decrypts the image in place. Only when no protector is present are the plain
runner layouts tried. Nothing is retried and nothing is rolled back, so an
image that fails detection may already be partly decrypted and should be
discarded.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple, Union

from .collaborators import Collaborators, ProtectionProbe, StandardDetector, default_collaborators
from .exceptions import UnknownFormat
from .gm81 import XorMethod
from .image import ByteImage
from .locator import GM81_MAGIC, find_header
from .logging_config import DiagnosticSink, discard, emit
from .models import CompressionHint, FindResult, GameVersion, ProtectionSettings

LOG = logging.getLogger(__name__)

# antidec fills the 8.0 header prologue with junk, so it is skipped unchecked.
ANTIDEC80_HEADER_SKIP = 12
GM81_HEADER_SKIP = 20

ImageLike = Union[ByteImage, bytearray]
UpxData = Union[CompressionHint, Tuple[int, int], None]
BranchHandler = Callable[[ByteImage, ProtectionSettings, Optional[DiagnosticSink]], GameVersion]


@dataclass(frozen=True)
class ProtectionBranch:
    name: str
    label: str
    probe: ProtectionProbe
    handler: BranchHandler


@dataclass(frozen=True)
class StandardBranch:
    name: str
    detect: StandardDetector
    version: GameVersion


class GameDataFinder:
    """Runs the detection chains over one image at a time."""

    def __init__(self, collaborators: Collaborators | None = None) -> None:
        self.collaborators = collaborators or default_collaborators()
        c = self.collaborators
        self.protection_chain: Sequence[ProtectionBranch] = (
            ProtectionBranch("antidec80", "antidec2", c.probe_antidec80, self._handle_antidec80),
            ProtectionBranch("antidec81", "antidec81", c.probe_antidec81, self._handle_antidec81),
        )
        self.standard_chain: Sequence[StandardBranch] = (
            StandardBranch("gm80", c.check_gm80, GameVersion.GAMEMAKER_8_0),
            StandardBranch("gm81", c.check_gm81, GameVersion.GAMEMAKER_8_1),
            StandardBranch("gm81-lazy", c.check_gm81_lazy, GameVersion.GAMEMAKER_8_1),
        )

    def locate(
        self,
        exe: ImageLike,
        logger: Optional[DiagnosticSink] = None,
        upx_data: UpxData = None,
    ) -> FindResult:
        """Identify ``exe`` and leave the working image's cursor past the header.

        With ``upx_data`` the image is unpacked first and every check runs on
        the unpacked copy; the returned result carries that copy.
        """

        if logger is None:
            logger = discard
        image = exe if isinstance(exe, ByteImage) else ByteImage(exe)
        hint = CompressionHint.coerce(upx_data)
        unpacked = False
        if hint is not None:
            image = self.collaborators.unpack(image, hint.max_size, hint.disk_offset, logger)
            emit(logger, LOG, "Successfully unpacked UPX - output is %d bytes", len(image))
            unpacked = True

        branch, version = self._identify(image, logger, unpacked)
        LOG.info("identified %s via %s", version.label, branch)
        return FindResult(version=version, image=image, branch=branch, unpacked=unpacked)

    def find(
        self,
        exe: ImageLike,
        logger: Optional[DiagnosticSink] = None,
        upx_data: UpxData = None,
    ) -> GameVersion:
        return self.locate(exe, logger, upx_data).version

    def _identify(
        self, image: ByteImage, logger: Optional[DiagnosticSink], unpacked: bool
    ) -> Tuple[str, GameVersion]:
        for branch in self.protection_chain:
            settings = branch.probe(image)
            if settings is None:
                continue
            emit(
                logger,
                LOG,
                "Found %s loading sequence%s, decrypting with the following values:",
                branch.label,
                "" if unpacked else " [no UPX]",
            )
            emit(logger, LOG, "%s", settings.describe())
            return branch.name, branch.handler(image, settings, logger)

        for standard in self.standard_chain:
            if standard.detect(image, logger):
                return standard.name, standard.version

        raise UnknownFormat()

    def _decrypt_or_fail(
        self, image: ByteImage, settings: ProtectionSettings, logger: Optional[DiagnosticSink]
    ) -> None:
        if not self.collaborators.decrypt(image, settings):
            emit(logger, LOG, "antidec couldn't be decrypted with the values read, so giving up")
            raise UnknownFormat("protector detected but its settings did not decrypt the image")

    def _handle_antidec80(
        self, image: ByteImage, settings: ProtectionSettings, logger: Optional[DiagnosticSink]
    ) -> GameVersion:
        self._decrypt_or_fail(image, settings, logger)
        # relative to the header start where decrypt leaves the cursor
        image.seek(ANTIDEC80_HEADER_SKIP, os.SEEK_CUR)
        return GameVersion.GAMEMAKER_8_0

    def _handle_antidec81(
        self, image: ByteImage, settings: ProtectionSettings, logger: Optional[DiagnosticSink]
    ) -> GameVersion:
        self._decrypt_or_fail(image, settings, logger)
        found = find_header(image, settings.header_start + settings.load_offset)
        if found is None:
            emit(logger, LOG, "Didn't find GM81 magic value (0x%08X) before EOF, so giving up", GM81_MAGIC)
            raise UnknownFormat("GM8.1 header magic not found after antidec decryption")
        emit(logger, LOG, "Found GM81 header at 0x%X", found)
        self.collaborators.secondary_xor(image, logger, XorMethod.NORMAL)
        image.seek(GM81_HEADER_SKIP, os.SEEK_CUR)
        return GameVersion.GAMEMAKER_8_1


def locate(
    exe: ImageLike,
    logger: Optional[DiagnosticSink] = None,
    upx_data: UpxData = None,
    *,
    collaborators: Collaborators | None = None,
) -> FindResult:
    return GameDataFinder(collaborators).locate(exe, logger, upx_data)


def find(
    exe: ImageLike,
    logger: Optional[DiagnosticSink] = None,
    upx_data: UpxData = None,
    *,
    collaborators: Collaborators | None = None,
) -> GameVersion:
    """Return the runner version of ``exe``, decrypting it in place as needed."""

    return GameDataFinder(collaborators).find(exe, logger, upx_data)


__all__ = [
    "ProtectionBranch",
    "StandardBranch",
    "GameDataFinder",
    "locate",
    "find",
]
