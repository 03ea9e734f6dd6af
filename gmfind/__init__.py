"""Identify GameMaker 8.x runners and remove antidec protection from their gamedata."""

from .exceptions import ReadError, ReaderError, UnknownFormat, UnpackError
from .gamedata import GameDataFinder, find, locate
from .image import ByteImage
from .models import CompressionHint, FindResult, GameVersion, ProtectionSettings

__version__ = "0.1.0"

__all__ = [
    "ByteImage",
    "CompressionHint",
    "FindResult",
    "GameDataFinder",
    "GameVersion",
    "ProtectionSettings",
    "ReadError",
    "ReaderError",
    "UnknownFormat",
    "UnpackError",
    "find",
    "locate",
]
