"""Shared data types for gamedata detection."""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import Optional, Tuple, Union

from .image import ByteImage

U32_MASK = 0xFFFFFFFF


def _check_u32(owner: str, name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{owner}.{name} must be an int, got {type(value).__name__}")
    if not 0 <= value <= U32_MASK:
        raise ValueError(f"{owner}.{name} must fit in 32 bits, got {value:#x}")


class GameVersion(str, Enum):
    """Release families the finder can identify."""

    GAMEMAKER_8_0 = "gm80"
    GAMEMAKER_8_1 = "gm81"

    @property
    def label(self) -> str:
        return "GameMaker 8.0" if self is GameVersion.GAMEMAKER_8_0 else "GameMaker 8.1"


@dataclass(frozen=True)
class CompressionHint:
    """Where a UPX payload lives and how large it may unpack."""

    max_size: int
    disk_offset: int

    def __post_init__(self) -> None:
        for item in fields(self):
            _check_u32("CompressionHint", item.name, getattr(self, item.name))

    @classmethod
    def coerce(cls, value: Union["CompressionHint", Tuple[int, int], None]) -> Optional["CompressionHint"]:
        if value is None or isinstance(value, CompressionHint):
            return value
        max_size, disk_offset = value
        return cls(max_size, disk_offset)


@dataclass(frozen=True)
class ProtectionSettings:
    """Values recovered from an antidec loader, consumed by one decrypt call."""

    load_offset: int
    header_start: int
    xor_mask: int
    add_mask: int
    sub_mask: int

    def __post_init__(self) -> None:
        for item in fields(self):
            _check_u32("ProtectionSettings", item.name, getattr(self, item.name))

    def describe(self) -> str:
        return (
            f"exe_load_offset:0x{self.load_offset:X} header_start:0x{self.header_start:X} "
            f"xor_mask:0x{self.xor_mask:X} add_mask:0x{self.add_mask:X} sub_mask:0x{self.sub_mask:X}"
        )

    def to_json(self) -> dict:
        return {item.name: getattr(self, item.name) for item in fields(self)}


@dataclass
class FindResult:
    """Outcome of a successful dispatch.

    ``image`` is the buffer detection ran against: the caller's own image, or
    the freshly unpacked one when a compression hint was supplied. Its cursor
    sits just past the gamedata header.
    """

    version: GameVersion
    image: ByteImage
    branch: str
    unpacked: bool = False

    @property
    def header_offset(self) -> int:
        return self.image.position

    def to_json(self) -> dict:
        return {
            "version": self.version.value,
            "label": self.version.label,
            "branch": self.branch,
            "header_offset": self.header_offset,
            "unpacked": self.unpacked,
            "size": len(self.image),
        }


__all__ = [
    "U32_MASK",
    "GameVersion",
    "CompressionHint",
    "ProtectionSettings",
    "FindResult",
]
