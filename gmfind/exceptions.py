"""Custom exception hierarchy for gamedata detection."""

from __future__ import annotations


class ReaderError(Exception):
    """Base class for all executable reading related errors."""


class UnknownFormat(ReaderError):
    """Raised when no supported format or protector matched the image."""

    def __init__(self, message: str = "unknown or unsupported executable format") -> None:
        super().__init__(message)


class ReadError(ReaderError):
    """Raised when a read or seek would leave the bounds of the image."""


class UnpackError(ReaderError):
    """Raised when a UPX payload cannot be decompressed."""


__all__ = ["ReaderError", "UnknownFormat", "ReadError", "UnpackError"]
