# errors.py
from __future__ import annotations

from typing import Optional


class PclError(Exception):
    """Base class for all errors raised while reading a PCL data stream."""


class PositioningError(PclError):
    """A seek targeted an offset the backing resource cannot reach."""

    def __init__(self, offset: int, reason: str) -> None:
        super().__init__(f"Cannot position to offset {offset}: {reason}")
        self.offset = offset
        self.reason = reason


class ResourceError(PclError):
    """Acquiring, reading or releasing the backing resource failed."""


class GrammarError(PclError):
    """
    The byte stream violates the PCL/PJL escape sequence grammar.

    Attributes:
        offset: Position of the offending byte (or of the end of data).
        command_offset: Start of the command that was being decoded, if any.
    """

    def __init__(self, message: str, offset: int, command_offset: Optional[int] = None) -> None:
        super().__init__(f"{message} at offset {offset}")
        self.offset = offset
        self.command_offset = command_offset


__all__ = [
    "PclError",
    "PositioningError",
    "ResourceError",
    "GrammarError",
]
