"""
Printer command model.

The parser turns a data stream into a sequence of these five immutable variants. Every
command records the offset of its first byte; equality and hashing cover the offset
and every field, so identical commands at different offsets are distinct.

Consumers implement PrinterCommandVisitor and call ``command.accept(visitor)`` to get
the one handler matching the command's variant.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from .pcl_commands import (
    control_mnemonic,
    is_control,
    is_final_terminator,
    is_group,
    is_parameter_letter,
    is_two_byte_letter,
)

MAX_OFFSET = 2**64 - 1

_VALUE_RE = re.compile(r"[+-]?[0-9]*(\.[0-9]*)?\Z")


def _latin1(data: bytes) -> str:
    return data.decode("iso-8859-1")


def _require_char(name: str, value: Any, predicate) -> None:
    if not isinstance(value, str) or len(value) != 1 or not predicate(ord(value)):
        raise ValueError(f"Invalid {name} {value!r}")


def _own_bytes(command: "PrinterCommand", name: str) -> None:
    value = getattr(command, name)
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise ValueError(f"{name} must be bytes-like, got {type(value).__name__}")
    object.__setattr__(command, name, bytes(value))


@dataclass(frozen=True)
class PrinterCommand(ABC):
    """Base of all commands: ``offset`` is the position of the first byte."""

    offset: int

    def __post_init__(self) -> None:
        if (
            not isinstance(self.offset, int)
            or isinstance(self.offset, bool)
            or not 0 <= self.offset <= MAX_OFFSET
        ):
            raise ValueError(f"Invalid command offset {self.offset!r}")

    @abstractmethod
    def accept(self, visitor: "PrinterCommandVisitor") -> Any:
        """Dispatch to the visitor method for this variant and return its result."""

    @abstractmethod
    def literal(self) -> str:
        """Render the on-wire form of the command, escape shown as ``<esc>``."""

    def __str__(self) -> str:
        return f"{self.literal()}@{self.offset}"


@dataclass(frozen=True)
class TextCommand(PrinterCommand):
    """
    Printable text outside escape sequences.

    The text stays raw bytes: its encoding depends on the text parsing method selected
    earlier in the stream, which the parser does not track.
    """

    text: bytes

    def __post_init__(self) -> None:
        super().__post_init__()
        _own_bytes(self, "text")

    def accept(self, visitor: "PrinterCommandVisitor") -> Any:
        return visitor.handle_text(self)

    def literal(self) -> str:
        return _latin1(self.text)


@dataclass(frozen=True)
class ControlCharacterCommand(PrinterCommand):
    """A bare control character (CR, LF, FF, ...) outside escape sequences."""

    code: int

    def __post_init__(self) -> None:
        super().__post_init__()
        if not isinstance(self.code, int) or not 0 <= self.code <= 0xFF or not is_control(self.code):
            raise ValueError(f"Invalid control character code {self.code!r}")

    def accept(self, visitor: "PrinterCommandVisitor") -> Any:
        return visitor.handle_control_character(self)

    def literal(self) -> str:
        return f"<{control_mnemonic(self.code)}>"


@dataclass(frozen=True)
class TwoBytePclCommand(PrinterCommand):
    """ESC followed by a single letter, e.g. ``ESC E`` (reset)."""

    letter: str

    def __post_init__(self) -> None:
        super().__post_init__()
        _require_char("two-byte command letter", self.letter, is_two_byte_letter)

    def accept(self, visitor: "PrinterCommandVisitor") -> Any:
        return visitor.handle_two_byte_pcl(self)

    def literal(self) -> str:
        return f"<esc>{self.letter}"


@dataclass(frozen=True)
class ParameterizedPclCommand(PrinterCommand):
    """
    ESC + group + parameter letter + value + terminator, e.g. ``ESC & l 0 S``.

    ``parameter`` is empty for commands without one (``ESC ( 8 U``). Commands split out
    of a combined sequence carry their uppercase terminator. ``data`` holds the binary
    block that follows data-bearing commands such as ``ESC * b # W``.
    """

    group: str
    parameter: str
    value: str
    terminator: str
    data: bytes = b""

    def __post_init__(self) -> None:
        super().__post_init__()
        _require_char("group", self.group, is_group)
        if self.parameter != "":
            _require_char("parameter letter", self.parameter, is_parameter_letter)
        if not isinstance(self.value, str) or not _VALUE_RE.match(self.value):
            raise ValueError(f"Invalid parameter value {self.value!r}")
        _require_char("terminator", self.terminator, is_final_terminator)
        _own_bytes(self, "data")

    def accept(self, visitor: "PrinterCommandVisitor") -> Any:
        return visitor.handle_parameterized_pcl(self)

    def literal(self) -> str:
        return f"<esc>{self.group}{self.parameter}{self.value}{self.terminator}"


@dataclass(frozen=True)
class PjlCommand(PrinterCommand):
    """One PJL line including its line terminator."""

    text: bytes

    def __post_init__(self) -> None:
        super().__post_init__()
        _own_bytes(self, "text")

    def accept(self, visitor: "PrinterCommandVisitor") -> Any:
        return visitor.handle_pjl(self)

    def literal(self) -> str:
        return _latin1(self.text).replace("\x1b", "<esc>")


class PrinterCommandVisitor(ABC):
    """Handler for every concrete PrinterCommand variant."""

    @abstractmethod
    def handle_text(self, command: TextCommand) -> Any:
        """Handle a TextCommand."""

    @abstractmethod
    def handle_control_character(self, command: ControlCharacterCommand) -> Any:
        """Handle a ControlCharacterCommand."""

    @abstractmethod
    def handle_two_byte_pcl(self, command: TwoBytePclCommand) -> Any:
        """Handle a TwoBytePclCommand."""

    @abstractmethod
    def handle_parameterized_pcl(self, command: ParameterizedPclCommand) -> Any:
        """Handle a ParameterizedPclCommand."""

    @abstractmethod
    def handle_pjl(self, command: PjlCommand) -> Any:
        """Handle a PjlCommand."""


__all__ = [
    "MAX_OFFSET",
    "PrinterCommand",
    "TextCommand",
    "ControlCharacterCommand",
    "TwoBytePclCommand",
    "ParameterizedPclCommand",
    "PjlCommand",
    "PrinterCommandVisitor",
]
