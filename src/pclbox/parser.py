"""
PCL/PJL tokenizer.

PclParser walks a ByteSource once, front to back, and yields one PrinterCommand per
recognized construct:

- text runs and bare control characters,
- two-byte escape sequences (ESC E),
- parameterized escape sequences (ESC & l 0 S), one record per command of a combined
  sequence (ESC & l 1 o 2 A yields ESC&l1O and ESC&l2A),
- PJL lines following a Universal Exit Language sequence (ESC % -12345 X).

Each command is fully read before it is yielded. A GrammarError ends the parse; the
commands yielded before it stay valid.
"""

from __future__ import annotations

import logging
from typing import Iterator, List, Optional, Tuple

from .commands import (
    ControlCharacterCommand,
    ParameterizedPclCommand,
    PjlCommand,
    PrinterCommand,
    TextCommand,
    TwoBytePclCommand,
)
from .errors import GrammarError
from .pcl_commands import (
    DATA_COMMANDS,
    ESC,
    LF,
    PJL_PREFIX,
    UEL_GROUP,
    UEL_TERMINATOR,
    UEL_VALUE,
    is_chain_terminator,
    is_control,
    is_final_terminator,
    is_group,
    is_parameter_letter,
    is_text,
    is_two_byte_letter,
)
from .source import ByteSource, open_source

log = logging.getLogger(__name__)

DATA_CHUNK_SIZE = 64 * 1024

_PLUS = 0x2B
_MINUS = 0x2D
_DOT = 0x2E


def _is_digit(b: int) -> bool:
    return 0x30 <= b <= 0x39


class PclParser:
    """
    Lazy command sequence over a ByteSource.

    The parser seeks the source to ``start_offset`` when iteration begins and then only
    reads forward. Lookahead is kept in an internal pushback stack, so sequential
    streams work as well as buffered and mapped sources. Only one traversal may be in
    progress at a time; the source must not be used by anyone else meanwhile.
    """

    def __init__(self, source: ByteSource, *, start_offset: int = 0) -> None:
        self._source = source
        self._start_offset = start_offset
        self._pending: List[int] = []
        self._in_progress = False

    def __iter__(self) -> Iterator[PrinterCommand]:
        return self.parse()

    def parse(self) -> Iterator[PrinterCommand]:
        """
        Yield the commands of the data stream in order.

        Raises:
            GrammarError: On a malformed escape sequence (after yielding the commands
                preceding it).
            ResourceError / PositioningError: From the underlying source.
            RuntimeError: If another traversal of this parser is in progress.
        """
        if self._in_progress:
            raise RuntimeError("PclParser is already being iterated")
        self._in_progress = True
        try:
            self._pending.clear()
            self._source.seek(self._start_offset)
            count = 0
            while True:
                offset = self._position()
                b = self._next()
                if b is None:
                    break
                if b == ESC:
                    for command in self._escape_sequence(offset):
                        count += 1
                        yield command
                elif is_control(b):
                    count += 1
                    yield ControlCharacterCommand(offset, b)
                else:
                    count += 1
                    yield self._text(offset, b)
            log.debug("Parsed %d commands up to offset %d", count, self._position())
        finally:
            self._in_progress = False

    # ---------------- Byte helpers ----------------
    def _position(self) -> int:
        return self._source.tell() - len(self._pending)

    def _next(self) -> Optional[int]:
        if self._pending:
            return self._pending.pop()
        return self._source.read()

    def _push_back(self, b: int) -> None:
        self._pending.append(b)

    def _require(self, command_offset: int) -> int:
        b = self._next()
        if b is None:
            raise GrammarError(
                "Unexpected end of data inside escape sequence", self._position(), command_offset
            )
        return b

    def _peek(self, count: int) -> bytes:
        seen = bytearray()
        while len(seen) < count:
            b = self._next()
            if b is None:
                break
            seen.append(b)
        for b in reversed(seen):
            self._push_back(b)
        return bytes(seen)

    # ---------------- Text ----------------
    def _text(self, offset: int, first: int) -> TextCommand:
        text = bytearray((first,))
        while True:
            b = self._next()
            if b is None:
                break
            if not is_text(b):
                self._push_back(b)
                break
            text.append(b)
        return TextCommand(offset, text)

    # ---------------- Escape sequences ----------------
    def _escape_sequence(self, offset: int) -> Iterator[PrinterCommand]:
        b = self._require(offset)
        if is_group(b):
            yield from self._parameterized(offset, chr(b))
        elif is_two_byte_letter(b):
            yield TwoBytePclCommand(offset, chr(b))
        else:
            raise GrammarError(f"Invalid byte 0x{b:02x} after escape", self._position() - 1, offset)

    def _parameterized(self, offset: int, group: str) -> Iterator[PrinterCommand]:
        b = self._require(offset)
        parameter = ""
        if is_parameter_letter(b):
            parameter = chr(b)
        else:
            # Commands such as ESC ( 8 U have no parameter letter.
            self._push_back(b)

        command_offset = offset
        while True:
            value, terminator = self._value_and_terminator(command_offset)
            chained = is_chain_terminator(terminator)
            final = chr(terminator - 0x20) if chained else chr(terminator)

            if (
                not chained
                and group == UEL_GROUP
                and parameter == ""
                and value == UEL_VALUE
                and final == UEL_TERMINATOR
            ):
                yield from self._pjl(command_offset)
                return

            data = b""
            if (group, parameter, final) in DATA_COMMANDS:
                data = self._data_block(value, command_offset)
            yield ParameterizedPclCommand(command_offset, group, parameter, value, final, data)
            if not chained:
                return
            # The parameter letter is not repeated on the wire, so the next command of a
            # combined sequence starts right after the lowercase terminator and shares
            # group and parameter letter.
            command_offset = self._position()

    def _value_and_terminator(self, command_offset: int) -> Tuple[str, int]:
        value = bytearray()
        b = self._require(command_offset)
        if b in (_PLUS, _MINUS):
            value.append(b)
            b = self._require(command_offset)
        while _is_digit(b):
            value.append(b)
            b = self._require(command_offset)
        if b == _DOT:
            value.append(b)
            b = self._require(command_offset)
            while _is_digit(b):
                value.append(b)
                b = self._require(command_offset)
        if is_final_terminator(b) or is_chain_terminator(b):
            return value.decode("ascii"), b
        raise GrammarError(
            f"Invalid byte 0x{b:02x} in parameter value", self._position() - 1, command_offset
        )

    def _data_block(self, value: str, command_offset: int) -> bytes:
        try:
            length = float(value) if value else 0.0
        except ValueError:
            length = -1.0
        if length < 0 or not length.is_integer():
            raise GrammarError(
                f"Invalid data block length {value!r}", self._position(), command_offset
            )
        count = int(length)
        data = bytearray()
        while self._pending and len(data) < count:
            data.append(self._pending.pop())

        chunk = bytearray(min(count, DATA_CHUNK_SIZE))
        while len(data) < count:
            view = memoryview(chunk)[: min(count - len(data), DATA_CHUNK_SIZE)]
            read = self._source.readinto(view)
            if read is None:
                raise GrammarError(
                    f"Data block ends after {len(data)} of {count} bytes",
                    self._position(),
                    command_offset,
                )
            data += view[:read]
        log.debug("Captured %d data bytes at offset %d", count, command_offset)
        return bytes(data)

    # ---------------- PJL ----------------
    def _pjl(self, offset: int) -> Iterator[PjlCommand]:
        log.debug("Universal Exit Language at offset %d; reading PJL", offset)
        uel = bytearray(b"\x1b" + (UEL_GROUP + UEL_VALUE + UEL_TERMINATOR).encode("ascii"))
        yield self._pjl_line(offset, uel)

        while True:
            offset = self._position()
            if self._peek(len(PJL_PREFIX)) != PJL_PREFIX:
                log.debug("Leaving PJL at offset %d", offset)
                return
            yield self._pjl_line(offset)

    def _pjl_line(self, offset: int, line: Optional[bytearray] = None) -> PjlCommand:
        # A PJL line ends at LF, at the next escape, or at end of data.
        line = bytearray() if line is None else line
        while True:
            b = self._next()
            if b is None:
                break
            if b == ESC:
                self._push_back(b)
                break
            line.append(b)
            if b == LF:
                break
        return PjlCommand(offset, line)


def iter_commands(resource, **source_options) -> Iterator[PrinterCommand]:
    """
    Open ``resource`` as a byte source and yield its commands.

    The source is closed when the iteration finishes, fails or is abandoned.

    Args:
        resource: Anything open_source() accepts.
        **source_options: Forwarded to open_source() (size limits).
    """
    with open_source(resource, **source_options) as source:
        yield from PclParser(source)


def parse_bytes(data: bytes) -> List[PrinterCommand]:
    """Parse an in-memory data stream into a list of commands."""
    return list(iter_commands(bytes(data)))


__all__ = ["PclParser", "iter_commands", "parse_bytes"]
