# dumper.py
from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable, TextIO

from .commands import (
    ControlCharacterCommand,
    ParameterizedPclCommand,
    PjlCommand,
    PrinterCommand,
    PrinterCommandVisitor,
    TextCommand,
    TwoBytePclCommand,
)
from .pcl_commands import label_for, label_key

log = logging.getLogger(__name__)


class CommandDumper(PrinterCommandVisitor):
    """
    Write one line per command: offset, on-wire form and a label for well-known
    commands. Binary data blocks are summarized by their length.
    """

    def __init__(self, out: TextIO, *, show_offsets: bool = True, show_labels: bool = True) -> None:
        """
        Args:
            out: Text stream receiving the dump.
            show_offsets: Prefix each line with the command offset.
            show_labels: Append a description of well-known commands.
        """
        self.out = out
        self.show_offsets = show_offsets
        self.show_labels = show_labels
        self.counts: Counter = Counter()

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def dump(self, commands: Iterable[PrinterCommand]) -> int:
        """
        Dispatch every command to this dumper.

        Returns:
            Number of commands written. Lines already written stay in ``out`` when
            the iterable raises.
        """
        written = 0
        for command in commands:
            command.accept(self)
            written += 1
        log.debug("Dumped %d commands", written)
        return written

    def _emit(self, command: PrinterCommand, body: str, label: str = "") -> None:
        self.counts[type(command).__name__] += 1
        line = body
        if label and self.show_labels:
            line = f"{body:<28} {label}"
        if self.show_offsets:
            line = f"{command.offset:10d}  {line}"
        self.out.write(line.rstrip() + "\n")

    def handle_text(self, command: TextCommand) -> None:
        self._emit(command, f'"{command.literal()}"')

    def handle_control_character(self, command: ControlCharacterCommand) -> None:
        self._emit(command, command.literal())

    def handle_two_byte_pcl(self, command: TwoBytePclCommand) -> None:
        self._emit(command, command.literal(), label_for(command.letter))

    def handle_parameterized_pcl(self, command: ParameterizedPclCommand) -> None:
        body = command.literal()
        if command.data:
            body += f" [{len(command.data)} bytes]"
        key = label_key(command.group, command.parameter, command.terminator)
        self._emit(command, body, label_for(key))

    def handle_pjl(self, command: PjlCommand) -> None:
        self._emit(command, command.literal().rstrip("\r\n"), "PJL")
