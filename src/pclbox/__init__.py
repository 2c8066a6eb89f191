from .commands import (
    ControlCharacterCommand,
    ParameterizedPclCommand,
    PjlCommand,
    PrinterCommand,
    PrinterCommandVisitor,
    TextCommand,
    TwoBytePclCommand,
)
from .errors import GrammarError, PclError, PositioningError, ResourceError
from .parser import PclParser, iter_commands, parse_bytes
from .source import (
    BufferByteSource,
    ByteSource,
    MappedByteSource,
    StreamByteSource,
    open_source,
)

__all__ = [
    "PrinterCommand",
    "TextCommand",
    "ControlCharacterCommand",
    "TwoBytePclCommand",
    "ParameterizedPclCommand",
    "PjlCommand",
    "PrinterCommandVisitor",
    "PclError",
    "PositioningError",
    "ResourceError",
    "GrammarError",
    "PclParser",
    "iter_commands",
    "parse_bytes",
    "ByteSource",
    "BufferByteSource",
    "MappedByteSource",
    "StreamByteSource",
    "open_source",
]
