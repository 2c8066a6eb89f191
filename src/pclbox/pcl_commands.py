"""
Shared PCL byte classes and command tables.

This module is the single source of truth for the byte ranges of the escape sequence
grammar and for the commands that carry a binary data block. The parser consumes the
byte classes and DATA_COMMANDS; the dumper uses COMMAND_LABELS for annotations.

Notes:
- Group bytes are 0x21-0x2F, parameter letters 0x60-0x7E, final terminators
  0x40-0x5E; a terminator in 0x60-0x7E chains the next command of a combined sequence.
- ESC % -12345 X (Universal Exit Language) switches to PJL, which is line oriented.
"""

from __future__ import annotations

from typing import Dict, Tuple

ESC = 0x1B
DEL = 0x7F
LF = 0x0A

PJL_PREFIX = b"@PJL"
UEL_VALUE = "-12345"
UEL_GROUP = "%"
UEL_TERMINATOR = "X"

CONTROL_MNEMONICS: Tuple[str, ...] = (
    "nul", "soh", "stx", "etx", "eot", "enq", "ack", "bel",
    "bs", "ht", "lf", "vt", "ff", "cr", "so", "si",
    "dle", "dc1", "dc2", "dc3", "dc4", "nak", "syn", "etb",
    "can", "em", "sub", "esc", "fs", "gs", "rs", "us",
)


def is_control(b: int) -> bool:
    """True for bytes that form a ControlCharacterCommand outside escape sequences."""
    return (b < 0x20 and b != ESC) or b == DEL


def is_text(b: int) -> bool:
    return b != ESC and not is_control(b)


def is_group(b: int) -> bool:
    return 0x21 <= b <= 0x2F


def is_two_byte_letter(b: int) -> bool:
    return 0x30 <= b <= 0x7E


def is_parameter_letter(b: int) -> bool:
    return 0x60 <= b <= 0x7E


def is_final_terminator(b: int) -> bool:
    return 0x40 <= b <= 0x5E


def is_chain_terminator(b: int) -> bool:
    return 0x60 <= b <= 0x7E


def control_mnemonic(code: int) -> str:
    if code == DEL:
        return "del"
    return CONTROL_MNEMONICS[code]


# (group, parameter, terminator) of commands whose value counts the binary bytes that
# follow the terminator.
DATA_COMMANDS = frozenset(
    {
        ("(", "s", "W"),  # font header / character data
        (")", "s", "W"),  # font header
        ("(", "f", "W"),  # symbol set definition
        ("&", "p", "X"),  # transparent print data
        ("&", "n", "W"),  # alphanumeric id
        ("&", "b", "W"),  # configuration (I/O)
        ("*", "b", "W"),  # transfer raster data by row
        ("*", "b", "V"),  # transfer raster data by plane
        ("*", "c", "W"),  # user-defined pattern
        ("*", "v", "W"),  # configure image data
        ("*", "l", "W"),  # color lookup table
        ("*", "m", "W"),  # download dither matrix
        ("*", "i", "W"),  # viewing illuminant
        ("*", "o", "W"),  # driver configuration
        ("*", "g", "W"),  # configure raster data
    }
)

COMMAND_LABELS: Dict[str, str] = {
    "E": "Reset",
    "9": "Clear Horizontal Margins",
    "=": "Half Line Feed",
    "Y": "Display Functions On",
    "Z": "Display Functions Off",
    "%X": "Universal Exit Language",
    "%A": "Enter PCL Mode",
    "%B": "Enter HP-GL/2 Mode",
    "(U": "Primary Symbol Set",
    ")U": "Secondary Symbol Set",
    "(X": "Primary Font Selection by ID",
    ")X": "Secondary Font Selection by ID",
    "(sP": "Primary Spacing",
    "(sH": "Primary Pitch",
    "(sV": "Primary Height",
    "(sS": "Primary Style",
    "(sB": "Primary Stroke Weight",
    "(sT": "Primary Typeface",
    "(sW": "Character Data",
    ")sW": "Font Header",
    "&lS": "Simplex/Duplex Print",
    "&lO": "Page Orientation",
    "&lA": "Page Size",
    "&lH": "Paper Source",
    "&lX": "Number of Copies",
    "&lE": "Top Margin",
    "&lF": "Text Length",
    "&lD": "Line Spacing",
    "&lL": "Perforation Skip",
    "&lG": "Output Bin",
    "&lT": "Job Separation",
    "&lU": "Left Offset Registration",
    "&lZ": "Top Offset Registration",
    "&aL": "Left Margin",
    "&aM": "Right Margin",
    "&aC": "Horizontal Cursor Position (Columns)",
    "&aH": "Horizontal Cursor Position (Decipoints)",
    "&aR": "Vertical Cursor Position (Rows)",
    "&aV": "Vertical Cursor Position (Decipoints)",
    "&uD": "Unit of Measure",
    "&kH": "Horizontal Motion Index",
    "&kG": "Line Termination",
    "&dD": "Underline On",
    "&d@": "Underline Off",
    "&fS": "Push/Pop Cursor Position",
    "&fY": "Macro ID",
    "&fX": "Macro Control",
    "&pX": "Transparent Print Data",
    "&tP": "Text Parsing Method",
    "*pX": "Horizontal Cursor Position (PCL Units)",
    "*pY": "Vertical Cursor Position (PCL Units)",
    "*tR": "Raster Graphics Resolution",
    "*rA": "Start Raster Graphics",
    "*rB": "End Raster Graphics",
    "*rC": "End Raster Graphics",
    "*rF": "Raster Graphics Presentation",
    "*rS": "Source Raster Width",
    "*rT": "Source Raster Height",
    "*bM": "Set Compression Method",
    "*bW": "Transfer Raster Data by Row",
    "*bV": "Transfer Raster Data by Plane",
    "*bY": "Raster Y Offset",
    "*cA": "Horizontal Rectangle Size (PCL Units)",
    "*cB": "Vertical Rectangle Size (PCL Units)",
    "*cP": "Fill Rectangular Area",
    "*cG": "Pattern ID",
    "*cQ": "Pattern Control",
    "*cW": "User-Defined Pattern",
    "*cD": "Font ID",
    "*cE": "Character Code",
    "*cF": "Font Control",
    "*vW": "Configure Image Data",
    "*vT": "Select Current Pattern",
    "*vN": "Source Transparency Mode",
    "*vO": "Pattern Transparency Mode",
    "*lO": "Logical Operation",
    "*gW": "Configure Raster Data",
    "*oW": "Driver Configuration",
}


def label_key(group: str, parameter: str, terminator: str) -> str:
    """Build the COMMAND_LABELS key of a parameterized command."""
    return f"{group}{parameter}{terminator.upper()}"


def label_for(key: str) -> str:
    return COMMAND_LABELS.get(key, "")


__all__ = [
    "ESC",
    "DEL",
    "LF",
    "PJL_PREFIX",
    "UEL_GROUP",
    "UEL_VALUE",
    "UEL_TERMINATOR",
    "DATA_COMMANDS",
    "COMMAND_LABELS",
    "control_mnemonic",
    "is_control",
    "is_text",
    "is_group",
    "is_two_byte_letter",
    "is_parameter_letter",
    "is_final_terminator",
    "is_chain_terminator",
    "label_key",
    "label_for",
]
