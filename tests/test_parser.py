import io
import random

import pytest

from pclbox import parser as parser_module
from pclbox.commands import (
    ControlCharacterCommand,
    ParameterizedPclCommand,
    PjlCommand,
    TextCommand,
    TwoBytePclCommand,
)
from pclbox.errors import GrammarError
from pclbox.parser import PclParser, iter_commands, parse_bytes
from pclbox.source import BufferByteSource, StreamByteSource

CONTROL_CODES = [*range(0x00, 0x1B), *range(0x1C, 0x20), 0x7F]

JOB = (
    b"\x1b%-12345X@PJL JOB\r\n"
    b"@PJL ENTER LANGUAGE=PCL\r\n"
    b"\x1bE\x1b&l0o2A\x1b(8U"
    b"Hello\r\n"
    b"\x1b*b3WABC"
    b"\x0c\x1b%-12345X"
)


class NonSeekableStream(io.RawIOBase):
    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        count = min(len(b), len(self._data) - self._pos)
        b[:count] = self._data[self._pos : self._pos + count]
        self._pos += count
        return count


def test_plain_text_is_one_text_command():
    assert parse_bytes(b"Hello, World 123") == [TextCommand(0, b"Hello, World 123")]


def test_random_printable_input_is_one_text_command():
    rng = random.Random(1234)
    alphabet = bytes(b for b in range(256) if 0x20 <= b < 0x7F or b >= 0x80)
    for _ in range(20):
        data = bytes(rng.choice(alphabet) for _ in range(rng.randint(1, 200)))
        assert parse_bytes(data) == [TextCommand(0, data)]


@pytest.mark.parametrize("code", CONTROL_CODES)
def test_single_control_byte(code):
    assert parse_bytes(bytes([code])) == [ControlCharacterCommand(0, code)]


def test_empty_input_yields_nothing():
    assert parse_bytes(b"") == []


def test_text_followed_by_two_byte_command():
    assert parse_bytes(b"A\x1bE") == [TextCommand(0, b"A"), TwoBytePclCommand(1, "E")]


def test_simplex_command():
    commands = parse_bytes(b"\x1b&l0S")
    assert commands == [ParameterizedPclCommand(0, "&", "l", "0", "S")]
    assert str(commands[0]) == "<esc>&l0S@0"


def test_control_bytes_split_text():
    assert parse_bytes(b"AB\r\nC") == [
        TextCommand(0, b"AB"),
        ControlCharacterCommand(2, 0x0D),
        ControlCharacterCommand(3, 0x0A),
        TextCommand(4, b"C"),
    ]


def test_combined_sequence_yields_one_command_each():
    assert parse_bytes(b"\x1b&l1o2A") == [
        ParameterizedPclCommand(0, "&", "l", "1", "O"),
        ParameterizedPclCommand(5, "&", "l", "2", "A"),
    ]


def test_long_combined_sequence():
    assert parse_bytes(b"\x1b(s1p10v0s3T") == [
        ParameterizedPclCommand(0, "(", "s", "1", "P"),
        ParameterizedPclCommand(5, "(", "s", "10", "V"),
        ParameterizedPclCommand(8, "(", "s", "0", "S"),
        ParameterizedPclCommand(10, "(", "s", "3", "T"),
    ]


def test_commands_without_parameter_letter():
    assert parse_bytes(b"\x1b(8U\x1b%1B") == [
        ParameterizedPclCommand(0, "(", "", "8", "U"),
        ParameterizedPclCommand(4, "%", "", "1", "B"),
    ]


def test_value_forms():
    assert parse_bytes(b"\x1b&a-12.5V\x1b*p+30X\x1b*rB") == [
        ParameterizedPclCommand(0, "&", "a", "-12.5", "V"),
        ParameterizedPclCommand(9, "*", "p", "+30", "X"),
        ParameterizedPclCommand(15, "*", "r", "", "B"),
    ]


@pytest.mark.parametrize(
    "command",
    [
        TwoBytePclCommand(0, "E"),
        TwoBytePclCommand(0, "9"),
        ParameterizedPclCommand(0, "&", "l", "0", "S"),
        ParameterizedPclCommand(0, "(", "", "8", "U"),
        ParameterizedPclCommand(0, "*", "r", "", "B"),
        ParameterizedPclCommand(0, "&", "a", "-12.5", "V"),
        ParameterizedPclCommand(0, "&", "d", "", "@"),
    ],
)
def test_rendered_form_parses_back(command):
    wire = command.literal().replace("<esc>", "\x1b").encode("latin-1")
    assert parse_bytes(wire) == [command]


def test_data_block_is_captured():
    assert parse_bytes(b"\x1b*b3WABC\x1bE") == [
        ParameterizedPclCommand(0, "*", "b", "3", "W", b"ABC"),
        TwoBytePclCommand(8, "E"),
    ]


def test_data_block_may_contain_escape_bytes():
    assert parse_bytes(b"\x1b*b2W\x1b\x1b") == [
        ParameterizedPclCommand(0, "*", "b", "2", "W", b"\x1b\x1b"),
    ]


def test_data_block_inside_combined_sequence():
    assert parse_bytes(b"\x1b*b2m3WXYZ") == [
        ParameterizedPclCommand(0, "*", "b", "2", "M"),
        ParameterizedPclCommand(5, "*", "b", "3", "W", b"XYZ"),
    ]


def test_empty_data_block():
    assert parse_bytes(b"\x1b*b0W") == [ParameterizedPclCommand(0, "*", "b", "0", "W")]


def test_data_block_cut_short():
    with pytest.raises(GrammarError) as excinfo:
        parse_bytes(b"\x1b*b5WAB")
    assert excinfo.value.command_offset == 0
    assert excinfo.value.offset == 8


@pytest.mark.parametrize("data", [b"\x1b*b1.5WA", b"\x1b*b-1W"])
def test_invalid_data_block_length(data):
    with pytest.raises(GrammarError):
        parse_bytes(data)


def test_pjl_lines_after_universal_exit_language():
    data = b"\x1b%-12345X@PJL JOB\r\n@PJL ENTER LANGUAGE=PCL\r\n\x1bE"
    assert parse_bytes(data) == [
        PjlCommand(0, b"\x1b%-12345X@PJL JOB\r\n"),
        PjlCommand(19, b"@PJL ENTER LANGUAGE=PCL\r\n"),
        TwoBytePclCommand(44, "E"),
    ]


def test_universal_exit_language_followed_by_escape():
    assert parse_bytes(b"\x1b%-12345X\x1bE") == [
        PjlCommand(0, b"\x1b%-12345X"),
        TwoBytePclCommand(9, "E"),
    ]


def test_pjl_ends_at_first_non_pjl_line():
    assert parse_bytes(b"\x1b%-12345X\r\n@PJL\r\nHello") == [
        PjlCommand(0, b"\x1b%-12345X\r\n"),
        PjlCommand(11, b"@PJL\r\n"),
        TextCommand(17, b"Hello"),
    ]


def test_partial_pjl_prefix_is_text():
    assert parse_bytes(b"\x1b%-12345X\n@PJ") == [
        PjlCommand(0, b"\x1b%-12345X\n"),
        TextCommand(10, b"@PJ"),
    ]


def test_last_pjl_line_may_end_with_data():
    assert parse_bytes(b"\x1b%-12345X\n@PJL EOJ") == [
        PjlCommand(0, b"\x1b%-12345X\n"),
        PjlCommand(10, b"@PJL EOJ"),
    ]


def test_pjl_line_ends_at_escape():
    assert parse_bytes(b"\x1b%-12345X\n@PJL ENTER LANGUAGE=PCL\x1bE") == [
        PjlCommand(0, b"\x1b%-12345X\n"),
        PjlCommand(10, b"@PJL ENTER LANGUAGE=PCL"),
        TwoBytePclCommand(33, "E"),
    ]


def test_pjl_line_followed_by_another_universal_exit_language():
    assert parse_bytes(b"\x1b%-12345X\n@PJL EOJ\x1b%-12345X") == [
        PjlCommand(0, b"\x1b%-12345X\n"),
        PjlCommand(10, b"@PJL EOJ"),
        PjlCommand(18, b"\x1b%-12345X"),
    ]


def test_other_percent_commands_are_parameterized():
    assert parse_bytes(b"\x1b%-1B") == [ParameterizedPclCommand(0, "%", "", "-1", "B")]


def test_grammar_error_keeps_earlier_commands():
    parser = PclParser(BufferByteSource(b"AB\x1b"))
    commands = iter(parser)
    assert next(commands) == TextCommand(0, b"AB")
    with pytest.raises(GrammarError) as excinfo:
        next(commands)
    assert excinfo.value.offset == 3
    assert excinfo.value.command_offset == 2


@pytest.mark.parametrize(
    "data,offset,command_offset",
    [
        (b"\x1b&l0", 4, 0),  # end of data before terminator
        (b"\x1b&l0!S", 4, 0),  # non-numeric value
        (b"\x1b\x01", 1, 0),  # control byte after escape
        (b"\x1b ", 1, 0),
        (b"\x1b\x1b", 1, 0),
        (b"\x1b&l1a", 5, 5),  # combined sequence cut off
        (b"\x1b&", 2, 0),
    ],
)
def test_grammar_errors(data, offset, command_offset):
    with pytest.raises(GrammarError) as excinfo:
        parse_bytes(data)
    assert excinfo.value.offset == offset
    assert excinfo.value.command_offset == command_offset
    assert f"offset {offset}" in str(excinfo.value)


def test_combined_sequence_error_after_first_command():
    commands = iter(PclParser(BufferByteSource(b"\x1b&l1a2!")))
    assert next(commands) == ParameterizedPclCommand(0, "&", "l", "1", "A")
    with pytest.raises(GrammarError):
        next(commands)


def test_full_job():
    commands = parse_bytes(JOB)
    assert commands == [
        PjlCommand(0, b"\x1b%-12345X@PJL JOB\r\n"),
        PjlCommand(19, b"@PJL ENTER LANGUAGE=PCL\r\n"),
        TwoBytePclCommand(44, "E"),
        ParameterizedPclCommand(46, "&", "l", "0", "O"),
        ParameterizedPclCommand(51, "&", "l", "2", "A"),
        ParameterizedPclCommand(53, "(", "", "8", "U"),
        TextCommand(57, b"Hello"),
        ControlCharacterCommand(62, 0x0D),
        ControlCharacterCommand(63, 0x0A),
        ParameterizedPclCommand(64, "*", "b", "3", "W", b"ABC"),
        ControlCharacterCommand(72, 0x0C),
        PjlCommand(73, b"\x1b%-12345X"),
    ]


def test_stream_source_parses_like_buffer():
    streamed = list(PclParser(StreamByteSource(NonSeekableStream(JOB))))
    assert streamed == parse_bytes(JOB)


def test_start_offset():
    parser = PclParser(BufferByteSource(b"AB\x1bE"), start_offset=2)
    assert list(parser) == [TwoBytePclCommand(2, "E")]


def test_parser_can_run_again_on_seekable_source():
    parser = PclParser(BufferByteSource(JOB))
    assert list(parser) == list(parser)


def test_only_one_traversal_at_a_time():
    parser = PclParser(BufferByteSource(b"A\x1bE"))
    first = iter(parser)
    next(first)
    with pytest.raises(RuntimeError):
        next(iter(parser))
    first.close()
    assert list(parser) == [TextCommand(0, b"A"), TwoBytePclCommand(1, "E")]


def test_iter_commands_reads_files(tmp_path):
    path = tmp_path / "job.pcl"
    path.write_bytes(JOB)
    assert list(iter_commands(path)) == parse_bytes(JOB)
    assert list(iter_commands(str(path), max_mapped_size=0, max_buffered_size=0)) == parse_bytes(
        JOB
    )


class SpySource(BufferByteSource):
    def __init__(self, data: bytes) -> None:
        super().__init__(data)
        self.release_calls = 0

    def _release(self) -> None:
        self.release_calls += 1
        super()._release()


def test_iter_commands_closes_source_on_error(monkeypatch):
    spy = SpySource(b"A\x1b")
    monkeypatch.setattr(parser_module, "open_source", lambda resource, **kw: spy)
    with pytest.raises(GrammarError):
        list(iter_commands(b"ignored"))
    assert spy.closed
    assert spy.release_calls == 1


def test_iter_commands_closes_source_when_abandoned(monkeypatch):
    spy = SpySource(b"A\x1bE")
    monkeypatch.setattr(parser_module, "open_source", lambda resource, **kw: spy)
    commands = iter_commands(b"ignored")
    next(commands)
    commands.close()
    assert spy.release_calls == 1
