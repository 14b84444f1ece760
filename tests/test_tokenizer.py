"""Test the single-pass G-code tokenizer.

Tests for sm2lbpp.gcode.tokenizer:
    - Command lines → letter, number, X/Y/P/S parameters
    - Comment metadata: file_total_lines capture, thumbnail and marker stops
    - Line numbering and line counting
    - Numeric token parsing

Test cases:
    - test_parse_uint()
    - test_parse_float()
    - test_simple_command()
    - test_parameters_without_spaces()
    - test_unrecognized_parameters_are_skipped()
    - test_trailing_comment_ends_command()
    - test_unrecognized_command_line_skipped()
    - test_crlf_line_endings()
    - test_pending_command_at_eof()
    - test_line_numbers()
    - test_total_lines_capture()
    - test_total_lines_unterminated()
    - test_total_lines_duplicate_ignored()
    - test_total_lines_non_numeric()
    - test_marker_stops_scan()
    - test_thumbnail_stops_scan()
    - test_line_count()

Run:
    pytest tests/test_tokenizer.py -v
"""

import pytest

from sm2lbpp.gcode.tokenizer import (
    ParserState,
    StopReason,
    Token,
    Tokenizer,
    parse_float,
    parse_uint,
)


def scan(data: bytes):
    tokenizer = Tokenizer(data)
    return tokenizer, list(tokenizer.commands())


@pytest.mark.parametrize("raw,expected", [
    (b"0", 0),
    (b"90", 90),
    (b"12abc", 12),
    (b"", 0),
])
def test_parse_uint(raw, expected):
    assert parse_uint(raw) == expected


@pytest.mark.parametrize("raw,expected", [
    (b"10", 10.0),
    (b"-2.5", -2.5),
    (b".5", 0.5),
    (b"1.2.3", 1.23),
    (b"", 0.0),
    (b"-", 0.0),
])
def test_parse_float(raw, expected):
    assert parse_float(raw) == pytest.approx(expected)


def test_simple_command():
    """G1 X10 Y-2.5 → one command with both axes."""
    _, commands = scan(b"G1 X10 Y-2.5\n")

    assert len(commands) == 1
    cmd = commands[0]
    assert cmd.letter == 'G'
    assert cmd.number == 1
    assert cmd.code == "G1"
    assert cmd.params == {'X': 10.0, 'Y': -2.5}
    assert cmd.line == 1


def test_parameters_without_spaces():
    """A parameter letter closes the previous token."""
    _, commands = scan(b"G0X5Y6\nM3S255\n")

    assert [c.code for c in commands] == ["G0", "M3"]
    assert commands[0].params == {'X': 5.0, 'Y': 6.0}
    assert commands[1].params == {'S': 255.0}


def test_unrecognized_parameters_are_skipped():
    _, commands = scan(b"G1 F3000 X5 Z2 Y1\n")

    assert commands[0].params == {'X': 5.0, 'Y': 1.0}
    assert commands[0].get('F') is None


def test_trailing_comment_ends_command():
    """Text after ';' is a comment, even if it looks like parameters."""
    tokenizer, commands = scan(b"G1 X1 ; Y99 file_total_lines: 3\nG1 Y2\n")

    assert commands[0].params == {'X': 1.0}
    assert commands[1].params == {'Y': 2.0}
    assert commands[1].line == 2
    # Only the first word of a comment can be a key
    assert tokenizer.total_lines_value is None


def test_unrecognized_command_line_skipped():
    _, commands = scan(b"T1 X5\n  G0 X1\nx\nM5\n")

    assert [c.code for c in commands] == ["G0", "M5"]
    assert commands[0].line == 2


def test_crlf_line_endings():
    _, commands = scan(b"G90\r\nG1 X3 Y4\r\n")

    assert [c.code for c in commands] == ["G90", "G1"]
    assert commands[1].params == {'X': 3.0, 'Y': 4.0}


def test_pending_command_at_eof():
    """A command on an unterminated last line is still delivered."""
    tokenizer, commands = scan(b"G90\nG1 X7")

    assert [c.code for c in commands] == ["G90", "G1"]
    assert commands[1].params == {'X': 7.0}
    assert tokenizer.stop_reason is None
    assert tokenizer.state is ParserState.COMMAND_TOKEN


def test_line_numbers():
    _, commands = scan(b"\n;comment\n\nG0 X1\nM5\n")

    assert [c.line for c in commands] == [4, 5]


def test_total_lines_capture():
    data = b";header\n;file_total_lines: 5\nG1 X1\n"
    tokenizer, commands = scan(data)

    assert tokenizer.total_lines_value.text(data) == b"5"
    assert tokenizer.total_lines_declared() == 5
    assert tokenizer.total_lines_line == Token(8, 21)
    assert tokenizer.total_lines_line.text(data) == b";file_total_lines: 5\n"
    assert tokenizer.total_lines_line_number == 2
    assert len(commands) == 1


def test_total_lines_unterminated():
    """Value at EOF is captured, the line span stays unknown."""
    data = b"G1 X1\n;file_total_lines: 12"
    tokenizer, _ = scan(data)

    assert tokenizer.total_lines_declared() == 12
    assert tokenizer.total_lines_line is None
    assert tokenizer.total_lines_line_start == 6
    assert tokenizer.total_lines_line_number == 2


def test_total_lines_duplicate_ignored():
    data = b";file_total_lines: 5\n;file_total_lines: 9\n"
    tokenizer, _ = scan(data)

    assert tokenizer.total_lines_declared() == 5
    assert tokenizer.total_lines_line.start == 0
    assert tokenizer.total_lines_line_number == 1


def test_total_lines_non_numeric():
    data = b";file_total_lines: many\n"
    tokenizer, _ = scan(data)

    assert tokenizer.total_lines_value.text(data) == b"many"
    assert tokenizer.total_lines_declared() is None


def test_marker_stops_scan():
    """The idempotency marker ends the scan before any command."""
    data = b";post-processed by sm2lbpp 1.0.0 2023-05-18\nG1 X1\n"
    tokenizer, commands = scan(data)

    assert tokenizer.stop_reason is StopReason.MARKER
    assert commands == []


def test_thumbnail_stops_scan():
    data = b"G0 X1\n;thumbnail: data:image/png;base64,AAAA\nG1 X2\n"
    tokenizer, commands = scan(data)

    assert tokenizer.stop_reason is StopReason.THUMBNAIL
    assert [c.code for c in commands] == ["G0"]


@pytest.mark.parametrize("data,expected", [
    (b"", 0),
    (b"G0\n", 1),
    (b"G0\nG1", 2),
    (b"G0\nG1\n", 2),
    (b"\n\n\n", 3),
])
def test_line_count(data, expected):
    tokenizer, _ = scan(data)
    assert tokenizer.line_count == expected
