"""Test the file rewrite: splice ranges, line total and output layout.

Tests for sm2lbpp.patcher:
    - Marker line carries the program version
    - Splice ranges for captured, unterminated and missing metadata lines
    - Line total = declared (or counted) + 2
    - Output layout and byte preservation outside the replaced line

Test cases:
    - test_marker_line()
    - test_splice_captured_line()
    - test_splice_unterminated_line()
    - test_splice_without_metadata()
    - test_corrected_total_lines_declared()
    - test_corrected_total_lines_counted()
    - test_patch_file_layout()
    - test_patch_file_preserves_mode()

Run:
    pytest tests/test_patcher.py -v
"""

import base64
import os
import stat

import pytest

from sm2lbpp.gcode.tokenizer import Tokenizer
from sm2lbpp.patcher import Splice, corrected_total_lines, marker_line, patch_file
from sm2lbpp.version import VERSION_STRING


def scanned(data: bytes) -> Tokenizer:
    tokenizer = Tokenizer(data)
    for _ in tokenizer.commands():
        pass
    return tokenizer


def test_marker_line():
    line = marker_line()

    assert line == (
        b";post-processed by sm2lbpp " + VERSION_STRING.encode()
        + b" (https://github.com/daniel-starke/sm2lbpp)\n"
    )
    # The rewritten file is recognized as processed
    tokenizer = scanned(line + b"G1 X1\n")
    assert tokenizer.stop_reason is not None


def test_splice_captured_line():
    data = b"G90\n;file_total_lines: 3\nG1 X1\n"
    splice = Splice.from_tokenizer(scanned(data))

    assert splice == Splice(head_end=4, tail_start=25)
    assert data[:splice.head_end] == b"G90\n"
    assert data[splice.tail_start:] == b"G1 X1\n"


def test_splice_unterminated_line():
    data = b"G90\n;file_total_lines: 3"
    splice = Splice.from_tokenizer(scanned(data))

    assert splice == Splice(head_end=4, tail_start=len(data))


def test_splice_without_metadata():
    splice = Splice.from_tokenizer(scanned(b"G90\nG1 X1\n"))
    assert splice == Splice(head_end=0, tail_start=0)


def test_corrected_total_lines_declared():
    assert corrected_total_lines(scanned(b"G90\n;file_total_lines: 5\n")) == 7


@pytest.mark.parametrize("data,expected", [
    (b"G90\nG1 X1\n", 4),
    (b"G90\nG1 X1", 4),
    (b";file_total_lines: ?\nG1\nG1\n", 5),
])
def test_corrected_total_lines_counted(data, expected):
    """Without a usable declared value the counted line total is used."""
    assert corrected_total_lines(scanned(data)) == expected


def test_patch_file_layout(tmp_path):
    data = b";header\n;file_total_lines: 3\nG1 X1\n; tail \xff\r\n"
    path = tmp_path / "job.nc"
    path.write_bytes(data)
    png = b"\x89PNG fake"

    patch_file(path, data, Splice.from_tokenizer(scanned(data)), 5, png)

    out = path.read_bytes()
    expected = (
        marker_line()
        + b";header\n"
        + b";file_total_lines: 5\n"
        + b";thumbnail: data:image/png;base64," + base64.b64encode(png) + b"\n"
        + b"G1 X1\n; tail \xff\r\n"
    )
    assert out == expected
    assert out.endswith(data[data.index(b"G1"):])
    assert list(tmp_path.iterdir()) == [path]


def test_patch_file_preserves_mode(tmp_path):
    path = tmp_path / "job.nc"
    path.write_bytes(b"G1 X1\n")
    os.chmod(path, 0o640)

    patch_file(path, b"G1 X1\n", Splice(0, 0), 3, b"png")

    assert stat.S_IMODE(path.stat().st_mode) == 0o640
    assert path.read_bytes().endswith(b"\nG1 X1\n")
