"""Rewrite a G-code file with the preview thumbnail embedded.

Output layout:

    ;post-processed by sm2lbpp <version>           (a) marker line
    <original bytes before the file_total_lines line>   (b)
    ;file_total_lines: <N>                         (c)
    ;thumbnail: data:image/png;base64,<payload>    (d)
    <original bytes after the file_total_lines line>    (e)

(b) and (e) are copied byte for byte. N is the declared total plus the two
inserted lines. The file is replaced atomically, so a failure while writing
leaves the original content in place.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from .diagnostics import FileWriteError
from .gcode.tokenizer import MARKER_PHRASE, Tokenizer
from .preview.encode import THUMBNAIL_PREFIX, write_base64
from .utils import fs
from .version import PROJECT_URL, VERSION_STRING

logger = logging.getLogger(__name__)

# Marker line and thumbnail line
INSERTED_LINES = 2


def marker_line() -> bytes:
    suffix = f" {VERSION_STRING} ({PROJECT_URL})\n"
    return b";" + MARKER_PHRASE + suffix.encode("ascii")


@dataclass(frozen=True)
class Splice:
    """Byte ranges of the original kept around the replaced metadata line.

    Attributes
    ----------
    head_end : int
        Bytes [0, head_end) are written before the new metadata
    tail_start : int
        Bytes [tail_start, EOF) are written after the thumbnail
    """
    head_end: int
    tail_start: int

    @classmethod
    def from_tokenizer(cls, tokenizer: Tokenizer) -> "Splice":
        """Splice around the captured ``file_total_lines`` line.

        Without a captured line the new lines go right after the marker and
        the whole original follows. An unterminated line extends to EOF.
        """
        if tokenizer.total_lines_line is not None:
            line = tokenizer.total_lines_line
            return cls(head_end=line.start, tail_start=line.end)
        if tokenizer.total_lines_line_start is not None:
            return cls(head_end=tokenizer.total_lines_line_start, tail_start=len(tokenizer.data))
        return cls(head_end=0, tail_start=0)


def corrected_total_lines(tokenizer: Tokenizer) -> int:
    """Line total for the rewritten file.

    Uses the declared ``file_total_lines`` value when it is an integer,
    otherwise the number of lines counted in the input.
    """
    declared = tokenizer.total_lines_declared()
    if declared is None:
        logger.info(f"Using counted line total {tokenizer.line_count}")
        return tokenizer.line_count + INSERTED_LINES
    return declared + INSERTED_LINES


def patch_file(
    path: Union[str, Path],
    data: bytes,
    splice: Splice,
    total_lines: int,
    png: bytes
) -> None:
    """Write the rewritten file.

    Parameters
    ----------
    path : Union[str, Path]
        Target file (replaced atomically)
    data : bytes
        Original file content
    splice : Splice
        Ranges of data to keep
    total_lines : int
        Value for the new ``file_total_lines`` line
    png : bytes
        Encoded thumbnail

    Raises
    ------
    FileCreateError
        If the temp file cannot be created
    FileWriteError
        If any write or the final replace fails
    """
    view = memoryview(data)
    with fs.atomic_rewrite(path) as f:
        fs.write_chunk(f, marker_line())
        fs.write_chunk(f, view[:splice.head_end])
        fs.write_chunk(f, b";file_total_lines: %d\n" % total_lines)
        fs.write_chunk(f, THUMBNAIL_PREFIX)
        try:
            write_base64(f, png)
        except OSError as e:
            raise FileWriteError(f"Failed to write thumbnail: {e}") from e
        fs.write_chunk(f, b"\n")
        fs.write_chunk(f, view[splice.tail_start:])

    logger.info(
        f"Wrote {path}: file_total_lines={total_lines}, thumbnail {len(png)} bytes PNG"
    )
