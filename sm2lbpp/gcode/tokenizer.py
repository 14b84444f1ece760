"""Single-pass G-code tokenizer.

Walks the raw file bytes exactly once with one state machine and yields a
Command for every G/M line. Comment lines are scanned for the metadata the
Snapmaker 2.0 terminal consumes:

    ;post-processed by sm2lbpp ...   → already processed, stop
    ;thumbnail: ...                  → preview present, stop
    ;file_total_lines: 1234          → value and full line span captured

Recognized parameter letters are X, Y (axes), P (power in percent) and
S (power 0..255). Everything else on a command line is skipped.

Usage:
    tokenizer = Tokenizer(data)
    for command in tokenizer.commands():
        interpreter.execute(command)
    if tokenizer.stop_reason is not None:
        ...  # leave the file untouched
"""

import enum
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional

logger = logging.getLogger(__name__)

MARKER_PHRASE = b"post-processed by sm2lbpp"
KEY_THUMBNAIL = b"thumbnail"
KEY_TOTAL_LINES = b"file_total_lines"

_NL = ord('\n')
_CR = ord('\r')
_SPACE = ord(' ')
_SEMICOLON = ord(';')
_COLON = ord(':')
_DOT = ord('.')
_MINUS = ord('-')
_WHITESPACE = frozenset(b" \t\n\r\x0b\x0c")
_DIGITS = frozenset(b"0123456789")
_COMMAND_LETTERS = frozenset(b"GM")
_PARAM_LETTERS = frozenset(b"XYPS")

_UINT_RE = re.compile(rb'[0-9]+')
_FLOAT_RE = re.compile(rb'(-?)([0-9.]*)')


class ParserState(enum.Enum):
    LINE_START = "line_start"
    SKIP_TO_LINE_START = "skip_to_line_start"
    COMMAND_TOKEN = "command_token"
    COMMENT = "comment"
    PARAMETER_VALUE = "parameter_value"


class StopReason(enum.Enum):
    """Why a scan ended before the end of input."""
    MARKER = "marker"
    THUMBNAIL = "thumbnail"


@dataclass(frozen=True)
class Token:
    """View (offset + length) into the immutable input buffer."""
    start: int
    length: int

    @property
    def end(self) -> int:
        return self.start + self.length

    def text(self, data: bytes) -> bytes:
        return data[self.start:self.end]


@dataclass
class Command:
    """One G/M command line with the parameters supplied on it."""
    letter: str
    number: int
    params: Dict[str, float] = field(default_factory=dict)
    line: int = 0

    @property
    def code(self) -> str:
        return f"{self.letter}{self.number}"

    def get(self, name: str) -> Optional[float]:
        return self.params.get(name)


def parse_uint(raw: bytes) -> int:
    """Parse the leading decimal digits of raw; 0 if there are none."""
    m = _UINT_RE.match(raw)
    return int(m.group()) if m else 0


def parse_float(raw: bytes) -> float:
    """Parse a simple decimal number prefix (optional '-', digits, '.').

    An empty or digit-less token yields 0.0. Additional dots are skipped,
    so "1.2.3" reads as 1.23.
    """
    m = _FLOAT_RE.match(raw)
    sign = -1.0 if m.group(1) else 1.0
    whole, _, frac = m.group(2).partition(b'.')
    frac = frac.replace(b'.', b'')
    return sign * float((whole or b'0') + b'.' + (frac or b'0'))


class Tokenizer:
    """Forward-only scanner over a G-code buffer.

    Parameters
    ----------
    data : bytes
        Complete file content

    Attributes
    ----------
    line_number : int
        1 + number of line feeds seen so far
    total_lines_value : Optional[Token]
        Value of the first ``file_total_lines`` key with a non-empty value
    total_lines_line : Optional[Token]
        Full line (terminator included) holding that key; None if the line
        was never terminated
    total_lines_line_start : Optional[int]
        Offset of that line, also known when it is unterminated
    total_lines_line_number : Optional[int]
        Line number of that line
    stop_reason : Optional[StopReason]
        Set when the scan stopped at the marker or a thumbnail key
    """

    def __init__(self, data: bytes):
        self.data = data
        self.line_number = 1
        self.total_lines_value: Optional[Token] = None
        self.total_lines_line: Optional[Token] = None
        self.total_lines_line_start: Optional[int] = None
        self.total_lines_line_number: Optional[int] = None
        self.stop_reason: Optional[StopReason] = None
        self.state = ParserState.LINE_START

    @property
    def line_count(self) -> int:
        """Number of lines in the scanned input (a trailing partial line counts)."""
        if not self.data:
            return 0
        if self.data[-1] == _NL:
            return self.line_number - 1
        return self.line_number

    def total_lines_declared(self) -> Optional[int]:
        """Integer value of ``file_total_lines``, None if absent or not a number."""
        if self.total_lines_value is None:
            return None
        raw = self.total_lines_value.text(self.data)
        if not raw.isdigit():
            return None
        return int(raw)

    def commands(self) -> Iterator[Command]:
        """Scan the buffer and yield commands in file order.

        The generator returns early (with stop_reason set) when the file
        turns out to be processed already.
        """
        data = self.data
        trace = logger.isEnabledFor(logging.DEBUG)
        state = ParserState.LINE_START
        line_start = 0

        # Current token: numeric argument or comment key/marker
        token_start: Optional[int] = None
        token_len = 0
        param: Optional[int] = None
        letter: Optional[str] = None
        number = 0
        params: Dict[str, float] = {}

        # file_total_lines capture
        key_line_start = 0
        value_start: Optional[int] = None
        value_len = 0

        def close_token() -> None:
            nonlocal letter, number
            if param is None or token_start is None:
                return
            raw = data[token_start:token_start + token_len]
            if param in _COMMAND_LETTERS:
                letter = chr(param)
                number = parse_uint(raw)
            else:
                params[chr(param)] = parse_float(raw)

        for i, ch in enumerate(data):
            if state is ParserState.LINE_START:
                if ch == _SEMICOLON:
                    token_start = None
                    token_len = 0
                    state = ParserState.COMMENT
                elif ch in _COMMAND_LETTERS:
                    param = ch
                    letter = None
                    number = 0
                    params = {}
                    token_start = i + 1
                    token_len = 0
                    state = ParserState.COMMAND_TOKEN
                elif ch not in _WHITESPACE:
                    state = ParserState.SKIP_TO_LINE_START

            elif state is ParserState.SKIP_TO_LINE_START:
                if ch == _NL:
                    state = ParserState.LINE_START

            elif state is ParserState.COMMAND_TOKEN:
                if ch in _DIGITS or (
                    param not in _COMMAND_LETTERS
                    and (ch == _DOT or (token_len == 0 and ch == _MINUS))
                ):
                    token_len += 1
                elif ch in _PARAM_LETTERS:
                    close_token()
                    param = ch
                    token_start = i + 1
                    token_len = 0
                else:
                    close_token()
                    param = None
                    if ch == _NL or ch == _SEMICOLON:
                        if letter is not None:
                            command = Command(letter, number, params, self.line_number)
                            if trace:
                                logger.debug(f"{self.line_number}: {command.code} {command.params}")
                            yield command
                        token_start = None
                        token_len = 0
                        state = ParserState.LINE_START if ch == _NL else ParserState.COMMENT

            elif state is ParserState.COMMENT:
                if ch == _NL:
                    state = ParserState.LINE_START
                elif token_start is None:
                    if ch not in _WHITESPACE:
                        token_start = i
                        token_len = 1
                elif ch == _SPACE and token_len > 0:
                    if data[token_start:token_start + token_len] == MARKER_PHRASE:
                        self._stop(StopReason.MARKER, state)
                        return
                elif ch == _COLON:
                    key = data[token_start:token_start + token_len]
                    if key == KEY_THUMBNAIL:
                        self._stop(StopReason.THUMBNAIL, state)
                        return
                    if key == KEY_TOTAL_LINES and self.total_lines_value is None:
                        key_line_start = line_start
                        self.total_lines_line_start = line_start
                        self.total_lines_line_number = self.line_number
                        self.total_lines_line = None
                        value_start = None
                        value_len = 0
                        state = ParserState.PARAMETER_VALUE
                        if trace:
                            logger.debug(f"{self.line_number}: found file_total_lines key")
                    else:
                        # Unknown or repeated key
                        state = ParserState.SKIP_TO_LINE_START
                elif ch not in _WHITESPACE:
                    token_len = i - token_start + 1

            elif state is ParserState.PARAMETER_VALUE:
                if ch == _NL:
                    self._commit_value(value_start, value_len)
                    self.total_lines_line = Token(key_line_start, i - key_line_start + 1)
                    state = ParserState.LINE_START
                elif value_start is None:
                    if ch not in _WHITESPACE:
                        value_start = i
                        value_len = 1
                elif ch not in _WHITESPACE:
                    value_len = i - value_start + 1

            if ch == _NL:
                self.line_number += 1
                line_start = i + 1
            elif ch == _CR:
                line_start = i + 1

        # End of input closes whatever is still open
        if state is ParserState.COMMAND_TOKEN:
            close_token()
            if letter is not None:
                yield Command(letter, number, params, self.line_number)
        elif state is ParserState.PARAMETER_VALUE:
            self._commit_value(value_start, value_len)
        self.state = state

    def _commit_value(self, value_start: Optional[int], value_len: int) -> None:
        if value_start is not None:
            self.total_lines_value = Token(value_start, value_len)

    def _stop(self, reason: StopReason, state: ParserState) -> None:
        logger.debug(f"{self.line_number}: scan stopped ({reason.value})")
        self.stop_reason = reason
        self.state = state
