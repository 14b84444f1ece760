"""Diagnostic messages, error types and sinks.

Every fatal condition maps to exactly one Message kind and is raised as a
PostProcessError subclass. process_file() reports it once through the
diagnostic sink and aborts. The two warning kinds are reported through the
same sink, whose boolean return decides whether processing continues.

Usage:
    from sm2lbpp.diagnostics import LoggingSink, Message

    sink = LoggingSink()
    if not sink(Message.WARN_NO_TOTAL_LINES, "job.nc", None):
        ...  # abort
"""

import enum
import logging
from pathlib import Path
from typing import Optional, Protocol, Union

logger = logging.getLogger(__name__)


class Message(enum.IntEnum):
    """Diagnostic message kinds."""
    ERR_NO_MEM = 1
    ERR_FILE_NOT_FOUND = 2
    ERR_FILE_OPEN = 3
    ERR_FILE_READ = 4
    ERR_FILE_CREATE = 5
    ERR_FILE_WRITE = 6
    ERR_PNG = 7
    WARN_NO_TOTAL_LINES = 8
    WARN_NO_TOTAL_LINES_LINE = 9

    @property
    def is_warning(self) -> bool:
        return self.name.startswith("WARN_")

    @property
    def text(self) -> str:
        return MESSAGES[self]


MESSAGES = {
    Message.ERR_NO_MEM: "Error: Failed to allocate memory.",
    Message.ERR_FILE_NOT_FOUND: "Error: Input file not found.",
    Message.ERR_FILE_OPEN: "Error: Failed to open file for reading.",
    Message.ERR_FILE_READ: "Error: Failed to read data from file.",
    Message.ERR_FILE_CREATE: "Error: Failed to create file for writing.",
    Message.ERR_FILE_WRITE: "Error: Failed to write data to file.",
    Message.ERR_PNG: "Error: Failed to encode PNG image.",
    Message.WARN_NO_TOTAL_LINES: "Warning: 'file_total_lines' was not found.",
    Message.WARN_NO_TOTAL_LINES_LINE: "Warning: Line with 'file_total_lines' is unterminated.",
}


# ============================================================================
# ERRORS
# ============================================================================

class PostProcessError(Exception):
    """Base class of all fatal post-processing errors.

    Parameters
    ----------
    detail : str
        Human-readable detail for logs
    line : Optional[int]
        Input line number the error relates to, None if not applicable
    """

    message: Message = Message.ERR_NO_MEM

    def __init__(self, detail: str = "", line: Optional[int] = None):
        super().__init__(detail or self.message.text)
        self.line = line


class AllocationError(PostProcessError):
    message = Message.ERR_NO_MEM


class InputNotFoundError(PostProcessError):
    message = Message.ERR_FILE_NOT_FOUND


class FileOpenError(PostProcessError):
    message = Message.ERR_FILE_OPEN


class FileReadError(PostProcessError):
    message = Message.ERR_FILE_READ


class FileCreateError(PostProcessError):
    message = Message.ERR_FILE_CREATE


class FileWriteError(PostProcessError):
    message = Message.ERR_FILE_WRITE


class ImageEncodingError(PostProcessError):
    message = Message.ERR_PNG


# ============================================================================
# SINKS
# ============================================================================

class DiagnosticSink(Protocol):
    """Receives (message kind, file path, line number or None).

    For warnings the return value decides: True continues, False aborts.
    For errors the return value is ignored; processing always aborts.
    """

    def __call__(self, message: Message, path: Union[str, Path], line: Optional[int]) -> bool:
        ...


def format_diagnostic(message: Message, path: Union[str, Path], line: Optional[int]) -> str:
    """Render a diagnostic as ``path:line: text`` or ``path: text``."""
    if line is not None and line > 0:
        return f"{path}:{line}: {message.text}"
    return f"{path}: {message.text}"


class LoggingSink:
    """Default sink: logs every diagnostic and continues on warnings.

    Parameters
    ----------
    continue_on_warning : bool
        Decision returned for warning kinds, default True
    """

    def __init__(self, continue_on_warning: bool = True):
        self.continue_on_warning = continue_on_warning

    def __call__(self, message: Message, path: Union[str, Path], line: Optional[int]) -> bool:
        text = format_diagnostic(message, path, line)
        extra = {"diagnostic": message.name, "gcode_line": line}
        if message.is_warning:
            logger.warning(text, extra=extra)
            return self.continue_on_warning
        logger.error(text, extra=extra)
        return False
