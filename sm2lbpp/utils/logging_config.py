"""Unified logging configuration for the post-processor.

Provides consistent logging for the CLI and library callers:
    - Console handler (stderr) and optional file handler
    - JSON lines mode for the log file
    - Contextual fields (app, file) on every record
    - Diagnostic fields (diagnostic kind, G-code line) on sink records
    - Warning capture (Python warnings → logging)

Public API:
    setup_logging(log_level="INFO", context={"app": "sm2lbpp"})
    with logging_context(file="job.nc"):
        ...
    push_context(file="job.nc") / pop_context(["file"])

Format examples:
    Human: 2026-10-19T13:45:12.345Z | WARNING  | app=sm2lbpp file=job.nc | job.nc: Warning: ...
    JSON:  {"t": "2026-10-19T13:45:12.345+00:00", "lvl": "WARNING", "app": "sm2lbpp",
            "diagnostic": "WARN_NO_TOTAL_LINES", "msg": "..."}

Context lives in a contextvar, so concurrent callers do not see each
other's fields. setup_logging() is idempotent.
"""

import contextlib
import contextvars
import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

_context_var: contextvars.ContextVar = contextvars.ContextVar('sm2lbpp_log_context', default={})

# Handlers owned by setup_logging(); replaced on every call
_installed_handlers: List[logging.Handler] = []

# Record attributes set through ``extra=`` by the diagnostic sink
DIAGNOSTIC_FIELDS = ('diagnostic', 'gcode_line')

_LEVEL_COLORS = {
    'DEBUG': '\033[36m',
    'INFO': '\033[32m',
    'WARNING': '\033[33m',
    'ERROR': '\033[31m',
    'CRITICAL': '\033[35m',
}
_RESET = '\033[0m'


class ContextFormatter(logging.Formatter):
    """Formatter adding contextual and diagnostic fields.

    Parameters
    ----------
    fmt_mode : str
        "human" or "json"
    use_color : bool
        ANSI level colors (human mode, only on a TTY)
    tz : str
        "UTC" or "local"
    """

    def __init__(self, fmt_mode: str = "human", use_color: bool = True, tz: str = "UTC"):
        super().__init__()
        if fmt_mode not in ("human", "json"):
            raise ValueError(f"Unknown log format: {fmt_mode}. Use 'human' or 'json'.")
        self.fmt_mode = fmt_mode
        self.use_color = use_color and sys.stderr.isatty()
        self.tz = tz

    def _timestamp(self, record: logging.LogRecord) -> datetime:
        if self.tz == "UTC":
            return datetime.fromtimestamp(record.created, tz=timezone.utc)
        return datetime.fromtimestamp(record.created)

    def format(self, record: logging.LogRecord) -> str:
        context = _context_var.get()
        if self.fmt_mode == "json":
            return self._format_json(record, context)
        return self._format_human(record, context)

    def _format_json(self, record: logging.LogRecord, context: Dict[str, Any]) -> str:
        entry = {
            't': self._timestamp(record).isoformat(),
            'lvl': record.levelname,
            'name': record.name,
            'pid': os.getpid(),
        }
        entry.update(context)
        for key in DIAGNOSTIC_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        entry['msg'] = record.getMessage()
        if record.exc_info:
            entry['exc'] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)

    def _format_human(self, record: logging.LogRecord, context: Dict[str, Any]) -> str:
        ts = self._timestamp(record).strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3] + 'Z'
        level = f"{record.levelname:8s}"
        if self.use_color:
            level = f"{_LEVEL_COLORS.get(record.levelname, '')}{level}{_RESET}"

        fields = [ts, level]
        if context:
            fields.append(' '.join(f"{k}={v}" for k, v in context.items()))
        fields.append(record.getMessage())
        line = ' | '.join(fields)

        if record.exc_info:
            line += '\n' + self.formatException(record.exc_info)
        return line


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    *,
    json: bool = False,
    color: bool = True,
    to_stderr: bool = True,
    tz: str = "UTC",
    capture_warnings: bool = True,
    quiet_libs: Optional[List[str]] = None,
    context: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Configure the root logger (idempotent).

    Parameters
    ----------
    log_level : str
        "DEBUG", "INFO", "WARNING", "ERROR" or "CRITICAL"
    log_file : str, optional
        Also log to this file (parent directory is created)
    json : bool
        JSON lines in the log file, default False
    color : bool
        ANSI colors on the console, default True
    to_stderr : bool
        Console handler on stderr, default True
    tz : str
        "UTC" (default) or "local" timestamps
    capture_warnings : bool
        Route Python warnings to logging, default True
    quiet_libs : list[str], optional
        Loggers to raise to WARNING (e.g. ["PIL"])
    context : dict, optional
        Initial contextual fields (e.g. {"app": "sm2lbpp"})

    Returns
    -------
    dict
        {"handlers": [...]} installed by this call
    """
    root = logging.getLogger()
    for handler in _installed_handlers:
        root.removeHandler(handler)
        handler.close()
    _installed_handlers.clear()

    root.setLevel(getattr(logging, log_level.upper()))

    if to_stderr:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(ContextFormatter("human", color, tz))
        _installed_handlers.append(console)
    if log_file:
        _installed_handlers.append(_create_file_handler(log_file, json, tz))
    for handler in _installed_handlers:
        root.addHandler(handler)

    if context:
        push_context(**context)

    for lib in quiet_libs or []:
        logging.getLogger(lib).setLevel(logging.WARNING)

    if capture_warnings:
        logging.captureWarnings(True)

    return {'handlers': list(_installed_handlers)}


def _create_file_handler(log_file: str, json_format: bool, tz: str) -> logging.Handler:
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(ContextFormatter("json" if json_format else "human", use_color=False, tz=tz))
    return handler


def push_context(**kwargs) -> None:
    """Add contextual fields to all subsequent log records.

    Examples
    --------
    >>> push_context(app="sm2lbpp")
    >>> logger.info("Started")  # → "... | app=sm2lbpp | Started"
    """
    _context_var.set({**_context_var.get(), **kwargs})


def pop_context(keys: Optional[List[str]] = None) -> None:
    """Remove contextual fields; all of them if keys is None."""
    if keys is None:
        _context_var.set({})
        return
    remaining = {k: v for k, v in _context_var.get().items() if k not in keys}
    _context_var.set(remaining)


@contextlib.contextmanager
def logging_context(**kwargs) -> Iterator[None]:
    """Scope contextual fields to a block; previous fields are restored after."""
    token = _context_var.set({**_context_var.get(), **kwargs})
    try:
        yield
    finally:
        _context_var.reset(token)


def get_context() -> Dict[str, Any]:
    """Return a copy of the active contextual fields."""
    return dict(_context_var.get())
