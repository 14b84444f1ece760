"""Filesystem operations for the post-processor.

Provides:
    - Whole-file reads with error mapping to diagnostic kinds
    - Atomic rewrites: tmp file → fsync → rename (no truncated originals)
    - YAML loading for configs

The target G-code file is never opened for writing in place. A sibling temp
file receives the new content and replaces the original only once it has been
fully written and flushed to disk.

Usage:
    from sm2lbpp.utils import fs
    data = fs.read_bytes("job.nc")
    with fs.atomic_rewrite("job.nc") as f:
        f.write(b"...")
"""

import contextlib
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, BinaryIO, Dict, Iterator, Union

import yaml

from ..diagnostics import (
    AllocationError,
    FileCreateError,
    FileOpenError,
    FileReadError,
    FileWriteError,
    InputNotFoundError,
)

logger = logging.getLogger(__name__)


def read_bytes(path: Union[str, Path]) -> bytes:
    """Read a whole file into memory.

    Parameters
    ----------
    path : Union[str, Path]
        File to read

    Returns
    -------
    bytes
        File content (may be empty)

    Raises
    ------
    InputNotFoundError
        If the path does not exist
    FileOpenError
        If the file cannot be opened for reading
    FileReadError
        If reading fails after the file was opened
    AllocationError
        If the content does not fit into memory
    """
    path = Path(path)
    if not path.exists():
        raise InputNotFoundError(f"Input file not found: {path}")

    try:
        f = open(path, 'rb')
    except OSError as e:
        raise FileOpenError(f"Failed to open {path} for reading: {e}") from e

    with f:
        try:
            data = f.read()
        except MemoryError as e:
            raise AllocationError(f"File {path} does not fit into memory") from e
        except OSError as e:
            raise FileReadError(f"Failed to read {path}: {e}") from e

    logger.debug(f"Read {len(data)} bytes from {path}")
    return data


@contextlib.contextmanager
def atomic_rewrite(path: Union[str, Path]) -> Iterator[BinaryIO]:
    """Replace a file atomically with the content written inside the block.

    Parameters
    ----------
    path : Union[str, Path]
        File to replace

    Yields
    ------
    BinaryIO
        Binary file object of the temp file

    Raises
    ------
    FileCreateError
        If the temp file cannot be created
    FileWriteError
        If writing, flushing or the final rename fails

    Notes
    -----
    The temp file lives in the same directory so the rename stays on one
    filesystem. Permission bits of an existing target are copied over.
    On any exception the temp file is removed and the target is untouched.
    """
    path = Path(path)

    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
        )
    except OSError as e:
        raise FileCreateError(f"Failed to create temp file next to {path}: {e}") from e

    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, 'wb') as f:
            yield f
            try:
                f.flush()
                os.fsync(f.fileno())
            except OSError as e:
                raise FileWriteError(f"Failed to flush {tmp_path}: {e}") from e

        try:
            if path.exists():
                shutil.copymode(path, tmp_path)
            tmp_path.replace(path)
        except OSError as e:
            raise FileWriteError(f"Failed to replace {path} atomically: {e}") from e
    except BaseException:
        if tmp_path.exists():
            tmp_path.unlink()
        raise

    logger.debug(f"Atomically replaced {path}")


def write_chunk(f: BinaryIO, data: bytes) -> None:
    """Write data, mapping OS failures to FileWriteError."""
    try:
        f.write(data)
    except OSError as e:
        raise FileWriteError(f"Failed to write data: {e}") from e


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """Load YAML file safely.

    Parameters
    ----------
    path : Union[str, Path]
        YAML file path

    Returns
    -------
    Dict[str, Any]
        Parsed YAML content ({} for an empty file)

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    yaml.YAMLError
        If YAML parsing fails
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"YAML file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Failed to parse YAML file {path}: {e}") from e
