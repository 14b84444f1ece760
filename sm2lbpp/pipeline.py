"""End-to-end post-processing of one G-code file.

Runs the whole chain for a single file, synchronously:
    1. Read the file into memory
    2. Tokenize + interpret → powered paths (stop early if already processed)
    3. Check the file_total_lines metadata (warnings go to the sink)
    4. Lay out, rasterize, composite → RGBA preview
    5. Encode PNG
    6. Rewrite the file atomically with marker, metadata and thumbnail

The target file is only touched in step 6, after the preview exists.

Public API:
    outcome = process_file("job.nc")                  # LoggingSink, defaults
    outcome = process_file("job.nc", sink=my_sink, cfg=cfg)
    result = scan(data, cfg)                          # steps 2 only

Used by:
    - CLI: sm2lbpp FILE
    - Tests: scan() for geometry checks without touching files
"""

import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .diagnostics import AllocationError, DiagnosticSink, LoggingSink, Message, PostProcessError
from .gcode.interpreter import MotionInterpreter
from .gcode.tokenizer import Tokenizer
from .patcher import Splice, corrected_total_lines, patch_file
from .preview.encode import encode_png
from .preview.raster import render_preview
from .preview.shape import GeometryBuilder, MotionBounds, PointStore, Shape, StrokeStyle
from .utils import fs
from .utils.validators import PreviewConfigV1

logger = logging.getLogger(__name__)


class Outcome(enum.Enum):
    """Result of process_file()."""
    REWRITTEN = "rewritten"
    UNCHANGED = "unchanged"
    ABORTED = "aborted"
    FAILED = "failed"

    @property
    def ok(self) -> bool:
        return self in (Outcome.REWRITTEN, Outcome.UNCHANGED)


@dataclass
class ScanResult:
    """Everything the scan pass produced for one buffer."""
    tokenizer: Tokenizer
    interpreter: MotionInterpreter
    shape: Shape

    @property
    def store(self) -> Optional[PointStore]:
        return self.interpreter.builder.store

    @property
    def bounds(self) -> MotionBounds:
        return self.interpreter.bounds

    @property
    def already_processed(self) -> bool:
        return self.tokenizer.stop_reason is not None


def scan(data: bytes, cfg: Optional[PreviewConfigV1] = None) -> ScanResult:
    """Tokenize and interpret a G-code buffer.

    Parameters
    ----------
    data : bytes
        File content
    cfg : Optional[PreviewConfigV1]
        Preview config (stroke style, point store sizing), defaults if None

    Returns
    -------
    ScanResult

    Raises
    ------
    AllocationError
        If the point store cannot grow (line number attached)
    """
    cfg = cfg or PreviewConfigV1()
    builder = GeometryBuilder(
        style=StrokeStyle(width=cfg.stroke.width_mm, color_rgba=cfg.stroke.color_rgba),
        initial_points=cfg.point_store.initial_points,
        max_grow_points=cfg.point_store.max_grow_points,
    )
    tokenizer = Tokenizer(data)
    interpreter = MotionInterpreter(builder)

    try:
        for command in tokenizer.commands():
            interpreter.execute(command)
    except MemoryError as e:
        raise AllocationError("Out of memory while parsing", line=tokenizer.line_number) from e
    except PostProcessError as e:
        if e.line is None:
            e.line = tokenizer.line_number
        raise

    shape = builder.finish()
    logger.debug(f"Scan summary: {interpreter.summary()}")
    return ScanResult(tokenizer=tokenizer, interpreter=interpreter, shape=shape)


def _check_metadata(
    result: ScanResult,
    path: Path,
    sink: DiagnosticSink
) -> bool:
    """Report missing/incomplete file_total_lines; False means abort."""
    tokenizer = result.tokenizer
    if tokenizer.total_lines_value is None:
        if not sink(Message.WARN_NO_TOTAL_LINES, path, None):
            return False
    if tokenizer.total_lines_line is None:
        if not sink(Message.WARN_NO_TOTAL_LINES_LINE, path, tokenizer.total_lines_line_number):
            return False
    return True


def process_file(
    path: Union[str, Path],
    sink: Optional[DiagnosticSink] = None,
    cfg: Optional[PreviewConfigV1] = None
) -> Outcome:
    """Add a preview thumbnail to a G-code file in place.

    Parameters
    ----------
    path : Union[str, Path]
        G-code file to rewrite
    sink : Optional[DiagnosticSink]
        Receives diagnostics; LoggingSink() if None
    cfg : Optional[PreviewConfigV1]
        Preview configuration; defaults if None

    Returns
    -------
    Outcome
        REWRITTEN, UNCHANGED (empty or already processed), ABORTED (sink
        declined a warning) or FAILED (fatal error, reported once via sink)
    """
    path = Path(path)
    sink = sink if sink is not None else LoggingSink()
    cfg = cfg or PreviewConfigV1()

    try:
        data = fs.read_bytes(path)
        if not data:
            logger.info(f"{path} is empty, nothing to do")
            return Outcome.UNCHANGED

        result = scan(data, cfg)
        if result.already_processed:
            logger.info(
                f"{path} already has a preview ({result.tokenizer.stop_reason.value}), left unchanged"
            )
            return Outcome.UNCHANGED

        if not _check_metadata(result, path, sink):
            logger.info(f"Processing of {path} aborted")
            return Outcome.ABORTED

        image = render_preview(result.shape, result.store, result.bounds, cfg)
        png = encode_png(image, (cfg.image.width_px, cfg.image.height_px))

        patch_file(
            path,
            data,
            Splice.from_tokenizer(result.tokenizer),
            corrected_total_lines(result.tokenizer),
            png,
        )
    except MemoryError:
        logger.debug("Allocation failure", exc_info=True)
        sink(AllocationError.message, path, None)
        return Outcome.FAILED
    except PostProcessError as e:
        logger.debug(f"{type(e).__name__}: {e}", exc_info=True)
        sink(e.message, path, e.line)
        return Outcome.FAILED

    return Outcome.REWRITTEN
