"""Command-line entry point.

Adds a preview thumbnail to a LightBurn G-code file for the Snapmaker 2.0
terminal, rewriting the file in place. Files that already carry a preview
(or were processed before) are left unchanged.

Usage:
    sm2lbpp job.nc
    sm2lbpp job.nc --config configs/preview_v1.yaml --log-level DEBUG
    python -m sm2lbpp job.nc

Exit status:
    0  file rewritten, or left unchanged
    1  fatal error, aborted on a warning, or invalid config
    2  usage error (missing FILE)
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .pipeline import process_file
from .utils.logging_config import logging_context, setup_logging
from .utils.validators import PreviewConfigV1, load_preview_config
from .version import VERSION_STRING

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sm2lbpp",
        description="Add a Snapmaker 2.0 preview thumbnail to LightBurn G-code (in place)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
The file is rewritten atomically with:
  ;post-processed by sm2lbpp <version>
  ;file_total_lines: <N>
  ;thumbnail: data:image/png;base64,...

Examples:
  sm2lbpp job.nc
  sm2lbpp job.nc --config configs/preview_v1.yaml
""",
    )
    parser.add_argument(
        "file",
        type=Path,
        help="G-code file to rewrite in place",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Preview config (preview.v1 YAML); built-in defaults if omitted",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Console log level (default: INFO)",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write logs to this file",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Write the log file as JSON lines",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {VERSION_STRING}",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entrypoint; returns the process exit status."""
    args = build_parser().parse_args(argv)

    setup_logging(
        log_level=args.log_level,
        log_file=args.log_file,
        json=args.json_logs,
        color=sys.stderr.isatty(),
        quiet_libs=["PIL"],
        context={"app": "sm2lbpp"},
    )

    if args.config is not None:
        try:
            cfg = load_preview_config(args.config)
        except (FileNotFoundError, ValueError) as e:
            logger.error(str(e))
            return 1
    else:
        cfg = PreviewConfigV1()

    with logging_context(file=str(args.file)):
        outcome = process_file(args.file, cfg=cfg)

    logger.debug(f"Outcome: {outcome.value}")
    return 0 if outcome.ok else 1


if __name__ == "__main__":
    sys.exit(main())
