"""sm2lbpp: Snapmaker 2.0 preview post-processor for LightBurn G-code.

Reads a laser G-code file, traces every move made with the laser powered,
renders the traced paths into a small PNG and embeds it in the file as the
``;thumbnail:`` comment the Snapmaker 2.0 terminal shows as job preview.

Architecture layers (strict one-way dependency):
    cli → pipeline → {patcher, preview/, gcode/} → {diagnostics, utils/}

Key invariants:
    - The input is read once and scanned in a single forward pass
    - Bytes outside the replaced metadata line are preserved exactly
    - The target file is only written after the preview exists, atomically
    - Already processed files are never modified
"""

from .version import __version__
from .pipeline import Outcome, process_file, scan

__all__ = ["__version__", "Outcome", "process_file", "scan"]
