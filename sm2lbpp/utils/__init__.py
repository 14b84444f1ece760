"""Cross-cutting utilities (lowest dependency layer).

This package provides shared primitives for:
    - Config validation (validators)
    - Bezier and polyline geometry (geometry)
    - File I/O and atomic rewrite (fs)
    - Unified logging (logging_config)

No module in utils/ may import from gcode/, preview/ or the pipeline.

Convenience imports:
    from sm2lbpp.utils import fs, geometry, validators
    from sm2lbpp.utils.logging_config import setup_logging, logging_context
"""

# Re-export commonly used modules for convenience
from . import fs
from . import geometry
from . import logging_config
from . import validators
