"""Motion interpreter for powered-path extraction.

Consumes Commands from the tokenizer and tracks only what the preview needs:
    - Positioning mode (G90 absolute, G91 relative)
    - Laser power (M3 P<percent> or M3 S<0..255>, M5 off)
    - Current X/Y (None until first assigned)
    - Bounds of coordinates visited while the laser is on with power > 0

Linear moves (G0, G1) with the laser powered extend the current path in the
GeometryBuilder; the first unpowered move after a powered run finalizes it.
All other commands are ignored.

Usage:
    interpreter = MotionInterpreter(builder)
    for command in tokenizer.commands():
        interpreter.execute(command)
    shape = builder.finish()
"""

import logging
from typing import Any, Dict, Optional

from ..preview.shape import GeometryBuilder, MotionBounds
from .tokenizer import Command

logger = logging.getLogger(__name__)


class MotionInterpreter:
    """Powered/unpowered motion tracker.

    Parameters
    ----------
    builder : GeometryBuilder
        Receives points and path boundaries

    Attributes
    ----------
    absolute_mode : bool
        G90=absolute (default), G91=relative
    power : float
        Laser power in percent, 0 by default
    laser_on : bool
        Set by M3, cleared by M5
    x, y : Optional[float]
        Current position; None until first assigned
    bounds : MotionBounds
        Coordinates visited while drawing
    """

    def __init__(self, builder: GeometryBuilder):
        self.builder = builder
        self.absolute_mode = True
        self.power = 0.0
        self.laser_on = False
        self.x: Optional[float] = None
        self.y: Optional[float] = None
        self.prev_powered = False
        self.bounds = MotionBounds()
        self.move_count = 0

    @property
    def is_powered(self) -> bool:
        return self.laser_on and self.power > 0.0

    def execute(self, command: Command) -> None:
        """Apply one command to the motion state."""
        if command.letter == 'G':
            if command.number in (0, 1):
                self._linear_move(command)
            elif command.number == 90:
                self.absolute_mode = True
            elif command.number == 91:
                self.absolute_mode = False
        elif command.letter == 'M':
            if command.number == 3:
                self._laser_on(command)
            elif command.number == 5:
                self.power = 0.0
                self.laser_on = False

    def _laser_on(self, command: Command) -> None:
        p = command.get('P')
        s = command.get('S')
        if p is not None:
            self.power = p
        elif s is not None:
            self.power = (s * 100.0) / 255.0
        self.laser_on = True

    @staticmethod
    def _advance(current: Optional[float], value: Optional[float], absolute: bool) -> Optional[float]:
        if value is None:
            return current
        if absolute:
            return value
        # Unset stays unset under relative increments
        return None if current is None else current + value

    def _linear_move(self, command: Command) -> None:
        param_x = command.get('X')
        param_y = command.get('Y')
        powered = self.is_powered
        self.move_count += 1

        if powered and not self.prev_powered:
            # Powered move after non-powered move: anchor at current position,
            # an axis never assigned so far is still at the machine origin
            anchor_x = self.x if self.x is not None else 0.0
            anchor_y = self.y if self.y is not None else 0.0
            self.bounds.include_x(anchor_x)
            self.bounds.include_y(anchor_y)
            self.builder.append(anchor_x, anchor_y)
            self.prev_powered = True

        self.x = self._advance(self.x, param_x, self.absolute_mode)
        self.y = self._advance(self.y, param_y, self.absolute_mode)

        if powered:
            # Only recorded points extend the bounds
            if self.x is not None and self.y is not None:
                self.bounds.include_x(self.x)
                self.bounds.include_y(self.y)
                self.builder.append_line_as_curve(self.x, self.y)
        elif self.prev_powered:
            # Non-powered move after powered move: close the run
            path = self.builder.finalize_path()
            if path is None:
                logger.debug(f"{command.line}: discarded powered run with <= 1 point")
            self.prev_powered = False

    def summary(self) -> Dict[str, Any]:
        """Snapshot of the motion state for logging and tests."""
        store = self.builder.store
        return {
            'absolute_mode': self.absolute_mode,
            'power': self.power,
            'laser_on': self.laser_on,
            'position': (self.x, self.y),
            'bounds': None if self.bounds.is_empty else (
                self.bounds.min_x, self.bounds.min_y, self.bounds.max_x, self.bounds.max_y
            ),
            'move_count': self.move_count,
            'path_count': len(self.builder.shape.paths),
            'point_count': store.size if store is not None else 0,
        }
