"""Layout normalization: fit the drawing onto the fixed thumbnail canvas.

Steps:
    1. Translate all points so the drawing's lower bound sits at the border
    2. Recompute path and shape bounds from segment vertices
    3. Logical size = shape size + 2·border
    4. Uniform scale and centering translation to the pixel canvas

The translation happens in place on the point store. Control points of
straight segments lie on the segment, so vertices alone give exact bounds.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from ..utils import geometry
from .shape import MotionBounds, PointStore, Shape

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Layout:
    """Transform from workspace units to canvas pixels: px = p·scale + t."""
    scale: float
    tx: float
    ty: float
    logical_width: float
    logical_height: float

    def apply(self, points: np.ndarray) -> np.ndarray:
        return points * self.scale + np.array([self.tx, self.ty])


def translate_to_border(
    store: PointStore,
    bounds: MotionBounds,
    border: Tuple[float, float]
) -> None:
    """Shift every point by (-(min_x - border_x), -(min_y - border_y))."""
    offset = np.array([bounds.min_x - border[0], bounds.min_y - border[1]])
    store.points[:] -= offset


def update_bounds(shape: Shape, store: PointStore) -> None:
    """Recompute each path's bounds and the shape's aggregate bounds."""
    for i, path in enumerate(shape.paths):
        path.bounds = geometry.polyline_bbox(path.vertices(store))
        if i == 0:
            shape.bounds = path.bounds
        else:
            shape.bounds = (
                min(shape.bounds[0], path.bounds[0]),
                min(shape.bounds[1], path.bounds[1]),
                max(shape.bounds[2], path.bounds[2]),
                max(shape.bounds[3], path.bounds[3]),
            )


def fit_to_canvas(
    shape: Shape,
    border: Tuple[float, float],
    canvas_px: Tuple[int, int]
) -> Layout:
    """Uniform, aspect-preserving scale plus centering for the canvas.

    Parameters
    ----------
    shape : Shape
        Shape with up-to-date bounds
    border : Tuple[float, float]
        (x, y) clearance in workspace units, both > 0
    canvas_px : Tuple[int, int]
        (width, height) in pixels

    Returns
    -------
    Layout

    Notes
    -----
    The logical canvas starts one border before the shape's lower bound, so
    the drawing is centered even if it does not sit exactly at the border.
    """
    width_px, height_px = canvas_px
    logical_width = (shape.bounds[2] - shape.bounds[0]) + 2.0 * border[0]
    logical_height = (shape.bounds[3] - shape.bounds[1]) + 2.0 * border[1]
    scale = min(width_px / logical_width, height_px / logical_height)
    origin_x = shape.bounds[0] - border[0]
    origin_y = shape.bounds[1] - border[1]
    return Layout(
        scale=scale,
        tx=(width_px - logical_width * scale) / 2.0 - origin_x * scale,
        ty=(height_px - logical_height * scale) / 2.0 - origin_y * scale,
        logical_width=logical_width,
        logical_height=logical_height,
    )


def normalize(
    shape: Shape,
    store: Optional[PointStore],
    bounds: MotionBounds,
    border: Tuple[float, float],
    canvas_px: Tuple[int, int]
) -> Optional[Layout]:
    """Run the whole layout step.

    Returns
    -------
    Optional[Layout]
        None if the shape has no paths (nothing to draw)
    """
    if not shape or store is None:
        return None

    translate_to_border(store, bounds, border)
    update_bounds(shape, store)
    layout = fit_to_canvas(shape, border, canvas_px)
    logger.debug(
        f"Layout: logical {layout.logical_width:.3f}x{layout.logical_height:.3f}, "
        f"scale {layout.scale:.4f}, offset ({layout.tx:.2f}, {layout.ty:.2f})"
    )
    return layout
