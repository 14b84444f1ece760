"""Rasterization and background compositing of the preview shape.

Pipeline:
    1. Flatten every cubic segment to a polyline in pixel space
    2. Draw anti-aliased strokes into an alpha mask (OpenCV, sub-pixel shift)
    3. Build the RGBA stroke buffer (row 0 = workspace y at the bottom)
    4. Composite over the opaque background: out = bg + (fg - bg)·(alpha/255)
    5. Reverse the rows so the image is top-down for the PNG encoder

Coordinate frames:
    - Workspace: G-code frame, +Y up
    - Raster buffer: row index grows with workspace Y (bottom-up image)
    - Output image: row 0 is the top edge
"""

import logging
from typing import Optional, Tuple

import cv2
import numpy as np

from ..diagnostics import AllocationError
from ..utils import geometry
from ..utils.validators import PreviewConfigV1
from .layout import Layout, normalize
from .shape import MotionBounds, PointStore, Shape

logger = logging.getLogger(__name__)

# Fixed-point fraction bits for cv2 sub-pixel coordinates
_SHIFT = 4


def _allocate(shape: Tuple[int, ...]) -> np.ndarray:
    try:
        return np.zeros(shape, dtype=np.uint8)
    except MemoryError as e:
        raise AllocationError(f"Failed to allocate image buffer {shape}") from e


def stroke_thickness_px(stroke_width: float, scale: float) -> int:
    """Stroke width in whole pixels, at least 1."""
    return max(1, int(round(stroke_width * scale)))


def flatten_path(curves, layout: Layout, max_err_px: float) -> np.ndarray:
    """Flatten cubic control quadruples into one pixel-space polyline."""
    vertices = []
    for curve in curves:
        p1, p2, p3, p4 = layout.apply(curve)
        poly = geometry.bezier_cubic_polyline(p1, p2, p3, p4, max_err=max_err_px)
        vertices.append(poly if not vertices else poly[1:])
    return np.concatenate(vertices, axis=0)


def rasterize(
    shape: Shape,
    store: PointStore,
    layout: Layout,
    size_px: Tuple[int, int],
    max_err_px: float = 0.25
) -> np.ndarray:
    """Draw all paths of the shape.

    Parameters
    ----------
    shape : Shape
        Finalized paths and stroke style
    store : PointStore
        Point store the path spans refer to
    layout : Layout
        Workspace → pixel transform
    size_px : Tuple[int, int]
        (width, height) of the canvas
    max_err_px : float
        Curve flattening tolerance in pixels

    Returns
    -------
    np.ndarray
        RGBA uint8, shape (H, W, 4), bottom-up row order; undrawn pixels
        are (0, 0, 0, 0)
    """
    width_px, height_px = size_px
    mask = _allocate((height_px, width_px))
    thickness = stroke_thickness_px(shape.style.width, layout.scale)

    polylines = []
    for path in shape.paths:
        pts = flatten_path(path.curves(store), layout, max_err_px)
        # Pixel i covers [i, i + 1); OpenCV samples at integer centers
        pts = np.round((pts - 0.5) * (1 << _SHIFT)).astype(np.int32)
        polylines.append(pts.reshape(-1, 1, 2))

    if polylines:
        cv2.polylines(mask, polylines, False, 255, thickness, cv2.LINE_AA, _SHIFT)

    r, g, b, a = shape.style.color_rgba
    rgba = _allocate((height_px, width_px, 4))
    drawn = mask > 0
    rgba[drawn, 0] = r
    rgba[drawn, 1] = g
    rgba[drawn, 2] = b
    rgba[..., 3] = (mask.astype(np.uint16) * a // 255).astype(np.uint8)
    return rgba


def composite_over(rgba: np.ndarray, background_rgb: Tuple[int, int, int]) -> np.ndarray:
    """Alpha-blend the buffer over an opaque background color.

    Parameters
    ----------
    rgba : np.ndarray
        RGBA uint8, shape (H, W, 4)
    background_rgb : Tuple[int, int, int]
        Background color

    Returns
    -------
    np.ndarray
        RGBA uint8 with alpha 255 everywhere

    Notes
    -----
    out = bg + (fg - bg)·(alpha/255), rounded half up, clamped to [0, 255].
    """
    alpha = rgba[..., 3:4].astype(np.float64) / 255.0
    bg = np.asarray(background_rgb, dtype=np.float64)
    blended = bg + (rgba[..., :3].astype(np.float64) - bg) * alpha
    out = np.empty_like(rgba)
    out[..., :3] = np.clip(np.floor(blended + 0.5), 0, 255).astype(np.uint8)
    out[..., 3] = 255
    return out


def background_canvas(size_px: Tuple[int, int], background_rgb: Tuple[int, int, int]) -> np.ndarray:
    """Flat opaque canvas in the background color."""
    width_px, height_px = size_px
    canvas = _allocate((height_px, width_px, 4))
    canvas[..., :3] = background_rgb
    canvas[..., 3] = 255
    return canvas


def render_preview(
    shape: Shape,
    store: Optional[PointStore],
    bounds: MotionBounds,
    cfg: PreviewConfigV1
) -> np.ndarray:
    """Lay out, rasterize, composite and flip the shape.

    Returns
    -------
    np.ndarray
        Top-down RGBA uint8 image, shape (height_px, width_px, 4), opaque
    """
    size_px = (cfg.image.width_px, cfg.image.height_px)
    layout = normalize(
        shape, store, bounds, (cfg.border_mm.x, cfg.border_mm.y), size_px
    )
    if layout is None:
        logger.info("No powered moves found, preview is blank")
        return background_canvas(size_px, cfg.background_rgb)

    rgba = rasterize(shape, store, layout, size_px, cfg.flatten_tol_px)
    image = composite_over(rgba, cfg.background_rgb)
    return np.ascontiguousarray(image[::-1])
