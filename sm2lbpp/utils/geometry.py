"""Geometric operations for preview paths.

Provides:
    - Straight line → cubic Bézier control points
    - Cubic Bézier evaluation and adaptive flattening
    - Polyline bounding box

Used by:
    - Geometry builder: line segments stored as cubic curves
    - Rasterizer: Bézier → polyline for drawing
    - Layout: path bounds from segment vertices

All coordinates are plain float pairs or numpy arrays of shape (..., 2).
Units are whatever the caller uses (workspace mm before layout, pixels
inside the rasterizer).
"""

from typing import Tuple

import numpy as np


def line_as_cubic(
    x0: float,
    y0: float,
    x1: float,
    y1: float
) -> Tuple[Tuple[float, float], Tuple[float, float], Tuple[float, float]]:
    """Control points of a cubic Bézier that traces a straight line.

    Parameters
    ----------
    x0, y0 : float
        Start point
    x1, y1 : float
        End point

    Returns
    -------
    Tuple of three (x, y) points
        First control point, second control point, end point

    Notes
    -----
    Placing the controls at 1/3 and 2/3 of the chord keeps the curve
    parametrization uniform, so the cubic is exactly the segment.
    """
    dx = x1 - x0
    dy = y1 - y0
    return (
        (x0 + dx / 3.0, y0 + dy / 3.0),
        (x1 - dx / 3.0, y1 - dy / 3.0),
        (x1, y1),
    )


def bezier_cubic_eval(
    p1: np.ndarray,
    p2: np.ndarray,
    p3: np.ndarray,
    p4: np.ndarray,
    t: np.ndarray
) -> np.ndarray:
    """Evaluate cubic Bézier curve at parameter t.

    Parameters
    ----------
    p1, p2, p3, p4 : np.ndarray
        Control points, shape (2,)
    t : np.ndarray
        Parameter values in [0, 1], shape (N,)

    Returns
    -------
    np.ndarray
        Points on curve, shape (N, 2)

    Notes
    -----
    B(t) = (1-t)³·p1 + 3(1-t)²t·p2 + 3(1-t)t²·p3 + t³·p4
    """
    t = np.atleast_1d(np.asarray(t, dtype=np.float64))[:, None]
    one_minus_t = 1.0 - t

    b0 = one_minus_t ** 3
    b1 = 3.0 * (one_minus_t ** 2) * t
    b2 = 3.0 * one_minus_t * (t ** 2)
    b3 = t ** 3

    return (
        b0 * np.asarray(p1, dtype=np.float64)
        + b1 * np.asarray(p2, dtype=np.float64)
        + b2 * np.asarray(p3, dtype=np.float64)
        + b3 * np.asarray(p4, dtype=np.float64)
    )


def bezier_cubic_polyline(
    p1: np.ndarray,
    p2: np.ndarray,
    p3: np.ndarray,
    p4: np.ndarray,
    max_err: float = 0.25,
    max_depth: int = 12
) -> np.ndarray:
    """Flatten cubic Bézier to polyline via adaptive subdivision.

    Parameters
    ----------
    p1, p2, p3, p4 : np.ndarray
        Control points, shape (2,)
    max_err : float
        Maximum allowed deviation, default 0.25
    max_depth : int
        Maximum recursion depth, default 12

    Returns
    -------
    np.ndarray
        Polyline vertices, shape (N, 2), N ≥ 2, first = p1, last = p4

    Notes
    -----
    Flatness criterion: distance of both inner control points to the chord.
    Curves produced by line_as_cubic are flat and return [p1, p4] directly.
    """
    def subdivide(q1, q2, q3, q4, depth):
        if depth >= max_depth:
            return [q1, q4]

        chord = q4 - q1
        chord_len = float(np.hypot(chord[0], chord[1]))
        if chord_len < 1e-12:
            # Degenerate chord: use distance to the start point
            d2 = float(np.hypot(*(q2 - q1)))
            d3 = float(np.hypot(*(q3 - q1)))
        else:
            v2 = q2 - q1
            v3 = q3 - q1
            d2 = abs(v2[0] * chord[1] - v2[1] * chord[0]) / chord_len
            d3 = abs(v3[0] * chord[1] - v3[1] * chord[0]) / chord_len

        if max(d2, d3) <= max_err:
            return [q1, q4]

        # De Casteljau subdivision at t=0.5
        q12 = (q1 + q2) / 2.0
        q23 = (q2 + q3) / 2.0
        q34 = (q3 + q4) / 2.0
        q123 = (q12 + q23) / 2.0
        q234 = (q23 + q34) / 2.0
        q1234 = (q123 + q234) / 2.0

        left = subdivide(q1, q12, q123, q1234, depth + 1)
        right = subdivide(q1234, q234, q34, q4, depth + 1)
        return left[:-1] + right

    pts = [np.asarray(p, dtype=np.float64) for p in (p1, p2, p3, p4)]
    return np.stack(subdivide(*pts, depth=0), axis=0)


def polyline_bbox(points: np.ndarray) -> Tuple[float, float, float, float]:
    """Compute axis-aligned bounding box of polyline.

    Parameters
    ----------
    points : np.ndarray
        Polyline vertices, shape (N, 2)

    Returns
    -------
    Tuple[float, float, float, float]
        (xmin, ymin, xmax, ymax); (0, 0, 0, 0) if no points
    """
    points = np.asarray(points, dtype=np.float64)
    if points.shape[0] == 0:
        return (0.0, 0.0, 0.0, 0.0)

    xmin, ymin = points.min(axis=0)
    xmax, ymax = points.max(axis=0)
    return (float(xmin), float(ymin), float(xmax), float(ymax))
