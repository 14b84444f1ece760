"""Point store, paths and shape for the powered-move preview.

All points live in one growable numpy array owned by PointStore. Paths never
hold references into that array; they record a (start, count) span that is
resolved against the store whenever the points are needed, so growing the
store (which reallocates) cannot invalidate them.

Layout of a path span (straight segments stored as cubic curves):

    [anchor, c1, c2, p1, c1, c2, p2, ...]   → count = 1 + 3·segments

Usage:
    builder = GeometryBuilder()
    builder.append(0.0, 0.0)
    builder.append_line_as_curve(30.0, 0.0)
    builder.finalize_path()
    builder.shape.paths[0].points(builder.store)
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from ..diagnostics import AllocationError
from ..utils import geometry

logger = logging.getLogger(__name__)

# Defaults: 64 KiB initial and 128 MiB max growth of float pairs
DEFAULT_INITIAL_POINTS = 0x10000 // 8
DEFAULT_MAX_GROW_POINTS = 0x8000000 // 8


class PointStore:
    """Ordered, growable sequence of 2D points.

    Parameters
    ----------
    initial_points : int
        Capacity allocated on creation
    max_grow_points : int
        Capacity doubles until it exceeds this value, then grows by this
        amount per step

    Attributes
    ----------
    start : int
        First point of the subpath that is not finalized yet
    size : int
        Number of points written

    Notes
    -----
    Invariant: 0 <= start <= size <= capacity. Neither cursor moves back.
    """

    def __init__(
        self,
        initial_points: int = DEFAULT_INITIAL_POINTS,
        max_grow_points: int = DEFAULT_MAX_GROW_POINTS
    ):
        self.max_grow_points = max_grow_points
        self.start = 0
        self.size = 0
        try:
            self._data = np.empty((initial_points, 2), dtype=np.float64)
        except MemoryError as e:
            raise AllocationError("Failed to allocate point store") from e

    @property
    def capacity(self) -> int:
        return self._data.shape[0]

    @property
    def open_count(self) -> int:
        """Number of points in the subpath that is still open."""
        return self.size - self.start

    @property
    def points(self) -> np.ndarray:
        """View of all written points, shape (size, 2)."""
        return self._data[:self.size]

    def last(self) -> Tuple[float, float]:
        x, y = self._data[self.size - 1]
        return float(x), float(y)

    def _grow(self) -> None:
        capacity = self.capacity
        if capacity <= self.max_grow_points:
            capacity *= 2
        else:
            capacity += self.max_grow_points
        try:
            grown = np.empty((capacity, 2), dtype=np.float64)
        except MemoryError as e:
            raise AllocationError(f"Failed to grow point store to {capacity} points") from e
        grown[:self.size] = self._data[:self.size]
        self._data = grown
        logger.debug(f"Point store grown to {capacity} points")

    def append(self, x: float, y: float) -> None:
        if self.size >= self.capacity:
            self._grow()
        self._data[self.size] = (x, y)
        self.size += 1

    def cut(self) -> Tuple[int, int]:
        """Close the open subpath and return its (start, count) span."""
        span = (self.start, self.size - self.start)
        self.start = self.size
        return span

    def span(self, start: int, count: int) -> np.ndarray:
        return self._data[start:start + count]


Bounds = Tuple[float, float, float, float]


@dataclass
class MotionBounds:
    """Running min/max of drawn coordinates."""
    min_x: float = math.inf
    min_y: float = math.inf
    max_x: float = -math.inf
    max_y: float = -math.inf

    @property
    def is_empty(self) -> bool:
        return self.min_x > self.max_x or self.min_y > self.max_y

    def include_x(self, x: Optional[float]) -> None:
        if x is not None:
            self.min_x = min(self.min_x, x)
            self.max_x = max(self.max_x, x)

    def include_y(self, y: Optional[float]) -> None:
        if y is not None:
            self.min_y = min(self.min_y, y)
            self.max_y = max(self.max_y, y)


@dataclass
class Path:
    """Contiguous run of powered motion as cubic segments.

    Attributes
    ----------
    start : int
        Index of the first point in the point store
    count : int
        Number of points (1 + 3·segments)
    bounds : Bounds
        (xmin, ymin, xmax, ymax), set by the layout step
    """
    start: int
    count: int
    bounds: Bounds = (0.0, 0.0, 0.0, 0.0)

    @property
    def segment_count(self) -> int:
        return (self.count - 1) // 3

    def points(self, store: PointStore) -> np.ndarray:
        return store.span(self.start, self.count)

    def vertices(self, store: PointStore) -> np.ndarray:
        """Segment end points (every third point, last point included)."""
        return self.points(store)[::3]

    def curves(self, store: PointStore) -> List[np.ndarray]:
        """Cubic control quadruples, each of shape (4, 2)."""
        pts = self.points(store)
        return [pts[i:i + 4] for i in range(0, self.count - 3, 3)]


@dataclass(frozen=True)
class StrokeStyle:
    """Fixed rendering style of the shape (stroked, never filled)."""
    width: float = 0.3
    color_rgba: Tuple[int, int, int, int] = (0, 0, 0, 255)
    filled: bool = False


@dataclass
class Shape:
    """All paths extracted from one file."""
    style: StrokeStyle = field(default_factory=StrokeStyle)
    paths: List[Path] = field(default_factory=list)
    bounds: Bounds = (0.0, 0.0, 0.0, 0.0)

    def __bool__(self) -> bool:
        return bool(self.paths)


class GeometryBuilder:
    """Turns powered line segments into finalized paths.

    Parameters
    ----------
    style : StrokeStyle
        Style attached to the shape
    initial_points, max_grow_points : int
        Point store sizing, see PointStore

    Notes
    -----
    The point store is created on the first append.
    """

    def __init__(
        self,
        style: Optional[StrokeStyle] = None,
        initial_points: int = DEFAULT_INITIAL_POINTS,
        max_grow_points: int = DEFAULT_MAX_GROW_POINTS
    ):
        self.shape = Shape(style=style or StrokeStyle())
        self.store: Optional[PointStore] = None
        self._initial_points = initial_points
        self._max_grow_points = max_grow_points

    @property
    def open_count(self) -> int:
        return self.store.open_count if self.store is not None else 0

    def append(self, x: float, y: float) -> None:
        """Record one point (starts a subpath when nothing is open)."""
        if self.store is None:
            self.store = PointStore(self._initial_points, self._max_grow_points)
        self.store.append(x, y)

    def append_line_as_curve(self, x: float, y: float) -> None:
        """Append a straight segment from the last point to (x, y).

        Raises
        ------
        RuntimeError
            If the open subpath has no start point
        """
        if self.open_count == 0:
            raise RuntimeError("append_line_as_curve() needs an open subpath with a start point")
        x0, y0 = self.store.last()
        for px, py in geometry.line_as_cubic(x0, y0, x, y):
            self.store.append(px, py)

    def finalize_path(self) -> Optional[Path]:
        """Cut the open subpath into a Path if it has more than one point.

        Returns
        -------
        Optional[Path]
            The new path, or None if the run was discarded
        """
        if self.store is None:
            return None
        start, count = self.store.cut()
        if count <= 1:
            return None
        path = Path(start=start, count=count)
        self.shape.paths.append(path)
        return path

    def finish(self) -> Shape:
        """Finalize any open run and return the shape."""
        self.finalize_path()
        logger.debug(
            f"Geometry: {len(self.shape.paths)} paths, "
            f"{self.store.size if self.store is not None else 0} points"
        )
        return self.shape
