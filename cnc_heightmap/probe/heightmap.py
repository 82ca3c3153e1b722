"""Probed surface height map with bilinear height lookup."""

from __future__ import annotations

import math
import operator
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
from pydantic import BaseModel, ConfigDict

from cnc_heightmap._logging import get_logger
from cnc_heightmap.probe.errors import (
    DegenerateAreaError,
    GridTooLargeError,
    GridTooSmallError,
    IndexOutOfRangeError,
    UnprobedNeighborError,
)
from cnc_heightmap.probe.vector import Vector2


_LOGGER = get_logger(__name__)

# Fractional grid coordinates this close to an integer are treated as a node.
_SNAP_TOLERANCE = 1e-9

# Upper bound on size_x * size_y; one point per square millimetre over a 1 m bed.
MAX_POINTS = 1_000_000

PointLike = Union[Vector2, Sequence[float]]
GridIndex = Tuple[int, int]


class PointUpdate(BaseModel):
    """Event delivered to subscribers after a height was recorded."""

    x: int
    y: int
    height: float

    model_config = ConfigDict(frozen=True)


PointCallback = Callable[[PointUpdate], None]


def grid_size(spacing: float, lower: float, upper: float) -> int:
    """Number of points needed so that ``spacing`` is never exceeded."""

    step = float(spacing)
    if not math.isfinite(step) or step <= 0:
        raise ValueError("Grid spacing must be a positive number")
    intervals = abs(float(upper) - float(lower)) / step
    if not math.isfinite(intervals) or intervals >= MAX_POINTS:
        raise GridTooLargeError(
            f"Spacing {step!r} over {abs(float(upper) - float(lower))!r} exceeds {MAX_POINTS} points"
        )
    return int(math.ceil(intervals)) + 1


def normalize_bounds(min_pt: PointLike, max_pt: PointLike) -> Tuple[Vector2, Vector2]:
    """Return ``(min, max)`` with each axis ordered ascending."""

    a = Vector2.coerce(min_pt)
    b = Vector2.coerce(max_pt)
    return Vector2(min(a.x, b.x), min(a.y, b.y)), Vector2(max(a.x, b.x), max(a.y, b.y))


def _checked_area(min_pt: PointLike, max_pt: PointLike) -> Tuple[Vector2, Vector2]:
    lower, upper = normalize_bounds(min_pt, max_pt)
    if not all(math.isfinite(v) for v in (*lower.as_tuple(), *upper.as_tuple())):
        raise ValueError("Height map bounds must be finite")
    if lower.x == upper.x or lower.y == upper.y:
        raise DegenerateAreaError("Height map area must have non-zero width and height")
    return lower, upper


class HeightMap:
    """Rectangular grid of optionally probed surface heights.

    Points are indexed ``[x][y]`` with ``x`` in ``range(size_x)`` and ``y`` in
    ``range(size_y)``. A cell holds ``None`` until :meth:`set_height` records
    a value for it. The map is not thread-safe; share it through
    :class:`cnc_heightmap.core.state.HeightMapStore` when several producers
    record points.
    """

    def __init__(
        self,
        size_x: int,
        size_y: int,
        min_pt: PointLike,
        max_pt: PointLike,
        z_offset: float = 0.0,
    ) -> None:
        """Allocate an empty map with explicit point counts."""

        lower, upper = _checked_area(min_pt, max_pt)

        size_x = int(size_x)
        size_y = int(size_y)
        if size_x < 2 or size_y < 2:
            raise GridTooSmallError(
                f"Height map needs at least 2 points per axis, got {size_x}x{size_y}"
            )
        if size_x * size_y > MAX_POINTS:
            raise GridTooLargeError(
                f"Height map of {size_x}x{size_y} points exceeds the limit of {MAX_POINTS}"
            )

        self._min = lower
        self._max = upper
        self._size_x = size_x
        self._size_y = size_y
        self._points: List[List[Optional[float]]] = [[None] * size_y for _ in range(size_x)]
        # Insertion-ordered dict used as an ordered set of grid indices.
        self._not_probed: Dict[GridIndex, None] = {}
        self._min_height = math.inf
        self._max_height = -math.inf
        self._z_offset = 0.0
        self._subscribers: List[PointCallback] = []

        self.z_offset = z_offset
        self.rebuild_not_probed()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        spacing_x: float,
        spacing_y: float,
        min_pt: PointLike,
        max_pt: PointLike,
    ) -> "HeightMap":
        """Build a map covering ``min_pt``..``max_pt`` with at most the given spacing."""

        lower, upper = _checked_area(min_pt, max_pt)
        size_x = grid_size(spacing_x, lower.x, upper.x)
        size_y = grid_size(spacing_y, lower.y, upper.y)
        height_map = cls(size_x, size_y, lower, upper)
        _LOGGER.info(
            "Created %dx%d height map over (%.3f, %.3f)-(%.3f, %.3f)",
            size_x,
            size_y,
            lower.x,
            lower.y,
            upper.x,
            upper.y,
        )
        return height_map

    @classmethod
    def create_uniform(cls, spacing: float, min_pt: PointLike, max_pt: PointLike) -> "HeightMap":
        """Same as :meth:`create` with one spacing for both axes."""

        return cls.create(spacing, spacing, min_pt, max_pt)

    def copy(self) -> "HeightMap":
        """Return an independent copy without subscribers."""

        clone = HeightMap(self._size_x, self._size_y, self._min, self._max, self._z_offset)
        clone._points = [list(column) for column in self._points]
        clone._not_probed = dict(self._not_probed)
        clone._min_height = self._min_height
        clone._max_height = self._max_height
        return clone

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------
    @property
    def size_x(self) -> int:
        return self._size_x

    @property
    def size_y(self) -> int:
        return self._size_y

    @property
    def min(self) -> Vector2:
        return self._min

    @property
    def max(self) -> Vector2:
        return self._max

    @property
    def delta(self) -> Vector2:
        return self._max - self._min

    @property
    def grid_x(self) -> float:
        return (self._max.x - self._min.x) / (self._size_x - 1)

    @property
    def grid_y(self) -> float:
        return (self._max.y - self._min.y) / (self._size_y - 1)

    def grid_to_world(self, x: int, y: int) -> Vector2:
        """Machine coordinates of grid index ``(x, y)``."""

        delta = self.delta
        # Rounding may push the last node past max; keep every node inside the bounds.
        return Vector2(
            min(self._min.x + x * (delta.x / (self._size_x - 1)), self._max.x),
            min(self._min.y + y * (delta.y / (self._size_y - 1)), self._max.y),
        )

    # ------------------------------------------------------------------
    # Probing progress
    # ------------------------------------------------------------------
    @property
    def total_points(self) -> int:
        return self._size_x * self._size_y

    @property
    def progress(self) -> int:
        """Number of grid points holding a height."""

        return self.total_points - len(self._not_probed)

    @property
    def not_probed(self) -> List[GridIndex]:
        """Indices still missing a height, in row-major ``(x, y)`` order."""

        return list(self._not_probed)

    @property
    def has_data(self) -> bool:
        return self._max_height >= self._min_height

    @property
    def min_height(self) -> Optional[float]:
        return self._min_height if self.has_data else None

    @property
    def max_height(self) -> Optional[float]:
        return self._max_height if self.has_data else None

    @property
    def z_offset(self) -> float:
        return self._z_offset

    @z_offset.setter
    def z_offset(self, value: float) -> None:
        offset = float(value)
        if not math.isfinite(offset):
            raise ValueError("z_offset must be finite")
        self._z_offset = offset

    @property
    def points(self) -> List[List[Optional[float]]]:
        """Copy of the point matrix indexed ``[x][y]``."""

        return [list(column) for column in self._points]

    def to_array(self) -> np.ndarray:
        """Point matrix as a ``(size_x, size_y)`` float array, NaN where unprobed."""

        return np.array(
            [[np.nan if value is None else value for value in column] for column in self._points],
            dtype=float,
        )

    def rebuild_not_probed(self) -> None:
        """Recompute the not-probed list by scanning the point matrix."""

        self._not_probed = {
            (x, y): None
            for x in range(self._size_x)
            for y in range(self._size_y)
            if self._points[x][y] is None
        }

    # ------------------------------------------------------------------
    # Point access
    # ------------------------------------------------------------------
    def _check_index(self, x: int, y: int) -> GridIndex:
        x, y = operator.index(x), operator.index(y)
        if not (0 <= x < self._size_x and 0 <= y < self._size_y):
            raise IndexOutOfRangeError(
                f"Grid index ({x}, {y}) outside {self._size_x}x{self._size_y} grid"
            )
        return x, y

    def get_height(self, x: int, y: int) -> Optional[float]:
        """Raw recorded height at ``(x, y)`` or ``None`` when not probed."""

        x, y = self._check_index(x, y)
        return self._points[x][y]

    def is_probed(self, x: int, y: int) -> bool:
        return self.get_height(x, y) is not None

    def set_height(self, x: int, y: int, height: float) -> None:
        """Record ``height`` for grid index ``(x, y)`` and notify subscribers."""

        x, y = self._check_index(x, y)
        value = float(height)
        if not math.isfinite(value):
            raise ValueError(f"Height for ({x}, {y}) must be finite, got {height!r}")

        self._points[x][y] = value
        if value > self._max_height:
            self._max_height = value
        if value < self._min_height:
            self._min_height = value
        self._not_probed.pop((x, y), None)

        _LOGGER.debug("Recorded height %.4f at (%d, %d)", value, x, y)
        self._notify(PointUpdate(x=x, y=y, height=value))

    def fill_with(self, surface: Callable[[float, float], float]) -> None:
        """Record ``surface(x, y)`` for every grid point in world coordinates."""

        for x in range(self._size_x):
            for y in range(self._size_y):
                world = self.grid_to_world(x, y)
                self.set_height(x, y, surface(world.x, world.y))

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------
    def subscribe(self, callback: PointCallback) -> PointCallback:
        """Register ``callback`` for point updates and return it."""

        self._subscribers.append(callback)
        return callback

    def unsubscribe(self, callback: PointCallback) -> bool:
        """Remove ``callback``; return ``False`` when it was not registered."""

        try:
            self._subscribers.remove(callback)
        except ValueError:
            return False
        return True

    def _notify(self, event: PointUpdate) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                _LOGGER.exception("Height map subscriber %r raised", callback)

    # ------------------------------------------------------------------
    # Interpolation
    # ------------------------------------------------------------------
    @staticmethod
    def _fraction(value: float, size: int) -> float:
        nearest = round(value)
        if abs(value - nearest) < _SNAP_TOLERANCE:
            value = float(nearest)
        return min(max(value, 0.0), float(size - 1))

    def interpolate_height(self, x: float, y: float) -> float:
        """Bilinear surface height at world point ``(x, y)`` plus ``z_offset``.

        Points outside the bounds return :attr:`max_height` so a tool moving
        past the probed area stays at the highest known level.
        """

        x = float(x)
        y = float(y)
        if not (math.isfinite(x) and math.isfinite(y)):
            raise ValueError("Interpolation coordinates must be finite")

        if not (self._min.x <= x <= self._max.x and self._min.y <= y <= self._max.y):
            if not self.has_data:
                raise UnprobedNeighborError([])
            return self._max_height

        fx = self._fraction((x - self._min.x) / self.grid_x, self._size_x)
        fy = self._fraction((y - self._min.y) / self.grid_y, self._size_y)

        x0, x1 = math.floor(fx), math.ceil(fx)
        y0, y1 = math.floor(fy), math.ceil(fy)
        tx = fx - x0
        ty = fy - y0

        corners = dict.fromkeys([(x0, y0), (x1, y0), (x0, y1), (x1, y1)])
        missing = [index for index in corners if self._points[index[0]][index[1]] is None]
        if missing:
            raise UnprobedNeighborError(missing)

        p = self._points
        top = p[x1][y1] * tx + p[x0][y1] * (1 - tx)
        bottom = p[x1][y0] * tx + p[x0][y0] * (1 - tx)
        return top * ty + bottom * (1 - ty) + self._z_offset

    def __repr__(self) -> str:
        return (
            f"HeightMap(size_x={self._size_x}, size_y={self._size_y}, "
            f"min={self._min.as_tuple()}, max={self._max.as_tuple()}, "
            f"progress={self.progress}/{self.total_points})"
        )


__all__ = [
    "GridIndex",
    "HeightMap",
    "MAX_POINTS",
    "PointCallback",
    "PointUpdate",
    "grid_size",
    "normalize_bounds",
]
