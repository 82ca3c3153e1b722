"""Probed height maps, their persistence and renderer geometry."""

from .codec import CodecOptions, dumps, load, loads, save
from .errors import (
    DegenerateAreaError,
    GridTooLargeError,
    GridTooSmallError,
    HeightMapError,
    IndexOutOfRangeError,
    MalformedDocumentError,
    NoActiveHeightMapError,
    UnprobedNeighborError,
)
from .heightmap import MAX_POINTS, HeightMap, PointUpdate, grid_size, normalize_bounds
from .mesh import preview_border, preview_for_spacing, preview_points, surface_quads
from .vector import EQUALITY_TOLERANCE, Vector2

__all__ = [
    "Vector2",
    "EQUALITY_TOLERANCE",
    "HeightMap",
    "MAX_POINTS",
    "PointUpdate",
    "grid_size",
    "normalize_bounds",
    "CodecOptions",
    "dumps",
    "loads",
    "save",
    "load",
    "surface_quads",
    "preview_points",
    "preview_border",
    "preview_for_spacing",
    "HeightMapError",
    "DegenerateAreaError",
    "GridTooSmallError",
    "GridTooLargeError",
    "IndexOutOfRangeError",
    "UnprobedNeighborError",
    "MalformedDocumentError",
    "NoActiveHeightMapError",
]
