"""Exceptions raised by the height map, its codec and its store."""

from __future__ import annotations

from typing import Iterable, List, Tuple


class HeightMapError(Exception):
    """Base exception for height map errors."""


class DegenerateAreaError(HeightMapError, ValueError):
    """Raised when the requested area has zero width or zero height."""


class GridTooSmallError(HeightMapError, ValueError):
    """Raised when an axis would carry fewer than two grid points."""


class GridTooLargeError(HeightMapError, ValueError):
    """Raised when a grid would exceed the supported number of points."""


class IndexOutOfRangeError(HeightMapError, IndexError):
    """Raised when a grid index lies outside ``size_x`` x ``size_y``."""


class UnprobedNeighborError(HeightMapError, LookupError):
    """Raised when interpolation needs a grid point that has no height yet."""

    def __init__(self, missing: Iterable[Tuple[int, int]]) -> None:
        self.missing: List[Tuple[int, int]] = list(missing)
        if self.missing:
            cells = ", ".join(f"({x}, {y})" for x, y in self.missing)
            message = f"Grid points not probed yet: {cells}"
        else:
            message = "Height map holds no probed points"
        super().__init__(message)


class MalformedDocumentError(HeightMapError, ValueError):
    """Raised when a persisted height map cannot be decoded."""


class NoActiveHeightMapError(HeightMapError, LookupError):
    """Raised when the store is accessed before a height map was set."""


__all__ = [
    "HeightMapError",
    "DegenerateAreaError",
    "GridTooSmallError",
    "GridTooLargeError",
    "IndexOutOfRangeError",
    "UnprobedNeighborError",
    "MalformedDocumentError",
    "NoActiveHeightMapError",
]
