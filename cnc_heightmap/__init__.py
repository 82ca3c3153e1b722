"""Core package for CNC height map probing utilities."""

from .core.state import HeightMapStore
from .probe.heightmap import HeightMap
from .probe.vector import Vector2

__all__ = ["HeightMap", "HeightMapStore", "Vector2"]
