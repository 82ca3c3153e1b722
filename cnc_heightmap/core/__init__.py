"""Shared state for the active height map."""

from .state import HeightMapStore

__all__ = ["HeightMapStore"]
