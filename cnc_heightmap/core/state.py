"""Thread-safe holder for the active height map."""

from __future__ import annotations

import threading
from typing import Callable, Optional, TypeVar

from cnc_heightmap._logging import get_logger
from cnc_heightmap.probe.errors import NoActiveHeightMapError
from cnc_heightmap.probe.heightmap import HeightMap


_LOGGER = get_logger(__name__)

T = TypeVar("T")


class HeightMapStore:
    """Lock-protected wrapper around the :class:`HeightMap` being probed.

    :class:`HeightMap` does no locking of its own, so producers that record
    points from several threads go through :meth:`mutate`.
    """

    def __init__(self, height_map: Optional[HeightMap] = None) -> None:
        """Initialise the store, optionally with an active map."""

        self._lock = threading.RLock()
        self._height_map = height_map
        _LOGGER.debug("HeightMapStore initialised (active=%s)", height_map is not None)

    @property
    def has_map(self) -> bool:
        with self._lock:
            return self._height_map is not None

    def _require(self) -> HeightMap:
        if self._height_map is None:
            raise NoActiveHeightMapError("No height map has been created or loaded")
        return self._height_map

    def read(self) -> HeightMap:
        """Return a copy of the active map.

        The copy ensures callers cannot mutate the stored map without
        acquiring the lock via :meth:`mutate`.
        """

        with self._lock:
            return self._require().copy()

    def replace(self, height_map: HeightMap) -> HeightMap:
        """Make ``height_map`` the active map."""

        with self._lock:
            self._height_map = height_map
        _LOGGER.info(
            "Active height map replaced (%dx%d)", height_map.size_x, height_map.size_y
        )
        return height_map

    def mutate(self, mutator: Callable[[HeightMap], T]) -> T:
        """Run ``mutator`` on the active map under the lock and return its result."""

        with self._lock:
            return mutator(self._require())

    def reset(self) -> None:
        """Drop the active map."""

        with self._lock:
            self._height_map = None
        _LOGGER.info("Active height map cleared")


__all__ = ["HeightMapStore"]
