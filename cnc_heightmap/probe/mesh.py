"""Renderer-facing geometry derived from a height map.

Nothing here draws anything: the functions return numpy arrays that a 3D
viewer can turn into a surface mesh, a probe-point cloud and a border
outline.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

from cnc_heightmap.probe.heightmap import HeightMap, PointLike, grid_size, normalize_bounds


def surface_quads(height_map: HeightMap) -> Tuple[np.ndarray, np.ndarray]:
    """Quads for every cell whose four corners are probed.

    Returns ``(quads, shade)``. ``quads`` has shape ``(n, 4, 3)`` with the
    corners ordered ``(x+1, y), (x+1, y+1), (x, y+1), (x, y)``; ``shade`` has
    shape ``(n, 4)`` and maps each corner height onto ``[0, 1]`` between
    :attr:`HeightMap.min_height` and :attr:`HeightMap.max_height`.
    """

    z = height_map.to_array()
    xs = np.array([height_map.grid_to_world(i, 0).x for i in range(height_map.size_x)])
    ys = np.array([height_map.grid_to_world(0, j).y for j in range(height_map.size_y)])

    quads = []
    for x in range(height_map.size_x - 1):
        for y in range(height_map.size_y - 1):
            corners = ((x + 1, y), (x + 1, y + 1), (x, y + 1), (x, y))
            if any(np.isnan(z[i, j]) for i, j in corners):
                continue
            quads.append([[xs[i], ys[j], z[i, j]] for i, j in corners])

    if not quads:
        return np.empty((0, 4, 3), dtype=float), np.empty((0, 4), dtype=float)

    vertices = np.asarray(quads, dtype=float)
    low = height_map.min_height
    span = height_map.max_height - low
    if span > 0:
        shade = (vertices[:, :, 2] - low) / span
    else:
        shade = np.zeros(vertices.shape[:2], dtype=float)
    return vertices, shade


def preview_points(min_pt: PointLike, max_pt: PointLike, size_x: int, size_y: int) -> np.ndarray:
    """Grid lattice at ``z = 0`` in row-major ``(x, y)`` order, shape ``(size_x*size_y, 3)``."""

    lower, upper = normalize_bounds(min_pt, max_pt)
    xs = np.linspace(lower.x, upper.x, size_x)
    ys = np.linspace(lower.y, upper.y, size_y)
    gx, gy = np.meshgrid(xs, ys, indexing="ij")
    return np.column_stack([gx.ravel(), gy.ravel(), np.zeros(gx.size)])


def preview_border(min_pt: PointLike, max_pt: PointLike) -> np.ndarray:
    """Rectangle outline as four line segments (point pairs), shape ``(8, 3)``."""

    lower, upper = normalize_bounds(min_pt, max_pt)
    corners = [
        (lower.x, lower.y),
        (lower.x, upper.y),
        (upper.x, upper.y),
        (upper.x, lower.y),
    ]
    segments = []
    for index, start in enumerate(corners):
        end = corners[(index + 1) % len(corners)]
        segments.append((*start, 0.0))
        segments.append((*end, 0.0))
    return np.asarray(segments, dtype=float)


def preview_for_spacing(
    min_pt: PointLike, max_pt: PointLike, spacing: float
) -> Tuple[np.ndarray, np.ndarray]:
    """Lattice and border for a map that :meth:`HeightMap.create_uniform` would build.

    A zero-width or zero-height area yields two empty arrays so a preview can
    be cleared while the user is still editing the bounds.
    """

    lower, upper = normalize_bounds(min_pt, max_pt)
    if upper.x - lower.x == 0 or upper.y - lower.y == 0:
        return np.empty((0, 3), dtype=float), np.empty((0, 3), dtype=float)

    size_x = grid_size(spacing, lower.x, upper.x)
    size_y = grid_size(spacing, lower.y, upper.y)
    return preview_points(lower, upper, size_x, size_y), preview_border(lower, upper)


__all__ = ["preview_border", "preview_for_spacing", "preview_points", "surface_quads"]
