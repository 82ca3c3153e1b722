"""Height map routes: create, record probe results, interpolate, persist."""

from __future__ import annotations

import asyncio
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, Field

from cnc_heightmap._logging import get_logger
from cnc_heightmap.core.state import HeightMapStore
from cnc_heightmap.probe import codec
from cnc_heightmap.probe.errors import (
    HeightMapError,
    MalformedDocumentError,
    NoActiveHeightMapError,
    UnprobedNeighborError,
)
from cnc_heightmap.probe.heightmap import HeightMap


_LOGGER = get_logger(__name__)

_UNPROCESSABLE = 422

router = APIRouter(prefix="/heightmap", tags=["heightmap"])


class CreateHeightMapRequest(BaseModel):
    """Area and spacing of a new height map."""

    spacing_x: float = Field(..., gt=0)
    spacing_y: Optional[float] = Field(None, gt=0)
    min: List[float] = Field(..., min_length=2, max_length=2)
    max: List[float] = Field(..., min_length=2, max_length=2)
    z_offset: float = Field(0.0, allow_inf_nan=False)


class PointHeightRequest(BaseModel):
    """Measured height for one grid point."""

    height: float = Field(..., allow_inf_nan=False)


class ZOffsetRequest(BaseModel):
    """New vertical correction."""

    z_offset: float = Field(..., allow_inf_nan=False)


def get_store(request: Request) -> HeightMapStore:
    """Retrieve the shared height map store from FastAPI state."""

    return request.app.state.heightmap_store


def _http_error(exc: HeightMapError) -> HTTPException:
    """Translate a height map error into an HTTP error."""

    if isinstance(exc, NoActiveHeightMapError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, UnprobedNeighborError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, MalformedDocumentError):
        code = status.HTTP_400_BAD_REQUEST
    else:
        code = _UNPROCESSABLE
    return HTTPException(status_code=code, detail=str(exc))


def _summary(height_map: HeightMap) -> dict:
    return {
        "size_x": height_map.size_x,
        "size_y": height_map.size_y,
        "min": list(height_map.min.as_tuple()),
        "max": list(height_map.max.as_tuple()),
        "grid_x": height_map.grid_x,
        "grid_y": height_map.grid_y,
        "progress": height_map.progress,
        "total_points": height_map.total_points,
        "min_height": height_map.min_height,
        "max_height": height_map.max_height,
        "z_offset": height_map.z_offset,
    }


@router.post("")
async def create_heightmap(
    payload: CreateHeightMapRequest, store: HeightMapStore = Depends(get_store)
) -> dict:
    """Create an empty height map and make it the active one."""

    spacing_y = payload.spacing_y if payload.spacing_y is not None else payload.spacing_x
    def _build() -> HeightMap:
        height_map = HeightMap.create(payload.spacing_x, spacing_y, payload.min, payload.max)
        height_map.z_offset = payload.z_offset
        return height_map

    try:
        height_map = await asyncio.to_thread(_build)
    except HeightMapError as exc:
        raise _http_error(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=_UNPROCESSABLE, detail=str(exc)) from exc

    await asyncio.to_thread(store.replace, height_map)
    return _summary(height_map)


@router.get("")
async def get_heightmap(store: HeightMapStore = Depends(get_store)) -> dict:
    """Describe the active height map."""

    try:
        return await asyncio.to_thread(store.mutate, _summary)
    except HeightMapError as exc:
        raise _http_error(exc) from exc


@router.get("/not-probed")
async def get_not_probed(store: HeightMapStore = Depends(get_store)) -> dict:
    """List grid points still waiting for a measurement with their coordinates."""

    def _collect(height_map: HeightMap) -> List[List[float]]:
        result = []
        for x, y in height_map.not_probed:
            world = height_map.grid_to_world(x, y)
            result.append([x, y, world.x, world.y])
        return result

    try:
        points = await asyncio.to_thread(store.mutate, _collect)
    except HeightMapError as exc:
        raise _http_error(exc) from exc
    return {"count": len(points), "points": points}


@router.put("/points/{x}/{y}")
async def set_point(
    x: int,
    y: int,
    payload: PointHeightRequest,
    store: HeightMapStore = Depends(get_store),
) -> dict:
    """Record the measured height of grid point ``(x, y)``."""

    def _record(height_map: HeightMap) -> dict:
        height_map.set_height(x, y, payload.height)
        return _summary(height_map)

    try:
        return await asyncio.to_thread(store.mutate, _record)
    except HeightMapError as exc:
        raise _http_error(exc) from exc


@router.get("/interpolate")
async def interpolate(x: float, y: float, store: HeightMapStore = Depends(get_store)) -> dict:
    """Return the compensated surface height at machine coordinates ``(x, y)``."""

    try:
        z = await asyncio.to_thread(store.mutate, lambda height_map: height_map.interpolate_height(x, y))
    except HeightMapError as exc:
        raise _http_error(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=_UNPROCESSABLE, detail=str(exc)) from exc
    return {"x": x, "y": y, "z": z}


@router.put("/z-offset")
async def set_z_offset(payload: ZOffsetRequest, store: HeightMapStore = Depends(get_store)) -> dict:
    """Change the vertical correction applied to interpolated heights."""

    def _apply(height_map: HeightMap) -> dict:
        height_map.z_offset = payload.z_offset
        return _summary(height_map)

    try:
        return await asyncio.to_thread(store.mutate, _apply)
    except HeightMapError as exc:
        raise _http_error(exc) from exc


@router.get("/document")
async def export_document(store: HeightMapStore = Depends(get_store)) -> Response:
    """Export the active height map as an XML document."""

    try:
        document = await asyncio.to_thread(store.mutate, codec.dumps)
    except HeightMapError as exc:
        raise _http_error(exc) from exc
    return Response(content=document, media_type="application/xml")


@router.post("/document")
async def import_document(request: Request, store: HeightMapStore = Depends(get_store)) -> dict:
    """Replace the active height map with an uploaded XML document."""

    body = await request.body()
    try:
        height_map = await asyncio.to_thread(codec.loads, body)
    except HeightMapError as exc:
        raise _http_error(exc) from exc

    await asyncio.to_thread(store.replace, height_map)
    _LOGGER.info(
        "Imported height map with %d of %d points probed",
        height_map.progress,
        height_map.total_points,
    )
    return _summary(height_map)


__all__ = ["router"]
