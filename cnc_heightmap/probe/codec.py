"""XML persistence for :class:`~cnc_heightmap.probe.heightmap.HeightMap`.

Document layout::

    <?xml version="1.0" encoding="utf-8"?>
    <heightmap MinX="0.0" MinY="0.0" MaxX="20.0" MaxY="10.0"
               SizeX="3" SizeY="2" ZOffset="0.000">
      <point X="0" Y="0">-0.125</point>
      ...
    </heightmap>

Only probed points are written. Numbers always use ``.`` as the decimal
separator; heights and the Z offset are written with
:attr:`CodecOptions.decimals` fractional digits while parsing accepts any
precision.
"""

from __future__ import annotations

import os
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from cnc_heightmap._logging import get_logger
from cnc_heightmap.probe.errors import HeightMapError, MalformedDocumentError
from cnc_heightmap.probe.heightmap import HeightMap


_LOGGER = get_logger(__name__)

ROOT_TAG = "heightmap"
POINT_TAG = "point"
_XML_DECLARATION = '<?xml version="1.0" encoding="utf-8"?>\n'


class CodecOptions(BaseModel):
    """Formatting parameters for reading and writing height map documents."""

    decimals: int = 3
    restore_z_offset: bool = True

    model_config = ConfigDict(validate_assignment=True)

    @field_validator("decimals")
    def _validate_decimals(cls, value: int) -> int:
        """Reject negative digit counts."""

        digits = int(value)
        if digits < 0:
            raise ValueError("decimals must be zero or positive")
        return digits


class _DocumentHeader(BaseModel):
    """Attributes of the root ``heightmap`` element."""

    min_x: float = Field(alias="MinX", allow_inf_nan=False)
    min_y: float = Field(alias="MinY", allow_inf_nan=False)
    max_x: float = Field(alias="MaxX", allow_inf_nan=False)
    max_y: float = Field(alias="MaxY", allow_inf_nan=False)
    size_x: int = Field(alias="SizeX")
    size_y: int = Field(alias="SizeY")
    z_offset: float = Field(0.0, alias="ZOffset", allow_inf_nan=False)

    @model_validator(mode="after")
    def _check_bounds(self) -> "_DocumentHeader":
        """Stored bounds are always ordered."""

        if self.min_x >= self.max_x or self.min_y >= self.max_y:
            raise ValueError("Document bounds must satisfy MinX < MaxX and MinY < MaxY")
        return self


class _PointEntry(BaseModel):
    """A single ``point`` element."""

    x: int = Field(alias="X")
    y: int = Field(alias="Y")
    height: float = Field(alias="Height", allow_inf_nan=False)


def _format(value: float, decimals: int) -> str:
    return f"{value:.{decimals}f}"


def dumps(height_map: HeightMap, options: Optional[CodecOptions] = None) -> str:
    """Serialise ``height_map`` into an XML document string."""

    options = options or CodecOptions()
    lower, upper = height_map.min, height_map.max
    root = ET.Element(
        ROOT_TAG,
        {
            "MinX": repr(lower.x),
            "MinY": repr(lower.y),
            "MaxX": repr(upper.x),
            "MaxY": repr(upper.y),
            "SizeX": str(height_map.size_x),
            "SizeY": str(height_map.size_y),
            "ZOffset": _format(height_map.z_offset, options.decimals),
        },
    )

    points = height_map.points
    for x in range(height_map.size_x):
        for y in range(height_map.size_y):
            value = points[x][y]
            if value is None:
                continue
            element = ET.SubElement(root, POINT_TAG, {"X": str(x), "Y": str(y)})
            element.text = _format(value, options.decimals)

    ET.indent(root)
    return _XML_DECLARATION + ET.tostring(root, encoding="unicode") + "\n"


def _decode(root: ET.Element, options: CodecOptions) -> HeightMap:
    if root.tag != ROOT_TAG:
        raise MalformedDocumentError(f"Expected <{ROOT_TAG}> root element, found <{root.tag}>")

    try:
        header = _DocumentHeader.model_validate(dict(root.attrib))
    except ValidationError as exc:
        raise MalformedDocumentError(f"Invalid height map header: {exc}") from exc

    try:
        height_map = HeightMap(
            header.size_x,
            header.size_y,
            (header.min_x, header.min_y),
            (header.max_x, header.max_y),
            header.z_offset if options.restore_z_offset else 0.0,
        )
    except (HeightMapError, ValueError) as exc:
        raise MalformedDocumentError(f"Invalid height map geometry: {exc}") from exc

    for element in root.iter(POINT_TAG):
        payload = dict(element.attrib)
        payload["Height"] = (element.text or "").strip()
        try:
            entry = _PointEntry.model_validate(payload)
            height_map.set_height(entry.x, entry.y, entry.height)
        except (ValidationError, HeightMapError) as exc:
            raise MalformedDocumentError(f"Invalid point entry {payload}: {exc}") from exc

    height_map.rebuild_not_probed()
    return height_map


def loads(document: Union[str, bytes], options: Optional[CodecOptions] = None) -> HeightMap:
    """Decode a height map from an XML document string."""

    options = options or CodecOptions()
    try:
        root = ET.fromstring(document)
    except ET.ParseError as exc:
        raise MalformedDocumentError(f"Height map document is not valid XML: {exc}") from exc
    return _decode(root, options)


def save(
    height_map: HeightMap,
    path: Union[str, Path],
    options: Optional[CodecOptions] = None,
) -> Path:
    """Write ``height_map`` to ``path`` atomically (tmp file, fsync, rename)."""

    path = Path(path)
    data = dumps(height_map, options).encode("utf-8")
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        with open(tmp_path, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        tmp_path.replace(path)
    except OSError:
        if tmp_path.exists():
            tmp_path.unlink()
        _LOGGER.error("Failed to write height map to %s", path)
        raise

    _LOGGER.info(
        "Saved height map %dx%d (%d probed) to %s",
        height_map.size_x,
        height_map.size_y,
        height_map.progress,
        path,
    )
    return path


def load(path: Union[str, Path], options: Optional[CodecOptions] = None) -> HeightMap:
    """Read a height map previously written by :func:`save`."""

    path = Path(path)
    height_map = loads(path.read_bytes(), options)
    _LOGGER.info(
        "Loaded height map %dx%d (%d probed) from %s",
        height_map.size_x,
        height_map.size_y,
        height_map.progress,
        path,
    )
    return height_map


__all__ = ["CodecOptions", "dumps", "load", "loads", "save"]
