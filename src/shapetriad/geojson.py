from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Literal, Protocol, TypedDict, Union, cast

from . import constants
from .constants import (
    MULTIPOINT,
    MULTIPOINT_TYPES,
    NULL,
    POINT,
    POINT_TYPES,
    POLYGON,
    POLYGON_TYPES,
    POLYLINE,
    POLYLINE_TYPES,
    SHAPETYPE_LOOKUP,
)
from .exceptions import GeoJSONError
from .geometric_calculations import is_cw, organize_polygon_rings, rewind
from .types import PartT, PointsT, PointT

logger = logging.getLogger(__name__)


class HasGeoInterface(Protocol):
    @property
    def __geo_interface__(self) -> GeoJSONHomogeneousGeometryObject: ...


class GeoJSONPoint(TypedDict):
    type: Literal["Point"]
    # RFC7946 only requires two or more numbers per position. A third is
    # used for Z, or for M on measured types, and a fourth for M on Z types.
    coordinates: PointT | tuple[()]


class GeoJSONMultiPoint(TypedDict):
    type: Literal["MultiPoint"]
    coordinates: PointsT


class GeoJSONLineString(TypedDict):
    type: Literal["LineString"]
    coordinates: PointsT


class GeoJSONMultiLineString(TypedDict):
    type: Literal["MultiLineString"]
    coordinates: list[PointsT]


class GeoJSONPolygon(TypedDict):
    type: Literal["Polygon"]
    coordinates: list[PointsT]


class GeoJSONMultiPolygon(TypedDict):
    type: Literal["MultiPolygon"]
    coordinates: list[list[PointsT]]


GeoJSONHomogeneousGeometryObject = Union[
    GeoJSONPoint,
    GeoJSONMultiPoint,
    GeoJSONLineString,
    GeoJSONMultiLineString,
    GeoJSONPolygon,
    GeoJSONMultiPolygon,
]

GEOJSON_TO_SHAPETYPE: dict[str, int] = {
    "Null": NULL,
    "Point": POINT,
    "LineString": POLYLINE,
    "Polygon": POLYGON,
    "MultiPoint": MULTIPOINT,
    "MultiLineString": POLYLINE,
    "MultiPolygon": POLYGON,
}


class GeoJSONGeometryCollection(TypedDict):
    type: Literal["GeometryCollection"]
    geometries: list[GeoJSONHomogeneousGeometryObject]


class GeoJSONFeature(TypedDict):
    type: Literal["Feature"]
    # RFC7946 3.2 "(any JSON object or a JSON null value)"
    properties: dict[str, Any] | None
    geometry: GeoJSONHomogeneousGeometryObject | None


class GeoJSONFeatureCollection(TypedDict):
    type: Literal["FeatureCollection"]
    features: list[GeoJSONFeature]


class GeoJSONFeatureCollectionWithBBox(GeoJSONFeatureCollection):
    bbox: list[float]


def _position(point: PointT) -> PointT:
    # a missing measure is dropped rather than written as null
    if len(point) > 2 and point[-1] is None:
        return cast(PointT, tuple(point[:-1]))
    return point


def _positions(part: PartT) -> PointsT:
    return [_position(p) for p in part]


def _warn_ring_errors(errors: dict[str, int], oid: int) -> None:
    header = f"Possible issue encountered when converting Shape #{oid} to GeoJSON: "
    if errors.get("polygon_orphaned_holes"):
        logger.warning(
            header
            + "Shapefile format requires that all polygon interior holes be contained "
            "by an exterior ring, but the Shape contained interior holes (defined by "
            "counter-clockwise orientation in the shapefile format) that were orphaned, "
            "i.e. not contained by any exterior rings. The rings were still included "
            "but were encoded as GeoJSON exterior rings instead of holes."
        )
    if errors.get("polygon_only_holes"):
        logger.warning(
            header
            + "Shapefile format requires that polygons contain at least one exterior "
            "ring, but the Shape was entirely made up of interior holes (defined by "
            "counter-clockwise orientation in the shapefile format). The rings were "
            "still included but were encoded as GeoJSON exterior rings instead of holes."
        )


def to_geojson(
    shape_type: int, parts: Sequence[PartT], oid: int = -1
) -> GeoJSONHomogeneousGeometryObject:
    """Converts the parts of a geometry to a GeoJSON geometry dict.
    Empty geometries are given empty coordinates, which GeoJSON
    allows to be read as null geometries."""
    if shape_type in POINT_TYPES:
        if not parts or not parts[0]:
            return {"type": "Point", "coordinates": ()}
        return {"type": "Point", "coordinates": _position(parts[0][0])}

    if shape_type in MULTIPOINT_TYPES:
        points = [_position(p) for part in parts for p in part]
        return {"type": "MultiPoint", "coordinates": points}

    if shape_type in POLYLINE_TYPES:
        if not parts:
            return {"type": "LineString", "coordinates": []}
        if len(parts) == 1:
            return {"type": "LineString", "coordinates": _positions(parts[0])}
        return {
            "type": "MultiLineString",
            "coordinates": [_positions(part) for part in parts],
        }

    if shape_type in POLYGON_TYPES:
        if not parts:
            return {"type": "Polygon", "coordinates": []}
        errors: dict[str, int] = {}
        polys = organize_polygon_rings(parts, errors)
        if constants.VERBOSE and errors:
            _warn_ring_errors(errors, oid)
        coordinates = [[_positions(ring) for ring in poly] for poly in polys]
        if len(coordinates) == 1:
            return {"type": "Polygon", "coordinates": coordinates[0]}
        return {"type": "MultiPolygon", "coordinates": coordinates}

    raise GeoJSONError(
        f'Shape type "{SHAPETYPE_LOOKUP[shape_type]}" cannot be represented as GeoJSON.'
    )


def _shapefile_rings(polygon: list[PointsT]) -> list[PointsT]:
    # GeoJSON (RFC7946) winds exteriors counter-clockwise, but older
    # GeoJSON does not, so check every ring explicitly.
    rings = []
    for i, ring in enumerate(polygon):
        if (i == 0) != is_cw(ring):
            ring = rewind(ring)
        rings.append(list(ring))
    return rings


def from_geojson(
    geoj: GeoJSONHomogeneousGeometryObject | None,
) -> tuple[int, list[PointsT]]:
    """Returns the shape type and parts for a GeoJSON geometry dict,
    with polygon rings wound the shapefile way (exteriors clockwise)."""
    geoj_type = geoj["type"] if geoj else "Null"
    if geoj_type not in GEOJSON_TO_SHAPETYPE:
        raise GeoJSONError(f"Cannot create Shape from GeoJSON type '{geoj_type}'")
    shape_type = GEOJSON_TO_SHAPETYPE[geoj_type]
    if geoj is None or shape_type == NULL:
        return NULL, []

    coordinates: Any = geoj["coordinates"]
    if coordinates == () or coordinates is None:
        raise GeoJSONError(f"Cannot create non-Null Shape from: {coordinates=}")

    if geoj_type == "Point":
        return shape_type, [[tuple(coordinates)]]
    if geoj_type in ("MultiPoint", "LineString"):
        return shape_type, [[tuple(p) for p in coordinates]]
    if geoj_type == "MultiLineString":
        return shape_type, [[tuple(p) for p in line] for line in coordinates]
    if geoj_type == "Polygon":
        polygons = [coordinates]
    else:
        polygons = coordinates

    parts: list[PointsT] = []
    for polygon in polygons:
        rings = [[tuple(p) for p in ring] for ring in polygon]
        parts.extend(_shapefile_rings(rings))
    return shape_type, parts
