from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any, NamedTuple

from .constants import (
    M_TYPES,
    MULTIPATCH,
    MULTIPATCH_TYPES,
    MULTIPOINT,
    MULTIPOINT_TYPES,
    MULTIPOINTM,
    MULTIPOINTZ,
    NODATA,
    NULL,
    POINT,
    POINT_TYPES,
    POINTM,
    POINTZ,
    POLYGON,
    POLYGON_TYPES,
    POLYGONM,
    POLYGONZ,
    POLYLINE,
    POLYLINE_TYPES,
    POLYLINEM,
    POLYLINEZ,
    SHAPETYPE_LOOKUP,
    Z_TYPES,
)
from .exceptions import GeometryError
from .geojson import GeoJSONHomogeneousGeometryObject, from_geojson, to_geojson
from .geometric_calculations import organize_polygon_rings
from .types import BBox, MBox, PartT, PointsT, PointT, ZBox


def _number(value: Any, what: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise GeometryError(f"{what} must be a number. Got: {value!r}")


def _measure(value: Any) -> float | None:
    if value is None:
        return None
    m = _number(value, "m")
    # Measure values less than -10e38 are nodata values according to the ESRI shapefile spec
    return m if m > NODATA else None


def normalize_point(point: Sequence[Any], shape_type: int) -> PointT:
    """Returns point as a tuple with exactly the coordinates the shape type
    stores: (x, y), (x, y, m) for measured types or (x, y, z, m) for Z types.
    Missing z values default to 0.0 and missing m values to None."""
    if len(point) < 2:
        raise GeometryError(f"A point needs at least x and y. Got: {point!r}")
    x, y = _number(point[0], "x"), _number(point[1], "y")
    if shape_type in Z_TYPES:
        z = _number(point[2], "z") if len(point) > 2 and point[2] is not None else 0.0
        m = _measure(point[3]) if len(point) > 3 else None
        return (x, y, z, m)
    if shape_type in M_TYPES:
        return (x, y, _measure(point[2]) if len(point) > 2 else None)
    return (x, y)


class Geometry(NamedTuple):
    """An immutable shapefile geometry.

    shape_type is the tag of the geometry, one of the shape type constants.
    Every non-null geometry holds its coordinates in parts: a point has one
    part of one point, a multipoint one part of all its points, and
    polylines, polygons and multipatches one part per line or ring.
    Multipatches also have one part_types entry per part.

    Geometries should be built with create() or the named constructors,
    which normalise the points to the dimensionality of the shape type and
    close polygon rings.
    """

    shape_type: int = NULL
    parts: tuple[PartT, ...] = ()
    part_types: tuple[int, ...] = ()

    @classmethod
    def create(
        cls,
        shape_type: int,
        parts: Iterable[Iterable[Sequence[Any]]] = (),
        part_types: Iterable[int] | None = None,
    ) -> Geometry:
        if shape_type not in SHAPETYPE_LOOKUP:
            raise GeometryError(f"Unknown shape type: {shape_type!r}")

        normalized = tuple(
            tuple(normalize_point(p, shape_type) for p in part) for part in parts
        )
        types = tuple(int(t) for t in part_types) if part_types is not None else ()

        if shape_type == NULL:
            if normalized:
                raise GeometryError("A NULL geometry cannot have coordinates.")
            return cls()

        if shape_type in POINT_TYPES:
            if len(normalized) != 1 or len(normalized[0]) != 1:
                raise GeometryError(
                    f"A {SHAPETYPE_LOOKUP[shape_type]} geometry needs exactly one point."
                )
        elif shape_type in MULTIPOINT_TYPES:
            points = tuple(p for part in normalized for p in part)
            normalized = (points,) if points else ()
        else:
            if any(not part for part in normalized):
                raise GeometryError(
                    f"The parts of a {SHAPETYPE_LOOKUP[shape_type]} geometry cannot be empty."
                )
            if shape_type in POLYGON_TYPES:
                normalized = tuple(
                    ring if ring[0] == ring[-1] else ring + (ring[0],)
                    for ring in normalized
                )

        if shape_type in MULTIPATCH_TYPES:
            if len(types) != len(normalized):
                raise GeometryError(
                    f"A MULTIPATCH needs one part type per part. "
                    f"Got {len(types)} part types for {len(normalized)} parts."
                )
        elif types:
            raise GeometryError("Only MULTIPATCH geometries have part types.")

        return cls(shape_type, normalized, types)

    @classmethod
    def null(cls) -> Geometry:
        return cls()

    @classmethod
    def point(cls, x: float, y: float) -> Geometry:
        return cls.create(POINT, [[(x, y)]])

    @classmethod
    def pointm(cls, x: float, y: float, m: float | None = None) -> Geometry:
        return cls.create(POINTM, [[(x, y, m)]])

    @classmethod
    def pointz(
        cls, x: float, y: float, z: float = 0.0, m: float | None = None
    ) -> Geometry:
        return cls.create(POINTZ, [[(x, y, z, m)]])

    @classmethod
    def multipoint(cls, points: PointsT) -> Geometry:
        return cls.create(MULTIPOINT, [points])

    @classmethod
    def multipointm(cls, points: PointsT) -> Geometry:
        return cls.create(MULTIPOINTM, [points])

    @classmethod
    def multipointz(cls, points: PointsT) -> Geometry:
        return cls.create(MULTIPOINTZ, [points])

    @classmethod
    def line(cls, lines: list[PointsT]) -> Geometry:
        return cls.create(POLYLINE, lines)

    @classmethod
    def linem(cls, lines: list[PointsT]) -> Geometry:
        return cls.create(POLYLINEM, lines)

    @classmethod
    def linez(cls, lines: list[PointsT]) -> Geometry:
        return cls.create(POLYLINEZ, lines)

    @classmethod
    def poly(cls, polys: list[PointsT]) -> Geometry:
        """Outer rings should run clockwise and holes counter-clockwise."""
        return cls.create(POLYGON, polys)

    @classmethod
    def polym(cls, polys: list[PointsT]) -> Geometry:
        return cls.create(POLYGONM, polys)

    @classmethod
    def polyz(cls, polys: list[PointsT]) -> Geometry:
        return cls.create(POLYGONZ, polys)

    @classmethod
    def multipatch(cls, parts: list[PointsT], part_types: list[int]) -> Geometry:
        return cls.create(MULTIPATCH, parts, part_types)

    @classmethod
    def from_geojson(cls, geoj: GeoJSONHomogeneousGeometryObject | None) -> Geometry:
        shape_type, parts = from_geojson(geoj)
        return cls.create(shape_type, parts)

    @property
    def shape_type_name(self) -> str:
        return SHAPETYPE_LOOKUP[self.shape_type]

    @property
    def has_z(self) -> bool:
        return self.shape_type in Z_TYPES

    @property
    def has_m(self) -> bool:
        return self.shape_type in M_TYPES

    @property
    def is_null(self) -> bool:
        return self.shape_type == NULL

    @property
    def points(self) -> list[PointT]:
        return [p for part in self.parts for p in part]

    @property
    def part_indexes(self) -> list[int]:
        """The index into points at which each part starts."""
        indexes = []
        start = 0
        for part in self.parts:
            indexes.append(start)
            start += len(part)
        return indexes

    @property
    def bbox(self) -> BBox | None:
        points = self.points
        if not points:
            return None
        xs = [p[0] for p in points]
        ys = [p[1] for p in points]
        return min(xs), min(ys), max(xs), max(ys)

    @property
    def zbox(self) -> ZBox | None:
        if not self.has_z or not self.parts:
            return None
        zs = [p[2] for p in self.points]
        return min(zs), max(zs)

    @property
    def mbox(self) -> MBox | None:
        if not self.has_m or not self.parts:
            return None
        ms = [p[-1] for p in self.points if p[-1] is not None]
        if not ms:
            # only when no point has a measure is the range itself nodata
            return NODATA, NODATA
        return min(ms), max(ms)

    def polygons(self) -> list[list[PartT]]:
        """Groups the rings of a polygon into polygons, each a list of an
        exterior ring followed by its holes. Ring roles are inferred from
        their winding, so either orientation convention is accepted."""
        if self.shape_type not in POLYGON_TYPES:
            raise GeometryError(
                f"Only polygons have rings, not {self.shape_type_name}."
            )
        return organize_polygon_rings(self.parts)

    @property
    def __geo_interface__(self) -> GeoJSONHomogeneousGeometryObject:
        return to_geojson(self.shape_type, self.parts)


NULL_GEOMETRY = Geometry()
