from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping, Sequence
from os import PathLike
from types import TracebackType
from typing import Any, Union

from . import dbf as dbf_codec
from . import shp as shp_codec
from .classes import ShapeEntry
from .constants import (
    DBF_EXT,
    DEFAULT_FIELD_SIZE,
    NULL,
    SHAPETYPE_LOOKUP,
    SHP_EXT,
    SHX_EXT,
    TRIAD_EXTENSIONS,
)
from .dbf import Field, FieldLike, as_field, field_name
from .exceptions import (
    CountMismatch,
    EmptyInput,
    FieldMismatch,
    FieldValueError,
    GeometryError,
    ShapefileException,
)
from .geojson import GeoJSONHomogeneousGeometryObject, HasGeoInterface
from .geometry import NULL_GEOMETRY, Geometry
from .helpers import fsdecode_if_pathlike
from .types import FieldTypeT, PathT, PointsT, RecordValue

logger = logging.getLogger(__name__)

GeometryLike = Union[Geometry, GeoJSONHomogeneousGeometryObject, HasGeoInterface, None]


def as_geometry(s: GeometryLike) -> Geometry:
    """Accepts a Geometry, a GeoJSON geometry dict, an object with the
    __geo_interface__ or None (a null geometry)."""
    if s is None:
        return NULL_GEOMETRY
    if isinstance(s, Geometry):
        return s
    if hasattr(s, "__geo_interface__"):
        s = s.__geo_interface__
    if isinstance(s, dict):
        return Geometry.from_geojson(s)
    raise GeometryError(
        "Can only write Geometry objects, GeoJSON dictionaries, "
        f"or objects with the __geo_interface__, not: {s!r}"
    )


class Writer:
    """Collects the fields, records and geometries of a shapefile and writes
    its three files on close().

    target is the path of the shapefile with or without a .shp, .shx or .dbf
    extension. shape_type fixes the type of the file, which otherwise is
    the type of the first non-null geometry. Every record must be matched
    by exactly one geometry (use null() for records without one) unless
    auto_balance is set, in which case the shorter side is padded on close.
    """

    def __init__(
        self,
        target: PathT,
        fields: Iterable[FieldLike] | None = None,
        *,
        encoding: str = "utf-8",
        encoding_errors: str = "strict",
        auto_balance: bool = False,
        shape_type: int | None = None,
    ):
        target = fsdecode_if_pathlike(target)
        stem, ext = os.path.splitext(target)
        self.target = stem if ext.lower() in TRIAD_EXTENSIONS else target
        self.encoding = encoding
        self.encoding_errors = encoding_errors
        self.auto_balance = auto_balance
        self.fields: list[Field] = []
        self._records: list[Sequence[Any] | Mapping[str, Any]] = []
        self._geometries: list[Geometry] = []
        if shape_type is not None and shape_type not in SHAPETYPE_LOOKUP:
            raise GeometryError(f"Unknown shape type: {shape_type!r}")
        self._shape_type = None if shape_type == NULL else shape_type
        self.closed = False
        for field in fields or ():
            self.fields.append(as_field(field))

    @property
    def shp_path(self) -> str:
        return self.target + SHP_EXT

    @property
    def shx_path(self) -> str:
        return self.target + SHX_EXT

    @property
    def dbf_path(self) -> str:
        return self.target + DBF_EXT

    def __len__(self) -> int:
        """Returns the current number of records added to the writer."""
        return len(self._records)

    @property
    def rec_num(self) -> int:
        return len(self._records)

    @property
    def shp_num(self) -> int:
        return len(self._geometries)

    @property
    def shape_type(self) -> int:
        """The type of the non-null geometries, NULL until one is added
        or given on construction."""
        return NULL if self._shape_type is None else self._shape_type

    def __enter__(self) -> Writer:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.close()
        else:
            # Don't write a half built shapefile
            self.closed = True

    def field(
        self,
        name: str,
        field_type: str | bytes | FieldTypeT = "C",
        size: int = 50,
        decimal: int = 0,
    ) -> None:
        """Adds a dbf field descriptor to the shapefile."""
        if self._records:
            raise ShapefileException(
                "Fields must be added before the first record is written."
            )
        self.fields.append(Field.from_unchecked(name, field_type, size, decimal))

    def record(self, *record_list: RecordValue, **record_dict: RecordValue) -> None:
        """Adds a record with the values given either as positional arguments
        in field order, or as keyword arguments by field name. Values not
        given are left blank."""
        if record_list and record_dict:
            raise FieldValueError(
                "Give record values either by position or by field name, not both."
            )
        if record_dict:
            unknown = set(record_dict) - {field.name for field in self.fields}
            if unknown:
                raise FieldValueError(f"Unknown field names: {sorted(unknown)}")
            self._records.append(dict(record_dict))
            return
        if len(record_list) > len(self.fields):
            raise FieldValueError(
                f"Record has {len(record_list)} values for {len(self.fields)} fields."
            )
        self._records.append(list(record_list))

    def shape(self, s: GeometryLike) -> None:
        """Adds a geometry: a Geometry, a GeoJSON geometry dict, an object
        with the __geo_interface__, or None for a null geometry."""
        geometry = as_geometry(s)
        if geometry.shape_type != NULL:
            if self._shape_type is None:
                self._shape_type = geometry.shape_type
            elif geometry.shape_type != self._shape_type:
                raise GeometryError(
                    f"Cannot add a {geometry.shape_type_name} geometry to a shapefile "
                    f"of type {Geometry(self._shape_type).shape_type_name}."
                )
        self._geometries.append(geometry)

    def null(self) -> None:
        """Creates a null shape."""
        self.shape(NULL_GEOMETRY)

    def point(self, x: float, y: float) -> None:
        """Creates a POINT shape."""
        self.shape(Geometry.point(x, y))

    def pointm(self, x: float, y: float, m: float | None = None) -> None:
        """Creates a POINTM shape.
        If the m (measure) value is not set, it defaults to NoData."""
        self.shape(Geometry.pointm(x, y, m))

    def pointz(
        self, x: float, y: float, z: float = 0.0, m: float | None = None
    ) -> None:
        """Creates a POINTZ shape.
        If the z (elevation) value is not set, it defaults to 0.
        If the m (measure) value is not set, it defaults to NoData."""
        self.shape(Geometry.pointz(x, y, z, m))

    def multipoint(self, points: PointsT) -> None:
        """Creates a MULTIPOINT shape.
        Points is a list of xy values."""
        self.shape(Geometry.multipoint(points))

    def line(self, lines: list[PointsT]) -> None:
        """Creates a POLYLINE shape.
        Lines is a collection of lines, each made up of a list of xy values."""
        self.shape(Geometry.line(lines))

    def poly(self, polys: list[PointsT]) -> None:
        """Creates a POLYGON shape.
        Polys is a collection of polygons, each made up of a list of xy values.
        Note that for ordinary polygons the coordinates must run in a clockwise direction.
        If some of the polygons are holes, these must run in a counterclockwise direction."""
        self.shape(Geometry.poly(polys))

    def multipatch(self, parts: list[PointsT], part_types: list[int]) -> None:
        """Creates a MULTIPATCH shape.
        Parts is a collection of 3D surface patches, each made up of a list of xyzm values.
        PartTypes is a list of types that define each of the surface patches.
        The types can be any of the following module constants: TRIANGLE_STRIP,
        TRIANGLE_FAN, OUTER_RING, INNER_RING, FIRST_RING, or RING."""
        self.shape(Geometry.multipatch(parts, part_types))

    def balance(self) -> None:
        """Adds corresponding empty attributes or null geometry records depending
        on which type of record was created to make sure all three files
        are in synch."""
        while self.rec_num > self.shp_num:
            self.null()
        while self.rec_num < self.shp_num:
            self.record()

    def close(self) -> None:
        """
        Encodes and writes the shp, shx and dbf files.
        """
        if self.closed:
            return
        if not self.fields:
            raise FieldValueError("Shapefile dbf file must contain at least one field.")
        if self.auto_balance:
            self.balance()
        if self.rec_num != self.shp_num:
            raise CountMismatch(self.rec_num, self.shp_num)

        # Encode everything before touching the disk
        shp_bytes, shx_bytes = shp_codec.encode(self._geometries, self.shape_type)
        dbf_bytes = dbf_codec.encode(
            self.fields, self._records, self.encoding, self.encoding_errors
        )

        parent = os.path.dirname(self.target)
        if parent:
            os.makedirs(parent, exist_ok=True)
        for path, data in (
            (self.shp_path, shp_bytes),
            (self.shx_path, shx_bytes),
            (self.dbf_path, dbf_bytes),
        ):
            with open(path, "wb") as f:
                f.write(data)
        self.closed = True
        logger.debug(
            "Wrote %d %s records with %d fields to %s",
            self.rec_num,
            Geometry(self.shape_type).shape_type_name,
            len(self.fields),
            self.shp_path,
        )


def _entry_parts(entry: Any, number: int) -> tuple[Mapping[str, Any], GeometryLike]:
    if isinstance(entry, ShapeEntry):
        record, geometry = entry.record, entry.geometry
    else:
        try:
            record, geometry = entry
        except (TypeError, ValueError):
            raise FieldMismatch(
                f"Entry {number} must be a ShapeEntry or a (record, geometry) pair."
            )
    if not isinstance(record, Mapping):
        raise FieldMismatch(
            f"The record of entry {number} must map field names to values."
        )
    return record, geometry


def write_entries(
    output_dir: str | PathLike[Any],
    base_name: str,
    entries: Iterable[ShapeEntry | tuple[Mapping[str, Any], GeometryLike]],
    fields: Iterable[FieldLike] | None = None,
    **kwargs: Any,
) -> str:
    """Writes entries, each a record mapping with its geometry, as the
    shapefile base_name in output_dir and returns the path of its .shp file.

    Every record must have the field names of the first record, in the same
    order. Keys are stored as dbf field names, cut to 10 characters, and
    must stay distinct once cut. Without explicit fields each field is
    written as text in a character field of 255 bytes, which loses the
    value types on reading back.
    """
    entries = list(entries)
    if not entries:
        raise EmptyInput("Cannot write a shapefile without entries.")

    pairs = [_entry_parts(entry, i) for i, entry in enumerate(entries, 1)]
    names = list(pairs[0][0].keys())
    for i, (record, __geometry) in enumerate(pairs, 1):
        if list(record.keys()) != names:
            raise FieldMismatch(
                f"Entry {i} has fields {list(record.keys())}, expected {names}."
            )

    # Record keys as they will be stored in the dbf header
    stored_names = [field_name(name) for name in names]
    collisions = {
        stored: [name for name, other in zip(names, stored_names) if other == stored]
        for stored in stored_names
        if stored_names.count(stored) > 1
    }
    if collisions:
        raise FieldMismatch(
            "Record keys collide once cut to dbf field names: "
            + ", ".join(f"{keys} -> {stored!r}" for stored, keys in collisions.items())
        )

    if fields is None:
        field_list = [
            Field.from_unchecked(name, "C", DEFAULT_FIELD_SIZE) for name in names
        ]
        rows: list[list[Any]] = [
            [None if value is None else str(value) for value in record.values()]
            for record, __geometry in pairs
        ]
    else:
        field_list = [as_field(field) for field in fields]
        field_names = [field.name for field in field_list]
        if field_names != stored_names:
            raise FieldMismatch(
                f"The fields {field_names} do not match the record keys {names}."
            )
        rows = [list(record.values()) for record, __geometry in pairs]

    writer = Writer(
        os.path.join(fsdecode_if_pathlike(output_dir), base_name), field_list, **kwargs
    )
    for row, (__record, geometry) in zip(rows, pairs):
        writer.record(*row)
        writer.shape(geometry)
    writer.close()
    return writer.shp_path


def write_records(
    output_path: PathT,
    fields: Iterable[FieldLike],
    records: Iterable[Sequence[Any] | Mapping[str, Any]],
    geometries: Iterable[GeometryLike] | None = None,
    **kwargs: Any,
) -> str:
    """Writes records with explicitly typed fields to the shapefile at
    output_path and returns the path of its .shp file. Records without a
    geometry are written with a null geometry."""
    writer = Writer(output_path, fields, **kwargs)
    records = list(records)
    shapes = [None] * len(records) if geometries is None else list(geometries)
    if len(shapes) != len(records):
        raise CountMismatch(len(records), len(shapes))
    for record, geometry in zip(records, shapes):
        if isinstance(record, Mapping):
            writer.record(**record)
        else:
            writer.record(*record)
        writer.shape(geometry)
    writer.close()
    return writer.shp_path
