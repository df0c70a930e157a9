"""
shapetriad
Reads and writes ESRI Shapefiles as .shp/.dbf/.shx triads, and moves them
in and out of ZIP archives.
Compatible with Python versions >=3.9
"""

from __future__ import annotations

import logging

from . import api
from .__version__ import __version__
from .archive import create_archive, extract_and_group
from .classes import FileTriad, ShapeEntries, ShapeEntry
from .constants import (
    FIRST_RING,
    INNER_RING,
    MULTIPATCH,
    MULTIPOINT,
    MULTIPOINTM,
    MULTIPOINTZ,
    NULL,
    OUTER_RING,
    POINT,
    POINTM,
    POINTZ,
    POLYGON,
    POLYGONM,
    POLYGONZ,
    POLYLINE,
    POLYLINEM,
    POLYLINEZ,
    RING,
    SHAPETYPE_LOOKUP,
    TRIANGLE_FAN,
    TRIANGLE_STRIP,
)
from .dbf import Field, Record
from .exceptions import (
    ArchiveCreationError,
    ArchiveError,
    CountMismatch,
    DbfNotFound,
    EmptyInput,
    ExtractionError,
    FieldMismatch,
    FieldValueError,
    FormatError,
    GeoJSONError,
    GeometryError,
    IncompleteGroups,
    MissingFiles,
    NotFoundError,
    NoValidGroups,
    RingSamplingError,
    ShapefileException,
    ShpNotFound,
    ShxNotFound,
    ZipNotFound,
)
from .geometry import NULL_GEOMETRY, Geometry
from .reader import Reader, read, read_dir
from .types import (
    FIELD_TYPE_ALIASES,
    BBox,
    BinaryFileT,
    FieldType,
    FieldTypeT,
    MBox,
    PathT,
    Point2D,
    PointMT,
    PointsT,
    PointT,
    PointZT,
    RecordValue,
    ZBox,
)
from .writer import Writer, write_entries, write_records

__all__ = [
    "__version__",
    "api",
    "NULL",
    "POINT",
    "POLYLINE",
    "POLYGON",
    "MULTIPOINT",
    "POINTZ",
    "POLYLINEZ",
    "POLYGONZ",
    "MULTIPOINTZ",
    "POINTM",
    "POLYLINEM",
    "POLYGONM",
    "MULTIPOINTM",
    "MULTIPATCH",
    "SHAPETYPE_LOOKUP",
    "TRIANGLE_STRIP",
    "TRIANGLE_FAN",
    "OUTER_RING",
    "INNER_RING",
    "FIRST_RING",
    "RING",
    "Geometry",
    "NULL_GEOMETRY",
    "Field",
    "Record",
    "ShapeEntry",
    "ShapeEntries",
    "FileTriad",
    "Reader",
    "read",
    "read_dir",
    "Writer",
    "write_entries",
    "write_records",
    "extract_and_group",
    "create_archive",
    "Point2D",
    "PointMT",
    "PointZT",
    "PointT",
    "PointsT",
    "BBox",
    "MBox",
    "ZBox",
    "BinaryFileT",
    "PathT",
    "FieldTypeT",
    "FieldType",
    "FIELD_TYPE_ALIASES",
    "RecordValue",
    "ShapefileException",
    "RingSamplingError",
    "GeoJSONError",
    "NotFoundError",
    "ShpNotFound",
    "DbfNotFound",
    "ShxNotFound",
    "FormatError",
    "FieldValueError",
    "GeometryError",
    "CountMismatch",
    "FieldMismatch",
    "EmptyInput",
    "ArchiveError",
    "ZipNotFound",
    "ExtractionError",
    "NoValidGroups",
    "IncompleteGroups",
    "MissingFiles",
    "ArchiveCreationError",
]

logger = logging.getLogger(__name__)
