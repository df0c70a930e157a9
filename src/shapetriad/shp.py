"""
Reads and writes the geometry (.shp) and index (.shx) files of a shapefile.

Both files start with the same 100 byte header. The geometry file is then a
sequence of records, each a big endian (record number, content length) pair
followed by the little endian content: a shape type tag and the payload for
that type. The index file holds one big endian (offset, content length) pair
per record. Offsets and lengths are counted in 16-bit words.
"""

from __future__ import annotations

import io
import logging
from collections.abc import Iterable, Sequence
from struct import error, pack, unpack
from typing import NamedTuple

from .constants import (
    M_TYPES,
    MAX_WORDS,
    MULTIPATCH_TYPES,
    MULTIPOINT_TYPES,
    NODATA,
    NULL,
    PARTED_TYPES,
    POINT_TYPES,
    SHAPETYPE_LOOKUP,
    SHP_FILE_CODE,
    SHP_HEADER_LENGTH,
    SHP_VERSION,
    SHX_RECORD_LENGTH,
    Z_TYPES,
)
from .exceptions import FormatError, GeometryError, ShapefileException
from .geometry import NULL_GEOMETRY, Geometry
from .helpers import read_exact, unpack_2_int32_be
from .types import BBox, MBox, PartT, PointT, ZBox

logger = logging.getLogger(__name__)


class ShpHeader(NamedTuple):
    file_length: int  # in bytes
    shape_type: int
    bbox: BBox
    zbox: ZBox
    mbox: tuple[float | None, float | None]


def read_header(data: bytes, kind: str = "shp") -> ShpHeader:
    """Reads and validates the 100 byte header of a .shp or .shx file."""
    if len(data) < SHP_HEADER_LENGTH:
        raise FormatError(
            f"The {kind} file is {len(data)} bytes long, "
            f"too short for its {SHP_HEADER_LENGTH} byte header."
        )
    file_code, *__unused, length_words = unpack(">7i", data[:28])
    if file_code != SHP_FILE_CODE:
        raise FormatError(
            f"The {kind} file has file code {file_code}, expected {SHP_FILE_CODE}."
        )
    version, shape_type = unpack("<2i", data[28:36])
    if version != SHP_VERSION:
        raise FormatError(
            f"The {kind} file has version {version}, expected {SHP_VERSION}."
        )
    if shape_type not in SHAPETYPE_LOOKUP:
        raise FormatError(f"The {kind} file has unknown shape type {shape_type}.")

    file_length = 2 * length_words
    if file_length < SHP_HEADER_LENGTH:
        raise FormatError(
            f"The {kind} file declares a length of {file_length} bytes, "
            f"shorter than its header."
        )
    # Trailing bytes beyond the declared length are ignored, missing ones are not.
    if file_length > len(data):
        raise FormatError(
            f"The {kind} file declares a length of {file_length} bytes "
            f"but only {len(data)} bytes are available (truncated?)."
        )

    xmin, ymin, xmax, ymax, zmin, zmax, mmin, mmax = unpack("<8d", data[36:100])
    # Measure values less than -10e38 are nodata values according to the ESRI shapefile spec
    mbox = (
        mmin if mmin > NODATA else None,
        mmax if mmax > NODATA else None,
    )
    return ShpHeader(file_length, shape_type, (xmin, ymin, xmax, ymax), (zmin, zmax), mbox)


def _check_bbox(header: ShpHeader) -> None:
    xmin, ymin, xmax, ymax = header.bbox
    if xmin > xmax or ymin > ymax:
        raise FormatError(f"The shp file has an invalid bounding box: {header.bbox}.")


def decode(shp_bytes: bytes, shx_bytes: bytes) -> list[Geometry]:
    """Decodes every geometry of a shapefile, checking each record against
    its entry in the index file."""
    shp_header = read_header(shp_bytes, "shp")
    shx_header = read_header(shx_bytes, "shx")
    if shp_header.shape_type != shx_header.shape_type:
        raise FormatError(
            f"The shp file has shape type {shp_header.shape_type} "
            f"but the shx file has shape type {shx_header.shape_type}."
        )

    index_length = shx_header.file_length - SHP_HEADER_LENGTH
    if index_length % SHX_RECORD_LENGTH:
        raise FormatError(
            f"The shx file holds {index_length} bytes of index records, "
            f"not a multiple of {SHX_RECORD_LENGTH}."
        )
    num_shapes = index_length // SHX_RECORD_LENGTH
    if num_shapes and shp_header.shape_type != NULL:
        _check_bbox(shp_header)

    file_length = shp_header.file_length
    geometries: list[Geometry] = []
    pos = SHP_HEADER_LENGTH
    for i in range(num_shapes):
        start = SHP_HEADER_LENGTH + i * SHX_RECORD_LENGTH
        offset_words, length_words = unpack_2_int32_be(
            shx_bytes[start : start + SHX_RECORD_LENGTH]
        )
        if 2 * offset_words != pos:
            raise FormatError(
                f"Index entry {i} points to byte {2 * offset_words} "
                f"but record {i} starts at byte {pos}."
            )
        if pos + 8 > file_length:
            raise FormatError(
                f"The shp file ends before record {i} (truncated?). "
                f"The index lists {num_shapes} records."
            )
        __rec_num, content_words = unpack_2_int32_be(shp_bytes[pos : pos + 8])
        if content_words != length_words:
            raise FormatError(
                f"Record {i} has a content length of {content_words} words "
                f"but its index entry says {length_words}."
            )
        if content_words < 2:
            raise FormatError(
                f"Record {i} has a content length of {content_words} words, "
                "too short for a shape type."
            )
        content_start = pos + 8
        content_end = content_start + 2 * content_words
        if content_end > file_length:
            raise FormatError(
                f"Record {i} runs past the end of the shp file (truncated?)."
            )
        geometries.append(
            decode_record(shp_bytes[content_start:content_end], i)
        )
        pos = content_end

    if pos != file_length:
        raise FormatError(
            f"The shp file holds {file_length - pos} bytes of records "
            f"after the {num_shapes} records listed in the shx file."
        )

    logger.debug("Decoded %d geometries of type %s", len(geometries),
                 SHAPETYPE_LOOKUP[shp_header.shape_type])
    return geometries


def decode_record(content: bytes, i: int = 0) -> Geometry:
    """Decodes the content of a single geometry record."""
    b_io = io.BytesIO(content)
    (shape_type,) = unpack("<i", read_exact(b_io, 4, f"record {i} shape type"))
    if shape_type not in SHAPETYPE_LOOKUP:
        raise FormatError(f"Record {i} has unknown shape type {shape_type}.")

    if shape_type == NULL:
        return NULL_GEOMETRY
    if shape_type in POINT_TYPES:
        return _read_point(b_io, shape_type, len(content), i)
    return _read_multi_point_record(b_io, shape_type, len(content), i)


def _read_point(
    b_io: io.BytesIO, shape_type: int, size: int, i: int
) -> Geometry:
    x, y = unpack("<2d", read_exact(b_io, 16, f"record {i} point"))
    point: PointT = (x, y)
    if shape_type in Z_TYPES:
        (z,) = unpack("<d", read_exact(b_io, 8, f"record {i} z value"))
    if shape_type in M_TYPES:
        # The measure is optional
        m: float | None = None
        if size - b_io.tell() >= 8:
            (m,) = unpack("<d", b_io.read(8))
            if m <= NODATA:
                m = None
        point = (x, y, z, m) if shape_type in Z_TYPES else (x, y, m)
    return Geometry(shape_type, ((point,),))


def _read_doubles(b_io: io.BytesIO, n: int, what: str) -> tuple[float, ...]:
    return unpack(f"<{n}d", read_exact(b_io, 8 * n, what))


def _read_multi_point_record(
    b_io: io.BytesIO, shape_type: int, size: int, i: int
) -> Geometry:
    # The record bbox is not kept: Geometry.bbox is derived from the points.
    read_exact(b_io, 32, f"record {i} bounding box")

    num_parts = 0
    if shape_type in PARTED_TYPES:
        (num_parts,) = unpack("<i", read_exact(b_io, 4, f"record {i} part count"))
    (num_points,) = unpack("<i", read_exact(b_io, 4, f"record {i} point count"))
    if num_parts < 0 or num_points < 0:
        raise FormatError(
            f"Record {i} has a negative part ({num_parts}) or point ({num_points}) count."
        )

    part_indexes: Sequence[int] = ()
    part_types: tuple[int, ...] = ()
    if num_parts:
        part_indexes = unpack(
            f"<{num_parts}i", read_exact(b_io, 4 * num_parts, f"record {i} parts")
        )
        if shape_type in MULTIPATCH_TYPES:
            part_types = unpack(
                f"<{num_parts}i",
                read_exact(b_io, 4 * num_parts, f"record {i} part types"),
            )

    flat = _read_doubles(b_io, 2 * num_points, f"record {i} points")
    xys = list(zip(flat[::2], flat[1::2]))

    points: list[PointT]
    if shape_type in Z_TYPES:
        read_exact(b_io, 16, f"record {i} z range")
        zs = _read_doubles(b_io, num_points, f"record {i} z values")
    if shape_type in M_TYPES:
        ms: Sequence[float | None]
        # The measure block is optional
        if size - b_io.tell() >= 16 + 8 * num_points:
            b_io.read(16)
            ms = [
                m if m > NODATA else None
                for m in unpack(f"<{num_points}d", b_io.read(8 * num_points))
            ]
        else:
            ms = [None] * num_points
        if shape_type in Z_TYPES:
            points = [(x, y, z, m) for (x, y), z, m in zip(xys, zs, ms)]
        else:
            points = [(x, y, m) for (x, y), m in zip(xys, ms)]
    else:
        points = list(xys)

    if shape_type in MULTIPOINT_TYPES:
        parts: tuple[PartT, ...] = (tuple(points),) if points else ()
    else:
        if not num_parts and num_points:
            part_indexes = (0,)
        _check_part_indexes(part_indexes, num_points, i)
        bounds = [*part_indexes, num_points]
        parts = tuple(
            tuple(points[start:end]) for start, end in zip(bounds, bounds[1:])
        )

    return Geometry(shape_type, parts, tuple(part_types))


def _check_part_indexes(part_indexes: Sequence[int], num_points: int, i: int) -> None:
    if not part_indexes:
        return
    if part_indexes[0] != 0:
        raise FormatError(f"The first part of record {i} starts at {part_indexes[0]}, not 0.")
    for start, end in zip(part_indexes, [*part_indexes[1:], num_points]):
        if end < start or end > num_points:
            raise FormatError(
                f"Record {i} has invalid part indexes {list(part_indexes)} "
                f"for {num_points} points."
            )


def _extend_box(
    box: tuple[float, ...] | None, other: tuple[float, ...]
) -> tuple[float, ...]:
    if box is None:
        return other
    half = len(box) // 2
    return (
        *(min(a, b) for a, b in zip(box[:half], other[:half])),
        *(max(a, b) for a, b in zip(box[half:], other[half:])),
    )


def _header(file_length: int, shape_type: int, bbox: BBox, zbox: ZBox, mbox: MBox) -> bytes:
    try:
        return (
            pack(">7i", SHP_FILE_CODE, 0, 0, 0, 0, 0, file_length // 2)
            + pack("<2i", SHP_VERSION, shape_type)
            + pack("<8d", *bbox, *zbox, *mbox)
        )
    except error:
        raise ShapefileException(
            "Failed to write shapefile bounding box, elevation and measure values. "
            "Floats required."
        )


def encode(
    geometries: Iterable[Geometry], shape_type: int | None = None
) -> tuple[bytes, bytes]:
    """Encodes geometries as the bytes of a .shp file and its .shx index.
    All non-null geometries must share one shape type, which becomes the
    shape type of the file unless shape_type is given."""
    geometries = list(geometries)
    if shape_type is None:
        shape_type = next((g.shape_type for g in geometries if not g.is_null), NULL)
    elif shape_type not in SHAPETYPE_LOOKUP:
        raise GeometryError(f"Unknown shape type: {shape_type!r}")

    records = io.BytesIO()
    index = io.BytesIO()
    bbox: tuple[float, ...] | None = None
    zbox: tuple[float, ...] | None = None
    measures: list[float] = []
    for i, geometry in enumerate(geometries):
        if geometry.shape_type not in (NULL, shape_type):
            raise GeometryError(
                f"The shape type of record {i} ({geometry.shape_type_name}) must "
                f"match the type of the shapefile ({SHAPETYPE_LOOKUP[shape_type]})."
            )
        content = encode_record(geometry, i)
        offset = SHP_HEADER_LENGTH + records.tell()
        length = len(content) // 2
        if (offset + 8 + len(content)) // 2 > MAX_WORDS:
            raise ShapefileException(
                "The .shp file has reached its file size limit > 4294967294 bytes (4.29 GB). "
                "To fix this, break up your file into multiple smaller ones."
            )
        records.write(pack(">2i", i + 1, length))
        records.write(content)
        index.write(pack(">2i", offset // 2, length))

        if geometry.bbox is not None:
            bbox = _extend_box(bbox, geometry.bbox)
        if geometry.zbox is not None:
            zbox = _extend_box(zbox, geometry.zbox)
        if geometry.has_m:
            measures.extend(p[-1] for p in geometry.points if p[-1] is not None)

    # For empty files, and for files without Z or M values, the boxes are 0s.
    file_bbox = bbox if bbox is not None else (0.0, 0.0, 0.0, 0.0)
    file_zbox = zbox if zbox is not None else (0.0, 0.0)
    file_mbox = (min(measures), max(measures)) if measures else (0.0, 0.0)

    shp_length = SHP_HEADER_LENGTH + records.tell()
    shx_length = SHP_HEADER_LENGTH + index.tell()
    shp_bytes = _header(shp_length, shape_type, file_bbox, file_zbox, file_mbox)
    shx_bytes = _header(shx_length, shape_type, file_bbox, file_zbox, file_mbox)
    return shp_bytes + records.getvalue(), shx_bytes + index.getvalue()


def encode_record(geometry: Geometry, i: int = 0) -> bytes:
    """Encodes the content of a single geometry record."""
    shape_type = geometry.shape_type
    if shape_type not in SHAPETYPE_LOOKUP:
        raise GeometryError(f"Record {i} has unknown shape type {shape_type}.")

    b_io = io.BytesIO()
    b_io.write(pack("<i", shape_type))
    try:
        if shape_type == NULL:
            pass
        elif shape_type in POINT_TYPES:
            _write_point(b_io, geometry)
        else:
            _write_multi_point_record(b_io, geometry)
    except (error, TypeError, IndexError):
        raise GeometryError(
            f"Failed to write {geometry.shape_type_name} geometry for record {i}. "
            "Expected floats."
        )
    return b_io.getvalue()


def _m_to_encode(m: float | None) -> float:
    # None is written as NODATA, and read back as None
    return m if m is not None else NODATA


def _write_point(b_io: io.BytesIO, geometry: Geometry) -> None:
    point = geometry.parts[0][0]
    b_io.write(pack("<2d", point[0], point[1]))
    if geometry.has_z:
        b_io.write(pack("<d", point[2]))
    if geometry.has_m:
        b_io.write(pack("<d", _m_to_encode(point[-1])))


def _write_multi_point_record(b_io: io.BytesIO, geometry: Geometry) -> None:
    shape_type = geometry.shape_type
    points = geometry.points
    b_io.write(pack("<4d", *(geometry.bbox or (0.0, 0.0, 0.0, 0.0))))
    if shape_type in PARTED_TYPES:
        b_io.write(pack("<i", len(geometry.parts)))
    b_io.write(pack("<i", len(points)))
    if shape_type in PARTED_TYPES:
        part_indexes = geometry.part_indexes
        b_io.write(pack(f"<{len(part_indexes)}i", *part_indexes))
    if shape_type in MULTIPATCH_TYPES:
        b_io.write(pack(f"<{len(geometry.part_types)}i", *geometry.part_types))

    xys: list[float] = []
    for point in points:
        xys.extend(point[:2])
    b_io.write(pack(f"<{len(xys)}d", *xys))

    if geometry.has_z:
        b_io.write(pack("<2d", *(geometry.zbox or (0.0, 0.0))))
        b_io.write(pack(f"<{len(points)}d", *(p[2] for p in points)))
    if geometry.has_m:
        b_io.write(pack("<2d", *(geometry.mbox or (0.0, 0.0))))
        b_io.write(pack(f"<{len(points)}d", *(_m_to_encode(p[-1]) for p in points)))
