"""
This module tests the .shp and .shx codec.
"""

from struct import pack

# third party imports
import pytest

# our imports
import shapetriad
from shapetriad import Geometry, shp
from shapetriad.constants import NODATA, OUTER_RING, TRIANGLE_FAN

EXTERIOR = [(1, 1), (1, 9), (9, 9), (9, 1), (1, 1)]
HOLE = [(2, 2), (4, 2), (4, 4), (2, 4), (2, 2)]

roundtrip_geometries = [
    Geometry.point(1.5, -2.25),
    Geometry.pointm(1, 2, 3),
    Geometry.pointm(1, 2),
    Geometry.pointz(1, 2, 3, 4),
    Geometry.pointz(1, 2, 3),
    Geometry.multipoint([(1, 1), (2, 2), (3, 1)]),
    Geometry.multipointm([(1, 1, 1), (2, 2, None)]),
    Geometry.multipointz([(1, 1, 1, 1), (2, 2, 2)]),
    Geometry.line([[(0, 0), (1, 1)], [(2, 2), (3, 3), (4, 2)]]),
    Geometry.linem([[(0, 0, 0), (1, 1, 1.5)]]),
    Geometry.linem([[(0, 0), (1, 1)]]),  # no measures at all
    Geometry.linez([[(0, 0, 10, 0), (1, 1, 20)]]),
    Geometry.poly([EXTERIOR, HOLE]),
    Geometry.polym([[(x, y, x + y) for x, y in EXTERIOR]]),
    Geometry.polyz([[(x, y, 100) for x, y in EXTERIOR], HOLE]),
    Geometry.multipatch(
        [
            [(0, 0, 0), (0, 1, 0), (1, 1, 0), (1, 0, 0)],
            [(0, 0, 1, 3), (0, 1, 1, 3), (1, 1, 1, 3), (0, 0, 1, 3)],
        ],
        [TRIANGLE_FAN, OUTER_RING],
    ),
]


@pytest.mark.parametrize(
    "geometry", roundtrip_geometries, ids=lambda g: g.shape_type_name
)
def test_geometry_roundtrip(geometry):
    """
    Assert that every geometry variant, mixed with null geometries,
    decodes to exactly what was encoded.
    """
    geometries = [geometry, Geometry.null(), geometry]
    shp_bytes, shx_bytes = shp.encode(geometries)
    assert shp.decode(shp_bytes, shx_bytes) == geometries


@pytest.mark.parametrize(
    "geometry", roundtrip_geometries, ids=lambda g: g.shape_type_name
)
def test_file_header(geometry):
    shp_bytes, shx_bytes = shp.encode([geometry])
    header = shp.read_header(shp_bytes)
    assert header.shape_type == geometry.shape_type
    assert header.file_length == len(shp_bytes)
    assert header.bbox == geometry.bbox
    if geometry.has_z:
        assert header.zbox == geometry.zbox
    else:
        assert header.zbox == (0, 0)
    shx_header = shp.read_header(shx_bytes, "shx")
    assert shx_header.file_length == len(shx_bytes) == 100 + 8


def test_file_header_boxes_span_records():
    geometries = [
        Geometry.pointz(1, 2, 3, 4),
        Geometry.null(),
        Geometry.pointz(-1, 5, -3),
        Geometry.pointz(0, 0, 0, 10),
    ]
    header = shp.read_header(shp.encode(geometries)[0])
    assert header.bbox == (-1, 0, 1, 5)
    assert header.zbox == (-3, 3)
    assert header.mbox == (4, 10)


def test_empty_file():
    shp_bytes, shx_bytes = shp.encode([])
    assert len(shp_bytes) == len(shx_bytes) == 100
    header = shp.read_header(shp_bytes)
    assert header.shape_type == shapetriad.NULL
    assert header.bbox == (0, 0, 0, 0)
    assert shp.decode(shp_bytes, shx_bytes) == []


def test_empty_file_with_shape_type():
    shp_bytes, shx_bytes = shp.encode([], shapetriad.POLYGONZ)
    assert shp.read_header(shp_bytes).shape_type == shapetriad.POLYGONZ
    assert shp.read_header(shx_bytes).shape_type == shapetriad.POLYGONZ


def test_only_null_geometries():
    geometries = [Geometry.null(), Geometry.null()]
    shp_bytes, shx_bytes = shp.encode(geometries)
    assert shp.read_header(shp_bytes).shape_type == shapetriad.NULL
    assert shp.decode(shp_bytes, shx_bytes) == geometries


def test_encode_mixed_shape_types():
    with pytest.raises(shapetriad.GeometryError):
        shp.encode([Geometry.point(1, 1), Geometry.line([[(0, 0), (1, 1)]])])


def test_point_record_layout():
    """
    Assert the record header and index entry of a single point.
    """
    shp_bytes, shx_bytes = shp.encode([Geometry.point(1, 2)])
    # record number 1, content of 10 words: shape type and two doubles
    assert shp_bytes[100:108] == pack(">2i", 1, 10)
    assert shp_bytes[108:] == pack("<i2d", shapetriad.POINT, 1, 2)
    # offset 50 words (100 bytes), content length 10 words
    assert shx_bytes[100:] == pack(">2i", 50, 10)


def test_measures_written_as_nodata():
    shp_bytes, __shx_bytes = shp.encode([Geometry.pointm(1, 2)])
    assert shp_bytes[108:] == pack("<i3d", shapetriad.POINTM, 1, 2, NODATA)


def test_decode_record_without_measures():
    """
    The M block of measured records is optional.
    """
    content = (
        pack("<i", shapetriad.POLYLINEM)
        + pack("<4d", 0, 0, 1, 1)
        + pack("<2i", 1, 2)
        + pack("<i", 0)
        + pack("<4d", 0, 0, 1, 1)
    )
    assert shp.decode_record(content) == Geometry.linem([[(0, 0), (1, 1)]])


def test_decode_measure_below_nodata():
    content = pack("<i3d", shapetriad.POINTM, 1, 2, -1e40)
    assert shp.decode_record(content).parts == (((1.0, 2.0, None),),)


def test_decode_unknown_record_shape_type():
    with pytest.raises(shapetriad.FormatError):
        shp.decode_record(pack("<i", 99))


def test_decode_truncated_record():
    with pytest.raises(shapetriad.FormatError):
        shp.decode_record(pack("<id", shapetriad.POINT, 1))


def test_decode_invalid_part_indexes():
    content = (
        pack("<i", shapetriad.POLYLINE)
        + pack("<4d", 0, 0, 1, 1)
        + pack("<2i", 2, 2)
        + pack("<2i", 0, 5)
        + pack("<4d", 0, 0, 1, 1)
    )
    with pytest.raises(shapetriad.FormatError):
        shp.decode_record(content)


def test_decode_trailing_junk_ignored():
    """
    Assert that bytes beyond the declared file lengths are not read.
    """
    geometries = [Geometry.line([[(1, 1), (1, 2), (2, 2)]])] * 10
    shp_bytes, shx_bytes = shp.encode(geometries)
    assert shp.decode(shp_bytes + b"12345", shx_bytes + b"12345") == geometries


def test_decode_truncated_file():
    shp_bytes, shx_bytes = shp.encode([Geometry.point(1, 2)] * 3)
    with pytest.raises(shapetriad.FormatError):
        shp.decode(shp_bytes[:-4], shx_bytes)
    with pytest.raises(shapetriad.FormatError):
        shp.decode(shp_bytes, shx_bytes[:50])


@pytest.mark.parametrize(
    "start,replacement",
    [
        (0, pack(">i", 1234)),  # file code
        (28, pack("<i", 999)),  # version
        (32, pack("<i", 2)),  # shape type
    ],
)
def test_decode_invalid_header(start, replacement):
    shp_bytes, shx_bytes = shp.encode([Geometry.point(1, 2)])
    corrupt = shp_bytes[:start] + replacement + shp_bytes[start + len(replacement):]
    with pytest.raises(shapetriad.FormatError):
        shp.decode(corrupt, shx_bytes)


def test_decode_shape_type_mismatch():
    shp_bytes, __shx_bytes = shp.encode([Geometry.point(1, 2)])
    __shp_bytes, shx_bytes = shp.encode([Geometry.pointz(1, 2)])
    with pytest.raises(shapetriad.FormatError):
        shp.decode(shp_bytes, shx_bytes)


def test_decode_invalid_bbox():
    shp_bytes, shx_bytes = shp.encode([Geometry.point(1, 2)])
    corrupt = shp_bytes[:36] + pack("<4d", 5, 5, 0, 0) + shp_bytes[68:]
    with pytest.raises(shapetriad.FormatError):
        shp.decode(corrupt, shx_bytes)


def test_decode_index_offset_mismatch():
    shp_bytes, shx_bytes = shp.encode([Geometry.point(1, 2)] * 2)
    corrupt = shx_bytes[:108] + pack(">2i", 60, 10)
    with pytest.raises(shapetriad.FormatError):
        shp.decode(shp_bytes, corrupt)


def test_decode_index_length_mismatch():
    shp_bytes, shx_bytes = shp.encode([Geometry.point(1, 2)])
    corrupt = shx_bytes[:100] + pack(">2i", 50, 12)
    with pytest.raises(shapetriad.FormatError):
        shp.decode(shp_bytes, corrupt)


def test_decode_records_beyond_index():
    """
    Assert that a .shp file holding more records than its index is rejected.
    """
    shp_bytes, __shx_bytes = shp.encode([Geometry.point(1, 2)] * 2)
    __shp_bytes, shx_bytes = shp.encode([Geometry.point(1, 2)])
    with pytest.raises(shapetriad.FormatError):
        shp.decode(shp_bytes, shx_bytes)


def test_read_header_too_short():
    with pytest.raises(shapetriad.FormatError):
        shp.read_header(b"\x00" * 99)
