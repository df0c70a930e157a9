"""
This module tests the geometry model and its GeoJSON interchange.
"""

import json

# third party imports
import pytest

# our imports
import shapetriad
from shapetriad import Geometry
from shapetriad.constants import NODATA, TRIANGLE_STRIP
from shapetriad.geometric_calculations import is_cw, organize_polygon_rings, signed_area

# exterior rings are clockwise and holes counter-clockwise
EXTERIOR = [(1, 1), (1, 9), (9, 9), (9, 1), (1, 1)]
HOLE = [(2, 2), (4, 2), (4, 4), (2, 4), (2, 2)]
EXTERIOR_2 = [(11, 11), (11, 19), (19, 19), (19, 11), (11, 11)]

# define various test geometries of (geometry, and expected geo interface output)
geo_interface_tests = [
    (
        Geometry.point(1, 1),
        {"type": "Point", "coordinates": (1, 1)},
    ),
    (
        Geometry.pointm(1, 1, 5),
        {"type": "Point", "coordinates": (1, 1, 5)},
    ),
    (
        Geometry.pointm(1, 1),  # missing measure is left out
        {"type": "Point", "coordinates": (1, 1)},
    ),
    (
        Geometry.pointz(1, 1, 2, 5),
        {"type": "Point", "coordinates": (1, 1, 2, 5)},
    ),
    (
        Geometry.multipoint([(1, 1), (2, 1), (2, 2)]),
        {"type": "MultiPoint", "coordinates": [(1, 1), (2, 1), (2, 2)]},
    ),
    (
        Geometry.line([[(1, 1), (2, 1)]]),
        {"type": "LineString", "coordinates": [(1, 1), (2, 1)]},
    ),
    (
        Geometry.line([[(1, 1), (2, 1)], [(10, 10), (20, 10)]]),
        {
            "type": "MultiLineString",
            "coordinates": [[(1, 1), (2, 1)], [(10, 10), (20, 10)]],
        },
    ),
    (
        Geometry.poly([EXTERIOR]),
        {"type": "Polygon", "coordinates": [EXTERIOR]},
    ),
    (
        Geometry.poly([EXTERIOR, HOLE]),
        {"type": "Polygon", "coordinates": [EXTERIOR, HOLE]},
    ),
    (
        Geometry.poly([EXTERIOR, EXTERIOR_2, HOLE]),
        {"type": "MultiPolygon", "coordinates": [[EXTERIOR, HOLE], [EXTERIOR_2]]},
    ),
]


@pytest.mark.parametrize("geometry,expected", geo_interface_tests)
def test_expected_geo_interface(geometry, expected):
    """
    Assert that calling __geo_interface__
    on arbitrary geometries works as expected.
    """
    geoj = geometry.__geo_interface__
    assert geoj == expected
    assert json.dumps(geoj)


def test_null_geo_interface():
    """
    Assert that a null geometry has no GeoJSON geometry.
    """
    with pytest.raises(shapetriad.GeoJSONError):
        Geometry.null().__geo_interface__


def test_multipatch_geo_interface():
    geometry = Geometry.multipatch(
        [[(0, 0, 0), (0, 1, 0), (1, 1, 0)]], [TRIANGLE_STRIP]
    )
    with pytest.raises(shapetriad.GeoJSONError):
        geometry.__geo_interface__


# GeoJSON has no measures, and multipolygon rings are regrouped by polygon
geojson_roundtrip_tests = [
    (geometry, expected)
    for geometry, expected in geo_interface_tests
    if not geometry.has_m and expected["type"] != "MultiPolygon"
]


@pytest.mark.parametrize("geometry,expected", geojson_roundtrip_tests)
def test_from_geojson_roundtrip(geometry, expected):
    """
    Assert that geometries rebuilt from their GeoJSON are unchanged.
    """
    assert Geometry.from_geojson(expected) == geometry


def test_from_geojson_rewinds_rings():
    """
    GeoJSON (RFC7946) exteriors are counter-clockwise,
    shapefile exteriors are clockwise.
    """
    ccw_exterior = [(0, 0), (1, 0), (1, 1), (0, 1), (0, 0)]
    geometry = Geometry.from_geojson({"type": "Polygon", "coordinates": [ccw_exterior]})
    assert geometry.shape_type == shapetriad.POLYGON
    assert is_cw(geometry.parts[0])
    assert geometry.parts[0] == ((0, 0), (0, 1), (1, 1), (1, 0), (0, 0))


def test_from_geojson_multipolygon():
    geometry = Geometry.from_geojson(
        {"type": "MultiPolygon", "coordinates": [[EXTERIOR, HOLE], [EXTERIOR_2]]}
    )
    assert geometry.shape_type == shapetriad.POLYGON
    assert len(geometry.parts) == 3
    assert geometry.parts[1] == tuple((float(x), float(y)) for x, y in HOLE)


def test_from_geojson_null():
    assert Geometry.from_geojson(None) == Geometry.null()
    assert Geometry.from_geojson({"type": "Null"}).is_null


def test_from_geojson_unsupported():
    with pytest.raises(shapetriad.GeoJSONError):
        Geometry.from_geojson({"type": "GeometryCollection", "geometries": []})
    with pytest.raises(shapetriad.GeoJSONError):
        Geometry.from_geojson({"type": "Point", "coordinates": ()})


def test_normalize_points():
    """
    Assert that points get exactly the coordinates of their shape type.
    """
    assert Geometry.point(1, 2).parts == (((1.0, 2.0),),)
    assert Geometry.pointm(1, 2).parts == (((1.0, 2.0, None),),)
    assert Geometry.pointz(1, 2).parts == (((1.0, 2.0, 0.0, None),),)
    # extra coordinates are dropped, missing ones filled in
    assert Geometry.line([[(1, 2, 3, 4), (5, 6)]]).parts == (((1.0, 2.0), (5.0, 6.0)),)
    assert Geometry.linez([[(1, 2), (3, 4, 5)]]).parts == (
        ((1.0, 2.0, 0.0, None), (3.0, 4.0, 5.0, None)),
    )


def test_measure_below_nodata_is_missing():
    assert Geometry.pointm(1, 2, -1e40).parts[0][0] == (1.0, 2.0, None)


def test_polygon_rings_are_closed():
    geometry = Geometry.poly([[(0, 0), (0, 1), (1, 1)]])
    assert geometry.parts[0][0] == geometry.parts[0][-1] == (0.0, 0.0)
    assert len(geometry.parts[0]) == 4


def test_multipoint_single_part():
    geometry = Geometry.create(shapetriad.MULTIPOINT, [[(1, 1)], [(2, 2)]])
    assert geometry.parts == (((1.0, 1.0), (2.0, 2.0)),)
    assert Geometry.multipoint([]).parts == ()


@pytest.mark.parametrize(
    "shape_type,parts,part_types",
    [
        (99, [], None),  # unknown shape type
        (shapetriad.NULL, [[(1, 1)]], None),  # null with coordinates
        (shapetriad.POINT, [[(1, 1), (2, 2)]], None),  # two points
        (shapetriad.POINT, [], None),  # no point
        (shapetriad.POLYLINE, [[(1, 1), (2, 2)], []], None),  # empty part
        (shapetriad.POLYLINE, [[(1, 1), (2, 2)]], [TRIANGLE_STRIP]),  # part types
        (shapetriad.MULTIPATCH, [[(1, 1), (2, 2), (2, 1)]], None),  # no part types
        (shapetriad.POINT, [[("a", 1)]], None),  # not a number
        (shapetriad.POINT, [[(1,)]], None),  # no y
    ],
)
def test_create_invalid(shape_type, parts, part_types):
    with pytest.raises(shapetriad.GeometryError):
        Geometry.create(shape_type, parts, part_types)


def test_geometry_error_is_value_error():
    with pytest.raises(ValueError):
        Geometry.point("x", 1)


def test_derived_values():
    geometry = Geometry.linez([[(0, 0, 1, 5), (2, 3, 4)], [(-1, 5, -2, 7)]])
    assert geometry.shape_type_name == "POLYLINEZ"
    assert geometry.has_z
    assert geometry.has_m
    assert not geometry.is_null
    assert len(geometry.points) == 3
    assert geometry.part_indexes == [0, 2]
    assert geometry.bbox == (-1, 0, 2, 5)
    assert geometry.zbox == (-2, 4)
    assert geometry.mbox == (5, 7)


def test_derived_values_without_measures():
    geometry = Geometry.linem([[(0, 0), (1, 1)]])
    assert geometry.mbox == (NODATA, NODATA)
    assert geometry.zbox is None
    assert Geometry.line([[(0, 0), (1, 1)]]).mbox is None
    assert Geometry.null().bbox is None


def test_polygons():
    geometry = Geometry.poly([EXTERIOR, EXTERIOR_2, HOLE])
    polygons = geometry.polygons()
    assert len(polygons) == 2
    assert len(polygons[0]) == 2  # exterior and its hole
    assert len(polygons[1]) == 1
    with pytest.raises(shapetriad.GeometryError):
        Geometry.point(1, 1).polygons()


def test_organize_only_holes():
    errors = {}
    polygons = organize_polygon_rings([HOLE], errors)
    assert polygons == [[HOLE]]
    assert errors == {"polygon_only_holes": 1}


def test_organize_orphaned_hole():
    orphan = [(30, 30), (32, 30), (32, 32), (30, 32), (30, 30)]
    errors = {}
    polygons = organize_polygon_rings([EXTERIOR, EXTERIOR_2, orphan], errors)
    assert polygons == [[EXTERIOR], [EXTERIOR_2], [orphan]]
    assert errors == {"polygon_orphaned_holes": 1}


def test_signed_area():
    assert signed_area(HOLE) == 4
    assert signed_area(EXTERIOR) == -64
    assert signed_area([]) == 0
