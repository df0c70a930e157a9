from __future__ import annotations

# Module settings
VERBOSE = True

# Constants for shape types
NULL = 0
POINT = 1
POLYLINE = 3
POLYGON = 5
MULTIPOINT = 8
POINTZ = 11
POLYLINEZ = 13
POLYGONZ = 15
MULTIPOINTZ = 18
POINTM = 21
POLYLINEM = 23
POLYGONM = 25
MULTIPOINTM = 28
MULTIPATCH = 31

SHAPETYPE_LOOKUP = {
    NULL: "NULL",
    POINT: "POINT",
    POLYLINE: "POLYLINE",
    POLYGON: "POLYGON",
    MULTIPOINT: "MULTIPOINT",
    POINTZ: "POINTZ",
    POLYLINEZ: "POLYLINEZ",
    POLYGONZ: "POLYGONZ",
    MULTIPOINTZ: "MULTIPOINTZ",
    POINTM: "POINTM",
    POLYLINEM: "POLYLINEM",
    POLYGONM: "POLYGONM",
    MULTIPOINTM: "MULTIPOINTM",
    MULTIPATCH: "MULTIPATCH",
}

# Shape type families
POINT_TYPES = frozenset([POINT, POINTM, POINTZ])
MULTIPOINT_TYPES = frozenset([MULTIPOINT, MULTIPOINTM, MULTIPOINTZ])
POLYLINE_TYPES = frozenset([POLYLINE, POLYLINEM, POLYLINEZ])
POLYGON_TYPES = frozenset([POLYGON, POLYGONM, POLYGONZ])
MULTIPATCH_TYPES = frozenset([MULTIPATCH])

# Types storing part indexes per record
PARTED_TYPES = POLYLINE_TYPES | POLYGON_TYPES | MULTIPATCH_TYPES

Z_TYPES = frozenset([POINTZ, POLYLINEZ, POLYGONZ, MULTIPOINTZ, MULTIPATCH])
# Every Z type carries measures too
M_TYPES = Z_TYPES | frozenset([POINTM, POLYLINEM, POLYGONM, MULTIPOINTM])

TRIANGLE_STRIP = 0
TRIANGLE_FAN = 1
OUTER_RING = 2
INNER_RING = 3
FIRST_RING = 4
RING = 5

MISSING = (None, "")  # Don't make a set, as user input may not be Hashable
NODATA = -10e38  # as per the ESRI shapefile spec, only used for m-values.

# Main file and index file headers
SHP_FILE_CODE = 9994
SHP_VERSION = 1000
SHP_HEADER_LENGTH = 100
SHX_RECORD_LENGTH = 8
# Offsets and lengths are stored as signed 32-bit counts of 16-bit words
MAX_WORDS = 2**31 - 1

# DBF
DBF_VERSION = 3
DBF_HEADER_TERMINATOR = b"\r"
DBF_EOF = b"\x1a"
DBF_ACTIVE = b" "
DBF_DELETED = b"*"
DBF_MAX_FIELD_NAME = 10
DBF_MAX_FIELDS = 2046
DEFAULT_FIELD_SIZE = 255

# Triads and archives
SHP_EXT = ".shp"
DBF_EXT = ".dbf"
SHX_EXT = ".shx"
TRIAD_EXTENSIONS = (SHP_EXT, DBF_EXT, SHX_EXT)
TEMP_DIR_PREFIX = "shapetriad_"
