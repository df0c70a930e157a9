from __future__ import annotations

from datetime import date
from os import PathLike
from typing import (
    IO,
    Any,
    Final,
    Literal,
    Optional,
    Protocol,
    TypeVar,
    Union,
)

## Custom type variables

T = TypeVar("T")
Point2D = tuple[float, float]
PointMT = tuple[float, float, Optional[float]]
PointZT = tuple[float, float, float, Optional[float]]

PointT = Union[Point2D, PointMT, PointZT]
PointsT = list[PointT]
PartT = tuple[PointT, ...]

BBox = tuple[float, float, float, float]
MBox = tuple[float, float]
ZBox = tuple[float, float]


class ReadableBinStream(Protocol):
    def read(self, size: int = -1) -> bytes: ...


# File name, file object or anything with a read() method that returns bytes.
BinaryFileT = Union[str, PathLike[Any], IO[bytes], ReadableBinStream]
PathT = Union[str, PathLike[Any]]

FieldTypeT = Literal["C", "D", "F", "L", "M", "N"]


# https://en.wikipedia.org/wiki/.dbf#Database_records
class FieldType:
    """A bare bones 'enum', as the enum library noticeably slows performance."""

    C: Final = "C"  # "Character"  # (str)
    D: Final = "D"  # "Date"
    F: Final = "F"  # "Floating point"
    L: Final = "L"  # "Logical"  # (bool)
    M: Final = "M"  # "Memo"  # Legacy. Read as text, the .dbt file is ignored.
    N: Final = "N"  # "Numeric"  # (int, or float with decimals)
    __members__: set[FieldTypeT] = {
        "C",
        "D",
        "F",
        "L",
        "M",
        "N",
    }


FIELD_TYPE_ALIASES: dict[str | bytes, FieldTypeT] = {}
for c in FieldType.__members__:
    FIELD_TYPE_ALIASES[c.upper()] = c
    FIELD_TYPE_ALIASES[c.lower()] = c
    FIELD_TYPE_ALIASES[c.encode("ascii").lower()] = c
    FIELD_TYPE_ALIASES[c.encode("ascii").upper()] = c


RecordValueNotDate = Union[bool, int, float, str]

# A Possible value in a dbf record, i.e. L, N, M, F, C, or D types, or missing
RecordValue = Union[RecordValueNotDate, date, None]
