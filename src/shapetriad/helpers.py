from __future__ import annotations

import os
from os import PathLike
from struct import Struct
from typing import Any, overload

from .exceptions import FormatError
from .types import ReadableBinStream, T

# Helpers


unpack_2_int32_be = Struct(">2i").unpack


@overload
def fsdecode_if_pathlike(path: PathLike[Any]) -> str: ...
@overload
def fsdecode_if_pathlike(path: T) -> T: ...
def fsdecode_if_pathlike(path: Any) -> Any:
    if isinstance(path, PathLike):
        return os.fsdecode(path)  # str

    return path


def read_exact(b_io: ReadableBinStream, size: int, what: str) -> bytes:
    """Reads exactly size bytes, raising FormatError if the stream
    runs out first."""
    data = b_io.read(size)
    if len(data) != size:
        raise FormatError(
            f"Unexpected end of data reading {what}: "
            f"needed {size} bytes, got {len(data)}."
        )
    return data


def base_name(path: str | PathLike[Any]) -> str:
    """The file name of path without its directory or extension."""
    return os.path.splitext(os.path.basename(fsdecode_if_pathlike(path)))[0]
