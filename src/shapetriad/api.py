"""
Result returning wrappers around the reader, writer and archive functions,
for callers that would rather inspect a failure than catch it.

>>> result = read("missing.shp", "missing.dbf", "missing.shx")
>>> result.ok, result.kind
(False, 'ShpNotFound')
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from os import PathLike
from typing import Any, NamedTuple, Optional

from . import archive as _archive
from . import reader as _reader
from . import writer as _writer
from .dbf import FieldLike
from .exceptions import ShapefileException
from .helpers import base_name as _base_name
from .types import BinaryFileT, PathT, T
from .writer import GeometryLike

logger = logging.getLogger(__name__)


class Result(NamedTuple):
    """The outcome of an api call: either a value, or the error that
    prevented it. base_name names the shapefile concerned, if any."""

    value: Any = None
    error: Optional[Exception] = None
    base_name: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> str | None:
        """The name of the error class, e.g. 'DbfNotFound'."""
        return None if self.error is None else type(self.error).__name__

    @property
    def reason(self) -> str | None:
        return None if self.error is None else str(self.error)

    def unwrap(self) -> Any:
        """Returns the value, or raises the error."""
        if self.error is not None:
            raise self.error
        return self.value


def _call(func: Callable[..., T], *args: Any, base_name: str = "", **kwargs: Any) -> Result:
    try:
        return Result(func(*args, **kwargs), None, base_name)
    except (ShapefileException, OSError) as e:
        logger.debug("%s failed: %s: %s", func.__name__, type(e).__name__, e)
        return Result(None, e, base_name)


def read(
    shp_path: BinaryFileT,
    dbf_path: BinaryFileT,
    shx_path: BinaryFileT,
    **kwargs: Any,
) -> Result:
    """Reads the entries of a shapefile. The base name of the result is set
    from the .shp path whether or not the read succeeds."""
    name = _base_name(shp_path) if isinstance(shp_path, (str, PathLike)) else ""
    result = _call(_reader.read, shp_path, dbf_path, shx_path, base_name=name, **kwargs)
    if result.ok:
        __name, entries = result.value
        return Result(entries, None, name)
    return result


def write(
    output_dir: str | PathLike[Any],
    base_name: str,
    entries: Iterable[Any],
    fields: Iterable[FieldLike] | None = None,
    **kwargs: Any,
) -> Result:
    """Writes entries as a shapefile, see writer.write_entries.
    The value is the path of the written .shp file."""
    return _call(
        _writer.write_entries,
        output_dir,
        base_name,
        entries,
        fields,
        base_name=base_name,
        **kwargs,
    )


def write_records(
    output_path: PathT,
    fields: Iterable[FieldLike],
    records: Iterable[Sequence[Any] | Mapping[str, Any]],
    geometries: Iterable[GeometryLike] | None = None,
    **kwargs: Any,
) -> Result:
    return _call(
        _writer.write_records,
        output_path,
        fields,
        records,
        geometries,
        base_name=_base_name(output_path),
        **kwargs,
    )


def extract(zip_path: str | PathLike[Any], strict: bool = False) -> Result:
    return _call(_archive.extract_and_group, zip_path, strict)


def archive(
    output_dir: str | PathLike[Any],
    name: str,
    file_paths: Iterable[str | PathLike[Any]],
) -> Result:
    return _call(_archive.create_archive, output_dir, name, file_paths, base_name=name)
