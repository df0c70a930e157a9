from __future__ import annotations

import io
import logging
import os
from collections.abc import Iterator
from os import PathLike
from types import TracebackType
from typing import IO, Any, cast

from . import dbf as dbf_codec
from . import shp as shp_codec
from .classes import ShapeEntries, ShapeEntry
from .constants import SHAPETYPE_LOOKUP
from .dbf import Field, Record
from .exceptions import (
    CountMismatch,
    DbfNotFound,
    NotFoundError,
    ShapefileException,
    ShpNotFound,
    ShxNotFound,
)
from .geojson import GeoJSONFeatureCollectionWithBBox
from .geometry import Geometry
from .helpers import base_name, fsdecode_if_pathlike
from .types import BBox, BinaryFileT

logger = logging.getLogger(__name__)


class Reader:
    """Reads the three files of a shapefile as a unit.

    shp, dbf and shx are each a path or a readable binary file object. All
    three are required: a missing path raises the NotFoundError subclass
    naming that file, checked in the order shp, dbf, shx. Files are opened
    on construction and decoded on first access, after which the reader
    can be closed. Files passed in as objects are never closed by the
    reader.

    Every geometry in the .shp file is paired with the record at the same
    position in the .dbf file. Records flagged as deleted in the .dbf are
    skipped along with their geometry.
    """

    def __init__(
        self,
        shp: BinaryFileT,
        dbf: BinaryFileT,
        shx: BinaryFileT,
        *,
        encoding: str = "utf-8",
        encoding_errors: str = "strict",
    ):
        self.encoding = encoding
        self.encoding_errors = encoding_errors
        self.base_name = ""
        self._files_to_close: list[IO[bytes]] = []
        self._fields: list[Field] | None = None
        self._entries: ShapeEntries | None = None
        self._header: shp_codec.ShpHeader | None = None

        shp = fsdecode_if_pathlike(shp)
        if isinstance(shp, str):
            self.base_name = base_name(shp)
        sources = (
            (shp, ShpNotFound),
            (fsdecode_if_pathlike(dbf), DbfNotFound),
            (fsdecode_if_pathlike(shx), ShxNotFound),
        )
        # Report the first missing file before opening any of them
        for source, not_found in sources:
            self._check_exists(source, not_found)
        try:
            self.shp, self.dbf, self.shx = (
                self._open(source, not_found) for source, not_found in sources
            )
        except BaseException:
            self.close()
            raise

    @staticmethod
    def _check_exists(source: Any, not_found: type[NotFoundError]) -> None:
        if isinstance(source, str) and not os.path.isfile(source):
            raise not_found(source)

    def _open(self, source: Any, not_found: type[NotFoundError]) -> IO[bytes]:
        if isinstance(source, str):
            try:
                f = open(source, "rb")
            except FileNotFoundError:
                # removed since the existence check
                raise not_found(source)
            self._files_to_close.append(f)
            return f
        if hasattr(source, "read"):
            try:
                source.seek(0)
            except (AttributeError, io.UnsupportedOperation):
                pass
            return cast(IO[bytes], source)
        raise ShapefileException(
            f"Could not load shapefile constituent file from: {source!r}"
        )

    def __str__(self) -> str:
        """
        Use some general info on the shapefile as __str__
        """
        return "\n".join(
            [
                "shapetriad Reader",
                f"    {len(self)} shapes (type '{SHAPETYPE_LOOKUP[self.shape_type]}')",
                f"    {len(self)} records ({len(self.fields)} fields)",
            ]
        )

    def __enter__(self) -> Reader:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        # Close any files that the reader opened (but not those given by user)
        for f in self._files_to_close:
            f.close()
        self._files_to_close = []

    def load(self) -> None:
        """Decodes all three files and pairs records with geometries.
        Called on first access to the contents of the shapefile."""
        if self._entries is not None:
            return
        if any(getattr(f, "closed", False) for f in (self.shp, self.dbf, self.shx)):
            raise ShapefileException("The shapefile reader has been closed.")

        shp_bytes = self.shp.read()
        shx_bytes = self.shx.read()
        dbf_bytes = self.dbf.read()

        self._header = shp_codec.read_header(shp_bytes, "shp")
        geometries = shp_codec.decode(shp_bytes, shx_bytes)
        fields, records = dbf_codec.decode(dbf_bytes, self.encoding, self.encoding_errors)
        num_records = dbf_codec.record_count(dbf_bytes)
        if num_records != len(geometries):
            raise CountMismatch(num_records, len(geometries))

        self._fields = fields
        self._entries = ShapeEntries(
            ShapeEntry(record, geometries[record.oid], record.oid + 1)
            for record in records
        )
        logger.debug(
            "Read %d entries of type %s with %d fields from %s",
            len(self._entries),
            SHAPETYPE_LOOKUP[self._header.shape_type],
            len(fields),
            self.base_name or "file objects",
        )

    def __len__(self) -> int:
        """Returns the number of active records in the shapefile."""
        return len(self.shape_records())

    def __iter__(self) -> Iterator[ShapeEntry]:
        return iter(self.shape_records())

    @property
    def fields(self) -> list[Field]:
        self.load()
        return list(cast(list[Field], self._fields))

    @property
    def header(self) -> shp_codec.ShpHeader:
        self.load()
        return cast(shp_codec.ShpHeader, self._header)

    @property
    def shape_type(self) -> int:
        return self.header.shape_type

    @property
    def shape_type_name(self) -> str:
        return SHAPETYPE_LOOKUP[self.shape_type]

    @property
    def bbox(self) -> BBox:
        return self.header.bbox

    def shapes(self) -> list[Geometry]:
        return self.shape_records().geometries

    def records(self) -> list[Record]:
        return self.shape_records().records

    def shape_records(self) -> ShapeEntries:
        """Returns the records paired with their geometries."""
        self.load()
        return ShapeEntries(cast(ShapeEntries, self._entries))

    @property
    def __geo_interface__(self) -> GeoJSONFeatureCollectionWithBBox:
        return GeoJSONFeatureCollectionWithBBox(
            bbox=list(self.bbox),
            **self.shape_records().__geo_interface__,
        )


def read(
    shp: BinaryFileT,
    dbf: BinaryFileT,
    shx: BinaryFileT,
    encoding: str = "utf-8",
    encoding_errors: str = "strict",
) -> tuple[str, ShapeEntries]:
    """Reads a shapefile from its three files.
    Returns the base name of the .shp file (empty for file objects)
    and the entries in file order."""
    with Reader(
        shp, dbf, shx, encoding=encoding, encoding_errors=encoding_errors
    ) as reader:
        return reader.base_name, reader.shape_records()


def read_dir(
    directory: str | PathLike[Any], name: str, **kwargs: Any
) -> tuple[str, ShapeEntries]:
    """Reads the shapefile name.shp, name.dbf and name.shx in directory."""
    stem = os.path.join(fsdecode_if_pathlike(directory), name)
    return read(f"{stem}.shp", f"{stem}.dbf", f"{stem}.shx", **kwargs)
