from __future__ import annotations

from collections.abc import Iterable


class ShapefileException(Exception):
    """An exception to handle shapefile specific problems."""


class RingSamplingError(ShapefileException):
    pass


class GeoJSONError(ShapefileException):
    pass


class NotFoundError(ShapefileException):
    """A required input file or archive does not exist."""

    artifact = "file"

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"{self.artifact} not found: {path}")


class ShpNotFound(NotFoundError):
    artifact = "SHP file"


class DbfNotFound(NotFoundError):
    artifact = "DBF file"


class ShxNotFound(NotFoundError):
    artifact = "SHX file"


class FormatError(ShapefileException):
    """Structurally invalid binary content."""


class FieldValueError(ShapefileException, ValueError):
    """A value does not fit its declared field width or type."""


class GeometryError(ShapefileException, ValueError):
    pass


class CountMismatch(ShapefileException):
    def __init__(self, records: int, geometries: int):
        self.records = records
        self.geometries = geometries
        super().__init__(
            f"The number of records ({records}) does not match "
            f"the number of geometries ({geometries})"
        )


class FieldMismatch(ShapefileException):
    pass


class EmptyInput(ShapefileException):
    pass


class ArchiveError(ShapefileException):
    pass


class ZipNotFound(NotFoundError, ArchiveError):
    artifact = "ZIP file"


class ExtractionError(ArchiveError):
    pass


class NoValidGroups(ArchiveError):
    pass


class IncompleteGroups(ArchiveError):
    def __init__(self, base_names: Iterable[str]):
        self.base_names = sorted(base_names)
        super().__init__(
            f"Incomplete shapefile groups (need .shp, .dbf and .shx): {self.base_names}"
        )


class MissingFiles(ArchiveError):
    def __init__(self, missing: Iterable[str]):
        self.missing = list(missing)
        super().__init__(f"Files to archive do not exist: {self.missing}")


class ArchiveCreationError(ArchiveError):
    pass
