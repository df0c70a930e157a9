from __future__ import annotations

from typing import NamedTuple

from .constants import NULL
from .dbf import Record
from .geojson import GeoJSONFeature, GeoJSONFeatureCollection
from .geometry import Geometry


class ShapeEntry(NamedTuple):
    """A record of a shapefile paired with its geometry.
    Provides the GeoJSON __geo_interface__ to return a Feature dictionary."""

    record: Record
    geometry: Geometry
    # 1-based record number in the .shp file, 0 when not read from a file
    number: int = 0

    @property
    def __geo_interface__(self) -> GeoJSONFeature:
        return {
            "type": "Feature",
            "properties": self.record.as_dict(date_strings=True),
            "geometry": None
            if self.geometry.shape_type == NULL
            else self.geometry.__geo_interface__,
        }


class ShapeEntries(list[ShapeEntry]):
    """A class to hold a list of ShapeEntry objects. Subclasses list to
    reuse all the optimizations of the builtin list.
    In addition to the list interface, this also provides the GeoJSON
    __geo_interface__ to return a FeatureCollection dictionary."""

    def __repr__(self) -> str:
        return f"ShapeEntries: {list(self)}"

    @property
    def records(self) -> list[Record]:
        return [entry.record for entry in self]

    @property
    def geometries(self) -> list[Geometry]:
        return [entry.geometry for entry in self]

    @property
    def __geo_interface__(self) -> GeoJSONFeatureCollection:
        return GeoJSONFeatureCollection(
            type="FeatureCollection",
            features=[entry.__geo_interface__ for entry in self],
        )


class FileTriad(NamedTuple):
    """The paths of the three files of one shapefile."""

    base_name: str
    shp: str
    dbf: str
    shx: str

    @property
    def paths(self) -> tuple[str, str, str]:
        return self.shp, self.dbf, self.shx
