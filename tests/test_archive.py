"""
This module tests grouping shapefiles extracted from ZIP archives,
and creating archives.
"""

import os.path
import zipfile

# third party imports
import pytest

# our imports
import shapetriad
from shapetriad import Geometry
from shapetriad.constants import TEMP_DIR_PREFIX


def make_zip(path, members):
    """Writes a ZIP archive holding members, a dict of archive names to bytes."""
    with zipfile.ZipFile(path, "w") as archive:
        for name, data in members.items():
            archive.writestr(name, data)
    return path


def test_extract_and_group(tmpdir):
    """
    Assert that only base names with all three files are returned.
    """
    zip_path = make_zip(
        tmpdir.join("data.zip").strpath,
        {
            "a.shp": b"shp",
            "a.dbf": b"dbf",
            "a.shx": b"shx",
            "b.shp": b"shp",
            "b.dbf": b"dbf",
            "readme.txt": b"text",
        },
    )
    triads = shapetriad.extract_and_group(zip_path)
    assert [t.base_name for t in triads] == ["a"]
    (triad,) = triads
    assert os.path.basename(os.path.dirname(triad.shp)).startswith(TEMP_DIR_PREFIX)
    assert triad.paths == (triad.shp, triad.dbf, triad.shx)
    with open(triad.dbf, "rb") as f:
        assert f.read() == b"dbf"


def test_extract_and_group_case_insensitive(tmpdir):
    zip_path = make_zip(
        tmpdir.join("data.zip").strpath,
        {"ROADS.SHP": b"", "ROADS.Dbf": b"", "ROADS.shx": b""},
    )
    (triad,) = shapetriad.extract_and_group(zip_path)
    assert triad.base_name == "ROADS"
    assert triad.shp.endswith("ROADS.SHP")


def test_extract_and_group_nested(tmpdir):
    """
    Assert that files are grouped by base name across folders.
    """
    zip_path = make_zip(
        tmpdir.join("data.zip").strpath,
        {
            "top/rivers.shp": b"",
            "top/deeper/rivers.dbf": b"",
            "other/rivers.shx": b"",
        },
    )
    (triad,) = shapetriad.extract_and_group(zip_path)
    assert triad.base_name == "rivers"
    assert triad.dbf.endswith(os.path.join("deeper", "rivers.dbf"))


def test_extract_and_group_sorted(tmpdir):
    members = {}
    for name in ("zeta", "alpha", "mid"):
        for ext in (".shp", ".dbf", ".shx"):
            members[name + ext] = b""
    zip_path = make_zip(tmpdir.join("data.zip").strpath, members)
    triads = shapetriad.extract_and_group(zip_path)
    assert [t.base_name for t in triads] == ["alpha", "mid", "zeta"]


def test_extract_and_group_strict(tmpdir):
    zip_path = make_zip(
        tmpdir.join("data.zip").strpath,
        {
            "a.shp": b"",
            "a.dbf": b"",
            "a.shx": b"",
            "b.shp": b"",
            "b.dbf": b"",
        },
    )
    with pytest.raises(shapetriad.IncompleteGroups) as excinfo:
        shapetriad.extract_and_group(zip_path, strict=True)
    assert excinfo.value.base_names == ["b"]


def test_extract_and_group_no_valid_groups(tmpdir):
    zip_path = make_zip(
        tmpdir.join("data.zip").strpath,
        {"a.shp": b"", "a.dbf": b"", "notes.txt": b""},
    )
    with pytest.raises(shapetriad.NoValidGroups):
        shapetriad.extract_and_group(zip_path)


def test_extract_and_group_zip_not_found(tmpdir):
    path = tmpdir.join("missing.zip").strpath
    with pytest.raises(shapetriad.ZipNotFound) as excinfo:
        shapetriad.extract_and_group(path)
    assert excinfo.value.path == path
    assert isinstance(excinfo.value, shapetriad.NotFoundError)
    assert isinstance(excinfo.value, shapetriad.ArchiveError)


def test_extract_and_group_corrupt_zip(tmpdir):
    path = tmpdir.join("corrupt.zip")
    path.write_binary(b"this is not a zip archive")
    with pytest.raises(shapetriad.ExtractionError):
        shapetriad.extract_and_group(path.strpath)


def test_create_archive(tmpdir):
    """
    Assert that files from different folders are stored flat, by file name.
    """
    first = tmpdir.mkdir("one").join("a.shp")
    first.write_binary(b"shp")
    second = tmpdir.mkdir("two").join("a.dbf")
    second.write_binary(b"dbf")

    zip_path = shapetriad.create_archive(
        tmpdir.join("out").strpath, "bundle", [first.strpath, second.strpath]
    )
    assert zip_path == os.path.join(tmpdir.join("out").strpath, "bundle.zip")
    with zipfile.ZipFile(zip_path) as archive:
        assert archive.namelist() == ["a.shp", "a.dbf"]
        assert archive.read("a.dbf") == b"dbf"
        assert all(
            info.compress_type == zipfile.ZIP_DEFLATED for info in archive.infolist()
        )


def test_create_archive_keeps_zip_extension(tmpdir):
    source = tmpdir.join("a.shp")
    source.write_binary(b"")
    zip_path = shapetriad.create_archive(tmpdir.strpath, "bundle.zip", [source.strpath])
    assert os.path.basename(zip_path) == "bundle.zip"


def test_create_archive_missing_files(tmpdir):
    """
    Assert that every missing file is reported and no archive is created.
    """
    present = tmpdir.join("ok.shp")
    present.write_binary(b"")
    missing = [tmpdir.join("missing.dbf").strpath, tmpdir.join("missing.shx").strpath]
    with pytest.raises(shapetriad.MissingFiles) as excinfo:
        shapetriad.create_archive(
            tmpdir.strpath, "name", [present.strpath] + missing
        )
    assert excinfo.value.missing == missing
    assert not os.path.exists(tmpdir.join("name.zip").strpath)


def test_create_archive_output_not_a_directory(tmpdir):
    source = tmpdir.join("a.shp")
    source.write_binary(b"")
    blocker = tmpdir.join("blocker")
    blocker.write_binary(b"")
    with pytest.raises(shapetriad.ArchiveCreationError):
        shapetriad.create_archive(blocker.strpath, "name", [source.strpath])


def test_write_archive_extract_read(tmpdir):
    """
    Assert that a written shapefile survives a trip through an archive.
    """
    entries = [
        ({"NAME": "first"}, Geometry.point(1, 2)),
        ({"NAME": "second"}, Geometry.point(3, 4)),
    ]
    shp_path = shapetriad.write_entries(tmpdir.join("out").strpath, "places", entries)
    stem = shp_path[:-4]
    zip_path = shapetriad.create_archive(
        tmpdir.strpath, "places", [f"{stem}.shp", f"{stem}.dbf", f"{stem}.shx"]
    )

    (triad,) = shapetriad.extract_and_group(zip_path)
    name, read_entries = shapetriad.read(*triad.paths)
    assert name == "places"
    assert [e.record.NAME for e in read_entries] == ["first", "second"]
    assert read_entries.geometries == [Geometry.point(1, 2), Geometry.point(3, 4)]


def test_extract_and_group_unsupported_compression(tmpdir):
    """
    Assert that a member compressed with an unknown method
    fails as an extraction error.
    """
    path = tmpdir.join("odd.zip")
    make_zip(path.strpath, {"a.shp": b"shp"})
    data = bytearray(path.read_binary())
    # compression method of the local file header and the central directory entry
    data[8:10] = (99).to_bytes(2, "little")
    central = data.index(b"PK\x01\x02")
    data[central + 10 : central + 12] = (99).to_bytes(2, "little")
    path.write_binary(bytes(data))
    with pytest.raises(shapetriad.ExtractionError):
        shapetriad.extract_and_group(path.strpath)
