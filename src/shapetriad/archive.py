"""
Moves shapefiles in and out of ZIP archives: extract_and_group() unpacks an
archive and finds the complete .shp/.dbf/.shx triads in it, create_archive()
packs files into a flat archive.
"""

from __future__ import annotations

import logging
import os
import tempfile
import zipfile
from collections import defaultdict
from collections.abc import Iterable
from os import PathLike
from typing import Any

from .classes import FileTriad
from .constants import DBF_EXT, SHP_EXT, SHX_EXT, TEMP_DIR_PREFIX, TRIAD_EXTENSIONS
from .exceptions import (
    ArchiveCreationError,
    ExtractionError,
    IncompleteGroups,
    MissingFiles,
    NoValidGroups,
    ZipNotFound,
)
from .helpers import fsdecode_if_pathlike

logger = logging.getLogger(__name__)


def _scan(directory: str) -> dict[str, dict[str, str]]:
    # base name -> lower case extension -> path
    groups: dict[str, dict[str, str]] = defaultdict(dict)
    for dirpath, dirnames, filenames in os.walk(directory):
        dirnames.sort()
        for filename in sorted(filenames):
            path = os.path.join(dirpath, filename)
            stem, ext = os.path.splitext(filename)
            ext = ext.lower()
            if ext not in TRIAD_EXTENSIONS or not os.path.isfile(path):
                continue
            # the first file found wins when a base name repeats across folders
            groups[stem].setdefault(ext, path)
    return groups


def extract_and_group(zip_path: str | PathLike[Any], strict: bool = False) -> list[FileTriad]:
    """Extracts a ZIP archive into a new temporary directory and returns
    the complete shapefile triads found in it, sorted by base name.

    Files are grouped by base name regardless of the folder they were
    extracted to, and extensions are compared case-insensitively. Groups
    lacking one of the three files are left out, or raise IncompleteGroups
    when strict is set. The temporary directory is not removed.
    """
    zip_path = fsdecode_if_pathlike(zip_path)
    if not os.path.isfile(zip_path):
        raise ZipNotFound(zip_path)

    tmp_dir = tempfile.mkdtemp(prefix=TEMP_DIR_PREFIX)
    try:
        with zipfile.ZipFile(zip_path) as archive:
            archive.extractall(tmp_dir)
    except (
        zipfile.BadZipFile,
        zipfile.LargeZipFile,
        NotImplementedError,  # unsupported compression method
        RuntimeError,  # encrypted member
        OSError,
        EOFError,
    ) as e:
        raise ExtractionError(f"Could not extract {zip_path}: {e}") from e
    logger.debug("Extracted %s to %s", zip_path, tmp_dir)

    triads: list[FileTriad] = []
    incomplete: list[str] = []
    for stem, files in sorted(_scan(tmp_dir).items()):
        if all(ext in files for ext in TRIAD_EXTENSIONS):
            triads.append(
                FileTriad(stem, files[SHP_EXT], files[DBF_EXT], files[SHX_EXT])
            )
        else:
            incomplete.append(stem)
            logger.debug(
                "Skipping incomplete shapefile %s, missing %s",
                stem,
                [ext for ext in TRIAD_EXTENSIONS if ext not in files],
            )

    if strict and incomplete:
        raise IncompleteGroups(incomplete)
    if not triads:
        raise NoValidGroups(
            "No valid shapefile groups found in extracted contents."
        )
    return triads


def create_archive(
    output_dir: str | PathLike[Any],
    name: str,
    file_paths: Iterable[str | PathLike[Any]],
) -> str:
    """Packs files into the ZIP archive name.zip in output_dir and returns
    its path. Each file is stored under its base name, so the archive is
    flat. Nothing is written when any of the files is missing."""
    paths = [fsdecode_if_pathlike(p) for p in file_paths]
    missing = [p for p in paths if not os.path.isfile(p)]
    if missing:
        raise MissingFiles(missing)

    output_dir = fsdecode_if_pathlike(output_dir)
    if not name.lower().endswith(".zip"):
        name += ".zip"
    zip_path = os.path.join(output_dir, name)
    try:
        os.makedirs(output_dir, exist_ok=True)
        with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for path in paths:
                archive.write(path, arcname=os.path.basename(path))
    except (OSError, zipfile.LargeZipFile) as e:
        if os.path.exists(zip_path):
            os.remove(zip_path)
        raise ArchiveCreationError(f"Could not create {zip_path}: {e}") from e
    logger.debug("Archived %d files into %s", len(paths), zip_path)
    return zip_path
