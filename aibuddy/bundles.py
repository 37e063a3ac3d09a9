"""Local bundle artifacts.

A bundle concatenates the source files selected by one ``FileBundle``
config into a single text file under ``<profile>/.buddy/files``::

    // ==== file path: docs/intro.md

    <content of docs/intro.md>

The artifact name embeds the current assistant id, so artifacts produced
for a previous (deleted) assistant never collide with fresh ones and can be
swept by ``clean_stale_bundles``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from aibuddy.config import DATA_DIR_NAME
from aibuddy.errors import UnsafeDeleteError

logger = logging.getLogger(__name__)

BUNDLE_MARKER = "-bundle-"
HEADER_PREFIX = "// ==== file path: "


def bundle_file_name(profile_name: str, bundle_name: str, asst_id: str, dst_ext: str) -> str:
    """``{profile}-{bundle}-bundle-{asst_id}.{ext}``"""
    return f"{profile_name}-{bundle_name}{BUNDLE_MARKER}{asst_id}.{dst_ext}"


def bundle_owner(file_name: str) -> str:
    """Assistant id embedded in a bundle artifact name (after the last marker, before the extension)."""
    return file_name.rsplit(BUNDLE_MARKER, 1)[-1].split(".", 1)[0]


def list_source_files(
    src_dir: Path, globs: Iterable[str], exclude: Path | None = None,
) -> list[Path]:
    """Regular files under ``src_dir`` matching any of ``globs``.

    Globs are ``pathlib`` patterns relative to ``src_dir`` (``**/*.md`` to
    recurse). Sorted and de-duplicated so the bundle content is stable.
    Anything under ``exclude`` (the profile data dir) is never selected.
    """
    excluded = exclude.resolve() if exclude is not None else None
    found: set[Path] = set()
    for pattern in globs:
        for path in src_dir.glob(pattern):
            if not path.is_file():
                continue
            if excluded is not None and path.resolve().is_relative_to(excluded):
                continue
            found.add(path)
    return sorted(found)


def bundle_to_file(files: Iterable[Path], dst_file: Path, base_dir: Path | None = None) -> None:
    """Write the concatenation of ``files`` to ``dst_file``.

    Header paths are shown relative to ``base_dir`` when given.
    """
    tmp_path = dst_file.with_name(dst_file.name + ".tmp")
    with open(tmp_path, "w", encoding="utf-8") as writer:
        for file in files:
            # Sources outside base_dir keep their full path.
            shown = file.relative_to(base_dir) if base_dir and file.is_relative_to(base_dir) else file
            writer.write(f"\n{HEADER_PREFIX}{shown.as_posix()}\n\n")
            for line in file.read_text(encoding="utf-8", errors="replace").splitlines():
                writer.write(line + "\n")
            writer.write("\n\n\n")
    os.replace(tmp_path, dst_file)


def clean_stale_bundles(files_dir: Path, data_dir: Path, asst_id: str) -> list[Path]:
    """Delete bundle artifacts in ``files_dir`` not made for ``asst_id``.

    Every deletion target must resolve inside ``data_dir`` (the profile's
    ``.buddy`` directory); anything else aborts with ``UnsafeDeleteError``.
    """
    data_root = data_dir.resolve()
    if data_root.name != DATA_DIR_NAME:
        raise UnsafeDeleteError(str(data_dir))

    removed: list[Path] = []
    for path in sorted(files_dir.iterdir()):
        if not path.is_file() or BUNDLE_MARKER not in path.name:
            continue
        if bundle_owner(path.name) == asst_id:
            continue
        if not path.resolve().is_relative_to(data_root):
            raise UnsafeDeleteError(str(path))
        path.unlink()
        removed.append(path)
        logger.info("Removed stale bundle %s", path.name)
    return removed
