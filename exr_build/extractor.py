#!/usr/bin/env python3
"""
Archive extraction for zip and tar source archives.
"""

import tarfile
import zipfile
import zlib
from pathlib import Path
from typing import Optional

from .errors import ArchiveError
from .utils import console

TAR_SUFFIXES = (".tar", ".tar.gz", ".tgz", ".tar.xz", ".tar.bz2")


def _check_member(dest_dir: Path, name: str) -> None:
    target = (dest_dir / name).resolve()
    if target != dest_dir and dest_dir not in target.parents:
        raise ArchiveError(f"Archive entry escapes destination: {name}")


def extract(archive: Path, dest_dir: Path, dependency: Optional[str] = None) -> None:
    """
    Unpack every entry of ``archive`` into ``dest_dir``, preserving relative paths.

    A failed extraction leaves ``dest_dir`` in an undefined state; callers must
    not use it.

    Raises:
        ArchiveError: On corrupt, truncated or unsafe input
    """
    archive = Path(archive)
    dest_dir = Path(dest_dir)
    dest_dir.mkdir(parents=True, exist_ok=True)
    root = dest_dir.resolve()

    console.print(f"[bold]Extracting {archive.name} -> {dest_dir}[/]")
    try:
        if zipfile.is_zipfile(archive):
            with zipfile.ZipFile(archive) as zf:
                for name in zf.namelist():
                    _check_member(root, name)
                bad = zf.testzip()
                if bad is not None:
                    raise ArchiveError(f"Corrupt entry in {archive.name}: {bad}")
                zf.extractall(dest_dir)
        elif archive.name.endswith(TAR_SUFFIXES):
            with tarfile.open(archive) as tf:
                for member in tf.getmembers():
                    _check_member(root, member.name)
                tf.extractall(dest_dir)
        else:
            raise ArchiveError(f"Unrecognized or corrupt archive: {archive}")
    except ArchiveError as e:
        e.dependency = e.dependency or dependency
        e.step = e.step or "extract"
        raise
    except (zipfile.BadZipFile, tarfile.TarError, EOFError, zlib.error, OSError) as e:
        raise ArchiveError(f"Failed to extract {archive.name}: {e}", dependency=dependency, step="extract") from e
