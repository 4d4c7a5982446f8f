#!/usr/bin/env python3
"""
Data models shared between the builder, the resolver and the link plan.

All of them are frozen: they are created once per session, left to right,
and never mutated afterwards.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple


@dataclass(frozen=True)
class DependencySpec:
    """A pinned native dependency and how to resolve it."""

    name: str
    version: str
    url: str
    archive_name: str
    source_dir: str
    registry_name: str
    static_libraries: Tuple[str, ...]
    min_version: Optional[str] = None
    include_subdir: Optional[str] = None
    suffixed: bool = False
    # False when another registry entry already carries this library's flags
    emit_registry_metadata: bool = True
    aggregate_includes: bool = True


class OverrideOrigin(str, Enum):
    USER = "user"
    BUILT = "built"


@dataclass(frozen=True)
class Override:
    """Root of a pre-built install tree for one dependency."""

    root: Path
    origin: OverrideOrigin = OverrideOrigin.USER


@dataclass(frozen=True)
class SourceOverrides:
    """
    Override directories handed from the native build step to the resolver.

    This replaces process-wide environment variables: the value is produced
    once and read once.
    """

    openexr: Optional[Override] = None
    ilmbase: Optional[Override] = None
    zlib: Optional[Override] = None
    suffix: Optional[str] = None

    def for_dependency(self, name: str) -> Optional[Override]:
        return {
            "OpenEXR": self.openexr,
            "IlmBase": self.ilmbase,
            "zlib": self.zlib,
        }.get(name)


@dataclass(frozen=True)
class InstallTree:
    """Output of a CMake install: include/, lib/ and bin/ under one root."""

    root: Path

    @property
    def include_dir(self) -> Path:
        return self.root / "include"

    @property
    def lib_dir(self) -> Path:
        return self.root / "lib"

    @property
    def bin_dir(self) -> Path:
        return self.root / "bin"


class LocationKind(str, Enum):
    EXPLICIT_OVERRIDE = "explicit-override"
    SYSTEM_REGISTRY = "system-registry"
    BUILT_FROM_SOURCE = "built-from-source"


@dataclass(frozen=True)
class ResolvedLocation:
    """Where a dependency's headers and libraries live for this session."""

    name: str
    kind: LocationKind
    include_dirs: Tuple[Path, ...] = ()
    library_dirs: Tuple[Path, ...] = ()
    libraries: Tuple[str, ...] = ()
    suffix: Optional[str] = None
    link_kind: str = "static"
