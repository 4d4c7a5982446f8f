#!/usr/bin/env python3
"""
Dependency resolution.

For each dependency the first match wins:
1. an override directory (supplied by the user or produced by the native build)
2. a pkg-config probe of the system registry

The resolver never triggers a source build itself.
"""

import re
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

import sh

from .config import LIB_SUFFIX_SEPARATOR, Toolchain, detect_toolchain
from .errors import ConfigProbeError
from .models import (
    DependencySpec,
    LocationKind,
    Override,
    OverrideOrigin,
    ResolvedLocation,
    SourceOverrides,
)
from .utils import console


def parse_version(version: str) -> Tuple[int, ...]:
    """Leading numeric components of a dotted version string."""
    parts = []
    for piece in version.strip().split("."):
        match = re.match(r"\d+", piece)
        if not match:
            break
        parts.append(int(match.group()))
    return tuple(parts)


def version_at_least(version: str, minimum: str) -> bool:
    have, want = parse_version(version), parse_version(minimum)
    if not have:
        return False
    width = max(len(have), len(want))
    return have + (0,) * (width - len(have)) >= want + (0,) * (width - len(want))


@dataclass(frozen=True)
class RegistryEntry:
    """What the system registry reports for one library"""

    version: str
    include_paths: Tuple[Path, ...] = ()
    library_dirs: Tuple[Path, ...] = ()
    libraries: Tuple[str, ...] = ()


class PkgConfigRegistry:
    """System registry backed by the pkg-config tool"""

    def __init__(self, executable: str = "pkg-config"):
        self.executable = executable

    def _query(self, *args: str) -> str:
        return str(sh.Command(self.executable)(*args)).strip()

    def probe(self, name: str) -> RegistryEntry:
        try:
            version = self._query("--modversion", name)
            cflags = shlex.split(self._query("--cflags-only-I", name))
            libs = shlex.split(self._query("--libs", name))
        except sh.ErrorReturnCode as e:
            stderr = e.stderr.decode("utf-8", errors="replace").strip() if e.stderr else ""
            raise ConfigProbeError(
                f"pkg-config could not find {name}: {stderr or f'exit code {e.exit_code}'}",
                dependency=name,
                step="probe",
            ) from e
        except sh.CommandNotFound as e:
            raise ConfigProbeError(f"{self.executable} not found", dependency=name, step="probe") from e

        return RegistryEntry(
            version=version,
            include_paths=tuple(Path(flag[2:]) for flag in cflags if flag.startswith("-I")),
            library_dirs=tuple(Path(flag[2:]) for flag in libs if flag.startswith("-L")),
            libraries=tuple(flag[2:] for flag in libs if flag.startswith("-l")),
        )


def qualified_names(spec: DependencySpec, suffix: Optional[str], toolchain: Toolchain) -> Tuple[str, ...]:
    """Static library link names, suffix-qualified where the dependency takes one"""
    names = []
    for base in spec.static_libraries:
        name = toolchain.link_name(base)
        if suffix and spec.suffixed:
            name = f"{name}{LIB_SUFFIX_SEPARATOR}{suffix}"
        names.append(name)
    return tuple(names)


def _from_override(
    spec: DependencySpec,
    override: Override,
    suffix: Optional[str],
    toolchain: Toolchain,
) -> ResolvedLocation:
    root = Path(override.root)
    include_dir = root / "include"
    if spec.include_subdir:
        include_dir = include_dir / spec.include_subdir

    library_dirs: List[Path] = [root / "lib"]
    if override.origin is OverrideOrigin.BUILT:
        # Runtime DLLs land in bin/ on some platforms
        library_dirs.append(root / "bin")
        kind = LocationKind.BUILT_FROM_SOURCE
    else:
        kind = LocationKind.EXPLICIT_OVERRIDE

    return ResolvedLocation(
        name=spec.name,
        kind=kind,
        include_dirs=(include_dir,),
        library_dirs=tuple(library_dirs),
        libraries=qualified_names(spec, suffix, toolchain),
        suffix=suffix if spec.suffixed else None,
        link_kind="static",
    )


def _from_registry(spec: DependencySpec, registry) -> ResolvedLocation:
    entry = registry.probe(spec.registry_name)

    if spec.min_version and not version_at_least(entry.version, spec.min_version):
        raise ConfigProbeError(
            f"{spec.registry_name} {entry.version} is older than the required {spec.min_version}",
            dependency=spec.name,
            step="probe",
        )

    return ResolvedLocation(
        name=spec.name,
        kind=LocationKind.SYSTEM_REGISTRY,
        include_dirs=entry.include_paths if spec.aggregate_includes else (),
        library_dirs=entry.library_dirs if spec.emit_registry_metadata else (),
        libraries=entry.libraries if spec.emit_registry_metadata else (),
        link_kind="dylib",
    )


def resolve(
    spec: DependencySpec,
    override: Optional[Override] = None,
    suffix: Optional[str] = None,
    registry=None,
    toolchain: Optional[Toolchain] = None,
) -> ResolvedLocation:
    """
    Resolve one dependency to a ResolvedLocation.

    Args:
        spec: The dependency to resolve
        override: Override directory; when given no registry probe is made
        suffix: Library name suffix for statically linked names
        registry: Registry with a ``probe(name)`` method (default: pkg-config)
        toolchain: Toolchain used to map static library names

    Raises:
        ConfigProbeError: If there is no override and the registry probe fails
            or reports a version below the minimum
    """
    if override is not None:
        console.print(f"[cyan]{spec.name}:[/] using {override.origin.value} override {override.root}")
        return _from_override(spec, override, suffix, toolchain or detect_toolchain())

    registry = registry or PkgConfigRegistry()
    try:
        location = _from_registry(spec, registry)
    except ConfigProbeError as e:
        e.dependency = spec.name
        e.message = (
            f"couldn't find {spec.name}: no override directory is set "
            f"and the system registry probe failed: {e.message}"
        )
        raise
    console.print(f"[cyan]{spec.name}:[/] found in system registry")
    return location


def resolve_all(
    specs,
    overrides: SourceOverrides,
    registry=None,
    toolchain: Optional[Toolchain] = None,
) -> List[ResolvedLocation]:
    """Resolve dependencies in the given (canonical) order"""
    return [
        resolve(
            spec,
            overrides.for_dependency(spec.name),
            overrides.suffix,
            registry=registry,
            toolchain=toolchain,
        )
        for spec in specs
    ]
