#!/usr/bin/env python3
"""
exr-build: native dependency build orchestrator for OpenEXR.

Modules:
- config: Pinned dependencies, toolchain table, session settings
- downloader: Archive download with presence-only caching
- extractor: Zip/tar extraction
- builders: CMake builds of zlib and OpenEXR
- resolver: Override / pkg-config resolution
- wrapper: C-ABI shim compilation
- link_plan: Ordered link directives
- session: The whole pipeline
"""

from .config import (
    CANONICAL_ORDER,
    ILMBASE,
    OPENEXR,
    ZLIB,
    TOOLCHAINS,
    BuildSettings,
    SourceBuildPolicy,
    Toolchain,
    detect_toolchain,
)

from .errors import (
    ArchiveError,
    BuildError,
    BuildInvocationError,
    ConfigProbeError,
    HttpError,
    NetworkError,
)

from .models import (
    DependencySpec,
    InstallTree,
    LocationKind,
    Override,
    OverrideOrigin,
    ResolvedLocation,
    SourceOverrides,
)

from .downloader import fetch
from .extractor import extract
from .builders import BuildStep, NativeBuilder, build_native_dependencies
from .resolver import PkgConfigRegistry, RegistryEntry, resolve, resolve_all
from .wrapper import WrapperCompiler
from .link_plan import IncludePath, LinkLibrary, LinkPlan, SearchPath, emit
from .session import SessionResult, run_session

__all__ = [
    # config
    "CANONICAL_ORDER",
    "ILMBASE",
    "OPENEXR",
    "ZLIB",
    "TOOLCHAINS",
    "BuildSettings",
    "SourceBuildPolicy",
    "Toolchain",
    "detect_toolchain",
    # errors
    "ArchiveError",
    "BuildError",
    "BuildInvocationError",
    "ConfigProbeError",
    "HttpError",
    "NetworkError",
    # models
    "DependencySpec",
    "InstallTree",
    "LocationKind",
    "Override",
    "OverrideOrigin",
    "ResolvedLocation",
    "SourceOverrides",
    # pipeline
    "fetch",
    "extract",
    "BuildStep",
    "NativeBuilder",
    "build_native_dependencies",
    "PkgConfigRegistry",
    "RegistryEntry",
    "resolve",
    "resolve_all",
    "WrapperCompiler",
    "IncludePath",
    "LinkLibrary",
    "LinkPlan",
    "SearchPath",
    "emit",
    "SessionResult",
    "run_session",
]
