#!/usr/bin/env python3
"""
Configuration module for the exr-build orchestrator
Pinned dependencies, toolchain table, and session settings
"""

import os
import platform
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from .errors import BuildError
from .models import DependencySpec, Override, OverrideOrigin, SourceOverrides


########################################################################
# System Information
########################################################################

OS_SYSTEM = platform.system()


########################################################################
# Pinned Dependencies
########################################################################

OPENEXR_VERSION = "2.4.1"
ZLIB_VERSION = "1.2.11"

OPENEXR_URL = "https://github.com/AcademySoftwareFoundation/openexr/archive/v2.4.1.zip"
ZLIB_URL = "https://www.zlib.net/zlib1211.zip"

# Suffix OpenEXR 2.4 appends to its library names when built from source
BUILT_LIB_SUFFIX = "2_4"
LIB_SUFFIX_SEPARATOR = "-"

REGISTRY_MIN_VERSION = "2.0.0"

OPENEXR = DependencySpec(
    name="OpenEXR",
    version=OPENEXR_VERSION,
    url=OPENEXR_URL,
    archive_name="openexr.zip",
    source_dir=f"openexr-{OPENEXR_VERSION}",
    registry_name="OpenEXR",
    static_libraries=("IlmImf", "IlmImfUtil"),
    min_version=REGISTRY_MIN_VERSION,
    include_subdir="OpenEXR",
    suffixed=True,
)

# IlmBase ships inside the OpenEXR source archive
ILMBASE = DependencySpec(
    name="IlmBase",
    version=OPENEXR_VERSION,
    url=OPENEXR_URL,
    archive_name="openexr.zip",
    source_dir=f"openexr-{OPENEXR_VERSION}",
    registry_name="IlmBase",
    static_libraries=("IexMath", "Iex", "Imath", "IlmThread", "Half"),
    min_version=REGISTRY_MIN_VERSION,
    include_subdir="OpenEXR",
    suffixed=True,
    emit_registry_metadata=False,
)

ZLIB = DependencySpec(
    name="zlib",
    version=ZLIB_VERSION,
    url=ZLIB_URL,
    archive_name="zlib.zip",
    source_dir=f"zlib-{ZLIB_VERSION}",
    registry_name="zlib",
    static_libraries=("zlibstatic",),
    aggregate_includes=False,
)

# Canonical link order: imaging library, support library, compression library
CANONICAL_ORDER: Tuple[DependencySpec, ...] = (OPENEXR, ILMBASE, ZLIB)

OPENEXR_CMAKE_DEFINES = {
    "BUILD_TESTING": "OFF",
    "PYILMBASE_ENABLE": "OFF",
    "OPENEXR_VIEWERS_ENABLE": "OFF",
    "OPENEXR_BUILD_UTILS": "OFF",
    "BUILD_SHARED_LIBS": "OFF",
}

CMAKE_PROFILE = "Release"


########################################################################
# Wrapper Configuration
########################################################################

WRAPPER_SOURCES = [
    "cexr.cpp",
    "host_istream.cpp",
    "memory_istream.cpp",
    "host_ostream.cpp",
]

WRAPPER_LIB_NAME = "cexr"
DEFAULT_WRAPPER_DIR = Path("c_wrapper")


########################################################################
# Toolchain Table
########################################################################

@dataclass(frozen=True)
class Toolchain:
    """Compiler/archiver conventions for one toolchain family"""

    family: str
    cxx: str
    ar: str
    std_flag: str
    cxxflags: Tuple[str, ...] = ()
    object_suffix: str = ".o"
    # Base names whose on-disk static library is named differently
    static_names: Mapping[str, str] = field(default_factory=dict)

    def link_name(self, base: str) -> str:
        return self.static_names.get(base, base)

    def static_lib_filename(self, name: str) -> str:
        if self.family == "msvc":
            return f"{name}.lib"
        return f"lib{name}.a"

    def compile_args(self, source: Path, obj: Path, include_dirs: List[Path]) -> List[str]:
        if self.family == "msvc":
            includes = [f"/I{d}" for d in include_dirs]
            return ["/nologo", self.std_flag, *self.cxxflags, *includes, "/c", str(source), f"/Fo{obj}"]
        includes = [f"-I{d}" for d in include_dirs]
        return [self.std_flag, *self.cxxflags, *includes, "-c", str(source), "-o", str(obj)]

    def archive_args(self, archive: Path, objects: List[Path]) -> List[str]:
        if self.family == "msvc":
            return ["/nologo", f"/OUT:{archive}", *[str(o) for o in objects]]
        return ["rcs", str(archive), *[str(o) for o in objects]]


TOOLCHAINS: Dict[str, Toolchain] = {
    "msvc": Toolchain(
        family="msvc",
        cxx="cl.exe",
        ar="lib.exe",
        std_flag="/std:c++14",
        cxxflags=("/EHsc", "/O2", "/MD"),
        object_suffix=".obj",
    ),
    "gnu": Toolchain(
        family="gnu",
        cxx="c++",
        ar="ar",
        std_flag="-std=c++0x",
        cxxflags=("-O2", "-fPIC"),
        static_names={"zlibstatic": "z"},
    ),
    "clang": Toolchain(
        family="clang",
        cxx="clang++",
        ar="ar",
        std_flag="-std=c++0x",
        cxxflags=("-O2", "-fPIC"),
        static_names={"zlibstatic": "z"},
    ),
}


def detect_toolchain(family: Optional[str] = None) -> Toolchain:
    """Pick a toolchain by family name, or from the host platform"""
    if family is None:
        if OS_SYSTEM == "Windows":
            family = "msvc"
        elif OS_SYSTEM == "Darwin":
            family = "clang"
        else:
            family = "gnu"

    toolchain = TOOLCHAINS.get(family)
    if toolchain is None:
        raise BuildError(
            f"Unknown toolchain family '{family}' (expected one of: {', '.join(TOOLCHAINS)})",
            step="configure",
        )
    return toolchain


########################################################################
# Session Settings
########################################################################

class SourceBuildPolicy(str, Enum):
    """Whether the native build runs when the user already supplied overrides"""

    ALWAYS = "always"
    IF_MISSING = "if-missing"


def _optional_path(value: Optional[str]) -> Optional[Path]:
    return Path(value) if value else None


@dataclass
class BuildSettings:
    """Configuration values for one build session"""

    out_dir: Path
    openexr_dir: Optional[Path] = None
    ilmbase_dir: Optional[Path] = None
    zlib_dir: Optional[Path] = None
    lib_suffix: Optional[str] = None
    policy: SourceBuildPolicy = SourceBuildPolicy.ALWAYS
    toolchain: Toolchain = field(default_factory=detect_toolchain)
    wrapper_dir: Path = DEFAULT_WRAPPER_DIR

    @property
    def staging_dir(self) -> Path:
        return self.out_dir / "build"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BuildSettings":
        """Read settings from environment variables"""
        env = os.environ if environ is None else environ

        try:
            policy = SourceBuildPolicy(env.get("EXR_BUILD_POLICY", SourceBuildPolicy.ALWAYS.value))
        except ValueError:
            raise BuildError(
                f"Invalid EXR_BUILD_POLICY '{env['EXR_BUILD_POLICY']}' (expected 'always' or 'if-missing')",
                step="configure",
            )

        return cls(
            out_dir=Path(env.get("OUT_DIR") or "target"),
            openexr_dir=_optional_path(env.get("OPENEXR_DIR")),
            ilmbase_dir=_optional_path(env.get("ILMBASE_DIR")),
            zlib_dir=_optional_path(env.get("ZLIB_DIR")),
            lib_suffix=env.get("OPENEXR_LIB_SUFFIX") or None,
            policy=policy,
            toolchain=detect_toolchain(env.get("EXR_BUILD_TOOLCHAIN") or None),
            wrapper_dir=Path(env.get("EXR_WRAPPER_DIR") or DEFAULT_WRAPPER_DIR),
        )

    def user_overrides(self) -> SourceOverrides:
        """Overrides supplied explicitly by the user"""

        def wrap(path: Optional[Path]) -> Optional[Override]:
            return Override(path, OverrideOrigin.USER) if path else None

        return SourceOverrides(
            openexr=wrap(self.openexr_dir),
            ilmbase=wrap(self.ilmbase_dir),
            zlib=wrap(self.zlib_dir),
            suffix=self.lib_suffix,
        )
