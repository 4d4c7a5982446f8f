#!/usr/bin/env python3
"""
Builder functions for the native dependencies.

Builds zlib and OpenEXR (with IlmBase) from their pinned source archives:
- fetch the archive into the staging directory (skipped when cached)
- extract it (skipped when the source tree is already present)
- configure, build and install with CMake into <depDir>/build/install

Each CMake invocation is a BuildStep. Steps are fatal unless explicitly marked
otherwise; the only non-fatal steps are the library alias symlinks created
after the OpenEXR install, which cannot be created on some platforms.
"""

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional

import httpx
from rich.markup import escape

from .config import (
    BUILT_LIB_SUFFIX,
    CMAKE_PROFILE,
    ILMBASE,
    LIB_SUFFIX_SEPARATOR,
    OPENEXR,
    OPENEXR_CMAKE_DEFINES,
    ZLIB,
    BuildSettings,
    SourceBuildPolicy,
    Toolchain,
)
from .downloader import fetch
from .errors import BuildError, BuildInvocationError
from .extractor import extract
from .models import DependencySpec, InstallTree, Override, OverrideOrigin, SourceOverrides
from .utils import console, run_streaming_cmd


@dataclass(frozen=True)
class BuildStep:
    """One external build-tool invocation in a dependency's build plan"""

    name: str
    args: List[str]
    fatal: bool = True


class NativeBuilder:
    """Builds pinned dependencies from source inside the staging directory"""

    def __init__(
        self,
        staging_dir: Path,
        toolchain: Toolchain,
        runner: Callable[..., int] = run_streaming_cmd,
        client: Optional[httpx.Client] = None,
    ):
        self.staging_dir = Path(staging_dir).absolute()
        self.toolchain = toolchain
        self.runner = runner
        self.client = client

    def source_dir(self, spec: DependencySpec) -> Path:
        return self.staging_dir / spec.source_dir

    def build_dir(self, spec: DependencySpec) -> Path:
        return self.source_dir(spec) / "build"

    def install_tree(self, spec: DependencySpec) -> InstallTree:
        return InstallTree(self.build_dir(spec) / "install")

    def ensure_directories(self):
        """Ensure the staging directory exists (reused across sessions)"""
        self.staging_dir.mkdir(parents=True, exist_ok=True)

    def prepare_sources(self, spec: DependencySpec) -> Path:
        """Fetch and extract a dependency's source archive unless already present"""
        archive = self.staging_dir / spec.archive_name
        fetch(spec.url, archive, client=self.client, dependency=spec.name)

        source_dir = self.source_dir(spec)
        if source_dir.exists():
            console.print(f"[cyan]Using extracted sources:[/] {source_dir}")
            return source_dir

        # Extracted beside the final location; only a complete tree is moved
        # into place
        scratch = self.staging_dir / f".{spec.source_dir}.extracting"
        if scratch.exists():
            shutil.rmtree(scratch)
        try:
            extract(archive, scratch, dependency=spec.name)
            extracted = scratch / spec.source_dir
            if not extracted.is_dir():
                raise BuildInvocationError(
                    f"Archive {archive.name} did not contain {spec.source_dir}/",
                    dependency=spec.name,
                    step="extract",
                )
            extracted.rename(source_dir)
        finally:
            shutil.rmtree(scratch, ignore_errors=True)
        return source_dir

    def plan(self, spec: DependencySpec, extra_defines: Optional[Mapping[str, str]] = None) -> List[BuildStep]:
        """Build the configure/build/install step list for a dependency"""
        build_dir = self.build_dir(spec)
        install_dir = self.install_tree(spec).root

        defines: Dict[str, str] = {
            "CMAKE_INSTALL_PREFIX": str(install_dir),
            "CMAKE_BUILD_TYPE": CMAKE_PROFILE,
        }
        defines.update(extra_defines or {})

        configure = ["-S", str(self.source_dir(spec)), "-B", str(build_dir)]
        if shutil.which("ninja"):
            configure.extend(["-G", "Ninja"])
        configure.extend(f"-D{key}={value}" for key, value in defines.items())

        steps = [
            BuildStep("configure", configure),
            BuildStep("build", ["--build", str(build_dir), "--config", CMAKE_PROFILE]),
            BuildStep("install", ["--install", str(build_dir), "--config", CMAKE_PROFILE]),
        ]

        if spec is OPENEXR:
            steps.extend(self._alias_steps(install_dir))
        return steps

    def _alias_steps(self, install_dir: Path) -> List[BuildStep]:
        # Unsuffixed aliases of the suffixed static libraries; symlink
        # creation is not permitted on every platform
        lib_dir = install_dir / "lib"
        steps = []
        for base in OPENEXR.static_libraries + ILMBASE.static_libraries:
            suffixed = self.toolchain.static_lib_filename(f"{base}{LIB_SUFFIX_SEPARATOR}{BUILT_LIB_SUFFIX}")
            alias = self.toolchain.static_lib_filename(base)
            steps.append(
                BuildStep(
                    f"symlink {alias}",
                    ["-E", "create_symlink", str(lib_dir / suffixed), str(lib_dir / alias)],
                    fatal=False,
                )
            )
        return steps

    def run_steps(self, spec: DependencySpec, steps: List[BuildStep]) -> None:
        """Run build steps in order; only non-fatal steps may fail"""
        for step in steps:
            try:
                self.runner(
                    "cmake",
                    *step.args,
                    title=f"{spec.name}: {step.name}",
                    dependency=spec.name,
                )
            except BuildInvocationError as e:
                if step.fatal:
                    e.dependency = spec.name
                    e.step = step.name
                    raise
                console.print(f"[yellow]  {spec.name}: non-fatal step '{step.name}' failed, continuing ({escape(e.message)})[/]")

    def build(self, spec: DependencySpec, extra_defines: Optional[Mapping[str, str]] = None) -> InstallTree:
        """
        Configure, build and install one dependency.

        Args:
            spec: Dependency to build (its sources must be prepared)
            extra_defines: Additional CMake cache values

        Returns:
            The dependency's install tree

        Raises:
            BuildInvocationError: If any fatal step fails
        """
        console.print(f"\n[bold cyan]Building {spec.name} {spec.version}[/]")
        self.run_steps(spec, self.plan(spec, extra_defines))

        tree = self.install_tree(spec)
        console.print(f"[green]{spec.name} installed to {tree.root}[/]")
        return tree


def build_native_dependencies(settings: BuildSettings, builder: Optional[NativeBuilder] = None) -> SourceOverrides:
    """
    Session-level native build: zlib, then OpenEXR against zlib's headers.

    Returns the overrides the resolver should consult. Under the ALWAYS policy
    both dependencies are rebuilt and the built trees win over user-supplied
    directories; under IF_MISSING a dependency with a user override is not
    rebuilt and the user override is passed through.

    Raises:
        BuildError: Under IF_MISSING, if only one of the OpenEXR and IlmBase
            directories is given (both come from the same source build)
    """
    user = settings.user_overrides()
    if settings.policy is SourceBuildPolicy.IF_MISSING and (user.openexr is None) != (user.ilmbase is None):
        given, missing = ("OPENEXR_DIR", "ILMBASE_DIR") if user.openexr else ("ILMBASE_DIR", "OPENEXR_DIR")
        raise BuildError(
            f"{given} is set but {missing} is not; with the if-missing policy both must be set together",
            dependency=OPENEXR.name,
            step="configure",
        )

    builder = builder or NativeBuilder(settings.staging_dir, settings.toolchain)
    builder.ensure_directories()

    skip_zlib = settings.policy is SourceBuildPolicy.IF_MISSING and user.zlib is not None
    skip_openexr = (
        settings.policy is SourceBuildPolicy.IF_MISSING
        and user.openexr is not None
        and user.ilmbase is not None
    )

    if skip_zlib:
        console.print(f"[cyan]Using zlib from ZLIB_DIR:[/] {user.zlib.root}")
        zlib_override = user.zlib
    else:
        builder.prepare_sources(ZLIB)
        zlib_tree = builder.build(ZLIB)
        zlib_override = Override(zlib_tree.root, OverrideOrigin.BUILT)

    if skip_openexr:
        console.print(f"[cyan]Using OpenEXR from OPENEXR_DIR:[/] {user.openexr.root}")
        return SourceOverrides(
            openexr=user.openexr,
            ilmbase=user.ilmbase,
            zlib=zlib_override,
            suffix=user.suffix,
        )

    zlib_root = zlib_override.root.absolute()
    builder.prepare_sources(OPENEXR)
    openexr_tree = builder.build(
        OPENEXR,
        {
            **OPENEXR_CMAKE_DEFINES,
            "ZLIB_INCLUDE_DIR": str(zlib_root / "include"),
            "CMAKE_PREFIX_PATH": str(zlib_root),
        },
    )
    built = Override(openexr_tree.root, OverrideOrigin.BUILT)
    return SourceOverrides(
        openexr=built,
        ilmbase=built,
        zlib=zlib_override,
        suffix=BUILT_LIB_SUFFIX,
    )
