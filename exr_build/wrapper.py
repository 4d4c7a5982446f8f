#!/usr/bin/env python3
"""
Wrapper compiler: builds the C-ABI shim around OpenEXR into one static archive.
"""

from pathlib import Path
from typing import Callable, Iterable, List

from .config import WRAPPER_LIB_NAME, WRAPPER_SOURCES, Toolchain
from .errors import BuildInvocationError
from .utils import check_source_files_exist, console, run_command


class WrapperCompiler:
    """Compiles the wrapper translation units and archives them"""

    def __init__(
        self,
        toolchain: Toolchain,
        source_dir: Path,
        out_dir: Path,
        runner: Callable[..., None] = run_command,
    ):
        self.toolchain = toolchain
        self.source_dir = Path(source_dir).absolute()
        self.out_dir = Path(out_dir).absolute()
        self.runner = runner

        self.archive_path = self.out_dir / toolchain.static_lib_filename(WRAPPER_LIB_NAME)

    def include_dirs(self, include_paths: Iterable[Path]) -> List[Path]:
        """Own headers first, then every dependency's, without duplicates"""
        dirs: List[Path] = []
        for path in [self.source_dir, *include_paths]:
            path = Path(path)
            if path not in dirs:
                dirs.append(path)
        return dirs

    def compile_source(self, source_file: str, include_dirs: List[Path]) -> Path:
        """Compile a single translation unit"""
        source_path = self.source_dir / source_file
        obj_file = self.out_dir / Path(source_file).with_suffix(self.toolchain.object_suffix).name

        cmd = [self.toolchain.cxx] + self.toolchain.compile_args(source_path, obj_file, include_dirs)
        self.runner(cmd, f"Compiling {source_file}", dependency=WRAPPER_LIB_NAME)
        return obj_file

    def create_static_lib(self, object_files: List[Path]) -> None:
        """Create static library"""
        cmd = [self.toolchain.ar] + self.toolchain.archive_args(self.archive_path, object_files)
        self.runner(cmd, f"Creating static library {self.archive_path.name}", dependency=WRAPPER_LIB_NAME)

    def compile(self, include_paths: Iterable[Path]) -> Path:
        """
        Compile the wrapper against the resolved include paths.

        Returns:
            Path to the static archive

        Raises:
            BuildInvocationError: If a source is missing or a tool fails
        """
        console.print(f"\n[bold cyan]Building wrapper library ({self.toolchain.family})[/]")

        all_exist, missing_files = check_source_files_exist(self.source_dir, WRAPPER_SOURCES)
        if not all_exist:
            raise BuildInvocationError(
                f"Missing wrapper sources in {self.source_dir}: {', '.join(missing_files)}",
                dependency=WRAPPER_LIB_NAME,
                step="compile",
            )

        self.out_dir.mkdir(parents=True, exist_ok=True)
        include_dirs = self.include_dirs(include_paths)

        object_files = [self.compile_source(source, include_dirs) for source in WRAPPER_SOURCES]
        self.create_static_lib(object_files)

        if not self.archive_path.exists():
            raise BuildInvocationError(
                f"Archiver reported success but {self.archive_path} was not created",
                dependency=WRAPPER_LIB_NAME,
                step="archive",
            )

        console.print(f"[green]Wrapper library: {self.archive_path}[/]")
        return self.archive_path

