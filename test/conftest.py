"""Shared pytest fixtures for exr-build tests."""

from __future__ import annotations

import pathlib
import sys

import pytest

TEST_DIR = pathlib.Path(__file__).resolve().parent
REPO_ROOT = TEST_DIR.parent
sys.path.insert(0, str(TEST_DIR))
sys.path.insert(0, str(REPO_ROOT))

from exr_build.config import TOOLCHAINS, WRAPPER_SOURCES, BuildSettings  # noqa: E402
from support.fakes import ArchiveServer, FakeCMake, FakeCompiler  # noqa: E402


@pytest.fixture
def gnu():
    return TOOLCHAINS["gnu"]


@pytest.fixture
def wrapper_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    """A wrapper source directory holding every translation unit."""
    path = tmp_path / "c_wrapper"
    path.mkdir()
    for name in WRAPPER_SOURCES:
        (path / name).write_text("// wrapper source\n")
    (path / "cexr.h").write_text("// wrapper header\n")
    return path


@pytest.fixture
def settings(tmp_path: pathlib.Path, wrapper_dir: pathlib.Path, gnu) -> BuildSettings:
    return BuildSettings(out_dir=tmp_path / "out", toolchain=gnu, wrapper_dir=wrapper_dir)


@pytest.fixture
def server() -> ArchiveServer:
    return ArchiveServer()


@pytest.fixture
def cmake() -> FakeCMake:
    return FakeCMake()


@pytest.fixture
def compiler() -> FakeCompiler:
    return FakeCompiler()
