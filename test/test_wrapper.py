"""Wrapper compiler: toolchain flags, include ordering, archive output."""

from __future__ import annotations

from pathlib import Path

import pytest

from exr_build.config import TOOLCHAINS, WRAPPER_SOURCES
from exr_build.errors import BuildInvocationError
from exr_build.wrapper import WrapperCompiler


def test_gnu_compile_and_archive(tmp_path, wrapper_dir, gnu, compiler):
    out = tmp_path / "out"
    includes = [Path("/deps/exr/include/OpenEXR"), Path("/deps/zlib/include")]

    archive = WrapperCompiler(gnu, wrapper_dir, out, runner=compiler).compile(includes)

    assert archive == out / "libcexr.a"
    assert archive.exists()

    compiles = compiler.commands[:-1]
    assert len(compiles) == len(WRAPPER_SOURCES)
    for cmd in compiles:
        assert cmd[0] == "c++"
        assert "-std=c++0x" in cmd
        include_flags = [c for c in cmd if c.startswith("-I")]
        assert include_flags == [f"-I{wrapper_dir}", "-I/deps/exr/include/OpenEXR", "-I/deps/zlib/include"]

    assert compiler.commands[-1][:3] == ["ar", "rcs", str(archive)]
    assert compiler.commands[-1][3:] == [str(out / Path(s).with_suffix(".o").name) for s in WRAPPER_SOURCES]


def test_msvc_uses_its_own_standard_flag(tmp_path, wrapper_dir, compiler):
    msvc = TOOLCHAINS["msvc"]

    archive = WrapperCompiler(msvc, wrapper_dir, tmp_path / "out", runner=compiler).compile([])

    assert archive.name == "cexr.lib"
    assert all("/std:c++14" in cmd for cmd in compiler.commands[:-1])
    assert not any("-std=c++0x" in cmd for cmd in compiler.commands)
    assert compiler.commands[-1][0] == "lib.exe"


def test_duplicate_include_paths_are_collapsed(wrapper_dir, gnu, tmp_path):
    compiler = WrapperCompiler(gnu, wrapper_dir, tmp_path)
    shared = Path("/stage/openexr-2.4.1/build/install/include/OpenEXR")

    assert compiler.include_dirs([shared, shared, wrapper_dir]) == [wrapper_dir, shared]


def test_missing_source_is_a_build_error(tmp_path, wrapper_dir, gnu, compiler):
    (wrapper_dir / "host_ostream.cpp").unlink()

    with pytest.raises(BuildInvocationError) as excinfo:
        WrapperCompiler(gnu, wrapper_dir, tmp_path / "out", runner=compiler).compile([])

    assert "host_ostream.cpp" in str(excinfo.value)
    assert compiler.commands == []


def test_compiler_failure_propagates(tmp_path, wrapper_dir, gnu):
    def failing(cmd, description="", cwd=None, dependency=None):
        raise BuildInvocationError("c++ failed with exit code 1", exit_code=1, dependency=dependency)

    with pytest.raises(BuildInvocationError) as excinfo:
        WrapperCompiler(gnu, wrapper_dir, tmp_path / "out", runner=failing).compile([])

    assert excinfo.value.dependency == "cexr"


def test_missing_archive_after_success_is_an_error(tmp_path, wrapper_dir, gnu):
    def silent(cmd, description="", cwd=None, dependency=None):
        pass

    with pytest.raises(BuildInvocationError):
        WrapperCompiler(gnu, wrapper_dir, tmp_path / "out", runner=silent).compile([])
