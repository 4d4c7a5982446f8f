"""CLI driver: reports failures once and exits non-zero."""

from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from exr_build import cli
from exr_build.errors import BuildInvocationError
from exr_build.link_plan import emit
from exr_build.session import SessionResult
from exr_build.models import SourceOverrides

runner = CliRunner()


def _fake_session(settings):
    plan = emit([], settings.out_dir / "libcexr.a", wrapper_include_dir=settings.wrapper_dir)
    return SessionResult(SourceOverrides(), [], settings.out_dir / "libcexr.a", plan)


def test_build_prints_link_plan(monkeypatch, tmp_path):
    monkeypatch.setattr(cli, "run_session", _fake_session)

    result = runner.invoke(cli.app, ["--out-dir", str(tmp_path), "--toolchain", "gnu"])

    assert result.exit_code == 0
    assert f"link-search=native={tmp_path}" in result.stdout
    assert "link-lib=static=cexr" in result.stdout


def test_json_output_to_file(monkeypatch, tmp_path):
    monkeypatch.setattr(cli, "run_session", _fake_session)
    output = tmp_path / "plan.json"

    result = runner.invoke(
        cli.app,
        ["--out-dir", str(tmp_path), "--toolchain", "gnu", "--format", "json", "--output", str(output)],
    )

    assert result.exit_code == 0
    assert json.loads(output.read_text())["libraries"] == ["cexr"]


def test_failure_exits_non_zero(monkeypatch, tmp_path):
    def failing(settings):
        raise BuildInvocationError("cmake failed with exit code 2", exit_code=2, dependency="zlib", step="build")

    monkeypatch.setattr(cli, "run_session", failing)

    result = runner.invoke(cli.app, ["--out-dir", str(tmp_path), "--toolchain", "gnu"])

    assert result.exit_code == 1
    assert "link-lib" not in result.stdout


def test_environment_configures_settings(monkeypatch, tmp_path):
    seen = {}

    def capture(settings):
        seen["settings"] = settings
        return _fake_session(settings)

    monkeypatch.setattr(cli, "run_session", capture)

    result = runner.invoke(
        cli.app,
        ["--toolchain", "gnu"],
        env={"OUT_DIR": str(tmp_path), "OPENEXR_DIR": "/opt/exr", "EXR_BUILD_POLICY": "if-missing"},
    )

    assert result.exit_code == 0
    settings = seen["settings"]
    assert settings.out_dir == tmp_path
    assert settings.openexr_dir == Path("/opt/exr")
    assert settings.policy.value == "if-missing"


def test_clean_removes_staging(tmp_path):
    staging = tmp_path / "build"
    (staging / "zlib-1.2.11").mkdir(parents=True)

    result = runner.invoke(cli.app, ["--clean", "--out-dir", str(tmp_path), "--toolchain", "gnu"])

    assert result.exit_code == 0
    assert not staging.exists()


def test_info_does_not_build(monkeypatch, tmp_path):
    def unexpected(settings):
        raise AssertionError("info must not run the pipeline")

    monkeypatch.setattr(cli, "run_session", unexpected)

    result = runner.invoke(cli.app, ["--info", "--out-dir", str(tmp_path), "--toolchain", "gnu"])

    assert result.exit_code == 0


def test_unknown_toolchain_is_reported(tmp_path):
    result = runner.invoke(cli.app, ["--out-dir", str(tmp_path), "--toolchain", "watcom"])

    assert result.exit_code == 1


def test_command_line_takes_precedence_over_environment(monkeypatch, tmp_path):
    seen = {}

    def capture(settings):
        seen["settings"] = settings
        return _fake_session(settings)

    monkeypatch.setattr(cli, "run_session", capture)

    result = runner.invoke(
        cli.app,
        ["--out-dir", str(tmp_path / "cli"), "--policy", "always", "--toolchain", "clang"],
        env={"OUT_DIR": str(tmp_path / "env"), "EXR_BUILD_POLICY": "if-missing", "ZLIB_DIR": "/opt/zlib"},
    )

    assert result.exit_code == 0
    settings = seen["settings"]
    assert settings.out_dir == tmp_path / "cli"
    assert settings.policy.value == "always"
    assert settings.toolchain.family == "clang"
    assert settings.zlib_dir == Path("/opt/zlib")


def test_invalid_policy_in_environment_is_reported(monkeypatch, tmp_path):
    monkeypatch.setattr(cli, "run_session", _fake_session)

    result = runner.invoke(
        cli.app,
        ["--out-dir", str(tmp_path), "--toolchain", "gnu"],
        env={"EXR_BUILD_POLICY": "sometimes"},
    )

    assert result.exit_code == 1
    assert "link-lib" not in result.stdout
