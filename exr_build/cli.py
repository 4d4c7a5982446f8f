#!/usr/bin/env python3
"""
Command line driver for exr-build
Builds the native OpenEXR stack and prints the link plan
"""

import shutil
from dataclasses import replace
from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape

from .config import (
    CANONICAL_ORDER,
    WRAPPER_SOURCES,
    BuildSettings,
    SourceBuildPolicy,
    detect_toolchain,
)
from .errors import BuildError
from .session import run_session
from .utils import console

print = console.print  # route prints through Rich for consistent styling

app = typer.Typer(add_completion=False, help="Native OpenEXR build orchestrator")


def show_info(settings: BuildSettings):
    """Show build configuration"""
    toolchain = settings.toolchain
    print("Build configuration information:")
    print(f"  Output directory: {settings.out_dir}")
    print(f"  Staging directory: {settings.staging_dir}")
    print(f"  Source build policy: {settings.policy.value}")
    print(f"  Toolchain: {toolchain.family} ({toolchain.cxx}, {toolchain.ar}, {toolchain.std_flag})")

    print("\n  Pinned dependencies:")
    for spec in CANONICAL_ORDER:
        print(f"    {spec.name} {spec.version}  {spec.url}")

    print("\n  Overrides:")
    overrides = settings.user_overrides()
    for spec in CANONICAL_ORDER:
        override = overrides.for_dependency(spec.name)
        print(f"    {spec.name}: {override.root if override else '[dim]none[/]'}")
    print(f"    Library suffix: {overrides.suffix or '[dim]none[/]'}")

    print(f"\n  Wrapper sources ({settings.wrapper_dir}):")
    for src in WRAPPER_SOURCES:
        status = "[green]OK[/]" if (settings.wrapper_dir / src).exists() else "[red]Missing[/]"
        print(f"    {status} {src}")


def clean(settings: BuildSettings):
    """Remove the staging directory"""
    if settings.staging_dir.exists():
        shutil.rmtree(settings.staging_dir)
        print(f"[green]  Deleted directory: {settings.staging_dir}[/]")
    else:
        print("[cyan]  No directories to clean[/]")


@app.command(context_settings={"help_option_names": ["-h", "--help"]})
def run(
    build: bool = typer.Option(False, "--build", "-b", help="Build dependencies and emit the link plan"),
    clean_flag: bool = typer.Option(False, "--clean", "-c", help="Remove the staging directory"),
    info: bool = typer.Option(False, "--info", "-i", help="Show build configuration"),
    out_dir: Optional[Path] = typer.Option(None, "--out-dir", "-o", help="Output directory (env OUT_DIR)"),
    openexr_dir: Optional[Path] = typer.Option(None, help="Pre-built OpenEXR install tree (env OPENEXR_DIR)"),
    ilmbase_dir: Optional[Path] = typer.Option(None, help="Pre-built IlmBase install tree (env ILMBASE_DIR)"),
    zlib_dir: Optional[Path] = typer.Option(None, help="Pre-built zlib install tree (env ZLIB_DIR)"),
    lib_suffix: Optional[str] = typer.Option(
        None, help="Suffix appended to static library names (env OPENEXR_LIB_SUFFIX)"
    ),
    policy: Optional[SourceBuildPolicy] = typer.Option(
        None,
        help="Rebuild pinned sources always, or only when no override is given (env EXR_BUILD_POLICY)",
    ),
    toolchain: Optional[str] = typer.Option(
        None, help="Toolchain family: gnu, clang or msvc (env EXR_BUILD_TOOLCHAIN)"
    ),
    wrapper_dir: Optional[Path] = typer.Option(None, help="Wrapper sources and headers (env EXR_WRAPPER_DIR)"),
    output_format: str = typer.Option("text", "--format", "-f", help="Link plan format: text or json"),
    output: Optional[Path] = typer.Option(None, "--output", help="Write the link plan to a file"),
):
    """
    Build the native dependencies and print the link plan. If no action flags
    are provided, --build is assumed. Options given on the command line take
    precedence over their environment variables.
    """
    if output_format not in ("text", "json"):
        raise typer.BadParameter("expected 'text' or 'json'", param_hint="--format")

    if not any([build, clean_flag, info]):
        build = True

    try:
        settings = BuildSettings.from_env()
        given = {
            "out_dir": out_dir,
            "openexr_dir": openexr_dir,
            "ilmbase_dir": ilmbase_dir,
            "zlib_dir": zlib_dir,
            "lib_suffix": lib_suffix or None,
            "policy": policy,
            "toolchain": detect_toolchain(toolchain) if toolchain else None,
            "wrapper_dir": wrapper_dir,
        }
        settings = replace(settings, **{key: value for key, value in given.items() if value is not None})

        if info:
            show_info(settings)
            print()

        if clean_flag:
            clean(settings)
            print()

        if build:
            result = run_session(settings)
            rendered = result.plan.to_json() if output_format == "json" else result.plan.render()
            if output:
                output.write_text(rendered + "\n")
                print(f"[green]Link plan written to {output}[/]")
            else:
                typer.echo(rendered)
    except BuildError as e:
        print(f"[bold red]Build failed:[/] {escape(str(e))}")
        raise typer.Exit(code=1)

    raise typer.Exit(code=0)


def main():
    app()


if __name__ == "__main__":
    main()
