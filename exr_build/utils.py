#!/usr/bin/env python3
"""
Utility functions for the exr-build orchestrator
Console output, command execution, and source checks
"""

import os
import shutil
import subprocess
from collections import deque
from pathlib import Path
from typing import List, Optional, Tuple

import sh
from rich.console import Console
from rich.markup import escape
from rich.live import Live
from rich.panel import Panel

from .errors import BuildInvocationError

console = Console(force_terminal=True, markup=True, stderr=True)


def command_exists(cmd: str) -> bool:
    """Check whether a command/binary is available on the system."""
    if "/" in cmd or "\\" in cmd:
        cmd_path = Path(cmd)
        return cmd_path.exists() and os.access(cmd_path, os.X_OK)
    return shutil.which(cmd) is not None


def run_command(cmd, description="", cwd=None, dependency=None):
    """
    Execute a short command through sh (non-streaming)

    Args:
        cmd: Command to execute (list of strings)
        description: Description of the command for output
        cwd: Working directory for command execution
        dependency: Name of the dependency the command belongs to, for diagnostics

    Raises:
        BuildInvocationError: If the command is missing or exits non-zero
    """
    console.print(f"[bold]{description or ' '.join(str(c) for c in cmd)}[/]")

    if not cmd:
        raise BuildInvocationError("Empty command", dependency=dependency, step=description)

    program = str(cmd[0])
    args = [str(arg) for arg in cmd[1:]]

    kwargs = {}
    if cwd:
        kwargs['_cwd'] = str(cwd)

    try:
        sh.Command(program)(*args, **kwargs)
    except sh.ErrorReturnCode as e:
        stderr = e.stderr.decode('utf-8', errors='replace') if isinstance(e.stderr, bytes) else (e.stderr or "")
        if stderr:
            console.print(f"Error details: {escape(stderr)}")
        raise BuildInvocationError(
            f"{program} failed with exit code {e.exit_code}",
            exit_code=e.exit_code,
            dependency=dependency,
            step=description,
        ) from e
    except sh.CommandNotFound as e:
        raise BuildInvocationError(
            f"Command not found: {program}",
            dependency=dependency,
            step=description,
        ) from e


def run_streaming_cmd(
    cmd_name: str,
    *args,
    cwd: Optional[Path] = None,
    title: str = "Processing...",
    max_lines: int = 4,
    dependency: Optional[str] = None,
) -> int:
    """
    Executes a command using rich's Live display to show the last few lines of output.

    Args:
        cmd_name: Command to run
        *args: Arguments for the command
        cwd: Working directory
        title: Title for the output panel
        max_lines: Max lines to show in the rolling buffer
        dependency: Name of the dependency being built, for diagnostics

    Returns:
        int: Exit code (always 0; failures raise)

    Raises:
        BuildInvocationError: If the command is missing or exits non-zero
    """
    if not command_exists(cmd_name):
        raise BuildInvocationError(f"Command not found: {cmd_name}", dependency=dependency, step=title)

    cmd = [cmd_name, *[str(a) for a in args]]

    # Buffer to store recent lines
    buffer = deque(maxlen=max_lines)

    try:
        proc = subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
            cwd=cwd
        )
    except OSError as e:
        raise BuildInvocationError(f"Cannot start {cmd_name}: {e}", dependency=dependency, step=title) from e

    try:
        with Live(console=console, refresh_per_second=10) as live:
            live.update(Panel("\n" * max_lines, title=title))

            for line in proc.stdout:
                buffer.append(escape(line.rstrip()))
                live.update(Panel("\n".join(buffer), title=f"{title} (last {max_lines} lines)"))

            proc.wait()
    finally:
        # Never leave the child running if the display loop is interrupted
        if proc.poll() is None:
            proc.kill()
            proc.wait()
        proc.stdout.close()

    if proc.returncode != 0:
        console.print(f"[bold red]Command failed with exit code {proc.returncode}[/]")
        # Print the captured buffer as context
        for line in buffer:
            console.print(f"[red]{line}[/]")
        raise BuildInvocationError(
            f"{cmd_name} failed with exit code {proc.returncode}",
            exit_code=proc.returncode,
            dependency=dependency,
            step=title,
        )

    return proc.returncode


def check_source_files_exist(src_dir: Path, source_files: list) -> Tuple[bool, List[str]]:
    """
    Check if all source files exist
    """
    missing_files = []
    for src in source_files:
        if not (src_dir / src).exists():
            missing_files.append(src)

    return (len(missing_files) == 0, missing_files)
