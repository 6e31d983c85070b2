"""Command runner for executing shell commands.

This module provides the base command execution functionality used by
all specialized command modules.
"""

from __future__ import annotations

import shutil
import subprocess
from collections.abc import Callable, Sequence
from pathlib import Path

from loguru import logger

from .types import CommandResult


class CommandRunner:
    """Low-level command executor with consistent result handling.

    All specialized command modules (helm, kubectl, minishift, platform
    tools) use this runner for actual command execution.
    """

    def __init__(self, working_dir: Path) -> None:
        """Initialize the command runner.

        Args:
            working_dir: Directory commands are executed from by default
        """
        self.working_dir = working_dir

    @staticmethod
    def is_available(executable: str) -> bool:
        """Check whether an executable is on PATH."""
        return shutil.which(executable) is not None

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        capture_output: bool = True,
        input_data: str | None = None,
    ) -> CommandResult:
        """Execute a shell command and return structured result.

        A missing executable is reported as a failed result (exit code 127)
        instead of an exception.

        Args:
            cmd: Command and arguments as a sequence
            cwd: Working directory (defaults to working_dir)
            capture_output: Whether to capture stdout/stderr
            input_data: Optional text passed on stdin

        Returns:
            CommandResult with success status, output, and return code
        """
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                list(cmd),
                cwd=cwd or self.working_dir,
                capture_output=capture_output,
                text=True,
                input=input_data,
            )
        except FileNotFoundError:
            logger.debug(f"Executable not found: {cmd[0]}")
            return CommandResult(
                success=False,
                stderr=f"{cmd[0]}: command not found",
                returncode=127,
            )
        return CommandResult(
            success=result.returncode == 0,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
            returncode=result.returncode,
        )

    def run_streaming(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        on_output: Callable[[str], None] | None = None,
    ) -> CommandResult:
        """Execute a shell command with real-time output streaming.

        Args:
            cmd: Command and arguments as a sequence
            cwd: Working directory (defaults to working_dir)
            on_output: Callback function called with each line of output

        Returns:
            CommandResult with success status, collected output, and return code
        """
        logger.debug(f"Running (streaming): {' '.join(cmd)}")
        try:
            process = subprocess.Popen(
                list(cmd),
                cwd=cwd or self.working_dir,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,  # Merge stderr into stdout
                text=True,
                bufsize=1,
            )
        except FileNotFoundError:
            return CommandResult(
                success=False,
                stderr=f"{cmd[0]}: command not found",
                returncode=127,
            )

        stdout_lines: list[str] = []
        if process.stdout:
            for line in iter(process.stdout.readline, ""):
                line = line.rstrip("\n")
                if line:
                    stdout_lines.append(line)
                    if on_output:
                        on_output(line)

        process.wait()

        output = "\n".join(stdout_lines)
        return CommandResult(
            success=process.returncode == 0,
            stdout=output,
            stderr=output if process.returncode else "",
            returncode=process.returncode or 0,
        )
