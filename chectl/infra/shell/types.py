"""Data types for shell command results."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "CommandResult",
    "HelmRelease",
    "MinishiftAddon",
]


@dataclass
class CommandResult:
    """Result of a shell command execution.

    Attributes:
        success: Whether the command exited with code 0
        stdout: Captured standard output
        stderr: Captured standard error
        returncode: Process exit code
    """

    success: bool
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0

    @property
    def output(self) -> str:
        """Combined output, stderr preferred when the command failed."""
        if not self.success and self.stderr:
            return self.stderr.strip()
        return self.stdout.strip()


@dataclass
class HelmRelease:
    """Information about a Helm release.

    Attributes:
        name: Release name
        namespace: Kubernetes namespace
        status: Release status (deployed, failed, pending, uninstalling)
        revision: Release revision number
    """

    name: str
    namespace: str
    status: str
    revision: str


@dataclass
class MinishiftAddon:
    """A minishift addon as listed by ``minishift addons list``."""

    name: str
    enabled: bool
