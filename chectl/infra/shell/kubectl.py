"""Kubectl command abstractions.

Manifests shipped in the templates folder are applied with ``kubectl apply``
rather than through the API client so that arbitrary kinds (CRDs, RBAC,
cluster-scoped objects) go through the server-side defaulting kubectl does.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from .types import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner


class KubectlCommands:
    """Kubectl-related shell commands."""

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize kubectl commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    def apply_file(self, manifest: Path, namespace: str) -> CommandResult:
        """Apply a manifest file (or directory) in a namespace."""
        return self._runner.run(
            ["kubectl", "apply", "-n", namespace, "-f", str(manifest)]
        )

    def apply_yaml(self, document: str, namespace: str) -> CommandResult:
        """Apply a YAML document passed on stdin."""
        return self._runner.run(
            ["kubectl", "apply", "-n", namespace, "-f", "-"],
            input_data=document,
        )
