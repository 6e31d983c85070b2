"""CLI context and dependency container."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import click
import typer

from chectl.cli.shared.console import CLIConsole, console
from chectl.infra.constants import DEFAULT_CONSTANTS, CheConstants
from chectl.infra.k8s import build_k8s_controller
from chectl.infra.k8s.controller import KubernetesController
from chectl.infra.shell import ShellCommands


@dataclass(frozen=True)
class CLIContext:
    """Runtime dependencies for CLI commands."""

    console: CLIConsole
    project_root: Path
    commands: ShellCommands
    k8s_controller: KubernetesController
    constants: CheConstants


def build_cli_context(kube_context: str | None = None) -> CLIContext:
    """Build a fresh CLIContext.

    Args:
        kube_context: kubeconfig context, the current one when None
    """
    project_root = Path.cwd()

    return CLIContext(
        console=console,
        project_root=project_root,
        commands=ShellCommands(project_root),
        k8s_controller=build_k8s_controller(kube_context),
        constants=DEFAULT_CONSTANTS,
    )


def get_cli_context(
    ctx: typer.Context | None = None,
    *,
    kube_context: str | None = None,
) -> CLIContext:
    """Return the CLIContext from Typer, falling back to a new instance."""
    context = ctx or click.get_current_context(silent=True)
    if context and isinstance(context.obj, CLIContext):
        return context.obj
    return build_cli_context(kube_context)
