"""Helm command abstractions.

This module provides commands for Helm release management,
including deployment, upgrades, uninstallation, and status queries.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING

from .types import CommandResult, HelmRelease

if TYPE_CHECKING:
    from .runner import CommandRunner


class HelmCommands:
    """Helm-related shell commands.

    Provides operations for:
    - Tooling checks (version)
    - Release management (dependency update, install, upgrade, uninstall)
    - Status queries (list releases)
    """

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize Helm commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    def version(self) -> str | None:
        """Return the helm client version, or None if helm is unusable."""
        result = self._runner.run(["helm", "version", "--short"])
        if not result.success:
            return None
        return result.stdout.strip()

    # =========================================================================
    # Release Management
    # =========================================================================

    def dependency_update(self, chart_path: Path) -> CommandResult:
        """Fetch the chart's declared dependencies into ``charts/``."""
        return self._runner.run(["helm", "dependency", "update", "--skip-refresh"], cwd=chart_path)

    def upgrade_install(
        self,
        release_name: str,
        chart_path: Path,
        namespace: str,
        *,
        set_values: Mapping[str, str] | None = None,
        value_files: list[Path] | None = None,
        timeout: str = "10m",
        wait: bool = False,
        create_namespace: bool = True,
        on_output: Callable[[str], None] | None = None,
    ) -> CommandResult:
        """Deploy or upgrade a Helm release.

        Uses `helm upgrade --install` to idempotently deploy a chart.

        Args:
            release_name: Name for the Helm release (e.g., "che")
            chart_path: Path to the Helm chart directory
            namespace: Kubernetes namespace for deployment
            set_values: ``--set`` overrides, applied in insertion order
            value_files: Optional list of values.yaml override files
            timeout: Maximum time to wait for deployment
            wait: Whether helm should wait for resources to be ready
            create_namespace: Whether to create namespace if it doesn't exist
            on_output: Optional callback for real-time output streaming

        Returns:
            CommandResult with deployment status

        Example:
            >>> helm.upgrade_install(
            ...     "che",
            ...     Path("./templates/kubernetes/helm/che"),
            ...     "che",
            ...     set_values={"global.ingressDomain": "192.168.99.100.nip.io"},
            ... )
        """
        cmd = [
            "helm",
            "upgrade",
            "--install",
            release_name,
            str(chart_path),
            "--namespace",
            namespace,
        ]

        if create_namespace:
            cmd.append("--create-namespace")
        if wait:
            cmd.append("--wait")
        cmd.extend(["--timeout", timeout])

        for vf in value_files or []:
            cmd.extend(["-f", str(vf)])
        for key, value in (set_values or {}).items():
            cmd.extend(["--set", f"{key}={value}"])

        if on_output:
            return self._runner.run_streaming(cmd, on_output=on_output)
        return self._runner.run(cmd, capture_output=True)

    def uninstall(
        self,
        release_name: str,
        namespace: str,
        *,
        wait: bool = True,
    ) -> CommandResult:
        """Uninstall a Helm release.

        Args:
            release_name: Name of the release to uninstall
            namespace: Kubernetes namespace
            wait: Whether to wait for resources to be deleted

        Returns:
            CommandResult with uninstall status
        """
        cmd = ["helm", "uninstall", release_name, "-n", namespace]
        if wait:
            cmd.append("--wait")
        return self._runner.run(cmd)

    # =========================================================================
    # Status Queries
    # =========================================================================

    def list_releases(self, namespace: str) -> list[HelmRelease]:
        """List Helm releases in a namespace (all states)."""
        cmd = ["helm", "list", "-n", namespace, "--all", "-o", "json"]
        result = self._runner.run(cmd)
        if not result.success or not result.stdout:
            return []

        try:
            releases_data = json.loads(result.stdout)
        except json.JSONDecodeError:
            return []
        return [
            HelmRelease(
                name=r.get("name", ""),
                namespace=r.get("namespace", ""),
                status=r.get("status", ""),
                revision=str(r.get("revision", "")),
            )
            for r in releases_data
        ]

    def release_exists(self, release_name: str, namespace: str) -> bool:
        """Check whether a release of that name exists in the namespace."""
        return any(r.name == release_name for r in self.list_releases(namespace))
