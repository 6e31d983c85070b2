"""Minishift command abstractions (cluster status and addon management)."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING

from .types import CommandResult, MinishiftAddon

if TYPE_CHECKING:
    from .runner import CommandRunner


class MinishiftCommands:
    """Minishift-related shell commands."""

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    def is_installed(self) -> bool:
        return self._runner.is_available("minishift")

    def is_running(self) -> bool:
        """Check whether the minishift VM and OpenShift cluster are up."""
        result = self._runner.run(["minishift", "status"])
        if not result.success:
            return False
        return "Minishift:  Running" in result.stdout and "OpenShift:  Running" in result.stdout

    # =========================================================================
    # Addons
    # =========================================================================

    def list_addons(self) -> list[MinishiftAddon]:
        """List installed addons.

        Output lines look like ``- che          : enabled    P(0)``.
        """
        result = self._runner.run(["minishift", "addons", "list"])
        if not result.success:
            return []

        addons: list[MinishiftAddon] = []
        for line in result.stdout.splitlines():
            line = line.strip().lstrip("-").strip()
            if ":" not in line:
                continue
            name, _, rest = line.partition(":")
            addons.append(
                MinishiftAddon(name=name.strip(), enabled=rest.strip().startswith("enabled"))
            )
        return addons

    def addon_installed(self, name: str) -> bool:
        return any(addon.name == name for addon in self.list_addons())

    def install_addon(self, addon_dir: Path) -> CommandResult:
        return self._runner.run(["minishift", "addons", "install", str(addon_dir)])

    def apply_addon(self, name: str, addon_env: Mapping[str, str]) -> CommandResult:
        """Apply an addon with ``--addon-env KEY=VALUE`` parameters."""
        cmd = ["minishift", "addons", "apply", name]
        for key, value in addon_env.items():
            cmd.extend(["--addon-env", f"{key}={value}"])
        return self._runner.run(cmd)

    def remove_addon(self, name: str) -> CommandResult:
        return self._runner.run(["minishift", "addons", "remove", name])

    def uninstall_addon(self, name: str) -> CommandResult:
        return self._runner.run(["minishift", "addons", "uninstall", name])
