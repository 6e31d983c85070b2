"""Local platform tooling: minikube, microk8s and the OpenShift ``oc`` client."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .types import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner


class MinikubeCommands:
    """Minikube-related shell commands."""

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    def is_running(self) -> bool:
        result = self._runner.run(["minikube", "status"])
        return result.success and "Running" in result.stdout

    def ip(self) -> str | None:
        """Return the minikube VM IP address."""
        result = self._runner.run(["minikube", "ip"])
        if not result.success:
            return None
        return result.stdout.strip() or None

    def addon_enabled(self, addon: str) -> bool:
        """Check an addon in ``minikube addons list`` output.

        Matches rows such as ``- ingress: enabled`` and
        ``| ingress | minikube | enabled ✅ |``.
        """
        result = self._runner.run(["minikube", "addons", "list"])
        if not result.success:
            return False
        for line in result.stdout.splitlines():
            cells = [c for c in line.replace("|", " ").replace(":", " ").split() if c != "-"]
            if cells and cells[0] == addon:
                return "enabled" in cells
        return False

    def enable_addon(self, addon: str) -> CommandResult:
        return self._runner.run(["minikube", "addons", "enable", addon])


class MicroK8sCommands:
    """MicroK8s-related shell commands."""

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    def is_running(self) -> bool:
        result = self._runner.run(["microk8s", "status"])
        return result.success and "microk8s is running" in result.stdout


class OpenShiftCommands:
    """``oc`` client commands."""

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    def status(self) -> CommandResult:
        return self._runner.run(["oc", "status"])
