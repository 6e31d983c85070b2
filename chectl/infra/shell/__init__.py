"""Shell command abstractions for installers and platform preflight checks.

This package is organized into specialized modules for each tool:

- helm: Helm release management
- kubectl: manifest application
- minishift: minishift status and addon management
- platforms: minikube, microk8s and ``oc`` checks

Usage:
    from chectl.infra.shell import ShellCommands

    commands = ShellCommands(Path("."))
    if commands.minikube.addon_enabled("ingress"):
        ...
"""

from pathlib import Path

from .helm import HelmCommands
from .kubectl import KubectlCommands
from .minishift import MinishiftCommands
from .platforms import MicroK8sCommands, MinikubeCommands, OpenShiftCommands
from .runner import CommandRunner
from .types import CommandResult, HelmRelease, MinishiftAddon


class ShellCommands:
    """Unified interface for all shell command operations.

    Attributes:
        helm: Helm-related commands
        kubectl: kubectl commands
        minishift: minishift commands
        minikube: minikube commands
        microk8s: microk8s commands
        oc: OpenShift client commands
    """

    def __init__(self, working_dir: Path) -> None:
        """Initialize the shell commands executor.

        Args:
            working_dir: Directory commands are executed from by default
        """
        self._working_dir = Path(working_dir)
        self._runner = CommandRunner(self._working_dir)

        self.helm = HelmCommands(self._runner)
        self.kubectl = KubectlCommands(self._runner)
        self.minishift = MinishiftCommands(self._runner)
        self.minikube = MinikubeCommands(self._runner)
        self.microk8s = MicroK8sCommands(self._runner)
        self.oc = OpenShiftCommands(self._runner)

    @property
    def working_dir(self) -> Path:
        """Get the working directory path."""
        return self._working_dir

    def is_available(self, executable: str) -> bool:
        """Check whether an executable is on PATH."""
        return self._runner.is_available(executable)


__all__ = [
    "ShellCommands",
    "CommandResult",
    "HelmRelease",
    "MinishiftAddon",
    "CommandRunner",
    "HelmCommands",
    "KubectlCommands",
    "MinishiftCommands",
    "MinikubeCommands",
    "MicroK8sCommands",
    "OpenShiftCommands",
]
