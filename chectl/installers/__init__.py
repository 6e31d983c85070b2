"""Installer strategies for a fresh Che deployment."""

from chectl.config.settings import Installer, LifecycleConfig
from chectl.infra.k8s.controller import KubernetesController
from chectl.infra.shell import ShellCommands
from chectl.orchestration.pod_waiter import PodReadinessWaiter

from .base import InstallerStrategy, split_image
from .helm import HelmInstaller
from .minishift_addon import MinishiftAddonInstaller
from .operator import OperatorInstaller

INSTALLERS: dict[Installer, type[InstallerStrategy]] = {
    Installer.HELM: HelmInstaller,
    Installer.OPERATOR: OperatorInstaller,
    Installer.MINISHIFT_ADDON: MinishiftAddonInstaller,
}


def get_installer(
    installer: Installer,
    config: LifecycleConfig,
    *,
    controller: KubernetesController,
    shell: ShellCommands,
    waiter: PodReadinessWaiter,
) -> InstallerStrategy:
    """Instantiate the strategy registered for ``installer``."""
    return INSTALLERS[installer](config, controller=controller, shell=shell, waiter=waiter)


__all__ = [
    "INSTALLERS",
    "HelmInstaller",
    "InstallerStrategy",
    "MinishiftAddonInstaller",
    "OperatorInstaller",
    "get_installer",
    "split_image",
]
