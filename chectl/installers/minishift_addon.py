"""Minishift addon installer (single-user Che on Minishift)."""

from __future__ import annotations

import asyncio
from pathlib import Path

from chectl.config.settings import Installer
from chectl.errors import InstallerError
from chectl.infra.constants import DEFAULT_CONSTANTS
from chectl.orchestration.context import ExecutionContext
from chectl.orchestration.tasks import Task, TaskHandle, TaskSequence

from .base import InstallerStrategy, split_image


class MinishiftAddonInstaller(InstallerStrategy):
    """Installs and applies the ``che`` minishift addon."""

    installer = Installer.MINISHIFT_ADDON
    title = "🏃‍  Running the Che minishift-addon"

    @property
    def addon_dir(self) -> Path:
        return self.config.templates / "minishift-addon" / DEFAULT_CONSTANTS.MINISHIFT_ADDON_NAME

    def addon_env(self) -> dict[str, str]:
        repo, tag = split_image(self.config.che_image)
        env = {
            "NAMESPACE": self.namespace,
            "CHE_IMAGE_REPO": repo,
            "CHE_IMAGE_TAG": tag,
        }
        if self.config.plugin_registry_url:
            env["PLUGIN_REGISTRY_URL"] = self.config.plugin_registry_url
        if self.config.devfile_registry_url:
            env["DEVFILE_REGISTRY_URL"] = self.config.devfile_registry_url
        return env

    def install_tasks(self) -> TaskSequence[ExecutionContext]:
        minishift = self.shell.minishift
        name = DEFAULT_CONSTANTS.MINISHIFT_ADDON_NAME

        async def install_addon(ctx: ExecutionContext, task: TaskHandle) -> None:
            if await asyncio.to_thread(minishift.addon_installed, name):
                task.append("already installed")
                return
            if not self.addon_dir.is_dir():
                raise InstallerError(f"Minishift addon not found in {self.addon_dir}")
            self.check(
                await self.run_command(minishift.install_addon, self.addon_dir),
                f"Failed to install the {name} minishift addon",
            )
            task.append("done")

        async def apply_addon(ctx: ExecutionContext, task: TaskHandle) -> None:
            self.check(
                await self.run_command(minishift.apply_addon, name, self.addon_env()),
                f"Failed to apply the {name} minishift addon",
            )
            task.append("done")

        return TaskSequence(
            [
                Task("Check minishift addon availability", install_addon),
                Task("Apply Che minishift addon", apply_addon),
            ]
        )

    def delete_tasks(self) -> TaskSequence[ExecutionContext]:
        minishift = self.shell.minishift
        name = DEFAULT_CONSTANTS.MINISHIFT_ADDON_NAME

        async def remove(ctx: ExecutionContext, task: TaskHandle) -> None:
            if not minishift.is_installed():
                task.append("skipped (minishift not installed)")
                return
            if not await asyncio.to_thread(minishift.addon_installed, name):
                task.append("not found")
                return
            self.check(
                await self.run_command(minishift.remove_addon, name),
                f"Failed to remove the {name} minishift addon",
            )
            self.check(
                await self.run_command(minishift.uninstall_addon, name),
                f"Failed to uninstall the {name} minishift addon",
            )
            task.append("OK")

        return TaskSequence([Task(f"Remove the {name} minishift addon", remove)])
