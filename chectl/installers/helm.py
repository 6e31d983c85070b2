"""Helm chart installer."""

from __future__ import annotations

import asyncio
from pathlib import Path

from loguru import logger

from chectl.config.settings import Installer
from chectl.errors import InstallerError
from chectl.infra.constants import DEFAULT_CONSTANTS
from chectl.orchestration.context import ExecutionContext
from chectl.orchestration.tasks import Task, TaskHandle, TaskSequence

from .base import InstallerStrategy


class HelmInstaller(InstallerStrategy):
    """Deploys Che with ``helm upgrade --install`` from the bundled chart."""

    installer = Installer.HELM
    title = "🏃‍  Running Helm to install Che"

    @property
    def chart_path(self) -> Path:
        return self.config.templates / "kubernetes" / "helm" / "che"

    def chart_values(self, ctx: ExecutionContext) -> dict[str, str]:
        """``--set`` overrides derived from the configuration."""
        values = {
            "global.ingressDomain": ctx.domain or self.config.domain,
            "cheImage": self.config.che_image,
        }
        if self.config.tls and self.config.self_signed_cert:
            values["global.tls.selfSignedCert"] = "true"
        if self.config.plugin_registry_url:
            values["che.workspace.pluginRegistryUrl"] = self.config.plugin_registry_url
        if self.config.devfile_registry_url:
            values["che.workspace.devfileRegistryUrl"] = self.config.devfile_registry_url
        return values

    def value_files(self, ctx: ExecutionContext) -> list[Path]:
        files: list[Path] = []
        if self.multiuser(ctx, self.config):
            files.append(self.chart_path / "values" / "multi-user.yaml")
        if self.config.tls:
            files.append(self.chart_path / "values" / "tls.yaml")
        return files

    def install_tasks(self) -> TaskSequence[ExecutionContext]:
        helm = self.shell.helm

        async def verify_helm(ctx: ExecutionContext, task: TaskHandle) -> None:
            version = await asyncio.to_thread(helm.version)
            if version is None:
                raise InstallerError(
                    "helm is not installed",
                    details="Install helm and make sure it is on PATH",
                )
            task.append(f"done ({version})")

        async def verify_chart(ctx: ExecutionContext, task: TaskHandle) -> None:
            if not (self.chart_path / "Chart.yaml").is_file():
                raise InstallerError(
                    f"Helm chart not found in {self.chart_path}",
                    details="Point --templates to a folder containing kubernetes/helm/che",
                )
            task.append("done")

        async def update_dependencies(ctx: ExecutionContext, task: TaskHandle) -> None:
            self.check(
                await self.run_command(helm.dependency_update, self.chart_path),
                "Failed to update Helm chart dependencies",
            )
            task.append("done")

        async def deploy(ctx: ExecutionContext, task: TaskHandle) -> None:
            result = await self.run_command(
                helm.upgrade_install,
                DEFAULT_CONSTANTS.HELM_RELEASE_NAME,
                self.chart_path,
                self.namespace,
                set_values=self.chart_values(ctx),
                value_files=self.value_files(ctx),
                on_output=lambda line: logger.debug(f"helm: {line}"),
            )
            self.check(result, "Failed to deploy the Che Helm chart")
            logger.info(f"Helm release {DEFAULT_CONSTANTS.HELM_RELEASE_NAME} deployed in {self.namespace}")
            task.append("done")

        return TaskSequence(
            [
                Task("Verify if helm is installed", verify_helm),
                Task("Verify the Che Helm chart", verify_chart),
                Task("Updating Helm Chart dependencies", update_dependencies),
                Task("Deploying Che Helm Chart", deploy),
            ]
        )

    def delete_tasks(self) -> TaskSequence[ExecutionContext]:
        helm = self.shell.helm
        release = DEFAULT_CONSTANTS.HELM_RELEASE_NAME

        async def purge(ctx: ExecutionContext, task: TaskHandle) -> None:
            if not self.shell.is_available("helm"):
                task.append("skipped (helm not installed)")
                return
            if not await asyncio.to_thread(helm.release_exists, release, self.namespace):
                task.append("not found")
                return
            self.check(
                await self.run_command(helm.uninstall, release, self.namespace),
                f"Failed to uninstall Helm release {release}",
            )
            task.append("OK")

        return TaskSequence([Task(f"Purge {release} Helm chart", purge)])
