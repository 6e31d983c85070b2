"""Platform preflight checklists run before a Che deployment is started."""

from __future__ import annotations

import asyncio
import socket

from chectl.config.settings import Platform
from chectl.errors import PlatformError
from chectl.infra.constants import DEFAULT_CONSTANTS
from chectl.infra.shell import ShellCommands

from .context import ExecutionContext
from .probe import ClusterProbe
from .tasks import Task, TaskHandle, TaskSequence

PREFLIGHT_TITLES: dict[Platform, str] = {
    Platform.MINIKUBE: "✈️  Minikube preflight checklist",
    Platform.MINISHIFT: "✈️  Minishift preflight checklist",
    Platform.MICROK8S: "✈️  MicroK8s preflight checklist",
    Platform.OPENSHIFT: "✈️  Openshift preflight checklist",
    Platform.K8S: "✈️  Kubernetes preflight checklist",
    Platform.DOCKER_DESKTOP: "✈️  Docker Desktop preflight checklist",
}


def _host_ip() -> str:
    return socket.gethostbyname(socket.gethostname())


class PlatformPreflight:
    """Builds the preflight task sequence of each platform.

    Every sequence verifies the Kubernetes API and records the cluster
    flavor; platform-specific checks come first.
    """

    def __init__(self, probe: ClusterProbe, shell: ShellCommands) -> None:
        self.probe = probe
        self.shell = shell

    def tasks(self, platform: Platform) -> TaskSequence[ExecutionContext]:
        builders = {
            Platform.MINIKUBE: self._minikube_tasks,
            Platform.MINISHIFT: self._minishift_tasks,
            Platform.MICROK8S: self._microk8s_tasks,
            Platform.OPENSHIFT: self._openshift_tasks,
            Platform.K8S: self._k8s_tasks,
            Platform.DOCKER_DESKTOP: self._docker_desktop_tasks,
        }
        sequence = builders[platform]()
        sequence.extend(self.probe.api_check_tasks())
        return sequence

    def _require_tool(self, executable: str, title: str) -> Task[ExecutionContext]:
        async def check(ctx: ExecutionContext, task: TaskHandle) -> None:
            if not self.shell.is_available(executable):
                raise PlatformError(
                    f"{executable} is not installed",
                    details=f"Install {executable} and make sure it is on PATH",
                )
            task.append("done")

        return Task(f"Verify if {title} is installed", check)

    # =========================================================================
    # Platforms
    # =========================================================================

    def _minikube_tasks(self) -> TaskSequence[ExecutionContext]:
        minikube = self.shell.minikube

        async def running(ctx: ExecutionContext, task: TaskHandle) -> None:
            if not await asyncio.to_thread(minikube.is_running):
                raise PlatformError(
                    "Minikube is not running", details="Start it with: minikube start"
                )
            task.append("done")

        async def ingress_addon(ctx: ExecutionContext, task: TaskHandle) -> None:
            if await asyncio.to_thread(minikube.addon_enabled, "ingress"):
                task.append("it is")
                return
            result = await asyncio.to_thread(minikube.enable_addon, "ingress")
            if not result.success:
                raise PlatformError("Failed to enable minikube ingress addon", details=result.output)
            task.append("enabled")

        async def domain(ctx: ExecutionContext, task: TaskHandle) -> None:
            ip = await asyncio.to_thread(minikube.ip)
            if ip is None:
                raise PlatformError("Unable to retrieve the minikube IP")
            ctx.domain = f"{ip}.nip.io"
            task.append(ctx.domain)

        return TaskSequence(
            [
                self._require_tool("minikube", "minikube"),
                Task("Verify if minikube is running", running),
                Task("Verify if minikube ingress addon is enabled", ingress_addon),
                Task(
                    "Retrieving minikube IP and domain for ingress URLs",
                    domain,
                    enabled=lambda ctx: not ctx.domain,
                ),
            ]
        )

    def _minishift_tasks(self) -> TaskSequence[ExecutionContext]:
        async def running(ctx: ExecutionContext, task: TaskHandle) -> None:
            if not await asyncio.to_thread(self.shell.minishift.is_running):
                raise PlatformError(
                    "Minishift is not running", details="Start it with: minishift start"
                )
            task.append("done")

        return TaskSequence(
            [
                self._require_tool("minishift", "minishift"),
                Task("Verify if minishift is running", running),
            ]
        )

    def _microk8s_tasks(self) -> TaskSequence[ExecutionContext]:
        async def running(ctx: ExecutionContext, task: TaskHandle) -> None:
            if not await asyncio.to_thread(self.shell.microk8s.is_running):
                raise PlatformError(
                    "MicroK8s is not running", details="Start it with: microk8s start"
                )
            task.append("done")

        async def domain(ctx: ExecutionContext, task: TaskHandle) -> None:
            ctx.domain = f"{await asyncio.to_thread(_host_ip)}.nip.io"
            task.append(ctx.domain)

        return TaskSequence(
            [
                self._require_tool("microk8s", "microk8s"),
                Task("Verify if microk8s is running", running),
                Task(
                    "Retrieving host IP and domain for ingress URLs",
                    domain,
                    enabled=lambda ctx: not ctx.domain,
                ),
            ]
        )

    def _openshift_tasks(self) -> TaskSequence[ExecutionContext]:
        async def status(ctx: ExecutionContext, task: TaskHandle) -> None:
            result = await asyncio.to_thread(self.shell.oc.status)
            if not result.success:
                raise PlatformError("OpenShift cluster is not reachable with oc", details=result.output)
            task.append("done")

        return TaskSequence(
            [
                self._require_tool("oc", "oc"),
                Task("Verify if openshift is running", status),
            ]
        )

    def _k8s_tasks(self) -> TaskSequence[ExecutionContext]:
        async def domain(ctx: ExecutionContext, task: TaskHandle) -> None:
            if not ctx.domain:
                raise PlatformError(
                    "A domain is required on Kubernetes",
                    details="Pass the cluster ingress domain with --domain",
                )
            task.append(ctx.domain)

        return TaskSequence([Task("Verify the ingress domain", domain)])

    def _docker_desktop_tasks(self) -> TaskSequence[ExecutionContext]:
        async def context(ctx: ExecutionContext, task: TaskHandle) -> None:
            current = await self.probe.controller.get_current_context()
            if current not in DEFAULT_CONSTANTS.DOCKER_DESKTOP_CONTEXTS:
                raise PlatformError(
                    f"Current kubeconfig context is {current}, not Docker Desktop",
                    details="Switch with: kubectl config use-context docker-desktop",
                )
            task.append("done")

        async def domain(ctx: ExecutionContext, task: TaskHandle) -> None:
            ctx.domain = f"{await asyncio.to_thread(_host_ip)}.nip.io"
            task.append(ctx.domain)

        return TaskSequence(
            [
                Task("Verify if kubectl context is Docker Desktop", context),
                Task(
                    "Retrieving host IP and domain for ingress URLs",
                    domain,
                    enabled=lambda ctx: not ctx.domain,
                ),
            ]
        )
