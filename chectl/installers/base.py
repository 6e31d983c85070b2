"""Base installer strategy with shared functionality."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import ClassVar, ParamSpec

from chectl.config.settings import Installer, LifecycleConfig
from chectl.errors import InstallerError
from chectl.infra.k8s.controller import KubernetesController
from chectl.infra.shell import CommandResult, ShellCommands
from chectl.orchestration.context import ExecutionContext
from chectl.orchestration.pod_waiter import PodReadinessWaiter
from chectl.orchestration.tasks import TaskRunner, TaskSequence

P = ParamSpec("P")


def split_image(image: str) -> tuple[str, str]:
    """Split ``repo[:tag]`` into repository and tag (``latest`` by default).

    A colon inside a registry host (``host:5000/repo``) is not a tag.
    """
    repo, sep, tag = image.rpartition(":")
    if not sep or "/" in tag:
        return image, "latest"
    return repo, tag


class InstallerStrategy(ABC):
    """Abstract base class for the installer back-ends.

    An installer contributes two task sequences: ``install_tasks()`` runs a
    fresh deployment to completion, ``delete_tasks()`` removes what this
    installer owns (the generic namespace cleanup is done elsewhere).
    """

    installer: ClassVar[Installer]
    title: ClassVar[str]

    def __init__(
        self,
        config: LifecycleConfig,
        *,
        controller: KubernetesController,
        shell: ShellCommands,
        waiter: PodReadinessWaiter,
    ) -> None:
        """Initialize the installer.

        Args:
            config: Validated lifecycle configuration
            controller: Cluster transport
            shell: Shell command facade
            waiter: Pod readiness waiter
        """
        self.config = config
        self.controller = controller
        self.shell = shell
        self.waiter = waiter

    @property
    def namespace(self) -> str:
        return self.config.namespace

    @abstractmethod
    def install_tasks(self) -> TaskSequence[ExecutionContext]:
        """Tasks that install Che from scratch."""

    @abstractmethod
    def delete_tasks(self) -> TaskSequence[ExecutionContext]:
        """Tasks that remove what this installer created."""

    async def run_install(self, ctx: ExecutionContext) -> ExecutionContext:
        """Run the installation to completion without progress output."""
        return await TaskRunner().run(self.install_tasks(), ctx)

    @staticmethod
    async def run_command(
        func: Callable[P, CommandResult], *args: P.args, **kwargs: P.kwargs
    ) -> CommandResult:
        """Run a blocking shell command off the event loop."""
        return await asyncio.to_thread(func, *args, **kwargs)

    @staticmethod
    def check(result: CommandResult, message: str) -> CommandResult:
        """Raise InstallerError when a command failed."""
        if not result.success:
            raise InstallerError(message, details=result.output or None)
        return result

    @staticmethod
    def multiuser(ctx: ExecutionContext, config: LifecycleConfig) -> bool:
        """Effective multi-user mode, after installer constraints."""
        if ctx.resolution is not None:
            return ctx.resolution.multiuser
        return config.multiuser
