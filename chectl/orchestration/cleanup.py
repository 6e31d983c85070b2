"""Generic cleanup of every Che resource in a namespace."""

from __future__ import annotations

from loguru import logger

from chectl.infra.constants import DEFAULT_CONSTANTS, CheConstants
from chectl.infra.k8s.controller import KubernetesController, ResourceKind

from .context import ExecutionContext
from .tasks import LeafAction, Task, TaskHandle, TaskSequence


class ResourceCleaner:
    """Deletes controllers, exposure, config and storage left by any installer.

    Missing resources are skipped silently; API failures propagate.
    """

    def __init__(
        self,
        controller: KubernetesController,
        namespace: str,
        constants: CheConstants | None = None,
    ) -> None:
        self.controller = controller
        self.namespace = namespace
        self.constants = constants or DEFAULT_CONSTANTS

    async def delete_named(self, kind: ResourceKind, names: tuple[str, ...]) -> list[str]:
        """Delete the listed resources; return the names that existed."""
        deleted = [
            name
            for name in names
            if await self.controller.delete_resource(kind, name, self.namespace)
        ]
        logger.debug(f"Deleted {kind}: {deleted or 'none'}")
        return deleted

    def _delete_all(self, kind: ResourceKind) -> LeafAction[ExecutionContext]:
        async def action(ctx: ExecutionContext, task: TaskHandle) -> None:
            count = await self.controller.delete_all_of_kind(kind, self.namespace)
            task.append(f"OK ({count})")

        return action

    def _delete_named(
        self, kind: ResourceKind, names: tuple[str, ...]
    ) -> LeafAction[ExecutionContext]:
        async def action(ctx: ExecutionContext, task: TaskHandle) -> None:
            await self.delete_named(kind, names)
            task.append("OK")

        return action

    def delete_tasks(self) -> TaskSequence[ExecutionContext]:
        c = self.constants
        return TaskSequence(
            [
                Task(
                    "Delete all deployment configs",
                    self._delete_all(ResourceKind.DEPLOYMENT_CONFIG),
                    enabled=lambda ctx: ctx.is_openshift,
                ),
                Task("Delete all deployments", self._delete_all(ResourceKind.DEPLOYMENT)),
                Task("Delete all services", self._delete_all(ResourceKind.SERVICE)),
                Task(
                    "Delete all ingresses",
                    self._delete_all(ResourceKind.INGRESS),
                    enabled=lambda ctx: not ctx.is_openshift,
                ),
                Task(
                    "Delete all routes",
                    self._delete_all(ResourceKind.ROUTE),
                    enabled=lambda ctx: ctx.is_openshift,
                ),
                Task(
                    f"Delete configmaps {', '.join(c.CONFIG_MAPS)}",
                    self._delete_named(ResourceKind.CONFIG_MAP, c.CONFIG_MAPS),
                ),
                Task(
                    f"Delete rolebindings {', '.join(c.ROLE_BINDINGS)}",
                    self._delete_named(ResourceKind.ROLE_BINDING, c.ROLE_BINDINGS),
                ),
                Task(
                    f"Delete service accounts {', '.join(c.SERVICE_ACCOUNTS)}",
                    self._delete_named(ResourceKind.SERVICE_ACCOUNT, c.SERVICE_ACCOUNTS),
                ),
                Task(
                    f"Delete PVC {', '.join(c.PVCS)}",
                    self._delete_named(ResourceKind.PERSISTENT_VOLUME_CLAIM, c.PVCS),
                ),
            ]
        )
