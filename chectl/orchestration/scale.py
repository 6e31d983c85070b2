"""Dependency-ordered scaling of the Che components.

Scale-up brings dependencies first (data store, identity service,
registries) and the Che server last, waiting for each pod set to be ready
before the next scale call. Scale-down runs the reverse: graceful shutdown
handshake, Che server, identity service, data store, registries, waiting
for each pod set to be deleted.

Components that are not deployed are skipped in both directions. A failed
scale call aborts the sequence; components already scaled are left as
they are.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping

from loguru import logger

from chectl.config.settings import WaitTimeouts
from chectl.errors import ComponentScaleError, CoordinationError, DeploymentError
from chectl.infra.che.client import CheServerClient
from chectl.infra.k8s.controller import KubernetesController

from .components import ComponentSpec
from .context import CheComponent, ExecutionContext
from .pod_waiter import PodReadinessWaiter
from .tasks import Task, TaskHandle, TaskSequence

SCALE_UP_ORDER: tuple[CheComponent, ...] = (
    CheComponent.POSTGRES,
    CheComponent.KEYCLOAK,
    CheComponent.PLUGIN_REGISTRY,
    CheComponent.DEVFILE_REGISTRY,
    CheComponent.CHE,
)

SCALE_DOWN_ORDER: tuple[CheComponent, ...] = (
    CheComponent.CHE,
    CheComponent.KEYCLOAK,
    CheComponent.POSTGRES,
    CheComponent.DEVFILE_REGISTRY,
    CheComponent.PLUGIN_REGISTRY,
)

AUTH_REQUIRED_MESSAGE = (
    "E_AUTH_REQUIRED - Che authentication is enabled and an access token needs "
    "to be provided (flag --access-token)."
)


class ScaleSequencer:
    """Scales the component chain up or down in dependency order."""

    def __init__(
        self,
        controller: KubernetesController,
        waiter: PodReadinessWaiter,
        specs: Mapping[CheComponent, ComponentSpec],
        namespace: str,
        *,
        che_client: CheServerClient | None = None,
        access_token: str | None = None,
        timeouts: WaitTimeouts | None = None,
    ) -> None:
        """Initialize the sequencer.

        Args:
            controller: Cluster transport used for scale calls
            waiter: Pod readiness waiter
            specs: Component names and selectors
            namespace: Namespace where Che is deployed
            che_client: Che server client, required for scale-down
            access_token: Token for the shutdown request when auth is enabled
            timeouts: Wait bounds (shutdown handshake)
        """
        self.controller = controller
        self.waiter = waiter
        self.specs = specs
        self.namespace = namespace
        self.che_client = che_client
        self.access_token = access_token
        self.timeouts = timeouts or WaitTimeouts()

    async def scale_component(
        self,
        ctx: ExecutionContext,
        component: CheComponent,
        replicas: int,
    ) -> None:
        """Scale one component using the resource kind found by the probe.

        Raises:
            ComponentScaleError: If the scale call fails
        """
        spec = self.specs[component]
        status = ctx.status.get(component)
        if status.resource_kind is None:
            raise ComponentScaleError(
                spec.deployment_name,
                resource_kind="unknown",
                namespace=self.namespace,
                replicas=replicas,
                cause=ValueError(f"{component} is not deployed"),
            )

        logger.info(f"Scaling {status.resource_kind}/{spec.deployment_name} to {replicas}")
        try:
            await self.controller.scale(
                status.resource_kind, spec.deployment_name, self.namespace, replicas
            )
        except DeploymentError as e:
            raise ComponentScaleError(
                spec.deployment_name,
                resource_kind=status.resource_kind,
                namespace=self.namespace,
                replicas=replicas,
                cause=e,
            ) from e

    @staticmethod
    def _deployed(component: CheComponent) -> Callable[[ExecutionContext], bool]:
        return lambda ctx: ctx.status.get(component).is_deployed

    # =========================================================================
    # Scale up
    # =========================================================================

    def scale_up_tasks(self) -> TaskSequence[ExecutionContext]:
        """Scale every deployed component to 1, dependencies first."""
        sequence: TaskSequence[ExecutionContext] = TaskSequence()
        for component in SCALE_UP_ORDER:
            spec = self.specs[component]
            sequence.add(
                Task(
                    f'Scaling up "{spec.deployment_name}"',
                    self._component_up_tasks(component),
                    enabled=self._deployed(component),
                )
            )
        return sequence

    def _component_up_tasks(self, component: CheComponent) -> TaskSequence[ExecutionContext]:
        spec = self.specs[component]

        async def scale_up(ctx: ExecutionContext, task: TaskHandle) -> None:
            await self.scale_component(ctx, component, 1)
            task.append("done")

        def mark_ready(ctx: ExecutionContext) -> None:
            ctx.status.get(component).is_ready = True

        return TaskSequence(
            [
                Task(f"Scale {spec.title} to one replica", scale_up),
                Task(
                    f"{spec.title} pod bootstrap",
                    self.waiter.pod_start_tasks(
                        spec.selector, self.namespace, on_ready=mark_ready
                    ),
                ),
            ]
        )

    # =========================================================================
    # Scale down
    # =========================================================================

    async def shutdown_che(self, ctx: ExecutionContext) -> None:
        """Ask the Che server to shut down gracefully and wait for it.

        Raises:
            CoordinationError: If auth is enabled and no token was given
            ServerShutdownError: If the server refuses or does not comply
        """
        if ctx.is_auth_enabled and not self.access_token:
            raise CoordinationError(AUTH_REQUIRED_MESSAGE)
        if self.che_client is None:
            raise CoordinationError("No Che server client configured for the shutdown request")

        if ctx.che_url is None:
            ctx.che_url = await self.che_client.resolve_public_url(
                self.namespace, is_openshift=ctx.is_openshift
            )
        await self.che_client.request_shutdown(ctx.che_url, self.access_token)
        await self.che_client.wait_until_ready_to_shutdown(
            ctx.che_url, timeout=self.timeouts.shutdown
        )

    def scale_down_tasks(self) -> TaskSequence[ExecutionContext]:
        """Shutdown handshake, then scale every deployed component to 0."""

        async def shutdown(ctx: ExecutionContext, task: TaskHandle) -> None:
            await self.shutdown_che(ctx)
            task.append("done")

        sequence: TaskSequence[ExecutionContext] = TaskSequence(
            [
                Task(
                    "Stop Che server and wait until it's ready to shutdown",
                    shutdown,
                    enabled=lambda ctx: (
                        ctx.is_deployed and not ctx.is_stopped and ctx.status.che.is_ready
                    ),
                )
            ]
        )
        for component in SCALE_DOWN_ORDER:
            sequence.extend(self._component_down_tasks(component))
        return sequence

    def _component_down_tasks(self, component: CheComponent) -> list[Task[ExecutionContext]]:
        spec = self.specs[component]

        async def scale_down(ctx: ExecutionContext, task: TaskHandle) -> None:
            await self.scale_component(ctx, component, 0)
            ctx.status.get(component).is_ready = False
            task.append("done")

        async def wait_deleted(ctx: ExecutionContext, task: TaskHandle) -> None:
            await self.waiter.wait_deleted(spec.selector, self.namespace)
            if component == CheComponent.CHE:
                ctx.is_stopped = True
            task.append("done")

        deployed = self._deployed(component)
        return [
            Task(f'Scale "{spec.deployment_name}" deployment to zero', scale_down, enabled=deployed),
            Task(f"Wait until {spec.title} pod is deleted", wait_deleted, enabled=deployed),
        ]
