"""Cluster probe: reachability, flavor and component deployment state.

"Not found" is a normal outcome here and is reported as ``False`` /
``ComponentStatus()``. Transport and permission failures propagate as
``ClusterConnectionError`` and abort the workflow.
"""

from __future__ import annotations

from collections.abc import Mapping

from loguru import logger

from chectl.infra.k8s.controller import (
    ConditionStatus,
    KubernetesController,
    PodPhase,
    ResourceKind,
)

from .components import ComponentSpec
from .context import CheComponent, ComponentStatus, ExecutionContext
from .tasks import Task, TaskHandle, TaskSequence


class ClusterProbe:
    """Read-only queries against the cluster."""

    def __init__(self, controller: KubernetesController) -> None:
        self.controller = controller

    async def check_api_reachable(self) -> None:
        """Raises ClusterConnectionError if the API does not answer."""
        await self.controller.check_api()

    async def detect_flavor(self) -> bool:
        """Return True on OpenShift."""
        is_openshift = await self.controller.is_openshift()
        logger.debug(f"Cluster flavor: {'OpenShift' if is_openshift else 'Kubernetes'}")
        return is_openshift

    async def component_exists(
        self,
        name: str,
        namespace: str,
        *,
        is_openshift: bool,
    ) -> ComponentStatus:
        """Find the controller (DeploymentConfig or Deployment) of a component.

        On OpenShift the DeploymentConfig is looked up first and the
        Deployment is only queried when no DeploymentConfig exists.
        """
        if is_openshift and await self.controller.resource_exists(
            ResourceKind.DEPLOYMENT_CONFIG, name, namespace
        ):
            return ComponentStatus.deployed(ResourceKind.DEPLOYMENT_CONFIG)

        if await self.controller.resource_exists(ResourceKind.DEPLOYMENT, name, namespace):
            return ComponentStatus.deployed(ResourceKind.DEPLOYMENT)

        return ComponentStatus()

    async def pods_exist(self, selector: str, namespace: str) -> bool:
        return bool(await self.controller.list_pods(selector, namespace))

    async def ready_condition_status(self, selector: str, namespace: str) -> ConditionStatus:
        """Aggregate Ready condition of a pod set.

        TRUE if any pod is ready, FALSE if every pod reports not ready,
        UNKNOWN otherwise (including when no pod exists).
        """
        pods = await self.controller.list_pods(selector, namespace)
        if any(pod.ready == ConditionStatus.TRUE for pod in pods):
            return ConditionStatus.TRUE
        if pods and all(pod.ready == ConditionStatus.FALSE for pod in pods):
            return ConditionStatus.FALSE
        return ConditionStatus.UNKNOWN

    async def any_pod_running(self, selector: str, namespace: str) -> bool:
        """True if at least one matching pod is in phase Running."""
        pods = await self.controller.list_pods(selector, namespace)
        return any(pod.phase == PodPhase.RUNNING for pod in pods)

    async def probe_component(
        self,
        spec: ComponentSpec,
        namespace: str,
        *,
        is_openshift: bool,
    ) -> ComponentStatus:
        """Deployment and readiness of one component."""
        status = await self.component_exists(
            spec.deployment_name, namespace, is_openshift=is_openshift
        )
        if status.is_deployed:
            ready = await self.ready_condition_status(spec.selector, namespace)
            status.is_ready = ready == ConditionStatus.TRUE
        logger.debug(f"{spec.component}: {status}")
        return status

    async def probe_components(
        self,
        ctx: ExecutionContext,
        specs: Mapping[CheComponent, ComponentSpec],
        namespace: str,
    ) -> None:
        """Populate ``ctx.status`` for every component and derive ``is_stopped``.

        Raises:
            ResourceKindMismatchError: If components use different resource kinds
        """
        for component, spec in specs.items():
            ctx.status.set(
                component,
                await self.probe_component(spec, namespace, is_openshift=ctx.is_openshift),
            )
        ctx.status.check_kind_consistency()

        che_spec = specs[CheComponent.CHE]
        ctx.is_stopped = ctx.status.che.is_deployed and not await self.pods_exist(
            che_spec.selector, namespace
        )

    # =========================================================================
    # Task builders
    # =========================================================================

    def api_check_tasks(self) -> TaskSequence[ExecutionContext]:
        """Verify the API and record the cluster flavor."""

        async def verify_api(ctx: ExecutionContext, task: TaskHandle) -> None:
            await self.check_api_reachable()
            ctx.is_openshift = await self.detect_flavor()
            task.append("done (it's OpenShift)" if ctx.is_openshift else "done")

        return TaskSequence([Task("Verify Kubernetes API", verify_api)])

    def detection_tasks(
        self,
        specs: Mapping[CheComponent, ComponentSpec],
        namespace: str,
    ) -> TaskSequence[ExecutionContext]:
        """Look for an existing deployment and check the Che server pod."""
        che = specs[CheComponent.CHE]

        async def detect_deployment(ctx: ExecutionContext, task: TaskHandle) -> None:
            await self.probe_components(ctx, specs, namespace)
            ctx.already_running = ctx.is_deployed and ctx.status.che.is_ready
            if not ctx.is_deployed:
                task.append("it doesn't")
                return
            kind = "dc" if ctx.status.che.resource_kind == ResourceKind.DEPLOYMENT_CONFIG else "deployment"
            others = [
                spec.title
                for component, spec in specs.items()
                if component != CheComponent.CHE and ctx.status.get(component).is_deployed
            ]
            suffix = f" (as well as {', '.join(others)})" if others else ""
            task.append(f'the {kind} "{che.deployment_name}" exists{suffix}')

        async def check_che_pod(ctx: ExecutionContext, task: TaskHandle) -> None:
            if ctx.is_stopped:
                task.append("it doesn't")
            elif ctx.status.che.is_ready:
                task.append("it does")
            else:
                task.append("it does, but it is not ready")

        return TaskSequence(
            [
                Task(
                    f'Verify if deployment "{che.deployment_name}" exists in namespace "{namespace}"',
                    detect_deployment,
                ),
                Task(
                    f'Verify if Che server pod is running (selector "{che.selector}")',
                    check_che_pod,
                    enabled=lambda ctx: ctx.is_deployed,
                ),
            ]
        )
