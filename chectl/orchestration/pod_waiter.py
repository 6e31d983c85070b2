"""Pod readiness waiter.

Walks a label-selected pod set through three phases, each with its own
timeout and never reordered:

- scheduling: no-op if the pod already runs, otherwise wait until the pod
  exists and has left ``Pending`` (or reports ``PodScheduled=True``)
- downloading images: wait for phase ``Running``
- starting: wait for the ``Ready`` condition to be ``True``

Connection errors while polling are retried until the phase deadline, which
is reported as ``WaitTimeoutError``. Permission errors surface immediately.
"""

from __future__ import annotations

from collections.abc import Callable

from loguru import logger

from chectl.config.settings import WaitTimeouts
from chectl.errors import (
    ClusterConnectionError,
    ClusterPermissionError,
    WaitTimeoutError,
)
from chectl.infra.k8s.controller import ConditionStatus, PodInfo, PodPhase
from chectl.utils.polling import PollTimeout, poll_until

from .context import ExecutionContext
from .probe import ClusterProbe
from .tasks import Task, TaskHandle, TaskSequence


def _describe(pods: list[PodInfo]) -> str:
    if not pods:
        return "no pods"
    return ", ".join(f"{pod.name} ({pod.phase}, ready={pod.ready})" for pod in pods)


def is_scheduled(pods: list[PodInfo]) -> bool:
    return any(
        pod.phase != PodPhase.PENDING or pod.scheduled == ConditionStatus.TRUE
        for pod in pods
    )


def is_running(pods: list[PodInfo]) -> bool:
    return any(pod.phase == PodPhase.RUNNING for pod in pods)


def is_ready(pods: list[PodInfo]) -> bool:
    return any(pod.ready == ConditionStatus.TRUE for pod in pods)


class PodReadinessWaiter:
    """Bounded waits on pod sets."""

    def __init__(self, probe: ClusterProbe, timeouts: WaitTimeouts | None = None) -> None:
        self.probe = probe
        self.timeouts = timeouts or WaitTimeouts()

    async def _poll(
        self,
        selector: str,
        namespace: str,
        condition: Callable[[list[PodInfo]], bool],
        *,
        timeout: float,
        description: str,
    ) -> list[PodInfo]:
        """Poll the pod set until ``condition`` holds.

        Raises:
            WaitTimeoutError: If the condition does not hold within ``timeout``
            ClusterPermissionError: If the cluster rejects our credentials
        """
        try:
            return await poll_until(
                lambda: self.probe.controller.list_pods(selector, namespace),
                condition,
                timeout=timeout,
                interval=self.timeouts.poll_interval,
                description=f"{description} ({selector})",
                transient=(ClusterConnectionError,),
                fatal=(ClusterPermissionError,),
            )
        except PollTimeout as e:
            last = e.last_observed
            if e.last_error is None and isinstance(e.last_value, list):
                last = _describe(e.last_value)
            raise WaitTimeoutError(
                description,
                selector=selector,
                namespace=namespace,
                timeout=timeout,
                last_observed=last,
            ) from e

    async def wait_scheduled(self, selector: str, namespace: str) -> None:
        """Wait until the pod has been placed on a node.

        Returns without polling when any matching pod is already ``Running``.
        """
        try:
            running = await self.probe.any_pod_running(selector, namespace)
        except ClusterPermissionError:
            raise
        except ClusterConnectionError as e:
            logger.debug(f"Could not read the phase of {selector}: {e}")
            running = False

        if running:
            logger.debug(f"Pods {selector} already running, nothing to schedule")
            return

        await self._poll(
            selector,
            namespace,
            is_scheduled,
            timeout=self.timeouts.pod_wait,
            description="pod to be scheduled",
        )

    async def wait_running(self, selector: str, namespace: str) -> None:
        await self._poll(
            selector,
            namespace,
            is_running,
            timeout=self.timeouts.image_pull,
            description="pod to reach phase Running",
        )

    async def wait_ready(self, selector: str, namespace: str) -> None:
        await self._poll(
            selector,
            namespace,
            is_ready,
            timeout=self.timeouts.pod_ready,
            description="pod to be ready",
        )

    async def wait_deleted(self, selector: str, namespace: str) -> None:
        await self._poll(
            selector,
            namespace,
            lambda pods: not pods,
            timeout=self.timeouts.pod_deletion,
            description="pods to be deleted",
        )

    async def wait_for_pod_start(self, selector: str, namespace: str) -> None:
        """Run the three phases back to back."""
        await self.wait_scheduled(selector, namespace)
        await self.wait_running(selector, namespace)
        await self.wait_ready(selector, namespace)

    def pod_start_tasks(
        self,
        selector: str,
        namespace: str,
        *,
        on_ready: Callable[[ExecutionContext], None] | None = None,
    ) -> TaskSequence[ExecutionContext]:
        """The three phases as a nested task sequence.

        Args:
            selector: Pod label selector
            namespace: Kubernetes namespace
            on_ready: Called with the context once the pod is ready
        """

        async def scheduling(ctx: ExecutionContext, task: TaskHandle) -> None:
            await self.wait_scheduled(selector, namespace)
            task.append("done")

        async def downloading(ctx: ExecutionContext, task: TaskHandle) -> None:
            await self.wait_running(selector, namespace)
            task.append("done")

        async def starting(ctx: ExecutionContext, task: TaskHandle) -> None:
            await self.wait_ready(selector, namespace)
            if on_ready is not None:
                on_ready(ctx)
            task.append("done")

        return TaskSequence(
            [
                Task("scheduling", scheduling),
                Task("downloading images", downloading),
                Task("starting", starting),
            ]
        )
