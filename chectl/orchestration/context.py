"""Execution context threaded through one lifecycle workflow.

The context is a fixed-shape record: every task reads and writes named
fields, nothing is stored under ad hoc keys. It lives for one workflow call
and is never persisted; every invocation re-probes the cluster.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import StrEnum

from chectl.errors import ResourceKindMismatchError
from chectl.infra.k8s.controller import CONTROLLER_KINDS, ResourceKind

from .compatibility import Resolution


class CheComponent(StrEnum):
    """Workloads that make up a Che deployment."""

    CHE = "che"
    KEYCLOAK = "keycloak"
    POSTGRES = "postgres"
    PLUGIN_REGISTRY = "plugin-registry"
    DEVFILE_REGISTRY = "devfile-registry"


@dataclass
class ComponentStatus:
    """Deployment state of one component.

    ``resource_kind`` is only ever set together with ``is_deployed``.
    """

    is_deployed: bool = False
    resource_kind: ResourceKind | None = None
    is_ready: bool = False

    def __post_init__(self) -> None:
        if self.resource_kind is not None:
            if not self.is_deployed:
                raise ValueError("resource_kind requires is_deployed")
            if self.resource_kind not in CONTROLLER_KINDS:
                raise ValueError(f"{self.resource_kind} does not own pods")

    @classmethod
    def deployed(cls, kind: ResourceKind, *, ready: bool = False) -> ComponentStatus:
        return cls(is_deployed=True, resource_kind=kind, is_ready=ready)


@dataclass
class CheStatus:
    """Per-component status record populated by the cluster probe."""

    che: ComponentStatus = field(default_factory=ComponentStatus)
    keycloak: ComponentStatus = field(default_factory=ComponentStatus)
    postgres: ComponentStatus = field(default_factory=ComponentStatus)
    plugin_registry: ComponentStatus = field(default_factory=ComponentStatus)
    devfile_registry: ComponentStatus = field(default_factory=ComponentStatus)

    @staticmethod
    def _attribute(component: CheComponent) -> str:
        return component.value.replace("-", "_")

    def get(self, component: CheComponent) -> ComponentStatus:
        return getattr(self, self._attribute(component))

    def set(self, component: CheComponent, status: ComponentStatus) -> None:
        setattr(self, self._attribute(component), status)

    def items(self) -> Iterator[tuple[CheComponent, ComponentStatus]]:
        for component in CheComponent:
            yield component, self.get(component)

    def deployed(self) -> list[CheComponent]:
        return [c for c, status in self.items() if status.is_deployed]

    def check_kind_consistency(self) -> None:
        """Ensure every deployed component uses the Che server's resource kind.

        Raises:
            ResourceKindMismatchError: If two deployed components disagree
        """
        kinds = {
            component: status.resource_kind
            for component, status in self.items()
            if status.is_deployed
        }
        if len(set(kinds.values())) <= 1:
            return

        reference = kinds.get(CheComponent.CHE) or next(iter(kinds.values()))
        mismatched = ", ".join(
            f"{component} is a {kind}"
            for component, kind in kinds.items()
            if kind != reference
        )
        raise ResourceKindMismatchError(
            f"Che components resolved to different resource kinds (expected {reference})",
            details=mismatched,
        )


@dataclass
class ExecutionContext:
    """Shared state of one workflow run.

    Attributes:
        is_openshift: Cluster flavor, set by the API check
        status: Per-component deployment status
        resolution: Validated platform/installer pair (start only)
        domain: Ingress domain used by installers
        is_stopped: Che is deployed but has no pods
        is_auth_enabled: Che server reports Keycloak authentication
        che_url: Public Che URL once resolved
        server_status: Last status reported by the Che server
        already_running: Che was deployed and ready before the workflow
    """

    is_openshift: bool = False
    status: CheStatus = field(default_factory=CheStatus)
    resolution: Resolution | None = None
    domain: str = ""
    is_stopped: bool = False
    is_auth_enabled: bool = False
    che_url: str | None = None
    server_status: str | None = None
    already_running: bool = False

    @property
    def is_deployed(self) -> bool:
        return self.status.che.is_deployed

    @property
    def is_not_ready(self) -> bool:
        """Che pods exist but are not ready (failing to start)."""
        return self.is_deployed and not self.is_stopped and not self.status.che.is_ready

    @property
    def needs_recovery(self) -> bool:
        """Che is deployed but not serving; scale it up instead of installing."""
        return self.is_deployed and not self.already_running

    @property
    def fresh_install(self) -> bool:
        return not self.is_deployed


class DeploymentState(StrEnum):
    """Overall state of a Che deployment as seen by ``status_check``."""

    NOT_DEPLOYED = "not deployed"
    STOPPED = "stopped"
    NOT_READY = "not ready"
    RUNNING = "running"


@dataclass(frozen=True)
class StatusSnapshot:
    """Read-only result of a status check."""

    namespace: str
    is_openshift: bool
    components: dict[CheComponent, ComponentStatus]
    state: DeploymentState
    che_url: str | None = None
    server_status: str | None = None
    is_auth_enabled: bool | None = None

    @property
    def already_running(self) -> bool:
        return self.state == DeploymentState.RUNNING

    @classmethod
    def from_context(cls, ctx: ExecutionContext, namespace: str) -> StatusSnapshot:
        if not ctx.is_deployed:
            state = DeploymentState.NOT_DEPLOYED
        elif ctx.is_stopped:
            state = DeploymentState.STOPPED
        elif not ctx.status.che.is_ready:
            state = DeploymentState.NOT_READY
        else:
            state = DeploymentState.RUNNING

        return cls(
            namespace=namespace,
            is_openshift=ctx.is_openshift,
            components=dict(ctx.status.items()),
            state=state,
            che_url=ctx.che_url,
            server_status=ctx.server_status,
            is_auth_enabled=ctx.is_auth_enabled if ctx.server_status is not None else None,
        )
