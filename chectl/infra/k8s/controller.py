"""Abstract Kubernetes controller interface.

Defines the cluster transport contract used by the orchestrator. Backends
must keep "resource not found" (a normal ``None`` / ``False`` outcome) apart
from transport and permission failures (``ClusterAPIError``).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

# =============================================================================
# Data Types
# =============================================================================


class ResourceKind(StrEnum):
    """Kubernetes/OpenShift resource kinds the orchestrator touches."""

    DEPLOYMENT = "Deployment"
    DEPLOYMENT_CONFIG = "DeploymentConfig"
    SERVICE = "Service"
    INGRESS = "Ingress"
    ROUTE = "Route"
    CONFIG_MAP = "ConfigMap"
    ROLE = "Role"
    ROLE_BINDING = "RoleBinding"
    SERVICE_ACCOUNT = "ServiceAccount"
    PERSISTENT_VOLUME_CLAIM = "PersistentVolumeClaim"
    CHE_CLUSTER = "CheCluster"


# Kinds that own pods and can be scaled
CONTROLLER_KINDS: frozenset[ResourceKind] = frozenset(
    {ResourceKind.DEPLOYMENT, ResourceKind.DEPLOYMENT_CONFIG}
)


class PodPhase(StrEnum):
    """Pod lifecycle phase as reported by ``status.phase``."""

    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: str | None) -> PodPhase:
        try:
            return cls(value or "Unknown")
        except ValueError:
            return cls.UNKNOWN


class ConditionStatus(StrEnum):
    """Tri-state value of a pod condition."""

    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: str | None) -> ConditionStatus:
        try:
            return cls(value or "Unknown")
        except ValueError:
            return cls.UNKNOWN


@dataclass
class PodInfo:
    """Information about a Kubernetes pod."""

    name: str
    phase: PodPhase = PodPhase.UNKNOWN
    ready: ConditionStatus = ConditionStatus.UNKNOWN
    scheduled: ConditionStatus = ConditionStatus.UNKNOWN
    node: str = ""
    labels: dict[str, str] = field(default_factory=dict)


# =============================================================================
# Abstract Controller
# =============================================================================


class KubernetesController(ABC):
    """Abstract base class for cluster operations.

    All methods are async. Use ``run_sync()`` to call from synchronous code.

    Example:
        from chectl.infra.k8s import Kr8sController, run_sync

        controller = Kr8sController()
        pods = run_sync(controller.list_pods("app=che", "che"))
    """

    # =========================================================================
    # Cluster
    # =========================================================================

    @abstractmethod
    async def check_api(self) -> None:
        """Verify that the cluster API answers.

        Raises:
            ClusterConnectionError: If the API is unreachable or rejects us
        """
        ...

    @abstractmethod
    async def is_openshift(self) -> bool:
        """Check whether the cluster serves the OpenShift API groups.

        Returns:
            True if ``apps.openshift.io`` and ``route.openshift.io`` exist
        """
        ...

    @abstractmethod
    async def get_current_context(self) -> str:
        """Get the current kubeconfig context name.

        Returns:
            Context name, or "unknown" if detection fails
        """
        ...

    # =========================================================================
    # Namespaces
    # =========================================================================

    @abstractmethod
    async def namespace_exists(self, namespace: str) -> bool:
        """Check if a namespace exists."""
        ...

    @abstractmethod
    async def create_namespace(self, namespace: str) -> None:
        """Create a namespace if it does not exist yet."""
        ...

    # =========================================================================
    # Resources
    # =========================================================================

    @abstractmethod
    async def get_resource(
        self,
        kind: ResourceKind,
        name: str,
        namespace: str,
    ) -> dict[str, Any] | None:
        """Fetch a namespaced resource.

        Args:
            kind: Resource kind
            name: Resource name
            namespace: Kubernetes namespace

        Returns:
            The raw resource object, or None if it does not exist

        Raises:
            ClusterAPIError: On transport or permission failures
        """
        ...

    async def resource_exists(
        self,
        kind: ResourceKind,
        name: str,
        namespace: str,
    ) -> bool:
        """Check if a namespaced resource exists."""
        return await self.get_resource(kind, name, namespace) is not None

    @abstractmethod
    async def scale(
        self,
        kind: ResourceKind,
        name: str,
        namespace: str,
        replicas: int,
    ) -> None:
        """Scale a Deployment or DeploymentConfig.

        Raises:
            ClusterAPIError: If the resource is missing or the call fails
        """
        ...

    @abstractmethod
    async def delete_resource(
        self,
        kind: ResourceKind,
        name: str,
        namespace: str,
    ) -> bool:
        """Delete a resource by name.

        Returns:
            True if the resource existed and was deleted, False if absent
        """
        ...

    @abstractmethod
    async def delete_all_of_kind(self, kind: ResourceKind, namespace: str) -> int:
        """Delete every resource of a kind in a namespace.

        Returns:
            Number of deleted resources
        """
        ...

    # =========================================================================
    # Pods
    # =========================================================================

    @abstractmethod
    async def list_pods(self, selector: str, namespace: str) -> list[PodInfo]:
        """List pods matching a label selector.

        Args:
            selector: Label selector (e.g. "app=che,component=che")
            namespace: Kubernetes namespace

        Returns:
            Matching pods, empty if none
        """
        ...
