"""Kr8s-based implementation of KubernetesController.

Uses the kr8s library for native async Kubernetes operations. OpenShift and
Che custom kinds are declared with ``new_class`` so they go through the same
code paths as the built-in kinds.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import httpx
import kr8s
from kr8s.asyncio.objects import (
    ConfigMap,
    Deployment,
    Ingress,
    Namespace,
    PersistentVolumeClaim,
    Pod,
    Role,
    RoleBinding,
    Service,
    ServiceAccount,
    new_class,
)
from loguru import logger

from chectl.errors import (
    ClusterAPIError,
    ClusterConnectionError,
    ClusterPermissionError,
)

from .controller import (
    ConditionStatus,
    KubernetesController,
    PodInfo,
    PodPhase,
    ResourceKind,
)

DeploymentConfig = new_class(
    kind="DeploymentConfig",
    version="apps.openshift.io/v1",
    namespaced=True,
    scalable=True,
)
Route = new_class(kind="Route", version="route.openshift.io/v1", namespaced=True)
CheCluster = new_class(kind="CheCluster", version="org.eclipse.che/v1", namespaced=True)

_KIND_CLASSES: dict[ResourceKind, Any] = {
    ResourceKind.DEPLOYMENT: Deployment,
    ResourceKind.DEPLOYMENT_CONFIG: DeploymentConfig,
    ResourceKind.SERVICE: Service,
    ResourceKind.INGRESS: Ingress,
    ResourceKind.ROUTE: Route,
    ResourceKind.CONFIG_MAP: ConfigMap,
    ResourceKind.ROLE: Role,
    ResourceKind.ROLE_BINDING: RoleBinding,
    ResourceKind.SERVICE_ACCOUNT: ServiceAccount,
    ResourceKind.PERSISTENT_VOLUME_CLAIM: PersistentVolumeClaim,
    ResourceKind.CHE_CLUSTER: CheCluster,
}

OPENSHIFT_API_GROUPS = ("apps.openshift.io", "route.openshift.io")


def _status_code(error: Exception) -> int | None:
    response = getattr(error, "response", None)
    return getattr(response, "status_code", None)


class Kr8sController(KubernetesController):
    """Kubernetes controller using the kr8s library.

    Note: The kr8s API client is NOT cached because it's tied to the event loop
    that was running when created. ``run_sync()`` creates a new loop per call.
    """

    def __init__(self, context: str | None = None) -> None:
        """Initialize the kr8s controller.

        Args:
            context: Optional kubeconfig context, defaults to the current one
        """
        self._context = context

    async def _get_api(self) -> Any:  # Returns kr8s._api.Api
        """Create a kr8s API client bound to the running event loop."""
        try:
            return await kr8s.asyncio.api(context=self._context)
        except Exception as e:
            raise ClusterConnectionError(
                "Failed to load Kubernetes client configuration",
                details=str(e),
            ) from e

    def _translate(
        self,
        error: Exception,
        action: str,
        *,
        kind: ResourceKind | None = None,
        name: str | None = None,
        namespace: str | None = None,
    ) -> ClusterConnectionError:
        """Map a kr8s/httpx failure to the orchestrator's error taxonomy."""
        target = f"{kind} {name}".strip() if kind else (name or "")
        if isinstance(error, httpx.TransportError):
            return ClusterConnectionError(
                f"Failed to connect to Kubernetes API while trying to {action}",
                details=str(error),
            )
        status = _status_code(error)
        if status in (401, 403):
            return ClusterPermissionError(
                f"Permission denied while trying to {action} {target}".strip(),
                kind=kind,
                name=name,
                namespace=namespace,
                details=str(error),
            )
        return ClusterAPIError(
            f"Kubernetes API call failed while trying to {action} {target}".strip(),
            kind=kind,
            name=name,
            namespace=namespace,
            details=str(error),
        )

    async def _find(
        self, kind: ResourceKind, name: str, namespace: str, api: Any
    ) -> Any | None:
        """Return the kr8s object named ``name`` or None."""
        cls = _KIND_CLASSES[kind]
        async for obj in cls.list(
            namespace=namespace,
            field_selector=f"metadata.name={name}",
            api=api,
        ):
            return obj
        return None

    async def _iterate(
        self, kind: ResourceKind, namespace: str, api: Any
    ) -> AsyncIterator[Any]:
        cls = _KIND_CLASSES[kind]
        async for obj in cls.list(namespace=namespace, api=api):
            yield obj

    # =========================================================================
    # Cluster
    # =========================================================================

    async def check_api(self) -> None:
        """Verify that the cluster API answers."""
        api = await self._get_api()
        try:
            version = await api.version()
        except Exception as e:
            raise self._translate(e, "read the cluster version") from e
        logger.debug(f"Kubernetes API reachable (version {version.get('gitVersion')})")

    async def is_openshift(self) -> bool:
        """Check whether the cluster serves the OpenShift API groups."""
        api = await self._get_api()
        try:
            versions = [version async for version in api.api_versions()]
        except Exception as e:
            raise self._translate(e, "list API versions") from e
        groups = {version.split("/")[0] for version in versions}
        return all(group in groups for group in OPENSHIFT_API_GROUPS)

    async def get_current_context(self) -> str:
        """Get the current kubeconfig context name."""
        api = await self._get_api()
        return api.auth.active_context or "unknown"

    # =========================================================================
    # Namespaces
    # =========================================================================

    async def namespace_exists(self, namespace: str) -> bool:
        """Check if a namespace exists."""
        api = await self._get_api()
        try:
            await Namespace.get(namespace, api=api)
            return True
        except kr8s.NotFoundError:
            return False
        except Exception as e:
            raise self._translate(e, "get namespace", name=namespace) from e

    async def create_namespace(self, namespace: str) -> None:
        """Create a namespace if it does not exist yet."""
        if await self.namespace_exists(namespace):
            return
        api = await self._get_api()
        try:
            ns = Namespace({"metadata": {"name": namespace}}, api=api)
            await ns.create()
        except Exception as e:
            raise self._translate(e, "create namespace", name=namespace) from e
        logger.info(f"Created namespace {namespace}")

    # =========================================================================
    # Resources
    # =========================================================================

    async def get_resource(
        self,
        kind: ResourceKind,
        name: str,
        namespace: str,
    ) -> dict[str, Any] | None:
        """Fetch a namespaced resource."""
        api = await self._get_api()
        try:
            obj = await self._find(kind, name, namespace, api)
        except kr8s.NotFoundError:
            return None
        except Exception as e:
            # A missing CRD (e.g. DeploymentConfig on plain Kubernetes) is
            # reported by the server as 404 for the whole collection.
            if _status_code(e) == 404:
                return None
            raise self._translate(
                e, "get", kind=kind, name=name, namespace=namespace
            ) from e
        logger.debug(
            f"{kind}/{name} in {namespace}: {'found' if obj is not None else 'absent'}"
        )
        return dict(obj.raw) if obj is not None else None

    async def scale(
        self,
        kind: ResourceKind,
        name: str,
        namespace: str,
        replicas: int,
    ) -> None:
        """Scale a Deployment or DeploymentConfig."""
        api = await self._get_api()
        try:
            obj = await self._find(kind, name, namespace, api)
            if obj is None:
                raise ClusterAPIError(
                    f'{kind} "{name}" not found in namespace "{namespace}"',
                    kind=kind,
                    name=name,
                    namespace=namespace,
                )
            await obj.scale(replicas)
        except ClusterAPIError:
            raise
        except Exception as e:
            raise self._translate(
                e, "scale", kind=kind, name=name, namespace=namespace
            ) from e
        logger.debug(f"Scaled {kind}/{name} in {namespace} to {replicas}")

    async def delete_resource(
        self,
        kind: ResourceKind,
        name: str,
        namespace: str,
    ) -> bool:
        """Delete a resource by name."""
        api = await self._get_api()
        try:
            obj = await self._find(kind, name, namespace, api)
            if obj is None:
                return False
            await obj.delete()
        except kr8s.NotFoundError:
            return False
        except Exception as e:
            if _status_code(e) == 404:
                return False
            raise self._translate(
                e, "delete", kind=kind, name=name, namespace=namespace
            ) from e
        logger.debug(f"Deleted {kind}/{name} in {namespace}")
        return True

    async def delete_all_of_kind(self, kind: ResourceKind, namespace: str) -> int:
        """Delete every resource of a kind in a namespace."""
        api = await self._get_api()
        deleted = 0
        try:
            async for obj in self._iterate(kind, namespace, api):
                try:
                    await obj.delete()
                except kr8s.NotFoundError:
                    continue
                deleted += 1
        except Exception as e:
            if _status_code(e) == 404:
                return deleted
            raise self._translate(
                e, "delete all", kind=kind, namespace=namespace
            ) from e
        logger.debug(f"Deleted {deleted} {kind} object(s) in {namespace}")
        return deleted

    # =========================================================================
    # Pods
    # =========================================================================

    async def list_pods(self, selector: str, namespace: str) -> list[PodInfo]:
        """List pods matching a label selector."""
        api = await self._get_api()
        try:
            return [
                self._pod_info(pod.raw)
                async for pod in Pod.list(
                    namespace=namespace, label_selector=selector, api=api
                )
            ]
        except Exception as e:
            raise self._translate(
                e, "list pods", name=selector, namespace=namespace
            ) from e

    @staticmethod
    def _pod_info(raw: dict[str, Any]) -> PodInfo:
        """Build a PodInfo from a raw pod object."""
        metadata = raw.get("metadata", {})
        spec = raw.get("spec", {})
        status = raw.get("status", {})

        conditions = {
            c.get("type"): c.get("status") for c in status.get("conditions", [])
        }

        return PodInfo(
            name=metadata.get("name", ""),
            phase=PodPhase.parse(status.get("phase")),
            ready=ConditionStatus.parse(conditions.get("Ready")),
            scheduled=ConditionStatus.parse(conditions.get("PodScheduled")),
            node=spec.get("nodeName", ""),
            labels=dict(metadata.get("labels", {})),
        )
