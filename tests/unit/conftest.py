"""Shared fixtures: an in-memory cluster and a stub Che server."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from chectl.config import LifecycleConfig, Platform, WaitTimeouts
from chectl.errors import ClusterAPIError, ClusterConnectionError
from chectl.infra.che.client import CheServerClient
from chectl.infra.constants import DEFAULT_CONSTANTS
from chectl.infra.k8s.controller import (
    ConditionStatus,
    KubernetesController,
    PodInfo,
    PodPhase,
    ResourceKind,
)

NAMESPACE = "che"


def make_pod(
    name: str = "che-1",
    phase: PodPhase = PodPhase.RUNNING,
    ready: ConditionStatus = ConditionStatus.TRUE,
    scheduled: ConditionStatus = ConditionStatus.TRUE,
) -> PodInfo:
    return PodInfo(name=name, phase=phase, ready=ready, scheduled=scheduled)


class FakeController(KubernetesController):
    """In-memory cluster.

    ``calls`` records every query and mutation in order. ``pod_scripts``
    replays a list of pod sets per selector (the last one repeats).
    Scaling a component registered with ``add_component`` creates a ready
    pod (replicas=1) or removes its pods (replicas=0).
    """

    def __init__(self, *, openshift: bool = False, context: str = "minikube") -> None:
        self.openshift = openshift
        self.context = context
        self.namespaces: set[str] = set()
        self.resources: dict[tuple[ResourceKind, str, str], dict[str, Any]] = {}
        self.pods: dict[str, list[PodInfo]] = {}
        self.pod_scripts: dict[str, list[list[PodInfo]]] = {}
        self.selectors: dict[str, str] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.api_error: Exception | None = None
        self.scale_errors: dict[str, Exception] = {}
        self.list_pods_failures = 0
        self.list_pods_error: Exception | None = None

    # Test helpers

    def add_resource(
        self,
        kind: ResourceKind,
        name: str,
        namespace: str = NAMESPACE,
        body: dict[str, Any] | None = None,
    ) -> None:
        self.resources[(kind, namespace, name)] = body or {"metadata": {"name": name}}

    def add_component(
        self,
        name: str,
        selector: str,
        *,
        kind: ResourceKind = ResourceKind.DEPLOYMENT,
        pods: list[PodInfo] | None = None,
        namespace: str = NAMESPACE,
    ) -> None:
        self.add_resource(kind, name, namespace)
        self.selectors[name] = selector
        self.pods[selector] = list(pods or [])

    def calls_of(self, action: str) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0] == action]

    def index_of(self, call: tuple[Any, ...], *, last: bool = False) -> int:
        indexes = [i for i, c in enumerate(self.calls) if c == call]
        return indexes[-1] if last else indexes[0]

    # KubernetesController

    async def check_api(self) -> None:
        self.calls.append(("check_api",))
        if self.api_error is not None:
            raise self.api_error

    async def is_openshift(self) -> bool:
        return self.openshift

    async def get_current_context(self) -> str:
        return self.context

    async def namespace_exists(self, namespace: str) -> bool:
        return namespace in self.namespaces

    async def create_namespace(self, namespace: str) -> None:
        self.namespaces.add(namespace)

    async def get_resource(
        self, kind: ResourceKind, name: str, namespace: str
    ) -> dict[str, Any] | None:
        self.calls.append(("get", kind, name))
        return self.resources.get((kind, namespace, name))

    async def scale(self, kind: ResourceKind, name: str, namespace: str, replicas: int) -> None:
        self.calls.append(("scale", name, replicas))
        if name in self.scale_errors:
            raise self.scale_errors[name]
        if (kind, namespace, name) not in self.resources:
            raise ClusterAPIError(f"{kind} {name} not found", kind=kind, name=name)
        selector = self.selectors.get(name)
        if selector is not None:
            self.pods[selector] = [make_pod(f"{name}-1")] if replicas else []

    async def delete_resource(self, kind: ResourceKind, name: str, namespace: str) -> bool:
        self.calls.append(("delete", kind, name))
        return self.resources.pop((kind, namespace, name), None) is not None

    async def delete_all_of_kind(self, kind: ResourceKind, namespace: str) -> int:
        self.calls.append(("delete_all", kind))
        keys = [key for key in self.resources if key[0] == kind and key[1] == namespace]
        for key in keys:
            del self.resources[key]
        return len(keys)

    async def list_pods(self, selector: str, namespace: str) -> list[PodInfo]:
        self.calls.append(("list_pods", selector))
        if self.list_pods_error is not None:
            raise self.list_pods_error
        if self.list_pods_failures:
            self.list_pods_failures -= 1
            raise ClusterConnectionError("connection reset by peer")
        script = self.pod_scripts.get(selector)
        if script:
            return list(script.pop(0) if len(script) > 1 else script[0])
        return list(self.pods.get(selector, []))


class CheServerStub:
    """Answers the Che REST endpoints used by the workflows.

    A successful stop request switches the status to READY_TO_SHUTDOWN.
    """

    def __init__(self) -> None:
        self.status = "RUNNING"
        self.auth_enabled = False
        self.stop_status_code = 204
        self.requests: list[httpx.Request] = []

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/api/system/state":
            return httpx.Response(200, json={"status": self.status})
        if path == "/api/keycloak/settings":
            if not self.auth_enabled:
                return httpx.Response(404)
            return httpx.Response(200, json={"che.keycloak.realm": "che"})
        if path == "/api/system/stop" and request.method == "POST":
            if self.stop_status_code == 204:
                self.status = "READY_TO_SHUTDOWN"
            return httpx.Response(self.stop_status_code)
        return httpx.Response(404, content=json.dumps({"message": "not found"}))

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]


@pytest.fixture
def pod() -> Callable[..., PodInfo]:
    """Pod factory."""
    return make_pod


@pytest.fixture
def controller() -> FakeController:
    return FakeController()


@pytest.fixture
def fast_timeouts() -> WaitTimeouts:
    return WaitTimeouts(
        pod_wait=0.2,
        image_pull=0.2,
        pod_ready=0.2,
        pod_deletion=0.2,
        server_boot=0.2,
        shutdown=0.2,
        poll_interval=0.01,
    )


@pytest.fixture
def config(fast_timeouts: WaitTimeouts, tmp_path: Path) -> LifecycleConfig:
    return LifecycleConfig(
        namespace=NAMESPACE,
        platform=Platform.K8S,
        domain="192.168.99.100.nip.io",
        templates=tmp_path,
        timeouts=fast_timeouts,
    )


@pytest.fixture
def che_server() -> CheServerStub:
    return CheServerStub()


@pytest.fixture
def che_client(controller: FakeController, che_server: CheServerStub) -> CheServerClient:
    return CheServerClient(
        controller,
        transport=httpx.MockTransport(che_server.handle),
        poll_interval=0.01,
    )


@pytest.fixture
def ingress(controller: FakeController) -> str:
    """Expose Che through the ingress; return the expected URL."""
    controller.add_resource(
        ResourceKind.INGRESS,
        DEFAULT_CONSTANTS.CHE_INGRESS_NAME,
        body={"spec": {"rules": [{"host": "che-che.192.168.99.100.nip.io"}]}},
    )
    return "http://che-che.192.168.99.100.nip.io"


@pytest.fixture
def route(controller: FakeController) -> str:
    """Expose Che through an edge-terminated route; return the expected URL."""
    controller.add_resource(
        ResourceKind.ROUTE,
        DEFAULT_CONSTANTS.CHE_ROUTE_NAME,
        body={"spec": {"host": "che-che.apps.example.com", "tls": {"termination": "edge"}}},
    )
    return "https://che-che.apps.example.com"
