"""Tests for the cluster probe."""

import pytest

from chectl.errors import ClusterConnectionError, ResourceKindMismatchError
from chectl.infra.k8s.controller import ConditionStatus, PodPhase, ResourceKind
from chectl.orchestration.components import build_component_specs
from chectl.orchestration.context import CheComponent, ExecutionContext
from chectl.orchestration.probe import ClusterProbe
from chectl.orchestration.tasks import TaskRunner

from conftest import NAMESPACE, FakeController, make_pod


@pytest.fixture
def probe(controller: FakeController) -> ClusterProbe:
    return ClusterProbe(controller)


class TestComponentExists:
    @pytest.mark.asyncio
    async def test_deploymentconfig_checked_first_on_openshift(
        self, controller: FakeController, probe: ClusterProbe
    ) -> None:
        controller.add_resource(ResourceKind.DEPLOYMENT_CONFIG, "che")
        controller.add_resource(ResourceKind.DEPLOYMENT, "che")

        status = await probe.component_exists("che", NAMESPACE, is_openshift=True)

        assert status.is_deployed
        assert status.resource_kind == ResourceKind.DEPLOYMENT_CONFIG
        assert ("get", ResourceKind.DEPLOYMENT, "che") not in controller.calls

    @pytest.mark.asyncio
    async def test_falls_back_to_deployment_on_openshift(
        self, controller: FakeController, probe: ClusterProbe
    ) -> None:
        controller.add_resource(ResourceKind.DEPLOYMENT, "che")

        status = await probe.component_exists("che", NAMESPACE, is_openshift=True)

        assert status.resource_kind == ResourceKind.DEPLOYMENT
        assert controller.calls == [
            ("get", ResourceKind.DEPLOYMENT_CONFIG, "che"),
            ("get", ResourceKind.DEPLOYMENT, "che"),
        ]

    @pytest.mark.asyncio
    async def test_deploymentconfig_never_queried_on_kubernetes(
        self, controller: FakeController, probe: ClusterProbe
    ) -> None:
        controller.add_resource(ResourceKind.DEPLOYMENT_CONFIG, "che")

        status = await probe.component_exists("che", NAMESPACE, is_openshift=False)

        assert not status.is_deployed
        assert controller.calls == [("get", ResourceKind.DEPLOYMENT, "che")]

    @pytest.mark.asyncio
    async def test_not_found_is_not_an_error(self, probe: ClusterProbe) -> None:
        status = await probe.component_exists("che", NAMESPACE, is_openshift=True)

        assert not status.is_deployed
        assert status.resource_kind is None

    @pytest.mark.asyncio
    async def test_api_failure_propagates(
        self, controller: FakeController, probe: ClusterProbe
    ) -> None:
        async def broken(*args, **kwargs):
            raise ClusterConnectionError("Forbidden")

        controller.get_resource = broken

        with pytest.raises(ClusterConnectionError, match="Forbidden"):
            await probe.component_exists("che", NAMESPACE, is_openshift=False)


class TestReadyConditionStatus:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("readiness", "expected"),
        [
            ([], ConditionStatus.UNKNOWN),
            ([ConditionStatus.TRUE], ConditionStatus.TRUE),
            ([ConditionStatus.FALSE, ConditionStatus.TRUE], ConditionStatus.TRUE),
            ([ConditionStatus.FALSE], ConditionStatus.FALSE),
            ([ConditionStatus.FALSE, ConditionStatus.UNKNOWN], ConditionStatus.UNKNOWN),
        ],
    )
    async def test_aggregation(
        self,
        controller: FakeController,
        probe: ClusterProbe,
        readiness: list[ConditionStatus],
        expected: ConditionStatus,
    ) -> None:
        controller.pods["app=che"] = [
            make_pod(f"che-{i}", ready=ready) for i, ready in enumerate(readiness)
        ]

        assert await probe.ready_condition_status("app=che", NAMESPACE) == expected

    @pytest.mark.asyncio
    async def test_any_pod_running_looks_past_the_first_pod(
        self, controller: FakeController, probe: ClusterProbe
    ) -> None:
        controller.pods["app=che"] = [
            make_pod("che-2", phase=PodPhase.PENDING),
            make_pod("che-1", phase=PodPhase.RUNNING),
        ]
        controller.pods["app=pg"] = [make_pod(phase=PodPhase.PENDING)]

        assert await probe.any_pod_running("app=che", NAMESPACE) is True
        assert await probe.any_pod_running("app=pg", NAMESPACE) is False
        assert await probe.any_pod_running("app=none", NAMESPACE) is False


class TestProbeComponents:
    @pytest.mark.asyncio
    async def test_populates_status_and_running_state(
        self, controller: FakeController, probe: ClusterProbe
    ) -> None:
        specs = build_component_specs("che")
        controller.add_component("che", specs[CheComponent.CHE].selector, pods=[make_pod()])
        controller.add_component("postgres", specs[CheComponent.POSTGRES].selector)
        ctx = ExecutionContext()

        await probe.probe_components(ctx, specs, NAMESPACE)

        assert ctx.status.che.is_deployed and ctx.status.che.is_ready
        assert ctx.status.postgres.is_deployed and not ctx.status.postgres.is_ready
        assert not ctx.status.keycloak.is_deployed
        assert ctx.is_stopped is False

    @pytest.mark.asyncio
    async def test_deployed_without_pods_is_stopped(
        self, controller: FakeController, probe: ClusterProbe
    ) -> None:
        specs = build_component_specs("che")
        controller.add_component("che", specs[CheComponent.CHE].selector)
        ctx = ExecutionContext()

        await probe.probe_components(ctx, specs, NAMESPACE)

        assert ctx.is_stopped is True

    @pytest.mark.asyncio
    async def test_mixed_resource_kinds_rejected(self) -> None:
        controller = FakeController(openshift=True)
        probe = ClusterProbe(controller)
        specs = build_component_specs("che")
        controller.add_component(
            "che", specs[CheComponent.CHE].selector, kind=ResourceKind.DEPLOYMENT_CONFIG
        )
        controller.add_component("keycloak", specs[CheComponent.KEYCLOAK].selector)
        ctx = ExecutionContext(is_openshift=True)

        with pytest.raises(ResourceKindMismatchError) as excinfo:
            await probe.probe_components(ctx, specs, NAMESPACE)

        assert "keycloak is a Deployment" in excinfo.value.details


class TestProbeTasks:
    @pytest.mark.asyncio
    async def test_api_check_records_flavor(self) -> None:
        controller = FakeController(openshift=True)

        ctx = await TaskRunner().run(ClusterProbe(controller).api_check_tasks(), ExecutionContext())

        assert ctx.is_openshift is True
        assert controller.calls == [("check_api",)]

    @pytest.mark.asyncio
    async def test_api_check_failure_aborts(self, controller: FakeController) -> None:
        controller.api_error = ClusterConnectionError("connection refused")

        with pytest.raises(ClusterConnectionError):
            await TaskRunner().run(ClusterProbe(controller).api_check_tasks(), ExecutionContext())

    @pytest.mark.asyncio
    async def test_detection_marks_already_running(
        self, controller: FakeController, probe: ClusterProbe
    ) -> None:
        specs = build_component_specs("che")
        controller.add_component("che", specs[CheComponent.CHE].selector, pods=[make_pod()])

        ctx = await TaskRunner().run(probe.detection_tasks(specs, NAMESPACE), ExecutionContext())

        assert ctx.already_running is True
        assert ctx.needs_recovery is False

    @pytest.mark.asyncio
    async def test_detection_of_missing_deployment(self, probe: ClusterProbe) -> None:
        specs = build_component_specs("che")

        ctx = await TaskRunner().run(probe.detection_tasks(specs, NAMESPACE), ExecutionContext())

        assert ctx.fresh_install is True
        assert ctx.already_running is False
