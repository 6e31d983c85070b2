"""Tests for platform preflight checklists."""

from unittest.mock import MagicMock

import pytest

from chectl.config import Platform
from chectl.errors import PlatformError
from chectl.infra.shell import CommandResult
from chectl.orchestration.context import ExecutionContext
from chectl.orchestration.platforms import PlatformPreflight
from chectl.orchestration.probe import ClusterProbe
from chectl.orchestration.tasks import TaskRunner

from conftest import FakeController


@pytest.fixture
def shell() -> MagicMock:
    shell = MagicMock()
    shell.is_available.return_value = True
    shell.minikube.is_running.return_value = True
    shell.minikube.addon_enabled.return_value = True
    shell.minikube.ip.return_value = "192.168.99.100"
    shell.minishift.is_running.return_value = True
    shell.microk8s.is_running.return_value = True
    shell.oc.status.return_value = CommandResult(success=True)
    return shell


@pytest.fixture
def preflight(controller: FakeController, shell: MagicMock) -> PlatformPreflight:
    return PlatformPreflight(ClusterProbe(controller), shell)


async def run(preflight: PlatformPreflight, platform: Platform, **ctx_fields) -> ExecutionContext:
    return await TaskRunner().run(preflight.tasks(platform), ExecutionContext(**ctx_fields))


class TestEveryPlatform:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("platform", list(Platform))
    async def test_ends_with_api_check(
        self, controller: FakeController, preflight: PlatformPreflight, platform: Platform
    ) -> None:
        controller.context = "docker-desktop"

        await run(preflight, platform, domain="example.nip.io")

        assert controller.calls[-1] == ("check_api",)


class TestMinikube:
    @pytest.mark.asyncio
    async def test_derives_domain_from_ip(self, preflight: PlatformPreflight) -> None:
        ctx = await run(preflight, Platform.MINIKUBE)

        assert ctx.domain == "192.168.99.100.nip.io"

    @pytest.mark.asyncio
    async def test_explicit_domain_kept(
        self, preflight: PlatformPreflight, shell: MagicMock
    ) -> None:
        ctx = await run(preflight, Platform.MINIKUBE, domain="che.local")

        assert ctx.domain == "che.local"
        shell.minikube.ip.assert_not_called()

    @pytest.mark.asyncio
    async def test_enables_ingress_addon(
        self, preflight: PlatformPreflight, shell: MagicMock
    ) -> None:
        shell.minikube.addon_enabled.return_value = False
        shell.minikube.enable_addon.return_value = CommandResult(success=True)

        await run(preflight, Platform.MINIKUBE)

        shell.minikube.enable_addon.assert_called_once_with("ingress")

    @pytest.mark.asyncio
    async def test_not_running_aborts_before_the_api_check(
        self, controller: FakeController, preflight: PlatformPreflight, shell: MagicMock
    ) -> None:
        shell.minikube.is_running.return_value = False

        with pytest.raises(PlatformError, match="Minikube is not running"):
            await run(preflight, Platform.MINIKUBE)

        assert controller.calls == []

    @pytest.mark.asyncio
    async def test_missing_tool(self, preflight: PlatformPreflight, shell: MagicMock) -> None:
        shell.is_available.return_value = False

        with pytest.raises(PlatformError, match="minikube is not installed"):
            await run(preflight, Platform.MINIKUBE)


class TestOtherPlatforms:
    @pytest.mark.asyncio
    async def test_k8s_requires_a_domain(self, preflight: PlatformPreflight) -> None:
        with pytest.raises(PlatformError, match="domain is required"):
            await run(preflight, Platform.K8S)

    @pytest.mark.asyncio
    async def test_openshift_oc_failure(
        self, preflight: PlatformPreflight, shell: MagicMock
    ) -> None:
        shell.oc.status.return_value = CommandResult(success=False, stderr="not logged in")

        with pytest.raises(PlatformError) as excinfo:
            await run(preflight, Platform.OPENSHIFT)

        assert excinfo.value.details == "not logged in"

    @pytest.mark.asyncio
    async def test_openshift_flavor_recorded(self, shell: MagicMock) -> None:
        controller = FakeController(openshift=True)
        preflight = PlatformPreflight(ClusterProbe(controller), shell)

        ctx = await run(preflight, Platform.OPENSHIFT)

        assert ctx.is_openshift is True

    @pytest.mark.asyncio
    async def test_docker_desktop_context_checked(
        self, controller: FakeController, preflight: PlatformPreflight
    ) -> None:
        controller.context = "minikube"

        with pytest.raises(PlatformError, match="not Docker Desktop"):
            await run(preflight, Platform.DOCKER_DESKTOP, domain="example.nip.io")

    @pytest.mark.asyncio
    async def test_minishift_not_running(
        self, preflight: PlatformPreflight, shell: MagicMock
    ) -> None:
        shell.minishift.is_running.return_value = False

        with pytest.raises(PlatformError, match="Minishift is not running"):
            await run(preflight, Platform.MINISHIFT)
