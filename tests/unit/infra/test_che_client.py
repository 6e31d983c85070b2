"""Tests for the Che server HTTP client."""

import httpx
import pytest

from chectl.errors import ServerShutdownError, ServerStatusError
from chectl.infra.che.client import CheServerClient, CheServerStatus
from chectl.infra.k8s.controller import ResourceKind

from conftest import NAMESPACE, CheServerStub, FakeController

URL = "http://che-che.192.168.99.100.nip.io"


def client_for(controller: FakeController, handler) -> CheServerClient:
    return CheServerClient(controller, transport=httpx.MockTransport(handler), poll_interval=0.01)


class TestResolvePublicUrl:
    @pytest.mark.asyncio
    async def test_ingress_on_kubernetes(self, che_client: CheServerClient, ingress: str) -> None:
        assert await che_client.resolve_public_url(NAMESPACE, is_openshift=False) == ingress

    @pytest.mark.asyncio
    async def test_tls_ingress_is_https(
        self, controller: FakeController, che_client: CheServerClient
    ) -> None:
        controller.add_resource(
            ResourceKind.INGRESS,
            "che-ingress",
            body={"spec": {"rules": [{"host": "che.example.com"}], "tls": [{"hosts": ["che.example.com"]}]}},
        )

        assert await che_client.resolve_public_url(NAMESPACE, is_openshift=False) == (
            "https://che.example.com"
        )

    @pytest.mark.asyncio
    async def test_route_on_openshift(self, che_client: CheServerClient, route: str) -> None:
        assert await che_client.resolve_public_url(NAMESPACE, is_openshift=True) == route

    @pytest.mark.asyncio
    async def test_plain_route_is_http(
        self, controller: FakeController, che_client: CheServerClient
    ) -> None:
        controller.add_resource(ResourceKind.ROUTE, "che", body={"spec": {"host": "che.apps"}})

        assert await che_client.resolve_public_url(NAMESPACE, is_openshift=True) == "http://che.apps"

    @pytest.mark.asyncio
    async def test_flavor_detected_when_not_given(self) -> None:
        controller = FakeController(openshift=True)
        controller.add_resource(
            ResourceKind.ROUTE,
            "che",
            body={"spec": {"host": "che-che.apps.example.com", "tls": {"termination": "edge"}}},
        )

        client = client_for(controller, CheServerStub().handle)

        assert await client.resolve_public_url(NAMESPACE) == "https://che-che.apps.example.com"

    @pytest.mark.asyncio
    async def test_missing_exposure(self, che_client: CheServerClient) -> None:
        with pytest.raises(ServerStatusError, match="No ingress"):
            await che_client.resolve_public_url(NAMESPACE, is_openshift=False)

        with pytest.raises(ServerStatusError, match="No route"):
            await che_client.resolve_public_url(NAMESPACE, is_openshift=True)


class TestStatus:
    @pytest.mark.asyncio
    async def test_get_status(self, che_client: CheServerClient, che_server: CheServerStub) -> None:
        che_server.status = "PREPARING_TO_SHUTDOWN"

        assert await che_client.get_status(URL) == CheServerStatus.PREPARING_TO_SHUTDOWN

    @pytest.mark.asyncio
    async def test_unknown_status_value(
        self, che_client: CheServerClient, che_server: CheServerStub
    ) -> None:
        che_server.status = "HIBERNATING"

        assert await che_client.get_status(URL) == CheServerStatus.UNKNOWN

    @pytest.mark.asyncio
    async def test_http_error_wrapped(self, controller: FakeController) -> None:
        client = client_for(controller, lambda request: httpx.Response(500))

        with pytest.raises(ServerStatusError, match="Failed to read Che server status"):
            await client.get_status(URL)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("code", "expected"), [(404, False), (503, False)])
    async def test_auth_disabled_codes(
        self, controller: FakeController, code: int, expected: bool
    ) -> None:
        client = client_for(controller, lambda request: httpx.Response(code))

        assert await client.is_auth_enabled(URL) is expected

    @pytest.mark.asyncio
    async def test_auth_enabled(self, che_client: CheServerClient, che_server: CheServerStub) -> None:
        che_server.auth_enabled = True

        assert await che_client.is_auth_enabled(URL) is True

    @pytest.mark.asyncio
    async def test_auth_unexpected_code(self, controller: FakeController) -> None:
        client = client_for(controller, lambda request: httpx.Response(401))

        with pytest.raises(ServerStatusError, match="Unexpected response 401"):
            await client.is_auth_enabled(URL)

    @pytest.mark.asyncio
    async def test_wait_until_server_ready_retries(self, controller: FakeController) -> None:
        answers = iter([502, 502, 200])
        client = client_for(controller, lambda request: httpx.Response(next(answers)))

        await client.wait_until_server_ready(URL, timeout=1)

    @pytest.mark.asyncio
    async def test_wait_until_server_ready_times_out(self, controller: FakeController) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = client_for(controller, refuse)

        with pytest.raises(ServerStatusError, match="did not become ready") as excinfo:
            await client.wait_until_server_ready(URL, timeout=0.05)

        assert "connection refused" in excinfo.value.details


class TestShutdown:
    @pytest.mark.asyncio
    async def test_request_shutdown(self, che_client: CheServerClient, che_server: CheServerStub) -> None:
        await che_client.request_shutdown(URL)

        (request,) = che_server.requests_to("/api/system/stop")
        assert request.method == "POST"
        assert request.url.params["shutdown"] == "true"
        assert "Authorization" not in request.headers

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", ["abc", "Bearer abc", "bearer abc"])
    async def test_token_gets_a_single_bearer_prefix(
        self, che_client: CheServerClient, che_server: CheServerStub, token: str
    ) -> None:
        await che_client.request_shutdown(URL, token)

        (request,) = che_server.requests_to("/api/system/stop")
        assert request.headers["Authorization"].lower() == "bearer abc"

    @pytest.mark.asyncio
    async def test_refused_shutdown(self, che_client: CheServerClient, che_server: CheServerStub) -> None:
        che_server.stop_status_code = 403

        with pytest.raises(ServerShutdownError) as excinfo:
            await che_client.request_shutdown(URL)

        assert excinfo.value.details.startswith("403")

    @pytest.mark.asyncio
    async def test_wait_until_ready_to_shutdown(
        self, che_client: CheServerClient, che_server: CheServerStub
    ) -> None:
        await che_client.request_shutdown(URL)

        await che_client.wait_until_ready_to_shutdown(URL, timeout=1)

    @pytest.mark.asyncio
    async def test_ready_to_shutdown_timeout(self, che_client: CheServerClient) -> None:
        with pytest.raises(ServerShutdownError, match="ready to shutdown"):
            await che_client.wait_until_ready_to_shutdown(URL, timeout=0.05)
