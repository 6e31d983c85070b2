"""HTTP client for the Che server control surface.

Covers the handful of endpoints the lifecycle workflows need: public URL
resolution (Route on OpenShift, Ingress elsewhere), system state, the
authentication probe and the graceful shutdown handshake.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

import httpx
from loguru import logger

from chectl.errors import ServerShutdownError, ServerStatusError
from chectl.infra.constants import DEFAULT_CONSTANTS, DEFAULT_TIMEOUTS, CheConstants
from chectl.infra.k8s.controller import KubernetesController, ResourceKind
from chectl.utils.polling import PollTimeout, poll_until

DEFAULT_REQUEST_TIMEOUT = httpx.Timeout(10.0, connect=5.0)

TLS_TERMINATIONS = ("edge", "passthrough", "reencrypt")


class CheServerStatus(StrEnum):
    """Values of ``status`` returned by ``/api/system/state``."""

    RUNNING = "RUNNING"
    PREPARING_TO_SHUTDOWN = "PREPARING_TO_SHUTDOWN"
    READY_TO_SHUTDOWN = "READY_TO_SHUTDOWN"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: str | None) -> CheServerStatus:
        try:
            return cls(value or "UNKNOWN")
        except ValueError:
            return cls.UNKNOWN


class CheServerClient:
    """Async client for the Che server REST API.

    A new ``httpx.AsyncClient`` is opened per request; pass ``transport`` to
    route requests through a custom (or mock) transport.
    """

    def __init__(
        self,
        controller: KubernetesController,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        verify: bool = True,
        request_timeout: httpx.Timeout = DEFAULT_REQUEST_TIMEOUT,
        poll_interval: float = DEFAULT_TIMEOUTS.POLL_INTERVAL,
        constants: CheConstants | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            controller: Cluster transport, used to resolve the public URL
            transport: Optional httpx transport
            verify: Whether to verify TLS certificates
            request_timeout: Per-request timeout
            poll_interval: Delay between status polls
            constants: Optional resource names
        """
        self.controller = controller
        self.constants = constants or DEFAULT_CONSTANTS
        self._transport = transport
        self._verify = verify
        self._request_timeout = request_timeout
        self._poll_interval = poll_interval

    async def _request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        async with httpx.AsyncClient(
            transport=self._transport,
            verify=self._verify,
            timeout=self._request_timeout,
        ) as client:
            return await client.request(method, url, headers=headers, params=params)

    # =========================================================================
    # URL Resolution
    # =========================================================================

    async def resolve_public_url(
        self,
        namespace: str,
        *,
        is_openshift: bool | None = None,
    ) -> str:
        """Resolve the externally reachable Che URL.

        Args:
            namespace: Namespace where Che is deployed
            is_openshift: Cluster flavor, detected when not given

        Returns:
            URL such as ``https://che-che.apps.example.com``

        Raises:
            ServerStatusError: If neither the route nor the ingress exists
        """
        if is_openshift is None:
            is_openshift = await self.controller.is_openshift()

        if is_openshift:
            route = await self.controller.get_resource(
                ResourceKind.ROUTE, self.constants.CHE_ROUTE_NAME, namespace
            )
            if route is None:
                raise ServerStatusError(
                    f'No route "{self.constants.CHE_ROUTE_NAME}" in namespace "{namespace}"'
                )
            return self._route_url(route)

        ingress = await self.controller.get_resource(
            ResourceKind.INGRESS, self.constants.CHE_INGRESS_NAME, namespace
        )
        if ingress is None:
            raise ServerStatusError(
                f'No ingress "{self.constants.CHE_INGRESS_NAME}" in namespace "{namespace}"'
            )
        return self._ingress_url(ingress)

    @staticmethod
    def _route_url(route: dict[str, Any]) -> str:
        spec = route.get("spec", {})
        termination = (spec.get("tls") or {}).get("termination", "")
        scheme = "https" if termination in TLS_TERMINATIONS else "http"
        return f"{scheme}://{spec.get('host', '')}"

    @staticmethod
    def _ingress_url(ingress: dict[str, Any]) -> str:
        spec = ingress.get("spec", {})
        rules = spec.get("rules") or [{}]
        host = rules[0].get("host", "")
        if not host:
            raise ServerStatusError("Che ingress does not declare a host")
        scheme = "https" if spec.get("tls") else "http"
        return f"{scheme}://{host}"

    # =========================================================================
    # Status
    # =========================================================================

    async def get_status(self, url: str) -> CheServerStatus:
        """Read the Che server system state.

        Raises:
            ServerStatusError: If the endpoint cannot be read
        """
        endpoint = f"{url}/api/system/state"
        try:
            response = await self._request("GET", endpoint)
            response.raise_for_status()
            status = CheServerStatus.parse(response.json().get("status"))
        except (httpx.HTTPError, ValueError) as e:
            raise ServerStatusError(
                f"Failed to read Che server status (URL: {url})", details=str(e)
            ) from e
        logger.debug(f"Che server status at {url}: {status}")
        return status

    async def is_auth_enabled(self, url: str) -> bool:
        """Check whether the server runs with Keycloak authentication.

        A 404 or 503 from the Keycloak settings endpoint means single-user.
        """
        endpoint = f"{url}/api/keycloak/settings"
        try:
            response = await self._request("GET", endpoint)
        except httpx.HTTPError as e:
            raise ServerStatusError(
                f"Failed to query Che authentication settings (URL: {url})",
                details=str(e),
            ) from e
        if response.status_code in (404, 503):
            return False
        if response.status_code != 200:
            raise ServerStatusError(
                f"Unexpected response {response.status_code} from {endpoint}"
            )
        return bool(response.content)

    async def wait_until_server_ready(
        self,
        url: str,
        *,
        timeout: float = DEFAULT_TIMEOUTS.SERVER_BOOT,
    ) -> None:
        """Poll the system state endpoint until it answers 200.

        Raises:
            ServerStatusError: If the server does not answer within ``timeout``
        """

        async def _answer() -> int:
            response = await self._request("GET", f"{url}/api/system/state")
            return response.status_code

        try:
            await poll_until(
                _answer,
                lambda code: code == 200,
                timeout=timeout,
                interval=self._poll_interval,
                description=f"Che server at {url}",
                transient=(httpx.HTTPError,),
            )
        except PollTimeout as e:
            raise ServerStatusError(
                f"Che server at {url} did not become ready within {timeout:g}s",
                details=e.last_observed,
            ) from e

    # =========================================================================
    # Shutdown
    # =========================================================================

    async def request_shutdown(self, url: str, access_token: str | None = None) -> None:
        """Ask the server to stop accepting work and prepare for shutdown.

        Raises:
            ServerShutdownError: If the server refuses the request
        """
        headers: dict[str, str] = {}
        if access_token:
            if not access_token.lower().startswith("bearer "):
                access_token = f"Bearer {access_token}"
            headers["Authorization"] = access_token

        try:
            response = await self._request(
                "POST",
                f"{url}/api/system/stop",
                headers=headers,
                params={"shutdown": "true"},
            )
        except httpx.HTTPError as e:
            raise ServerShutdownError(
                f"Failed to request Che server shutdown (URL: {url})", details=str(e)
            ) from e

        if response.status_code != 204:
            raise ServerShutdownError(
                "Failed to request Che server shutdown",
                details=f"{response.status_code} {response.text}".strip(),
            )
        logger.info(f"Shutdown requested for Che server at {url}")

    async def wait_until_ready_to_shutdown(
        self,
        url: str,
        *,
        timeout: float = DEFAULT_TIMEOUTS.SHUTDOWN,
    ) -> None:
        """Poll the system state until it reports READY_TO_SHUTDOWN.

        Raises:
            ServerShutdownError: If the state is not reached within ``timeout``
        """
        try:
            await poll_until(
                lambda: self.get_status(url),
                lambda status: status == CheServerStatus.READY_TO_SHUTDOWN,
                timeout=timeout,
                interval=self._poll_interval,
                description=f"Che server at {url} to be ready to shutdown",
                transient=(ServerStatusError,),
            )
        except PollTimeout as e:
            raise ServerShutdownError(
                f"Che server did not become ready to shutdown within {timeout:g}s",
                details=e.last_observed,
            ) from e
