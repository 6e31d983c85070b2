"""Error taxonomy for lifecycle workflows.

Every fatal condition raised by the orchestrator is a ``DeploymentError`` so
that the CLI can render it uniformly (message + optional details panel).
"Not found" outcomes are never exceptions: the transport and the probe report
them as ``None`` / ``False``.
"""

from __future__ import annotations


class DeploymentError(Exception):
    """Raised when a lifecycle operation fails."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


# =============================================================================
# Connectivity
# =============================================================================


class ClusterConnectionError(DeploymentError):
    """The cluster API is unreachable or rejected our credentials."""


class ClusterAPIError(ClusterConnectionError):
    """A single cluster API call failed for a reason other than "not found"."""

    def __init__(
        self,
        message: str,
        *,
        kind: str | None = None,
        name: str | None = None,
        namespace: str | None = None,
        details: str | None = None,
    ):
        self.kind = kind
        self.name = name
        self.namespace = namespace
        super().__init__(message, details=details)


class ClusterPermissionError(ClusterAPIError):
    """The cluster API rejected our credentials (401/403)."""


# =============================================================================
# Validation
# =============================================================================


class ConfigurationError(DeploymentError):
    """The lifecycle configuration is missing or invalid."""


class CompatibilityError(DeploymentError):
    """The requested platform/installer/flag combination is not supported."""


class ResourceKindMismatchError(DeploymentError):
    """Components of one deployment resolved to different resource kinds."""


class NotDeployedError(DeploymentError):
    """The workflow requires a deployment that does not exist."""


# =============================================================================
# Runtime
# =============================================================================


class WaitTimeoutError(DeploymentError):
    """A bounded wait on cluster state exceeded its deadline."""

    def __init__(
        self,
        description: str,
        *,
        selector: str,
        namespace: str,
        timeout: float,
        last_observed: str | None = None,
    ):
        self.description = description
        self.selector = selector
        self.namespace = namespace
        self.timeout = timeout
        self.last_observed = last_observed
        details = f"selector: {selector}\nnamespace: {namespace}\ntimeout: {timeout:g}s"
        if last_observed:
            details += f"\nlast observed: {last_observed}"
        super().__init__(
            f"Timed out after {timeout:g}s waiting for {description} "
            f'(selector "{selector}" in namespace "{namespace}")',
            details=details,
        )


class ComponentScaleError(DeploymentError):
    """Scaling one component failed; earlier components are left as they are."""

    def __init__(
        self,
        component: str,
        *,
        resource_kind: str,
        namespace: str,
        replicas: int,
        cause: Exception,
    ):
        self.component = component
        self.resource_kind = resource_kind
        self.namespace = namespace
        self.replicas = replicas
        super().__init__(
            f'Failed to scale {resource_kind} "{component}" to {replicas} '
            f'in namespace "{namespace}"',
            details=str(cause),
        )


class CoordinationError(DeploymentError):
    """A shutdown precondition with the Che server is not satisfied."""


class ServerStatusError(DeploymentError):
    """The Che server did not answer its status endpoint as expected."""


class ServerShutdownError(DeploymentError):
    """The Che server refused or failed the graceful shutdown request."""


class InstallerError(DeploymentError):
    """An installer back-end failed to run to completion."""


class PlatformError(DeploymentError):
    """A platform preflight check failed (tool missing, cluster not running)."""
