"""Lifecycle constants.

This module centralizes the resource names, label selectors and default
timeouts used across the probe, the waiter, the scale sequencer and the
installers.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CheConstants:
    """Names and selectors of the resources that make up a Che deployment.

    All attributes are class-level and immutable.
    """

    # Namespace / primary deployment
    DEFAULT_NAMESPACE: str = "che"
    DEFAULT_DEPLOYMENT_NAME: str = "che"

    # Che server selectors (the minishift addon labels pods with app=che only)
    CHE_SELECTOR: str = "app=che,component=che"
    CHE_ADDON_SELECTOR: str = "app=che"

    # Dependent components
    KEYCLOAK_DEPLOYMENT_NAME: str = "keycloak"
    KEYCLOAK_SELECTOR: str = "app=che,component=keycloak"
    POSTGRES_DEPLOYMENT_NAME: str = "postgres"
    POSTGRES_SELECTOR: str = "app=che,component=postgres"
    PLUGIN_REGISTRY_DEPLOYMENT_NAME: str = "plugin-registry"
    PLUGIN_REGISTRY_SELECTOR: str = "app=che,component=plugin-registry"
    DEVFILE_REGISTRY_DEPLOYMENT_NAME: str = "devfile-registry"
    DEVFILE_REGISTRY_SELECTOR: str = "app=che,component=devfile-registry"

    # Exposure
    CHE_INGRESS_NAME: str = "che-ingress"
    CHE_ROUTE_NAME: str = "che"

    # Installers
    HELM_RELEASE_NAME: str = "che"
    OPERATOR_NAME: str = "che-operator"
    OPERATOR_SELECTOR: str = "app=che-operator"
    CHE_CLUSTER_NAME: str = "eclipse-che"
    MINISHIFT_ADDON_NAME: str = "che"

    # Default images
    CHE_IMAGE: str = "eclipse/che-server:nightly"
    OPERATOR_IMAGE: str = "quay.io/eclipse/che-operator:nightly"

    # Cleanup targets for `server delete`
    CONFIG_MAPS: tuple[str, ...] = ("che", "che-operator")
    ROLE_BINDINGS: tuple[str, ...] = (
        "che",
        "che-operator",
        "che-workspace-exec",
        "che-workspace-view",
    )
    SERVICE_ACCOUNTS: tuple[str, ...] = ("che", "che-workspace")
    PVCS: tuple[str, ...] = ("postgres-data", "che-data-volume")

    # Docker Desktop context names (older releases used docker-for-desktop)
    DOCKER_DESKTOP_CONTEXTS: tuple[str, ...] = ("docker-desktop", "docker-for-desktop")


@dataclass(frozen=True)
class TimeoutDefaults:
    """Default bounds (seconds) for every polling wait."""

    POD_WAIT: float = 300.0
    IMAGE_PULL: float = 600.0
    POD_READY: float = 130.0
    POD_DELETION: float = 120.0
    SERVER_BOOT: float = 40.0
    SHUTDOWN: float = 60.0
    POLL_INTERVAL: float = 0.5


DEFAULT_CONSTANTS = CheConstants()
DEFAULT_TIMEOUTS = TimeoutDefaults()
