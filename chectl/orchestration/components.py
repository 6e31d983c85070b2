"""Names and selectors of the managed Che components."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from chectl.config.settings import Installer
from chectl.infra.constants import DEFAULT_CONSTANTS, CheConstants

from .context import CheComponent


@dataclass(frozen=True)
class ComponentSpec:
    """How to find one component in the cluster.

    Attributes:
        component: Logical component
        deployment_name: Name of its Deployment/DeploymentConfig
        selector: Label selector of its pods
        title: Human readable name used in task titles
    """

    component: CheComponent
    deployment_name: str
    selector: str
    title: str


def build_component_specs(
    deployment_name: str,
    installer: Installer | None = None,
    constants: CheConstants | None = None,
) -> Mapping[CheComponent, ComponentSpec]:
    """Build the spec of every component, keyed by component.

    The minishift addon labels the Che server pod with ``app=che`` only.
    """
    c = constants or DEFAULT_CONSTANTS
    che_selector = (
        c.CHE_ADDON_SELECTOR if installer == Installer.MINISHIFT_ADDON else c.CHE_SELECTOR
    )
    specs = (
        ComponentSpec(CheComponent.CHE, deployment_name, che_selector, "Che"),
        ComponentSpec(
            CheComponent.KEYCLOAK, c.KEYCLOAK_DEPLOYMENT_NAME, c.KEYCLOAK_SELECTOR, "Keycloak"
        ),
        ComponentSpec(
            CheComponent.POSTGRES, c.POSTGRES_DEPLOYMENT_NAME, c.POSTGRES_SELECTOR, "PostgreSQL"
        ),
        ComponentSpec(
            CheComponent.PLUGIN_REGISTRY,
            c.PLUGIN_REGISTRY_DEPLOYMENT_NAME,
            c.PLUGIN_REGISTRY_SELECTOR,
            "Plugin registry",
        ),
        ComponentSpec(
            CheComponent.DEVFILE_REGISTRY,
            c.DEVFILE_REGISTRY_DEPLOYMENT_NAME,
            c.DEVFILE_REGISTRY_SELECTOR,
            "Devfile registry",
        ),
    )
    return {spec.component: spec for spec in specs}
