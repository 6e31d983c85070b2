"""Pydantic models for the lifecycle configuration.

``LifecycleConfig`` is the validated configuration object handed to the
orchestrator. It is built either from CLI flags or from a YAML file (see
``chectl.config.loader``), never both without the flags winning.
"""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from chectl.infra.constants import DEFAULT_CONSTANTS, DEFAULT_TIMEOUTS


class Platform(StrEnum):
    """Cluster platforms chectl knows how to prepare."""

    MINIKUBE = "minikube"
    MINISHIFT = "minishift"
    K8S = "k8s"
    OPENSHIFT = "openshift"
    MICROK8S = "microk8s"
    DOCKER_DESKTOP = "docker-desktop"


class Installer(StrEnum):
    """Installation strategies for a fresh Che deployment."""

    HELM = "helm"
    OPERATOR = "operator"
    MINISHIFT_ADDON = "minishift-addon"


RendererName = Literal["default", "verbose", "silent"]


def _default_templates_dir() -> Path:
    return Path.cwd() / "templates"


class WaitTimeouts(BaseModel):
    """Bounds (seconds) for every polling wait in a workflow."""

    model_config = ConfigDict(frozen=True)

    pod_wait: float = Field(
        default=DEFAULT_TIMEOUTS.POD_WAIT,
        gt=0,
        description="Time allowed for a pod to be scheduled",
    )
    image_pull: float = Field(
        default=DEFAULT_TIMEOUTS.IMAGE_PULL,
        gt=0,
        description="Time allowed for images to be pulled and the pod to run",
    )
    pod_ready: float = Field(
        default=DEFAULT_TIMEOUTS.POD_READY,
        gt=0,
        description="Time allowed for the Ready condition to become True",
    )
    pod_deletion: float = Field(
        default=DEFAULT_TIMEOUTS.POD_DELETION,
        gt=0,
        description="Time allowed for pods to disappear after a scale to zero",
    )
    server_boot: float = Field(
        default=DEFAULT_TIMEOUTS.SERVER_BOOT,
        gt=0,
        description="Time allowed for the Che server API to answer",
    )
    shutdown: float = Field(
        default=DEFAULT_TIMEOUTS.SHUTDOWN,
        gt=0,
        description="Time allowed for the server to become ready to shutdown",
    )
    poll_interval: float = Field(
        default=DEFAULT_TIMEOUTS.POLL_INTERVAL,
        gt=0,
        description="Delay between two polls",
    )


class LifecycleConfig(BaseModel):
    """Validated configuration of one lifecycle workflow.

    Example:
        ```yaml
        config:
          namespace: che
          platform: minikube
          multiuser: true
          timeouts:
            pod_ready: 300
        ```
    """

    model_config = ConfigDict(extra="forbid")

    namespace: str = Field(
        default=DEFAULT_CONSTANTS.DEFAULT_NAMESPACE,
        description="Kubernetes namespace where Che is deployed",
    )
    deployment_name: str = Field(
        default=DEFAULT_CONSTANTS.DEFAULT_DEPLOYMENT_NAME,
        description="Name of the Che server Deployment/DeploymentConfig",
    )
    platform: Platform = Field(default=Platform.MINIKUBE)
    installer: Installer | None = Field(
        default=None,
        description="Installer; derived from the platform when unset",
    )
    multiuser: bool = False
    os_oauth: bool = Field(
        default=False,
        description="Log into Che with OpenShift credentials (operator only)",
    )
    access_token: str | None = Field(
        default=None,
        description="Bearer token for the shutdown request when auth is enabled",
    )
    tls: bool = False
    self_signed_cert: bool = False
    domain: str = Field(
        default="",
        description="Cluster ingress domain (e.g. 192.168.99.100.nip.io)",
    )
    che_image: str = DEFAULT_CONSTANTS.CHE_IMAGE
    templates: Path = Field(default_factory=_default_templates_dir)
    operator_image: str = DEFAULT_CONSTANTS.OPERATOR_IMAGE
    operator_cr_yaml: Path | None = None
    plugin_registry_url: str | None = None
    devfile_registry_url: str | None = None
    context: str | None = Field(
        default=None,
        description="kubeconfig context; the current one when unset",
    )
    renderer: RendererName = "default"
    timeouts: WaitTimeouts = Field(default_factory=WaitTimeouts)

    @field_validator("namespace", "deployment_name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("installer", mode="before")
    @classmethod
    def _empty_installer(cls, value: object) -> object:
        return None if value == "" else value
