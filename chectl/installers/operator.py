"""Che operator installer.

Applies the operator manifests from ``<templates>/che-operator``, waits for
the operator pod and creates the ``CheCluster`` custom resource that the
operator reconciles into a multi-user Che deployment.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from chectl.config.settings import Installer
from chectl.errors import InstallerError
from chectl.infra.constants import DEFAULT_CONSTANTS
from chectl.infra.k8s.controller import ResourceKind
from chectl.orchestration.context import ExecutionContext
from chectl.orchestration.tasks import LeafAction, Task, TaskHandle, TaskSequence

from .base import InstallerStrategy, split_image

# Applied in this order before the operator deployment
RBAC_MANIFESTS: tuple[tuple[str, str], ...] = (
    ("service account", "service_account.yaml"),
    ("role", "role.yaml"),
    ("role binding", "role_binding.yaml"),
    ("cluster role", "cluster_role.yaml"),
    ("cluster role binding", "cluster_role_binding.yaml"),
    ("CRD", "crds/org_v1_che_crd.yaml"),
)
OPERATOR_MANIFEST = "operator.yaml"
DEFAULT_CR_MANIFEST = "crds/org_v1_che_cr.yaml"


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            document = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise InstallerError(f"Unable to read {path}", details=str(e)) from e
    if not isinstance(document, dict):
        raise InstallerError(f"{path} does not contain a YAML object")
    return document


class OperatorInstaller(InstallerStrategy):
    """Deploys Che through the Che operator."""

    installer = Installer.OPERATOR
    title = "🏃‍  Running the Che Operator"

    @property
    def manifests_dir(self) -> Path:
        return self.config.templates / "che-operator"

    def operator_document(self) -> dict[str, Any]:
        """The operator Deployment with the configured image."""
        document = _load_yaml(self.manifests_dir / OPERATOR_MANIFEST)
        containers = document["spec"]["template"]["spec"]["containers"]
        containers[0]["image"] = self.config.operator_image
        return document

    def che_cluster_document(self, ctx: ExecutionContext) -> dict[str, Any]:
        """The CheCluster resource, from the user file or the bundled default."""
        path = self.config.operator_cr_yaml or self.manifests_dir / DEFAULT_CR_MANIFEST
        document = _load_yaml(path)

        document.setdefault("metadata", {})
        document["metadata"].setdefault("name", DEFAULT_CONSTANTS.CHE_CLUSTER_NAME)
        document["metadata"]["namespace"] = self.namespace

        spec = document.setdefault("spec", {})
        server = spec.setdefault("server", {})
        repo, tag = split_image(self.config.che_image)
        server["cheImage"] = repo
        server["cheImageTag"] = tag
        server["tlsSupport"] = self.config.tls
        server["selfSignedCert"] = self.config.self_signed_cert
        if self.config.plugin_registry_url:
            server["pluginRegistryUrl"] = self.config.plugin_registry_url
        if self.config.devfile_registry_url:
            server["devfileRegistryUrl"] = self.config.devfile_registry_url

        os_oauth = ctx.resolution.os_oauth if ctx.resolution else self.config.os_oauth
        spec.setdefault("auth", {})["openShiftoAuth"] = os_oauth

        if not ctx.is_openshift:
            spec.setdefault("k8s", {})["ingressDomain"] = ctx.domain or self.config.domain
        return document

    def _apply_manifest(self, relative: str) -> LeafAction[ExecutionContext]:
        path = self.manifests_dir / relative

        async def apply(ctx: ExecutionContext, task: TaskHandle) -> None:
            if not path.is_file():
                raise InstallerError(f"Operator manifest not found: {path}")
            self.check(
                await self.run_command(self.shell.kubectl.apply_file, path, self.namespace),
                f"Failed to apply {path.name}",
            )
            task.append("done")

        return apply

    def install_tasks(self) -> TaskSequence[ExecutionContext]:
        kubectl = self.shell.kubectl

        async def create_namespace(ctx: ExecutionContext, task: TaskHandle) -> None:
            if await self.controller.namespace_exists(self.namespace):
                task.append("it already exists")
                return
            await self.controller.create_namespace(self.namespace)
            task.append("done")

        async def create_operator(ctx: ExecutionContext, task: TaskHandle) -> None:
            document = yaml.safe_dump(self.operator_document())
            self.check(
                await self.run_command(kubectl.apply_yaml, document, self.namespace),
                "Failed to create the Che operator deployment",
            )
            task.append("done")

        async def create_che_cluster(ctx: ExecutionContext, task: TaskHandle) -> None:
            if await self.controller.resource_exists(
                ResourceKind.CHE_CLUSTER, DEFAULT_CONSTANTS.CHE_CLUSTER_NAME, self.namespace
            ):
                task.append("it already exists")
                return
            document = yaml.safe_dump(self.che_cluster_document(ctx))
            self.check(
                await self.run_command(kubectl.apply_yaml, document, self.namespace),
                "Failed to create the CheCluster resource",
            )
            logger.info(f"CheCluster {DEFAULT_CONSTANTS.CHE_CLUSTER_NAME} created in {self.namespace}")
            task.append("done")

        sequence: TaskSequence[ExecutionContext] = TaskSequence(
            [Task(f'Create namespace "{self.namespace}"', create_namespace)]
        )
        for label, relative in RBAC_MANIFESTS:
            sequence.add(Task(f"Create {label} for the Che operator", self._apply_manifest(relative)))
        sequence.extend(
            [
                Task(f"Create Che operator {DEFAULT_CONSTANTS.OPERATOR_NAME}", create_operator),
                Task(
                    "Waiting for the Che operator pod",
                    self.waiter.pod_start_tasks(DEFAULT_CONSTANTS.OPERATOR_SELECTOR, self.namespace),
                ),
                Task(f"Create Eclipse Che cluster {DEFAULT_CONSTANTS.CHE_CLUSTER_NAME}", create_che_cluster),
            ]
        )
        return sequence

    def delete_tasks(self) -> TaskSequence[ExecutionContext]:
        c = DEFAULT_CONSTANTS

        def delete(kind: ResourceKind, name: str) -> LeafAction[ExecutionContext]:
            async def action(ctx: ExecutionContext, task: TaskHandle) -> None:
                existed = await self.controller.delete_resource(kind, name, self.namespace)
                task.append("OK" if existed else "not found")

            return action

        return TaskSequence(
            [
                Task(
                    f"Delete the CheCluster {c.CHE_CLUSTER_NAME}",
                    delete(ResourceKind.CHE_CLUSTER, c.CHE_CLUSTER_NAME),
                ),
                Task(
                    f"Delete the operator deployment {c.OPERATOR_NAME}",
                    delete(ResourceKind.DEPLOYMENT, c.OPERATOR_NAME),
                ),
                Task(f"Delete the operator role {c.OPERATOR_NAME}", delete(ResourceKind.ROLE, c.OPERATOR_NAME)),
                Task(
                    f"Delete the operator service account {c.OPERATOR_NAME}",
                    delete(ResourceKind.SERVICE_ACCOUNT, c.OPERATOR_NAME),
                ),
            ]
        )
