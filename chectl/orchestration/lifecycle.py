"""Lifecycle orchestrator: the start, stop, delete and status workflows.

Each workflow builds one task graph from the probe, the waiter, the scale
sequencer and the installer strategies, runs it against a fresh
``ExecutionContext`` and returns what it found. Nothing is cached between
two calls.

Start branches on the probe result:

- already running: resolve the URL and stop there
- deployed but stopped or not ready: scale the components back up
- not deployed: run the installer strategy

and then (unless it was already running) waits for every deployed
component and for the Che server API.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TypeAlias
from pathlib import Path

from loguru import logger

from chectl.config.settings import Installer, LifecycleConfig
from chectl.errors import NotDeployedError, ServerStatusError
from chectl.infra.che.client import CheServerClient
from chectl.infra.k8s.controller import KubernetesController
from chectl.infra.shell import ShellCommands
from chectl.installers import InstallerStrategy, get_installer

from .cleanup import ResourceCleaner
from .compatibility import Resolution, resolve
from .components import ComponentSpec, build_component_specs
from .context import CheComponent, ExecutionContext, StatusSnapshot
from .platforms import PREFLIGHT_TITLES, PlatformPreflight
from .pod_waiter import PodReadinessWaiter
from .probe import ClusterProbe
from .renderers import ProgressRenderer, SilentRenderer
from .scale import SCALE_UP_ORDER, ScaleSequencer
from .tasks import Predicate, Task, TaskHandle, TaskRunner, TaskSequence

InstallerFactory: TypeAlias = Callable[..., InstallerStrategy]


class LifecycleOrchestrator:
    """Entry point of the four lifecycle workflows.

    Collaborators are injected so that tests can run every workflow against
    an in-memory controller and a mocked HTTP transport.

    Example:
        orchestrator = LifecycleOrchestrator(config, controller=build_k8s_controller())
        ctx = run_sync(orchestrator.start())
    """

    def __init__(
        self,
        config: LifecycleConfig,
        *,
        controller: KubernetesController,
        che_client: CheServerClient | None = None,
        shell: ShellCommands | None = None,
        renderer: ProgressRenderer | None = None,
        installer_factory: InstallerFactory = get_installer,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            config: Validated lifecycle configuration
            controller: Cluster transport
            che_client: Che server client (built from the config when omitted)
            shell: Shell command facade for installers and preflight checks
            renderer: Progress renderer (silent when omitted)
            installer_factory: Builds the installer strategy for an installer
        """
        self.config = config
        self.controller = controller
        self.che_client = che_client or CheServerClient(
            controller,
            verify=not config.self_signed_cert,
            poll_interval=config.timeouts.poll_interval,
        )
        self.shell = shell or ShellCommands(Path.cwd())
        self.renderer: ProgressRenderer = renderer or SilentRenderer()
        self.installer_factory = installer_factory

        self.runner = TaskRunner(self.renderer)
        self.probe = ClusterProbe(controller)
        self.waiter = PodReadinessWaiter(self.probe, config.timeouts)
        self.preflight = PlatformPreflight(self.probe, self.shell)

    @property
    def namespace(self) -> str:
        return self.config.namespace

    def _installer(self, installer: Installer) -> InstallerStrategy:
        return self.installer_factory(
            installer,
            self.config,
            controller=self.controller,
            shell=self.shell,
            waiter=self.waiter,
        )

    def _sequencer(self, specs: Mapping[CheComponent, ComponentSpec]) -> ScaleSequencer:
        return ScaleSequencer(
            self.controller,
            self.waiter,
            specs,
            self.namespace,
            che_client=self.che_client,
            access_token=self.config.access_token,
            timeouts=self.config.timeouts,
        )

    def resolve(self) -> Resolution:
        """Validate the platform/installer request and report its warnings.

        Raises:
            CompatibilityError: If the combination is not supported
        """
        resolution = resolve(
            self.config.platform,
            self.config.installer,
            self.config.multiuser,
            self.config.os_oauth,
        )
        for warning in resolution.warnings:
            logger.warning(warning)
            self.renderer.warn(warning)
        logger.info(f"Resolved {resolution.pair} (multiuser={resolution.multiuser})")
        return resolution

    # =========================================================================
    # Shared task builders
    # =========================================================================

    def _url_task(
        self,
        title: str,
        enabled: Predicate[ExecutionContext] | None = None,
        *,
        optional: bool = False,
    ) -> Task[ExecutionContext]:
        """Resolve the public URL into ``ctx.che_url``.

        With ``optional`` a missing route or ingress leaves ``che_url`` unset
        instead of failing the run.
        """

        async def retrieve_url(ctx: ExecutionContext, task: TaskHandle) -> None:
            try:
                ctx.che_url = await self.che_client.resolve_public_url(
                    self.namespace, is_openshift=ctx.is_openshift
                )
            except ServerStatusError as e:
                if not optional:
                    raise
                logger.warning(f"Che server URL unavailable: {e.message}")
                task.append("not found")
                return
            task.append(ctx.che_url)

        return Task(title, retrieve_url, enabled=enabled)

    def _server_status_task(self, *, requires_url: bool = False) -> Task[ExecutionContext]:
        async def check_status(ctx: ExecutionContext, task: TaskHandle) -> None:
            if ctx.che_url is None:
                ctx.che_url = await self.che_client.resolve_public_url(
                    self.namespace, is_openshift=ctx.is_openshift
                )
            ctx.is_auth_enabled = await self.che_client.is_auth_enabled(ctx.che_url)
            ctx.server_status = await self.che_client.get_status(ctx.che_url)
            auth = "auth enabled" if ctx.is_auth_enabled else "auth disabled"
            task.append(f"{ctx.server_status} ({auth})")

        return Task(
            "Check Che server status",
            check_status,
            enabled=lambda ctx: ctx.is_deployed
            and not ctx.is_stopped
            and ctx.status.che.is_ready
            and (ctx.che_url is not None or not requires_url),
        )

    def _post_install_tasks(
        self, specs: Mapping[CheComponent, ComponentSpec]
    ) -> TaskSequence[ExecutionContext]:
        async def inspect(ctx: ExecutionContext, task: TaskHandle) -> None:
            await self.probe.probe_components(ctx, specs, self.namespace)
            deployed = ", ".join(specs[c].title for c in ctx.status.deployed())
            task.append(deployed or "nothing yet")

        def waiting(component: CheComponent) -> Callable[[ExecutionContext], bool]:
            if component == CheComponent.CHE:
                return lambda ctx: not ctx.status.che.is_ready
            return lambda ctx: (
                ctx.status.get(component).is_deployed
                and not ctx.status.get(component).is_ready
            )

        def mark_ready(component: CheComponent) -> Callable[[ExecutionContext], None]:
            def callback(ctx: ExecutionContext) -> None:
                ctx.status.get(component).is_ready = True

            return callback

        async def server_ready(ctx: ExecutionContext, task: TaskHandle) -> None:
            url = ctx.che_url or await self.che_client.resolve_public_url(
                self.namespace, is_openshift=ctx.is_openshift
            )
            await self.che_client.wait_until_server_ready(
                url, timeout=self.config.timeouts.server_boot
            )
            ctx.server_status = await self.che_client.get_status(url)
            task.append(f"{ctx.server_status}")

        sequence: TaskSequence[ExecutionContext] = TaskSequence(
            [Task("Inspect the Che deployment", inspect)]
        )
        for component in SCALE_UP_ORDER:
            spec = specs[component]
            sequence.add(
                Task(
                    f"{spec.title} pod bootstrap",
                    self.waiter.pod_start_tasks(
                        spec.selector, self.namespace, on_ready=mark_ready(component)
                    ),
                    enabled=waiting(component),
                )
            )
        sequence.extend(
            [
                # The operator creates the Che deployment asynchronously
                Task(
                    "Verify the Che deployment",
                    inspect,
                    enabled=lambda ctx: not ctx.is_deployed,
                ),
                self._url_task("Retrieving Che server URL"),
                Task("Che status check", server_ready),
            ]
        )
        return sequence

    # =========================================================================
    # Workflows
    # =========================================================================

    async def start(self) -> ExecutionContext:
        """Bring Che to a running state, installing it when it is absent.

        Raises:
            CompatibilityError: Before any cluster call, on invalid requests
            DeploymentError: On the first failing step
        """
        resolution = self.resolve()
        specs = build_component_specs(self.config.deployment_name, resolution.installer)
        installer = self._installer(resolution.installer)
        sequencer = self._sequencer(specs)

        ctx = ExecutionContext(resolution=resolution, domain=self.config.domain)
        sequence: TaskSequence[ExecutionContext] = TaskSequence(
            [
                Task(
                    PREFLIGHT_TITLES[resolution.platform],
                    self.preflight.tasks(resolution.platform),
                ),
                Task(
                    "👀  Looking for an already existing Che instance",
                    self.probe.detection_tasks(specs, self.namespace),
                ),
                self._url_task(
                    f'Che is already running in namespace "{self.namespace}"',
                    enabled=lambda ctx: ctx.already_running,
                ),
                Task(
                    "👀  Starting already deployed Che",
                    sequencer.scale_up_tasks(),
                    enabled=lambda ctx: ctx.needs_recovery,
                ),
                Task(
                    installer.title,
                    installer.install_tasks(),
                    enabled=lambda ctx: ctx.fresh_install,
                ),
                Task(
                    "✅  Post installation checklist",
                    self._post_install_tasks(specs),
                    enabled=lambda ctx: not ctx.already_running,
                ),
            ]
        )
        await self.runner.run(sequence, ctx)
        logger.info(f"Che is running in namespace {self.namespace} at {ctx.che_url}")
        return ctx

    async def stop(self) -> ExecutionContext:
        """Shut the Che server down gracefully and scale every component to zero.

        Raises:
            NotDeployedError: If Che is not deployed in the namespace
            CoordinationError: If auth is enabled and no access token was given
            DeploymentError: On the first failing step
        """
        specs = build_component_specs(self.config.deployment_name, self.config.installer)
        sequencer = self._sequencer(specs)
        che = specs[CheComponent.CHE]

        async def not_deployed(ctx: ExecutionContext, task: TaskHandle) -> None:
            raise NotDeployedError(
                f'Che deployment "{che.deployment_name}" not found in namespace "{self.namespace}"'
            )

        async def already_stopped(ctx: ExecutionContext, task: TaskHandle) -> None:
            task.append("nothing to shut down")

        async def not_ready(ctx: ExecutionContext, task: TaskHandle) -> None:
            task.append("skipping shutdown request")

        ctx = ExecutionContext()
        sequence: TaskSequence[ExecutionContext] = TaskSequence(
            [
                Task("Verify Kubernetes API", self.probe.api_check_tasks()),
                Task(
                    "👀  Looking for an already existing Che instance",
                    self.probe.detection_tasks(specs, self.namespace),
                ),
                Task(
                    f'Deployment "{che.deployment_name}" doesn\'t exist',
                    not_deployed,
                    enabled=lambda ctx: not ctx.is_deployed,
                ),
                self._server_status_task(),
                Task(
                    "Che server is already stopped",
                    already_stopped,
                    enabled=lambda ctx: ctx.is_deployed and ctx.is_stopped,
                ),
                Task(
                    "Che server pod is not ready",
                    not_ready,
                    enabled=lambda ctx: ctx.is_not_ready,
                ),
                Task(
                    "Scaling down Che",
                    sequencer.scale_down_tasks(),
                    enabled=lambda ctx: ctx.is_deployed,
                ),
            ]
        )
        await self.runner.run(sequence, ctx)
        logger.info(f"Che stopped in namespace {self.namespace}")
        return ctx

    async def delete(self) -> ExecutionContext:
        """Remove every Che resource from the namespace.

        Installer-specific resources go first, then the generic cleanup.
        Resources that are already gone are skipped.
        """
        cleaner = ResourceCleaner(self.controller, self.namespace)
        operator = self._installer(Installer.OPERATOR)
        helm = self._installer(Installer.HELM)
        addon = self._installer(Installer.MINISHIFT_ADDON)

        ctx = ExecutionContext()
        sequence: TaskSequence[ExecutionContext] = TaskSequence(
            [
                Task("Verify Kubernetes API", self.probe.api_check_tasks()),
                Task("Delete the Che operator resources", operator.delete_tasks()),
                Task(f'Delete Che resources in namespace "{self.namespace}"', cleaner.delete_tasks()),
                Task("Delete the Che Helm release", helm.delete_tasks()),
                Task("Delete the Che minishift addon", addon.delete_tasks()),
            ]
        )
        await self.runner.run(sequence, ctx)
        logger.info(f"Che deleted from namespace {self.namespace}")
        return ctx

    async def status_check(self) -> StatusSnapshot:
        """Probe the deployment and, when Che is ready, the server itself."""
        specs = build_component_specs(self.config.deployment_name, self.config.installer)

        ctx = ExecutionContext()
        sequence: TaskSequence[ExecutionContext] = TaskSequence(
            [
                Task("Verify Kubernetes API", self.probe.api_check_tasks()),
                Task(
                    "👀  Looking for an already existing Che instance",
                    self.probe.detection_tasks(specs, self.namespace),
                ),
                self._url_task(
                    "Retrieving Che server URL",
                    enabled=lambda ctx: ctx.is_deployed,
                    optional=True,
                ),
                self._server_status_task(requires_url=True),
            ]
        )
        await self.runner.run(sequence, ctx)
        return StatusSnapshot.from_context(ctx, self.namespace)


__all__ = ["InstallerFactory", "LifecycleOrchestrator"]
