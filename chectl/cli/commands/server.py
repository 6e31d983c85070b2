"""Che server lifecycle commands.

This module provides the ``server start|stop|delete|status`` commands. Each
command builds a ``LifecycleConfig`` (from ``--config`` and/or flags, the
explicit flags winning), then runs one workflow of the lifecycle
orchestrator.
"""

from pathlib import Path
from typing import Annotated, Any

import typer
from click.core import ParameterSource
from rich.table import Table

from chectl.config import Installer, LifecycleConfig, Platform, build_config, load_config
from chectl.errors import ConfigurationError
from chectl.infra.constants import DEFAULT_CONSTANTS, DEFAULT_TIMEOUTS
from chectl.infra.k8s import run_sync
from chectl.orchestration.context import DeploymentState, StatusSnapshot
from chectl.orchestration.lifecycle import LifecycleOrchestrator
from chectl.orchestration.renderers import create_renderer

from ..context import get_cli_context
from ..shared import console, with_error_handling

# ---------------------------------------------------------------------------
# Option helpers
# ---------------------------------------------------------------------------

# CLI parameter -> WaitTimeouts field
TIMEOUT_OPTIONS: dict[str, str] = {
    "pod_wait_timeout": "pod_wait",
    "pod_ready_timeout": "pod_ready",
    "image_pull_timeout": "image_pull",
    "server_boot_timeout": "server_boot",
}

# Parameters that are not configuration fields
COMMAND_ONLY_OPTIONS = frozenset({"config_file", "yes"})


def _explicit_options(ctx: typer.Context) -> dict[str, Any]:
    """Collect the options given on the command line or through env vars."""
    overrides: dict[str, Any] = {}
    timeouts: dict[str, Any] = {}
    for name, value in ctx.params.items():
        if name in COMMAND_ONLY_OPTIONS:
            continue
        source = ctx.get_parameter_source(name)
        if source is None or source in (ParameterSource.DEFAULT, ParameterSource.DEFAULT_MAP):
            continue
        if name in TIMEOUT_OPTIONS:
            timeouts[TIMEOUT_OPTIONS[name]] = value
        else:
            overrides[name] = value
    if timeouts:
        overrides["timeouts"] = timeouts
    return overrides


def _build_config(ctx: typer.Context, config_file: Path | None) -> LifecycleConfig:
    """Build the configuration; the file provides defaults, flags win.

    Raises:
        ConfigurationError: If the file or the resulting values are invalid
    """
    overrides = _explicit_options(ctx)
    try:
        if config_file is not None:
            return load_config(config_file, overrides)
        return build_config(overrides)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Configuration file not found: {config_file}") from e
    except ValueError as e:
        raise ConfigurationError("Invalid configuration", details=str(e)) from e


def _orchestrator(ctx: typer.Context, config: LifecycleConfig) -> LifecycleOrchestrator:
    cli = get_cli_context(ctx, kube_context=config.context)
    return LifecycleOrchestrator(
        config,
        controller=cli.k8s_controller,
        shell=cli.commands,
        renderer=create_renderer(config.renderer, cli.console.console),
    )


# ---------------------------------------------------------------------------
# Shared options
# ---------------------------------------------------------------------------

ConfigFileOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="YAML file with a 'config:' section; explicit flags override it",
        dir_okay=False,
    ),
]
NamespaceOption = Annotated[
    str,
    typer.Option(
        "--chenamespace",
        "-n",
        envvar="CHE_NAMESPACE",
        help="Kubernetes namespace where Che server is supposed to be deployed",
    ),
]
DeploymentNameOption = Annotated[
    str,
    typer.Option(
        "--deployment-name",
        envvar="CHE_DEPLOYMENT",
        help="Che deployment name",
    ),
]
RendererOption = Annotated[
    str,
    typer.Option(
        "--renderer",
        help="Progress renderer: default, verbose or silent",
    ),
]

# ---------------------------------------------------------------------------
# Typer App
# ---------------------------------------------------------------------------

server_app = typer.Typer(
    name="server",
    help="Control Eclipse Che server.",
    no_args_is_help=True,
)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@server_app.command()
@with_error_handling
def start(
    ctx: typer.Context,
    config_file: ConfigFileOption = None,
    namespace: NamespaceOption = DEFAULT_CONSTANTS.DEFAULT_NAMESPACE,
    deployment_name: DeploymentNameOption = DEFAULT_CONSTANTS.DEFAULT_DEPLOYMENT_NAME,
    platform: Annotated[
        Platform,
        typer.Option("--platform", "-p", help="Type of Kubernetes platform"),
    ] = Platform.MINIKUBE,
    installer: Annotated[
        Installer | None,
        typer.Option(
            "--installer",
            "-a",
            help="Installer type, derived from the platform when omitted",
        ),
    ] = None,
    multiuser: Annotated[
        bool,
        typer.Option("--multiuser", "-m", help="Starts Che in multi-user mode"),
    ] = False,
    os_oauth: Annotated[
        bool,
        typer.Option(
            "--os-oauth",
            help="Log into Che with OpenShift credentials (operator installer only)",
        ),
    ] = False,
    tls: Annotated[
        bool,
        typer.Option("--tls", "-s", help="Enable TLS encryption"),
    ] = False,
    self_signed_cert: Annotated[
        bool,
        typer.Option(
            "--self-signed-cert",
            help="Authorize usage of self signed certificates for encryption",
        ),
    ] = False,
    domain: Annotated[
        str,
        typer.Option(
            "--domain",
            "-b",
            help="Domain of the Kubernetes cluster (e.g. example.k8s-cluster.com)",
        ),
    ] = "",
    che_image: Annotated[
        str,
        typer.Option(
            "--cheimage",
            "-i",
            envvar="CHE_CONTAINER_IMAGE",
            help="Che server container image",
        ),
    ] = DEFAULT_CONSTANTS.CHE_IMAGE,
    templates: Annotated[
        Path | None,
        typer.Option(
            "--templates",
            "-t",
            envvar="CHE_TEMPLATES_FOLDER",
            help="Path to the templates folder",
            file_okay=False,
        ),
    ] = None,
    operator_image: Annotated[
        str,
        typer.Option("--che-operator-image", help="Container image of the operator"),
    ] = DEFAULT_CONSTANTS.OPERATOR_IMAGE,
    operator_cr_yaml: Annotated[
        Path | None,
        typer.Option(
            "--che-operator-cr-yaml",
            help="Path to a yaml file that defines a CheCluster used by the operator",
            dir_okay=False,
        ),
    ] = None,
    plugin_registry_url: Annotated[
        str | None,
        typer.Option("--plugin-registry-url", help="The URL of the external plugin registry"),
    ] = None,
    devfile_registry_url: Annotated[
        str | None,
        typer.Option("--devfile-registry-url", help="The URL of the external devfile registry"),
    ] = None,
    pod_wait_timeout: Annotated[
        float,
        typer.Option("--k8spodwaittimeout", help="Seconds allowed for a pod to be scheduled"),
    ] = DEFAULT_TIMEOUTS.POD_WAIT,
    image_pull_timeout: Annotated[
        float,
        typer.Option(
            "--k8spoddownloadimagetimeout",
            help="Seconds allowed for images to be downloaded",
        ),
    ] = DEFAULT_TIMEOUTS.IMAGE_PULL,
    pod_ready_timeout: Annotated[
        float,
        typer.Option("--k8spodreadytimeout", help="Seconds allowed for a pod to be ready"),
    ] = DEFAULT_TIMEOUTS.POD_READY,
    server_boot_timeout: Annotated[
        float,
        typer.Option(
            "--cheboottimeout",
            "-o",
            envvar="CHE_SERVER_BOOT_TIMEOUT",
            help="Seconds allowed for the Che server to boot",
        ),
    ] = DEFAULT_TIMEOUTS.SERVER_BOOT,
    renderer: RendererOption = "default",
) -> None:
    """Start Eclipse Che server, installing it when it is not deployed."""
    config = _build_config(ctx, config_file)
    result = run_sync(_orchestrator(ctx, config).start())

    console.ok("Command server:start has completed successfully.")
    if result.che_url:
        console.info(f"Che URL: [bold]{result.che_url}[/bold]")


@server_app.command()
@with_error_handling
def stop(
    ctx: typer.Context,
    config_file: ConfigFileOption = None,
    namespace: NamespaceOption = DEFAULT_CONSTANTS.DEFAULT_NAMESPACE,
    deployment_name: DeploymentNameOption = DEFAULT_CONSTANTS.DEFAULT_DEPLOYMENT_NAME,
    access_token: Annotated[
        str | None,
        typer.Option(
            "--access-token",
            envvar="CHE_ACCESS_TOKEN",
            help="Che OIDC access token, required when authentication is enabled",
        ),
    ] = None,
    renderer: RendererOption = "default",
) -> None:
    """Stop Eclipse Che server: graceful shutdown, then scale to zero."""
    config = _build_config(ctx, config_file)
    run_sync(_orchestrator(ctx, config).stop())

    console.ok("Command server:stop has completed successfully.")


@server_app.command()
@with_error_handling
def delete(
    ctx: typer.Context,
    config_file: ConfigFileOption = None,
    namespace: NamespaceOption = DEFAULT_CONSTANTS.DEFAULT_NAMESPACE,
    renderer: RendererOption = "default",
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip the confirmation prompt"),
    ] = False,
) -> None:
    """Delete every Eclipse Che resource from the namespace."""
    config = _build_config(ctx, config_file)

    if not console.confirm_action(
        f'Delete Eclipse Che from namespace "{config.namespace}"',
        details="Deployments, services, ingresses/routes, config maps, role bindings, "
        "service accounts and persistent volume claims will be removed.",
        force=yes,
    ):
        console.print("[dim]Nothing was deleted.[/dim]")
        return

    run_sync(_orchestrator(ctx, config).delete())
    console.ok("Command server:delete has completed successfully.")


@server_app.command()
@with_error_handling
def status(
    ctx: typer.Context,
    config_file: ConfigFileOption = None,
    namespace: NamespaceOption = DEFAULT_CONSTANTS.DEFAULT_NAMESPACE,
    deployment_name: DeploymentNameOption = DEFAULT_CONSTANTS.DEFAULT_DEPLOYMENT_NAME,
) -> None:
    """Show the status of the Che deployment."""
    config = _build_config(ctx, config_file)
    config = config.model_copy(update={"renderer": "silent"})
    snapshot = run_sync(_orchestrator(ctx, config).status_check())
    _print_status(snapshot)


STATE_STYLES: dict[DeploymentState, str] = {
    DeploymentState.RUNNING: "green",
    DeploymentState.NOT_READY: "yellow",
    DeploymentState.STOPPED: "dim",
    DeploymentState.NOT_DEPLOYED: "red",
}


def _print_status(snapshot: StatusSnapshot) -> None:
    table = Table(title=f'Che in namespace "{snapshot.namespace}"')
    table.add_column("Component", style="cyan")
    table.add_column("Deployed")
    table.add_column("Kind")
    table.add_column("Ready")

    for component, status in snapshot.components.items():
        table.add_row(
            str(component),
            "✓" if status.is_deployed else "-",
            str(status.resource_kind or "-"),
            "✓" if status.is_ready else "-",
        )
    console.print(table)

    style = STATE_STYLES[snapshot.state]
    console.print(f"\nState: [{style}]{snapshot.state}[/{style}]")
    if snapshot.che_url:
        console.print(f"URL: {snapshot.che_url}")
    if snapshot.server_status:
        console.print(f"Server status: {snapshot.server_status}")
    if snapshot.is_auth_enabled is not None:
        console.print(
            f"Authentication: {'enabled' if snapshot.is_auth_enabled else 'disabled'}"
        )
