"""Tests for CLI context dependency injection."""

from pathlib import Path
from unittest.mock import Mock, patch

import pytest
import typer

from chectl.cli.context import CLIContext, build_cli_context, get_cli_context
from chectl.infra.constants import DEFAULT_CONSTANTS


def make_context() -> CLIContext:
    return CLIContext(
        console=Mock(),
        project_root=Path("/test"),
        commands=Mock(),
        k8s_controller=Mock(),
        constants=DEFAULT_CONSTANTS,
    )


def test_cli_context_is_immutable():
    """Test that CLIContext is frozen/immutable."""
    ctx = make_context()

    with pytest.raises(AttributeError):
        ctx.console = Mock()  # type: ignore[misc]


@patch("chectl.cli.context.build_k8s_controller")
def test_build_cli_context_creates_all_dependencies(mock_build_controller):
    """Test that build_cli_context creates all required dependencies."""
    mock_build_controller.return_value = Mock()

    ctx = build_cli_context()

    assert ctx.console is not None
    assert ctx.project_root == Path.cwd()
    assert ctx.commands is not None
    assert ctx.k8s_controller is mock_build_controller.return_value
    assert ctx.constants is DEFAULT_CONSTANTS
    mock_build_controller.assert_called_once_with(None)


@patch("chectl.cli.context.build_k8s_controller")
def test_build_cli_context_passes_kube_context(mock_build_controller):
    """Test that the kubeconfig context reaches the controller factory."""
    build_cli_context("minikube")

    mock_build_controller.assert_called_once_with("minikube")


@patch("chectl.cli.context.build_k8s_controller")
@patch("chectl.cli.context.ShellCommands")
def test_cli_context_shell_commands_initialized_with_project_root(
    mock_shell_commands, mock_build_controller
):
    """Test that ShellCommands is initialized with the working directory."""
    build_cli_context()

    mock_shell_commands.assert_called_once_with(Path.cwd())


def test_get_cli_context_from_typer_context():
    """Test that get_cli_context retrieves from Typer context."""
    mock_ctx_obj = make_context()

    typer_ctx = Mock(spec=typer.Context)
    typer_ctx.obj = mock_ctx_obj

    assert get_cli_context(typer_ctx) is mock_ctx_obj


def test_get_cli_context_with_invalid_obj_falls_back():
    """Test that get_cli_context falls back when ctx.obj is not CLIContext."""
    typer_ctx = Mock(spec=typer.Context)
    typer_ctx.obj = "invalid"

    with patch("chectl.cli.context.build_cli_context") as mock_build:
        mock_build.return_value = Mock(spec=CLIContext)

        get_cli_context(typer_ctx, kube_context="crc")

        mock_build.assert_called_once_with("crc")


@patch("click.get_current_context")
def test_get_cli_context_uses_click_context_as_fallback(mock_get_click_ctx):
    """Test that get_cli_context uses click context when typer ctx is None."""
    mock_ctx_obj = make_context()
    mock_get_click_ctx.return_value = Mock(obj=mock_ctx_obj)

    result = get_cli_context(None)

    assert result is mock_ctx_obj
    mock_get_click_ctx.assert_called_once_with(silent=True)


@patch("click.get_current_context", return_value=None)
def test_get_cli_context_without_any_context_builds_one(mock_get_click_ctx):
    """Test that a new context is built outside of a click invocation."""
    with patch("chectl.cli.context.build_cli_context") as mock_build:
        mock_build.return_value = Mock(spec=CLIContext)

        assert get_cli_context() is mock_build.return_value
