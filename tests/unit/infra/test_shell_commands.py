"""Tests for the shell command wrappers."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from chectl.infra.shell import (
    CommandResult,
    HelmCommands,
    KubectlCommands,
    MicroK8sCommands,
    MinikubeCommands,
    MinishiftCommands,
)


@pytest.fixture
def mock_runner() -> MagicMock:
    """Create a mock command runner."""
    return MagicMock()


class TestHelmCommands:
    """Tests for Helm release commands."""

    @pytest.fixture
    def helm(self, mock_runner: MagicMock) -> HelmCommands:
        return HelmCommands(mock_runner)

    def test_upgrade_install_builds_command(self, helm: HelmCommands, mock_runner: MagicMock) -> None:
        """Value files come before --set overrides, in order."""
        mock_runner.run.return_value = CommandResult(success=True)

        helm.upgrade_install(
            "che",
            Path("/charts/che"),
            "che",
            set_values={"global.ingressDomain": "example.nip.io", "cheImage": "eclipse/che-server:7"},
            value_files=[Path("/charts/che/values/multi-user.yaml")],
        )

        cmd = mock_runner.run.call_args[0][0]
        assert cmd[:5] == ["helm", "upgrade", "--install", "che", "/charts/che"]
        assert "--create-namespace" in cmd
        assert "--wait" not in cmd
        assert cmd.index("-f") < cmd.index("--set")
        assert "global.ingressDomain=example.nip.io" in cmd
        assert "cheImage=eclipse/che-server:7" in cmd

    def test_upgrade_install_streams_when_asked(
        self, helm: HelmCommands, mock_runner: MagicMock
    ) -> None:
        mock_runner.run_streaming.return_value = CommandResult(success=True)

        helm.upgrade_install("che", Path("/charts/che"), "che", on_output=print)

        mock_runner.run_streaming.assert_called_once()
        mock_runner.run.assert_not_called()

    def test_version_none_when_helm_fails(self, helm: HelmCommands, mock_runner: MagicMock) -> None:
        mock_runner.run.return_value = CommandResult(success=False, stderr="helm: command not found")

        assert helm.version() is None

    def test_release_exists(self, helm: HelmCommands, mock_runner: MagicMock) -> None:
        mock_runner.run.return_value = CommandResult(
            success=True,
            stdout='[{"name": "che", "namespace": "che", "status": "deployed", "revision": 2}]',
        )

        assert helm.release_exists("che", "che")
        assert not helm.release_exists("other", "che")

    def test_list_releases_tolerates_garbage(
        self, helm: HelmCommands, mock_runner: MagicMock
    ) -> None:
        mock_runner.run.return_value = CommandResult(success=True, stdout="not json")

        assert helm.list_releases("che") == []

    def test_uninstall_waits(self, helm: HelmCommands, mock_runner: MagicMock) -> None:
        mock_runner.run.return_value = CommandResult(success=True)

        helm.uninstall("che", "che")

        assert mock_runner.run.call_args[0][0] == ["helm", "uninstall", "che", "-n", "che", "--wait"]


class TestKubectlCommands:
    def test_apply_yaml_uses_stdin(self, mock_runner: MagicMock) -> None:
        mock_runner.run.return_value = CommandResult(success=True)

        KubectlCommands(mock_runner).apply_yaml("kind: CheCluster", "che")

        args, kwargs = mock_runner.run.call_args
        assert args[0] == ["kubectl", "apply", "-n", "che", "-f", "-"]
        assert kwargs["input_data"] == "kind: CheCluster"

    def test_apply_file(self, mock_runner: MagicMock) -> None:
        mock_runner.run.return_value = CommandResult(success=True)

        KubectlCommands(mock_runner).apply_file(Path("/t/role.yaml"), "che")

        assert mock_runner.run.call_args[0][0][-2:] == ["-f", "/t/role.yaml"]


class TestPlatformCommands:
    @pytest.mark.parametrize(
        ("stdout", "expected"),
        [
            ("- ingress: enabled\n- dashboard: disabled\n", True),
            ("| ingress     | minikube | enabled ✅  |\n", True),
            ("- ingress: disabled\n", False),
            ("- ingress-dns: enabled\n", False),
        ],
    )
    def test_minikube_addon_enabled(
        self, mock_runner: MagicMock, stdout: str, expected: bool
    ) -> None:
        mock_runner.run.return_value = CommandResult(success=True, stdout=stdout)

        assert MinikubeCommands(mock_runner).addon_enabled("ingress") is expected

    def test_minikube_ip(self, mock_runner: MagicMock) -> None:
        mock_runner.run.return_value = CommandResult(success=True, stdout="192.168.99.100\n")

        assert MinikubeCommands(mock_runner).ip() == "192.168.99.100"

    def test_minikube_not_running(self, mock_runner: MagicMock) -> None:
        mock_runner.run.return_value = CommandResult(success=False, stdout="host: Stopped")

        assert not MinikubeCommands(mock_runner).is_running()

    def test_microk8s_running(self, mock_runner: MagicMock) -> None:
        mock_runner.run.return_value = CommandResult(success=True, stdout="microk8s is running\n")

        assert MicroK8sCommands(mock_runner).is_running()


class TestMinishiftCommands:
    def test_list_addons(self, mock_runner: MagicMock) -> None:
        mock_runner.run.return_value = CommandResult(
            success=True,
            stdout="- anyuid        : enabled    P(0)\n- che           : disabled   P(0)\n",
        )

        addons = MinishiftCommands(mock_runner).list_addons()

        assert [(a.name, a.enabled) for a in addons] == [("anyuid", True), ("che", False)]

    def test_apply_addon_passes_env(self, mock_runner: MagicMock) -> None:
        mock_runner.run.return_value = CommandResult(success=True)

        MinishiftCommands(mock_runner).apply_addon("che", {"NAMESPACE": "che", "CHE_IMAGE_TAG": "7"})

        assert mock_runner.run.call_args[0][0] == [
            "minishift",
            "addons",
            "apply",
            "che",
            "--addon-env",
            "NAMESPACE=che",
            "--addon-env",
            "CHE_IMAGE_TAG=7",
        ]

    def test_is_running_requires_both_lines(self, mock_runner: MagicMock) -> None:
        mock_runner.run.return_value = CommandResult(
            success=True, stdout="Minishift:  Running\nOpenShift:  Stopped\n"
        )

        assert not MinishiftCommands(mock_runner).is_running()


class TestCommandResult:
    def test_output_prefers_stderr_on_failure(self) -> None:
        result = CommandResult(success=False, stdout="partial", stderr=" boom \n", returncode=1)

        assert result.output == "boom"

    def test_output_is_stdout_on_success(self) -> None:
        assert CommandResult(success=True, stdout="ok\n").output == "ok"
