"""Platform/installer compatibility matrix.

Pure decision logic: ``resolve()`` turns a requested platform, an optional
installer and the auth flags into a validated resolution or raises
``CompatibilityError``. It never touches the cluster, so it runs before any
mutation is attempted.
"""

from __future__ import annotations

from dataclasses import dataclass

from chectl.config.settings import Installer, Platform
from chectl.errors import CompatibilityError

# (platform, multiuser) -> installer when none is requested
DEFAULT_INSTALLERS: dict[tuple[Platform, bool], Installer] = {
    (Platform.MINISHIFT, False): Installer.MINISHIFT_ADDON,
    (Platform.MINISHIFT, True): Installer.OPERATOR,
    (Platform.MINIKUBE, False): Installer.HELM,
    (Platform.MINIKUBE, True): Installer.OPERATOR,
    (Platform.OPENSHIFT, False): Installer.OPERATOR,
    (Platform.OPENSHIFT, True): Installer.OPERATOR,
    (Platform.K8S, False): Installer.HELM,
    (Platform.K8S, True): Installer.HELM,
    (Platform.DOCKER_DESKTOP, False): Installer.HELM,
    (Platform.DOCKER_DESKTOP, True): Installer.HELM,
    (Platform.MICROK8S, False): Installer.HELM,
    (Platform.MICROK8S, True): Installer.HELM,
}

SUPPORTED_PLATFORMS: dict[Installer, frozenset[Platform]] = {
    Installer.MINISHIFT_ADDON: frozenset({Platform.MINISHIFT}),
    Installer.HELM: frozenset(
        {Platform.K8S, Platform.MINIKUBE, Platform.MICROK8S, Platform.DOCKER_DESKTOP}
    ),
    Installer.OPERATOR: frozenset(Platform),
}

OS_OAUTH_PLATFORMS: frozenset[Platform] = frozenset({Platform.OPENSHIFT, Platform.MINISHIFT})

OPERATOR_MULTIUSER_WARNING = (
    "Che will be deployed in Multi-User mode since the 'operator' installer "
    "only supports such."
)


@dataclass(frozen=True)
class PlatformInstallerPair:
    """An immutable (platform, installer) value."""

    platform: Platform
    installer: Installer

    def __str__(self) -> str:
        return f"{self.platform}/{self.installer}"


@dataclass(frozen=True)
class Resolution:
    """Outcome of ``resolve()``.

    Attributes:
        pair: Validated platform/installer pair
        multiuser: Effective multi-user mode after installer constraints
        os_oauth: Whether OpenShift OAuth is enabled
        warnings: Non-fatal notes for the user
    """

    pair: PlatformInstallerPair
    multiuser: bool
    os_oauth: bool = False
    warnings: tuple[str, ...] = ()

    @property
    def platform(self) -> Platform:
        return self.pair.platform

    @property
    def installer(self) -> Installer:
        return self.pair.installer


def _parse_platform(value: Platform | str) -> Platform:
    try:
        return Platform(value)
    except ValueError:
        raise CompatibilityError(f"Platform {value} is not supported") from None


def _parse_installer(value: Installer | str) -> Installer:
    try:
        return Installer(value)
    except ValueError:
        raise CompatibilityError(f"Installer {value} is not supported") from None


def default_installer(platform: Platform | str, multiuser: bool = False) -> Installer:
    """Installer used on ``platform`` when none is requested."""
    return DEFAULT_INSTALLERS[(_parse_platform(platform), multiuser)]


def is_compatible(platform: Platform | str, installer: Installer | str) -> bool:
    """Whether ``installer`` can deploy Che on ``platform``."""
    return _parse_platform(platform) in SUPPORTED_PLATFORMS[_parse_installer(installer)]


def resolve(
    platform: Platform | str,
    installer: Installer | str | None = None,
    multiuser: bool = False,
    os_oauth: bool = False,
) -> Resolution:
    """Validate a platform/installer request.

    Rules, in order: derive the default installer when none is given, reject
    unsupported pairs, apply installer multi-user constraints (operator forces
    multi-user with a warning, minishift-addon forces single-user), and only
    accept OpenShift OAuth on OpenShift platforms with the operator.

    Raises:
        CompatibilityError: If the combination is not supported
    """
    resolved_platform = _parse_platform(platform)
    resolved_installer = (
        _parse_installer(installer)
        if installer
        else default_installer(resolved_platform, multiuser)
    )

    if resolved_platform not in SUPPORTED_PLATFORMS[resolved_installer]:
        if resolved_installer == Installer.MINISHIFT_ADDON:
            raise CompatibilityError(
                f"Current platform is {resolved_platform}. Minishift addon is only "
                "available on top of Minishift platform."
            )
        raise CompatibilityError(
            f"Current platform is {resolved_platform}. Helm installer is only available "
            "on top of Kubernetes flavor platform (including Minikube, MicroK8s, "
            "Docker Desktop)."
        )

    warnings: list[str] = []
    effective_multiuser = multiuser
    if resolved_installer == Installer.OPERATOR:
        if not multiuser:
            warnings.append(OPERATOR_MULTIUSER_WARNING)
        effective_multiuser = True
    elif resolved_installer == Installer.MINISHIFT_ADDON:
        effective_multiuser = False

    if os_oauth:
        if resolved_platform not in OS_OAUTH_PLATFORMS:
            raise CompatibilityError(
                "You requested to enable OpenShift OAuth but the platform doesn't seem "
                f"to be OpenShift. Platform is {resolved_platform}."
            )
        if resolved_installer != Installer.OPERATOR:
            raise CompatibilityError(
                "You requested to enable OpenShift OAuth but that's only possible when "
                f"using the operator as installer. The current installer is "
                f"{resolved_installer}. To use the operator add parameter "
                '"--installer operator".'
            )

    return Resolution(
        pair=PlatformInstallerPair(resolved_platform, resolved_installer),
        multiuser=effective_multiuser,
        os_oauth=os_oauth,
        warnings=tuple(warnings),
    )
