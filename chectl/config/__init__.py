"""Lifecycle configuration models and loader."""

from .loader import build_config, load_config, merge_overrides, substitute_env_vars
from .settings import Installer, LifecycleConfig, Platform, WaitTimeouts

__all__ = [
    "Installer",
    "LifecycleConfig",
    "Platform",
    "WaitTimeouts",
    "build_config",
    "load_config",
    "merge_overrides",
    "substitute_env_vars",
]
