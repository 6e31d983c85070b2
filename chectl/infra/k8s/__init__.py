"""Kubernetes infrastructure abstraction layer.

This module provides the cluster transport used by the orchestrator.

Example:
    from chectl.infra.k8s import build_k8s_controller, run_sync

    controller = build_k8s_controller()
    run_sync(controller.check_api())
    pods = run_sync(controller.list_pods("app=che", "che"))
"""

from .controller import (
    CONTROLLER_KINDS,
    ConditionStatus,
    KubernetesController,
    PodInfo,
    PodPhase,
    ResourceKind,
)
from .helpers import build_k8s_controller
from .utils import run_sync

__all__ = [
    # Controller classes
    "KubernetesController",
    "build_k8s_controller",
    # Data classes
    "ResourceKind",
    "CONTROLLER_KINDS",
    "PodInfo",
    "PodPhase",
    "ConditionStatus",
    # Utilities
    "run_sync",
]
