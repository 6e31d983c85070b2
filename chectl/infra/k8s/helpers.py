from __future__ import annotations

from chectl.infra.k8s.controller import KubernetesController


def build_k8s_controller(context: str | None = None) -> KubernetesController:
    """Create a KubernetesController for one CLI invocation.

    Args:
        context: Optional kubeconfig context name

    Returns:
        A fresh Kr8sController
    """
    from chectl.infra.k8s.kr8s_controller import Kr8sController

    return Kr8sController(context=context)
