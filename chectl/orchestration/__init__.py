"""Deployment lifecycle core.

The task engine, the compatibility matrix, the cluster probe, the pod
readiness waiter and the scale sequencer. The workflows that compose them
live in ``chectl.orchestration.lifecycle``.
"""

from .compatibility import Resolution, resolve
from .context import (
    CheComponent,
    ComponentStatus,
    DeploymentState,
    ExecutionContext,
    StatusSnapshot,
)
from .pod_waiter import PodReadinessWaiter
from .probe import ClusterProbe
from .renderers import ProgressRenderer, RichRenderer, SilentRenderer, VerboseRenderer
from .scale import ScaleSequencer
from .tasks import Task, TaskHandle, TaskRunner, TaskSequence

__all__ = [
    "CheComponent",
    "ClusterProbe",
    "ComponentStatus",
    "DeploymentState",
    "ExecutionContext",
    "PodReadinessWaiter",
    "ProgressRenderer",
    "Resolution",
    "RichRenderer",
    "ScaleSequencer",
    "SilentRenderer",
    "StatusSnapshot",
    "Task",
    "TaskHandle",
    "TaskRunner",
    "TaskSequence",
    "VerboseRenderer",
    "resolve",
]
