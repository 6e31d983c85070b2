"""Task graph engine.

A workflow is a tree of ``Task`` nodes grouped in ``TaskSequence`` objects.
Each node carries an optional ``enabled`` predicate over the shared context
and an action that is either a leaf coroutine or a nested sequence.

``TaskRunner.run()`` executes a sequence strictly in order:

1. A node whose predicate returns False is skipped; its action (or nested
   children) is never evaluated.
2. A nested sequence runs to completion with the same context object before
   the parent moves to the next sibling.
3. The first failure aborts the whole run and is re-raised unchanged.

Progress goes to a ``ProgressRenderer``; renderers only observe and never
change execution order or the resulting context.

Example:
    async def check_api(ctx: ExecutionContext, task: TaskHandle) -> None:
        await probe.check_api_reachable()
        task.append("done")

    sequence = TaskSequence([Task("Verify Kubernetes API", check_api)])
    ctx = await TaskRunner(SilentRenderer()).run(sequence, ExecutionContext())
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Iterator
from dataclasses import dataclass, field
from typing import Generic, TypeAlias, TypeVar

from loguru import logger

from .renderers import ProgressRenderer, SilentRenderer

C = TypeVar("C")

Predicate: TypeAlias = Callable[[C], bool]
LeafAction: TypeAlias = Callable[[C, "TaskHandle"], Awaitable[None]]


class TaskHandle:
    """Handle given to a running leaf to report progress.

    Setting ``title`` notifies the renderer immediately.
    """

    def __init__(self, title: str, renderer: ProgressRenderer, depth: int) -> None:
        self._title = title
        self._renderer = renderer
        self.depth = depth

    @property
    def title(self) -> str:
        return self._title

    @title.setter
    def title(self, value: str) -> None:
        self._title = value
        self._renderer.task_title_changed(value, self.depth)

    def append(self, suffix: str) -> None:
        """Append ``...suffix`` to the title (e.g. ``...done``)."""
        self.title = f"{self._title}...{suffix}"

    def warn(self, message: str) -> None:
        self._renderer.warn(message)


@dataclass
class Task(Generic[C]):
    """One node of a task graph.

    Attributes:
        title: Title shown by renderers
        action: Leaf coroutine ``(ctx, handle)`` or nested ``TaskSequence``
        enabled: Optional predicate; the node is skipped when it returns False
    """

    title: str
    action: LeafAction[C] | TaskSequence[C]
    enabled: Predicate[C] | None = None

    def is_enabled(self, context: C) -> bool:
        return self.enabled is None or bool(self.enabled(context))

    @property
    def is_group(self) -> bool:
        return isinstance(self.action, TaskSequence)


@dataclass
class TaskSequence(Generic[C]):
    """Ordered list of task nodes."""

    tasks: list[Task[C]] = field(default_factory=list)

    def add(self, task: Task[C]) -> TaskSequence[C]:
        self.tasks.append(task)
        return self

    def extend(self, tasks: Iterable[Task[C]]) -> TaskSequence[C]:
        self.tasks.extend(tasks)
        return self

    def __iter__(self) -> Iterator[Task[C]]:
        return iter(self.tasks)

    def __len__(self) -> int:
        return len(self.tasks)


class TaskRunner:
    """Executes task sequences against a shared context."""

    def __init__(self, renderer: ProgressRenderer | None = None) -> None:
        self.renderer: ProgressRenderer = renderer or SilentRenderer()

    async def run(self, sequence: TaskSequence[C], context: C) -> C:
        """Run ``sequence`` and return the (mutated) context.

        Raises:
            Exception: The first error raised by any task, unchanged
        """
        await self._run_sequence(sequence, context, depth=0)
        return context

    async def _run_sequence(
        self, sequence: TaskSequence[C], context: C, depth: int
    ) -> None:
        for task in sequence:
            await self._run_task(task, context, depth)

    async def _run_task(self, task: Task[C], context: C, depth: int) -> None:
        if not task.is_enabled(context):
            logger.debug(f"Skipping task: {task.title}")
            self.renderer.task_skipped(task.title, depth)
            return

        handle = TaskHandle(task.title, self.renderer, depth)
        logger.debug(f"Starting task: {task.title}")
        self.renderer.task_started(task.title, depth, group=task.is_group)
        try:
            if isinstance(task.action, TaskSequence):
                await self._run_sequence(task.action, context, depth + 1)
            else:
                await task.action(context, handle)
        except BaseException as e:
            logger.debug(f"Task failed: {handle.title}: {e}")
            self.renderer.task_failed(handle.title, depth, e)
            raise
        self.renderer.task_completed(handle.title, depth)
