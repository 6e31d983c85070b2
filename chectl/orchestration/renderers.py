"""Progress renderers for the task graph engine.

A renderer only observes task events. Swapping one renderer for another
never changes which tasks run or what they write to the context.
"""

from __future__ import annotations

from typing import Protocol

from rich.console import Console
from rich.markup import escape
from rich.status import Status


class ProgressRenderer(Protocol):
    """Receives task lifecycle events from the ``TaskRunner``."""

    def task_started(self, title: str, depth: int, *, group: bool = False) -> None: ...

    def task_title_changed(self, title: str, depth: int) -> None: ...

    def task_completed(self, title: str, depth: int) -> None: ...

    def task_skipped(self, title: str, depth: int) -> None: ...

    def task_failed(self, title: str, depth: int, error: BaseException) -> None: ...

    def warn(self, message: str) -> None: ...


class SilentRenderer:
    """Renderer that discards every event."""

    def task_started(self, title: str, depth: int, *, group: bool = False) -> None:
        pass

    def task_title_changed(self, title: str, depth: int) -> None:
        pass

    def task_completed(self, title: str, depth: int) -> None:
        pass

    def task_skipped(self, title: str, depth: int) -> None:
        pass

    def task_failed(self, title: str, depth: int, error: BaseException) -> None:
        pass

    def warn(self, message: str) -> None:
        pass


class VerboseRenderer:
    """One plain line per event, suitable for CI logs."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(highlight=False)

    def _line(self, marker: str, title: str) -> None:
        self.console.print(f"[{marker}] {title}", markup=False)

    def task_started(self, title: str, depth: int, *, group: bool = False) -> None:
        self._line("started", title)

    def task_title_changed(self, title: str, depth: int) -> None:
        self._line("title changed", title)

    def task_completed(self, title: str, depth: int) -> None:
        self._line("completed", title)

    def task_skipped(self, title: str, depth: int) -> None:
        self._line("skipped", title)

    def task_failed(self, title: str, depth: int, error: BaseException) -> None:
        self._line("failed", f"{title}: {error}")

    def warn(self, message: str) -> None:
        self._line("warning", message)


class RichRenderer:
    """Interactive renderer: a spinner while a leaf runs, a marker when done.

    Group titles are printed when the group starts; children are indented
    under their parent.
    """

    def __init__(self, console: Console | None = None, *, show_skipped: bool = False) -> None:
        self.console = console or Console()
        self.show_skipped = show_skipped
        self._status: Status | None = None

    @staticmethod
    def _indent(depth: int) -> str:
        return "  " * depth

    def _stop_status(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None

    def task_started(self, title: str, depth: int, *, group: bool = False) -> None:
        self._stop_status()
        if group:
            self.console.print(f"{self._indent(depth)}[bold]❯ {escape(title)}[/bold]")
            return
        self._status = self.console.status(f"{self._indent(depth)}{escape(title)}")
        self._status.start()

    def task_title_changed(self, title: str, depth: int) -> None:
        if self._status is not None:
            self._status.update(f"{self._indent(depth)}{escape(title)}")

    def task_completed(self, title: str, depth: int) -> None:
        self._stop_status()
        self.console.print(f"{self._indent(depth)}[green]✔[/green] {escape(title)}")

    def task_skipped(self, title: str, depth: int) -> None:
        if self.show_skipped:
            self.console.print(f"{self._indent(depth)}[dim]↓ {escape(title)} [skipped][/dim]")

    def task_failed(self, title: str, depth: int, error: BaseException) -> None:
        self._stop_status()
        self.console.print(f"{self._indent(depth)}[red]✖[/red] {escape(title)}")

    def warn(self, message: str) -> None:
        self._stop_status()
        self.console.print(f"[yellow]⚠️  {escape(message)}[/yellow]")


def create_renderer(name: str, console: Console | None = None) -> ProgressRenderer:
    """Build a renderer from its configuration name.

    Raises:
        ValueError: If the name is unknown
    """
    if name == "default":
        return RichRenderer(console)
    if name == "verbose":
        return VerboseRenderer(console)
    if name == "silent":
        return SilentRenderer()
    raise ValueError(f"Unknown renderer: {name}")
