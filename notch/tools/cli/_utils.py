"""
Utilities specific to CLI functionality.
"""

from __future__ import annotations

import logging
import signal
from contextlib import contextmanager
from threading import Event
from typing import TYPE_CHECKING, Any, Generator

from click import Parameter
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TaskID,
    TextColumn,
)
from rich.table import Table
from typer import Context, Typer

from ...importer import ImportIssue, ImportProgress

if TYPE_CHECKING:
    from .main import RootContext


console = Console()

rich_handler = RichHandler(
    console=console,
    rich_tracebacks=True,
    show_level=True,
    show_time=True,
    show_path=False,
)
rich_handler.setFormatter(logging.Formatter("%(message)s"))

logger = logging.getLogger("notch")
logger.setLevel(logging.INFO)
logger.addHandler(rich_handler)
logger.propagate = False


class MainTyper(Typer):
    """
    Typer app with preconfigured settings.
    """

    def __init__(self, name: str, *, help: str):
        return super().__init__(
            name=name,
            help=help,
            rich_markup_mode="markdown",
            no_args_is_help=True,
            add_completion=False,
        )


class ProgressDisplay:
    """
    Progress callback rendering import snapshots as progress bars.
    """

    _progress: Progress
    _notebooks_task: TaskID
    _notes_task: TaskID

    def __init__(self, progress: Progress):
        self._progress = progress
        self._notebooks_task = progress.add_task("Scanning", total=None)
        self._notes_task = progress.add_task("Notes", total=None)

    @classmethod
    def create_progress(cls) -> Progress:
        return Progress(
            TextColumn("{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            console=console,
            transient=True,
        )

    def __call__(self, snapshot: ImportProgress):
        self._progress.update(
            self._notebooks_task,
            description=f"Notebook {snapshot.current_notebook or ''}",
            total=snapshot.notebooks_total,
            completed=snapshot.notebooks_completed,
        )
        self._progress.update(
            self._notes_task,
            description=f"Note {snapshot.current_note or ''}",
            total=snapshot.notes_total or None,
            completed=snapshot.notes_completed,
        )


def get_root_context(ctx: Context) -> RootContext:
    from .main import RootContext

    root_context = ctx.obj
    assert isinstance(root_context, RootContext)
    return root_context


def lookup_param(ctx: Context, name: str) -> Parameter:
    """
    Lookup param by name.
    """
    param = next((p for p in ctx.command.params if p.name == name), None)
    assert param, f"Could not find param with name: {name}"
    return param


def format_issues(issues: list[ImportIssue]) -> Table:
    """
    Get table listing import errors.
    """
    table = Table("Title", "Path", "Error", title="Import errors")

    for issue in issues:
        table.add_row(issue.title, issue.path, issue.message)

    return table


@contextmanager
def cancel_on_interrupt() -> Generator[Event, None, None]:
    """
    Set the yielded event upon Ctrl-C instead of raising `KeyboardInterrupt`,
    restoring the previous handler on exit.
    """
    cancel = Event()

    def handle_signal(signum: int, frame: Any):
        if not cancel.is_set():
            logger.warning("Interrupted, stopping after current notebook")
        cancel.set()

    previous = signal.signal(signal.SIGINT, handle_signal)

    try:
        yield cancel
    finally:
        signal.signal(signal.SIGINT, previous)
