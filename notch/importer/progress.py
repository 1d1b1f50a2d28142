"""
Progress reporting of a library import.
"""
from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from enum import Enum
from logging import Logger
from typing import Callable, TypeAlias

__all__ = [
    "ImportPhase",
    "ImportProgress",
    "ProgressCallback",
    "ProgressReporter",
]


class ImportPhase(Enum):
    """
    Phase of an import, also its state.
    """

    SCANNING = "scanning"
    """Reading notebook metadata and ordering notebooks"""

    IMPORTING = "importing"
    """Creating notebooks and notes"""

    DONE = "done"
    """Finished, possibly with per-record errors or cancelled"""

    FAILED = "failed"
    """Library could not be read at all"""

    @property
    def is_terminal(self) -> bool:
        return self in (ImportPhase.DONE, ImportPhase.FAILED)


@dataclass(kw_only=True)
class ImportProgress:
    """
    Snapshot of import progress.
    """

    phase: ImportPhase = ImportPhase.SCANNING
    current_notebook: str | None = None
    current_note: str | None = None
    notebooks_total: int = 0
    notebooks_completed: int = 0

    notes_total: int = 0
    """
    Notes completed in previous notebooks plus the notes of the current
    notebook; grows as notebooks are visited.
    """

    notes_completed: int = 0


ProgressCallback: TypeAlias = Callable[[ImportProgress], None]


class ProgressReporter:
    """
    Maintains progress of an import and pushes a copy to the callback upon
    each change. Errors raised by the callback are logged and otherwise
    ignored.
    """

    progress: ImportProgress

    _callback: ProgressCallback | None
    _logger: Logger

    def __init__(
        self,
        callback: ProgressCallback | None = None,
        *,
        logger: Logger | None = None,
    ):
        self.progress = ImportProgress()
        self._callback = callback
        self._logger = logger or logging.getLogger()

    def scanned(self, notebooks_total: int):
        self.progress.notebooks_total = notebooks_total
        self.progress.phase = ImportPhase.IMPORTING
        self._emit()

    def begin_notebook(self, name: str):
        self.progress.current_notebook = name
        self.progress.current_note = None
        self._emit()

    def begin_notes(self, note_count: int):
        """
        Register notes of the current notebook; no snapshot is pushed until
        the first note begins.
        """
        self.progress.notes_total = self.progress.notes_completed + note_count

    def begin_note(self, title: str):
        self.progress.current_note = title
        self._emit()

    def end_note(self):
        self.progress.notes_completed += 1

    def end_notebook(self):
        self.progress.notebooks_completed += 1
        self.progress.notes_total = self.progress.notes_completed
        self.progress.current_note = None
        self._emit()

    def finish(self, phase: ImportPhase):
        assert phase.is_terminal
        self.progress.phase = phase
        self.progress.current_notebook = None
        self.progress.current_note = None
        self._emit()

    def _emit(self):
        if self._callback is None:
            return

        try:
            self._callback(dataclasses.replace(self.progress))
        except Exception as e:
            self._logger.warning(f"Progress callback failed: {e}")
