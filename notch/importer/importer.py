"""
Import of a Quiver library into a local store.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from logging import Logger
from pathlib import Path
from threading import Event

from ..core.model import NoteUpdate
from ..core.store import BaseStore
from .duplicates import normalize_name
from .exceptions import CycleError, LibraryError, LibraryReadError
from .meta import (
    NotebookRecord,
    NoteContent,
    NoteMeta,
    load_model,
    read_notebook_record,
    to_millis,
)
from .progress import ImportPhase, ProgressCallback, ProgressReporter
from .reader import CONTENT_FILENAME, META_FILENAME, LibraryReader
from .resolver import ResolvedOrder, resolve_order

__all__ = [
    "ImportIssue",
    "ImportResult",
    "LibraryImporter",
    "import_library",
]

LIBRARY_TITLE = "Library"
"""
Title of the error recorded when the library itself can't be read.
"""

UNTITLED = "Untitled"


@dataclass(frozen=True, kw_only=True)
class ImportIssue:
    """
    Failure to import a single library record.
    """

    title: str
    """
    Best-known title of the note or name of the notebook.
    """

    path: str
    """
    Path of the record relative to the library.
    """

    message: str


@dataclass(kw_only=True)
class ImportResult:
    """
    Encapsulates statistics and errors of an import.
    """

    notebooks_imported: int = 0
    notebooks_skipped: int = 0
    """
    Number of notebooks not created since their name matched an existing
    notebook.
    """

    notes_imported: int = 0
    notes_failed: int = 0
    errors: list[ImportIssue] = field(default_factory=list)
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return not self.errors and not self.cancelled


class LibraryImporter:
    """
    Imports one library into a store. Single use: create a new importer per
    import run.

    Notebooks and notes are imported one at a time in dependency order. A
    failure to read a notebook or note is recorded in the result and the
    import moves on to the next one.
    """

    state: ImportPhase
    result: ImportResult

    _store: BaseStore
    _reader: LibraryReader
    _skip_duplicates: bool
    _reporter: ProgressReporter
    _logger: Logger

    _existing_names: set[str]
    """
    Normalized names of notebooks which existed before the import.
    """

    _local_ids: dict[str, str]
    """
    Mapping of foreign notebook uuid to id of the created notebook.
    """

    def __init__(
        self,
        store: BaseStore,
        path: Path,
        *,
        skip_duplicates: bool = False,
        on_progress: ProgressCallback | None = None,
        logger: Logger | None = None,
    ):
        """
        :param store: Store to populate
        :param path: Root folder of library
        :param skip_duplicates: Don't create notebooks whose name matches an existing notebook, case-insensitively; their children are still imported
        :param on_progress: Callback to receive progress snapshots
        :param logger: Logger to use, or `None` to use default logger
        """
        self.state = ImportPhase.SCANNING
        self.result = ImportResult()

        self._store = store
        self._reader = LibraryReader(path)
        self._skip_duplicates = skip_duplicates
        self._logger = logger or logging.getLogger()
        self._reporter = ProgressReporter(on_progress, logger=self._logger)
        self._existing_names = set()
        self._local_ids = dict()

    def run(self, *, cancel: Event | None = None) -> ImportResult:
        """
        Import the library, returning statistics and any errors. Errors are
        never raised from here.

        :param cancel: Event checked before each notebook; once set, no further notebooks are imported
        """
        assert self.state is ImportPhase.SCANNING, "Importer already run"

        root = self._reader.root

        self._existing_names = {
            normalize_name(n) for n in self._store.list_existing_names()
        }

        try:
            notebook_dirs = self._reader.list_notebook_dirs()
        except LibraryReadError as e:
            self._logger.error(f"Failed to read library: {e}")
            self.result.errors.append(
                ImportIssue(
                    title=LIBRARY_TITLE,
                    path=str(root),
                    message=f"Failed to read library: {e}",
                )
            )
            self._transition(ImportPhase.FAILED)
            return self.result

        order = self._scan(notebook_dirs)

        self._transition(ImportPhase.IMPORTING)
        self._reporter.scanned(len(order.records))

        for record in order.records:
            if cancel is not None and cancel.is_set():
                self._logger.warning("Import cancelled")
                self.result.cancelled = True
                break

            self._reporter.begin_notebook(record.name)
            self._import_notebook(record, order)
            self._reporter.end_notebook()

        self._transition(ImportPhase.DONE)

        self._logger.info(
            f"Imported {self.result.notebooks_imported} notebooks "
            f"({self.result.notebooks_skipped} skipped) and "
            f"{self.result.notes_imported} notes "
            f"({self.result.notes_failed} failed) from '{root}'"
        )

        return self.result

    def _transition(self, state: ImportPhase):
        self._logger.debug(f"Import state: {self.state.value} -> {state.value}")
        self.state = state

        if state.is_terminal:
            self._reporter.finish(state)

    def _scan(self, notebook_dirs: list[Path]) -> ResolvedOrder:
        """
        Read metadata of all notebooks and order them parents first.
        """

        records: list[NotebookRecord] = []

        for notebook_dir in notebook_dirs:
            try:
                records.append(read_notebook_record(self._reader, notebook_dir))
            except LibraryError as e:
                self._add_notebook_issue(
                    notebook_dir.name,
                    notebook_dir,
                    f"Failed to read notebook metadata: {e}",
                )

        order = resolve_order(records, strict=False)
        record_map = {r.uuid: r for r in order.records}

        for cycle in order.cycles:
            # last edge of the cycle was dropped
            record = record_map[cycle[-2]]
            self._add_notebook_issue(
                record.name,
                record.path,
                f"{CycleError(cycle)}; importing '{record.name}' without parent",
            )

        for record in order.duplicates:
            self._add_notebook_issue(
                record.name,
                record.path,
                f"Notebook uuid '{record.uuid}' already used by '{record_map[record.uuid].path.name}'",
            )

        self._logger.debug(
            f"Scanned {len(order.records)} notebooks in '{self._reader.root}'"
        )

        return order

    def _import_notebook(self, record: NotebookRecord, order: ResolvedOrder):
        """
        Create notebook and import its notes.
        """

        if (
            self._skip_duplicates
            and normalize_name(record.name) in self._existing_names
        ):
            self._logger.info(f"Skipping duplicate notebook '{record.name}'")
            self.result.notebooks_skipped += 1
            return

        # parent was already created unless it was skipped or failed
        parent_uuid = order.parents.get(record.uuid)
        parent_id = self._local_ids.get(parent_uuid) if parent_uuid else None

        try:
            notebook = self._store.create_notebook(record.name, parent_id)
        except Exception as e:
            self._add_notebook_issue(
                record.name, record.path, f"Failed to create notebook: {e}"
            )
            return

        self._local_ids[record.uuid] = notebook.notebook_id
        self.result.notebooks_imported += 1

        try:
            note_dirs = self._reader.list_note_dirs(record.path)
        except LibraryReadError as e:
            self._add_notebook_issue(
                record.name, record.path, f"Failed to list notes: {e}"
            )
            return

        self._logger.debug(
            f"Importing {len(note_dirs)} notes into notebook '{record.name}'"
        )
        self._reporter.begin_notes(len(note_dirs))

        for note_dir in note_dirs:
            self._import_note_dir(note_dir, notebook.notebook_id)
            self._reporter.end_note()

    def _import_note_dir(self, note_dir: Path, notebook_id: str):
        """
        Import note, recording any failure.
        """

        meta: NoteMeta | None = None
        meta_error: LibraryError | None = None

        try:
            meta = load_model(NoteMeta, note_dir / META_FILENAME, self._reader)
        except LibraryError as e:
            meta_error = e

        title = (meta.title if meta else "") or note_dir.name
        self._reporter.begin_note(title)

        try:
            if meta_error is not None:
                raise meta_error

            assert meta is not None
            self._import_note(note_dir, meta, notebook_id)
        except Exception as e:
            self._logger.warning(f"Failed to import note '{title}': {e}")
            self.result.notes_failed += 1
            self.result.errors.append(
                ImportIssue(
                    title=title,
                    path=self._reader.relative(note_dir),
                    message=str(e),
                )
            )
        else:
            self.result.notes_imported += 1

    def _import_note(self, note_dir: Path, meta: NoteMeta, notebook_id: str):
        """
        Create note with its cells, tags and original timestamps. Nothing is
        created if the content can't be read.
        """

        store = self._store
        content = load_model(
            NoteContent, note_dir / CONTENT_FILENAME, self._reader
        )

        try:
            resources = self._reader.list_resources(note_dir)
        except LibraryReadError as e:
            self._logger.warning(f"Failed to list resources: {e}")
            resources = []

        note = store.create_note(
            notebook_id,
            content.title or meta.title or UNTITLED,
            source_id=meta.uuid,
        )

        try:
            # replace placeholder cell
            for cell in note.cells:
                store.delete_cell(note.note_id, cell.cell_id)

            for cell_meta in content.cells:
                cell = store.create_cell(note.note_id, cell_meta.cell_type)
                store.update_cell(
                    note.note_id, cell.cell_id, cell_meta.to_update()
                )

            for tag_name in dict.fromkeys(meta.tags):
                tag = store.ensure_tag(tag_name)
                store.add_tag_to_note(note.note_id, tag.tag_id)

            store.update_note(
                note.note_id,
                NoteUpdate(
                    created_at=to_millis(meta.created_at),
                    updated_at=to_millis(meta.updated_at),
                ),
            )
        except Exception:
            store.delete_note(note.note_id, permanent=True)
            raise

        # TODO: import attachments once the store supports resources
        if resources:
            self._logger.debug(
                f"Not importing {len(resources)} resources of note '{note.title}'"
            )

    def _add_notebook_issue(self, name: str, path: Path, message: str):
        self._logger.warning(f"Notebook '{name}': {message}")
        self.result.errors.append(
            ImportIssue(
                title=name, path=self._reader.relative(path), message=message
            )
        )


def import_library(
    store: BaseStore,
    path: Path,
    *,
    skip_duplicates: bool = False,
    on_progress: ProgressCallback | None = None,
    cancel: Event | None = None,
    logger: Logger | None = None,
) -> ImportResult:
    """
    Import a Quiver library (`.qvlibrary` folder) into the store.

    Run {obj}`scan_for_duplicates` beforehand to decide whether to pass
    `skip_duplicates`.
    """
    importer = LibraryImporter(
        store,
        path,
        skip_duplicates=skip_duplicates,
        on_progress=on_progress,
        logger=logger,
    )
    return importer.run(cancel=cancel)
