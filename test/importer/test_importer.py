"""
Test import of Quiver libraries.
"""

from pathlib import Path
from threading import Event

from conftest import CREATED_AT, UPDATED_AT, LibraryBuilder
from pytest import raises

from notch import *


def notebooks_by_name(store: BaseStore) -> dict[str, Notebook]:
    return {n.name: n for n in store.list_notebooks()}


def test_import(library: LibraryBuilder, any_store: BaseStore):
    """
    Import a small library into each store implementation.
    """
    work = library.notebook("Work")
    library.note(work, "Meeting", tags=["work"])
    library.note(work, "Todo")

    home = library.notebook("Home")
    library.note(home, "Groceries")

    result = import_library(any_store, library.root)

    assert result.ok
    assert result.notebooks_imported == 2
    assert result.notebooks_skipped == 0
    assert result.notes_imported == 3
    assert result.notes_failed == 0

    notebooks = notebooks_by_name(any_store)
    assert set(notebooks) == {"Work", "Home"}

    notes = any_store.list_notes(notebooks["Work"].notebook_id)
    assert sorted(n.title for n in notes) == ["Meeting", "Todo"]


def test_hierarchy(library: LibraryBuilder, store: MemoryStore):
    """
    Nested notebooks are created under their parents regardless of folder
    order.
    """
    library.notebook("Archive", children=["nb-2023"])
    library.notebook("2023", children=["nb-Q1"])
    library.notebook("Q1")
    library.notebook("Loose")

    result = import_library(store, library.root)

    assert result.ok
    assert result.notebooks_imported == 4

    notebooks = notebooks_by_name(store)
    assert notebooks["Archive"].parent_id is None
    assert notebooks["Loose"].parent_id is None
    assert notebooks["2023"].parent_id == notebooks["Archive"].notebook_id
    assert notebooks["Q1"].parent_id == notebooks["2023"].notebook_id


def test_skip_duplicates(library: LibraryBuilder, store: MemoryStore):
    """
    Skipping a duplicate notebook is shallow: its children are imported at
    the top level, its notes are not.
    """
    store.create_notebook("work")

    work = library.notebook("Work", children=["nb-Projects"])
    library.note(work, "Skipped")
    projects = library.notebook("Projects")
    library.note(projects, "Roadmap")

    report = scan_for_duplicates(library.root, store)
    assert report.colliding_names == ["Work"]

    result = import_library(store, library.root, skip_duplicates=True)

    assert result.ok
    assert result.notebooks_imported == 1
    assert result.notebooks_skipped == 1
    assert result.notes_imported == 1

    notebooks = notebooks_by_name(store)
    assert set(notebooks) == {"work", "Projects"}
    assert notebooks["Projects"].parent_id is None
    assert store.get_note_by_source_id("note-Skipped") is None
    assert store.get_note_by_source_id("note-Roadmap") is not None


def test_keep_duplicates(library: LibraryBuilder, store: MemoryStore):
    store.create_notebook("Work")
    library.notebook("Work")

    result = import_library(store, library.root)

    assert result.notebooks_imported == 1
    assert result.notebooks_skipped == 0
    assert [n.name for n in store.list_notebooks()] == ["Work", "Work"]


def test_invalid_notebook(library: LibraryBuilder, store: MemoryStore):
    """
    Notebook with malformed metadata is reported and the rest are imported.
    """
    library.notebook("A")
    broken = library.notebook("B")
    library.notebook("C")

    (broken / "meta.json").write_text("{broken")

    result = import_library(store, library.root)

    assert result.notebooks_imported == 2
    assert len(result.errors) == 1

    issue = result.errors[0]
    assert issue.title == "nb-B.qvnotebook"
    assert issue.path == "nb-B.qvnotebook"
    assert "meta.json" in issue.message

    assert set(notebooks_by_name(store)) == {"A", "C"}


def test_invalid_note(library: LibraryBuilder, store: MemoryStore):
    """
    Note which can't be read is reported and nothing is created for it.
    """
    notebook = library.notebook("Notebook")
    note_dirs = [library.note(notebook, f"Note {i}") for i in range(1, 6)]

    (note_dirs[2] / "content.json").unlink()

    result = import_library(store, library.root)

    assert result.notes_imported == 4
    assert result.notes_failed == 1
    assert len(result.errors) == 1

    issue = result.errors[0]
    assert issue.title == "Note 3"
    assert issue.path == "nb-Notebook.qvnotebook/note-Note 3.qvnote"

    assert store.get_note_by_source_id("note-Note 3") is None
    notebook_id = notebooks_by_name(store)["Notebook"].notebook_id
    assert len(store.list_notes(notebook_id)) == 4


def test_invalid_note_meta(library: LibraryBuilder, store: MemoryStore):
    """
    Note with unreadable metadata is reported by its folder name.
    """
    notebook = library.notebook("Notebook")
    note_dir = library.note(notebook, "Broken")
    (note_dir / "meta.json").write_text("[")

    result = import_library(store, library.root)

    assert result.notes_failed == 1
    assert result.errors[0].title == "note-Broken.qvnote"


def test_note(library: LibraryBuilder, store: MemoryStore):
    """
    Note keeps its foreign uuid and original timestamps.
    """
    notebook = library.notebook("Notebook")
    library.note(notebook, "Note", uuid="abc-123")

    import_library(store, library.root)

    note = store.get_note_by_source_id("abc-123")
    assert note is not None
    assert note.title == "Note"
    assert note.created_at == CREATED_AT * 1000
    assert note.updated_at == UPDATED_AT * 1000
    assert note.notebook_id == notebooks_by_name(store)["Notebook"].notebook_id


def test_cells(library: LibraryBuilder, store: MemoryStore):
    """
    Cells are created in order with normalized attributes, replacing the
    placeholder cell.
    """
    notebook = library.notebook("Notebook")
    library.note(
        notebook,
        "Note",
        cells=[
            {"type": "text", "data": "<p>Hello</p>"},
            {"type": "code", "language": "python", "data": "print()"},
            {"type": "code", "data": "x = 1"},
            {"type": "diagram", "diagramType": "sequence", "data": "A->B"},
            {"type": "diagram", "diagramType": "gantt", "data": "C->D"},
            {"type": "markdown", "data": "# Heading"},
            {"type": "latex", "data": "x^2"},
            {"type": "video", "data": "clip"},
        ],
    )

    import_library(store, library.root)

    note = store.get_note_by_source_id("note-Note")
    assert note is not None

    cells = store.list_cells(note.note_id)
    assert [(c.cell_type, c.data) for c in cells] == [
        (CellType.TEXT, "<p>Hello</p>"),
        (CellType.CODE, "print()"),
        (CellType.CODE, "x = 1"),
        (CellType.DIAGRAM, "A->B"),
        (CellType.DIAGRAM, "C->D"),
        (CellType.MARKDOWN, "# Heading"),
        (CellType.LATEX, "x^2"),
        (CellType.TEXT, "clip"),
    ]
    assert [c.sort_order for c in cells] == list(range(8))

    assert cells[1].language == "python"
    assert cells[2].language == "javascript"
    assert cells[3].diagram_type is DiagramType.SEQUENCE
    assert cells[4].diagram_type is None
    assert all(
        c.language is None for c in cells if c.cell_type is not CellType.CODE
    )


def test_empty_note(library: LibraryBuilder, store: MemoryStore):
    """
    Note without cells or content title gets no cells and the title from its
    metadata.
    """
    notebook = library.notebook("Notebook")
    note_dir = library.note(notebook, "From meta")
    library.write_json(note_dir / "content.json", {"cells": None})

    result = import_library(store, library.root)
    assert result.ok

    note = store.get_note_by_source_id("note-From meta")
    assert note is not None
    assert note.title == "From meta"
    assert note.cells == []


def test_tags(library: LibraryBuilder, store: MemoryStore):
    """
    Tags are created once and shared between notes.
    """
    notebook = library.notebook("Notebook")
    library.note(notebook, "A", tags=["python", "work", "python"])
    library.note(notebook, "B", tags=["python"])
    library.note(notebook, "C")

    import_library(store, library.root)

    assert [t.name for t in store.list_tags()] == ["python", "work"]

    notes = {
        n.title: n
        for n in store.list_notes(
            notebooks_by_name(store)["Notebook"].notebook_id
        )
    }
    assert notes["A"].tags == ["python", "work"]
    assert notes["B"].tags == ["python"]
    assert notes["C"].tags == []


def test_hex_escapes(library: LibraryBuilder, store: MemoryStore):
    """
    Files containing `\\xHH` escapes are repaired before parsing.
    """
    notebook = library.notebook("Notebook")
    note_dir = library.note(notebook, "Escaped")

    (note_dir / "content.json").write_text(
        r'{"title": "Hello\x21", "cells": [{"type": "text", "data": "a\x3cb"}]}'
    )

    result = import_library(store, library.root)
    assert result.ok

    note = store.get_note_by_source_id("note-Escaped")
    assert note is not None
    assert note.title == "Hello!"
    assert note.cells[0].data == "a<b"


def test_missing_library(tmp_path: Path, store: MemoryStore):
    """
    Library which can't be listed fails the import with a single error.
    """
    path = tmp_path / "Missing.qvlibrary"
    importer = LibraryImporter(store, path)

    result = importer.run()

    assert importer.state is ImportPhase.FAILED
    assert not result.ok
    assert len(result.errors) == 1
    assert result.errors[0].title == "Library"
    assert result.errors[0].path == str(path)
    assert result.notebooks_imported == 0
    assert result.notes_imported == 0
    assert store.list_notebooks() == []


def test_cancel(library: LibraryBuilder, store: MemoryStore):
    """
    Cancelled import stops before the next notebook.
    """
    library.notebook("A")
    library.notebook("B")

    cancel = Event()
    cancel.set()

    importer = LibraryImporter(store, library.root)
    result = importer.run(cancel=cancel)

    assert importer.state is ImportPhase.DONE
    assert result.cancelled
    assert not result.ok
    assert result.notebooks_imported == 0
    assert store.list_notebooks() == []


def test_cancel_during_import(library: LibraryBuilder, store: MemoryStore):
    """
    Import cancelled while in progress stops at the next notebook.
    """
    notebook_a = library.notebook("A")
    library.note(notebook_a, "Note A")
    notebook_b = library.notebook("B")
    library.note(notebook_b, "Note B")

    cancel = Event()

    def on_progress(progress: ImportProgress):
        if progress.notebooks_completed == 1:
            cancel.set()

    importer = LibraryImporter(store, library.root, on_progress=on_progress)
    result = importer.run(cancel=cancel)

    assert importer.state is ImportPhase.DONE
    assert result.cancelled
    assert result.notebooks_imported == 1
    assert result.notes_imported == 1
    assert set(notebooks_by_name(store)) == {"A"}
    assert store.get_note_by_source_id("note-Note B") is None


class FailingTagStore(MemoryStore):
    """
    Store which fails to tag notes.
    """

    def add_tag_to_note(self, note_id: str, tag_id: str):
        raise RuntimeError("Failed to tag note")


class FailingCellStore(MemoryStore):
    """
    Store which fails to update cells.
    """

    def update_cell(self, note_id: str, cell_id: str, update: CellUpdate):
        raise RuntimeError("Failed to update cell")


def test_note_rollback(library: LibraryBuilder):
    """
    Note which fails after being created is removed; its siblings are
    still imported.
    """
    store = FailingTagStore()

    notebook = library.notebook("Notebook")
    library.note(notebook, "Tagged", tags=["work"])
    library.note(notebook, "Plain")

    result = import_library(store, library.root)

    assert result.notebooks_imported == 1
    assert result.notes_imported == 1
    assert result.notes_failed == 1
    assert len(result.errors) == 1
    assert result.errors[0].title == "Tagged"
    assert result.errors[0].message == "Failed to tag note"

    assert store.get_note_by_source_id("note-Tagged") is None
    assert store.get_note_by_source_id("note-Plain") is not None

    notes = store.list_notes(notebooks_by_name(store)["Notebook"].notebook_id)
    assert [n.title for n in notes] == ["Plain"]


def test_note_rollback_cells(library: LibraryBuilder):
    store = FailingCellStore()

    notebook = library.notebook("Notebook")
    library.note(notebook, "Note")

    result = import_library(store, library.root)

    assert result.notes_imported == 0
    assert result.notes_failed == 1
    assert store.get_note_by_source_id("note-Note") is None
    assert store.list_trashed_notes() == []


def test_reimport(library: LibraryBuilder, store: MemoryStore):
    """
    Importing again can't create notes with the same source ids.
    """
    notebook = library.notebook("Notebook")
    library.note(notebook, "A")
    library.note(notebook, "B")

    assert import_library(store, library.root).ok

    result = import_library(store, library.root)

    assert result.notebooks_imported == 1
    assert result.notes_imported == 0
    assert result.notes_failed == 2
    assert len(result.errors) == 2

    # skipping the notebook skips its notes too
    result = import_library(store, library.root, skip_duplicates=True)

    assert result.ok
    assert result.notebooks_skipped == 1
    assert result.notes_imported == 0


def test_cycle(library: LibraryBuilder, store: MemoryStore):
    """
    Notebooks forming a cycle are imported with the cycle broken.
    """
    library.notebook("A", children=["nb-B"])
    library.notebook("B", children=["nb-A"])

    result = import_library(store, library.root)

    assert result.notebooks_imported == 2
    assert len(result.errors) == 1
    assert result.errors[0].title == "B"
    assert "cycle" in result.errors[0].message

    notebooks = notebooks_by_name(store)
    assert notebooks["B"].parent_id is None
    assert notebooks["A"].parent_id == notebooks["B"].notebook_id


def test_duplicate_uuid(library: LibraryBuilder, store: MemoryStore):
    """
    Second notebook reusing a uuid is reported and not imported.
    """
    library.notebook("A")

    # sorts after the original
    copy_dir = library.root / "x-copy.qvnotebook"
    copy_dir.mkdir()
    library.write_json(copy_dir / "meta.json", {"name": "Copy", "uuid": "nb-A"})

    result = import_library(store, library.root)

    assert result.notebooks_imported == 1
    assert len(result.errors) == 1
    assert result.errors[0].title == "Copy"
    assert result.errors[0].path == "x-copy.qvnotebook"


def test_single_use(library: LibraryBuilder, store: MemoryStore):
    importer = LibraryImporter(store, library.root)
    importer.run()

    with raises(AssertionError):
        importer.run()
