"""
In-memory store, primarily for testing and dry runs.
"""
from __future__ import annotations

from typing import Iterable

from .exceptions import DuplicateError, NotFoundError
from .model import (
    Cell,
    CellUpdate,
    Note,
    Notebook,
    NotebookUpdate,
    NoteUpdate,
    Tag,
)
from .store import BaseStore
from .types import CellType
from .utils import new_id, now_ms, revalidate

__all__ = [
    "MemoryStore",
]


class MemoryStore(BaseStore):
    """
    Store keeping all entities in dicts. Entities returned to the caller are
    copies; mutating them has no effect on the store.
    """

    _notebooks: dict[str, Notebook]
    _notes: dict[str, Note]
    """Mapping of note id to note, without cells or tags populated"""

    _cells: dict[str, list[Cell]]
    """Mapping of note id to its cells in order"""

    _tags: dict[str, Tag]
    _note_tags: dict[str, list[str]]
    """Mapping of note id to associated tag ids"""

    def __init__(self):
        self._notebooks = dict()
        self._notes = dict()
        self._cells = dict()
        self._tags = dict()
        self._note_tags = dict()

    # notebooks

    def list_notebooks(self) -> list[Notebook]:
        notebooks = sorted(
            self._notebooks.values(), key=lambda n: (n.sort_order, n.name)
        )
        return [n.model_copy() for n in notebooks]

    def get_notebook(self, notebook_id: str) -> Notebook | None:
        notebook = self._notebooks.get(notebook_id)
        return notebook.model_copy() if notebook else None

    def create_notebook(
        self, name: str, parent_id: str | None = None
    ) -> Notebook:
        if parent_id is not None and parent_id not in self._notebooks:
            raise NotFoundError("Notebook", parent_id)

        now = now_ms()

        notebook = Notebook(
            notebook_id=new_id(),
            name=name,
            parent_id=parent_id,
            sort_order=self._next_notebook_order(parent_id),
            created_at=now,
            updated_at=now,
        )
        self._notebooks[notebook.notebook_id] = notebook

        return notebook.model_copy()

    def update_notebook(self, notebook_id: str, update: NotebookUpdate):
        notebook = self._get_notebook(notebook_id)
        changes = update.changes()

        parent_id = changes.get("parent_id", notebook.parent_id)

        if parent_id != notebook.parent_id:
            self._check_parent(notebook_id, parent_id)

            if "sort_order" not in changes:
                changes["sort_order"] = self._next_notebook_order(parent_id)

        self._notebooks[notebook_id] = revalidate(
            notebook, changes | {"updated_at": now_ms()}
        )

    def delete_notebook(self, notebook_id: str):
        self._get_notebook(notebook_id)

        for note in [
            n for n in self._notes.values() if n.notebook_id == notebook_id
        ]:
            self.delete_note(note.note_id, permanent=True)

        for child in [
            n for n in self._notebooks.values() if n.parent_id == notebook_id
        ]:
            self.delete_notebook(child.notebook_id)

        del self._notebooks[notebook_id]

    # notes

    def create_note(
        self,
        notebook_id: str,
        title: str = "Untitled",
        source_id: str | None = None,
    ) -> Note:
        self._get_notebook(notebook_id)

        if source_id is not None and self.get_note_by_source_id(source_id):
            raise DuplicateError("Note source id", source_id)

        siblings = [
            n for n in self._notes.values() if n.notebook_id == notebook_id
        ]
        now = now_ms()

        note = Note(
            note_id=new_id(),
            notebook_id=notebook_id,
            title=title,
            sort_order=max((n.sort_order for n in siblings), default=-1) + 1,
            created_at=now,
            updated_at=now,
            source_id=source_id,
        )
        self._notes[note.note_id] = note
        self._cells[note.note_id] = []
        self._note_tags[note.note_id] = []

        self.create_cell(note.note_id, CellType.MARKDOWN)

        return self._populate(self._notes[note.note_id])

    def get_note(self, note_id: str) -> Note | None:
        note = self._notes.get(note_id)
        return self._populate(note) if note else None

    def get_note_by_source_id(self, source_id: str) -> Note | None:
        note = next(
            (n for n in self._notes.values() if n.source_id == source_id),
            None,
        )
        return self._populate(note) if note else None

    def list_notes(self, notebook_id: str) -> list[Note]:
        notes = sorted(
            (
                n
                for n in self._notes.values()
                if n.notebook_id == notebook_id and not n.is_trashed
            ),
            key=lambda n: (n.sort_order, -n.updated_at),
        )
        return [self._populate(n) for n in notes]

    def list_favorite_notes(self) -> list[Note]:
        return self._recent(
            n
            for n in self._notes.values()
            if n.is_favorite and not n.is_trashed
        )

    def list_trashed_notes(self) -> list[Note]:
        return self._recent(n for n in self._notes.values() if n.is_trashed)

    def list_recent_notes(self, limit: int = 20) -> list[Note]:
        return self._recent(
            n for n in self._notes.values() if not n.is_trashed
        )[:limit]

    def update_note(self, note_id: str, update: NoteUpdate):
        note = self._get_note(note_id)
        changes = {"updated_at": now_ms()} | update.changes()

        if "notebook_id" in changes:
            self._get_notebook(changes["notebook_id"])

        self._notes[note_id] = revalidate(note, changes)

    def delete_note(self, note_id: str, permanent: bool = False):
        self._get_note(note_id)

        if permanent:
            del self._notes[note_id]
            del self._cells[note_id]
            del self._note_tags[note_id]
        else:
            self.update_note(note_id, NoteUpdate(is_trashed=True))

    # cells

    def list_cells(self, note_id: str) -> list[Cell]:
        self._get_note(note_id)
        return [c.model_copy() for c in self._cells[note_id]]

    def create_cell(
        self,
        note_id: str,
        cell_type: CellType,
        after_cell_id: str | None = None,
    ) -> Cell:
        self._get_note(note_id)
        cells = self._cells[note_id]

        if after_cell_id is not None:
            index = next(
                (
                    i + 1
                    for i, c in enumerate(cells)
                    if c.cell_id == after_cell_id
                ),
                0,
            )
        else:
            index = len(cells)

        cell = Cell(
            cell_id=new_id(),
            cell_type=cell_type,
            **self._default_attributes(cell_type),
        )
        cells.insert(index, cell)

        self._reindex(note_id)
        self._touch(note_id)

        return self._cells[note_id][index].model_copy()

    def update_cell(self, note_id: str, cell_id: str, update: CellUpdate):
        self._get_note(note_id)
        cells = self._cells[note_id]
        index = self._cell_index(note_id, cell_id)
        changes = update.changes()
        new_index = changes.pop("sort_order", None)

        if changes:
            cells[index] = revalidate(cells[index], changes)
            self._touch(note_id)

        # positions are only changed by moving, keeping them dense
        if new_index is not None:
            self.move_cell(note_id, cell_id, new_index)

    def delete_cell(self, note_id: str, cell_id: str):
        self._get_note(note_id)
        index = self._cell_index(note_id, cell_id)

        del self._cells[note_id][index]

        self._reindex(note_id)
        self._touch(note_id)

    def move_cell(self, note_id: str, cell_id: str, new_index: int):
        self._get_note(note_id)
        cells = self._cells[note_id]
        index = self._cell_index(note_id, cell_id)
        new_index = max(0, min(new_index, len(cells) - 1))

        if index == new_index:
            return

        cell = cells.pop(index)
        cells.insert(new_index, cell)

        self._reindex(note_id)
        self._touch(note_id)

    # tags

    def list_tags(self) -> list[Tag]:
        return [
            t.model_copy()
            for t in sorted(self._tags.values(), key=lambda t: t.name)
        ]

    def get_tag_by_name(self, name: str) -> Tag | None:
        tag = next((t for t in self._tags.values() if t.name == name), None)
        return tag.model_copy() if tag else None

    def create_tag(self, name: str) -> Tag:
        if self.get_tag_by_name(name):
            raise DuplicateError("Tag", name)

        tag = Tag(tag_id=new_id(), name=name)
        self._tags[tag.tag_id] = tag

        return tag.model_copy()

    def add_tag_to_note(self, note_id: str, tag_id: str):
        self._get_note(note_id)

        if tag_id not in self._tags:
            raise NotFoundError("Tag", tag_id)

        note_tags = self._note_tags[note_id]
        if tag_id not in note_tags:
            note_tags.append(tag_id)

    def delete_tag(self, tag_id: str):
        if tag_id not in self._tags:
            raise NotFoundError("Tag", tag_id)

        for note_tags in self._note_tags.values():
            if tag_id in note_tags:
                note_tags.remove(tag_id)

        del self._tags[tag_id]

    def remove_tag_from_note(self, note_id: str, tag_id: str):
        self._get_note(note_id)

        note_tags = self._note_tags[note_id]
        if tag_id in note_tags:
            note_tags.remove(tag_id)

    def list_notes_by_tag(self, tag_id: str) -> list[Note]:
        return self._recent(
            self._notes[note_id]
            for note_id, tag_ids in self._note_tags.items()
            if tag_id in tag_ids and not self._notes[note_id].is_trashed
        )

    # internal

    def _get_notebook(self, notebook_id: str) -> Notebook:
        notebook = self._notebooks.get(notebook_id)
        if notebook is None:
            raise NotFoundError("Notebook", notebook_id)
        return notebook

    def _get_note(self, note_id: str) -> Note:
        note = self._notes.get(note_id)
        if note is None:
            raise NotFoundError("Note", note_id)
        return note

    def _cell_index(self, note_id: str, cell_id: str) -> int:
        index = next(
            (
                i
                for i, c in enumerate(self._cells[note_id])
                if c.cell_id == cell_id
            ),
            None,
        )
        if index is None:
            raise NotFoundError("Cell", cell_id)
        return index

    def _next_notebook_order(self, parent_id: str | None) -> int:
        return (
            max(
                (
                    n.sort_order
                    for n in self._notebooks.values()
                    if n.parent_id == parent_id
                ),
                default=-1,
            )
            + 1
        )

    def _recent(self, notes: Iterable[Note]) -> list[Note]:
        """
        Get populated notes, most recently updated first.
        """
        return [
            self._populate(n)
            for n in sorted(notes, key=lambda n: n.updated_at, reverse=True)
        ]

    def _reindex(self, note_id: str):
        """
        Renumber cell positions to be dense.
        """
        self._cells[note_id] = [
            c.model_copy(update={"sort_order": i})
            for i, c in enumerate(self._cells[note_id])
        ]

    def _touch(self, note_id: str):
        self._notes[note_id] = self._notes[note_id].model_copy(
            update={"updated_at": now_ms()}
        )

    def _populate(self, note: Note) -> Note:
        """
        Get copy of note with cells and tags filled in.
        """
        tags = sorted(
            self._tags[tag_id].name for tag_id in self._note_tags[note.note_id]
        )
        return note.model_copy(
            update={
                "cells": [c.model_copy() for c in self._cells[note.note_id]],
                "tags": tags,
            }
        )
