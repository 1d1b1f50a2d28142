"""
Abstract interface to the local note store.

A store is an explicit handle: callers open it, pass it to whatever needs it
and close it when done. Nothing in this package keeps a module-level
connection.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from types import TracebackType
from typing import Self

from .exceptions import NotFoundError, ValidationError
from .model import (
    Cell,
    CellUpdate,
    Note,
    Notebook,
    NotebookUpdate,
    NoteUpdate,
    Tag,
)
from .types import DEFAULT_DIAGRAM_TYPE, DEFAULT_LANGUAGE, CellType

__all__ = [
    "BaseStore",
    "INBOX_NAME",
]

INBOX_NAME = "Inbox"
"""
Name of the notebook which receives notes with no explicit destination.
"""


class BaseStore(ABC):
    """
    CRUD operations over notebooks, notes, cells and tags.

    Implementations must uphold these invariants:

    - A notebook's parent, if any, exists when the notebook is created
    - Cell positions within a note are dense (`0..N-1`) after any insert,
      delete or move
    - Tag names are unique (case-sensitive)
    - Note source ids are unique
    """

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ):
        self.close()

    def close(self):
        """
        Release any resources held by this store.
        """

    # notebooks

    @abstractmethod
    def list_notebooks(self) -> list[Notebook]:
        """
        Get all notebooks ordered by position, then name.
        """
        ...

    @abstractmethod
    def get_notebook(self, notebook_id: str) -> Notebook | None:
        ...

    @abstractmethod
    def create_notebook(
        self, name: str, parent_id: str | None = None
    ) -> Notebook:
        """
        Create notebook as the last child of the given parent, which must
        already exist.
        """
        ...

    @abstractmethod
    def update_notebook(self, notebook_id: str, update: NotebookUpdate):
        """
        Rename, reorder or move notebook. A moved notebook becomes the last
        child of its new parent unless `sort_order` is also given; it can't
        be moved under itself or one of its descendants.
        """
        ...

    @abstractmethod
    def delete_notebook(self, notebook_id: str):
        """
        Delete notebook along with its notes and child notebooks.
        """
        ...

    def list_existing_names(self) -> list[str]:
        """
        Get names of all notebooks.
        """
        return [notebook.name for notebook in self.list_notebooks()]

    def ensure_inbox(self) -> Notebook:
        """
        Get the inbox notebook, creating it if it doesn't exist.
        """
        inbox = next(
            (n for n in self.list_notebooks() if n.name == INBOX_NAME), None
        )
        return inbox or self.create_notebook(INBOX_NAME)

    # notes

    @abstractmethod
    def create_note(
        self,
        notebook_id: str,
        title: str = "Untitled",
        source_id: str | None = None,
    ) -> Note:
        """
        Create note as the last note of the given notebook. The new note
        contains a single empty markdown cell.
        """
        ...

    @abstractmethod
    def get_note(self, note_id: str) -> Note | None:
        ...

    @abstractmethod
    def get_note_by_source_id(self, source_id: str) -> Note | None:
        """
        Lookup note by the foreign identifier it was imported from.
        """
        ...

    @abstractmethod
    def list_notes(self, notebook_id: str) -> list[Note]:
        """
        Get notes of the given notebook which are not in the trash.
        """
        ...

    @abstractmethod
    def list_favorite_notes(self) -> list[Note]:
        """
        Get favorite notes not in the trash, most recently updated first.
        """
        ...

    @abstractmethod
    def list_trashed_notes(self) -> list[Note]:
        """
        Get notes in the trash, most recently updated first.
        """
        ...

    @abstractmethod
    def list_recent_notes(self, limit: int = 20) -> list[Note]:
        """
        Get most recently updated notes not in the trash.
        """
        ...

    @abstractmethod
    def update_note(self, note_id: str, update: NoteUpdate):
        """
        Apply update; `updated_at` is set to the current time unless
        explicitly provided. Setting `notebook_id` moves the note to that
        notebook, which must exist.
        """
        ...

    def restore_note(self, note_id: str):
        """
        Move note out of the trash.
        """
        self.update_note(note_id, NoteUpdate(is_trashed=False))

    def toggle_favorite(self, note_id: str):
        note = self.get_note(note_id)
        if note is None:
            raise NotFoundError("Note", note_id)

        self.update_note(note_id, NoteUpdate(is_favorite=not note.is_favorite))

    @abstractmethod
    def delete_note(self, note_id: str, permanent: bool = False):
        """
        Move note to the trash, or delete it along with its cells if
        `permanent`.
        """
        ...

    # cells

    @abstractmethod
    def list_cells(self, note_id: str) -> list[Cell]:
        ...

    @abstractmethod
    def create_cell(
        self,
        note_id: str,
        cell_type: CellType,
        after_cell_id: str | None = None,
    ) -> Cell:
        """
        Create empty cell at the end of the note, or directly after
        `after_cell_id` if given.
        """
        ...

    @abstractmethod
    def update_cell(self, note_id: str, cell_id: str, update: CellUpdate):
        ...

    @abstractmethod
    def delete_cell(self, note_id: str, cell_id: str):
        ...

    @abstractmethod
    def move_cell(self, note_id: str, cell_id: str, new_index: int):
        ...

    def convert_cell(self, note_id: str, cell_id: str, cell_type: CellType):
        """
        Change a cell's type, resetting its type-specific attribute.
        """
        self.update_cell(
            note_id,
            cell_id,
            CellUpdate(
                cell_type=cell_type, **self._default_attributes(cell_type)
            ),
        )

    # tags

    @abstractmethod
    def list_tags(self) -> list[Tag]:
        ...

    @abstractmethod
    def get_tag_by_name(self, name: str) -> Tag | None:
        ...

    @abstractmethod
    def create_tag(self, name: str) -> Tag:
        ...

    @abstractmethod
    def delete_tag(self, tag_id: str):
        """
        Delete tag, detaching it from all notes.
        """
        ...

    @abstractmethod
    def add_tag_to_note(self, note_id: str, tag_id: str):
        """
        Associate tag with note; no-op if already associated.
        """
        ...

    @abstractmethod
    def remove_tag_from_note(self, note_id: str, tag_id: str):
        """
        Dissociate tag from note; no-op if not associated.
        """
        ...

    @abstractmethod
    def list_notes_by_tag(self, tag_id: str) -> list[Note]:
        """
        Get notes with the given tag which are not in the trash, most
        recently updated first.
        """
        ...

    def ensure_tag(self, name: str) -> Tag:
        """
        Lookup tag by name, creating it if it doesn't exist.
        """
        return self.get_tag_by_name(name) or self.create_tag(name)

    def _check_parent(self, notebook_id: str, parent_id: str | None):
        """
        Ensure notebook can be moved under the given parent.
        """
        ancestor_id = parent_id

        while ancestor_id is not None:
            if ancestor_id == notebook_id:
                raise ValidationError(
                    [
                        f"Notebook '{notebook_id}' can't be moved under "
                        "itself or its descendant"
                    ]
                )

            ancestor = self.get_notebook(ancestor_id)
            if ancestor is None:
                raise NotFoundError("Notebook", ancestor_id)

            ancestor_id = ancestor.parent_id

    @staticmethod
    def _default_attributes(cell_type: CellType) -> dict:
        return {
            "language": DEFAULT_LANGUAGE
            if cell_type is CellType.CODE
            else None,
            "diagram_type": DEFAULT_DIAGRAM_TYPE
            if cell_type is CellType.DIAGRAM
            else None,
        }
