"""
Local data model: notebooks, notes, cells and tags.
"""
from __future__ import annotations

from typing import Self

from pydantic import BaseModel, Field, model_validator

from .types import CellType, DiagramType

__all__ = [
    "Cell",
    "CellUpdate",
    "Note",
    "NoteUpdate",
    "Notebook",
    "NotebookUpdate",
    "Tag",
]


class Notebook(BaseModel):
    """
    Container for notes, optionally nested under a parent notebook.
    """

    notebook_id: str
    name: str
    parent_id: str | None = None
    sort_order: int = 0
    """
    Position among siblings sharing the same parent.
    """

    created_at: int
    updated_at: int


class Cell(BaseModel):
    """
    Single typed content block within a note.
    """

    cell_id: str
    cell_type: CellType
    data: str = ""
    language: str | None = None
    diagram_type: DiagramType | None = None
    sort_order: int = 0
    """
    Position within the owning note; positions are dense, starting at 0.
    """

    @model_validator(mode="after")
    def validate_attribute(self) -> Self:
        if self.language is not None and self.diagram_type is not None:
            raise ValueError(
                "language and diagram_type are mutually exclusive"
            )
        return self


class Note(BaseModel):
    """
    Document made of an ordered sequence of cells.
    """

    note_id: str
    notebook_id: str
    title: str
    cells: list[Cell] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    is_favorite: bool = False
    is_trashed: bool = False
    sort_order: int = 0
    created_at: int
    updated_at: int
    source_id: str | None = None
    """
    Identifier of the foreign record this note was imported from, kept so
    that links authored in the foreign system keep resolving.
    """


class Tag(BaseModel):
    tag_id: str
    name: str


class NotebookUpdate(BaseModel):
    """
    Partial update of a notebook. Only fields explicitly set are applied;
    setting `parent_id` to `None` moves the notebook to the top level.
    """

    name: str | None = None
    parent_id: str | None = None
    sort_order: int | None = None

    def changes(self) -> dict:
        changes = self.model_dump(exclude_unset=True)
        return {
            k: v
            for k, v in changes.items()
            if v is not None or k == "parent_id"
        }


class NoteUpdate(BaseModel):
    """
    Partial update of a note. Only fields explicitly set are applied.
    """

    title: str | None = None
    notebook_id: str | None = None
    """
    Notebook to move the note to.
    """

    is_favorite: bool | None = None
    is_trashed: bool | None = None
    sort_order: int | None = None
    created_at: int | None = None
    updated_at: int | None = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude_none=True)


class CellUpdate(BaseModel):
    """
    Partial update of a cell. Only fields explicitly set are applied; setting
    `language` or `diagram_type` to `None` clears it.
    """

    cell_type: CellType | None = None
    data: str | None = None
    language: str | None = None
    diagram_type: DiagramType | None = None
    sort_order: int | None = None

    def changes(self) -> dict:
        changes = self.model_dump(exclude_unset=True)

        # only optional attributes may be cleared
        return {
            k: v
            for k, v in changes.items()
            if v is not None or k in ("language", "diagram_type")
        }
