"""
Models of Quiver metadata and content files, normalized to the local type
system.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..core.model import CellUpdate
from ..core.types import CellType, DiagramType
from .exceptions import MetadataError
from .reader import META_FILENAME, LibraryReader

__all__ = [
    "CellMeta",
    "NoteContent",
    "NoteMeta",
    "NotebookMeta",
    "NotebookRecord",
    "load_model",
    "parse_json",
    "read_notebook_record",
    "repair_escapes",
    "to_millis",
]

HEX_ESCAPE_PATTERN = re.compile(r"(?<!\\)((?:\\\\)*)\\x([0-9a-fA-F]{2})")
"""
Matches a `\\xHH` escape which is not itself escaped, i.e. preceded by an even
number of backslashes.
"""

CELL_TYPES: dict[str, CellType] = {t.value: t for t in CellType}

DIAGRAM_TYPES: dict[str, DiagramType] = {
    "sequence": DiagramType.SEQUENCE,
    "flow": DiagramType.FLOW,
    "flowchart": DiagramType.FLOW,
}


def repair_escapes(text: str) -> str:
    """
    Rewrite `\\xHH` escapes, which Quiver may emit but JSON doesn't allow,
    as `\\u00HH`.
    """
    return HEX_ESCAPE_PATTERN.sub(r"\1\\u00\2", text)


def parse_json(text: str, path: Path) -> Any:
    """
    Parse JSON after repairing escapes.
    """
    try:
        return json.loads(repair_escapes(text))
    except json.JSONDecodeError as e:
        raise MetadataError(path, str(e)) from e


def to_millis(seconds: float) -> int:
    """
    Convert foreign timestamp in epoch seconds to local epoch milliseconds.
    """
    return round(seconds * 1000)


class NotebookMeta(BaseModel):
    """
    Contents of a notebook's `meta.json`.
    """

    name: str
    uuid: str
    children: list[str] = Field(default_factory=list)
    """
    Foreign ids of child notebooks.
    """

    @field_validator("children", mode="before")
    @classmethod
    def validate_children(cls, value: Any) -> Any:
        return [] if value is None else value


class NoteMeta(BaseModel):
    """
    Contents of a note's `meta.json`.
    """

    title: str = ""
    uuid: str
    created_at: float
    """Epoch seconds"""

    updated_at: float
    """Epoch seconds"""

    tags: list[str] = Field(default_factory=list)

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, value: Any) -> Any:
        return [] if value is None else value


class CellMeta(BaseModel):
    """
    Single cell of a note's `content.json`. Unrecognized cell types are
    normalized to text and unrecognized diagram types to unset.
    """

    model_config = ConfigDict(populate_by_name=True)

    cell_type: CellType = Field(
        default=CellType.TEXT,
        validation_alias=AliasChoices("type", "cell_type"),
    )
    language: str | None = None
    diagram_type: DiagramType | None = Field(
        default=None,
        validation_alias=AliasChoices("diagramType", "diagram_type"),
    )
    data: str = ""

    @field_validator("cell_type", mode="before")
    @classmethod
    def normalize_cell_type(cls, value: Any) -> CellType:
        if isinstance(value, CellType):
            return value
        if isinstance(value, str):
            return CELL_TYPES.get(value, CellType.TEXT)
        return CellType.TEXT

    @field_validator("diagram_type", mode="before")
    @classmethod
    def normalize_diagram_type(cls, value: Any) -> DiagramType | None:
        if isinstance(value, DiagramType):
            return value
        return DIAGRAM_TYPES.get(value) if isinstance(value, str) else None

    @field_validator("data", mode="before")
    @classmethod
    def validate_data(cls, value: Any) -> Any:
        return "" if value is None else value

    def to_update(self) -> CellUpdate:
        """
        Get update to apply to a newly created cell of this type. Only the
        attribute belonging to this cell's type is carried over.
        """
        match self.cell_type:
            case CellType.CODE if self.language is not None:
                return CellUpdate(data=self.data, language=self.language)
            case CellType.DIAGRAM:
                return CellUpdate(
                    data=self.data, diagram_type=self.diagram_type
                )
            case _:
                return CellUpdate(data=self.data)


class NoteContent(BaseModel):
    """
    Contents of a note's `content.json`.
    """

    title: str = ""
    cells: list[CellMeta] = Field(default_factory=list)

    @field_validator("cells", mode="before")
    @classmethod
    def validate_cells(cls, value: Any) -> Any:
        return [] if value is None else value


@dataclass(frozen=True, kw_only=True)
class NotebookRecord:
    """
    Notebook folder along with its parsed metadata.
    """

    path: Path
    meta: NotebookMeta

    @property
    def uuid(self) -> str:
        return self.meta.uuid

    @property
    def name(self) -> str:
        return self.meta.name


T = TypeVar("T", bound=BaseModel)


def load_model(
    model_cls: type[T], path: Path, reader: LibraryReader
) -> T:
    """
    Read and validate a JSON file.
    """
    data = parse_json(reader.read_text(path), path)

    if not isinstance(data, dict):
        raise MetadataError(path, f"expected object, got {type(data).__name__}")

    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as e:
        raise MetadataError(path, str(e)) from e


def read_notebook_record(
    reader: LibraryReader, notebook_dir: Path
) -> NotebookRecord:
    """
    Read notebook metadata. Shared by the duplicate scan and the import so
    both see notebooks the same way.
    """
    meta = load_model(NotebookMeta, notebook_dir / META_FILENAME, reader)
    return NotebookRecord(path=notebook_dir, meta=meta)
