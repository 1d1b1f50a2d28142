"""
Import of standalone markdown files.
"""
from __future__ import annotations

import logging
import re
from logging import Logger
from pathlib import Path

from ..core.model import CellUpdate, Note
from ..core.store import BaseStore
from ..core.types import CellType
from .reader import LibraryReader

__all__ = [
    "import_markdown_file",
]

HEADING_PATTERN = re.compile(r"^#\s+(.+)$", re.MULTILINE)


def import_markdown_file(
    store: BaseStore,
    path: Path,
    notebook_id: str,
    *,
    logger: Logger | None = None,
) -> Note:
    """
    Import markdown file as a note with a single markdown cell. The title is
    taken from the first top-level heading, or the filename if there is none.
    """

    logger = logger or logging.getLogger()
    content = LibraryReader(path.parent).read_text(path)

    match = HEADING_PATTERN.search(content)
    title = match.group(1).strip() if match else path.stem

    note = store.create_note(notebook_id, title)

    for cell in note.cells:
        store.delete_cell(note.note_id, cell.cell_id)

    cell = store.create_cell(note.note_id, CellType.MARKDOWN)
    store.update_cell(note.note_id, cell.cell_id, CellUpdate(data=content))

    logger.info(f"Imported '{path}' as note '{title}'")

    note = store.get_note(note.note_id)
    assert note
    return note
