"""
Persistent store backed by a SQLite database file.
"""
from __future__ import annotations

import logging
import sqlite3
from logging import Logger
from pathlib import Path

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
    "SqliteStore",
]

SCHEMA = """
CREATE TABLE IF NOT EXISTS notebooks (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    parent_id TEXT,
    sort_order INTEGER,
    created_at INTEGER,
    updated_at INTEGER,
    FOREIGN KEY (parent_id) REFERENCES notebooks(id)
);

CREATE TABLE IF NOT EXISTS notes (
    id TEXT PRIMARY KEY,
    notebook_id TEXT NOT NULL,
    title TEXT NOT NULL,
    is_favorite INTEGER DEFAULT 0,
    is_trashed INTEGER DEFAULT 0,
    sort_order INTEGER,
    created_at INTEGER,
    updated_at INTEGER,
    source_id TEXT UNIQUE,
    FOREIGN KEY (notebook_id) REFERENCES notebooks(id)
);

CREATE TABLE IF NOT EXISTS cells (
    id TEXT PRIMARY KEY,
    note_id TEXT NOT NULL,
    type TEXT NOT NULL,
    data TEXT NOT NULL,
    language TEXT,
    diagram_type TEXT,
    sort_order INTEGER,
    FOREIGN KEY (note_id) REFERENCES notes(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS tags (
    id TEXT PRIMARY KEY,
    name TEXT UNIQUE NOT NULL
);

CREATE TABLE IF NOT EXISTS note_tags (
    note_id TEXT,
    tag_id TEXT,
    PRIMARY KEY (note_id, tag_id),
    FOREIGN KEY (note_id) REFERENCES notes(id) ON DELETE CASCADE,
    FOREIGN KEY (tag_id) REFERENCES tags(id)
);

CREATE INDEX IF NOT EXISTS idx_notes_notebook ON notes(notebook_id);
CREATE INDEX IF NOT EXISTS idx_cells_note ON cells(note_id);
CREATE INDEX IF NOT EXISTS idx_note_tags_note ON note_tags(note_id);
CREATE INDEX IF NOT EXISTS idx_note_tags_tag ON note_tags(tag_id);
"""


class SqliteStore(BaseStore):
    """
    Store persisting entities to SQLite. Each mutating operation is committed
    as a single transaction; on failure nothing of it is persisted.
    """

    _path: Path | str
    _conn: sqlite3.Connection
    _logger: Logger

    def __init__(self, path: Path | str, *, logger: Logger | None = None):
        """
        :param path: Database file, or `":memory:"`
        :param logger: Logger to use, or `None` to use default logger
        """
        self._path = path
        self._logger = logger or logging.getLogger()

        self._conn = sqlite3.connect(str(path))
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")

        with self._conn:
            self._conn.executescript(SCHEMA)

        self._logger.debug(f"Opened store '{path}'")

    def close(self):
        self._conn.close()
        self._logger.debug(f"Closed store '{self._path}'")

    # notebooks

    def list_notebooks(self) -> list[Notebook]:
        rows = self._conn.execute(
            "SELECT * FROM notebooks ORDER BY sort_order, name"
        ).fetchall()
        return [_to_notebook(row) for row in rows]

    def get_notebook(self, notebook_id: str) -> Notebook | None:
        row = self._conn.execute(
            "SELECT * FROM notebooks WHERE id = ?", (notebook_id,)
        ).fetchone()
        return _to_notebook(row) if row else None

    def create_notebook(
        self, name: str, parent_id: str | None = None
    ) -> Notebook:
        if parent_id is not None and self.get_notebook(parent_id) is None:
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

        with self._conn:
            self._conn.execute(
                """INSERT INTO notebooks
                (id, name, parent_id, sort_order, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)""",
                (
                    notebook.notebook_id,
                    notebook.name,
                    notebook.parent_id,
                    notebook.sort_order,
                    notebook.created_at,
                    notebook.updated_at,
                ),
            )

        return notebook

    def update_notebook(self, notebook_id: str, update: NotebookUpdate):
        notebook = self.get_notebook(notebook_id)
        if notebook is None:
            raise NotFoundError("Notebook", notebook_id)

        changes = update.changes()
        parent_id = changes.get("parent_id", notebook.parent_id)

        if parent_id != notebook.parent_id:
            self._check_parent(notebook_id, parent_id)

            if "sort_order" not in changes:
                changes["sort_order"] = self._next_notebook_order(parent_id)

        notebook = revalidate(notebook, changes | {"updated_at": now_ms()})

        with self._conn:
            self._conn.execute(
                """UPDATE notebooks SET name = ?, parent_id = ?,
                sort_order = ?, updated_at = ? WHERE id = ?""",
                (
                    notebook.name,
                    notebook.parent_id,
                    notebook.sort_order,
                    notebook.updated_at,
                    notebook_id,
                ),
            )

    def delete_notebook(self, notebook_id: str):
        if self.get_notebook(notebook_id) is None:
            raise NotFoundError("Notebook", notebook_id)

        # whole subtree is deleted or nothing is
        with self._conn:
            self._delete_notebook_rows(notebook_id)

    # notes

    def create_note(
        self,
        notebook_id: str,
        title: str = "Untitled",
        source_id: str | None = None,
    ) -> Note:
        if self.get_notebook(notebook_id) is None:
            raise NotFoundError("Notebook", notebook_id)

        (max_order,) = self._conn.execute(
            "SELECT MAX(sort_order) FROM notes WHERE notebook_id = ?",
            (notebook_id,),
        ).fetchone()
        now = now_ms()
        note_id = new_id()

        try:
            with self._conn:
                self._conn.execute(
                    """INSERT INTO notes
                    (id, notebook_id, title, is_favorite, is_trashed,
                    sort_order, created_at, updated_at, source_id)
                    VALUES (?, ?, ?, 0, 0, ?, ?, ?, ?)""",
                    (
                        note_id,
                        notebook_id,
                        title,
                        (-1 if max_order is None else max_order) + 1,
                        now,
                        now,
                        source_id,
                    ),
                )
                self._insert_cell(note_id, CellType.MARKDOWN)
        except sqlite3.IntegrityError as e:
            if source_id is None:
                raise
            raise DuplicateError("Note source id", source_id) from e

        note = self.get_note(note_id)
        assert note
        return note

    def get_note(self, note_id: str) -> Note | None:
        row = self._conn.execute(
            "SELECT * FROM notes WHERE id = ?", (note_id,)
        ).fetchone()
        return self._to_note(row) if row else None

    def get_note_by_source_id(self, source_id: str) -> Note | None:
        row = self._conn.execute(
            "SELECT * FROM notes WHERE source_id = ?", (source_id,)
        ).fetchone()
        return self._to_note(row) if row else None

    def list_notes(self, notebook_id: str) -> list[Note]:
        rows = self._conn.execute(
            """SELECT * FROM notes WHERE notebook_id = ? AND is_trashed = 0
            ORDER BY sort_order, updated_at DESC""",
            (notebook_id,),
        ).fetchall()
        return [self._to_note(row) for row in rows]

    def list_favorite_notes(self) -> list[Note]:
        rows = self._conn.execute(
            """SELECT * FROM notes WHERE is_favorite = 1 AND is_trashed = 0
            ORDER BY updated_at DESC"""
        ).fetchall()
        return [self._to_note(row) for row in rows]

    def list_trashed_notes(self) -> list[Note]:
        rows = self._conn.execute(
            "SELECT * FROM notes WHERE is_trashed = 1 ORDER BY updated_at DESC"
        ).fetchall()
        return [self._to_note(row) for row in rows]

    def list_recent_notes(self, limit: int = 20) -> list[Note]:
        rows = self._conn.execute(
            """SELECT * FROM notes WHERE is_trashed = 0
            ORDER BY updated_at DESC LIMIT ?""",
            (limit,),
        ).fetchall()
        return [self._to_note(row) for row in rows]

    def update_note(self, note_id: str, update: NoteUpdate):
        note = self._get_note(note_id)
        changes = {"updated_at": now_ms()} | update.changes()

        if (
            "notebook_id" in changes
            and self.get_notebook(changes["notebook_id"]) is None
        ):
            raise NotFoundError("Notebook", changes["notebook_id"])

        note = revalidate(note, changes)

        with self._conn:
            self._conn.execute(
                """UPDATE notes SET notebook_id = ?, title = ?,
                is_favorite = ?, is_trashed = ?, sort_order = ?,
                created_at = ?, updated_at = ? WHERE id = ?""",
                (
                    note.notebook_id,
                    note.title,
                    int(note.is_favorite),
                    int(note.is_trashed),
                    note.sort_order,
                    note.created_at,
                    note.updated_at,
                    note_id,
                ),
            )

    def delete_note(self, note_id: str, permanent: bool = False):
        self._get_note(note_id)

        if permanent:
            # cells and tag associations cascade
            with self._conn:
                self._conn.execute("DELETE FROM notes WHERE id = ?", (note_id,))
        else:
            self.update_note(note_id, NoteUpdate(is_trashed=True))

    # cells

    def list_cells(self, note_id: str) -> list[Cell]:
        rows = self._conn.execute(
            "SELECT * FROM cells WHERE note_id = ? ORDER BY sort_order",
            (note_id,),
        ).fetchall()
        return [_to_cell(row) for row in rows]

    def create_cell(
        self,
        note_id: str,
        cell_type: CellType,
        after_cell_id: str | None = None,
    ) -> Cell:
        self._get_note(note_id)

        with self._conn:
            return self._insert_cell(note_id, cell_type, after_cell_id)

    def update_cell(self, note_id: str, cell_id: str, update: CellUpdate):
        cell = self._get_cell(note_id, cell_id)
        changes = update.changes()
        new_index = changes.pop("sort_order", None)

        if changes:
            cell = revalidate(cell, changes)

        with self._conn:
            if changes:
                self._conn.execute(
                    """UPDATE cells SET type = ?, data = ?, language = ?,
                    diagram_type = ? WHERE id = ?""",
                    (
                        cell.cell_type.value,
                        cell.data,
                        cell.language,
                        cell.diagram_type.value if cell.diagram_type else None,
                        cell_id,
                    ),
                )
                self._touch(note_id)

            # positions are only changed by moving, keeping them dense
            if new_index is not None:
                self._move_cell(note_id, cell_id, new_index)

    def delete_cell(self, note_id: str, cell_id: str):
        self._get_cell(note_id, cell_id)

        with self._conn:
            self._conn.execute("DELETE FROM cells WHERE id = ?", (cell_id,))
            self._reindex(
                note_id, [c.cell_id for c in self.list_cells(note_id)]
            )
            self._touch(note_id)

    def move_cell(self, note_id: str, cell_id: str, new_index: int):
        self._get_cell(note_id, cell_id)

        with self._conn:
            self._move_cell(note_id, cell_id, new_index)

    # tags

    def list_tags(self) -> list[Tag]:
        rows = self._conn.execute("SELECT * FROM tags ORDER BY name")
        return [Tag(tag_id=row["id"], name=row["name"]) for row in rows]

    def get_tag_by_name(self, name: str) -> Tag | None:
        row = self._conn.execute(
            "SELECT * FROM tags WHERE name = ?", (name,)
        ).fetchone()
        return Tag(tag_id=row["id"], name=row["name"]) if row else None

    def create_tag(self, name: str) -> Tag:
        tag = Tag(tag_id=new_id(), name=name)

        try:
            with self._conn:
                self._conn.execute(
                    "INSERT INTO tags (id, name) VALUES (?, ?)",
                    (tag.tag_id, tag.name),
                )
        except sqlite3.IntegrityError as e:
            raise DuplicateError("Tag", name) from e

        return tag

    def delete_tag(self, tag_id: str):
        self._check_tag(tag_id)

        with self._conn:
            self._conn.execute(
                "DELETE FROM note_tags WHERE tag_id = ?", (tag_id,)
            )
            self._conn.execute("DELETE FROM tags WHERE id = ?", (tag_id,))

    def add_tag_to_note(self, note_id: str, tag_id: str):
        self._get_note(note_id)
        self._check_tag(tag_id)

        with self._conn:
            self._conn.execute(
                """INSERT OR IGNORE INTO note_tags (note_id, tag_id)
                VALUES (?, ?)""",
                (note_id, tag_id),
            )

    def remove_tag_from_note(self, note_id: str, tag_id: str):
        self._get_note(note_id)

        with self._conn:
            self._conn.execute(
                "DELETE FROM note_tags WHERE note_id = ? AND tag_id = ?",
                (note_id, tag_id),
            )

    def list_notes_by_tag(self, tag_id: str) -> list[Note]:
        rows = self._conn.execute(
            """SELECT n.* FROM notes n
            JOIN note_tags nt ON n.id = nt.note_id
            WHERE nt.tag_id = ? AND n.is_trashed = 0
            ORDER BY n.updated_at DESC""",
            (tag_id,),
        ).fetchall()
        return [self._to_note(row) for row in rows]

    # internal; helpers below don't commit and must be called within a
    # transaction

    def _get_note(self, note_id: str) -> Note:
        note = self.get_note(note_id)
        if note is None:
            raise NotFoundError("Note", note_id)
        return note

    def _get_cell(self, note_id: str, cell_id: str) -> Cell:
        row = self._conn.execute(
            "SELECT * FROM cells WHERE id = ? AND note_id = ?",
            (cell_id, note_id),
        ).fetchone()
        if row is None:
            raise NotFoundError("Cell", cell_id)
        return _to_cell(row)

    def _check_tag(self, tag_id: str):
        if (
            self._conn.execute(
                "SELECT 1 FROM tags WHERE id = ?", (tag_id,)
            ).fetchone()
            is None
        ):
            raise NotFoundError("Tag", tag_id)

    def _next_notebook_order(self, parent_id: str | None) -> int:
        (max_order,) = self._conn.execute(
            "SELECT MAX(sort_order) FROM notebooks WHERE parent_id IS ?",
            (parent_id,),
        ).fetchone()
        return (-1 if max_order is None else max_order) + 1

    def _delete_notebook_rows(self, notebook_id: str):
        child_ids = [
            row["id"]
            for row in self._conn.execute(
                """SELECT id FROM notebooks WHERE parent_id = ?
                ORDER BY sort_order""",
                (notebook_id,),
            ).fetchall()
        ]
        for child_id in child_ids:
            self._delete_notebook_rows(child_id)

        # cells and tag associations cascade
        self._conn.execute(
            "DELETE FROM notes WHERE notebook_id = ?", (notebook_id,)
        )
        self._conn.execute("DELETE FROM notebooks WHERE id = ?", (notebook_id,))

    def _insert_cell(
        self,
        note_id: str,
        cell_type: CellType,
        after_cell_id: str | None = None,
    ) -> Cell:
        cells = self.list_cells(note_id)

        if after_cell_id is not None:
            sort_order = next(
                (c.sort_order + 1 for c in cells if c.cell_id == after_cell_id),
                0,
            )
        else:
            sort_order = len(cells)

        cell = Cell(
            cell_id=new_id(),
            cell_type=cell_type,
            sort_order=sort_order,
            **self._default_attributes(cell_type),
        )

        self._conn.execute(
            """UPDATE cells SET sort_order = sort_order + 1
            WHERE note_id = ? AND sort_order >= ?""",
            (note_id, sort_order),
        )
        self._conn.execute(
            """INSERT INTO cells
            (id, note_id, type, data, language, diagram_type, sort_order)
            VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                cell.cell_id,
                note_id,
                cell.cell_type.value,
                cell.data,
                cell.language,
                cell.diagram_type.value if cell.diagram_type else None,
                cell.sort_order,
            ),
        )
        self._touch(note_id)

        return cell

    def _move_cell(self, note_id: str, cell_id: str, new_index: int):
        cell_ids = [c.cell_id for c in self.list_cells(note_id)]
        index = cell_ids.index(cell_id)
        new_index = max(0, min(new_index, len(cell_ids) - 1))

        if index == new_index:
            return

        cell_ids.insert(new_index, cell_ids.pop(index))

        self._reindex(note_id, cell_ids)
        self._touch(note_id)

    def _reindex(self, note_id: str, cell_ids: list[str]):
        """
        Assign dense positions to cells in the given order.
        """
        self._conn.executemany(
            "UPDATE cells SET sort_order = ? WHERE id = ?",
            [(i, cell_id) for i, cell_id in enumerate(cell_ids)],
        )

    def _touch(self, note_id: str):
        self._conn.execute(
            "UPDATE notes SET updated_at = ? WHERE id = ?", (now_ms(), note_id)
        )

    def _to_note(self, row: sqlite3.Row) -> Note:
        tags = [
            r["name"]
            for r in self._conn.execute(
                """SELECT t.name FROM tags t
                JOIN note_tags nt ON t.id = nt.tag_id
                WHERE nt.note_id = ? ORDER BY t.name""",
                (row["id"],),
            )
        ]

        return Note(
            note_id=row["id"],
            notebook_id=row["notebook_id"],
            title=row["title"],
            cells=self.list_cells(row["id"]),
            tags=tags,
            is_favorite=bool(row["is_favorite"]),
            is_trashed=bool(row["is_trashed"]),
            sort_order=row["sort_order"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            source_id=row["source_id"],
        )


def _to_notebook(row: sqlite3.Row) -> Notebook:
    return Notebook(
        notebook_id=row["id"],
        name=row["name"],
        parent_id=row["parent_id"],
        sort_order=row["sort_order"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _to_cell(row: sqlite3.Row) -> Cell:
    return Cell(
        cell_id=row["id"],
        cell_type=CellType(row["type"]),
        data=row["data"],
        language=row["language"],
        diagram_type=row["diagram_type"],
        sort_order=row["sort_order"],
    )
