import json
import logging
from pathlib import Path
from typing import Any, Generator, Iterable

from pytest import FixtureRequest, fixture

from notch import BaseStore, MemoryStore, SqliteStore

logging.basicConfig(level=logging.WARNING)

CREATED_AT = 1700000000
UPDATED_AT = 1700000100


class LibraryBuilder:
    """
    Writes a Quiver library to a folder for tests to import.
    """

    root: Path

    def __init__(self, root: Path):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    def notebook(
        self,
        name: str,
        *,
        uuid: str | None = None,
        children: Iterable[str] = (),
    ) -> Path:
        """
        Create notebook folder with metadata, returning the folder.
        """
        uuid = uuid or f"nb-{name}"
        notebook_dir = self.root / f"{uuid}.qvnotebook"
        notebook_dir.mkdir()

        meta: dict[str, Any] = {"name": name, "uuid": uuid}
        if children:
            meta["children"] = list(children)

        self.write_json(notebook_dir / "meta.json", meta)
        return notebook_dir

    def note(
        self,
        notebook_dir: Path,
        title: str,
        *,
        uuid: str | None = None,
        cells: list[dict[str, Any]] | None = None,
        tags: Iterable[str] = (),
        created_at: float = CREATED_AT,
        updated_at: float = UPDATED_AT,
    ) -> Path:
        """
        Create note folder with metadata and content, returning the folder.
        """
        uuid = uuid or f"note-{title}"
        note_dir = notebook_dir / f"{uuid}.qvnote"
        note_dir.mkdir()

        self.write_json(
            note_dir / "meta.json",
            {
                "title": title,
                "uuid": uuid,
                "created_at": created_at,
                "updated_at": updated_at,
                "tags": list(tags),
            },
        )
        self.write_json(
            note_dir / "content.json",
            {
                "title": title,
                "cells": cells
                if cells is not None
                else [{"type": "text", "data": f"{title} text"}],
            },
        )
        return note_dir

    def write_json(self, path: Path, data: Any):
        path.write_text(json.dumps(data), encoding="utf-8")


@fixture
def store() -> Generator[MemoryStore, None, None]:
    """
    Create an empty in-memory store.
    """
    with MemoryStore() as store:
        yield store


@fixture
def sqlite_store(tmp_path: Path) -> Generator[SqliteStore, None, None]:
    """
    Create an empty SQLite store in a temporary folder.
    """
    with SqliteStore(tmp_path / "test.db") as store:
        yield store


@fixture(params=["memory", "sqlite"])
def any_store(
    request: FixtureRequest, tmp_path: Path
) -> Generator[BaseStore, None, None]:
    """
    Run test against each store implementation.
    """
    store: BaseStore = (
        MemoryStore()
        if request.param == "memory"
        else SqliteStore(tmp_path / "test.db")
    )

    with store:
        yield store


@fixture
def library(tmp_path: Path) -> LibraryBuilder:
    """
    Create an empty library folder.
    """
    return LibraryBuilder(tmp_path / "Test.qvlibrary")
