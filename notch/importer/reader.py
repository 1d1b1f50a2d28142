"""
Filesystem access to a Quiver library.
"""
from __future__ import annotations

from pathlib import Path

from .exceptions import LibraryReadError

__all__ = [
    "LibraryReader",
    "META_FILENAME",
    "CONTENT_FILENAME",
]

NOTEBOOK_SUFFIX = ".qvnotebook"
NOTE_SUFFIX = ".qvnote"

META_FILENAME = "meta.json"
"""
Filename containing metadata of a notebook or note.
"""

CONTENT_FILENAME = "content.json"
"""
Filename containing cells of a note.
"""

RESOURCES_DIRNAME = "resources"
"""
Folder containing attachments of a note.
"""


class LibraryReader:
    """
    Lists and reads entries of a library rooted at a folder. Entries are
    returned sorted by name since the filesystem order is arbitrary.
    """

    root: Path

    def __init__(self, root: Path):
        self.root = root

    def list_notebook_dirs(self) -> list[Path]:
        """
        Get notebook folders at the root of the library.
        """
        return self._list_dirs(self.root, NOTEBOOK_SUFFIX)

    def list_note_dirs(self, notebook_dir: Path) -> list[Path]:
        """
        Get note folders within a notebook folder.
        """
        return self._list_dirs(notebook_dir, NOTE_SUFFIX)

    def list_resources(self, note_dir: Path) -> list[Path]:
        """
        Get attachment files of a note, if any.
        """
        resources_dir = note_dir / RESOURCES_DIRNAME

        if not resources_dir.is_dir():
            return []

        return sorted(p for p in self._iterdir(resources_dir) if p.is_file())

    def read_text(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise LibraryReadError(path, str(e)) from e

    def relative(self, path: Path) -> str:
        """
        Get path relative to the library root, for reporting.
        """
        try:
            return path.relative_to(self.root).as_posix()
        except ValueError:
            return str(path)

    def _list_dirs(self, folder: Path, suffix: str) -> list[Path]:
        return sorted(
            p
            for p in self._iterdir(folder)
            if p.name.endswith(suffix) and p.is_dir()
        )

    def _iterdir(self, folder: Path) -> list[Path]:
        try:
            return list(folder.iterdir())
        except OSError as e:
            raise LibraryReadError(folder, str(e)) from e
