"""
Read-only scan for notebooks which would collide with existing ones.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from logging import Logger
from pathlib import Path

from ..core.store import BaseStore
from .exceptions import LibraryError
from .meta import read_notebook_record
from .reader import LibraryReader

__all__ = [
    "DuplicateReport",
    "normalize_name",
    "scan_for_duplicates",
]


@dataclass(kw_only=True)
class DuplicateReport:
    """
    Encapsulates results of a duplicate scan.
    """

    colliding_names: list[str] = field(default_factory=list)
    """
    Names of library notebooks matching an existing notebook name, as
    spelled in the library.
    """

    total_notebooks: int = 0
    """
    Number of library notebooks with readable metadata.
    """

    @property
    def has_duplicates(self) -> bool:
        return len(self.colliding_names) > 0


def normalize_name(name: str) -> str:
    """
    Normalize notebook name for case-insensitive comparison.
    """
    return name.casefold()


def scan_for_duplicates(
    path: Path,
    store: BaseStore,
    *,
    logger: Logger | None = None,
) -> DuplicateReport:
    """
    Scan library for notebooks whose names match existing notebooks. Nothing
    is modified; notebooks with unreadable metadata are left out of the
    report entirely.
    """

    logger = logger or logging.getLogger()
    report = DuplicateReport()
    reader = LibraryReader(path)
    existing_names = {normalize_name(n) for n in store.list_existing_names()}

    try:
        notebook_dirs = reader.list_notebook_dirs()
    except LibraryError as e:
        logger.warning(f"Failed to scan library: {e}")
        return report

    for notebook_dir in notebook_dirs:
        try:
            record = read_notebook_record(reader, notebook_dir)
        except LibraryError as e:
            logger.warning(f"Ignoring notebook: {e}")
            continue

        report.total_notebooks += 1

        if normalize_name(record.name) in existing_names:
            report.colliding_names.append(record.name)

    return report
