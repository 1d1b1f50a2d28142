"""
Interface to configuration as persisted in .yaml file.
"""
from __future__ import annotations

from logging import Logger
from pathlib import Path
from typing import Any

from pydantic import field_validator

from ..core import SqliteStore
from .yaml_model import BaseYamlModel

__all__ = [
    "Config",
    "DEFAULT_CONFIG_FILE",
    "DEFAULT_DATABASE",
]

DEFAULT_CONFIG_FILE = Path("notch.yaml")
DEFAULT_DATABASE = Path("notch.db")


class Config(BaseYamlModel):
    """
    Encapsulates configuration for use in tools.
    """

    database: Path = DEFAULT_DATABASE
    """
    SQLite database file holding notebooks.
    """

    skip_duplicates: bool | None = None
    """
    Whether to skip library notebooks whose names match existing notebooks;
    if `None`, ask when duplicates are found.
    """

    @field_validator("database", mode="before")
    def validate_database(cls, value: Any) -> Any:
        return _validate_parent_dir(value)

    def open_store(self, *, logger: Logger) -> SqliteStore:
        """
        Open store from this config's database.
        """
        return SqliteStore(self.database, logger=logger)


def _validate_parent_dir(value: Any) -> Any:
    """
    Coerce to path and ensure its folder exists.
    """
    if not isinstance(value, (str, Path)):
        # let pydantic handle type error
        return value

    path = Path(value) if isinstance(value, str) else value

    if not path.parent.is_dir():
        raise ValueError(f"folder does not exist: '{path.parent}'")

    return path
