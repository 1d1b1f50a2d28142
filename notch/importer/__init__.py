"""
Pipeline to import a Quiver library into a local store.

Typical usage:

1. {obj}`scan_for_duplicates` to find notebooks colliding with existing ones
2. Decide whether to skip them
3. {obj}`import_library` to import, optionally receiving progress snapshots
"""

from pyrollup import rollup

from . import (
    duplicates,
    exceptions,
    importer,
    markdown,
    meta,
    progress,
    reader,
    resolver,
)
from .duplicates import *  # noqa
from .exceptions import *  # noqa
from .importer import *  # noqa
from .markdown import *  # noqa
from .meta import *  # noqa
from .progress import *  # noqa
from .reader import *  # noqa
from .resolver import *  # noqa

__all__ = rollup(
    importer,
    duplicates,
    progress,
    resolver,
    meta,
    reader,
    markdown,
    exceptions,
)

__canonical_children__ = [
    "importer",
    "duplicates",
    "progress",
    "resolver",
    "meta",
    "reader",
    "markdown",
    "exceptions",
]
