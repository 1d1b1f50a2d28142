"""
Local data model and the store interface through which it is persisted.
"""

from pyrollup import rollup

from . import exceptions, memory, model, sqlite, store, types
from .exceptions import *  # noqa
from .memory import *  # noqa
from .model import *  # noqa
from .sqlite import *  # noqa
from .store import *  # noqa
from .types import *  # noqa

__all__ = rollup(
    model,
    types,
    store,
    memory,
    sqlite,
    exceptions,
)

__canonical_children__ = [
    "model",
    "types",
    "store",
    "memory",
    "sqlite",
    "exceptions",
]
