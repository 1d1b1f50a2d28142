"""
Notch: local notebook store and importer for Quiver libraries.
"""

from pyrollup import rollup

from . import core, importer
from .core import *  # noqa
from .importer import *  # noqa

__all__ = rollup(core, importer)

__canonical_children__ = [
    "core",
    "importer",
]
