"""
Ordering of notebooks such that parents are created before their children.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from .exceptions import CycleError
from .meta import NotebookRecord

__all__ = [
    "ResolvedOrder",
    "resolve_order",
]


@dataclass(kw_only=True)
class ResolvedOrder:
    """
    Encapsulates notebooks in creation order along with their hierarchy.
    """

    records: list[NotebookRecord] = field(default_factory=list)
    """
    Notebooks, each appearing after its parent.
    """

    parents: dict[str, str] = field(default_factory=dict)
    """
    Mapping of child uuid to parent uuid, for parents present in the input.
    """

    cycles: list[list[str]] = field(default_factory=list)
    """
    Cycles which were broken, as uuids from child to ancestor.
    """

    duplicates: list[NotebookRecord] = field(default_factory=list)
    """
    Records dropped since an earlier record had the same uuid.
    """


def resolve_order(
    records: list[NotebookRecord], *, strict: bool = True
) -> ResolvedOrder:
    """
    Order notebooks so every parent precedes its children; unrelated
    notebooks keep their relative input order.

    Notebooks only declare their children, so the declarations are first
    inverted into a child to parent mapping. A notebook whose parent is not
    among `records` is a root.

    If the declarations contain a cycle, raise {obj}`CycleError` if `strict`,
    else break the cycle by dropping the edge which closes it and record it
    in {obj}`ResolvedOrder.cycles`.
    """

    result = ResolvedOrder()
    record_map: dict[str, NotebookRecord] = {}

    for record in records:
        if record.uuid in record_map:
            result.duplicates.append(record)
        else:
            record_map[record.uuid] = record

    # invert children declarations; first declaring parent wins
    parents = result.parents
    for record in record_map.values():
        for child_uuid in record.meta.children:
            if child_uuid in record_map:
                parents.setdefault(child_uuid, record.uuid)

    emitted: set[str] = set()

    for uuid in record_map:
        if uuid in emitted:
            continue

        # walk up to the nearest emitted ancestor or root
        path: list[str] = []
        on_path: set[str] = set()
        current = uuid

        while True:
            path.append(current)
            on_path.add(current)

            parent = parents.get(current)
            if parent is None or parent in emitted:
                break

            if parent in on_path:
                cycle = path[path.index(parent) :] + [parent]
                if strict:
                    raise CycleError(cycle)

                result.cycles.append(cycle)
                del parents[current]
                break

            current = parent

        # emit from the topmost ancestor down
        for path_uuid in reversed(path):
            emitted.add(path_uuid)
            result.records.append(record_map[path_uuid])

    return result
