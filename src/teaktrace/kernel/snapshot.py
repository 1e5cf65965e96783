"""Structural snapshots and key-path diffs (no rendering).

The comparator works on plain JSON-like structures (dict, list, scalars) and
knows nothing about the aggregates that produced them. Every aggregate exposes
a ``to_h()`` projection; a snapshot is a deep copy of that projection.
"""

import copy
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Tuple, Union

from pydantic import BaseModel, ConfigDict


PathElement = Union[str, int]


class DiffEntry(BaseModel):
    """One difference between two structures.

    ``op`` is '+' (key or list entry added), '-' (removed) or '~' (value changed).
    """
    op: Literal["+", "-", "~"]
    path: Tuple[PathElement, ...]
    old: Any = None
    new: Any = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def path_str(self) -> str:
        return format_path(self.path)

    @property
    def field(self) -> str:
        """Last key in the path (ignoring list indexes), '' for the root."""
        for element in reversed(self.path):
            if isinstance(element, str):
                return element
        return ""

    @property
    def is_collection_entry(self) -> bool:
        return bool(self.path) and isinstance(self.path[-1], int)


def format_path(path: Tuple[PathElement, ...]) -> str:
    """Render a path as ``a.b[2].c``."""
    out = ""
    for element in path:
        if isinstance(element, int):
            out += f"[{element}]"
        elif out:
            out += f".{element}"
        else:
            out = element
    return out


def is_structured(value: Any) -> bool:
    return isinstance(value, (dict, list))


def _same(a: Any, b: Any) -> bool:
    # bool is an int subclass; True must not equal 1 here
    return type(a) is type(b) and a == b


def _diff(before: Any, after: Any, path: Tuple[PathElement, ...], out: List[DiffEntry]) -> None:
    if isinstance(before, dict) and isinstance(after, dict):
        for key in before:
            if key not in after:
                out.append(DiffEntry(op="-", path=path + (key,), old=before[key]))
            else:
                _diff(before[key], after[key], path + (key,), out)
        for key in after:
            if key not in before:
                out.append(DiffEntry(op="+", path=path + (key,), new=after[key]))
    elif isinstance(before, list) and isinstance(after, list):
        common = min(len(before), len(after))
        for i in range(common):
            _diff(before[i], after[i], path + (i,), out)
        for i in range(common, len(before)):
            out.append(DiffEntry(op="-", path=path + (i,), old=before[i]))
        for i in range(common, len(after)):
            out.append(DiffEntry(op="+", path=path + (i,), new=after[i]))
    elif not _same(before, after):
        out.append(DiffEntry(op="~", path=path, old=before, new=after))


def diff_structures(before: Any, after: Any) -> List[DiffEntry]:
    """Compute a deep key-path diff between two JSON-like structures.

    Dict keys are compared by name, lists index by index (surplus entries are
    reported as added or removed). Output order is deterministic: removed and
    changed keys in ``before`` order, then added keys in ``after`` order.
    """
    out: List[DiffEntry] = []
    _diff(before, after, (), out)
    return out


@dataclass(frozen=True)
class Snapshot:
    """Immutable copy of an aggregate's structural view, taken before a mutation."""
    owner: str
    view: Dict[str, Any]

    def diff(self, aggregate) -> List[DiffEntry]:
        """Diff this snapshot against the aggregate's current view."""
        return diff_structures(self.view, copy.deepcopy(aggregate.to_h()))


def take_snapshot(aggregate, owner: str) -> Snapshot:
    """Capture the aggregate's ``to_h()`` projection."""
    return Snapshot(owner=owner, view=copy.deepcopy(aggregate.to_h()))
