"""Render human-readable narratives of snapshot diffs (internal)."""

import json
import textwrap
from typing import Any, FrozenSet, Iterable, List

from teaktrace._internal.canonical_json import pretty_dumps
from teaktrace.kernel.snapshot import DiffEntry, is_structured


def is_uninteresting(entry: DiffEntry, uninteresting_fields: FrozenSet[str]) -> bool:
    """Ids and derived convenience fields never reach the narrative."""
    if not entry.path:
        return False
    head = entry.path[0]
    return entry.field in uninteresting_fields or (isinstance(head, str) and head in uninteresting_fields)


def filter_diff(diff: Iterable[DiffEntry], uninteresting_fields: FrozenSet[str]) -> List[DiffEntry]:
    return [entry for entry in diff if not is_uninteresting(entry, uninteresting_fields)]


def _scalar(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


def _block(value: Any, indent: int) -> List[str]:
    return textwrap.indent(pretty_dumps(value), " " * indent).splitlines()


def render_entry(entry: DiffEntry, indent: int = 2) -> List[str]:
    """Lines describing one diff entry."""
    label = entry.path_str

    if entry.is_collection_entry and entry.op in ("+", "-"):
        value = entry.new if entry.op == "+" else entry.old
        first, *rest = pretty_dumps(value).splitlines()
        return [f"{entry.op} {first}"] + [f"  {line}" for line in rest]

    if entry.op == "+" or (entry.op == "~" and entry.old is None):
        if is_structured(entry.new):
            return [label] + _block(entry.new, indent)
        return [f"{label} assigned '{_scalar(entry.new)}'"]

    if entry.op == "-":
        if is_structured(entry.old):
            return [f"{label} removed"] + _block(entry.old, indent)
        return [f"{label} removed (was '{_scalar(entry.old)}')"]

    if is_structured(entry.old) or is_structured(entry.new):
        return (
            [label, f"{' ' * indent}from"]
            + _block(entry.old, indent * 2)
            + [f"{' ' * indent}to"]
            + _block(entry.new, indent * 2)
        )
    return [f"{label} changed from '{_scalar(entry.old)}' to '{_scalar(entry.new)}'"]


def render_narrative(
    description: str,
    diff: Iterable[DiffEntry],
    uninteresting_fields: FrozenSet[str],
    indent: int = 2,
) -> str:
    """Compose an event's text: its description, then the filtered diff.

    When filtering leaves nothing, only the description is produced.
    """
    lines = [description]
    for entry in filter_diff(diff, uninteresting_fields):
        lines.extend(textwrap.indent("\n".join(render_entry(entry, indent)), " " * indent).splitlines())
    return "\n".join(lines)
