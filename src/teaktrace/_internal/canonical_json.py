"""Centralized JSON serialization.

Two renderings are used everywhere: a canonical one (sorted keys, compact
separators) for machine output such as the CLI snapshot, and a pretty one
(insertion order, two-space indent) for narrative blocks. Both must be pure
functions of their input so re-rendering a stream is byte-identical.
"""

import json
from typing import Any


def canonical_dumps(obj: Any) -> str:
    """
    Canonical JSON serialization for byte-stable output.

    Rules:
    - Sorted keys
    - Stable separators (",", ":")
    - No trailing whitespace
    - Non-ASCII kept as UTF-8
    """
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False
    )


def pretty_dumps(obj: Any) -> str:
    """Readable multi-line JSON preserving insertion order."""
    return json.dumps(obj, indent=2, ensure_ascii=False)
