"""Narrated events and the append-only event stream."""

from typing import FrozenSet, Iterator, List, Tuple

from pydantic import BaseModel, ConfigDict

from teaktrace._internal.reporting.narrative import filter_diff, render_narrative
from .snapshot import DiffEntry


class NarratedEvent(BaseModel):
    """Externally visible record of one state change.

    ``diff`` is the raw snapshot diff; ``excluded`` names the fields that are
    kept out of the rendered text.
    """
    component: str  # "Teak" | "Teak.Session" | "Teak.Request"
    action: str  # decoded type, e.g. "State", "Heartbeat"
    description: str
    diff: Tuple[DiffEntry, ...]
    excluded: FrozenSet[str]
    indent: int = 2

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def interesting_diff(self) -> List[DiffEntry]:
        return filter_diff(self.diff, self.excluded)

    @property
    def text(self) -> str:
        return render_narrative(
            f"[{self.component}] {self.description}",
            self.diff,
            self.excluded,
            self.indent,
        )


class EventStream:
    """Ordered, append-only sequence of narrated events."""

    def __init__(self) -> None:
        self._events: List[NarratedEvent] = []

    def append(self, event: NarratedEvent) -> None:
        self._events.append(event)

    @property
    def events(self) -> Tuple[NarratedEvent, ...]:
        return tuple(self._events)

    def text(self) -> str:
        """Every event's text, in order, separated by newlines."""
        return "\n".join(event.text for event in self._events)

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[NarratedEvent]:
        return iter(self.events)

    def __str__(self) -> str:
        return self.text()
