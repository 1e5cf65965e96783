"""Engine configuration.

Defaults reproduce the log formats emitted by the Android Teak SDK. Tests
and harnesses may override individual fields, e.g. to point the attribution
rule at a different registration endpoint.
"""

from typing import FrozenSet
from pydantic import BaseModel, ConfigDict, Field


class EngineConfig(BaseModel):
    """Tunable constants for classification, attribution and narration."""
    teak_tag: str = "Teak"
    session_tag: str = "Teak.Session"
    request_tag: str = "Teak.Request"
    type_prefix: str = "io.teak.sdk."  # stripped from payload type names

    registration_endpoint_pattern: str = r"^/games/[^/]+/users\.json$"
    do_not_track_key: str = "do_not_track_event"

    uninteresting_fields: FrozenSet[str] = Field(
        default=frozenset({"id", "current_state", "current_session"}),
        description="Keys never rendered in narrative text (they stay in the raw diff)",
    )
    narrative_indent: int = 2

    model_config = ConfigDict(extra="forbid", frozen=True)


DEFAULT_CONFIG = EngineConfig()
