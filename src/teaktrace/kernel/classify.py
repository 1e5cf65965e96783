"""Line classification: tag one raw log line by category and severity."""

from __future__ import annotations

import re
from enum import Enum
from functools import lru_cache
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from teaktrace.config import DEFAULT_CONFIG, EngineConfig


class Category(str, Enum):
    """Log categories the engine models."""
    TEAK = "Teak"
    SESSION = "Teak.Session"
    REQUEST = "Teak.Request"


class CategorizedLine(BaseModel):
    kind: Literal["categorized"] = "categorized"
    category: Category
    severity: str  # single letter: V/D/I/W/E/...
    payload: str
    line: str

    model_config = ConfigDict(extra="forbid", frozen=True)


class IgnorableLine(BaseModel):
    kind: Literal["ignorable"] = "ignorable"
    line: str

    model_config = ConfigDict(extra="forbid", frozen=True)


class UnrecognizedLine(BaseModel):
    kind: Literal["unrecognized"] = "unrecognized"
    line: str

    model_config = ConfigDict(extra="forbid", frozen=True)


ClassifiedLine = Annotated[
    Union[CategorizedLine, IgnorableLine, UnrecognizedLine],
    Field(discriminator="kind"),
]


@lru_cache(maxsize=8)
def _line_pattern(teak_tag: str, session_tag: str, request_tag: str) -> tuple[re.Pattern, dict[str, Category]]:
    # Most specific tag first so "Teak.Session" never falls through to "Teak"
    tags = {
        request_tag: Category.REQUEST,
        session_tag: Category.SESSION,
        teak_tag: Category.TEAK,
    }
    alternation = "|".join(re.escape(tag) for tag in tags)
    pattern = re.compile(rf"\b([A-Z]) ({alternation})\s*: (.*)$")
    return pattern, tags


def classify_line(line: str, config: EngineConfig = DEFAULT_CONFIG) -> ClassifiedLine:
    """Classify a raw log line.

    Blank lines and logcat framing lines ("--------- beginning of main")
    are ignorable. Lines carrying a known tag are categorized; everything
    else is unrecognized and must be reported by the caller.
    """
    line = line.rstrip("\r\n")
    if not line.strip() or line.startswith("-"):
        return IgnorableLine(line=line)

    pattern, tags = _line_pattern(config.teak_tag, config.session_tag, config.request_tag)
    match = pattern.search(line)
    if match is None:
        return UnrecognizedLine(line=line)

    severity, tag, payload = match.groups()
    return CategorizedLine(
        category=tags[tag],
        severity=severity,
        payload=payload.strip(),
        line=line,
    )
