"""Public report models for teaktrace package."""

from typing import Optional
from pydantic import BaseModel, ConfigDict

from teaktrace.codes import DiagnosticCode


class Diagnostic(BaseModel):
    """A non-fatal condition found while processing a log line."""
    code: DiagnosticCode
    message: str
    line: str  # raw line, trailing newline stripped
    category: Optional[str] = None  # "Teak" | "Teak.Session" | "Teak.Request" | None for unrecognized lines

    model_config = ConfigDict(extra="forbid", frozen=True)

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"
