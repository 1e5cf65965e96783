"""Diagnostic code constants for non-fatal log conditions.

These constants prevent stringly-typed diagnostic codes and ensure
client code matches on the codes the engine actually emits.
"""

from enum import Enum


class DiagnosticCode(str, Enum):
    """Codes for conditions that are reported but do not stop processing."""

    # Line level
    UNRECOGNIZED_LINE = "UNRECOGNIZED_LINE"

    # Shape level (known category, unknown payload)
    UNRECOGNIZED_TEAK_EVENT = "UNRECOGNIZED_TEAK_EVENT"
    UNRECOGNIZED_SESSION_EVENT = "UNRECOGNIZED_SESSION_EVENT"
    UNRECOGNIZED_REQUEST_EVENT = "UNRECOGNIZED_REQUEST_EVENT"
