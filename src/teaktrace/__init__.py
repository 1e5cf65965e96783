"""teaktrace: Teak SDK lifecycle reconstruction from device logs."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("teaktrace")
except PackageNotFoundError:
    __version__ = "dev"

# Public API exports
from teaktrace.api import process_log, load_run_history
from teaktrace.codes import DiagnosticCode
from teaktrace.config import EngineConfig
from teaktrace.contracts import Diagnostic
from teaktrace.kernel.errors import ConsistencyError
from teaktrace.kernel.history import RunHistory
from teaktrace.kernel.session import Session
from teaktrace.kernel.stream import EventStream, NarratedEvent

__all__ = [
    "__version__",
    "process_log",
    "load_run_history",
    "DiagnosticCode",
    "EngineConfig",
    "Diagnostic",
    "ConsistencyError",
    "RunHistory",
    "Session",
    "EventStream",
    "NarratedEvent",
]
