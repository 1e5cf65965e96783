"""Public API for teaktrace.

High-level entry points for test harnesses: hand over raw log text, get back
the reconstructed history and the narrated event stream.
"""

from typing import Optional, Tuple

from teaktrace.config import DEFAULT_CONFIG, EngineConfig
from teaktrace.kernel.history import RunHistory
from teaktrace.kernel.stream import EventStream


def process_log(
    text: str,
    history: Optional[RunHistory] = None,
    stream: Optional[EventStream] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> Tuple[RunHistory, EventStream]:
    """Feed log text to a history, extending the stream with its events.

    Passing the history and stream from a previous call continues them, which
    is how a harness polling a live log keeps one consistent view.

    Args:
        text: Raw multi-line log text (e.g. the output of ``adb logcat -d``)
        history: History to extend (a new one is created if None)
        stream: Stream to extend (a new one is created if None)
        config: Engine configuration for a newly created history

    Returns:
        Tuple of (history, stream)

    Raises:
        ConsistencyError: a line violated a modeled invariant; lines before it
            remain applied, the failing line is not
    """
    if history is None:
        history = RunHistory(config)
    stream = history.process(text, stream)
    return history, stream


def load_run_history(text: str, config: EngineConfig = DEFAULT_CONFIG) -> RunHistory:
    """Build a fresh history from complete log text."""
    history, _ = process_log(text, config=config)
    return history
