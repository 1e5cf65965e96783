"""Pytest configuration for tests.

No sys.path hacks - tests should import from installed teaktrace package.
"""

from pathlib import Path

import pytest


FIXTURES = Path(__file__).resolve().parent.parent / "fixtures"


@pytest.fixture
def session_log() -> str:
    """A complete logcat capture: init, configuration, one session with a registration round trip."""
    return (FIXTURES / "logcat_session.txt").read_text(encoding="utf-8")


@pytest.fixture
def session_log_path() -> Path:
    return FIXTURES / "logcat_session.txt"
