import os
import random
import tempfile
from pathlib import Path

# The service reads its configuration at import time.
_TMP_ROOT = Path(tempfile.mkdtemp(prefix="quiz-runner-tests-"))
os.environ["TEST_DATA_DIR"] = str(_TMP_ROOT / "tests")
os.environ["DB_DIR"] = str(_TMP_ROOT)
os.environ["SESSION_GRACE_MS"] = "0"
for _name in ("DATABASE_URL", "RESULTS_API_URL", "CREDITS_API_URL"):
    os.environ.pop(_name, None)

import pytest  # noqa: E402

from quiz_engine import (  # noqa: E402
    MemorySnapshotStore,
    PersistenceAdapter,
    QuizSession,
    ResultSubmitter,
    SessionMode,
    UserPreferences,
)
from tests.helpers import FIXED_NOW, FakeClock, RecordingSink  # noqa: E402


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def store() -> MemorySnapshotStore:
    return MemorySnapshotStore()


@pytest.fixture
def make_session(clock, sink, store):
    """Factory for sessions sharing one clock, sink and snapshot store."""

    def _make(test, mode=SessionMode.STANDARD, preferences=None, seed=0, **kwargs):
        if isinstance(preferences, dict):
            preferences = UserPreferences.from_mapping(preferences)
        return QuizSession(
            test,
            mode,
            persistence=PersistenceAdapter(store),
            submitter=ResultSubmitter(sink, background=False),
            clock=clock,
            preferences=preferences,
            rng=random.Random(seed),
            grace_period_s=kwargs.pop("grace_period_s", 0),
            now_iso=lambda: FIXED_NOW,
            **kwargs,
        )

    return _make
