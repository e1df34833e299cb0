"""Quiz-taking session engine."""
from quiz_engine.clock import Clock, RealClock
from quiz_engine.errors import (
    HintUnavailableError,
    InvalidAnswerError,
    MalformedTestError,
    QuizEngineError,
    SessionStateError,
    SnapshotError,
)
from quiz_engine.models import (
    GlobalTimer,
    MultipleChoiceQuestion,
    OpenTextQuestion,
    PerQuestionTimer,
    PuzzleQuestion,
    QuestionType,
    SessionMode,
    Test,
    load_test_definition,
)
from quiz_engine.persistence import (
    JsonFileSnapshotStore,
    MemorySnapshotStore,
    PersistenceAdapter,
    snapshot_key,
)
from quiz_engine.preferences import ExitConfirmation, UserPreferences
from quiz_engine.results import ResultPayload, ResultSubmitter
from quiz_engine.session import QuizSession, SessionPhase, SessionView

__all__ = [
    "Clock",
    "RealClock",
    "HintUnavailableError",
    "InvalidAnswerError",
    "MalformedTestError",
    "QuizEngineError",
    "SessionStateError",
    "SnapshotError",
    "GlobalTimer",
    "MultipleChoiceQuestion",
    "OpenTextQuestion",
    "PerQuestionTimer",
    "PuzzleQuestion",
    "QuestionType",
    "SessionMode",
    "Test",
    "load_test_definition",
    "JsonFileSnapshotStore",
    "MemorySnapshotStore",
    "PersistenceAdapter",
    "snapshot_key",
    "ExitConfirmation",
    "UserPreferences",
    "ResultPayload",
    "ResultSubmitter",
    "QuizSession",
    "SessionPhase",
    "SessionView",
]
