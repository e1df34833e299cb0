"""Exceptions raised by the quiz session engine."""


class QuizEngineError(Exception):
    """Base class for engine errors."""


class MalformedTestError(QuizEngineError, ValueError):
    """Test data cannot be used to start a session."""


class SnapshotError(QuizEngineError, ValueError):
    """Persisted session snapshot is unreadable or does not fit the test."""


class InvalidAnswerError(QuizEngineError, ValueError):
    """Answer shape does not match the current question."""


class HintUnavailableError(QuizEngineError):
    """Hint cannot be revealed (no hint, wrong mode or credit refused)."""


class SessionStateError(QuizEngineError):
    """Operation is not accepted in the current session phase."""
