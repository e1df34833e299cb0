"""Database models."""
from quiz_api.models.db.result import TestResult
from quiz_api.models.db.snapshot import SessionSnapshot

__all__ = [
    "SessionSnapshot",
    "TestResult",
]
