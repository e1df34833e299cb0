"""Pydantic models."""
from quiz_api.models.results import (
    AttemptCountResponse,
    ResultCreate,
    ResultRecordResponse,
)
from quiz_api.models.sessions import (
    AnswerRequest,
    NavigationRequest,
    SessionCreate,
    SessionResponse,
)

__all__ = [
    "AnswerRequest",
    "AttemptCountResponse",
    "NavigationRequest",
    "ResultCreate",
    "ResultRecordResponse",
    "SessionCreate",
    "SessionResponse",
]
