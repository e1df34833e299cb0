"""Session-related Pydantic models."""
from typing import Literal

from pydantic import BaseModel, Field


class SessionCreate(BaseModel):
    """Model for opening a session on a test."""

    testId: str = Field(..., min_length=1)
    mode: Literal["standard", "exam", "practice"] = "standard"
    userEmail: str | None = None
    preferences: dict[str, object] | None = None
    seed: int | None = None


class AnswerRequest(BaseModel):
    """Model for selecting or typing an answer."""

    answer: int | str | list[str]
    questionIndex: int | None = None


class NavigationRequest(BaseModel):
    """Model for navigation and practice actions."""

    questionIndex: int | None = None


class SessionResponse(BaseModel):
    """Model for the session view returned by every session endpoint."""

    sessionId: str
    accepted: bool = True
    phase: str
    mode: str
    testId: str
    title: str
    currentIndex: int
    total: int
    question: dict[str, object] | None = None
    answer: int | str | list[str] | None = None
    timeRemaining: int | None = None
    timerScope: str | None = None
    canGoBack: bool = False
    checked: bool = False
    revealed: bool = False
    hint: str | None = None
    progress: list[str] | None = None
    confirmBeforeExit: bool = False
    disableHotkeys: bool = False
    showDetails: bool = True
    feedback: dict[str, object] | None = None
    result: dict[str, object] | None = None
