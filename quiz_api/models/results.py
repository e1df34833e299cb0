"""Result-related Pydantic models."""
from pydantic import BaseModel, Field


class ResultCreate(BaseModel):
    """Model for a submitted test result."""

    clientResultId: str | None = None
    userEmail: str = Field(..., min_length=1)
    testId: str = Field(..., min_length=1)
    testTitle: str = ""
    mode: str = "standard"
    score: int = Field(..., ge=0)
    total: int = Field(..., ge=0)
    answers: list[object] = Field(default_factory=list)
    correctAnswers: list[object] = Field(default_factory=list)
    mistakes: list[int] = Field(default_factory=list)
    startTime: str | None = None
    endTime: str | None = None
    duration: int | None = None
    timePerQuestion: list[int] = Field(default_factory=list)
    shuffledQuestions: list[dict[str, object]] = Field(default_factory=list)


class ResultRecordResponse(BaseModel):
    """Model for the results sink acknowledgement."""

    status: str
    resultId: int | None = None


class AttemptCountResponse(BaseModel):
    """Model for prior-attempt information of a user on a test."""

    testId: str
    userEmail: str
    attempts: int
    contentUnlocked: bool
