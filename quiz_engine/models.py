"""
Question and test value types, plus parsing of the backend test payload.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, ClassVar

from quiz_engine.errors import MalformedTestError

DEFAULT_QUESTION_SECONDS = 15
MIN_CHOICE_OPTIONS = 2
MAX_CHOICE_OPTIONS = 8
MIN_PUZZLE_WORDS = 2

SKIPPED_CHOICE = -1
SKIPPED_TEXT = ""

# None means the slot was never answered.
Answer = int | str | list[str] | None


class QuestionType(str, enum.Enum):
    """Kind of question."""

    MULTIPLE_CHOICE = "multiple-choice"
    OPEN_TEXT = "open-text"
    PUZZLE = "puzzle"


class SessionMode(str, enum.Enum):
    """How a test is taken."""

    STANDARD = "standard"
    EXAM = "exam"
    PRACTICE = "practice"


@dataclass(frozen=True, slots=True)
class MultipleChoiceQuestion:
    text: str
    options: tuple[str, ...]
    correct_index: int
    time_seconds: int | None = None

    question_type: ClassVar[QuestionType] = QuestionType.MULTIPLE_CHOICE

    @property
    def skipped_answer(self) -> int:
        return SKIPPED_CHOICE

    @property
    def correct_answer(self) -> int:
        return self.correct_index

    def to_dict(self, include_solution: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {
            "questionType": self.question_type.value,
            "text": self.text,
            "options": list(self.options),
            "time": self.time_seconds,
        }
        if include_solution:
            data["correctIndex"] = self.correct_index
        return data


@dataclass(frozen=True, slots=True)
class OpenTextQuestion:
    text: str
    correct_text: str
    hint: str | None = None
    time_seconds: int | None = None

    question_type: ClassVar[QuestionType] = QuestionType.OPEN_TEXT

    @property
    def skipped_answer(self) -> str:
        return SKIPPED_TEXT

    @property
    def correct_answer(self) -> str:
        return self.correct_text

    def to_dict(self, include_solution: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {
            "questionType": self.question_type.value,
            "text": self.text,
            "hasHint": bool(self.hint),
            "time": self.time_seconds,
        }
        if include_solution:
            data["correctAnswer"] = self.correct_text
            data["hint"] = self.hint
        return data


@dataclass(frozen=True, slots=True)
class PuzzleQuestion:
    text: str
    words: tuple[str, ...]
    correct_sentence: str
    time_seconds: int | None = None

    question_type: ClassVar[QuestionType] = QuestionType.PUZZLE

    @property
    def skipped_answer(self) -> list[str]:
        return []

    @property
    def correct_answer(self) -> str:
        return self.correct_sentence

    def to_dict(self, include_solution: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {
            "questionType": self.question_type.value,
            "text": self.text,
            "puzzleWords": list(self.words),
            "time": self.time_seconds,
        }
        if include_solution:
            data["correctSentence"] = self.correct_sentence
        return data


Question = MultipleChoiceQuestion | OpenTextQuestion | PuzzleQuestion


@dataclass(frozen=True, slots=True)
class GlobalTimer:
    """One countdown for the whole test."""

    seconds: int


@dataclass(frozen=True, slots=True)
class PerQuestionTimer:
    """Countdown per question; questions without their own time use the default."""

    default_seconds: int = DEFAULT_QUESTION_SECONDS


TimerPolicy = GlobalTimer | PerQuestionTimer


@dataclass(frozen=True, slots=True)
class Test:
    __test__ = False

    id: str
    title: str
    questions: tuple[Question, ...]
    timer_policy: TimerPolicy | None = None
    hide_content: bool = False
    attempts_to_unlock: int = 0

    def question_allowances(self) -> list[int]:
        """Seconds each question gets under a per-question timer."""
        default = (
            self.timer_policy.default_seconds
            if isinstance(self.timer_policy, PerQuestionTimer)
            else DEFAULT_QUESTION_SECONDS
        )
        return [q.time_seconds or default for q in self.questions]

    def content_unlocked(self, attempts: int) -> bool:
        """Whether correct answers may be shown after `attempts` prior attempts."""
        if not self.hide_content:
            return True
        return attempts >= self.attempts_to_unlock

    def details_visible(self, mode: SessionMode, attempts: int) -> bool:
        """Whether a finished attempt may show solutions. Exam results never do."""
        return mode is not SessionMode.EXAM and self.content_unlocked(attempts)


def validate_question(question: Question, position: int = 0) -> None:
    """Raise MalformedTestError if the question breaks its invariants."""
    label = f"question {position + 1}"
    if not isinstance(question.text, str) or not question.text.strip():
        raise MalformedTestError(f"{label}: text is required")
    if question.time_seconds is not None and question.time_seconds <= 0:
        raise MalformedTestError(f"{label}: time must be positive")

    if isinstance(question, MultipleChoiceQuestion):
        count = len(question.options)
        if not MIN_CHOICE_OPTIONS <= count <= MAX_CHOICE_OPTIONS:
            raise MalformedTestError(
                f"{label}: expected {MIN_CHOICE_OPTIONS}..{MAX_CHOICE_OPTIONS} options, got {count}"
            )
        if not 0 <= question.correct_index < count:
            raise MalformedTestError(f"{label}: correct index out of range")
    elif isinstance(question, OpenTextQuestion):
        if not question.correct_text.strip():
            raise MalformedTestError(f"{label}: correct answer is required")
    elif isinstance(question, PuzzleQuestion):
        if len(question.words) < MIN_PUZZLE_WORDS:
            raise MalformedTestError(f"{label}: puzzle needs at least {MIN_PUZZLE_WORDS} words")
        if not question.correct_sentence.strip():
            raise MalformedTestError(f"{label}: correct sentence is required")
    else:
        raise MalformedTestError(f"{label}: unknown question type")


def validate_test(test: Test) -> None:
    """Refuse tests that cannot be run."""
    if not test.questions:
        raise MalformedTestError("test has no questions")
    for position, question in enumerate(test.questions):
        validate_question(question, position)
    policy = test.timer_policy
    if isinstance(policy, GlobalTimer) and policy.seconds <= 0:
        raise MalformedTestError("global time limit must be positive")
    if isinstance(policy, PerQuestionTimer) and policy.default_seconds <= 0:
        raise MalformedTestError("question time must be positive")


def _optional_seconds(value: object, name: str) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise MalformedTestError(f"{name} must be a number")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise MalformedTestError(f"{name} must be a number") from None


def _string_list(value: object, name: str) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise MalformedTestError(f"{name} must be a list of strings")
    return tuple(value)


def question_from_dict(raw: dict[str, Any]) -> Question:
    """Build a question from its backend JSON shape."""
    if not isinstance(raw, dict):
        raise MalformedTestError("question must be an object")

    text = raw.get("text")
    if not isinstance(text, str):
        raise MalformedTestError("question text is required")
    time_seconds = _optional_seconds(raw.get("time"), "time")

    options_raw = raw.get("options") or []
    raw_type = raw.get("questionType")
    if raw_type is None:
        # Legacy records: a single stored option is the open-text answer.
        raw_type = (
            QuestionType.OPEN_TEXT.value
            if isinstance(options_raw, list) and len(options_raw) == 1
            else QuestionType.MULTIPLE_CHOICE.value
        )
    try:
        question_type = QuestionType(raw_type)
    except ValueError:
        raise MalformedTestError(f"unknown question type: {raw_type!r}") from None

    if question_type is QuestionType.MULTIPLE_CHOICE:
        correct_index = raw.get("correctIndex")
        if not isinstance(correct_index, int) or isinstance(correct_index, bool):
            raise MalformedTestError("correctIndex is required for multiple-choice")
        return MultipleChoiceQuestion(
            text=text,
            options=_string_list(options_raw, "options"),
            correct_index=correct_index,
            time_seconds=time_seconds,
        )

    if question_type is QuestionType.OPEN_TEXT:
        correct_text = raw.get("correctAnswer")
        if correct_text is None:
            options = _string_list(options_raw, "options")
            correct_text = options[0] if options else ""
        if not isinstance(correct_text, str):
            raise MalformedTestError("correct answer must be a string")
        hint = raw.get("hint")
        return OpenTextQuestion(
            text=text,
            correct_text=correct_text,
            hint=hint if isinstance(hint, str) and hint.strip() else None,
            time_seconds=time_seconds,
        )

    sentence = raw.get("correctSentence")
    if not isinstance(sentence, str):
        raise MalformedTestError("correctSentence is required for puzzle")
    return PuzzleQuestion(
        text=text,
        words=_string_list(raw.get("puzzleWords"), "puzzleWords"),
        correct_sentence=sentence,
        time_seconds=time_seconds,
    )


def timer_policy_for_mode(payload: dict[str, Any], mode: SessionMode) -> TimerPolicy | None:
    """
    Pick the timer policy a mode runs under.

    Standard and exam modes may carry their own overrides; an explicit
    use<Mode>GlobalTimer flag wins, otherwise a test-wide timeLimit means a
    global countdown. Practice mode is never timed.
    """
    if mode is SessionMode.PRACTICE:
        return None

    prefix = mode.value
    time_limit = _optional_seconds(payload.get("timeLimit"), "timeLimit")
    use_global = payload.get(f"use{prefix.capitalize()}GlobalTimer")
    mode_limit = _optional_seconds(payload.get(f"{prefix}TimeLimit"), f"{prefix}TimeLimit")
    mode_question = _optional_seconds(
        payload.get(f"{prefix}QuestionTime"), f"{prefix}QuestionTime"
    )

    if use_global is None:
        use_global = bool(time_limit)
    if use_global:
        seconds = mode_limit or time_limit
        if not seconds:
            raise MalformedTestError(f"{prefix} mode uses a global timer without a time limit")
        return GlobalTimer(seconds=seconds)
    return PerQuestionTimer(default_seconds=mode_question or DEFAULT_QUESTION_SECONDS)


def load_test_definition(payload: dict[str, Any], mode: SessionMode) -> Test:
    """Build the Test a session in `mode` runs, validating it."""
    if not isinstance(payload, dict):
        raise MalformedTestError("test payload must be an object")
    questions_raw = payload.get("questions")
    if not isinstance(questions_raw, list):
        raise MalformedTestError("questions must be a list")

    test_id = payload.get("_id") or payload.get("id")
    if not test_id:
        raise MalformedTestError("test id is required")

    attempts_to_unlock = _optional_seconds(payload.get("attemptsToUnlock"), "attemptsToUnlock")
    test = Test(
        id=str(test_id),
        title=str(payload.get("title") or ""),
        questions=tuple(question_from_dict(item) for item in questions_raw),
        timer_policy=timer_policy_for_mode(payload, mode),
        hide_content=bool(payload.get("hideContent", False)),
        attempts_to_unlock=attempts_to_unlock or 0,
    )
    validate_test(test)
    return test

