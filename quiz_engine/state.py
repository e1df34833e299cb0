"""
Session state and its snapshot format.

The snapshot is a plain JSON-compatible dict:

    {
      "version": 1, "testId": ..., "mode": ...,
      "currentIndex": int, "answers": [...],
      "timeRemaining": int | int[] | null,
      "startTime": ISO8601, "timePerQuestion": int[],
      "checked": bool[] | null, "revealed": bool[] | null,
      "hintsRevealed": int[], "questions": [...]
    }

`questions` is the order the session presented (after shuffling), so a
resumed session shows the same questions the stored answers refer to.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from quiz_engine.errors import MalformedTestError, SnapshotError
from quiz_engine.evaluator import is_answered
from quiz_engine.models import (
    Answer,
    GlobalTimer,
    MultipleChoiceQuestion,
    OpenTextQuestion,
    PerQuestionTimer,
    Question,
    SessionMode,
    Test,
    question_from_dict,
    validate_question,
)

SNAPSHOT_VERSION = 1


@dataclass
class SessionState:
    test_id: str
    mode: SessionMode
    questions: list[Question]
    answers: list[Answer]
    start_time: str
    current_index: int = 0
    time_remaining: int | list[int] | None = None
    time_per_question: list[float] = field(default_factory=list)
    checked: list[bool] | None = None
    revealed: list[bool] | None = None
    hints_revealed: list[int] = field(default_factory=list)

    @classmethod
    def fresh(
        cls,
        test: Test,
        mode: SessionMode,
        start_time: str,
        time_remaining: int | list[int] | None = None,
    ) -> "SessionState":
        count = len(test.questions)
        practice = mode is SessionMode.PRACTICE
        return cls(
            test_id=test.id,
            mode=mode,
            questions=list(test.questions),
            answers=[None] * count,
            start_time=start_time,
            time_remaining=time_remaining,
            time_per_question=[0.0] * count,
            checked=[False] * count if practice else None,
            revealed=[False] * count if practice else None,
        )

    def is_resumable(self) -> bool:
        """Worth resuming once a real answer exists or the user moved on; skip sentinels do not count."""
        return self.current_index > 0 or any(
            is_answered(q, a) for q, a in zip(self.questions, self.answers)
        )

    def to_snapshot(self) -> dict[str, Any]:
        return {
            "version": SNAPSHOT_VERSION,
            "testId": self.test_id,
            "mode": self.mode.value,
            "currentIndex": self.current_index,
            "answers": [list(a) if isinstance(a, list) else a for a in self.answers],
            "timeRemaining": (
                list(self.time_remaining)
                if isinstance(self.time_remaining, list)
                else self.time_remaining
            ),
            "startTime": self.start_time,
            "timePerQuestion": [int(round(t)) for t in self.time_per_question],
            "checked": None if self.checked is None else list(self.checked),
            "revealed": None if self.revealed is None else list(self.revealed),
            "hintsRevealed": list(self.hints_revealed),
            "questions": [q.to_dict() for q in self.questions],
        }

    @classmethod
    def from_snapshot(cls, data: object, test: Test, mode: SessionMode) -> "SessionState":
        """Rebuild state from a snapshot, raising SnapshotError on any mismatch."""
        if not isinstance(data, dict):
            raise SnapshotError("snapshot is not an object")
        if data.get("version") != SNAPSHOT_VERSION:
            raise SnapshotError("unsupported snapshot version")
        if data.get("testId") != test.id or data.get("mode") != mode.value:
            raise SnapshotError("snapshot belongs to another session")

        count = len(test.questions)
        questions = _load_questions(data.get("questions"), count)
        answers = _load_answers(data.get("answers"), questions)

        current_index = data.get("currentIndex")
        if not _is_int(current_index) or not 0 <= current_index < count:
            raise SnapshotError("currentIndex out of range")

        start_time = data.get("startTime")
        if not isinstance(start_time, str) or not start_time:
            raise SnapshotError("startTime is required")

        time_per_question = data.get("timePerQuestion")
        if (
            not isinstance(time_per_question, list)
            or len(time_per_question) != count
            or not all(_is_number(t) and t >= 0 for t in time_per_question)
        ):
            raise SnapshotError("timePerQuestion does not match the test")

        practice = mode is SessionMode.PRACTICE
        checked = _load_flags(data.get("checked"), count, practice, "checked")
        revealed = _load_flags(data.get("revealed"), count, practice, "revealed")

        hints = data.get("hintsRevealed", [])
        if not isinstance(hints, list) or not all(_is_int(i) and 0 <= i < count for i in hints):
            raise SnapshotError("hintsRevealed does not match the test")

        return cls(
            test_id=test.id,
            mode=mode,
            questions=questions,
            answers=answers,
            start_time=start_time,
            current_index=current_index,
            time_remaining=_load_time_remaining(data.get("timeRemaining"), test),
            time_per_question=[float(t) for t in time_per_question],
            checked=checked,
            revealed=revealed,
            hints_revealed=list(hints),
        )


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _load_questions(raw: object, count: int) -> list[Question]:
    if not isinstance(raw, list) or len(raw) != count:
        raise SnapshotError("snapshot questions do not match the test")
    questions = []
    try:
        for position, item in enumerate(raw):
            question = question_from_dict(item)
            validate_question(question, position)
            questions.append(question)
    except MalformedTestError as exc:
        raise SnapshotError(f"snapshot question is invalid: {exc}") from exc
    return questions


def _load_answers(raw: object, questions: list[Question]) -> list[Answer]:
    if not isinstance(raw, list) or len(raw) != len(questions):
        raise SnapshotError("answers do not match the test")
    answers: list[Answer] = []
    for question, answer in zip(questions, raw):
        if answer is None:
            answers.append(None)
        elif isinstance(question, MultipleChoiceQuestion):
            if not _is_int(answer) or not -1 <= answer < len(question.options):
                raise SnapshotError("choice answer out of range")
            answers.append(answer)
        elif isinstance(question, OpenTextQuestion):
            if not isinstance(answer, str):
                raise SnapshotError("text answer must be a string")
            answers.append(answer)
        else:
            if not isinstance(answer, list) or not all(isinstance(w, str) for w in answer):
                raise SnapshotError("puzzle answer must be a list of words")
            answers.append(list(answer))
    return answers


def _load_flags(raw: object, count: int, required: bool, name: str) -> list[bool] | None:
    if not required:
        return None
    if not isinstance(raw, list) or len(raw) != count or not all(isinstance(f, bool) for f in raw):
        raise SnapshotError(f"{name} flags do not match the test")
    return list(raw)


def _load_time_remaining(raw: object, test: Test) -> int | list[int] | None:
    policy = test.timer_policy
    if policy is None:
        return None
    if isinstance(policy, GlobalTimer):
        if not _is_int(raw) or not 0 <= raw <= policy.seconds:
            raise SnapshotError("timeRemaining does not match the global timer")
        return raw
    if isinstance(policy, PerQuestionTimer):
        if (
            not isinstance(raw, list)
            or len(raw) != len(test.questions)
            or not all(_is_int(v) and v >= 0 for v in raw)
        ):
            raise SnapshotError("timeRemaining does not match the question timers")
        return list(raw)
    raise SnapshotError("unknown timer policy")
