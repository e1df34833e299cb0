from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from quiz_engine import (
    GlobalTimer,
    MultipleChoiceQuestion,
    OpenTextQuestion,
    PerQuestionTimer,
    PuzzleQuestion,
    Test,
)

FIXED_NOW = "2024-01-01T00:00:00+00:00"


@dataclass
class FakeClock:
    t: float = 1000.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


@dataclass
class RecordingSink:
    payloads: list[dict[str, Any]] = field(default_factory=list)

    def __call__(self, payload: dict[str, Any]) -> None:
        self.payloads.append(payload)


def choice(text: str, correct: int = 0, count: int = 4, time: int | None = None) -> MultipleChoiceQuestion:
    return MultipleChoiceQuestion(
        text=text,
        options=tuple(f"{text}-option-{i}" for i in range(count)),
        correct_index=correct,
        time_seconds=time,
    )


def open_text(text: str, answer: str, hint: str | None = None) -> OpenTextQuestion:
    return OpenTextQuestion(text=text, correct_text=answer, hint=hint)


def puzzle(text: str, sentence: str) -> PuzzleQuestion:
    words = sentence.split()
    return PuzzleQuestion(text=text, words=tuple(reversed(words)), correct_sentence=sentence)


def make_test(
    *questions,
    timer: GlobalTimer | PerQuestionTimer | None = None,
    test_id: str = "t1",
    title: str = "Sample",
) -> Test:
    return Test(id=test_id, title=title, questions=tuple(questions), timer_policy=timer)


def wrong_index(question: MultipleChoiceQuestion) -> int:
    return (question.correct_index + 1) % len(question.options)
