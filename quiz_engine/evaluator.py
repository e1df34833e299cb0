"""
Grading of answers for each question type.

All functions accept partial input: an unanswered slot (None) or a skip
sentinel is graded incorrect, never an error.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from quiz_engine.models import (
    Answer,
    MultipleChoiceQuestion,
    OpenTextQuestion,
    PuzzleQuestion,
    Question,
)


@dataclass(frozen=True, slots=True)
class Grade:
    score: int
    total: int
    mistakes: list[int]
    correct_answers: list[int | str]

    @property
    def percent(self) -> float:
        if self.total == 0:
            return 0.0
        return (self.score / self.total) * 100


@dataclass(frozen=True, slots=True)
class ReviewItem:
    """One row of a finished-test review."""

    index: int
    text: str
    user_answer: Answer
    correct_answer: int | str | None
    is_correct: bool


def normalize_text(value: str) -> str:
    return value.strip().lower()


def is_multiple_choice_correct(question: MultipleChoiceQuestion, answer: Answer) -> bool:
    # bool is an int subclass; True must not grade as option 1.
    if not isinstance(answer, int) or isinstance(answer, bool):
        return False
    return answer == question.correct_index


def is_open_text_correct(question: OpenTextQuestion, answer: Answer) -> bool:
    if not isinstance(answer, str):
        return False
    return normalize_text(answer) == normalize_text(question.correct_text)


def is_puzzle_correct(question: PuzzleQuestion, answer: Answer) -> bool:
    if not isinstance(answer, list) or not answer:
        return False
    if not all(isinstance(word, str) for word in answer):
        return False
    return " ".join(answer) == question.correct_sentence


def is_correct(question: Question, answer: Answer) -> bool:
    """Grade a single answer."""
    if isinstance(question, MultipleChoiceQuestion):
        return is_multiple_choice_correct(question, answer)
    if isinstance(question, OpenTextQuestion):
        return is_open_text_correct(question, answer)
    if isinstance(question, PuzzleQuestion):
        return is_puzzle_correct(question, answer)
    return False


def is_answered(question: Question, answer: Answer) -> bool:
    """True when the slot holds a real answer (not empty, not the skip sentinel)."""
    if answer is None:
        return False
    if isinstance(question, MultipleChoiceQuestion):
        return isinstance(answer, int) and not isinstance(answer, bool) and answer >= 0
    if isinstance(question, OpenTextQuestion):
        return isinstance(answer, str) and bool(answer.strip())
    return isinstance(answer, list) and len(answer) > 0


def grade(questions: Sequence[Question], answers: Sequence[Answer]) -> Grade:
    """Score a full answer sheet; missing trailing answers count as unanswered."""
    mistakes: list[int] = []
    score = 0
    for index, question in enumerate(questions):
        answer = answers[index] if index < len(answers) else None
        if is_correct(question, answer):
            score += 1
        else:
            mistakes.append(index)
    return Grade(
        score=score,
        total=len(questions),
        mistakes=mistakes,
        correct_answers=[q.correct_answer for q in questions],
    )


def build_review(
    questions: Sequence[Question],
    answers: Sequence[Any],
    show_details: bool = True,
) -> list[ReviewItem]:
    """Per-question review; correct answers are withheld when details are hidden."""
    items = []
    for index, question in enumerate(questions):
        answer = answers[index] if index < len(answers) else None
        items.append(
            ReviewItem(
                index=index,
                text=question.text,
                user_answer=answer,
                correct_answer=question.correct_answer if show_details else None,
                is_correct=is_correct(question, answer),
            )
        )
    return items
