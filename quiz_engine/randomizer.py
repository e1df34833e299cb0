"""Question and option shuffling applied once at session start."""
from __future__ import annotations

import random
from dataclasses import replace

from quiz_engine.models import MultipleChoiceQuestion, Question, Test


def shuffle_options(question: MultipleChoiceQuestion, rng: random.Random) -> MultipleChoiceQuestion:
    """Permute options, keeping correct_index on the same underlying option."""
    order = list(range(len(question.options)))
    rng.shuffle(order)
    return replace(
        question,
        options=tuple(question.options[i] for i in order),
        correct_index=order.index(question.correct_index),
    )


def shuffle_test(test: Test, enabled: bool, rng: random.Random | None = None) -> Test:
    """
    Return the test with question order and choice options shuffled.

    Disabled shuffling (practice mode) returns the test unchanged. Open-text
    and puzzle questions keep their content; only their position moves.
    """
    if not enabled:
        return test
    rng = rng or random.Random()

    questions: list[Question] = list(test.questions)
    rng.shuffle(questions)
    questions = [
        shuffle_options(q, rng) if isinstance(q, MultipleChoiceQuestion) else q
        for q in questions
    ]
    return replace(test, questions=tuple(questions))
