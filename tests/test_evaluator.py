import pytest

from quiz_engine.evaluator import build_review, grade, is_answered, is_correct, normalize_text
from tests.helpers import choice, open_text, puzzle


@pytest.mark.parametrize(
    "question",
    [choice("q"), open_text("capital?", "Paris"), puzzle("order", "the cat sat")],
)
@pytest.mark.parametrize("answer_kind", ["none", "sentinel"])
def test_unanswered_and_skipped_are_incorrect(question, answer_kind) -> None:
    answer = None if answer_kind == "none" else question.skipped_answer
    assert is_correct(question, answer) is False
    assert is_answered(question, answer) is False


def test_multiple_choice_is_strict() -> None:
    question = choice("q", correct=1)
    assert is_correct(question, 1)
    assert not is_correct(question, 0)
    assert not is_correct(question, True)
    assert not is_correct(question, "1")


def test_open_text_ignores_case_and_surrounding_space() -> None:
    question = open_text("capital?", "Paris")
    assert is_correct(question, "  Paris ")
    assert is_correct(question, "paris")
    assert not is_correct(question, "Pa ris")
    assert normalize_text("  MiXeD ") == "mixed"


def test_puzzle_requires_exact_order() -> None:
    question = puzzle("order", "the cat sat")
    assert not is_correct(question, ["cat", "the", "sat"])
    assert is_correct(question, ["the", "cat", "sat"])
    assert not is_correct(question, ["the", "cat"])


def test_grade_counts_score_and_mistakes() -> None:
    questions = [choice("a", correct=0), open_text("b", "yes"), puzzle("c", "one two")]
    outcome = grade(questions, [0, "no", ["one", "two"]])

    assert outcome.score == 2
    assert outcome.total == 3
    assert outcome.mistakes == [1]
    assert outcome.correct_answers == [0, "yes", "one two"]
    assert outcome.percent == pytest.approx(200 / 3)


def test_grade_accepts_short_answer_sheet() -> None:
    questions = [choice("a"), choice("b")]
    outcome = grade(questions, [0])
    assert outcome.score == 1
    assert outcome.mistakes == [1]


def test_build_review_hides_details() -> None:
    questions = [choice("a", correct=2), open_text("b", "yes")]
    review = build_review(questions, [2, None], show_details=False)

    assert [item.is_correct for item in review] == [True, False]
    assert all(item.correct_answer is None for item in review)

    detailed = build_review(questions, [2, None])
    assert detailed[1].correct_answer == "yes"
    assert detailed[1].text == "b"
