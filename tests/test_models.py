import pytest

from quiz_engine import (
    GlobalTimer,
    MalformedTestError,
    MultipleChoiceQuestion,
    OpenTextQuestion,
    PerQuestionTimer,
    PuzzleQuestion,
    SessionMode,
    load_test_definition,
)
from quiz_engine.models import DEFAULT_QUESTION_SECONDS, question_from_dict, timer_policy_for_mode
from quiz_engine.preferences import ExitConfirmation, UserPreferences


def _payload(**overrides) -> dict[str, object]:
    payload: dict[str, object] = {
        "id": "abc",
        "title": "Geography",
        "questions": [
            {"text": "Capital of France?", "options": ["Paris", "Lyon"], "correctIndex": 0},
            {"text": "Spell it", "questionType": "open-text", "correctAnswer": "Oslo", "hint": "Norway"},
            {
                "text": "Order the words",
                "questionType": "puzzle",
                "puzzleWords": ["sat", "cat", "the"],
                "correctSentence": "the cat sat",
                "time": 40,
            },
        ],
    }
    payload.update(overrides)
    return payload


def test_load_test_definition_parses_every_type() -> None:
    test = load_test_definition(_payload(), SessionMode.STANDARD)

    first, second, third = test.questions
    assert isinstance(first, MultipleChoiceQuestion) and first.options == ("Paris", "Lyon")
    assert isinstance(second, OpenTextQuestion) and second.hint == "Norway"
    assert isinstance(third, PuzzleQuestion) and third.time_seconds == 40
    assert test.timer_policy == PerQuestionTimer(DEFAULT_QUESTION_SECONDS)
    assert test.question_allowances() == [DEFAULT_QUESTION_SECONDS, DEFAULT_QUESTION_SECONDS, 40]


def test_legacy_single_option_is_open_text() -> None:
    question = question_from_dict({"text": "Say hi", "options": ["hello"]})
    assert isinstance(question, OpenTextQuestion)
    assert question.correct_text == "hello"


@pytest.mark.parametrize(
    "questions",
    [
        [],
        [{"text": "one option", "questionType": "multiple-choice", "options": ["a"], "correctIndex": 0}],
        [{"text": "nine options", "options": [str(i) for i in range(9)], "correctIndex": 0}],
        [{"text": "bad index", "options": ["a", "b"], "correctIndex": 2}],
        [{"text": "short puzzle", "questionType": "puzzle", "puzzleWords": ["one"], "correctSentence": "one"}],
        [{"text": "no answer", "questionType": "open-text", "correctAnswer": "  "}],
        [{"text": "weird", "questionType": "essay"}],
        [{"text": "", "options": ["a", "b"], "correctIndex": 0}],
        [{"text": "zero time", "options": ["a", "b"], "correctIndex": 0, "time": 0}],
    ],
)
def test_malformed_tests_are_refused(questions) -> None:
    with pytest.raises(MalformedTestError):
        load_test_definition(_payload(questions=questions), SessionMode.STANDARD)


def test_missing_id_is_refused() -> None:
    payload = _payload()
    del payload["id"]
    with pytest.raises(MalformedTestError):
        load_test_definition(payload, SessionMode.STANDARD)


def test_timer_policy_per_mode() -> None:
    payload = _payload(
        timeLimit=300,
        useExamGlobalTimer=False,
        examQuestionTime=20,
        standardTimeLimit=120,
    )
    assert timer_policy_for_mode(payload, SessionMode.STANDARD) == GlobalTimer(120)
    assert timer_policy_for_mode(payload, SessionMode.EXAM) == PerQuestionTimer(20)
    assert timer_policy_for_mode(payload, SessionMode.PRACTICE) is None


def test_global_flag_without_limit_is_malformed() -> None:
    with pytest.raises(MalformedTestError):
        timer_policy_for_mode(_payload(useStandardGlobalTimer=True), SessionMode.STANDARD)


def test_content_unlock_after_attempts() -> None:
    test = load_test_definition(_payload(hideContent=True, attemptsToUnlock=2), SessionMode.EXAM)
    assert not test.content_unlocked(1)
    assert test.content_unlocked(2)
    assert load_test_definition(_payload(), SessionMode.EXAM).content_unlocked(0)


def test_details_visible_per_mode() -> None:
    locked = load_test_definition(_payload(hideContent=True, attemptsToUnlock=2), SessionMode.STANDARD)
    assert not locked.details_visible(SessionMode.STANDARD, 1)
    assert locked.details_visible(SessionMode.STANDARD, 2)
    assert locked.details_visible(SessionMode.PRACTICE, 2)

    open_test = load_test_definition(_payload(), SessionMode.EXAM)
    assert not open_test.details_visible(SessionMode.EXAM, 10)


def test_question_to_dict_withholds_solution() -> None:
    test = load_test_definition(_payload(), SessionMode.PRACTICE)
    hidden = test.questions[1].to_dict(include_solution=False)
    assert "correctAnswer" not in hidden
    assert hidden["hasHint"] is True
    assert question_from_dict(test.questions[2].to_dict()) == test.questions[2]


def test_preferences_from_mapping() -> None:
    prefs = UserPreferences.from_mapping(
        {
            "autoAdvanceAfterSelect": True,
            "autoAdvanceDelay": 500,
            "confirmBeforeExit": "never",
            "hideTimer": "yes",
            "somethingElse": 1,
        }
    )
    assert prefs.auto_advance_after_select is True
    assert prefs.auto_advance_delay_ms == 500
    assert prefs.confirm_before_exit is ExitConfirmation.NEVER
    assert prefs.hide_timer is False
    assert UserPreferences.from_mapping(prefs.to_dict()) == prefs
    assert UserPreferences.from_mapping(None) == UserPreferences()
