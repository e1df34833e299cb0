import json

import pytest

from quiz_engine import (
    GlobalTimer,
    HintUnavailableError,
    InvalidAnswerError,
    PerQuestionTimer,
    SessionMode,
    SessionPhase,
    SessionStateError,
    Test,
    snapshot_key,
)
from quiz_engine.session import QuestionStatus
from tests.helpers import FIXED_NOW, choice, make_test, open_text, puzzle, wrong_index


def _tick(session, clock, seconds: int) -> None:
    for _ in range(seconds):
        clock.advance(1)
        session.tick()


def test_global_timer_scenario(make_session, clock, sink) -> None:
    test = make_test(choice("q1"), choice("q2"), choice("q3"), timer=GlobalTimer(60))
    session = make_session(test)
    assert session.start() is SessionPhase.ACTIVE

    first = session.current_question
    assert session.select_answer(first.correct_index)
    assert session.next_question()

    _tick(session, clock, 60)
    assert session.current_index == 2

    third = session.current_question
    assert session.select_answer(wrong_index(third))
    assert session.next_question()

    assert session.phase is SessionPhase.FINISHED
    assert len(sink.payloads) == 1
    payload = sink.payloads[0]
    assert payload["score"] == 1
    assert payload["mistakes"] == [1, 2]
    assert payload["answers"] == [first.correct_index, -1, wrong_index(third)]
    assert payload["startTime"] == FIXED_NOW
    assert [q["text"] for q in payload["shuffledQuestions"]] == [q.text for q in session.questions]


def test_question_timer_pauses_on_navigation(make_session, clock) -> None:
    session = make_session(make_test(choice("a"), choice("b"), choice("c"), timer=PerQuestionTimer(10)))
    session.start()
    _tick(session, clock, 2)
    session.select_answer(0)
    session.next_question()
    _tick(session, clock, 3)

    assert session.current_time_remaining() == 7
    assert session.previous_question()
    assert session.current_time_remaining() == 8

    assert session.next_question()
    assert session.current_index == 1
    assert session.current_time_remaining() == 7
    assert session.time_remaining == [8, 7, 10]


def test_forward_requires_answer(make_session) -> None:
    session = make_session(make_test(choice("a"), choice("b")))
    session.start()

    assert not session.next_question()
    assert session.current_index == 0

    session.select_answer(1)
    assert session.next_question()
    assert session.current_index == 1


def test_forward_without_requirement_writes_sentinel(make_session) -> None:
    session = make_session(
        make_test(choice("a"), open_text("b", "x"), puzzle("c", "one two")),
        mode=SessionMode.PRACTICE,
    )
    session.start()
    assert session.next_question()
    assert session.answers[0] is None

    standard = make_session(
        make_test(choice("a"), choice("b"), test_id="t2"),
        preferences={"requireAnswerBeforeNext": False},
    )
    standard.start()
    assert standard.next_question()
    assert standard.answers[0] == -1


def test_expiry_writes_sentinel_and_locks_slot(make_session, clock) -> None:
    session = make_session(make_test(choice("a"), choice("b"), choice("c"), timer=PerQuestionTimer(5)))
    session.start()
    _tick(session, clock, 5)

    assert session.current_index == 1
    assert session.answers[0] == -1
    assert not session.previous_question()
    assert not session.go_to(0)
    assert session.question_statuses() == [
        QuestionStatus.EXPIRED,
        QuestionStatus.CURRENT,
        QuestionStatus.UNANSWERED,
    ]
    assert session.view().can_go_back is False

    session.select_answer(0)
    session.next_question()
    assert session.previous_question()
    assert session.current_index == 1
    assert not session.previous_question()


def test_stale_input_after_expiry_is_ignored(make_session, clock) -> None:
    session = make_session(make_test(choice("a"), choice("b"), timer=PerQuestionTimer(5)))
    session.start()
    _tick(session, clock, 5)

    assert not session.select_answer(0, question_index=0)
    assert not session.next_question(question_index=0)
    assert session.answers == [-1, None]
    assert session.select_answer(0, question_index=1)


def test_grace_period_blocks_early_input(make_session, clock) -> None:
    session = make_session(make_test(choice("a"), choice("b")), grace_period_s=0.3)
    session.start()

    assert not session.select_answer(0)
    clock.advance(0.5)
    assert session.select_answer(0)


def test_return_to_unanswered(make_session, sink) -> None:
    session = make_session(make_test(choice("a"), choice("b"), choice("c")))
    session.start()
    assert session.go_to(1)
    session.select_answer(0)
    session.next_question()
    session.select_answer(0)
    session.next_question()

    assert session.phase is SessionPhase.ACTIVE
    assert session.current_index == 0

    session.select_answer(0)
    session.next_question()
    session.next_question()
    session.next_question()
    assert session.phase is SessionPhase.FINISHED
    assert None not in sink.payloads[0]["answers"]


def test_return_to_unanswered_can_be_disabled(make_session, sink) -> None:
    session = make_session(make_test(choice("a"), choice("b")), preferences={"returnToUnanswered": False})
    session.start()
    session.go_to(1)
    session.select_answer(0)
    session.next_question()

    assert session.phase is SessionPhase.FINISHED
    assert sink.payloads[0]["answers"] == [None, 0]


def test_clocked_out_question_is_not_revisited(make_session, clock) -> None:
    session = make_session(make_test(choice("a"), choice("b"), timer=PerQuestionTimer(5)))
    session.start()
    _tick(session, clock, 5)
    session.select_answer(0)
    session.next_question()

    assert session.phase is SessionPhase.FINISHED


def test_auto_advance_after_delay(make_session, clock) -> None:
    session = make_session(
        make_test(choice("a"), choice("b"), choice("c")),
        preferences={"autoAdvanceAfterSelect": True, "autoAdvanceDelayMs": 1000},
    )
    session.start()
    session.select_answer(0)

    clock.advance(0.5)
    session.poll()
    assert session.current_index == 0

    clock.advance(0.6)
    session.poll()
    assert session.current_index == 1


def test_manual_advance_cancels_pending_auto_advance(make_session, clock) -> None:
    session = make_session(
        make_test(choice("a"), choice("b"), choice("c")),
        preferences={"autoAdvanceAfterSelect": True},
    )
    session.start()
    session.select_answer(0)
    session.next_question()
    clock.advance(2)
    session.poll()

    assert session.current_index == 1


def test_auto_advance_only_for_complete_answers(make_session, clock) -> None:
    session = make_session(
        make_test(puzzle("p", "the cat sat"), test_id="p1"),
        preferences={"autoAdvanceAfterSelect": True},
    )
    session.start()
    session.select_answer(["the", "cat"])
    clock.advance(2)
    session.poll()
    assert session.phase is SessionPhase.ACTIVE

    session.select_answer(["the", "cat", "sat"])
    clock.advance(2)
    session.poll()
    assert session.phase is SessionPhase.FINISHED


def test_finish_is_idempotent(make_session, clock, sink, store) -> None:
    session = make_session(
        make_test(choice("a"), choice("b")),
        preferences={"autoAdvanceAfterSelect": True},
    )
    session.start()
    session.select_answer(0)
    session.next_question()
    session.select_answer(0)

    payload = session.finish()
    assert payload is not None
    assert session.finish() is None
    clock.advance(2)
    session.poll()
    session.tick()

    assert session.phase is SessionPhase.FINISHED
    assert len(sink.payloads) == 1
    assert store.items == {}


def test_invalid_answers_are_rejected(make_session) -> None:
    session = make_session(make_test(choice("a", count=3)))
    session.start()

    with pytest.raises(InvalidAnswerError):
        session.select_answer(3)
    with pytest.raises(InvalidAnswerError):
        session.select_answer("0")
    with pytest.raises(InvalidAnswerError):
        session.select_answer(True)
    assert session.answers == [None]


def test_puzzle_answer_must_use_word_pool(make_session) -> None:
    session = make_session(make_test(puzzle("p", "the cat sat")))
    session.start()

    with pytest.raises(InvalidAnswerError):
        session.select_answer(["the", "dog"])
    with pytest.raises(InvalidAnswerError):
        session.select_answer(["the", "the"])
    assert session.select_answer(["the", "cat"])
    assert session.answers == [["the", "cat"]]


def test_duration_is_time_spent_on_questions(make_session, clock, sink) -> None:
    session = make_session(make_test(choice("a"), choice("b")))
    session.start()
    clock.advance(4)
    session.select_answer(0)
    session.next_question()
    clock.advance(3)
    session.select_answer(0)
    session.next_question()

    payload = sink.payloads[0]
    assert payload["timePerQuestion"] == [4, 3]
    assert payload["duration"] == 7
    assert payload["mode"] == "standard"
    assert payload["clientResultId"]


def test_paid_hint(make_session) -> None:
    calls = []

    def refuse() -> bool:
        calls.append("refuse")
        return False

    session = make_session(make_test(open_text("capital?", "Oslo", hint="Norway")), spend_credit=refuse)
    session.start()
    with pytest.raises(HintUnavailableError):
        session.reveal_hint()
    assert session.hints_revealed == []
    assert session.view().hint is None

    def pay() -> bool:
        calls.append("pay")
        return True

    paid = make_session(make_test(open_text("capital?", "Oslo", hint="Norway"), test_id="t2"), spend_credit=pay)
    paid.start()
    assert paid.reveal_hint() == "Norway"
    assert paid.reveal_hint() == "Norway"
    assert paid.view().hint == "Norway"
    assert calls == ["refuse", "pay"]


def test_credit_failure_leaves_hint_hidden(make_session) -> None:
    def broken() -> bool:
        raise ConnectionError("down")

    session = make_session(make_test(open_text("q", "a", hint="h")), spend_credit=broken)
    session.start()
    with pytest.raises(HintUnavailableError):
        session.reveal_hint()
    assert session.hints_revealed == []
    assert session.phase is SessionPhase.ACTIVE


def test_question_without_hint(make_session) -> None:
    session = make_session(make_test(choice("a")))
    session.start()
    with pytest.raises(HintUnavailableError):
        session.reveal_hint()


def test_resume_restores_progress_and_timers(make_session, clock) -> None:
    test = make_test(choice("a"), choice("b"), choice("c"), timer=PerQuestionTimer(10))
    first = make_session(test)
    first.start()
    first.select_answer(1)
    first.next_question()
    _tick(first, clock, 3)

    second = make_session(test, seed=99)
    assert second.start() is SessionPhase.AWAITING_RESUME
    assert second.resume_available
    second.resume()

    assert second.phase is SessionPhase.ACTIVE
    assert second.current_index == 1
    assert second.answers == [1, None, None]
    assert second.questions == first.questions
    assert second.time_remaining == [10, 7, 10]

    with pytest.raises(SessionStateError):
        second.resume()


def test_restart_discards_progress(make_session, clock, store) -> None:
    test = make_test(choice("a"), choice("b"), timer=PerQuestionTimer(10))
    first = make_session(test)
    first.start()
    first.select_answer(0)
    first.next_question()
    _tick(first, clock, 4)

    second = make_session(test)
    assert second.start() is SessionPhase.AWAITING_RESUME
    second.restart()

    assert second.current_index == 0
    assert second.answers == [None, None]
    assert second.time_remaining == [10, 10]

    third = make_session(test)
    assert third.start() is SessionPhase.ACTIVE


def test_corrupt_snapshot_starts_fresh(make_session, store) -> None:
    test = make_test(choice("a"), choice("b"))
    key = snapshot_key(test.id, SessionMode.STANDARD)
    store.items[key] = "{not json"

    session = make_session(test)
    assert session.start() is SessionPhase.ACTIVE
    assert json.loads(store.items[key])["currentIndex"] == 0


def test_confirm_before_exit(make_session) -> None:
    session = make_session(make_test(choice("a"), choice("b")))
    session.start()
    assert session.should_confirm_exit()
    session.select_answer(0)
    session.next_question()
    session.select_answer(0)
    assert not session.should_confirm_exit()

    always = make_session(make_test(choice("a"), test_id="t2"), preferences={"confirmBeforeExit": "always"})
    always.start()
    always.select_answer(0)
    assert always.should_confirm_exit()
    always.finish()
    assert not always.should_confirm_exit()


def test_view_hides_solution_until_finished(make_session) -> None:
    session = make_session(make_test(choice("a"), timer=GlobalTimer(30)), preferences={"hideTimer": True})
    view = session.view()
    assert view.phase is SessionPhase.NOT_STARTED and view.question is None

    session.start()
    view = session.view()
    assert "correctIndex" not in view.question
    assert view.time_remaining is None
    assert view.timer_scope is None

    session.select_answer(0)
    session.finish()
    view = session.view()
    assert "correctIndex" in view.question
    assert view.result is not None


def test_practice_only_actions_are_refused(make_session) -> None:
    session = make_session(make_test(choice("a"), choice("b")))
    session.start()
    session.select_answer(0)

    assert not session.skip()
    assert session.check_answer() is None
    assert session.show_answer() is None
    assert session.checked == []


def test_locked_content_hides_solutions_until_unlocked(make_session) -> None:
    locked = Test(
        id="locked",
        title="Locked",
        questions=(choice("a", correct=1),),
        hide_content=True,
        attempts_to_unlock=2,
    )

    first = make_session(locked, prior_attempts=1)
    first.start()
    first.select_answer(0)
    first.next_question()
    assert first.view().show_details is False
    assert "correctIndex" not in first.view().question

    second = make_session(locked, prior_attempts=2)
    second.start()
    second.select_answer(0)
    second.next_question()
    assert second.view().show_details is True
    assert second.view().question["correctIndex"] == second.questions[0].correct_index


def test_snapshots_are_scoped_to_their_owner(make_session) -> None:
    test = make_test(choice("a"), choice("b"))
    alice = make_session(test, snapshot_owner="alice@example.com")
    alice.start()
    alice.select_answer(0)
    alice.next_question()

    bob = make_session(test, snapshot_owner="bob@example.com")
    assert bob.start() is SessionPhase.ACTIVE
    bob.restart()

    again = make_session(test, snapshot_owner="alice@example.com")
    assert again.start() is SessionPhase.AWAITING_RESUME
