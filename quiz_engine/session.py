"""
Quiz-taking session state machine.

Phases: NOT_STARTED -> [AWAITING_RESUME] -> ACTIVE -> FINALIZING -> FINISHED.

Navigation rules per mode:

    mode      forward            back  skip  show  check
    standard  needs answer (*)   yes   no    no    no
    exam      needs answer (*)   no    no    no    no
    practice  always             yes   yes   yes   yes

    (*) unless the question's time ran out, or the user turned off
        requireAnswerBeforeNext (then the skip sentinel is written).

The session is single-threaded: the host calls tick() once per second and
poll() whenever convenient, and routes user input to the public methods.
Every mutating method accepts the question index the caller believes is
current; input aimed at a question the session already left is ignored.
"""
from __future__ import annotations

import enum
import logging
import random
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from quiz_engine.clock import Clock, utc_now_iso
from quiz_engine.errors import HintUnavailableError, InvalidAnswerError, SessionStateError
from quiz_engine.evaluator import is_answered, is_correct
from quiz_engine.models import (
    Answer,
    MultipleChoiceQuestion,
    OpenTextQuestion,
    PuzzleQuestion,
    Question,
    SessionMode,
    Test,
    validate_test,
)
from quiz_engine.persistence import PersistenceAdapter, snapshot_key
from quiz_engine.preferences import ExitConfirmation, UserPreferences
from quiz_engine.randomizer import shuffle_test
from quiz_engine.results import ResultPayload, ResultSubmitter, build_result_payload
from quiz_engine.state import SessionState
from quiz_engine.timer import TimerController

logger = logging.getLogger(__name__)

DEFAULT_GRACE_PERIOD_S = 0.3


class SessionPhase(str, enum.Enum):
    NOT_STARTED = "not_started"
    AWAITING_RESUME = "awaiting_resume"
    ACTIVE = "active"
    FINALIZING = "finalizing"
    FINISHED = "finished"


class QuestionStatus(str, enum.Enum):
    CURRENT = "current"
    ANSWERED = "answered"
    SKIPPED = "skipped"
    EXPIRED = "expired"
    UNANSWERED = "unanswered"


@dataclass(frozen=True, slots=True)
class PracticeFeedback:
    index: int
    is_correct: bool


@dataclass(frozen=True)
class SessionView:
    """Read-only picture of the session for a UI."""

    phase: SessionPhase
    mode: SessionMode
    test_id: str
    title: str
    current_index: int
    total: int
    question: dict[str, Any] | None
    answer: Answer
    time_remaining: int | None
    timer_scope: str | None
    can_go_back: bool
    checked: bool
    revealed: bool
    hint: str | None
    progress: list[QuestionStatus] | None
    confirm_before_exit: bool
    disable_hotkeys: bool
    result: ResultPayload | None
    show_details: bool = True


class DeferredAction:
    """At most one pending auto-advance, fired by poll() once due."""

    def __init__(self) -> None:
        self._due_at: float | None = None
        self._index: int | None = None

    @property
    def pending(self) -> bool:
        return self._due_at is not None

    def schedule(self, due_at: float, index: int) -> None:
        self._due_at = due_at
        self._index = index

    def cancel(self) -> None:
        self._due_at = None
        self._index = None

    def pop_due(self, now: float) -> int | None:
        if self._due_at is None or now < self._due_at:
            return None
        index = self._index
        self.cancel()
        return index


class QuizSession:
    """Drives one user through one test in one mode."""

    def __init__(
        self,
        test: Test,
        mode: SessionMode,
        *,
        persistence: PersistenceAdapter,
        submitter: ResultSubmitter,
        clock: Clock,
        preferences: UserPreferences | None = None,
        rng: random.Random | None = None,
        spend_credit: Callable[[], bool] | None = None,
        user_email: str = "unknown",
        prior_attempts: int = 0,
        snapshot_owner: str | None = None,
        grace_period_s: float = DEFAULT_GRACE_PERIOD_S,
        now_iso: Callable[[], str] = utc_now_iso,
    ) -> None:
        validate_test(test)
        self.test = test
        self.mode = mode
        self.preferences = preferences or UserPreferences()
        self.user_email = user_email
        # Decided once: solutions of a finished attempt stay hidden in exam mode
        # and while the test content is locked for this user.
        self.show_details = test.details_visible(mode, prior_attempts)
        self.key = snapshot_key(test.id, mode, snapshot_owner)
        self.result: ResultPayload | None = None

        self._persistence = persistence
        self._submitter = submitter
        self._clock = clock
        self._rng = rng or random.Random()
        self._spend_credit = spend_credit
        self._grace_period_s = max(0.0, float(grace_period_s))
        self._now_iso = now_iso

        self._phase = SessionPhase.NOT_STARTED
        self._state: SessionState | None = None
        self._pending_resume: SessionState | None = None
        self._timer: TimerController | None = None
        self._mounted_at = 0.0
        self._in_transition = False
        self._auto_advance = DeferredAction()

    # ------------------------------------------------------------------ phases

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def resume_available(self) -> bool:
        return self._phase is SessionPhase.AWAITING_RESUME

    def start(self) -> SessionPhase:
        """Offer a resume when a usable snapshot exists, otherwise begin fresh."""
        if self._phase is not SessionPhase.NOT_STARTED:
            raise SessionStateError("session already started")
        stored = self._persistence.load(self.key, self.test, self.mode)
        if stored is not None and stored.is_resumable():
            self._pending_resume = stored
            self._phase = SessionPhase.AWAITING_RESUME
            logger.info("Session %s has a resumable snapshot", self.key)
            return self._phase
        self._begin_fresh()
        return self._phase

    def resume(self) -> None:
        """Continue from the stored snapshot, timers included."""
        if self._phase is not SessionPhase.AWAITING_RESUME or self._pending_resume is None:
            raise SessionStateError("nothing to resume")
        state = self._pending_resume
        self._pending_resume = None
        timer = None
        if state.time_remaining is not None:
            timer = TimerController(state.time_remaining, self._handle_expire)
        logger.info("Resuming session %s at question %s", self.key, state.current_index + 1)
        self._activate(state, timer)
        if timer is not None and timer.per_question and not timer.has_time(state.current_index):
            self._handle_expire(state.current_index)

    def restart(self) -> None:
        """Drop any stored progress and start over at question 1 with full timers."""
        if self._phase in (SessionPhase.NOT_STARTED, SessionPhase.FINALIZING):
            raise SessionStateError("session cannot be restarted now")
        self._auto_advance.cancel()
        if self._timer is not None:
            self._timer.stop()
        self._pending_resume = None
        self.result = None
        self._persistence.clear(self.key)
        logger.info("Restarting session %s", self.key)
        self._begin_fresh()

    def finish(self) -> ResultPayload | None:
        """Finalize now. A second call (or a call racing an auto-advance) is a no-op."""
        if self._phase is not SessionPhase.ACTIVE or self._in_transition:
            return None
        self._record_elapsed()
        self._finalize()
        return self.result

    # -------------------------------------------------------------- time

    def tick(self) -> None:
        """One second of wall time passed."""
        if self._phase is not SessionPhase.ACTIVE:
            return
        if self._timer is not None:
            self._timer.tick()
            if self._phase is SessionPhase.ACTIVE:
                self._save()
        self.poll()

    def poll(self) -> None:
        """Fire the pending auto-advance if it is due."""
        if self._phase is not SessionPhase.ACTIVE or self._in_transition:
            return
        index = self._auto_advance.pop_due(self._clock.now())
        if index is None or index != self._require_state().current_index:
            return
        self._advance(index + 1)

    # ---------------------------------------------------------- user input

    def select_answer(self, answer: object, question_index: int | None = None) -> bool:
        """Record an answer for the current question. Returns True if accepted."""
        if not self._accepts_input(question_index):
            return False
        state = self._require_state()
        index = state.current_index
        if self._slot_locked(index):
            return False
        question = state.questions[index]
        value = _coerce_answer(question, answer)
        state.answers[index] = value
        self._save()

        if self.preferences.auto_advance_after_select and _completes_question(question, value):
            delay_s = self.preferences.auto_advance_delay_ms / 1000.0
            self._auto_advance.schedule(self._clock.now() + delay_s, index)
        else:
            self._auto_advance.cancel()
        return True

    def next_question(self, question_index: int | None = None) -> bool:
        if not self._accepts_input(question_index):
            return False
        state = self._require_state()
        index = state.current_index
        question = state.questions[index]
        if not is_answered(question, state.answers[index]) and self.mode is not SessionMode.PRACTICE:
            if self.preferences.require_answer_before_next and not self._time_expired(index):
                return False
            if state.answers[index] is None:
                state.answers[index] = question.skipped_answer
        return self._advance(index + 1)

    def previous_question(self, question_index: int | None = None) -> bool:
        """Step back to the nearest earlier question that still has time. Never in exam mode."""
        if self.mode is SessionMode.EXAM or not self._accepts_input(question_index):
            return False
        target = self._require_state().current_index - 1
        while target >= 0 and self._slot_clocked_out(target):
            target -= 1
        if target < 0:
            return False
        self._jump(target)
        return True

    def go_to(self, index: int, question_index: int | None = None) -> bool:
        """Jump to a question from the progress grid. Never in exam mode."""
        if self.mode is SessionMode.EXAM or not self._accepts_input(question_index):
            return False
        state = self._require_state()
        if not 0 <= index < len(state.questions) or index == state.current_index:
            return False
        if self._slot_clocked_out(index):
            return False
        self._jump(index)
        return True

    def skip(self, question_index: int | None = None) -> bool:
        """Practice only: mark the question skipped and move on."""
        if self.mode is not SessionMode.PRACTICE or not self._accepts_input(question_index):
            return False
        state = self._require_state()
        index = state.current_index
        if not self._slot_locked(index):
            state.answers[index] = state.questions[index].skipped_answer
        return self._advance(index + 1)

    def check_answer(self, question_index: int | None = None) -> PracticeFeedback | None:
        """Practice only: grade the current answer and freeze it."""
        if self.mode is not SessionMode.PRACTICE or not self._accepts_input(question_index):
            return None
        state = self._require_state()
        index = state.current_index
        question = state.questions[index]
        answer = state.answers[index]
        if not is_answered(question, answer):
            return None
        assert state.checked is not None
        if not state.checked[index]:
            state.checked[index] = True
            self._auto_advance.cancel()
            self._save()
        return PracticeFeedback(index=index, is_correct=is_correct(question, answer))

    def show_answer(self, question_index: int | None = None) -> int | str | None:
        """Practice only: reveal the correct answer without marking the question checked."""
        if self.mode is not SessionMode.PRACTICE or not self._accepts_input(question_index):
            return None
        state = self._require_state()
        index = state.current_index
        assert state.revealed is not None
        if not state.revealed[index]:
            state.revealed[index] = True
            self._save()
        return state.questions[index].correct_answer

    def reveal_hint(self) -> str:
        """
        Reveal the hint of the current open-text question.

        Standard mode pays for it through spend_credit; practice mode is free
        and exam mode has no hints. A refused or failed payment leaves the
        hint hidden and the state untouched.
        """
        if self._phase is not SessionPhase.ACTIVE:
            raise SessionStateError("session is not active")
        state = self._require_state()
        index = state.current_index
        question = state.questions[index]
        if not isinstance(question, OpenTextQuestion) or not question.hint:
            raise HintUnavailableError("question has no hint")
        if self.mode is SessionMode.EXAM:
            raise HintUnavailableError("hints are not available in exam mode")
        if index in state.hints_revealed:
            return question.hint

        if self.mode is SessionMode.STANDARD and self._spend_credit is not None:
            try:
                paid = self._spend_credit()
            except Exception as exc:
                logger.warning("Credit spend failed for %s: %s", self.key, exc)
                raise HintUnavailableError("credit service unavailable") from exc
            if not paid:
                raise HintUnavailableError("not enough credits")

        state.hints_revealed.append(index)
        self._save()
        return question.hint

    # ------------------------------------------------------------ read side

    @property
    def questions(self) -> list[Question]:
        return list(self._require_state().questions)

    @property
    def current_index(self) -> int:
        return self._require_state().current_index

    @property
    def current_question(self) -> Question:
        state = self._require_state()
        return state.questions[state.current_index]

    @property
    def answers(self) -> list[Answer]:
        return [list(a) if isinstance(a, list) else a for a in self._require_state().answers]

    @property
    def checked(self) -> list[bool]:
        return list(self._require_state().checked or [])

    @property
    def revealed(self) -> list[bool]:
        return list(self._require_state().revealed or [])

    @property
    def hints_revealed(self) -> list[int]:
        return list(self._require_state().hints_revealed)

    @property
    def time_per_question(self) -> list[float]:
        return list(self._require_state().time_per_question)

    @property
    def time_remaining(self) -> int | list[int] | None:
        """Copy of the countdown values; only the timer writes them."""
        if self._timer is None:
            return None
        return self._timer.snapshot()

    def current_time_remaining(self) -> int | None:
        if self._timer is None:
            return None
        return self._timer.remaining(self._require_state().current_index)

    def question_statuses(self) -> list[QuestionStatus]:
        state = self._require_state()
        statuses = []
        for index, (question, answer) in enumerate(zip(state.questions, state.answers)):
            if index == state.current_index and self._phase is SessionPhase.ACTIVE:
                statuses.append(QuestionStatus.CURRENT)
            elif is_answered(question, answer):
                statuses.append(QuestionStatus.ANSWERED)
            elif self._slot_clocked_out(index):
                statuses.append(QuestionStatus.EXPIRED)
            elif answer is not None:
                statuses.append(QuestionStatus.SKIPPED)
            else:
                statuses.append(QuestionStatus.UNANSWERED)
        return statuses

    def should_confirm_exit(self) -> bool:
        if self._phase is not SessionPhase.ACTIVE:
            return False
        setting = self.preferences.confirm_before_exit
        if setting is ExitConfirmation.ALWAYS:
            return True
        if setting is ExitConfirmation.NEVER:
            return False
        state = self._require_state()
        return not all(is_answered(q, a) for q, a in zip(state.questions, state.answers))

    def view(self) -> SessionView:
        state = self._state
        if state is None:
            return SessionView(
                phase=self._phase,
                mode=self.mode,
                test_id=self.test.id,
                title=self.test.title,
                current_index=0,
                total=len(self.test.questions),
                question=None,
                answer=None,
                time_remaining=None,
                timer_scope=None,
                can_go_back=False,
                checked=False,
                revealed=False,
                hint=None,
                progress=None,
                confirm_before_exit=False,
                disable_hotkeys=self.preferences.disable_hotkeys,
                result=None,
                show_details=self.show_details,
            )

        index = state.current_index
        question = state.questions[index]
        checked = bool(state.checked and state.checked[index])
        revealed = bool(state.revealed and state.revealed[index])
        finished = self._phase is SessionPhase.FINISHED
        question_data = question.to_dict(include_solution=revealed or (finished and self.show_details))
        hint = question.hint if isinstance(question, OpenTextQuestion) and index in state.hints_revealed else None

        timer_scope = None
        time_remaining = None
        if self._timer is not None and not self.preferences.hide_timer:
            timer_scope = "question" if self._timer.per_question else "global"
            time_remaining = self._timer.remaining(index)

        can_go_back = (
            self._phase is SessionPhase.ACTIVE
            and self.mode is not SessionMode.EXAM
            and any(not self._slot_clocked_out(i) for i in range(index))
        )
        answer = state.answers[index]
        return SessionView(
            phase=self._phase,
            mode=self.mode,
            test_id=self.test.id,
            title=self.test.title,
            current_index=index,
            total=len(state.questions),
            question=question_data,
            answer=list(answer) if isinstance(answer, list) else answer,
            time_remaining=time_remaining,
            timer_scope=timer_scope,
            can_go_back=can_go_back,
            checked=checked,
            revealed=revealed,
            hint=hint,
            progress=self.question_statuses() if self.preferences.show_progress_grid else None,
            confirm_before_exit=self.should_confirm_exit(),
            disable_hotkeys=self.preferences.disable_hotkeys,
            result=self.result,
            show_details=self.show_details,
        )

    # -------------------------------------------------------------- internals

    def _require_state(self) -> SessionState:
        if self._state is None:
            raise SessionStateError("session has not started")
        return self._state

    def _begin_fresh(self) -> None:
        test = shuffle_test(self.test, self.mode is not SessionMode.PRACTICE, self._rng)
        timer = TimerController.for_test(test, self._handle_expire)
        state = SessionState.fresh(
            test,
            self.mode,
            start_time=self._now_iso(),
            time_remaining=None if timer is None else timer.snapshot(),
        )
        logger.info("Starting session %s with %s questions", self.key, len(test.questions))
        self._activate(state, timer)

    def _activate(self, state: SessionState, timer: TimerController | None) -> None:
        self._state = state
        self._timer = timer
        self._phase = SessionPhase.ACTIVE
        self._in_transition = False
        self._auto_advance.cancel()
        if timer is not None:
            timer.start(state.current_index)
        self._mounted_at = self._clock.now()
        self._save()

    def _accepts_input(self, question_index: int | None) -> bool:
        if self._phase is not SessionPhase.ACTIVE or self._in_transition:
            return False
        state = self._require_state()
        if question_index is not None and question_index != state.current_index:
            return False
        return self._clock.now() - self._mounted_at >= self._grace_period_s

    def _slot_clocked_out(self, index: int) -> bool:
        return self._timer is not None and self._timer.per_question and not self._timer.has_time(index)

    def _slot_locked(self, index: int) -> bool:
        state = self._require_state()
        if state.checked is not None and state.checked[index]:
            return True
        return self._slot_clocked_out(index)

    def _time_expired(self, index: int) -> bool:
        if self._timer is None:
            return False
        return not self._timer.has_time(index) if self._timer.per_question else self._timer.remaining() <= 0

    def _has_time_left(self, index: int) -> bool:
        if self._timer is None:
            return True
        return not self._time_expired(index)

    def _record_elapsed(self) -> None:
        state = self._require_state()
        now = self._clock.now()
        state.time_per_question[state.current_index] += max(0.0, now - self._mounted_at)
        self._mounted_at = now

    def _return_target(self, leaving: int) -> int | None:
        """First earlier question still unanswered and not out of time (standard mode only)."""
        if self.mode is not SessionMode.STANDARD or not self.preferences.return_to_unanswered:
            return None
        state = self._require_state()
        for index, (question, answer) in enumerate(zip(state.questions, state.answers)):
            if index == leaving:
                continue
            if not is_answered(question, answer) and self._has_time_left(index):
                return index
        return None

    def _advance(self, next_index: int) -> bool:
        state = self._require_state()
        leaving = state.current_index
        self._in_transition = True
        try:
            self._auto_advance.cancel()
            self._record_elapsed()
            while next_index < len(state.questions) and self._slot_clocked_out(next_index):
                next_index += 1
            if next_index >= len(state.questions):
                target = self._return_target(leaving)
                if target is None:
                    self._finalize()
                    return True
                next_index = target
            self._move_to(next_index)
            return True
        finally:
            self._in_transition = False

    def _jump(self, target: int) -> None:
        self._in_transition = True
        try:
            self._auto_advance.cancel()
            self._record_elapsed()
            self._move_to(target)
        finally:
            self._in_transition = False

    def _move_to(self, index: int) -> None:
        state = self._require_state()
        state.current_index = index
        if self._timer is not None:
            self._timer.switch_to(index)
        self._mounted_at = self._clock.now()
        self._save()

    def _handle_expire(self, index: int | None) -> None:
        """Time ran out: treated exactly like an automatic forward move."""
        if self._phase is not SessionPhase.ACTIVE or self._in_transition:
            return
        state = self._require_state()
        current = state.current_index
        if index is not None and index != current:
            return
        question = state.questions[current]
        if not is_answered(question, state.answers[current]):
            state.answers[current] = question.skipped_answer
        logger.debug("Time expired on question %s of %s", current + 1, self.key)
        self._advance(current + 1)

    def _finalize(self) -> None:
        if self._phase in (SessionPhase.FINALIZING, SessionPhase.FINISHED):
            return
        self._phase = SessionPhase.FINALIZING
        state = self._require_state()
        self._auto_advance.cancel()
        if self._timer is not None:
            self._timer.stop()
            state.time_remaining = self._timer.snapshot()

        self.result = build_result_payload(
            test_id=self.test.id,
            test_title=self.test.title,
            mode=self.mode,
            questions=state.questions,
            answers=state.answers,
            time_per_question=state.time_per_question,
            duration_seconds=sum(state.time_per_question),
            start_time=state.start_time,
            end_time=self._now_iso(),
            user_email=self.user_email,
        )
        self._submitter.submit(self.result)
        self._persistence.clear(self.key)
        self._phase = SessionPhase.FINISHED
        logger.info(
            "Finished session %s: %s/%s correct",
            self.key,
            self.result.score,
            self.result.total,
        )

    def _save(self) -> None:
        if self._phase is not SessionPhase.ACTIVE or self._state is None:
            return
        if self._timer is not None:
            self._state.time_remaining = self._timer.snapshot()
        self._persistence.save(self.key, self._state)


def _coerce_answer(question: Question, answer: object) -> Answer:
    """Validate an incoming answer against the question it is meant for."""
    if isinstance(question, MultipleChoiceQuestion):
        if not isinstance(answer, int) or isinstance(answer, bool):
            raise InvalidAnswerError("choice answer must be an option index")
        if not 0 <= answer < len(question.options):
            raise InvalidAnswerError("option index out of range")
        return answer
    if isinstance(question, OpenTextQuestion):
        if not isinstance(answer, str):
            raise InvalidAnswerError("text answer must be a string")
        return answer
    if isinstance(question, PuzzleQuestion):
        if not isinstance(answer, list) or not all(isinstance(w, str) for w in answer):
            raise InvalidAnswerError("puzzle answer must be a list of words")
        if Counter(answer) - Counter(question.words):
            raise InvalidAnswerError("puzzle answer uses words outside the word pool")
        return list(answer)
    raise InvalidAnswerError("unknown question type")


def _completes_question(question: Question, answer: Answer) -> bool:
    """Whether an accepted answer should trigger auto-advance."""
    if isinstance(question, MultipleChoiceQuestion):
        return True
    if isinstance(question, PuzzleQuestion):
        return isinstance(answer, list) and len(answer) == len(question.words)
    return False
