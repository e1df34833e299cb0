"""Service layer for live quiz sessions."""
import logging
import random
import threading
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from fastapi import HTTPException

from quiz_api import config
from quiz_api.services.credit_client import get_credit_gate
from quiz_api.services.result_service import count_user_attempts
from quiz_api.services.results_client import get_result_sink
from quiz_api.services.snapshot_store import build_persistence
from quiz_api.services.test_service import load_session_test
from quiz_engine import (
    Clock,
    MemorySnapshotStore,
    PersistenceAdapter,
    QuizSession,
    RealClock,
    ResultSubmitter,
    SessionMode,
    SessionPhase,
    SessionView,
    UserPreferences,
)

logger = logging.getLogger(__name__)

# Finished sessions stay readable for this long before the ticker drops them.
FINISHED_RETENTION_SECONDS = 600


@dataclass
class LiveSession:
    """A session hosted by this process plus the bookkeeping that drives its clock."""

    session_id: str
    session: QuizSession
    clock: Clock
    last_tick_at: float
    finished_at: float | None = None
    lock: threading.Lock = field(default_factory=threading.Lock)

    def pump(self) -> None:
        """Deliver one tick per whole second elapsed, then fire due auto-advances.

        Caller must hold `lock`.
        """
        now = self.clock.now()
        if self.session.phase is not SessionPhase.ACTIVE:
            self.last_tick_at = now
            if self.session.phase is SessionPhase.FINISHED and self.finished_at is None:
                self.finished_at = now
            return

        elapsed = int(now - self.last_tick_at)
        if elapsed > 0:
            self.last_tick_at += elapsed
            for _ in range(elapsed):
                if self.session.phase is not SessionPhase.ACTIVE:
                    break
                self.session.tick()
        self.session.poll()
        if self.session.phase is SessionPhase.FINISHED and self.finished_at is None:
            self.finished_at = now


class SessionRegistry:
    """In-memory table of live sessions."""

    def __init__(
        self,
        clock: Clock | None = None,
        persistence_factory: Callable[[], PersistenceAdapter] = build_persistence,
        background_submit: bool = True,
        attempt_counter: Callable[[str, str], int] = count_user_attempts,
    ) -> None:
        self.clock = clock or RealClock()
        self._persistence_factory = persistence_factory
        self._background_submit = background_submit
        self._attempt_counter = attempt_counter
        self._sessions: dict[str, LiveSession] = {}
        self._lock = threading.Lock()

    def open(
        self,
        test_id: str,
        mode: SessionMode,
        user_email: str | None = None,
        preferences: dict[str, Any] | None = None,
        seed: int | None = None,
    ) -> LiveSession:
        """Build and start a session; it waits for a resume decision if progress is stored.

        Progress is stored per user. Anonymous sessions keep theirs in memory
        only, so they can never be resumed by someone else.
        """
        test = load_session_test(test_id, mode)
        if user_email:
            persistence = self._persistence_factory()
            prior_attempts = self._attempt_counter(test_id, user_email)
        else:
            persistence = PersistenceAdapter(MemorySnapshotStore())
            prior_attempts = 0
        email = user_email or "unknown"
        session = QuizSession(
            test,
            mode,
            persistence=persistence,
            submitter=ResultSubmitter(get_result_sink(), background=self._background_submit),
            clock=self.clock,
            preferences=UserPreferences.from_mapping(preferences),
            rng=random.Random(seed) if seed is not None else None,
            spend_credit=get_credit_gate(email),
            user_email=email,
            prior_attempts=prior_attempts,
            snapshot_owner=user_email,
            grace_period_s=config.SESSION_GRACE_MS / 1000.0,
        )
        session.start()

        live = LiveSession(
            session_id=uuid.uuid4().hex,
            session=session,
            clock=self.clock,
            last_tick_at=self.clock.now(),
        )
        with self._lock:
            self._sessions[live.session_id] = live
        logger.info("Opened session %s for test %s (%s)", live.session_id, test_id, mode.value)
        return live

    def get(self, session_id: str) -> LiveSession:
        with self._lock:
            live = self._sessions.get(session_id)
        if live is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return live

    def drop(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def pump_all(self) -> None:
        """Advance every live session's clock and forget long-finished ones."""
        with self._lock:
            sessions = list(self._sessions.values())
        now = self.clock.now()
        for live in sessions:
            with live.lock:
                live.pump()
            if live.finished_at is not None and now - live.finished_at > FINISHED_RETENTION_SECONDS:
                self.drop(live.session_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


registry = SessionRegistry()


def schedule_session_ticker(target: SessionRegistry | None = None) -> threading.Thread:
    """Start the background thread that keeps session countdowns moving."""
    interval = max(0.1, config.SESSION_TICK_SECONDS)
    target = target or registry

    def _worker() -> None:
        while True:
            try:
                target.pump_all()
            except Exception:
                logger.exception("Session ticker failed")
            time.sleep(interval)

    thread = threading.Thread(
        target=_worker,
        name="session_ticker",
        daemon=True,
    )
    thread.start()
    return thread


def serialize_view(session_id: str, view: SessionView) -> dict[str, Any]:
    """Session view in the API's camelCase shape."""
    return {
        "sessionId": session_id,
        "phase": view.phase.value,
        "mode": view.mode.value,
        "testId": view.test_id,
        "title": view.title,
        "currentIndex": view.current_index,
        "total": view.total,
        "question": view.question,
        "answer": view.answer,
        "timeRemaining": view.time_remaining,
        "timerScope": view.timer_scope,
        "canGoBack": view.can_go_back,
        "checked": view.checked,
        "revealed": view.revealed,
        "hint": view.hint,
        "progress": None if view.progress is None else [s.value for s in view.progress],
        "confirmBeforeExit": view.confirm_before_exit,
        "disableHotkeys": view.disable_hotkeys,
        "showDetails": view.show_details,
        "result": (
            None if view.result is None else view.result.to_dict(include_solutions=view.show_details)
        ),
    }
