"""
Countdown timers for a session.

A TimerController runs either one global countdown or one countdown per
question. It is driven by an external one-second tick; only its own tick
handler writes remaining time, everything else reads copies.
"""
from __future__ import annotations

import enum
from collections.abc import Callable

from quiz_engine.models import GlobalTimer, Test


class TimerState(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    EXPIRED = "expired"
    STOPPED = "stopped"


class TimerController:
    """One global countdown, or N per-question countdowns of which one ticks."""

    def __init__(
        self,
        remaining: int | list[int],
        on_expire: Callable[[int | None], None],
    ) -> None:
        self._per_question = isinstance(remaining, list)
        if self._per_question:
            self._remaining = [max(0, int(v)) for v in remaining]
        else:
            self._remaining = [max(0, int(remaining))]
        self._on_expire = on_expire
        self._state = TimerState.IDLE
        self._active = 0

    @classmethod
    def for_test(cls, test: Test, on_expire: Callable[[int | None], None]) -> "TimerController | None":
        """Build fresh countdowns for the test's policy; None when untimed."""
        policy = test.timer_policy
        if policy is None:
            return None
        if isinstance(policy, GlobalTimer):
            return cls(policy.seconds, on_expire)
        return cls(test.question_allowances(), on_expire)

    @property
    def per_question(self) -> bool:
        return self._per_question

    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def active_index(self) -> int:
        return self._active

    def start(self, index: int = 0) -> None:
        if self._state is not TimerState.IDLE:
            return
        self._activate(index)

    def switch_to(self, index: int) -> None:
        """Pause the current question's countdown and resume another one.

        Remaining time of the paused slot is kept, so returning to it later
        continues where it stopped. A global countdown is unaffected.
        """
        if self._state is TimerState.STOPPED or not self._per_question:
            return
        self._activate(index)

    def stop(self) -> None:
        self._state = TimerState.STOPPED

    def tick(self) -> None:
        """Advance by one second."""
        if self._state is not TimerState.RUNNING:
            return
        slot = self._active if self._per_question else 0
        if self._remaining[slot] <= 0:
            return
        self._remaining[slot] -= 1
        if self._remaining[slot] > 0:
            return
        self._state = TimerState.EXPIRED
        self._on_expire(self._active if self._per_question else None)

    def remaining(self, index: int | None = None) -> int:
        """Seconds left for a question (per-question) or the whole test (global)."""
        if not self._per_question:
            return self._remaining[0]
        return self._remaining[self._active if index is None else index]

    def has_time(self, index: int) -> bool:
        return self.remaining(index) > 0

    def snapshot(self) -> int | list[int]:
        if self._per_question:
            return list(self._remaining)
        return self._remaining[0]

    def _activate(self, index: int) -> None:
        if self._per_question and not 0 <= index < len(self._remaining):
            raise IndexError(f"no countdown for question {index}")
        self._active = index
        slot = index if self._per_question else 0
        self._state = TimerState.RUNNING if self._remaining[slot] > 0 else TimerState.EXPIRED
