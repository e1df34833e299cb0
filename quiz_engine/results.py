"""
Final result payload and its at-most-once delivery.
"""
from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from quiz_engine.evaluator import grade
from quiz_engine.models import Answer, Question, SessionMode

logger = logging.getLogger(__name__)

ResultSink = Callable[[dict[str, Any]], object]


@dataclass(frozen=True)
class ResultPayload:
    """Outcome of a finished session. Built once, never mutated."""

    test_id: str
    test_title: str
    mode: SessionMode
    answers: tuple[Answer, ...]
    correct_answers: tuple[int | str, ...]
    mistakes: tuple[int, ...]
    score: int
    total: int
    duration_seconds: int
    time_per_question: tuple[int, ...]
    start_time: str
    end_time: str
    client_result_id: str
    user_email: str
    questions: tuple[Question, ...]

    def to_dict(self, include_solutions: bool = True) -> dict[str, Any]:
        """Wire format for the results endpoint.

        With include_solutions=False the correct answers, the mistake list and
        the question solutions are left out, so only the score remains.
        """
        data = {
            "clientResultId": self.client_result_id,
            "userEmail": self.user_email,
            "testId": self.test_id,
            "testTitle": self.test_title,
            "mode": self.mode.value,
            "score": self.score,
            "total": self.total,
            "answers": [list(a) if isinstance(a, list) else a for a in self.answers],
            "correctAnswers": list(self.correct_answers),
            "mistakes": list(self.mistakes),
            "startTime": self.start_time,
            "endTime": self.end_time,
            "duration": self.duration_seconds,
            "timePerQuestion": list(self.time_per_question),
            "shuffledQuestions": [q.to_dict(include_solution=include_solutions) for q in self.questions],
        }
        if not include_solutions:
            del data["correctAnswers"]
            del data["mistakes"]
        return data


def build_result_payload(
    *,
    test_id: str,
    test_title: str,
    mode: SessionMode,
    questions: list[Question],
    answers: list[Answer],
    time_per_question: list[float],
    duration_seconds: float,
    start_time: str,
    end_time: str,
    user_email: str = "unknown",
) -> ResultPayload:
    """Grade the answer sheet and freeze everything into a ResultPayload."""
    outcome = grade(questions, answers)
    return ResultPayload(
        test_id=test_id,
        test_title=test_title,
        mode=mode,
        answers=tuple(list(a) if isinstance(a, list) else a for a in answers),
        correct_answers=tuple(outcome.correct_answers),
        mistakes=tuple(outcome.mistakes),
        score=outcome.score,
        total=outcome.total,
        duration_seconds=max(0, int(round(duration_seconds))),
        time_per_question=tuple(int(round(t)) for t in time_per_question),
        start_time=start_time,
        end_time=end_time,
        client_result_id=uuid.uuid4().hex,
        user_email=user_email,
        questions=tuple(questions),
    )


class ResultSubmitter:
    """
    Hands payloads to a sink without retrying or blocking the caller.

    With background=True each payload is delivered on a daemon thread.
    Failures are logged; the session finishes regardless.
    """

    def __init__(self, sink: ResultSink, background: bool = True) -> None:
        self._sink = sink
        self._background = background

    def submit(self, payload: ResultPayload) -> None:
        if not self._background:
            self._deliver(payload)
            return
        thread = threading.Thread(
            target=self._deliver,
            args=(payload,),
            name=f"result_submit_{payload.client_result_id[:8]}",
            daemon=True,
        )
        thread.start()

    def _deliver(self, payload: ResultPayload) -> None:
        try:
            self._sink(payload.to_dict())
        except Exception:
            logger.exception(
                "Failed to submit result %s for test %s",
                payload.client_result_id,
                payload.test_id,
            )
            return
        logger.info(
            "Submitted result %s for test %s (%s/%s)",
            payload.client_result_id,
            payload.test_id,
            payload.score,
            payload.total,
        )
