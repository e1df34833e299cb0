"""Quiz session endpoints."""
from collections.abc import Callable
from typing import TypeVar

from fastapi import APIRouter, HTTPException

from quiz_api.models import AnswerRequest, NavigationRequest, SessionCreate, SessionResponse
from quiz_api.services import session_service
from quiz_api.services.session_service import LiveSession, serialize_view
from quiz_api.utils import validate_email, validate_id
from quiz_engine import (
    HintUnavailableError,
    InvalidAnswerError,
    QuizSession,
    SessionMode,
    SessionStateError,
)

router = APIRouter(prefix="/api/sessions", tags=["sessions"])

T = TypeVar("T")


def _respond(
    live: LiveSession,
    accepted: bool = True,
    feedback: dict[str, object] | None = None,
) -> dict[str, object]:
    data = serialize_view(live.session_id, live.session.view())
    data["accepted"] = accepted
    data["feedback"] = feedback
    return data


def _question_index(payload: NavigationRequest | None) -> int | None:
    return None if payload is None else payload.questionIndex


def _apply(session_id: str, action: Callable[[QuizSession], T]) -> tuple[LiveSession, T]:
    """Catch the session's clock up, then run `action` under the session lock."""
    live = session_service.registry.get(validate_id("sessionId", session_id))
    with live.lock:
        live.pump()
        try:
            outcome = action(live.session)
        except InvalidAnswerError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except HintUnavailableError as exc:
            raise HTTPException(status_code=402, detail=str(exc)) from exc
        except SessionStateError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return live, outcome


@router.post("", response_model=SessionResponse)
def open_session(payload: SessionCreate) -> dict[str, object]:
    """Open a session; phase is awaiting_resume when stored progress exists."""
    test_id = validate_id("testId", payload.testId)
    live = session_service.registry.open(
        test_id,
        SessionMode(payload.mode),
        user_email=validate_email(payload.userEmail),
        preferences=payload.preferences,
        seed=payload.seed,
    )
    return _respond(live)


@router.get("/{session_id}", response_model=SessionResponse)
def get_session(session_id: str) -> dict[str, object]:
    """Current view of the session."""
    live, _ = _apply(session_id, lambda session: None)
    return _respond(live)


@router.post("/{session_id}/resume", response_model=SessionResponse)
def resume_session(session_id: str) -> dict[str, object]:
    live, _ = _apply(session_id, lambda session: session.resume())
    return _respond(live)


@router.post("/{session_id}/restart", response_model=SessionResponse)
def restart_session(session_id: str) -> dict[str, object]:
    live, _ = _apply(session_id, lambda session: session.restart())
    return _respond(live)


@router.post("/{session_id}/answer", response_model=SessionResponse)
def select_answer(session_id: str, payload: AnswerRequest) -> dict[str, object]:
    """Select an option, type text or arrange puzzle words."""
    live, accepted = _apply(
        session_id,
        lambda session: session.select_answer(payload.answer, payload.questionIndex),
    )
    return _respond(live, accepted)


@router.post("/{session_id}/next", response_model=SessionResponse)
def next_question(session_id: str, payload: NavigationRequest | None = None) -> dict[str, object]:
    index = _question_index(payload)
    live, accepted = _apply(session_id, lambda session: session.next_question(index))
    return _respond(live, accepted)


@router.post("/{session_id}/previous", response_model=SessionResponse)
def previous_question(session_id: str, payload: NavigationRequest | None = None) -> dict[str, object]:
    index = _question_index(payload)
    live, accepted = _apply(session_id, lambda session: session.previous_question(index))
    return _respond(live, accepted)


@router.post("/{session_id}/goto/{target}", response_model=SessionResponse)
def go_to_question(
    session_id: str,
    target: int,
    payload: NavigationRequest | None = None,
) -> dict[str, object]:
    """Jump to a question from the progress grid."""
    index = _question_index(payload)
    live, accepted = _apply(session_id, lambda session: session.go_to(target, index))
    return _respond(live, accepted)


@router.post("/{session_id}/skip", response_model=SessionResponse)
def skip_question(session_id: str, payload: NavigationRequest | None = None) -> dict[str, object]:
    index = _question_index(payload)
    live, accepted = _apply(session_id, lambda session: session.skip(index))
    return _respond(live, accepted)


@router.post("/{session_id}/check", response_model=SessionResponse)
def check_answer(session_id: str, payload: NavigationRequest | None = None) -> dict[str, object]:
    """Practice mode: grade the current answer."""
    index = _question_index(payload)
    live, feedback = _apply(session_id, lambda session: session.check_answer(index))
    if feedback is None:
        return _respond(live, accepted=False)
    return _respond(
        live,
        feedback={"index": feedback.index, "isCorrect": feedback.is_correct},
    )


@router.post("/{session_id}/show-answer", response_model=SessionResponse)
def show_answer(session_id: str, payload: NavigationRequest | None = None) -> dict[str, object]:
    """Practice mode: reveal the correct answer."""
    index = _question_index(payload)
    live, correct = _apply(session_id, lambda session: session.show_answer(index))
    if correct is None:
        return _respond(live, accepted=False)
    return _respond(live, feedback={"correctAnswer": correct})


@router.post("/{session_id}/hint", response_model=SessionResponse)
def reveal_hint(session_id: str) -> dict[str, object]:
    """Reveal the hint of the current open-text question."""
    live, _ = _apply(session_id, lambda session: session.reveal_hint())
    return _respond(live)


@router.post("/{session_id}/finish", response_model=SessionResponse)
def finish_session(session_id: str) -> dict[str, object]:
    live, result = _apply(session_id, lambda session: session.finish())
    return _respond(live, accepted=result is not None)


@router.delete("/{session_id}")
def close_session(session_id: str) -> dict[str, str]:
    """Forget a live session. Stored progress stays available for a later resume."""
    session_id = validate_id("sessionId", session_id)
    session_service.registry.get(session_id)
    session_service.registry.drop(session_id)
    return {"status": "closed"}
