"""Test definition endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session as DbSession

from quiz_api.database import get_db
from quiz_api.models import AttemptCountResponse
from quiz_api.services.result_service import count_attempts
from quiz_api.services.test_service import load_session_test, load_test_payload
from quiz_api.utils import validate_email, validate_id, validate_test_exists
from quiz_engine import SessionMode

router = APIRouter(prefix="/api/tests", tags=["tests"])


@router.get("/{test_id}")
def get_test(test_id: str) -> dict[str, object]:
    """Get test payload."""
    test_id = validate_id("testId", test_id)
    return load_test_payload(test_id)


@router.get("/{test_id}/attempts", response_model=AttemptCountResponse)
def get_attempts(
    test_id: str,
    db: Annotated[DbSession, Depends(get_db)],
    userEmail: Annotated[str, Query(min_length=1)],
) -> dict[str, object]:
    """Prior attempts of a user and whether hidden content is unlocked for them."""
    test_id = validate_id("testId", test_id)
    validate_test_exists(test_id)
    test = load_session_test(test_id, SessionMode.STANDARD)
    email = validate_email(userEmail)
    if not email:
        raise HTTPException(status_code=400, detail="userEmail is required")

    attempts = count_attempts(db, test_id, email)
    return {
        "testId": test_id,
        "userEmail": email,
        "attempts": attempts,
        "contentUnlocked": test.content_unlocked(attempts),
    }
