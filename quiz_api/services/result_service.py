"""Service layer for stored results."""
import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session as DBSession

from quiz_api.database import db_session
from quiz_api.models.db.result import TestResult

logger = logging.getLogger(__name__)


def find_by_client_id(db: DBSession, client_result_id: str) -> TestResult | None:
    """Find a stored result by its client-generated id."""
    return db.execute(
        select(TestResult).where(TestResult.client_result_id == client_result_id)
    ).scalar_one_or_none()


def record_result(db: DBSession, payload: dict[str, Any]) -> tuple[str, TestResult]:
    """
    Store a result payload.
    Returns ("duplicate", existing) when the clientResultId was seen before.
    """
    client_result_id = payload.get("clientResultId") or None
    if client_result_id:
        existing = find_by_client_id(db, client_result_id)
        if existing:
            return "duplicate", existing

    result = TestResult(
        client_result_id=client_result_id,
        test_id=str(payload.get("testId")),
        user_email=str(payload.get("userEmail") or "unknown"),
        mode=str(payload.get("mode") or "standard"),
        score=int(payload.get("score") or 0),
        total=int(payload.get("total") or 0),
        duration_seconds=int(payload.get("duration") or 0),
    )
    result.payload = payload
    db.add(result)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with an identical submission.
        db.rollback()
        existing = find_by_client_id(db, client_result_id) if client_result_id else None
        if existing is None:
            raise
        return "duplicate", existing
    db.refresh(result)
    return "recorded", result


def count_attempts(db: DBSession, test_id: str, user_email: str) -> int:
    """Count finished attempts of a user on a test."""
    return db.execute(
        select(func.count(TestResult.id)).where(
            TestResult.test_id == test_id,
            TestResult.user_email == user_email,
        )
    ).scalar_one()


def count_user_attempts(test_id: str, user_email: str) -> int:
    """count_attempts() with its own database session, for use outside a request."""
    with db_session() as db:
        return count_attempts(db, test_id, user_email)


def store_result(payload: dict[str, Any]) -> None:
    """Result sink used when no external results endpoint is configured."""
    with db_session() as db:
        status, result = record_result(db, payload)
        logger.debug("Result %s stored locally (%s)", result.id, status)
