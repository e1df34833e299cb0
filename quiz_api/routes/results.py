"""Results sink endpoint."""
import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DbSession

from quiz_api.database import get_db
from quiz_api.models import ResultCreate, ResultRecordResponse
from quiz_api.services.result_service import record_result
from quiz_api.utils import validate_email, validate_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/results", tags=["results"])


@router.post("", response_model=ResultRecordResponse)
def submit_result(
    payload: ResultCreate,
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Store a finished attempt. Resubmitting the same clientResultId is a no-op."""
    data = payload.model_dump()
    data["testId"] = validate_id("testId", payload.testId)
    data["userEmail"] = validate_email(payload.userEmail) or "unknown"
    status, result = record_result(db, data)
    if status == "duplicate":
        logger.info("Duplicate result %s ignored", payload.clientResultId)
    return {"status": status, "resultId": result.id}
