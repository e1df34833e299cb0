"""
Stored test results received by the results sink.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import sqlalchemy as sa
from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from quiz_api.database import Base
from quiz_api.utils.json_utils import dump_payload, load_payload


class TestResult(Base):
    """
    One finished attempt.
    The full payload is kept as JSON; the columns hold what gets queried.
    """

    __test__ = False
    __tablename__ = "results"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    # Client-generated id, unique so resubmissions are detected
    client_result_id: Mapped[str | None] = mapped_column(
        String(64), unique=True, nullable=True
    )

    test_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    user_email: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    mode: Mapped[str] = mapped_column(String(20), default="standard", nullable=False)

    score: Mapped[int] = mapped_column(default=0, nullable=False)
    total: Mapped[int] = mapped_column(default=0, nullable=False)
    duration_seconds: Mapped[int] = mapped_column(default=0, nullable=False)

    payload_json: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    @property
    def payload(self) -> dict[str, Any]:
        return load_payload(self.payload_json)

    @payload.setter
    def payload(self, value: dict[str, Any]) -> None:
        self.payload_json = dump_payload(value)
