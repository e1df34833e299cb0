"""
Session snapshot database model for resumable progress.
"""

from __future__ import annotations

from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from quiz_api.database import Base


class SessionSnapshot(Base):
    """
    Latest persisted state of an unfinished session.
    One row per (test, mode, owner) key; writes overwrite.
    """

    __tablename__ = "session_snapshots"

    key: Mapped[str] = mapped_column(String(400), primary_key=True)
    test_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    mode: Mapped[str] = mapped_column(String(20), nullable=False)
    owner: Mapped[str | None] = mapped_column(String(255), index=True, nullable=True)

    # Snapshot body exactly as produced by the engine
    payload_json: Mapped[str] = mapped_column(Text, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
