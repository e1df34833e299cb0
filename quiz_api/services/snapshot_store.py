"""SQLAlchemy-backed snapshot store for resumable sessions."""
import re
from collections.abc import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DBSession

from quiz_api.database import SessionLocal, db_session
from quiz_api.models.db.snapshot import SessionSnapshot
from quiz_engine import PersistenceAdapter, SessionMode
from quiz_engine.persistence import SnapshotStore


class SqlSnapshotStore:
    """Snapshot rows keyed by the engine's (test, mode, owner) key."""

    def __init__(self, session_factory: Callable[[], DBSession] = SessionLocal) -> None:
        self._session_factory = session_factory

    def read(self, key: str) -> str | None:
        with db_session(self._session_factory) as db:
            row = db.get(SessionSnapshot, key)
            return None if row is None else row.payload_json

    def write(self, key: str, data: str) -> None:
        test_id, mode, owner = _split_key(key)
        with db_session(self._session_factory) as db:
            row = db.get(SessionSnapshot, key)
            if row is None:
                db.add(
                    SessionSnapshot(key=key, test_id=test_id, mode=mode, owner=owner, payload_json=data)
                )
            else:
                row.payload_json = data
            db.commit()

    def delete(self, key: str) -> None:
        with db_session(self._session_factory) as db:
            row = db.get(SessionSnapshot, key)
            if row is not None:
                db.delete(row)
                db.commit()


_KEY_PATTERN = re.compile(
    r"^testProgress_(?P<test_id>.+?)_(?P<mode>" + "|".join(m.value for m in SessionMode) + r")(?:_(?P<owner>.+))?$"
)


def _split_key(key: str) -> tuple[str, str, str | None]:
    """Recover (test_id, mode, owner) from a key built by snapshot_key()."""
    match = _KEY_PATTERN.match(key)
    if match is None:
        return key.removeprefix("testProgress_"), "", None
    return match["test_id"], match["mode"], match["owner"]


def build_persistence(store: SnapshotStore | None = None) -> PersistenceAdapter:
    """Persistence adapter that tolerates database errors as well as file errors."""
    return PersistenceAdapter(
        store or SqlSnapshotStore(),
        write_errors=(OSError, SQLAlchemyError),
    )
