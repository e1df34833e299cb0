"""SQLAlchemy engine, sessions and table creation for results and snapshots."""
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from quiz_api.config import DATABASE_URL

# The ticker thread and request threads share the SQLite file.
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


def get_db() -> Iterator[Session]:
    """FastAPI dependency: one session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def db_session(factory: Callable[[], Session] = SessionLocal) -> Iterator[Session]:
    """Session for work outside a request; rolled back if the block raises."""
    db = factory()
    try:
        yield db
    except SQLAlchemyError:
        db.rollback()
        raise
    finally:
        db.close()


def init_db() -> None:
    """Create the results and session_snapshots tables if missing."""
    from quiz_api.models import db as _db_models  # noqa: F401

    Base.metadata.create_all(bind=engine)
