"""
Snapshot persistence for resumable sessions.

Stores only move JSON text around; the PersistenceAdapter owns
(de)serialization and turns any unreadable snapshot into "nothing to
resume".
"""
from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Protocol

from quiz_engine.errors import SnapshotError
from quiz_engine.models import SessionMode, Test
from quiz_engine.state import SessionState

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def snapshot_key(test_id: str, mode: SessionMode | str, owner: str | None = None) -> str:
    """Storage key for a test taken in a given mode, optionally by one owner.

    A store shared between users needs the owner; a store private to one
    user (a local progress directory) does not.
    """
    mode_value = mode.value if isinstance(mode, SessionMode) else str(mode)
    key = f"testProgress_{test_id}_{mode_value}"
    return key if owner is None else f"{key}_{owner}"


class SnapshotStore(Protocol):
    def read(self, key: str) -> str | None:
        ...

    def write(self, key: str, data: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class MemorySnapshotStore:
    """Dict-backed store, mainly for tests and single-process runs."""

    def __init__(self) -> None:
        self.items: dict[str, str] = {}

    def read(self, key: str) -> str | None:
        return self.items.get(key)

    def write(self, key: str, data: str) -> None:
        self.items[key] = data

    def delete(self, key: str) -> None:
        self.items.pop(key, None)


class JsonFileSnapshotStore:
    """One JSON file per key inside a directory."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        return self.directory / f"{_UNSAFE_KEY_CHARS.sub('_', key)}.json"

    def read(self, key: str) -> str | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def write(self, key: str, data: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(key)
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_text(data, encoding="utf-8")
        tmp_path.replace(path)

    def delete(self, key: str) -> None:
        self.path_for(key).unlink(missing_ok=True)


class PersistenceAdapter:
    """save / load / clear of SessionState keyed by (testId, mode)."""

    def __init__(self, store: SnapshotStore, write_errors: tuple[type[BaseException], ...] = (OSError,)) -> None:
        self.store = store
        self.write_errors = write_errors

    def save(self, key: str, state: SessionState) -> bool:
        """Write the snapshot; a failed write is logged and reported as False."""
        data = json.dumps(state.to_snapshot(), ensure_ascii=False)
        try:
            self.store.write(key, data)
        except self.write_errors as exc:
            logger.warning("Failed to save session snapshot %s: %s", key, exc)
            return False
        return True

    def load(self, key: str, test: Test, mode: SessionMode) -> SessionState | None:
        """Return the stored state, or None when missing or unusable.

        Unusable snapshots are deleted so they are not offered again.
        """
        try:
            raw = self.store.read(key)
        except self.write_errors as exc:
            logger.warning("Failed to read session snapshot %s: %s", key, exc)
            return None
        if raw is None:
            return None

        try:
            state = SessionState.from_snapshot(json.loads(raw), test, mode)
        except (json.JSONDecodeError, SnapshotError) as exc:
            logger.warning("Discarding corrupt session snapshot %s: %s", key, exc)
            self.clear(key)
            return None
        return state

    def clear(self, key: str) -> None:
        try:
            self.store.delete(key)
        except self.write_errors as exc:
            logger.warning("Failed to clear session snapshot %s: %s", key, exc)
