"""JSON helpers for stored test files and result payloads."""
import json
from pathlib import Path
from typing import Any


def dump_payload(payload: dict[str, Any]) -> str:
    """Compact JSON for a database column."""
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def load_payload(data: str | None) -> dict[str, Any]:
    """Parse a stored payload column; anything but a JSON object reads as {}."""
    try:
        value = json.loads(data) if data else {}
    except json.JSONDecodeError:
        return {}
    return value if isinstance(value, dict) else {}


def read_test_file(path: Path) -> dict[str, Any] | None:
    """
    Read a test definition file.
    Returns None when the file is missing, raises ValueError when it is not a JSON object.
    """
    if not path.exists():
        return None
    try:
        value = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"{path.name}: {exc.msg} at line {exc.lineno}") from exc
    if not isinstance(value, dict):
        raise ValueError(f"{path.name}: expected a JSON object")
    return value


def write_test_file(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
