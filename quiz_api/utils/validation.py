"""Request value checks shared by the routes."""
from pathlib import Path

from fastapi import HTTPException

from quiz_api.utils.paths import payload_path


def validate_id(name: str, value: str) -> str:
    """Strip an id and refuse anything that could escape its directory."""
    cleaned = value.strip() if isinstance(value, str) else ""
    if not cleaned:
        raise HTTPException(status_code=400, detail=f"{name} is required")
    if Path(cleaned).name != cleaned or "/" in cleaned or "\\" in cleaned:
        raise HTTPException(status_code=400, detail=f"Invalid {name}")
    return cleaned


def validate_email(value: str | None) -> str | None:
    """Blank emails count as anonymous; anything else must look like an address."""
    cleaned = (value or "").strip()
    if not cleaned:
        return None
    if "@" not in cleaned or cleaned.startswith("@") or cleaned.endswith("@"):
        raise HTTPException(status_code=400, detail="Invalid userEmail")
    return cleaned.lower()


def validate_test_exists(test_id: str) -> None:
    if not payload_path(test_id).exists():
        raise HTTPException(status_code=404, detail="Test not found")
