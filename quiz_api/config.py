"""Application configuration and constants."""
import logging
import os
from pathlib import Path


def _parse_int_env(name: str, default: int) -> int:
    """Parse integer from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _parse_float_env(name: str, default: float) -> float:
    """Parse float from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# Directories
DATA_DIR = Path(os.environ.get("TEST_DATA_DIR", Path.cwd() / "data" / "tests"))
DATA_DIR.mkdir(parents=True, exist_ok=True)

# Database
DB_DIR = Path(os.environ.get("DB_DIR", Path.cwd() / "data"))
DB_DIR.mkdir(parents=True, exist_ok=True)
DATABASE_URL = os.environ.get(
    "DATABASE_URL", f"sqlite:///{DB_DIR / 'quizrunner.db'}"
)

# External collaborators (unset means "handled locally")
RESULTS_API_URL = os.environ.get("RESULTS_API_URL") or None
CREDITS_API_URL = os.environ.get("CREDITS_API_URL") or None
HTTP_TIMEOUT_SECONDS = _parse_float_env("HTTP_TIMEOUT_SECONDS", 10.0)

# Sessions
SESSION_GRACE_MS = _parse_int_env("SESSION_GRACE_MS", 300)
SESSION_TICK_SECONDS = _parse_float_env("SESSION_TICK_SECONDS", 1.0)

# Logging
LOG_LEVEL = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)
