"""Where test definitions live on disk."""
from pathlib import Path

from quiz_api import config


def payload_path(test_id: str) -> Path:
    """<TEST_DATA_DIR>/<testId>/test.json"""
    return config.DATA_DIR / test_id / "test.json"
