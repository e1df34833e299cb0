"""Helpers for stored tests and request values."""
from quiz_api.utils.json_utils import dump_payload, load_payload, read_test_file, write_test_file
from quiz_api.utils.paths import payload_path
from quiz_api.utils.validation import validate_email, validate_id, validate_test_exists

__all__ = [
    "dump_payload",
    "load_payload",
    "read_test_file",
    "write_test_file",
    "payload_path",
    "validate_email",
    "validate_id",
    "validate_test_exists",
]
