"""API route modules."""
from quiz_api.routes import results, sessions, tests

__all__ = ["results", "sessions", "tests"]
