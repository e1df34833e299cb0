"""Tests for the quiz engine and its HTTP service.

Engine tests drive sessions with a fake clock and in-memory stores; the
API tests run the FastAPI app through TestClient against a temporary data
directory and SQLite database set up in conftest.py.
"""
