"""Main FastAPI application with modularized routes."""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from quiz_api.database import init_db
from quiz_api.logging_setup import setup_console_logging
from quiz_api.routes import results, sessions, tests
from quiz_api.services.session_service import schedule_session_ticker

setup_console_logging()

app = FastAPI(title="Quiz Runner API")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# Startup events
@app.on_event("startup")
def startup_events() -> None:
    """Initialize database and start the session ticker on startup."""
    init_db()
    schedule_session_ticker()


# Include routers
app.include_router(tests.router)
app.include_router(sessions.router)
app.include_router(results.router)
