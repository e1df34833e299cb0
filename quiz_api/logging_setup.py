from __future__ import annotations
import logging

from quiz_api.config import LOG_LEVEL

# Libraries that are chatty at DEBUG.
_QUIET_LOGGERS = ("urllib3", "sqlalchemy.engine", "httpx")


def setup_console_logging(level: int = LOG_LEVEL) -> None:
    """
    Call once at process start. Prints session and delivery logs to console.
    """
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    root = logging.getLogger()
    if root.handlers:
        # already configured (avoid duplicates)
        root.setLevel(level)
        return

    root.setLevel(level)
    h = logging.StreamHandler()
    fmt = logging.Formatter(
        "[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    h.setFormatter(fmt)
    root.addHandler(h)
