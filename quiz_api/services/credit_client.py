"""Client for the hint credit balance service."""
import logging
from collections.abc import Callable

import requests

from quiz_api import config

logger = logging.getLogger(__name__)


def spend_credit(user_email: str) -> bool:
    """
    Deduct one hint credit.
    Returns False when the balance is insufficient; raises on other failures.
    """
    if not config.CREDITS_API_URL:
        raise RuntimeError("CREDITS_API_URL is not configured")
    response = requests.post(
        config.CREDITS_API_URL,
        json={"userEmail": user_email, "amount": 1},
        timeout=config.HTTP_TIMEOUT_SECONDS,
    )
    if response.status_code in (402, 409):
        logger.info("Credit refused for %s: %s", user_email, response.status_code)
        return False
    response.raise_for_status()
    try:
        body = response.json()
    except ValueError:
        return True
    if isinstance(body, dict) and "success" in body:
        return bool(body["success"])
    return True


def get_credit_gate(user_email: str) -> Callable[[], bool] | None:
    """Credit gate for a session; None (hints are free) when no service is configured."""
    if not config.CREDITS_API_URL:
        return None
    return lambda: spend_credit(user_email)
