import logging

import requests
from flask import current_app

from errors import MailDeliveryError
from gcp_secrets import get_secret

logger = logging.getLogger(__name__)

RESET_SUBJECT = "Password reset code - UniLunch"


def send_reset_code(email: str, code: str, ttl_minutes: int) -> None:
    """
    Delivers a password reset code.

    With MAIL_BACKEND="function" the message is handed to the mail Cloud
    Function; with "log" it is only written to the application log (local dev).
    Raises MailDeliveryError when the message could not be handed off.
    """
    backend = current_app.config.get("MAIL_BACKEND", "log")

    if backend == "log":
        logger.info("mail to %s: %s (code %s, valid %s minutes)", email, RESET_SUBJECT, code, ttl_minutes)
        return

    if backend != "function":
        raise MailDeliveryError(f"Unknown mail backend {backend!r}")

    url = get_secret("RESET_MAIL_FUNCTION_URL")
    if not url:
        raise MailDeliveryError("RESET_MAIL_FUNCTION_URL not set")

    try:
        resp = requests.post(
            url,
            json={
                "email": email,
                "subject": RESET_SUBJECT,
                "code": code,
                "expires_minutes": int(ttl_minutes),
                "from": current_app.config.get("MAIL_FROM"),
            },
            timeout=10,
        )
    except requests.RequestException as e:
        raise MailDeliveryError(f"mail function unreachable: {e}") from e

    if not resp.ok:
        raise MailDeliveryError(f"mail function answered {resp.status_code}: {resp.text[:200]}")
