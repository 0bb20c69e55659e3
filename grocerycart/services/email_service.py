import logging
import re

import requests

from grocerycart.config import settings
from grocerycart.errors import TransientError

logger = logging.getLogger(__name__)

BREVO_API_URL = "https://api.brevo.com/v3/smtp/email"


def is_valid_email(email):
    if isinstance(email, list):
        return all(is_valid_email(e) for e in email)

    if not email:
        return False

    return re.match(r"[^@]+@[^@]+\.[^@]+", email) is not None


def send_email(to: str, subject: str, html: str) -> bool:
    """
    Send one transactional email via Brevo.

    Raises TransientError when the message could not be delivered, so the
    caller's retry policy decides what happens next.
    """
    if not is_valid_email(to):
        raise TransientError(f"Invalid recipient email: {to}")

    payload = {
        "sender": {
            "email": settings.mail_from,
            "name": settings.store_name,
        },
        "to": [{"email": to}],
        "subject": subject,
        "htmlContent": html,
    }

    headers = {
        "api-key": settings.brevo_api_key,
        "Content-Type": "application/json",
    }

    try:
        response = requests.post(
            BREVO_API_URL,
            json=payload,
            headers=headers,
            timeout=10,
        )
    except requests.RequestException as e:
        raise TransientError(f"Brevo request failed: {e}") from e

    if response.status_code >= 400:
        raise TransientError(
            f"Brevo email failed ({response.status_code}): {response.text}"
        )

    logger.info(f"Brevo email sent to {to}")
    return True
