from enum import Enum
from typing import Protocol

from grocerycart.services.email_service import send_email


class Channel(str, Enum):
    EMAIL_CUSTOMER = "email_customer"
    EMAIL_SELLER = "email_seller"


class NotificationChannel(Protocol):
    """Delivers one message. Returns True, or raises on failure."""

    def send(self, to: str, subject: str, body: str) -> bool:
        ...


class BrevoEmailChannel:
    def send(self, to: str, subject: str, body: str) -> bool:
        return send_email(to=to, subject=subject, html=body)
