from .events import NotificationEvent

__all__ = [
    "NotificationEvent",
]
