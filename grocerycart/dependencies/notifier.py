from fastapi import BackgroundTasks

from grocerycart.notifications.channels import BrevoEmailChannel
from grocerycart.notifications.dispatcher import Notifier


def get_notifier(background_tasks: BackgroundTasks) -> Notifier:
    """Notifier bound to the request, so sends run after the response."""
    return Notifier(BrevoEmailChannel(), tasks=background_tasks)
