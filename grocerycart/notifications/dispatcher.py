import logging
from typing import List, Optional

from fastapi import BackgroundTasks

from grocerycart.models.order import Order
from grocerycart.notifications.channels import Channel, NotificationChannel
from grocerycart.notifications.events import NotificationEvent
from grocerycart.notifications.rules import NOTIFICATION_RULES
from grocerycart.services.email_retry import send_with_retry
from grocerycart.services.inventory_service import StockSignal, StockSignalKind
from grocerycart.services.order_email_service import (
    EmailMessage,
    build_customer_message,
    build_seller_message,
)

logger = logging.getLogger(__name__)

SIGNAL_EVENTS = {
    StockSignalKind.LOW_STOCK: NotificationEvent.LOW_STOCK,
    StockSignalKind.OUT_OF_STOCK: NotificationEvent.OUT_OF_STOCK,
}


class Notifier:
    """
    Central notification dispatcher.

    Messages are rendered immediately, while the caller's session is still
    usable, and then either sent inline or handed to FastAPI background tasks.
    Delivery failures are logged and reported as False, never raised.
    """

    def __init__(
        self,
        channel: NotificationChannel,
        tasks: Optional[BackgroundTasks] = None,
        retry_delay: float = 1.0,
    ):
        self.channel = channel
        self.tasks = tasks
        self.retry_delay = retry_delay

    # -------------------------
    # ORDER EVENTS
    # -------------------------
    def notify(self, event: NotificationEvent, order: Order, **ctx) -> bool:
        """Send now and report whether every message went out."""
        messages = self._order_messages(event, order, **ctx)
        if not messages:
            logger.warning(f"No recipient for {event.value} on order {order.id}")
            return False
        return self._deliver(messages, self._attempts(event))

    def enqueue(self, event: NotificationEvent, order: Order, **ctx) -> None:
        """Fire and forget."""
        messages = self._order_messages(event, order, **ctx)
        if not messages:
            logger.warning(f"No recipient for {event.value} on order {order.id}")
            return
        self._schedule(messages, self._attempts(event))

    # -------------------------
    # STOCK ALERTS
    # -------------------------
    def enqueue_stock_signals(self, signals: List[Optional[StockSignal]]) -> None:
        for signal in signals:
            if signal is None:
                continue
            event = SIGNAL_EVENTS[signal.kind]
            message = build_seller_message(
                event,
                product_name=signal.product_name,
                product_id=signal.product_id,
                stock=signal.stock,
                threshold=signal.threshold,
                out_of_stock=signal.kind == StockSignalKind.OUT_OF_STOCK,
            )
            self._schedule([message], self._attempts(event))

    # -------------------------
    # INTERNALS
    # -------------------------
    def _order_messages(self, event, order, **ctx) -> List[EmailMessage]:
        rules = NOTIFICATION_RULES.get(event, {})
        messages = []

        if rules.get(Channel.EMAIL_CUSTOMER):
            message = build_customer_message(event, order, **ctx)
            if message:
                messages.append(message)

        if rules.get(Channel.EMAIL_SELLER):
            messages.append(build_seller_message(event, order, **ctx))

        return messages

    def _attempts(self, event) -> int:
        return NOTIFICATION_RULES.get(event, {}).get("max_attempts", 1)

    def _schedule(self, messages, max_attempts) -> None:
        if self.tasks is not None:
            self.tasks.add_task(self._deliver, messages, max_attempts)
        else:
            self._deliver(messages, max_attempts)

    def _deliver(self, messages: List[EmailMessage], max_attempts: int) -> bool:
        delivered = True
        for message in messages:
            sent = send_with_retry(
                self.channel,
                to_email=message.to,
                subject=message.subject,
                html=message.html,
                max_attempts=max_attempts,
                base_delay=self.retry_delay,
            )
            delivered = delivered and sent
        return delivered
