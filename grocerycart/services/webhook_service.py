import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlmodel import Session

from grocerycart.constants.order_status import OrderStatus
from grocerycart.errors import InvalidTransition, MissingMetadata, OrderNotFound
from grocerycart.models.order import Order
from grocerycart.notifications import NotificationEvent
from grocerycart.notifications.dispatcher import Notifier
from grocerycart.services import inventory_service
from grocerycart.services.cart_service import clear_cart
from grocerycart.services.order_event_service import log_order_event
from grocerycart.services.payment_gateway import PaymentGateway

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"


@dataclass
class WebhookResult:
    status: str
    order_id: Optional[int] = None
    order_updated: bool = False
    stock_updated: bool = False
    cart_cleared: bool = False
    email_sent: bool = False

    def to_dict(self) -> dict:
        return {
            "received": True,
            "status": self.status,
            "order_id": self.order_id,
            "order_updated": self.order_updated,
            "stock_updated": self.stock_updated,
            "cart_cleared": self.cart_cleared,
            "email_sent": self.email_sent,
        }


def _order_id_from(metadata: dict) -> int:
    order_id = metadata.get("order_id")
    if not order_id or not metadata.get("user_id"):
        raise MissingMetadata()
    try:
        return int(order_id)
    except (TypeError, ValueError):
        raise MissingMetadata()


def confirm_payment(
    session: Session,
    *,
    payload: bytes,
    signature: Optional[str],
    gateway: PaymentGateway,
    notifier: Notifier,
) -> WebhookResult:
    """
    Reconcile a Stripe checkout webhook with its pending order.

    The paid flag and status flip in one conditional UPDATE, so only the
    first delivery of an event decrements stock; redeliveries find the order
    already paid and write nothing.
    """
    event = gateway.parse_event(payload, signature)
    event_type = event.get("type")

    if event_type != CHECKOUT_COMPLETED:
        logger.info(f"Ignoring Stripe event {event_type}")
        return WebhookResult(status="ignored")

    checkout = (event.get("data") or {}).get("object") or {}
    order_id = _order_id_from(checkout.get("metadata") or {})
    transaction_id = checkout.get("payment_intent")

    try:
        order = session.get(Order, order_id, populate_existing=True)
        if not order:
            raise OrderNotFound(order_id)

        result = session.exec(
            update(Order)
            .where(
                Order.id == order_id,
                Order.is_paid == False,  # noqa: E712
                Order.status == OrderStatus.PENDING_PAYMENT,
            )
            .values(
                is_paid=True,
                status=OrderStatus.PROCESSING,
                transaction_id=transaction_id,
                paid_at=datetime.utcnow(),
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            session.rollback()
            return _unchanged(session, order_id)

        signals = [
            inventory_service.decrement(session, item.product_id, item.quantity)
            for item in order.items
        ]

        cart_cleared = False
        if order.user_id is not None:
            clear_cart(session, order.user_id)
            cart_cleared = True

        log_order_event(
            session,
            order_id=order_id,
            event_type="payment_success",
            label="Payment received",
            created_by="stripe",
            meta={"transaction_id": transaction_id, "event_id": event.get("id")},
        )
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(order)
    logger.info(f"Order {order_id} paid ({transaction_id}), stock committed")

    email_sent = notifier.notify(NotificationEvent.PAYMENT_SUCCESS, order)
    if not email_sent:
        logger.error(f"Payment confirmation email for order {order_id} was not delivered")
    notifier.enqueue_stock_signals(signals)

    return WebhookResult(
        status="processed",
        order_id=order_id,
        order_updated=True,
        stock_updated=True,
        cart_cleared=cart_cleared,
        email_sent=email_sent,
    )


def _unchanged(session: Session, order_id: int) -> WebhookResult:
    """Classify an order the conditional update did not match."""
    order = session.get(Order, order_id, populate_existing=True)

    if order.is_paid:
        logger.info(f"Duplicate payment webhook for order {order_id}, already processed")
        return WebhookResult(status="already_processed", order_id=order_id)

    if order.status == OrderStatus.CANCELLED:
        logger.warning(f"Payment webhook for cancelled order {order_id}, no changes made")
        return WebhookResult(status="order_cancelled", order_id=order_id)

    raise InvalidTransition(order.status, OrderStatus.PROCESSING)
