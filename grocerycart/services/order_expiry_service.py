import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlmodel import Session, select

from grocerycart.config import settings
from grocerycart.constants.order_status import OrderStatus
from grocerycart.errors import OrderConflict
from grocerycart.models.order import Order
from grocerycart.notifications import NotificationEvent
from grocerycart.notifications.dispatcher import Notifier
from grocerycart.services.order_event_service import log_order_event
from grocerycart.services.order_status_service import apply_transition

logger = logging.getLogger(__name__)


def expire_pending_orders(
    session: Session,
    older_than: Optional[datetime] = None,
    *,
    notifier: Notifier,
) -> List[int]:
    """
    Cancel online orders whose payment never arrived.

    Pending orders hold no stock, so nothing is restocked. An order the
    webhook confirms in the meantime is skipped.
    """
    if older_than is None:
        older_than = datetime.utcnow() - timedelta(hours=settings.pending_payment_expiry_hours)

    orders = session.exec(
        select(Order)
        .where(Order.status == OrderStatus.PENDING_PAYMENT)
        .where(Order.is_paid == False)  # noqa: E712
        .where(Order.created_at < older_than)
    ).all()

    expired = []
    try:
        for order in orders:
            try:
                apply_transition(
                    session, order, OrderStatus.PENDING_PAYMENT, {"status": OrderStatus.CANCELLED}
                )
            except OrderConflict:
                continue

            log_order_event(
                session,
                order_id=order.id,
                event_type="payment_expired",
                label="Cancelled, payment not received",
            )
            expired.append(order)

        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"Expired {len(expired)} unpaid orders")

    for order in expired:
        session.refresh(order)
        notifier.enqueue(
            NotificationEvent.CANCELLED,
            order,
            cancelled_by="Payment timeout",
            restocked=False,
        )
    return [order.id for order in expired]
