import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlmodel import Session

from grocerycart.constants.order_status import (
    ALLOWED_TRANSITIONS,
    STOCK_COMMITTED_STATUSES,
    OrderStatus,
)
from grocerycart.errors import (
    AlreadyCancelled,
    InvalidTransition,
    OrderConflict,
    OrderNotFound,
    PermissionDenied,
)
from grocerycart.models.order import Order
from grocerycart.models.user import User
from grocerycart.notifications import NotificationEvent
from grocerycart.notifications.dispatcher import Notifier
from grocerycart.schemas.orders_schemas import ShippingDetails
from grocerycart.services import inventory_service
from grocerycart.services.order_event_service import log_order_event

logger = logging.getLogger(__name__)

SHIPPING_FIELDS = (
    "shipping_tracking_number",
    "shipping_carrier",
    "shipping_tracking_url",
)

STATUS_EVENTS = {
    OrderStatus.SHIPPED: NotificationEvent.SHIPPED,
    OrderStatus.DELIVERED: NotificationEvent.DELIVERED,
}


def get_order(session: Session, order_id: int) -> Order:
    order = session.get(Order, order_id, populate_existing=True)
    if not order:
        raise OrderNotFound(order_id)
    return order


def apply_transition(session: Session, order: Order, expected: OrderStatus, values: dict) -> None:
    """
    Move an order out of ``expected`` with a single conditional UPDATE.

    Zero rows means another writer changed the order after we read it.
    Nothing is committed here.
    """
    result = session.exec(
        update(Order)
        .where(Order.id == order.id, Order.status == expected)
        .values(updated_at=datetime.utcnow(), **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.warning(f"Order {order.id} left {expected.value} before our update")
        raise OrderConflict(order.id)


def _coerce_status(current: OrderStatus, new_status) -> OrderStatus:
    try:
        return OrderStatus(new_status)
    except ValueError:
        raise InvalidTransition(current, new_status)


# -------------------------
# STATUS UPDATE (seller / admin)
# -------------------------
def set_status(
    session: Session,
    order_id: int,
    new_status,
    shipping: Optional[ShippingDetails] = None,
    *,
    notifier: Notifier,
    actor: Optional[User] = None,
) -> Order:
    try:
        order = get_order(session, order_id)
        current = order.status
        target = _coerce_status(current, new_status)

        if target == OrderStatus.CANCELLED:
            return cancel_order(session, order_id, actor, notifier=notifier, authorize=False)

        if target not in ALLOWED_TRANSITIONS.get(current, []):
            raise InvalidTransition(current, target)

        values = {"status": target}
        if target == OrderStatus.SHIPPED:
            values.update(_shipping_values(order, shipping))
        else:
            values.update({field: None for field in SHIPPING_FIELDS})

        apply_transition(session, order, current, values)
        log_order_event(
            session,
            order_id=order.id,
            event_type="status_changed",
            label=f"Status changed to {target.value}",
            created_by=str(actor.id) if actor else "system",
            meta={"from": current.value, "to": target.value},
        )
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(order)
    logger.info(f"Order {order.id} status {current.value} -> {target.value}")

    event = STATUS_EVENTS.get(target, NotificationEvent.STATUS_CHANGED)
    notifier.enqueue(event, order, new_status=target.value)
    return order


def _shipping_values(order: Order, shipping: Optional[ShippingDetails]) -> dict:
    """Carrier metadata for a shipped order; omitted fields keep their stored value."""
    provided = shipping.model_dump(exclude_none=True) if shipping else {}
    return {field: provided.get(field, getattr(order, field)) for field in SHIPPING_FIELDS}


# -------------------------
# CANCELLATION
# -------------------------
def _can_cancel(order: Order, actor: Optional[User], guest_email: Optional[str]) -> bool:
    if actor is not None:
        return actor.is_staff or order.user_id == actor.id

    if not order.is_guest or not guest_email or not order.guest_email:
        return False
    return guest_email.strip().lower() == order.guest_email.strip().lower()


def cancel_order(
    session: Session,
    order_id: int,
    actor: Optional[User],
    *,
    guest_email: Optional[str] = None,
    notifier: Notifier,
    authorize: bool = True,
) -> Order:
    """
    Cancel an order and return its stock.

    Stock goes back only when the order actually took it (Order Placed or
    Processing); a pending online order never touched inventory. The
    conditional update makes a second cancel lose, so restock happens once.
    """
    try:
        order = get_order(session, order_id)

        if authorize and not _can_cancel(order, actor, guest_email):
            raise PermissionDenied("You are not allowed to cancel this order")

        previous = order.status
        if previous == OrderStatus.CANCELLED:
            raise AlreadyCancelled(order.id)
        if OrderStatus.CANCELLED not in ALLOWED_TRANSITIONS.get(previous, []):
            raise InvalidTransition(previous, OrderStatus.CANCELLED)

        apply_transition(
            session,
            order,
            previous,
            {"status": OrderStatus.CANCELLED, **{field: None for field in SHIPPING_FIELDS}},
        )

        restocked = previous in STOCK_COMMITTED_STATUSES
        if restocked:
            for item in order.items:
                inventory_service.increment(session, item.product_id, item.quantity)

        cancelled_by = _actor_ref(actor)
        log_order_event(
            session,
            order_id=order.id,
            event_type="order_cancelled",
            label="Order cancelled",
            created_by=cancelled_by,
            meta={"from": previous.value, "restocked": restocked},
        )
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(order)
    logger.info(
        f"Order {order.id} cancelled by {cancelled_by} "
        f"(was {previous.value}, restocked={restocked})"
    )

    notifier.enqueue(
        NotificationEvent.CANCELLED,
        order,
        cancelled_by=actor.name if actor else None,
        restocked=restocked,
    )
    return order


def _actor_ref(actor: Optional[User]) -> str:
    if actor is None:
        return "guest"
    if actor.is_staff:
        return f"{actor.role}:{actor.id}"
    return str(actor.id)
