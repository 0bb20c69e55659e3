from typing import List, Optional

from sqlalchemy import or_
from sqlmodel import Session, select

from grocerycart.constants.order_status import OrderStatus, PaymentMethod
from grocerycart.errors import OrderNotFound
from grocerycart.models.order import Order
from grocerycart.schemas.orders_schemas import (
    OrderItemOut,
    OrderOut,
    TimelineEntry,
    TrackingDetails,
)
from grocerycart.services.order_email_service import customer_contact
from grocerycart.services.order_event_service import get_order_timeline

# Online orders only show up once paid
VISIBLE = or_(Order.payment_method == PaymentMethod.COD, Order.is_paid == True)  # noqa: E712


def _order_out(order: Order) -> dict:
    return dict(
        order_id=order.id,
        status=order.status,
        payment_method=order.payment_method.value,
        is_paid=order.is_paid,
        subtotal=order.subtotal,
        tax=order.tax,
        amount=order.amount,
        created_at=order.created_at,
        items=[
            OrderItemOut(
                product_id=item.product_id,
                name=item.product_name,
                price=item.price,
                quantity=item.quantity,
                line_total=item.price * item.quantity,
            )
            for item in order.items
        ],
    )


def list_user_orders(session: Session, user_id: int) -> List[OrderOut]:
    orders = session.exec(
        select(Order)
        .where(Order.user_id == user_id, VISIBLE)
        .order_by(Order.created_at.desc(), Order.id.desc())
    ).all()
    return [OrderOut(**_order_out(o)) for o in orders]


def list_seller_orders(session: Session, status: Optional[OrderStatus] = None) -> List[OrderOut]:
    query = select(Order).where(VISIBLE)
    if status:
        query = query.where(Order.status == status)

    orders = session.exec(query.order_by(Order.created_at.desc(), Order.id.desc())).all()
    return [OrderOut(**_order_out(o)) for o in orders]


def get_tracking_details(session: Session, order_id: int) -> TrackingDetails:
    """Public tracking view of one order, timeline included."""
    order = session.get(Order, order_id)
    if not order:
        raise OrderNotFound(order_id)

    _, customer_name = customer_contact(order)
    address = order.address

    return TrackingDetails(
        **_order_out(order),
        customer_name=customer_name,
        last_updated=order.updated_at,
        shipping_tracking_number=order.shipping_tracking_number,
        shipping_carrier=order.shipping_carrier,
        shipping_tracking_url=order.shipping_tracking_url,
        shipping_address={
            "name": f"{address.first_name} {address.last_name}",
            "formatted": address.formatted(),
        } if address else None,
        timeline=[
            TimelineEntry(
                event_type=e.event_type,
                label=e.label,
                created_at=e.created_at,
                created_by=e.created_by,
            )
            for e in get_order_timeline(session, order.id)
        ],
    )
