from dataclasses import dataclass
from typing import Optional

from grocerycart.config import settings
from grocerycart.models.order import Order
from grocerycart.notifications.events import NotificationEvent
from grocerycart.utils.template import render_template


@dataclass
class EmailMessage:
    to: str
    subject: str
    html: str


CUSTOMER_TEMPLATES = {
    NotificationEvent.ORDER_PLACED: (
        "customer/order_placed.html", "Order Confirmation #{order_id}"
    ),
    NotificationEvent.PAYMENT_SUCCESS: (
        "customer/payment_success.html", "Order Confirmation #{order_id}"
    ),
    NotificationEvent.STATUS_CHANGED: (
        "customer/status_update.html", "Your {store} Order #{order_id} Status Update"
    ),
    NotificationEvent.SHIPPED: (
        "customer/order_shipped.html", "Your {store} Order #{order_id} Has Been Shipped!"
    ),
    NotificationEvent.DELIVERED: (
        "customer/order_delivered.html", "Your {store} Order #{order_id} Has Been Delivered!"
    ),
    NotificationEvent.CANCELLED: (
        "customer/order_cancelled.html", "Your {store} Order #{order_id} Has Been Cancelled"
    ),
}

SELLER_TEMPLATES = {
    NotificationEvent.ORDER_PLACED: (
        "seller/new_order.html", "New order received #{order_id}"
    ),
    NotificationEvent.CANCELLED: (
        "seller/order_cancelled.html", "Order #{order_id} Cancelled"
    ),
    NotificationEvent.LOW_STOCK: (
        "seller/stock_alert.html", "LOW STOCK ALERT: {product_name}"
    ),
    NotificationEvent.OUT_OF_STOCK: (
        "seller/stock_alert.html", "OUT OF STOCK: {product_name}"
    ),
}


def customer_contact(order: Order):
    """(email, name) for whoever placed the order."""
    if order.user is not None:
        return order.user.email, order.user.name
    return order.guest_email, order.guest_name or "Customer"


def build_customer_message(event: NotificationEvent, order: Order, **ctx) -> Optional[EmailMessage]:
    template, subject = CUSTOMER_TEMPLATES[event]
    email, name = customer_contact(order)
    if not email:
        return None

    context = {
        "order": order,
        "customer_name": name,
        "store_name": settings.store_name,
        **ctx,
    }
    return EmailMessage(
        to=email,
        subject=subject.format(order_id=order.id, store=settings.store_name),
        html=render_template(template, **context),
    )


def build_seller_message(event: NotificationEvent, order: Optional[Order] = None, **ctx) -> EmailMessage:
    template, subject = SELLER_TEMPLATES[event]
    context = {"order": order, "store_name": settings.store_name, **ctx}
    if order is not None:
        context["customer_email"], context["customer_name"] = customer_contact(order)

    return EmailMessage(
        to=settings.seller_email,
        subject=subject.format(
            order_id=order.id if order is not None else "",
            product_name=ctx.get("product_name", ""),
        ),
        html=render_template(template, **context),
    )
