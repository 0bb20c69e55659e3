import logging
from dataclasses import dataclass
from typing import Optional

from sqlmodel import Session

from grocerycart.constants.order_status import OrderStatus, PaymentMethod
from grocerycart.errors import GuestOnlinePaymentDisabled, InvalidPaymentMethod
from grocerycart.models.address import Address
from grocerycart.models.order import Order
from grocerycart.models.order_item import OrderItem
from grocerycart.models.user import User
from grocerycart.notifications import NotificationEvent
from grocerycart.notifications.dispatcher import Notifier
from grocerycart.schemas.checkout_schemas import GuestDetails
from grocerycart.services import inventory_service
from grocerycart.services.cart_service import clear_cart
from grocerycart.services.order_event_service import log_order_event
from grocerycart.services.payment_gateway import PaymentGateway
from grocerycart.services.pricing_service import PricedCart

logger = logging.getLogger(__name__)


@dataclass
class OrderIntent:
    """A validated, priced order that has not been written yet."""

    priced: PricedCart
    address: Address
    address_created: bool
    user: Optional[User] = None
    guest: Optional[GuestDetails] = None

    @property
    def owner_ref(self) -> str:
        return str(self.user.id) if self.user else "guest"

    @property
    def customer_email(self) -> Optional[str]:
        return self.user.email if self.user else self.guest.email


@dataclass
class PlaceOrderResult:
    order_id: int
    payment_method: PaymentMethod
    amount: int
    redirect_url: Optional[str] = None


def dispatch_payment(
    session: Session,
    intent: OrderIntent,
    payment_method,
    *,
    gateway: PaymentGateway,
    notifier: Notifier,
    client_url: str,
    allow_guest_online: bool,
) -> PlaceOrderResult:
    if payment_method == PaymentMethod.COD:
        return place_cod_order(session, intent, notifier=notifier)
    if payment_method == PaymentMethod.ONLINE:
        return place_online_order(
            session,
            intent,
            gateway=gateway,
            client_url=client_url,
            allow_guest_online=allow_guest_online,
        )
    raise InvalidPaymentMethod(payment_method)


def _build_order(intent: OrderIntent, method: PaymentMethod, status: OrderStatus) -> Order:
    guest = intent.guest if intent.user is None else None
    order = Order(
        user_id=intent.user.id if intent.user else None,
        guest_name=guest.name if guest else None,
        guest_email=guest.email if guest else None,
        guest_phone=guest.phone if guest else None,
        address_id=intent.address.id,
        subtotal=intent.priced.subtotal,
        tax=intent.priced.tax,
        amount=intent.priced.total,
        payment_method=method,
        is_paid=False,
        status=status,
    )
    order.items = [
        OrderItem(
            product_id=line.product_id,
            product_name=line.product_name,
            price=line.unit_price,
            quantity=line.quantity,
        )
        for line in intent.priced.lines
    ]
    return order


# -------------------------
# CASH ON DELIVERY
# -------------------------
def place_cod_order(session: Session, intent: OrderIntent, *, notifier: Notifier) -> PlaceOrderResult:
    """Create the order and take its stock in one transaction.

    A short line anywhere raises from the ledger and the caller's rollback
    discards the order, the address and every earlier decrement together.
    """
    order = _build_order(intent, PaymentMethod.COD, OrderStatus.PLACED)
    session.add(order)
    session.flush()

    signals = [
        inventory_service.decrement(session, line.product_id, line.quantity)
        for line in intent.priced.lines
    ]

    if intent.user:
        clear_cart(session, intent.user.id)

    log_order_event(
        session,
        order_id=order.id,
        event_type="order_placed",
        label="Order placed (Cash on Delivery)",
        created_by=intent.owner_ref,
        meta={"amount": order.amount},
    )
    session.commit()
    session.refresh(order)
    logger.info(f"COD order {order.id} placed, amount {order.amount}")

    notifier.enqueue(NotificationEvent.ORDER_PLACED, order)
    notifier.enqueue_stock_signals(signals)

    return PlaceOrderResult(
        order_id=order.id,
        payment_method=PaymentMethod.COD,
        amount=order.amount,
    )


# -------------------------
# ONLINE (deferred to webhook)
# -------------------------
def place_online_order(
    session: Session,
    intent: OrderIntent,
    *,
    gateway: PaymentGateway,
    client_url: str,
    allow_guest_online: bool,
) -> PlaceOrderResult:
    """Create a pending order and open a gateway session for it.

    Stock is untouched until the payment webhook confirms the order.
    """
    if intent.user is None and not allow_guest_online:
        raise GuestOnlinePaymentDisabled()

    order = _build_order(intent, PaymentMethod.ONLINE, OrderStatus.PENDING_PAYMENT)
    session.add(order)
    session.commit()
    session.refresh(order)

    try:
        redirect_url = gateway.create_session(
            line_items=intent.priced.lines,
            tax=intent.priced.tax,
            success_url=f"{client_url}/order-confirmation/{order.id}",
            cancel_url=f"{client_url}/cart",
            customer_email=intent.customer_email,
            metadata={"order_id": str(order.id), "user_id": intent.owner_ref},
        )
    except Exception:
        _discard_order(session, order, intent)
        raise

    log_order_event(
        session,
        order_id=order.id,
        event_type="payment_pending",
        label="Order created, awaiting online payment",
        created_by=intent.owner_ref,
        meta={"amount": order.amount},
    )
    session.commit()
    logger.info(f"Online order {order.id} awaiting payment, amount {order.amount}")

    return PlaceOrderResult(
        order_id=order.id,
        payment_method=PaymentMethod.ONLINE,
        amount=order.amount,
        redirect_url=redirect_url,
    )


def _discard_order(session: Session, order: Order, intent: OrderIntent) -> None:
    """Remove the pending order whose gateway session never opened."""
    order_id = order.id
    session.delete(order)
    if intent.address_created:
        session.delete(intent.address)
    session.commit()
    logger.warning(f"Online order {order_id} discarded, gateway session failed")
