import logging
from typing import List, Optional, Sequence, Union

from sqlmodel import Session

from grocerycart.config import Settings
from grocerycart.errors import EmptyCart, InvalidLineItem, MissingGuestDetails
from grocerycart.models.user import User
from grocerycart.notifications.dispatcher import Notifier
from grocerycart.schemas.address_schemas import AddressCreate
from grocerycart.schemas.checkout_schemas import GuestDetails, LineItemIn
from grocerycart.services.address_service import resolve_address
from grocerycart.services.payment_dispatcher import (
    OrderIntent,
    PlaceOrderResult,
    dispatch_payment,
)
from grocerycart.services.payment_gateway import PaymentGateway
from grocerycart.services.pricing_service import LineItem, price_items

logger = logging.getLogger(__name__)

GUEST_FIELDS = ("name", "email", "phone")


def validate_items(items: Optional[Sequence[LineItemIn]]) -> List[LineItem]:
    if not items:
        raise EmptyCart()

    validated = []
    for index, item in enumerate(items):
        product = getattr(item, "product", None)
        quantity = getattr(item, "quantity", None)
        if (
            product is None
            or isinstance(quantity, bool)
            or not isinstance(quantity, int)
            or quantity <= 0
        ):
            raise InvalidLineItem(index)
        validated.append(LineItem(product_id=product, quantity=quantity))
    return validated


def validate_guest(guest_details: Optional[GuestDetails]) -> GuestDetails:
    for field in GUEST_FIELDS:
        value = getattr(guest_details, field, None) if guest_details else None
        if not value or not str(value).strip():
            raise MissingGuestDetails(field)
    return guest_details


def place_order(
    session: Session,
    *,
    items: Optional[Sequence[LineItemIn]],
    address: Union[int, AddressCreate, None],
    guest_details: Optional[GuestDetails],
    payment_method,
    actor: Optional[User],
    gateway: PaymentGateway,
    notifier: Notifier,
    settings: Settings,
) -> PlaceOrderResult:
    """
    Single entry point for checkout, cash on delivery and online alike.

    Validation, address resolution and pricing happen before any commit;
    a failure anywhere rolls the session back so nothing is left behind.
    """
    try:
        line_items = validate_items(items)

        guest = None
        if actor is None:
            guest = validate_guest(guest_details)

        address_created = not isinstance(address, int)
        resolved = resolve_address(session, address, actor)

        priced = price_items(session, line_items, settings.tax_rate)
        logger.info(
            f"Priced order for {'user ' + str(actor.id) if actor else 'guest'}: "
            f"subtotal {priced.subtotal}, tax {priced.tax}, total {priced.total}"
        )

        intent = OrderIntent(
            priced=priced,
            address=resolved,
            address_created=address_created,
            user=actor,
            guest=guest,
        )
        return dispatch_payment(
            session,
            intent,
            payment_method,
            gateway=gateway,
            notifier=notifier,
            client_url=settings.client_url,
            allow_guest_online=settings.allow_guest_online_payment,
        )
    except Exception:
        session.rollback()
        raise
