from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool
from sqlmodel import Session

from grocerycart.config import Settings, get_settings
from grocerycart.constants.order_status import OrderStatus, PaymentMethod
from grocerycart.database import get_session
from grocerycart.dependencies.notifier import get_notifier
from grocerycart.models.user import User
from grocerycart.notifications.dispatcher import Notifier
from grocerycart.schemas.checkout_schemas import PlaceOrderRequest, PlaceOrderResponse
from grocerycart.schemas.orders_schemas import CancelOrderRequest, StatusUpdateRequest
from grocerycart.services import order_query_service
from grocerycart.services.checkout_service import place_order
from grocerycart.services.order_expiry_service import expire_pending_orders
from grocerycart.services.order_status_service import cancel_order, set_status
from grocerycart.services.payment_gateway import PaymentGateway, get_payment_gateway
from grocerycart.services.webhook_service import confirm_payment
from grocerycart.utils.token import get_current_seller, get_current_user, get_optional_user

router = APIRouter()


def _place(data, method, session, current_user, gateway, notifier, settings):
    result = place_order(
        session,
        items=data.items,
        address=data.address,
        guest_details=data.guest_details,
        payment_method=method,
        actor=current_user,
        gateway=gateway,
        notifier=notifier,
        settings=settings,
    )
    return PlaceOrderResponse(
        message="Order Placed Successfully" if method == PaymentMethod.COD else "Redirecting to payment",
        order_id=result.order_id,
        payment_method=result.payment_method.value,
        amount=result.amount,
        url=result.redirect_url,
    )


# -------------------------
# PLACE ORDER : COD
# -------------------------
@router.post("/cod", response_model=PlaceOrderResponse)
def place_order_cod(
    data: PlaceOrderRequest,
    session: Session = Depends(get_session),
    current_user: Optional[User] = Depends(get_optional_user),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notifier: Notifier = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
):
    return _place(data, PaymentMethod.COD, session, current_user, gateway, notifier, settings)


# -------------------------
# PLACE ORDER : ONLINE (Stripe)
# -------------------------
@router.post("/online", response_model=PlaceOrderResponse)
def place_order_online(
    data: PlaceOrderRequest,
    session: Session = Depends(get_session),
    current_user: Optional[User] = Depends(get_optional_user),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notifier: Notifier = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
):
    return _place(data, PaymentMethod.ONLINE, session, current_user, gateway, notifier, settings)


# -------------------------
# STRIPE WEBHOOK
# -------------------------
@router.post("/stripe-webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None, alias="Stripe-Signature"),
    session: Session = Depends(get_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notifier: Notifier = Depends(get_notifier),
):
    # Signature is computed over the raw body
    payload = await request.body()
    result = await run_in_threadpool(
        confirm_payment,
        session,
        payload=payload,
        signature=stripe_signature,
        gateway=gateway,
        notifier=notifier,
    )
    return result.to_dict()


# -------------------------
# CANCEL (owner, guest, seller)
# -------------------------
@router.put("/{order_id}/cancel")
def cancel(
    order_id: int,
    data: Optional[CancelOrderRequest] = None,
    session: Session = Depends(get_session),
    current_user: Optional[User] = Depends(get_optional_user),
    notifier: Notifier = Depends(get_notifier),
):
    order = cancel_order(
        session,
        order_id,
        current_user,
        guest_email=data.guest_email if data else None,
        notifier=notifier,
    )
    return {
        "success": True,
        "message": "Order cancelled successfully",
        "order_id": order.id,
        "status": order.status,
    }


# -------------------------
# SELLER
# -------------------------
@router.put("/seller/{order_id}/status")
def update_status(
    order_id: int,
    data: StatusUpdateRequest,
    session: Session = Depends(get_session),
    seller: User = Depends(get_current_seller),
    notifier: Notifier = Depends(get_notifier),
):
    order = set_status(
        session,
        order_id,
        data.status,
        data,
        notifier=notifier,
        actor=seller,
    )
    return {
        "success": True,
        "message": "Order status updated",
        "order_id": order.id,
        "status": order.status,
        "shipping_tracking_number": order.shipping_tracking_number,
        "shipping_carrier": order.shipping_carrier,
        "shipping_tracking_url": order.shipping_tracking_url,
    }


@router.post("/seller/expire-pending")
def expire_pending(
    session: Session = Depends(get_session),
    _: User = Depends(get_current_seller),
    notifier: Notifier = Depends(get_notifier),
):
    expired = expire_pending_orders(session, notifier=notifier)
    return {
        "success": True,
        "message": f"{len(expired)} unpaid orders cancelled",
        "order_ids": expired,
    }


@router.get("/seller")
def seller_orders(
    status: Optional[OrderStatus] = None,
    session: Session = Depends(get_session),
    _: User = Depends(get_current_seller),
):
    return {
        "success": True,
        "orders": order_query_service.list_seller_orders(session, status),
    }


# -------------------------
# CUSTOMER
# -------------------------
@router.get("/user")
def user_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return {
        "success": True,
        "orders": order_query_service.list_user_orders(session, current_user.id),
    }


@router.get("/track/{order_id}")
def track_order(order_id: int, session: Session = Depends(get_session)):
    return {
        "success": True,
        "order": order_query_service.get_tracking_details(session, order_id),
    }
