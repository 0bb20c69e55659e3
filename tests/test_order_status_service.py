"""Tests for order status transitions and cancellation."""

from datetime import datetime, timedelta

import pytest
from sqlmodel import select

from conftest import stock_of
from grocerycart.constants.order_status import OrderStatus, PaymentMethod
from grocerycart.errors import (
    AlreadyCancelled,
    InvalidTransition,
    OrderNotFound,
    PermissionDenied,
)
from grocerycart.models.order import Order
from grocerycart.models.order_event import OrderEvent
from grocerycart.schemas.address_schemas import AddressCreate
from grocerycart.schemas.checkout_schemas import GuestDetails, LineItemIn
from grocerycart.schemas.orders_schemas import ShippingDetails
from grocerycart.services.checkout_service import place_order
from grocerycart.services.order_expiry_service import expire_pending_orders
from grocerycart.services.order_status_service import cancel_order, set_status


@pytest.fixture
def new_order(session, gateway, notifier, test_settings, products):
    def _new_order(actor=None, address=None, guest_details=None,
                   payment_method=PaymentMethod.COD, quantity=2):
        result = place_order(
            session,
            items=[LineItemIn(product=products["rice"].id, quantity=quantity)],
            address=address,
            guest_details=GuestDetails(**guest_details) if guest_details else None,
            payment_method=payment_method,
            actor=actor,
            gateway=gateway,
            notifier=notifier,
            settings=test_settings,
        )
        return session.get(Order, result.order_id)

    return _new_order


@pytest.fixture
def cod_order(new_order, customer, saved_address, channel):
    order = new_order(actor=customer, address=saved_address.id)
    channel.sent.clear()
    return order


@pytest.fixture
def guest_order(new_order, guest_address, guest_details, channel):
    order = new_order(address=AddressCreate(**guest_address), guest_details=guest_details)
    channel.sent.clear()
    return order


class TestSetStatus:
    def test_walks_the_fulfilment_path(self, session, notifier, seller, cod_order):
        set_status(session, cod_order.id, OrderStatus.PROCESSING, notifier=notifier, actor=seller)
        set_status(
            session, cod_order.id, OrderStatus.SHIPPED,
            ShippingDetails(shipping_tracking_number="TRK1", shipping_carrier="BlueDart"),
            notifier=notifier, actor=seller,
        )
        order = set_status(session, cod_order.id, OrderStatus.DELIVERED, notifier=notifier, actor=seller)

        assert order.status == OrderStatus.DELIVERED

    def test_shipping_metadata_stored_on_ship(self, session, notifier, seller, cod_order):
        set_status(session, cod_order.id, OrderStatus.PROCESSING, notifier=notifier)
        order = set_status(
            session, cod_order.id, OrderStatus.SHIPPED,
            ShippingDetails(
                shipping_tracking_number="TRK1",
                shipping_carrier="BlueDart",
                shipping_tracking_url="https://track.test/TRK1",
            ),
            notifier=notifier,
        )

        assert order.shipping_tracking_number == "TRK1"
        assert order.shipping_carrier == "BlueDart"
        assert order.shipping_tracking_url == "https://track.test/TRK1"

    def test_other_targets_clear_shipping_metadata(self, session, notifier, cod_order):
        set_status(session, cod_order.id, OrderStatus.PROCESSING, notifier=notifier)
        set_status(
            session, cod_order.id, OrderStatus.SHIPPED,
            ShippingDetails(shipping_tracking_number="TRK1", shipping_carrier="BlueDart"),
            notifier=notifier,
        )
        order = set_status(session, cod_order.id, OrderStatus.DELIVERED, notifier=notifier)

        assert order.shipping_tracking_number is None
        assert order.shipping_carrier is None

    def test_skipping_states_is_rejected(self, session, notifier, cod_order):
        with pytest.raises(InvalidTransition):
            set_status(session, cod_order.id, OrderStatus.DELIVERED, notifier=notifier)

        session.expire_all()
        assert session.get(Order, cod_order.id).status == OrderStatus.PLACED

    def test_pending_payment_cannot_be_processed_by_hand(self, session, notifier, new_order,
                                                         customer, saved_address):
        order = new_order(actor=customer, address=saved_address.id, payment_method=PaymentMethod.ONLINE)

        with pytest.raises(InvalidTransition):
            set_status(session, order.id, OrderStatus.PROCESSING, notifier=notifier)

    def test_unknown_status_value(self, session, notifier, cod_order):
        with pytest.raises(InvalidTransition):
            set_status(session, cod_order.id, "Teleported", notifier=notifier)

    def test_unknown_order(self, session, notifier, products):
        with pytest.raises(OrderNotFound):
            set_status(session, 4040, OrderStatus.PROCESSING, notifier=notifier)

    def test_customer_is_notified(self, session, notifier, channel, cod_order):
        set_status(session, cod_order.id, OrderStatus.PROCESSING, notifier=notifier)
        set_status(session, cod_order.id, OrderStatus.SHIPPED, notifier=notifier)

        assert channel.subjects() == [
            f"Your Grocerycart Order #{cod_order.id} Status Update",
            f"Your Grocerycart Order #{cod_order.id} Has Been Shipped!",
        ]
        assert "Processing" in channel.sent[0]["body"]

    def test_notification_failure_keeps_transition(self, session, notifier, channel, cod_order):
        channel.fail_times = 100
        order = set_status(session, cod_order.id, OrderStatus.PROCESSING, notifier=notifier)
        assert order.status == OrderStatus.PROCESSING

    def test_cancelled_target_delegates_to_cancellation(self, session, notifier, seller, products, cod_order):
        order = set_status(session, cod_order.id, OrderStatus.CANCELLED, notifier=notifier, actor=seller)

        assert order.status == OrderStatus.CANCELLED
        assert stock_of(session, products["rice"]) == 5

    def test_transitions_are_logged(self, session, notifier, cod_order):
        set_status(session, cod_order.id, OrderStatus.PROCESSING, notifier=notifier)

        events = session.exec(
            select(OrderEvent)
            .where(OrderEvent.order_id == cod_order.id)
            .order_by(OrderEvent.created_at)
        ).all()
        assert [e.event_type for e in events] == ["order_placed", "status_changed"]


class TestCancelOrder:
    def test_scenario_place_then_cancel(self, session, notifier, products, customer, cod_order):
        assert cod_order.amount == 1020
        assert stock_of(session, products["rice"]) == 3

        order = cancel_order(session, cod_order.id, customer, notifier=notifier)

        assert order.status == OrderStatus.CANCELLED
        assert stock_of(session, products["rice"]) == 5

    def test_second_cancel_is_rejected_and_restocks_once(self, session, notifier, products,
                                                         customer, cod_order):
        cancel_order(session, cod_order.id, customer, notifier=notifier)

        with pytest.raises(AlreadyCancelled):
            cancel_order(session, cod_order.id, customer, notifier=notifier)

        assert stock_of(session, products["rice"]) == 5

    def test_processing_order_restocks(self, session, notifier, products, customer, cod_order):
        set_status(session, cod_order.id, OrderStatus.PROCESSING, notifier=notifier)
        cancel_order(session, cod_order.id, customer, notifier=notifier)

        assert stock_of(session, products["rice"]) == 5

    def test_shipped_order_cannot_be_cancelled(self, session, notifier, products, seller, cod_order):
        set_status(session, cod_order.id, OrderStatus.PROCESSING, notifier=notifier)
        set_status(session, cod_order.id, OrderStatus.SHIPPED, notifier=notifier)

        with pytest.raises(InvalidTransition):
            cancel_order(session, cod_order.id, seller, notifier=notifier)
        assert stock_of(session, products["rice"]) == 3

    def test_pending_order_cancels_without_restock(self, session, notifier, products, new_order,
                                                   customer, saved_address):
        order = new_order(actor=customer, address=saved_address.id, payment_method=PaymentMethod.ONLINE)

        cancelled = cancel_order(session, order.id, customer, notifier=notifier)

        assert cancelled.status == OrderStatus.CANCELLED
        assert stock_of(session, products["rice"]) == 5

    def test_other_customer_is_denied(self, session, notifier, products, other_customer, cod_order):
        with pytest.raises(PermissionDenied):
            cancel_order(session, cod_order.id, other_customer, notifier=notifier)
        assert stock_of(session, products["rice"]) == 3

    def test_seller_can_cancel_any_order(self, session, notifier, seller, cod_order):
        order = cancel_order(session, cod_order.id, seller, notifier=notifier)
        assert order.status == OrderStatus.CANCELLED

    def test_guest_cancels_with_matching_email(self, session, notifier, products, guest_order):
        order = cancel_order(session, guest_order.id, None, guest_email="GUEST@example.com ", notifier=notifier)

        assert order.status == OrderStatus.CANCELLED
        assert stock_of(session, products["rice"]) == 5

    def test_guest_with_wrong_email_is_denied(self, session, notifier, guest_order):
        with pytest.raises(PermissionDenied):
            cancel_order(session, guest_order.id, None, guest_email="someone@else.com", notifier=notifier)

    def test_anonymous_caller_cannot_cancel_user_order(self, session, notifier, cod_order):
        with pytest.raises(PermissionDenied):
            cancel_order(session, cod_order.id, None, guest_email="asha@example.com", notifier=notifier)

    def test_customer_and_seller_are_notified(self, session, notifier, channel, customer, cod_order):
        cancel_order(session, cod_order.id, customer, notifier=notifier)

        assert channel.subjects() == [
            f"Your Grocerycart Order #{cod_order.id} Has Been Cancelled",
            f"Order #{cod_order.id} Cancelled",
        ]
        assert channel.sent[1]["to"] == "seller@grocerycart.local"
        assert "returned to stock" in channel.sent[1]["body"]


class TestExpirePendingOrders:
    def _age(self, session, order, hours):
        order.created_at = datetime.utcnow() - timedelta(hours=hours)
        session.add(order)
        session.commit()

    def test_cancels_stale_pending_orders(self, session, notifier, new_order, products,
                                          customer, saved_address):
        stale = new_order(actor=customer, address=saved_address.id, payment_method=PaymentMethod.ONLINE)
        fresh = new_order(actor=customer, address=saved_address.id, payment_method=PaymentMethod.ONLINE)
        self._age(session, stale, 48)

        expired = expire_pending_orders(
            session, datetime.utcnow() - timedelta(hours=24), notifier=notifier
        )

        assert expired == [stale.id]
        session.expire_all()
        assert session.get(Order, stale.id).status == OrderStatus.CANCELLED
        assert session.get(Order, fresh.id).status == OrderStatus.PENDING_PAYMENT
        assert stock_of(session, products["rice"]) == 5

    def test_leaves_cod_orders_alone(self, session, notifier, products, cod_order):
        self._age(session, cod_order, 48)

        assert expire_pending_orders(session, datetime.utcnow(), notifier=notifier) == []
        session.expire_all()
        assert session.get(Order, cod_order.id).status == OrderStatus.PLACED

    def test_customer_and_seller_hear_about_expiry(self, session, notifier, channel, new_order,
                                                   customer, saved_address):
        stale = new_order(actor=customer, address=saved_address.id, payment_method=PaymentMethod.ONLINE)
        self._age(session, stale, 48)

        expire_pending_orders(session, datetime.utcnow() - timedelta(hours=24), notifier=notifier)

        assert channel.subjects() == [
            f"Your Grocerycart Order #{stale.id} Has Been Cancelled",
            f"Order #{stale.id} Cancelled",
        ]
        assert channel.sent[0]["to"] == "asha@example.com"
        assert "Payment timeout" in channel.sent[1]["body"]
        assert "returned to stock" not in channel.sent[1]["body"]

    def test_expiry_is_logged_on_the_timeline(self, session, notifier, new_order, customer, saved_address):
        stale = new_order(actor=customer, address=saved_address.id, payment_method=PaymentMethod.ONLINE)
        self._age(session, stale, 48)

        expire_pending_orders(session, datetime.utcnow(), notifier=notifier)

        events = session.exec(select(OrderEvent).where(OrderEvent.order_id == stale.id)).all()
        assert "payment_expired" in [e.event_type for e in events]
