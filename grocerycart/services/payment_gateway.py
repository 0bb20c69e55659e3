import json
import logging
from typing import Any, Dict, List, Optional

import stripe

from grocerycart.config import settings
from grocerycart.errors import InvalidSignature, PaymentGatewayError
from grocerycart.services.pricing_service import PricedLine

logger = logging.getLogger(__name__)

WEBHOOK_TOLERANCE_SECONDS = 300


class PaymentGateway:
    """Stripe Checkout client, constructed per app and injected where needed."""

    def __init__(
        self,
        api_key: str,
        webhook_secret: str,
        currency: str = "inr",
        stripe_client=stripe,
    ):
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.currency = currency
        self._stripe = stripe_client

    def create_session(
        self,
        *,
        line_items: List[PricedLine],
        tax: int,
        success_url: str,
        cancel_url: str,
        customer_email: Optional[str],
        metadata: Dict[str, str],
    ) -> str:
        """Open a checkout session and return its redirect URL. One attempt."""
        stripe_items = [
            self._price_line(line.product_name, line.unit_price, line.quantity)
            for line in line_items
        ]
        if tax:
            stripe_items.append(self._price_line("Tax", tax, 1))

        try:
            session = self._stripe.checkout.Session.create(
                api_key=self.api_key,
                payment_method_types=["card"],
                mode="payment",
                line_items=stripe_items,
                success_url=success_url,
                cancel_url=cancel_url,
                customer_email=customer_email,
                metadata=metadata,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout session failed: {e}")
            raise PaymentGatewayError(f"Payment processing failed: {e}") from e

        logger.info(f"Stripe session {session.id} opened for order {metadata.get('order_id')}")
        return session.url

    def parse_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """Verify a webhook signature and return the decoded event.

        Fails closed: anything that cannot be verified raises InvalidSignature.
        """
        if not signature or not self.webhook_secret:
            raise InvalidSignature()

        try:
            body = payload.decode("utf-8")
            self._stripe.WebhookSignature.verify_header(
                body, signature, self.webhook_secret, WEBHOOK_TOLERANCE_SECONDS
            )
            return json.loads(body)
        except (stripe.SignatureVerificationError, UnicodeDecodeError, ValueError) as e:
            logger.warning(f"Webhook signature rejected: {e}")
            raise InvalidSignature() from e

    def _price_line(self, name: str, unit_price: int, quantity: int) -> dict:
        return {
            "price_data": {
                "currency": self.currency,
                "product_data": {"name": name},
                "unit_amount": unit_price * 100,
            },
            "quantity": quantity,
        }


def get_payment_gateway() -> PaymentGateway:
    return PaymentGateway(
        api_key=settings.stripe_secret_key,
        webhook_secret=settings.stripe_webhook_secret,
        currency=settings.currency,
    )
