"""
Stripe gateway adapter

Thin wrapper around the Stripe SDK used by the checkout routes:
- payment intents and hosted checkout sessions
- customers and saved payment methods
- refunds
- webhook signature verification

Every SDK failure is re-raised as GatewayError prefixed with the name of the
operation that failed, so callers can log the detail and show a generic message.
"""

from contextlib import contextmanager
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

import stripe
import structlog

from checkout.logging import CheckoutEvents

log = structlog.get_logger(__name__)


class GatewayError(Exception):
    pass


def to_minor_units(amount) -> int:
    """Convert a major-unit amount (dollars) to Stripe's integer cents, rounding half up."""
    cents = Decimal(str(amount)) * 100
    return int(cents.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@contextmanager
def _wrap_errors(operation: str):
    try:
        yield
    except GatewayError:
        raise
    except Exception as e:
        log.warning(CheckoutEvents.GATEWAY_ERROR, operation=operation, error=str(e))
        raise GatewayError(f"{operation} failed: {e}") from e


class StripeGateway:
    def __init__(self, api_key: str, publishable_key: str, currency: str = "usd"):
        self.api_key = api_key
        self.publishable_key = publishable_key
        self.currency = currency

    def get_publishable_key(self) -> str:
        return self.publishable_key

    # Payment intents

    def create_payment_intent(self, amount, currency: Optional[str] = None):
        with _wrap_errors("Payment intent creation"):
            return stripe.PaymentIntent.create(
                api_key=self.api_key,
                amount=to_minor_units(amount),
                currency=currency or self.currency,
                automatic_payment_methods={"enabled": True},
            )

    def retrieve_payment_intent(self, payment_intent_id: str, expand: Optional[list] = None):
        params: dict[str, Any] = {}
        if expand:
            params["expand"] = expand
        with _wrap_errors("Payment intent retrieval"):
            return stripe.PaymentIntent.retrieve(
                payment_intent_id, api_key=self.api_key, **params
            )

    def confirm_payment_intent(self, payment_intent_id: str, payment_method_id: str):
        with _wrap_errors("Payment confirmation"):
            return stripe.PaymentIntent.confirm(
                payment_intent_id,
                api_key=self.api_key,
                payment_method=payment_method_id,
            )

    def create_payment_intent_with_customer(
        self,
        amount,
        customer_id: str,
        payment_method_id: Optional[str] = None,
        currency: Optional[str] = None,
    ):
        """Create an intent for a saved customer; with a payment method it is confirmed immediately."""
        params: dict[str, Any] = {
            "currency": currency or self.currency,
            "customer": customer_id,
            "payment_method_types": ["card", "paypal"],
            "automatic_payment_methods": {"enabled": False},
        }
        if payment_method_id:
            params["payment_method"] = payment_method_id
            params["confirm"] = True

        with _wrap_errors("Payment intent with customer creation"):
            params["amount"] = to_minor_units(amount)
            return stripe.PaymentIntent.create(api_key=self.api_key, **params)

    # Hosted checkout

    def create_checkout_session(self, amount, success_url: str, cancel_url: str):
        with _wrap_errors("Checkout session creation"):
            return stripe.checkout.Session.create(
                api_key=self.api_key,
                payment_method_types=["card"],
                line_items=[
                    {
                        "price_data": {
                            "currency": self.currency,
                            "product_data": {"name": "Payment"},
                            "unit_amount": to_minor_units(amount),
                        },
                        "quantity": 1,
                    }
                ],
                mode="payment",
                success_url=success_url,
                cancel_url=cancel_url,
            )

    def retrieve_session(self, session_id: str):
        with _wrap_errors("Session retrieval"):
            return stripe.checkout.Session.retrieve(session_id, api_key=self.api_key)

    # Webhooks

    def construct_webhook_event(self, payload: bytes, signature: Optional[str], webhook_secret: str):
        with _wrap_errors("Webhook signature verification"):
            return stripe.Webhook.construct_event(payload, signature, webhook_secret)

    # Customers

    def create_customer(self, email: str, name: Optional[str] = None, metadata: Optional[dict] = None):
        params: dict[str, Any] = {"email": email, "metadata": metadata or {}}
        if name:
            params["name"] = name
        with _wrap_errors("Customer creation"):
            return stripe.Customer.create(api_key=self.api_key, **params)

    def retrieve_customer(self, customer_id: str):
        with _wrap_errors("Customer retrieval"):
            return stripe.Customer.retrieve(customer_id, api_key=self.api_key)

    def update_customer(self, customer_id: str, **updates):
        with _wrap_errors("Customer update"):
            return stripe.Customer.modify(customer_id, api_key=self.api_key, **updates)

    # Payment methods

    def attach_payment_method(self, payment_method_id: str, customer_id: str):
        with _wrap_errors("Payment method attachment"):
            return stripe.PaymentMethod.attach(
                payment_method_id, api_key=self.api_key, customer=customer_id
            )

    def list_payment_methods(self, customer_id: str, type: str = "card"):
        with _wrap_errors("Payment method listing"):
            payment_methods = stripe.PaymentMethod.list(
                api_key=self.api_key, customer=customer_id, type=type
            )
            return payment_methods.data

    def detach_payment_method(self, payment_method_id: str):
        with _wrap_errors("Payment method detachment"):
            return stripe.PaymentMethod.detach(payment_method_id, api_key=self.api_key)

    def set_default_payment_method(self, customer_id: str, payment_method_id: str):
        with _wrap_errors("Setting default payment method"):
            return stripe.Customer.modify(
                customer_id,
                api_key=self.api_key,
                invoice_settings={"default_payment_method": payment_method_id},
            )

    # Refunds

    def create_refund(self, payment_intent_id: str, amount=None, reason: str = "requested_by_customer"):
        """Refund a payment intent, in full unless a major-unit amount is given."""
        params: dict[str, Any] = {"payment_intent": payment_intent_id, "reason": reason}
        with _wrap_errors("Refund creation"):
            if amount is not None:
                params["amount"] = to_minor_units(amount)
            return stripe.Refund.create(api_key=self.api_key, **params)

    def retrieve_refund(self, refund_id: str):
        with _wrap_errors("Refund retrieval"):
            return stripe.Refund.retrieve(refund_id, api_key=self.api_key)

    def list_refunds(self, payment_intent_id: Optional[str] = None, limit: int = 10):
        params: dict[str, Any] = {"limit": limit}
        if payment_intent_id:
            params["payment_intent"] = payment_intent_id
        with _wrap_errors("Refund listing"):
            return stripe.Refund.list(api_key=self.api_key, **params).data

    def update_refund(self, refund_id: str, metadata: dict):
        with _wrap_errors("Refund update"):
            return stripe.Refund.modify(refund_id, api_key=self.api_key, metadata=metadata)
