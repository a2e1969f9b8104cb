"""
Legacy gateway compatibility layer.

The checkout pages were written against a Braintree-style gateway. This module
presents Stripe payment intents in that shape: legacy status names, amounts as
two-decimal strings, and a success/errors result container for sales.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from checkout.stripe_service import GatewayError, StripeGateway


STATUS_MAP = {
    "requires_payment_method": "Authorizing",
    "requires_confirmation": "Authorizing",
    "requires_action": "Authorizing",
    "processing": "SubmittedForSettlement",
    "requires_capture": "Authorized",
    "canceled": "Voided",
    "succeeded": "Settled",
}


def map_status(stripe_status: str) -> str:
    """Translate a payment intent status; unknown statuses are returned unchanged."""
    return STATUS_MAP.get(stripe_status, stripe_status)


def get_field(obj: Any, key: str, default=None):
    """Read a field from a Stripe object, a plain dict or an attribute holder."""
    if obj is None:
        return default
    try:
        value = obj[key]
    except KeyError:
        return default
    except (TypeError, IndexError):
        return getattr(obj, key, default)
    return default if value is None else value


def as_dict(value) -> Optional[dict]:
    # StripeObject stopped subclassing dict in stripe 13
    if value is None or isinstance(value, dict):
        return value
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return dict(value)


def format_amount(minor_units: Optional[int]) -> str:
    return str((Decimal(minor_units or 0) / 100).quantize(Decimal("0.01")))


def _created_at(timestamp: Optional[int]) -> Optional[datetime]:
    if timestamp is None:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def _payment_method_details(payment_intent) -> Optional[dict]:
    # Older API versions embed charges, newer ones expose latest_charge
    charges = get_field(get_field(payment_intent, "charges"), "data") or []
    if charges:
        return get_field(charges[0], "payment_method_details")
    latest_charge = get_field(payment_intent, "latest_charge")
    if latest_charge is not None and not isinstance(latest_charge, str):
        return get_field(latest_charge, "payment_method_details")
    return None


@dataclass
class LegacyTransaction:
    id: str
    status: str
    amount: str
    currency: Optional[str]
    created: Optional[datetime] = None
    payment_method_details: Optional[dict] = None
    customer: Optional[str] = None
    metadata: dict = field(default_factory=dict)

    @property
    def card(self) -> Optional[dict]:
        return get_field(self.payment_method_details, "card")

    @classmethod
    def from_payment_intent(cls, payment_intent, map_statuses: bool = True) -> "LegacyTransaction":
        status = get_field(payment_intent, "status")
        return cls(
            id=get_field(payment_intent, "id"),
            status=map_status(status) if map_statuses else status,
            amount=format_amount(get_field(payment_intent, "amount")),
            currency=get_field(payment_intent, "currency"),
            created=_created_at(get_field(payment_intent, "created")),
            payment_method_details=as_dict(_payment_method_details(payment_intent)),
            customer=get_field(payment_intent, "customer"),
            metadata=as_dict(get_field(payment_intent, "metadata")) or {},
        )


@dataclass
class SaleResult:
    success: bool
    transaction: Optional[LegacyTransaction] = None
    errors: list = field(default_factory=list)

    def deep_errors(self) -> list:
        return self.errors


def find_transaction(gateway: StripeGateway, transaction_id: str) -> LegacyTransaction:
    """Look up a payment intent and return it as a legacy transaction."""
    try:
        payment_intent = gateway.retrieve_payment_intent(
            transaction_id, expand=["latest_charge"]
        )
    except GatewayError as e:
        raise GatewayError(f"Transaction not found: {e}") from e
    return LegacyTransaction.from_payment_intent(payment_intent)


def sale(gateway: StripeGateway, amount) -> SaleResult:
    """
    Start a sale the way the legacy gateway did.

    Stripe confirms client-side, so the transaction carries the raw intent
    status rather than a settled one.
    """
    try:
        payment_intent = gateway.create_payment_intent(amount)
    except GatewayError as e:
        return SaleResult(
            success=False,
            errors=[{"code": "PAYMENT_FAILED", "message": str(e)}],
        )
    return SaleResult(
        success=True,
        transaction=LegacyTransaction.from_payment_intent(payment_intent, map_statuses=False),
    )


def generate_client_token(gateway: StripeGateway) -> dict:
    # Stripe has no client tokens; the publishable key plays that role
    return {"clientToken": gateway.get_publishable_key()}
