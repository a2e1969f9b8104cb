"""
Stripe webhook endpoint.

Events are verified against the endpoint signing secret and then logged. There
is no deduplication: a replayed event is logged again.
"""

from enum import Enum
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Request

from checkout.compat import get_field
from checkout.config import Settings
from checkout.dependencies import app_settings, get_gateway
from checkout.logging import CheckoutEvents
from checkout.stripe_service import GatewayError, StripeGateway

log = structlog.get_logger(__name__)

router = APIRouter()


class WebhookEventType(str, Enum):
    PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"
    PAYMENT_INTENT_FAILED = "payment_intent.payment_failed"
    PAYMENT_METHOD_ATTACHED = "payment_method.attached"
    CUSTOMER_CREATED = "customer.created"
    CHARGE_REFUNDED = "charge.refunded"

    @classmethod
    def parse(cls, event_type: str) -> Optional["WebhookEventType"]:
        try:
            return cls(event_type)
        except ValueError:
            return None


HANDLED_EVENT_MESSAGES = {
    WebhookEventType.PAYMENT_INTENT_SUCCEEDED: "PaymentIntent succeeded",
    WebhookEventType.PAYMENT_INTENT_FAILED: "PaymentIntent failed",
    WebhookEventType.PAYMENT_METHOD_ATTACHED: "PaymentMethod attached",
    WebhookEventType.CUSTOMER_CREATED: "Customer created",
    WebhookEventType.CHARGE_REFUNDED: "Charge refunded",
}


def dispatch_event(event) -> Optional[WebhookEventType]:
    """Log a verified event. Returns the matched type, or None for unhandled types."""
    raw_type = get_field(event, "type")
    event_type = WebhookEventType.parse(raw_type)

    if event_type is None:
        log.info(CheckoutEvents.WEBHOOK_UNHANDLED, event_type=raw_type)
        return None

    obj = get_field(get_field(event, "data"), "object")
    log.info(
        CheckoutEvents.WEBHOOK_RECEIVED,
        event_type=event_type.value,
        object_id=get_field(obj, "id"),
        detail=HANDLED_EVENT_MESSAGES[event_type],
    )
    return event_type


@router.post("/stripe/webhooks")
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(None),
    settings: Settings = Depends(app_settings),
    gateway: StripeGateway = Depends(get_gateway),
):
    webhook_secret = settings.STRIPE_WEBHOOK_SECRET
    if not webhook_secret:
        log.error(CheckoutEvents.WEBHOOK_SECRET_MISSING)
        raise HTTPException(status_code=500, detail="Webhook secret not configured")

    payload = await request.body()

    try:
        event = gateway.construct_webhook_event(payload, stripe_signature, webhook_secret)
    except GatewayError as e:
        log.warning(CheckoutEvents.WEBHOOK_VERIFICATION_FAILED, error=str(e))
        raise HTTPException(status_code=400, detail="Webhook signature verification failed")

    try:
        dispatch_event(event)
    except Exception:
        log.exception(CheckoutEvents.WEBHOOK_HANDLER_FAILED)
        raise HTTPException(status_code=500, detail="Webhook handler error")

    return {"received": True}
