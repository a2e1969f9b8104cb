from pathlib import Path
from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from checkout.compat import find_transaction
from checkout.dependencies import get_gateway
from checkout.logging import CheckoutEvents
from checkout.results import Notice, build_result, resolve_notices
from checkout.stripe_service import GatewayError, StripeGateway

log = structlog.get_logger(__name__)

templates = Jinja2Templates(directory=Path(__file__).resolve().parent / "templates")

router = APIRouter()

PAYMENT_INTENT_ERROR = "Payment intent creation failed. Please try again."


class PaymentIntentRequest(BaseModel):
    # any JSON value; the gateway rejects amounts it cannot convert
    amount: Optional[Any] = None


def redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=302)


@router.get("/")
def index():
    return redirect("/checkouts/new")


@router.get("/checkouts/new")
def new_checkout(
    request: Request,
    error: Optional[str] = None,
    status: Optional[str] = None,
    gateway: StripeGateway = Depends(get_gateway),
):
    return templates.TemplateResponse(
        request,
        "checkouts/new.html",
        {
            "client_token": gateway.get_publishable_key(),
            "messages": resolve_notices(error, status),
            "amount": "10",
        },
    )


@router.get("/checkouts/complete")
def checkout_complete(
    payment_intent: Optional[str] = None,
    redirect_status: Optional[str] = None,
):
    log.info(
        CheckoutEvents.CHECKOUT_COMPLETE,
        payment_intent=payment_intent,
        redirect_status=redirect_status,
    )
    if redirect_status == "succeeded" and payment_intent:
        return redirect(f"/checkouts/{payment_intent}")
    return redirect(Notice.PAYMENT_NOT_COMPLETED.location())


@router.get("/checkouts/{transaction_id}")
async def show_checkout(
    request: Request,
    transaction_id: str,
    gateway: StripeGateway = Depends(get_gateway),
):
    try:
        transaction = await run_in_threadpool(find_transaction, gateway, transaction_id)
    except GatewayError as e:
        log.warning(
            CheckoutEvents.TRANSACTION_LOOKUP_FAILED,
            transaction_id=transaction_id,
            error=str(e),
        )
        return redirect(Notice.TRANSACTION_NOT_FOUND.location())

    return templates.TemplateResponse(
        request,
        "checkouts/show.html",
        {"transaction": transaction, "result": build_result(transaction.status)},
    )


@router.post("/api/create-payment-intent")
async def create_payment_intent(
    request: Request,
    gateway: StripeGateway = Depends(get_gateway),
):
    body = PaymentIntentRequest.model_validate(await _read_json(request))
    if body.amount is None:
        log.warning(CheckoutEvents.PAYMENT_INTENT_CREATE_FAILED, error="amount missing")
        return JSONResponse({"error": PAYMENT_INTENT_ERROR}, status_code=400)

    try:
        intent = await run_in_threadpool(gateway.create_payment_intent, body.amount)
    except GatewayError as e:
        log.error(CheckoutEvents.PAYMENT_INTENT_CREATE_FAILED, amount=body.amount, error=str(e))
        return JSONResponse({"error": PAYMENT_INTENT_ERROR}, status_code=400)

    log.info(CheckoutEvents.PAYMENT_INTENT_CREATE, amount=body.amount, payment_intent_id=intent.id)
    return {"clientSecret": intent.client_secret, "paymentIntentId": intent.id}


async def _read_json(request: Request) -> dict:
    """Request body as a JSON object; anything unparseable counts as empty."""
    try:
        data = await request.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


async def _read_payment_intent_id(request: Request) -> Optional[str]:
    if request.headers.get("content-type", "").startswith("application/json"):
        data = await _read_json(request)
        return data.get("payment_intent_id")

    form = await request.form()
    return form.get("payment_intent_id")


@router.post("/checkouts")
async def create_checkout(
    request: Request,
    gateway: StripeGateway = Depends(get_gateway),
):
    payment_intent_id = await _read_payment_intent_id(request)
    if not payment_intent_id:
        return redirect(Notice.PAYMENT_INTENT_REQUIRED.location())

    try:
        intent = await run_in_threadpool(gateway.retrieve_payment_intent, payment_intent_id)
    except GatewayError as e:
        log.error(
            CheckoutEvents.CHECKOUT_FAILED,
            payment_intent_id=payment_intent_id,
            error=str(e),
        )
        return redirect(Notice.PROCESSING_FAILED.location())

    if intent.status == "succeeded":
        return redirect(f"/checkouts/{payment_intent_id}")
    if intent.status in ("requires_action", "requires_confirmation"):
        return redirect(Notice.REQUIRES_VERIFICATION.location())
    return redirect(Notice.PAYMENT_FAILED.location(status=intent.status))
