"""
Stripe webhook endpoint.

Keeps local Payment statuses in sync with the PaymentIntent lifecycle and
records cards confirmed through a SetupIntent. Status writes are plain
overwrites, so replayed events and races with the capture endpoint settle
on whatever Stripe reported last.
"""
import logging
from typing import Optional

import stripe
from fastapi import APIRouter, Depends, Header, HTTPException, Request
from starlette.concurrency import run_in_threadpool

from game_student.deps import get_settings, get_store
from game_student.config import Settings
from game_student.store import Store
from game_student.stripe_service import construct_event

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_BODY_BYTES = 65536

INTENT_STATUS_EVENTS = {
    "payment_intent.succeeded": "succeeded",
    "payment_intent.captured": "succeeded",
    "payment_intent.canceled": "canceled",
}
INTENT_FAILED_EVENT = "payment_intent.payment_failed"
SETUP_SUCCEEDED_EVENT = "setup_intent.succeeded"


async def read_capped_body(request: Request, limit: int = MAX_BODY_BYTES) -> bytes:
    body = b""
    async for chunk in request.stream():
        body += chunk
        if len(body) > limit:
            raise HTTPException(status_code=413, detail="Request body too large")
    return body


def is_well_formed(event: dict) -> bool:
    """Check the parts of the event envelope that ``apply_event`` reads."""
    event_type = event.get("type")
    data = event.get("data")
    if not isinstance(event_type, str) or not isinstance(data, dict):
        return False

    obj = data.get("object")
    if not isinstance(obj, dict):
        return False

    if event_type in INTENT_STATUS_EVENTS or event_type == INTENT_FAILED_EVENT:
        return isinstance(obj.get("id"), str) and bool(obj["id"])
    return True


def apply_event(event, store: Store) -> str:
    """Apply one webhook event to the store and return what was done."""
    event_type = event["type"]
    obj = event["data"]["object"]

    if event_type in INTENT_STATUS_EVENTS or event_type == INTENT_FAILED_EVENT:
        if event_type == INTENT_FAILED_EVENT:
            status = "failed"
        else:
            status = obj.get("status") or INTENT_STATUS_EVENTS[event_type]

        payment = store.get_payment(obj["id"])
        if payment.status == status:
            logger.info("Payment %s already %s, nothing to do", payment.stripe_payment_intent_id, status)
            return "unchanged"

        store.update_payment_status(payment.stripe_payment_intent_id, status)
        logger.info("Payment %s: %s -> %s (%s)",
                    payment.stripe_payment_intent_id, payment.status, status, event_type)
        return "updated"

    if event_type == SETUP_SUCCEEDED_EVENT:
        pm = obj.get("payment_method")
        if isinstance(pm, dict):
            pm = pm.get("id")
        customer = obj.get("customer")
        if not pm or not customer:
            raise HTTPException(status_code=400, detail="setup intent without customer or payment method")

        user = store.get_user_by_stripe_id(customer)
        card = store.add_card(user.id, pm)
        logger.info("Card %s stored for user %s from setup intent %s", card.id, user.id, obj.get("id"))
        return "card_added"

    logger.info("Unhandled event type: %s", event_type)
    return "ignored"


@router.post("/stripe/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    store: Store = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    payload = await read_capped_body(request)

    try:
        event = construct_event(payload, stripe_signature, settings.stripe_webhook_secret)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid payload")
    except stripe.SignatureVerificationError:
        logger.warning("Webhook with invalid signature rejected")
        raise HTTPException(status_code=400, detail="Invalid signature")

    if not is_well_formed(event):
        raise HTTPException(status_code=400, detail="Invalid payload")

    result = await run_in_threadpool(apply_event, event, store)
    return {"ok": True, "result": result}
