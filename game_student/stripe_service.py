"""
Thin wrapper over the Stripe SDK.

The API key is passed on every call instead of being set on the ``stripe``
module, so several gateways (or none, in tests) can live in one process.
Every ``stripe.StripeError`` is re-raised as ``GatewayError``; nothing here
retries.
"""
import json
import logging
from datetime import datetime
from typing import Dict, List, Optional

import stripe

from game_student.errors import GatewayError

logger = logging.getLogger(__name__)


def payment_method_id(intent) -> Optional[str]:
    """PaymentIntent.payment_method is an id unless it was expanded."""
    pm = getattr(intent, "payment_method", None)
    if pm is None or isinstance(pm, str):
        return pm
    return pm.id


class StripeGateway:

    def __init__(self, api_key: str, api_version: str = "2023-10-16",
                 fee_percent: int = 20, fee_destination: str = ""):
        self.api_key = api_key
        self.api_version = api_version
        self.fee_percent = fee_percent
        self.fee_destination = fee_destination

    def _call(self, action: str, func, *args, **kwargs):
        try:
            return func(*args, api_key=self.api_key, **kwargs)
        except stripe.StripeError as e:
            logger.error("Stripe call failed while %s: %s", action, e)
            raise GatewayError(f"{action}: {e.user_message or e}") from e

    def application_fee(self, amount: int) -> int:
        return amount * self.fee_percent // 100

    def create_customer(self, email: str):
        return self._call("creating customer", stripe.Customer.create, email=email)

    def create_ephemeral_key(self, customer_id: str):
        return self._call(
            "creating ephemeral key",
            stripe.EphemeralKey.create,
            customer=customer_id,
            stripe_version=self.api_version,
        )

    def create_setup_intent(self, customer_id: str, user_id: int):
        return self._call(
            "creating setup intent",
            stripe.SetupIntent.create,
            customer=customer_id,
            metadata={"user_id": str(user_id)},
        )

    def list_cards(self, customer_id: str) -> List[Dict]:
        methods = self._call(
            "listing payment methods",
            stripe.PaymentMethod.list,
            customer=customer_id,
            type="card",
        )
        try:
            return [
                {
                    "id": pm.id,
                    "brand": pm.card.brand,
                    "last_four": pm.card.last4,
                    "exp_month": pm.card.exp_month,
                    "exp_year": pm.card.exp_year,
                }
                for pm in methods.auto_paging_iter()
            ]
        except stripe.StripeError as e:
            raise GatewayError(f"listing payment methods: {e}") from e

    def create_payment_intent(self, amount: int, currency: str, payment_method: str,
                              customer_id: str, user_id: int, description: str = ""):
        """
        Authorize ``amount`` on a stored card without moving funds.

        Confirmation and capture are both manual: the intent is confirmed
        here and ends in ``requires_capture`` when the card was authorized.
        """
        params = dict(
            amount=amount,
            currency=currency,
            customer=customer_id,
            payment_method=payment_method,
            confirm=True,
            confirmation_method="manual",
            capture_method="manual",
            metadata={"user_id": str(user_id)},
        )
        if description:
            params["description"] = description
        if self.fee_destination:
            params["application_fee_amount"] = self.application_fee(amount)
            params["transfer_data"] = {"destination": self.fee_destination}

        return self._call("creating payment intent", stripe.PaymentIntent.create, **params)

    def retrieve_payment_intent(self, intent_id: str):
        return self._call("retrieving payment intent", stripe.PaymentIntent.retrieve, intent_id)

    def capture_payment_intent(self, intent_id: str, amount: Optional[int] = None):
        params = {}
        if amount is not None:
            params["amount_to_capture"] = amount
        return self._call("capturing payment intent", stripe.PaymentIntent.capture, intent_id, **params)

    def list_payment_intents(self, created_since: datetime):
        intents = self._call(
            "listing payment intents",
            stripe.PaymentIntent.list,
            created={"gte": int(created_since.timestamp())},
        )
        try:
            return list(intents.auto_paging_iter())
        except stripe.StripeError as e:
            raise GatewayError(f"listing payment intents: {e}") from e


def construct_event(payload: bytes, signature: Optional[str], webhook_secret: str):
    """
    Parse a webhook payload.

    With a webhook secret the ``Stripe-Signature`` header is verified
    (raises ``stripe.SignatureVerificationError``). Without one the payload
    is trusted as-is. Malformed JSON raises ``ValueError`` in both cases.

    The event is always returned as plain dicts decoded from the payload,
    never as a ``stripe.Event``.
    """
    if webhook_secret:
        if not signature:
            raise stripe.SignatureVerificationError("No Stripe-Signature header", signature)
        stripe.Webhook.construct_event(payload, signature, webhook_secret)
    else:
        logger.warning("STRIPE_WEBHOOK_SECRET is not set, webhook payload is not verified")

    event = json.loads(payload)
    if not isinstance(event, dict):
        raise ValueError("webhook payload is not a JSON object")
    return event
