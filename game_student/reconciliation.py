"""
Reconciliation between local payments and Stripe PaymentIntents.

Authorizing calls Stripe first and writes the local row second, and webhook
deliveries can be lost, so the two sides can drift:

- a local payment stuck in a non-terminal status while Stripe moved on
- a PaymentIntent created by ``authorize`` with no local row at all

``reconcile`` fixes both, using Stripe as the source of truth.
"""
import logging
from datetime import datetime
from typing import Dict

from game_student.errors import GatewayError, NotFoundError
from game_student.store import Store
from game_student.stripe_service import StripeGateway, payment_method_id

logger = logging.getLogger(__name__)


def sync_pending_statuses(store: Store, gateway: StripeGateway) -> Dict[str, int]:
    checked = updated = errors = 0

    for payment in store.get_pending_payments():
        checked += 1
        intent_id = payment.stripe_payment_intent_id
        try:
            intent = gateway.retrieve_payment_intent(intent_id)
        except GatewayError as e:
            errors += 1
            logger.error("Could not fetch payment intent %s: %s", intent_id, e)
            continue

        if intent.status != payment.status:
            store.update_payment_status(intent_id, intent.status)
            updated += 1
            logger.info("Payment %s: %s -> %s", intent_id, payment.status, intent.status)

    return {"checked": checked, "updated": updated, "errors": errors}


def restore_orphaned_intents(store: Store, gateway: StripeGateway, since: datetime) -> Dict[str, int]:
    restored = skipped = 0

    for intent in gateway.list_payment_intents(since):
        metadata = getattr(intent, "metadata", None) or {}
        user_id = metadata.get("user_id")
        if not user_id:
            # Not created by authorize
            skipped += 1
            continue

        try:
            store.get_payment(intent.id)
            continue
        except NotFoundError:
            pass

        try:
            store.get_user_by_id(int(user_id))
        except (NotFoundError, ValueError):
            logger.warning("Payment intent %s references unknown user %s", intent.id, user_id)
            skipped += 1
            continue

        store.add_payment(
            intent.id,
            payment_method_id(intent),
            int(user_id),
            intent.amount,
            intent.currency,
            intent.status,
        )
        restored += 1
        logger.info("Restored orphaned payment intent %s for user %s", intent.id, user_id)

    return {"restored": restored, "skipped": skipped}


def reconcile(store: Store, gateway: StripeGateway, since: datetime) -> Dict[str, int]:
    summary = {}
    summary.update(sync_pending_statuses(store, gateway))
    summary.update(restore_orphaned_intents(store, gateway, since))
    logger.info("Reconciliation finished: %s", summary)
    return summary
