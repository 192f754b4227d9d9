"""
Keeps subscription rows in sync with billing-provider webhook events.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional

from backend.billing import BillingClient, invoice_subscription_id, period_bounds
from backend.db import DbClient
from shared.types import Plan, SubscriptionStatus

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
SUBSCRIPTION_UPDATED = "customer.subscription.updated"
SUBSCRIPTION_DELETED = "customer.subscription.deleted"
INVOICE_PAYMENT_SUCCEEDED = "invoice.payment_succeeded"
INVOICE_PAID = "invoice.paid"
INVOICE_PAYMENT_PAID = "invoice.payment_paid"
INVOICE_PAYMENT_FAILED = "invoice.payment_failed"


class WebhookError(Exception):
    """An event was well-formed but is missing data we need."""


def _object_id(value: Any) -> Optional[str]:
    # Stripe fields hold either an id or the expanded object.
    if isinstance(value, Mapping):
        return value.get("id")
    return value


def _period_fields(subscription: Mapping[str, Any]) -> dict:
    start, end = period_bounds(subscription)
    fields = {}
    if start is not None:
        fields["current_period_start"] = start
    if end is not None:
        fields["current_period_end"] = end
    return fields


def _handle_checkout_completed(
    session: Mapping[str, Any], db: DbClient, billing: BillingClient
) -> None:
    user_id = (session.get("metadata") or {}).get("user_id")
    subscription_id = _object_id(session.get("subscription"))
    logger.info(
        "Checkout session completed: session=%s user=%s customer=%s subscription=%s",
        session.get("id"),
        user_id,
        _object_id(session.get("customer")),
        subscription_id,
    )
    if not user_id:
        raise WebhookError("No user_id")
    if not subscription_id:
        raise WebhookError("No subscription ID")

    subscription = billing.retrieve_subscription(subscription_id)
    db.upsert_subscription(
        user_id,
        stripe_customer_id=_object_id(session.get("customer")),
        stripe_subscription_id=subscription_id,
        status=SubscriptionStatus.ACTIVE,
        plan=Plan.PREMIUM,
        cancel_at_period_end=bool(subscription.get("cancel_at_period_end")),
        **_period_fields(subscription),
    )
    logger.info("Subscription created for user %s", user_id)


def _handle_subscription_updated(
    subscription: Mapping[str, Any], db: DbClient, billing: BillingClient
) -> None:
    record = db.update_subscription_by_stripe_id(
        subscription["id"],
        status=subscription.get("status") or SubscriptionStatus.INACTIVE,
        cancel_at_period_end=bool(subscription.get("cancel_at_period_end")),
        **_period_fields(subscription),
    )
    if record:
        logger.info("Subscription updated for user %s", record.user_id)
    else:
        logger.info("No stored subscription matches %s", subscription["id"])


def _handle_subscription_deleted(
    subscription: Mapping[str, Any], db: DbClient, billing: BillingClient
) -> None:
    record = db.update_subscription_by_stripe_id(
        subscription["id"], status=SubscriptionStatus.CANCELED
    )
    if record:
        logger.info("Subscription canceled for user %s", record.user_id)
    else:
        logger.info("No stored subscription matches %s", subscription["id"])


def _handle_invoice_paid(
    invoice: Mapping[str, Any], db: DbClient, billing: BillingClient
) -> None:
    subscription_id = invoice_subscription_id(invoice)
    if not subscription_id:
        return
    record = db.update_subscription_by_stripe_id(
        subscription_id, status=SubscriptionStatus.ACTIVE, plan=Plan.PREMIUM
    )
    if record:
        logger.info("Payment succeeded for user %s", record.user_id)
    else:
        logger.info("No existing subscription found for invoice %s", invoice.get("id"))


def _handle_invoice_failed(
    invoice: Mapping[str, Any], db: DbClient, billing: BillingClient
) -> None:
    subscription_id = invoice_subscription_id(invoice)
    if not subscription_id:
        return
    record = db.update_subscription_by_stripe_id(
        subscription_id, status=SubscriptionStatus.PAST_DUE
    )
    if record:
        logger.info("Payment failed for user %s", record.user_id)


EVENT_HANDLERS: dict[
    str, Callable[[Mapping[str, Any], DbClient, BillingClient], None]
] = {
    CHECKOUT_COMPLETED: _handle_checkout_completed,
    SUBSCRIPTION_UPDATED: _handle_subscription_updated,
    SUBSCRIPTION_DELETED: _handle_subscription_deleted,
    INVOICE_PAYMENT_SUCCEEDED: _handle_invoice_paid,
    INVOICE_PAID: _handle_invoice_paid,
    INVOICE_PAYMENT_PAID: _handle_invoice_paid,
    INVOICE_PAYMENT_FAILED: _handle_invoice_failed,
}


def handle_webhook_event(
    event: Mapping[str, Any], db: DbClient, billing: BillingClient
) -> bool:
    """
    Applies a verified billing event to the stored subscriptions.

    Args:
        event: The decoded event.
        db (DbClient): Subscription storage.
        billing (BillingClient): Used to look up the full subscription on
            checkout completion.

    Returns:
        bool: True if the event type is handled, False if it was ignored.

    Raises:
        WebhookError: If a checkout event lacks the user or subscription id.
    """
    event_type = event.get("type")
    logger.info("Received billing webhook: %s", event_type)
    handler = EVENT_HANDLERS.get(event_type)
    if handler is None:
        logger.info("Unhandled event type: %s", event_type)
        return False
    handler(event["data"]["object"], db, billing)
    return True
