"""
Billing abstraction for Stripe and an in-memory test implementation.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Protocol

import stripe

logger = logging.getLogger(__name__)


class BillingError(Exception):
    """A call to the billing provider failed."""


class WebhookSignatureError(Exception):
    """A webhook payload did not carry a valid signature."""


class BillingClient(Protocol):
    """Defines the operations the API needs from the billing provider."""

    def create_checkout_session(
        self,
        *,
        user_id: str,
        email: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
    ) -> Mapping[str, Any]:
        ...

    def retrieve_checkout_session(self, session_id: str) -> Mapping[str, Any]:
        ...

    def retrieve_subscription(self, subscription_id: str) -> Mapping[str, Any]:
        ...

    def set_cancel_at_period_end(
        self, subscription_id: str, cancel: bool
    ) -> Mapping[str, Any]:
        ...

    def retrieve_price(self, price_id: str) -> Mapping[str, Any]:
        ...

    def construct_event(self, payload: bytes, signature: str) -> Mapping[str, Any]:
        ...


def construct_webhook_event(
    payload: bytes, signature: str, webhook_secret: str
) -> Mapping[str, Any]:
    """Verifies a Stripe-Signature header and returns the decoded event."""
    try:
        return stripe.Webhook.construct_event(payload, signature, webhook_secret)
    except (ValueError, stripe.SignatureVerificationError) as e:
        raise WebhookSignatureError(str(e)) from e


def from_timestamp(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def period_bounds(
    subscription: Mapping[str, Any],
) -> tuple[Optional[datetime], Optional[datetime]]:
    """
    Returns the current period start and end of a Stripe subscription.

    Newer API versions moved the period fields from the subscription onto
    its items, so both places are checked.
    """
    start = subscription.get("current_period_start")
    end = subscription.get("current_period_end")
    if start is None or end is None:
        items = (subscription.get("items") or {}).get("data") or []
        if items:
            start = start if start is not None else items[0].get("current_period_start")
            end = end if end is not None else items[0].get("current_period_end")
    return from_timestamp(start), from_timestamp(end)


def invoice_subscription_id(invoice: Mapping[str, Any]) -> Optional[str]:
    """Returns the subscription an invoice belongs to, if any."""
    subscription = invoice.get("subscription")
    if subscription is None:
        parent = invoice.get("parent") or {}
        details = parent.get("subscription_details") or {}
        subscription = details.get("subscription")
    if isinstance(subscription, Mapping):
        return subscription.get("id")
    return subscription


@dataclass
class StripeBillingClient:
    """Stripe-backed billing client."""

    secret_key: str
    webhook_secret: str

    def create_checkout_session(
        self,
        *,
        user_id: str,
        email: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
    ) -> Mapping[str, Any]:
        try:
            return stripe.checkout.Session.create(
                api_key=self.secret_key,
                mode="subscription",
                line_items=[{"price": price_id, "quantity": 1}],
                success_url=success_url,
                cancel_url=cancel_url,
                customer_email=email or None,
                client_reference_id=user_id,
                metadata={"user_id": user_id},
                subscription_data={"metadata": {"user_id": user_id}},
            )
        except stripe.StripeError as e:
            raise BillingError(str(e)) from e

    def retrieve_checkout_session(self, session_id: str) -> Mapping[str, Any]:
        try:
            return stripe.checkout.Session.retrieve(session_id, api_key=self.secret_key)
        except stripe.StripeError as e:
            raise BillingError(str(e)) from e

    def retrieve_subscription(self, subscription_id: str) -> Mapping[str, Any]:
        try:
            return stripe.Subscription.retrieve(subscription_id, api_key=self.secret_key)
        except stripe.StripeError as e:
            raise BillingError(str(e)) from e

    def set_cancel_at_period_end(
        self, subscription_id: str, cancel: bool
    ) -> Mapping[str, Any]:
        try:
            return stripe.Subscription.modify(
                subscription_id,
                cancel_at_period_end=cancel,
                api_key=self.secret_key,
            )
        except stripe.StripeError as e:
            raise BillingError(str(e)) from e

    def retrieve_price(self, price_id: str) -> Mapping[str, Any]:
        try:
            return stripe.Price.retrieve(price_id, api_key=self.secret_key)
        except stripe.StripeError as e:
            raise BillingError(str(e)) from e

    def construct_event(self, payload: bytes, signature: str) -> Mapping[str, Any]:
        return construct_webhook_event(payload, signature, self.webhook_secret)


@dataclass
class InMemoryBillingClient:
    """Test double for billing interactions."""

    webhook_secret: str = "whsec_test"
    checkout_base_url: str = "https://checkout.example.test"
    sessions: dict = field(default_factory=dict)
    subscriptions: dict = field(default_factory=dict)
    prices: dict = field(default_factory=dict)

    def reset(self) -> None:
        self.sessions.clear()
        self.subscriptions.clear()
        self.prices.clear()

    def add_subscription(
        self,
        subscription_id: str,
        *,
        status: str = "active",
        current_period_start: int | None = None,
        current_period_end: int | None = None,
        cancel_at_period_end: bool = False,
    ) -> dict:
        subscription = {
            "id": subscription_id,
            "object": "subscription",
            "status": status,
            "current_period_start": current_period_start,
            "current_period_end": current_period_end,
            "cancel_at_period_end": cancel_at_period_end,
        }
        self.subscriptions[subscription_id] = subscription
        return subscription

    def create_checkout_session(
        self,
        *,
        user_id: str,
        email: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
    ) -> Mapping[str, Any]:
        session_id = f"cs_test_{uuid.uuid4().hex}"
        session = {
            "id": session_id,
            "object": "checkout.session",
            "url": f"{self.checkout_base_url}/{session_id}",
            "mode": "subscription",
            "payment_status": "unpaid",
            "customer_email": email,
            "metadata": {"user_id": user_id},
            "price_id": price_id,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "subscription": None,
        }
        self.sessions[session_id] = session
        return session

    def retrieve_checkout_session(self, session_id: str) -> Mapping[str, Any]:
        session = self.sessions.get(session_id)
        if session is None:
            raise BillingError(f"No such checkout.session: {session_id}")
        return session

    def retrieve_subscription(self, subscription_id: str) -> Mapping[str, Any]:
        subscription = self.subscriptions.get(subscription_id)
        if subscription is None:
            raise BillingError(f"No such subscription: {subscription_id}")
        return subscription

    def set_cancel_at_period_end(
        self, subscription_id: str, cancel: bool
    ) -> Mapping[str, Any]:
        subscription = self.retrieve_subscription(subscription_id)
        subscription["cancel_at_period_end"] = cancel
        return subscription

    def retrieve_price(self, price_id: str) -> Mapping[str, Any]:
        price = self.prices.get(price_id)
        if price is None:
            raise BillingError(f"No such price: {price_id}")
        return price

    def construct_event(self, payload: bytes, signature: str) -> Mapping[str, Any]:
        construct_webhook_event(payload, signature, self.webhook_secret)
        # Hand back plain dicts, matching what the other in-memory calls return.
        return json.loads(payload)
