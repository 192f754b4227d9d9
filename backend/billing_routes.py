"""
HTTP routes for checkout, subscription management, and billing webhooks.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool

from backend.auth import AuthUser
from backend.billing import BillingClient, BillingError, WebhookSignatureError, period_bounds
from backend.config import get_settings
from backend.db import DbClient
from backend.dependencies import (
    get_billing_client,
    get_current_user,
    get_db_client,
    require_admin,
)
from backend.schemas import (
    BillingStatusResponse,
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    PriceDetails,
    SuccessResponse,
    VerifySessionRequest,
    WebhookResponse,
)
from backend.subscriptions import WebhookError, handle_webhook_event
from shared.types import SubscriptionStatus

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/create-checkout-session", response_model=CheckoutSessionResponse)
def create_checkout_session(
    payload: CheckoutSessionRequest,
    user: AuthUser = Depends(get_current_user),
    billing: BillingClient = Depends(get_billing_client),
):
    settings = get_settings()
    if not settings.stripe_price_id:
        raise HTTPException(status_code=500, detail="Stripe price is not configured")

    locale = payload.locale or "en"
    app_url = settings.app_url.rstrip("/")
    try:
        session = billing.create_checkout_session(
            user_id=user.id,
            email=user.email,
            price_id=settings.stripe_price_id,
            success_url=f"{app_url}/{locale}/success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{app_url}/{locale}/upgrade",
        )
    except BillingError as e:
        logger.error("Error creating checkout session for %s: %s", user.id, e)
        raise HTTPException(
            status_code=500, detail="Failed to create checkout session"
        ) from e
    logger.info("Created checkout session %s for user %s", session["id"], user.id)
    return CheckoutSessionResponse(session_id=session["id"], url=session.get("url"))


@router.post("/verify-session", response_model=SuccessResponse)
def verify_session(
    payload: VerifySessionRequest,
    billing: BillingClient = Depends(get_billing_client),
    db: DbClient = Depends(get_db_client),
):
    """
    Confirms a checkout session was paid.

    The webhook is what writes the subscription; a missing row only means
    it has not arrived yet.
    """
    if not payload.session_id:
        raise HTTPException(status_code=400, detail="Session ID is required")
    try:
        session = billing.retrieve_checkout_session(payload.session_id)
    except BillingError as e:
        logger.error("Error verifying session %s: %s", payload.session_id, e)
        raise HTTPException(status_code=500, detail="Failed to verify session") from e

    if session.get("payment_status") != "paid":
        raise HTTPException(status_code=400, detail="Payment not completed")

    subscription = session.get("subscription")
    if isinstance(subscription, dict):
        subscription = subscription.get("id")
    if subscription and not db.get_subscription_by_stripe_id(subscription):
        logger.info(
            "Subscription %s not stored yet, webhook might not have processed",
            subscription,
        )
    return SuccessResponse(success=True)


@router.post("/cancel-subscription", response_model=SuccessResponse)
def cancel_subscription(
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    billing: BillingClient = Depends(get_billing_client),
):
    record = db.get_subscription(user.id)
    if not record or record.status != SubscriptionStatus.ACTIVE:
        raise HTTPException(status_code=404, detail="No active subscription found")
    if not record.stripe_subscription_id:
        raise HTTPException(status_code=400, detail="No Stripe subscription ID found")

    try:
        subscription = billing.set_cancel_at_period_end(
            record.stripe_subscription_id, True
        )
    except BillingError as e:
        logger.error("Error canceling subscription for %s: %s", user.id, e)
        raise HTTPException(
            status_code=500, detail="Failed to cancel subscription"
        ) from e

    _, period_end = period_bounds(subscription)
    fields = {"cancel_at_period_end": True}
    if period_end is not None:
        fields["current_period_end"] = period_end
    db.upsert_subscription(user.id, **fields)
    logger.info("Subscription %s set to cancel at period end", record.stripe_subscription_id)
    return SuccessResponse(
        success=True,
        message=(
            "Subscription canceled successfully. You will retain access until "
            "the end of your billing period."
        ),
    )


@router.post("/reactivate-subscription", response_model=SuccessResponse)
def reactivate_subscription(
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    billing: BillingClient = Depends(get_billing_client),
):
    record = db.get_subscription(user.id)
    reactivatable = record is not None and (
        record.status == SubscriptionStatus.CANCELED
        or (record.status == SubscriptionStatus.ACTIVE and record.cancel_at_period_end)
    )
    if not reactivatable:
        raise HTTPException(status_code=404, detail="No canceled subscription found")
    if not record.stripe_subscription_id:
        raise HTTPException(status_code=400, detail="No Stripe subscription ID found")

    try:
        subscription = billing.set_cancel_at_period_end(
            record.stripe_subscription_id, False
        )
    except BillingError as e:
        logger.error("Error reactivating subscription for %s: %s", user.id, e)
        raise HTTPException(
            status_code=500, detail="Failed to reactivate subscription"
        ) from e

    _, period_end = period_bounds(subscription)
    fields = {"cancel_at_period_end": False}
    if period_end is not None:
        fields["current_period_end"] = period_end
    if subscription.get("status"):
        fields["status"] = subscription["status"]
    db.upsert_subscription(user.id, **fields)
    logger.info("Subscription %s reactivated", record.stripe_subscription_id)
    return SuccessResponse(
        success=True, message="Subscription reactivated successfully."
    )


@router.get("/billing-status", response_model=BillingStatusResponse)
def billing_status(
    admin: AuthUser = Depends(require_admin),
    billing: BillingClient = Depends(get_billing_client),
):
    settings = get_settings()
    price_id = settings.stripe_price_id
    status = BillingStatusResponse(
        stripe_configured=bool(settings.stripe_secret_key),
        price_id=price_id,
        price_id_valid=bool(price_id and price_id.startswith("price_")),
        webhook_secret=bool(settings.stripe_webhook_secret),
        publishable_key=bool(settings.stripe_publishable_key),
    )
    if status.price_id_valid:
        try:
            price = billing.retrieve_price(price_id)
        except BillingError as e:
            status.price_exists = False
            status.price_error = str(e)
        else:
            status.price_exists = True
            status.price_details = PriceDetails(
                id=price["id"],
                active=bool(price.get("active")),
                unit_amount=price.get("unit_amount"),
                currency=price.get("currency") or "",
            )
    return status


@router.post("/webhooks/stripe", response_model=WebhookResponse)
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None),
    db: DbClient = Depends(get_db_client),
    billing: BillingClient = Depends(get_billing_client),
):
    # Signature verification needs the exact bytes Stripe sent.
    payload = await request.body()
    if not stripe_signature:
        raise HTTPException(status_code=400, detail="No signature provided")
    try:
        event = billing.construct_event(payload, stripe_signature)
    except WebhookSignatureError as e:
        logger.warning("Webhook signature verification failed: %s", e)
        raise HTTPException(status_code=400, detail="Invalid signature") from e

    try:
        await run_in_threadpool(handle_webhook_event, event, db, billing)
    except WebhookError as e:
        logger.error("Rejected webhook %s: %s", event.get("type"), e)
        raise HTTPException(status_code=400, detail=str(e)) from e
    except Exception as e:
        logger.exception("Error processing webhook %s", event.get("type"))
        raise HTTPException(
            status_code=500, detail="Webhook processing failed"
        ) from e
    return WebhookResponse(received=True)
