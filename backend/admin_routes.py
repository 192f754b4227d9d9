"""
Admin-only routes for support staff: user lookup and manual entitlements.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException

from backend.auth import AuthUser
from backend.db import DbClient, utcnow
from backend.dependencies import get_current_user, get_db_client, require_admin
from backend.schemas import (
    AddSubscriptionRequest,
    AddSubscriptionResponse,
    AdminUser,
    AdminUserDetail,
    AdminUsersResponse,
    CheckStatusResponse,
    GrantLifetimeRequest,
    ManageAdminRequest,
    SearchUserRequest,
    SearchUserResponse,
    SuccessResponse,
    UserSummary,
)
from shared.types import Plan, SubscriptionStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin")

MANUAL_SUBSCRIPTION_DAYS = 30
RECENT_USAGE_DAYS = 7


def _require_known_user(db: DbClient, user_id: str | None) -> str:
    if not user_id:
        raise HTTPException(status_code=400, detail="User ID is required")
    if not db.get_user(user_id):
        raise HTTPException(status_code=404, detail="User not found")
    return user_id


@router.get("/check-status", response_model=CheckStatusResponse)
def check_status(
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return CheckStatusResponse(
        is_admin=db.is_user_admin(user.id),
        user=UserSummary(id=user.id, email=user.email),
    )


@router.post("/search-user", response_model=SearchUserResponse)
def search_user(
    payload: SearchUserRequest,
    admin: AuthUser = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
):
    email = (payload.email or "").strip()
    if not email:
        raise HTTPException(status_code=400, detail="Email is required")

    found = db.find_user_by_email(email)
    if not found:
        return SearchUserResponse(user=None)

    subscription = db.get_subscription(found.id)
    usage = db.list_recent_usage(found.id, limit=RECENT_USAGE_DAYS)
    return SearchUserResponse(
        user=AdminUserDetail(
            id=found.id,
            email=found.email,
            is_admin=found.is_admin,
            created_at=found.created_at,
            subscription=subscription.as_dict() if subscription else None,
            recent_usage=[record.as_dict() for record in usage],
        )
    )


@router.post("/grant-lifetime", response_model=SuccessResponse)
def grant_lifetime(
    payload: GrantLifetimeRequest,
    admin: AuthUser = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
):
    user_id = _require_known_user(db, payload.user_id)
    db.grant_lifetime_access(user_id, granted_by=admin.id)
    logger.info("Admin %s granted lifetime access to %s", admin.id, user_id)
    return SuccessResponse(
        success=True, message="Lifetime access granted successfully"
    )


@router.post("/add-subscription", response_model=AddSubscriptionResponse)
def add_subscription(
    payload: AddSubscriptionRequest,
    admin: AuthUser = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
):
    """
    Records a premium subscription that did not come through checkout,
    e.g. one paid outside Stripe.
    """
    user_id = _require_known_user(db, payload.user_id)
    now = utcnow()
    record = db.upsert_subscription(
        user_id,
        stripe_customer_id=payload.stripe_customer_id or f"manual_{user_id}",
        stripe_subscription_id=(
            payload.stripe_subscription_id or f"manual_sub_{user_id}"
        ),
        status=SubscriptionStatus.ACTIVE,
        plan=Plan.PREMIUM,
        current_period_start=now,
        current_period_end=now + timedelta(days=MANUAL_SUBSCRIPTION_DAYS),
        cancel_at_period_end=False,
    )
    logger.info("Admin %s added a manual subscription for %s", admin.id, user_id)
    return AddSubscriptionResponse(
        success=True,
        message="Subscription added successfully",
        data=record.as_dict(),
    )


@router.post("/manage-admin", response_model=SuccessResponse)
def manage_admin(
    payload: ManageAdminRequest,
    admin: AuthUser = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
):
    if not payload.action or not payload.target_user_id:
        raise HTTPException(
            status_code=400, detail="Action and target user ID are required"
        )
    if payload.action == "grant_admin":
        grant = True
    elif payload.action == "revoke_admin":
        grant = False
    else:
        raise HTTPException(status_code=400, detail="Invalid action")

    if not grant and payload.target_user_id == admin.id:
        raise HTTPException(
            status_code=400, detail="You cannot revoke your own admin access"
        )
    if not db.set_user_admin(payload.target_user_id, grant):
        raise HTTPException(status_code=404, detail="User not found")

    logger.info(
        "Admin %s %s admin access for %s",
        admin.id,
        "granted" if grant else "revoked",
        payload.target_user_id,
    )
    return SuccessResponse(
        success=True,
        message=f"Admin access {'granted' if grant else 'revoked'} successfully",
    )


@router.get("/manage-admin", response_model=AdminUsersResponse)
def list_admins(
    admin: AuthUser = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
):
    return AdminUsersResponse(
        admin_users=[
            AdminUser(id=user.id, email=user.email, created_at=user.created_at)
            for user in db.list_admin_users()
        ]
    )
