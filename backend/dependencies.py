"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging

from fastapi import Depends, Header, HTTPException

from backend.auth import (
    AuthClient,
    AuthUser,
    InMemoryAuthClient,
    SupabaseAuthClient,
    parse_bearer_token,
)
from backend.billing import BillingClient, InMemoryBillingClient, StripeBillingClient
from backend.config import get_settings
from backend.db import DbClient, InMemoryDbClient, PostgresDbClient

logger = logging.getLogger(__name__)

_db_client: DbClient | None = None
_auth_client: AuthClient | None = None
_billing_client: BillingClient | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so usage and subscription state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = InMemoryDbClient()
    else:
        _db_client = PostgresDbClient(settings.database_url)
    return _db_client


def get_auth_client() -> AuthClient:
    global _auth_client
    if _auth_client:
        return _auth_client

    settings = get_settings()
    if (
        settings.use_in_memory_backends
        or not settings.supabase_url
        or not settings.supabase_anon_key
    ):
        _auth_client = InMemoryAuthClient()
    else:
        _auth_client = SupabaseAuthClient(
            url=settings.supabase_url, anon_key=settings.supabase_anon_key
        )
    return _auth_client


def get_billing_client() -> BillingClient:
    global _billing_client
    if _billing_client:
        return _billing_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.stripe_secret_key:
        logger.warning("STRIPE_SECRET_KEY not set, using in-memory billing")
        _billing_client = InMemoryBillingClient(
            webhook_secret=settings.stripe_webhook_secret or "whsec_test"
        )
    else:
        _billing_client = StripeBillingClient(
            secret_key=settings.stripe_secret_key,
            webhook_secret=settings.stripe_webhook_secret or "",
        )
    return _billing_client


def get_current_user(
    authorization: str | None = Header(default=None),
    auth: AuthClient = Depends(get_auth_client),
    db: DbClient = Depends(get_db_client),
) -> AuthUser:
    """
    Resolve the bearer token to a user, creating their users row on first sight.
    """
    token = parse_bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Authentication required")
    user = auth.get_user(token)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid authentication token")
    db.ensure_user_exists(user.id, user.email)
    return user


def require_admin(
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
) -> AuthUser:
    if not db.is_user_admin(user.id):
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
