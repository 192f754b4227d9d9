"""
Bearer-token validation against the hosted auth provider.

Sign-in happens in the browser against Supabase Auth; this service only
resolves the access token it is handed into a user id and email.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

from supabase import Client, create_client

logger = logging.getLogger(__name__)


@dataclass
class AuthUser:
    id: str
    email: str = ""


class AuthClient(Protocol):
    """Resolves access tokens to users."""

    def get_user(self, token: str) -> Optional[AuthUser]:
        ...


@dataclass
class InMemoryAuthClient:
    """Test double mapping fixed tokens to users."""

    tokens: dict[str, AuthUser] = field(default_factory=dict)

    def add_token(self, token: str, user_id: str, email: str = "") -> AuthUser:
        user = AuthUser(id=user_id, email=email)
        self.tokens[token] = user
        return user

    def get_user(self, token: str) -> Optional[AuthUser]:
        return self.tokens.get(token)

    def reset(self) -> None:
        self.tokens.clear()


@dataclass
class SupabaseAuthClient:
    """Validates Supabase Auth access tokens."""

    url: str
    anon_key: str

    def __post_init__(self):
        self._client: Client = create_client(self.url, self.anon_key)

    def get_user(self, token: str) -> Optional[AuthUser]:
        try:
            response = self._client.auth.get_user(token)
        except Exception as e:
            # The client raises on expired or malformed tokens.
            logger.info("Rejected access token: %s", e)
            return None
        user = getattr(response, "user", None)
        if user is None:
            return None
        return AuthUser(id=str(user.id), email=user.email or "")


def parse_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Returns the token from a `Bearer <token>` header, or None."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization[len("Bearer ") :].strip()
    return token or None
