"""
Identity provider abstraction for the Supabase auth REST API and an
in-memory test implementation.
"""

from __future__ import annotations

import logging
import secrets
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

import requests

logger = logging.getLogger(__name__)

# Status codes from /auth/v1/user that mean "token does not resolve".
_REJECTED_TOKEN_STATUSES = {401, 403, 404}


class IdentityProviderError(Exception):
    """Raised when the identity service rejects or fails a request."""


class IdentityServiceUnavailable(IdentityProviderError):
    """Raised when the identity service cannot be reached or answers 5xx."""


@dataclass
class Identity:
    id: str
    email: Optional[str]
    user_metadata: dict = field(default_factory=dict)

    @property
    def display_name(self) -> str:
        return self.user_metadata.get("name") or self.email or ""

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "user_metadata": self.user_metadata,
        }


class IdentityProvider(Protocol):
    """Operations the API needs from the identity service."""

    def get_user(self, access_token: str) -> Optional[Identity]:
        ...

    def create_user(
        self, email: str, password: str, user_metadata: dict
    ) -> Identity:
        ...


class InMemoryIdentityProvider:
    """Test double for identity interactions."""

    def __init__(self):
        self.users: Dict[str, Identity] = {}
        self.passwords: Dict[str, str] = {}
        self.tokens: Dict[str, str] = {}

    def get_user(self, access_token: str) -> Optional[Identity]:
        user_id = self.tokens.get(access_token)
        if user_id is None:
            return None
        return self.users.get(user_id)

    def create_user(
        self, email: str, password: str, user_metadata: dict
    ) -> Identity:
        if not email or not password:
            raise IdentityProviderError("Email and password are required")
        if any(user.email == email for user in self.users.values()):
            raise IdentityProviderError(
                "A user with this email address has already been registered"
            )
        identity = Identity(
            id=str(uuid.uuid4()), email=email, user_metadata=dict(user_metadata)
        )
        self.users[identity.id] = identity
        self.passwords[identity.id] = password
        return identity

    def issue_token(self, user_id: str) -> str:
        token = secrets.token_urlsafe(16)
        self.tokens[token] = user_id
        return token

    def sign_in(self, email: str, password: str) -> Optional[str]:
        for user in self.users.values():
            if user.email == email and self.passwords.get(user.id) == password:
                return self.issue_token(user.id)
        return None

    def reset(self) -> None:
        self.users.clear()
        self.passwords.clear()
        self.tokens.clear()


@dataclass
class SupabaseIdentityProvider:
    """
    Client for the Supabase (GoTrue) auth REST API.

    Token lookups use the caller's bearer token; user creation uses the
    service role key and confirms the email immediately.
    """

    url: str
    service_role_key: str
    anon_key: Optional[str] = None
    timeout: float = 10.0

    def __post_init__(self):
        self.url = self.url.rstrip("/")
        self._session = requests.Session()

    def get_user(self, access_token: str) -> Optional[Identity]:
        try:
            response = self._session.get(
                f"{self.url}/auth/v1/user",
                headers={
                    "apikey": self.anon_key or self.service_role_key,
                    "Authorization": f"Bearer {access_token}",
                },
                timeout=self.timeout,
            )
            if response.status_code in _REJECTED_TOKEN_STATUSES:
                logger.info("Identity service rejected token (%s)", response.status_code)
                return None
            response.raise_for_status()
        except requests.RequestException as exc:
            raise IdentityServiceUnavailable(f"Token lookup failed: {exc}") from exc
        return _identity_from_payload(response.json())

    def create_user(
        self, email: str, password: str, user_metadata: dict
    ) -> Identity:
        try:
            response = self._session.post(
                f"{self.url}/auth/v1/admin/users",
                headers={
                    "apikey": self.service_role_key,
                    "Authorization": f"Bearer {self.service_role_key}",
                },
                json={
                    "email": email,
                    "password": password,
                    "user_metadata": user_metadata,
                    # No email server is configured, so confirm on creation.
                    "email_confirm": True,
                },
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise IdentityServiceUnavailable(f"User creation failed: {exc}") from exc
        if response.status_code >= 500:
            raise IdentityServiceUnavailable(_error_message(response))
        if response.status_code >= 400:
            raise IdentityProviderError(_error_message(response))
        payload = response.json()
        return _identity_from_payload(payload.get("user", payload))


def _identity_from_payload(payload: dict) -> Identity:
    return Identity(
        id=payload["id"],
        email=payload.get("email"),
        user_metadata=payload.get("user_metadata") or {},
    )


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"Identity service error ({response.status_code})"
    for key in ("msg", "message", "error_description", "error"):
        if body.get(key):
            return str(body[key])
    return f"Identity service error ({response.status_code})"
