"""
Bearer-token auth gate.

Resolves the ``Authorization`` header against the identity service and
attaches the stored ``user:<id>`` record so handlers and the policy can
read the caller's role.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException

from alumni_backend.dependencies import get_identity_provider, get_kv_store
from alumni_backend.identity import Identity, IdentityProvider, IdentityProviderError
from alumni_backend.kv import KvStore
from alumni_backend.resources import USER, record_key

logger = logging.getLogger(__name__)


@dataclass
class Caller:
    identity: Identity
    profile: Optional[dict] = None

    @property
    def id(self) -> str:
        return self.identity.id

    @property
    def email(self) -> Optional[str]:
        return self.identity.email

    @property
    def role(self) -> Optional[str]:
        return (self.profile or {}).get("role")

    @property
    def display_name(self) -> str:
        return (self.profile or {}).get("name") or self.identity.display_name


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _resolve_caller(
    authorization: Optional[str], identity: IdentityProvider, store: KvStore
) -> Optional[Caller]:
    token = bearer_token(authorization)
    if not token:
        return None
    user = identity.get_user(token)
    if user is None:
        return None
    return Caller(identity=user, profile=store.get(record_key(USER, user.id)))


def get_caller(
    authorization: Optional[str] = Header(None),
    identity: IdentityProvider = Depends(get_identity_provider),
    store: KvStore = Depends(get_kv_store),
) -> Caller:
    caller = _resolve_caller(authorization, identity, store)
    if caller is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return caller


def get_optional_caller(
    authorization: Optional[str] = Header(None),
    identity: IdentityProvider = Depends(get_identity_provider),
    store: KvStore = Depends(get_kv_store),
) -> Optional[Caller]:
    # Public pages send the anonymous key as bearer, which never resolves.
    try:
        return _resolve_caller(authorization, identity, store)
    except IdentityProviderError as exc:
        logger.warning("Treating caller as anonymous, identity lookup failed: %s", exc)
        return None
