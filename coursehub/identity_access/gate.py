"""
Authenticated request gate: bearer token → active principal.

Contract per request:
1. Extract `Bearer <token>` from the Authorization header (else Unauthenticated).
2. Verify the token (TokenExpired / TokenInvalid).
3. Require the route's principal type (WrongPrincipalType).
4. Resolve the principal through the cache; on miss read the store without
   credential fields. Unknown → PrincipalNotFound. Inactive →
   PrincipalDeactivated and nothing is cached.
5. Return the principal for the web adapter to attach to the request.

Store reads run in a worker thread so a slow store only suspends the request
that missed the cache.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from coursehub.storage.errors import StoreError

from .cache import PrincipalCache
from .errors import (
    PrincipalDeactivated,
    PrincipalNotFound,
    Unauthenticated,
    WrongPrincipalType,
)
from .stores import PrincipalStore
from .tokens import TokenIssuer

logger = logging.getLogger("coursehub.identity_access")

BEARER_PREFIX = "Bearer "


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Return the token from a `Bearer <token>` header value."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise Unauthenticated()
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token or " " in token:
        raise Unauthenticated()
    return token


class AuthGate:
    def __init__(self, issuer: TokenIssuer, principals: PrincipalStore, cache: PrincipalCache) -> None:
        self.issuer = issuer
        self.principals = principals
        self.cache = cache

    async def authenticate(self, authorization: Optional[str], expected_type: str) -> dict:
        token = extract_bearer_token(authorization)
        claims = self.issuer.verify(token)
        if claims.principal_type != expected_type:
            logger.info("Rejected %s token on %s route", claims.principal_type, expected_type)
            raise WrongPrincipalType(
                "Invalid token type. Admin access required."
                if expected_type == "admin"
                else "Invalid token type. User access required."
            )
        return await self.resolve(expected_type, claims.principal_id)

    async def resolve(self, kind: str, principal_id: str) -> dict:
        cached = self.cache.get(kind, principal_id)
        if cached is not None:
            return cached

        generation = self.cache.generation(kind, principal_id)
        try:
            principal = await asyncio.to_thread(self.principals.get_principal, kind, principal_id)
        except StoreError as exc:
            logger.warning(
                "Principal lookup failed (operation=%s kind=%s id=%s): %s",
                exc.operation,
                kind,
                principal_id,
                exc.__class__.__name__,
            )
            raise
        if principal is None:
            raise PrincipalNotFound("Admin not found." if kind == "admin" else "User not found.")
        if not principal.get("isActive", True):
            raise PrincipalDeactivated()

        if not self.cache.set(kind, principal_id, principal, generation=generation):
            logger.debug("Skipped caching %s %s: invalidated during lookup", kind, principal_id)
        return principal

    def invalidate(self, kind: str, principal_id: str) -> None:
        """Drop the cached snapshot; call after the store write has committed."""
        self.cache.invalidate(kind, principal_id)


__all__ = ["AuthGate", "extract_bearer_token", "BEARER_PREFIX"]
