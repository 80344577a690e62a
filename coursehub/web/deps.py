"""
Request-scoped dependencies: service lookup and principal gates.

Services are built once per application in `create_app` and hung off
`app.state.services`; routers read them through `get_services` so tests can
construct isolated apps with their own store, clock and cache.
"""
from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from fastapi import Request

from coursehub.identity_access.domain import ADMIN, USER
from coursehub.identity_access.errors import AuthError

from .services import Services

logger = logging.getLogger("coursehub.web")


def get_services(request: Request) -> Services:
    return request.app.state.services


def is_uuid_like(value: str) -> bool:
    """Best-effort UUID format check without coercing FastAPI to return 422."""
    try:
        UUID(str(value))
    except (ValueError, TypeError):
        return False
    return True


async def require_admin(request: Request) -> dict:
    principal = await get_services(request).gate.authenticate(request.headers.get("authorization"), ADMIN)
    request.state.principal = principal
    return principal


async def require_user(request: Request) -> dict:
    principal = await get_services(request).gate.authenticate(request.headers.get("authorization"), USER)
    request.state.principal = principal
    return principal


async def optional_admin(request: Request) -> Optional[dict]:
    """Resolve an administrator when one is presented; anonymous otherwise.

    Public detail routes use this to show hidden entities to administrators
    without turning a bad token into an error for everybody else.
    """
    header = request.headers.get("authorization")
    if not header:
        return None
    try:
        principal = await get_services(request).gate.authenticate(header, ADMIN)
    except AuthError as exc:
        logger.debug("Ignoring non-admin credentials on public route: %s", exc.code)
        return None
    request.state.principal = principal
    return principal


__all__ = [
    "Services",
    "get_services",
    "is_uuid_like",
    "require_admin",
    "require_user",
    "optional_admin",
]
