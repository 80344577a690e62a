"""
Identity domain constants and simple helpers.

Why:
- Centralize principal kinds and roles to avoid drift between tools, routes
  and the request gate.
- Keep credential fields in one place so no read path forgets to strip them.
"""

from __future__ import annotations

from typing import Any, Mapping

# Principal type tags embedded in session tokens
ADMIN = "admin"
USER = "user"
PRINCIPAL_TYPES = frozenset({ADMIN, USER})

# Keep roles minimal and explicit. Immutable to prevent accidental mutation.
ADMIN_ROLES = frozenset({"admin", "superadmin"})

COLLECTIONS = {ADMIN: "admins", USER: "users"}

# Never leave the store layer on read paths.
SECRET_FIELDS = frozenset(
    {
        "password",
        "resetPasswordToken",
        "resetPasswordExpire",
        "emailVerificationToken",
        "emailVerificationExpire",
    }
)


def without_secrets(record: Mapping[str, Any]) -> dict:
    """Return a copy of a principal record with credential material removed."""
    return {k: v for k, v in record.items() if k not in SECRET_FIELDS}


def account_summary(record: Mapping[str, Any]) -> dict:
    """Compact representation returned by login/registration endpoints."""
    summary = {
        "id": record.get("id"),
        "name": record.get("name"),
        "email": record.get("email"),
        "role": record.get("role"),
    }
    if record.get("type", USER) == USER:
        summary.update(
            {
                "isEmailVerified": bool(record.get("isEmailVerified")),
                "avatar": record.get("avatar"),
                "authProvider": record.get("authProvider", "local"),
            }
        )
    return summary


__all__ = [
    "ADMIN",
    "USER",
    "PRINCIPAL_TYPES",
    "ADMIN_ROLES",
    "COLLECTIONS",
    "SECRET_FIELDS",
    "without_secrets",
    "account_summary",
]
