"""
Authentication and authorization failures raised by the request gate.

Each error carries a stable `code` for clients and tests, the HTTP status the
web adapter maps it to, and a human-readable message. None of them are retried
by the gate: the client re-authenticates or accepts the denial.
"""
from __future__ import annotations


class AuthError(Exception):
    code = "unauthenticated"
    status_code = 401
    default_message = "Authentication required."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(AuthError):
    """No token, or the Authorization header is not `Bearer <token>`."""

    code = "token_missing"
    default_message = "Access denied. No token provided."


# Alias kept for call sites that speak in token terms.
TokenMissing = Unauthenticated


class TokenExpired(AuthError):
    code = "token_expired"
    default_message = "Token expired. Please login again."


class TokenInvalid(AuthError):
    code = "token_invalid"
    default_message = "Invalid token."


class WrongPrincipalType(AuthError):
    code = "wrong_principal_type"
    status_code = 403
    default_message = "Invalid token type for this resource."


class PrincipalNotFound(AuthError):
    code = "principal_not_found"
    status_code = 404
    default_message = "Account not found."


class PrincipalDeactivated(AuthError):
    code = "principal_deactivated"
    status_code = 403
    default_message = "Account has been deactivated."


class AccountError(Exception):
    """Domain failure in an account flow (registration, login, reset)."""

    def __init__(self, code: str, message: str, status_code: int = 400):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code


__all__ = [
    "AuthError",
    "Unauthenticated",
    "TokenMissing",
    "TokenExpired",
    "TokenInvalid",
    "WrongPrincipalType",
    "PrincipalNotFound",
    "PrincipalDeactivated",
    "AccountError",
]
