"""
Account flows for students and administrators.

Why:
    Registration, login, password and profile changes all touch principal
    records that the request gate caches. Keeping them in one service makes
    the ordering rule easy to audit: every mutation of status, credentials or
    profile writes the store first and only then invalidates the cache entry.

Notes:
    - One-time tokens (email verification, password reset) are stored as
      SHA-256 digests; only the raw value travels by email.
    - Mail failures never block registration. A failed reset mail clears the
      pending reset token and reports an error, matching the UX of the
      original platform.
"""
from __future__ import annotations

import hashlib
import logging
import secrets
import time
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple

from .cache import PrincipalCache
from .domain import ADMIN, ADMIN_ROLES, USER, account_summary, without_secrets
from .errors import AccountError
from .mailer import MailDeliveryError, Mailer, password_reset_email, verification_email
from .oidc import GoogleProfile
from .passwords import MIN_PASSWORD_LENGTH, hash_password, verify_password
from .stores import PrincipalStore, normalize_email
from .tokens import TokenIssuer

logger = logging.getLogger("coursehub.identity_access.accounts")

EMAIL_VERIFICATION_TTL_SECONDS = 24 * 3600
PASSWORD_RESET_TTL_SECONDS = 3600


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _digest(raw: str) -> str:
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def _require_password(password: Optional[str], *, field: str = "Password") -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise AccountError("weak_password", f"{field} must be at least {MIN_PASSWORD_LENGTH} characters")
    return password


class AccountService:
    def __init__(
        self,
        principals: PrincipalStore,
        issuer: TokenIssuer,
        cache: PrincipalCache,
        mailer: Mailer,
        *,
        frontend_url: str = "http://localhost:3000",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.principals = principals
        self.issuer = issuer
        self.cache = cache
        self.mailer = mailer
        self.frontend_url = frontend_url.rstrip("/")
        self._clock = clock

    # --- helpers ------------------------------------------------------------
    def _one_time_token(self, ttl_seconds: int) -> Tuple[str, str, int]:
        raw = secrets.token_hex(20)
        return raw, _digest(raw), int(self._clock()) + ttl_seconds

    def _commit(self, kind: str, principal_id: str, changes: dict) -> dict:
        updated = self.principals.update(kind, principal_id, changes)
        if updated is None:
            raise AccountError("not_found", "User not found" if kind == USER else "Admin not found", 404)
        # Store write is committed at this point; drop the stale snapshot.
        self.cache.invalidate(kind, principal_id)
        return updated

    def _send_verification(self, user: dict, raw_token: str) -> None:
        url = f"{self.frontend_url}/verify-email/{raw_token}"
        subject, html = verification_email(user.get("name", ""), url)
        self.mailer.send(to=user["email"], subject=subject, html=html)

    # --- student registration & login --------------------------------------
    def register_user(self, *, name: str, email: str, password: str) -> Tuple[str, dict]:
        name = (name or "").strip()
        email = normalize_email(email)
        if not name or not email or not password:
            raise AccountError("missing_fields", "Please provide all required fields (name, email, password)")
        _require_password(password)
        if self.principals.find_by_email(USER, email):
            raise AccountError("email_taken", "User already exists with this email")

        raw, digest, expires = self._one_time_token(EMAIL_VERIFICATION_TTL_SECONDS)
        user = self.principals.create(
            USER,
            {
                "name": name,
                "email": email,
                "password": hash_password(password),
                "authProvider": "local",
                "role": "student",
                "isEmailVerified": False,
                "avatar": None,
                "emailVerificationToken": digest,
                "emailVerificationExpire": expires,
                "lastLogin": None,
            },
        )
        try:
            self._send_verification(user, raw)
        except MailDeliveryError:
            logger.warning("Verification mail failed for new user %s; continuing", user["id"])
        return self.issuer.issue(user["id"], USER), account_summary(user)

    def login_user(self, *, email: str, password: str) -> Tuple[str, dict]:
        if not email or not password:
            raise AccountError("missing_fields", "Please provide email and password")
        user = self.principals.find_by_email(USER, email)
        if not user:
            raise AccountError("invalid_credentials", "Invalid email or password", 401)
        provider = user.get("authProvider", "local")
        if provider != "local":
            raise AccountError(
                "oauth_account",
                f"This account was created with {provider}. Please sign in with {provider}.",
            )
        if not verify_password(password, user.get("password")):
            raise AccountError("invalid_credentials", "Invalid email or password", 401)
        if not user.get("isActive", True):
            raise AccountError("deactivated", "Account has been deactivated. Please contact support.", 403)
        user = self._commit(USER, user["id"], {"lastLogin": _now_iso()})
        return self.issuer.issue(user["id"], USER), account_summary(user)

    def login_google(self, profile: GoogleProfile) -> Tuple[str, dict]:
        """Link a verified Google profile to a user and issue a session token.

        Order: existing googleId → existing email (link) → new account. Linking
        by email requires Google to have verified that address.
        """
        user = self.principals.find_one(USER, {"googleId": profile.google_id})
        if user is None and profile.email:
            existing = self.principals.find_by_email(USER, profile.email)
            if existing is not None:
                if not profile.email_verified:
                    raise AccountError(
                        "google_email_unverified", "Google email is not verified; sign in with your password", 403
                    )
                changes = {"googleId": profile.google_id, "authProvider": "google", "isEmailVerified": True}
                if profile.avatar:
                    changes["avatar"] = profile.avatar
                user = self._commit(USER, existing["id"], changes)
        if user is None:
            if not profile.email:
                raise AccountError("oauth_no_email", "Google account has no email address", 400)
            user = self.principals.create(
                USER,
                {
                    "name": profile.name,
                    "email": profile.email,
                    "googleId": profile.google_id,
                    "authProvider": "google",
                    "role": "student",
                    "isEmailVerified": profile.email_verified,
                    "avatar": profile.avatar,
                    "lastLogin": None,
                },
            )
        if not user.get("isActive", True):
            raise AccountError("deactivated", "Account has been deactivated. Please contact support.", 403)
        user = self._commit(USER, user["id"], {"lastLogin": _now_iso()})
        return self.issuer.issue(user["id"], USER), account_summary(user)

    # --- student profile -----------------------------------------------------
    def get_user(self, user_id: str) -> dict:
        user = self.principals.get_principal(USER, user_id)
        if user is None:
            raise AccountError("not_found", "User not found", 404)
        return user

    def update_profile(self, user_id: str, *, name: Optional[str] = None, avatar: Optional[str] = None) -> dict:
        changes = {}
        if name and name.strip():
            changes["name"] = name.strip()
        if avatar:
            changes["avatar"] = avatar
        if not changes:
            return account_summary(self.get_user(user_id))
        return account_summary(self._commit(USER, user_id, changes))

    def change_password(self, kind: str, principal_id: str, *, current_password: str, new_password: str) -> None:
        if not current_password or not new_password:
            raise AccountError("missing_fields", "Please provide current and new password")
        _require_password(new_password, field="New password")
        record = self.principals.get_with_credentials(kind, principal_id)
        if record is None:
            raise AccountError("not_found", "User not found" if kind == USER else "Admin not found", 404)
        provider = record.get("authProvider", "local")
        if provider != "local":
            raise AccountError(
                "oauth_account",
                f"You signed up with {provider}. Cannot change password for OAuth accounts.",
            )
        if not verify_password(current_password, record.get("password")):
            raise AccountError("invalid_credentials", "Current password is incorrect", 401)
        self._commit(kind, principal_id, {"password": hash_password(new_password)})

    # --- password reset & email verification ---------------------------------
    def forgot_password(self, *, email: str) -> None:
        if not email:
            raise AccountError("missing_fields", "Please provide email address")
        user = self.principals.find_by_email(USER, email)
        if user is None:
            raise AccountError("not_found", "No account found with this email", 404)
        provider = user.get("authProvider", "local")
        if provider != "local":
            raise AccountError(
                "oauth_account",
                f"You signed up with {provider}. Password reset is not available for OAuth accounts.",
            )
        raw, digest, expires = self._one_time_token(PASSWORD_RESET_TTL_SECONDS)
        self._commit(USER, user["id"], {"resetPasswordToken": digest, "resetPasswordExpire": expires})
        url = f"{self.frontend_url}/reset-password/{raw}"
        subject, html = password_reset_email(user.get("name", ""), url)
        try:
            self.mailer.send(to=user["email"], subject=subject, html=html)
        except MailDeliveryError as exc:
            self._commit(USER, user["id"], {"resetPasswordToken": None, "resetPasswordExpire": None})
            raise AccountError("email_failed", "Email could not be sent", 500) from exc

    def _find_by_one_time_token(self, field: str, expire_field: str, raw_token: str) -> Optional[dict]:
        if not raw_token:
            return None
        user = self.principals.find_one(USER, {field: _digest(raw_token)})
        if user is None:
            return None
        expires = user.get(expire_field)
        if not isinstance(expires, (int, float)) or expires <= self._clock():
            return None
        return user

    def reset_password(self, *, raw_token: str, password: str) -> str:
        _require_password(password)
        user = self._find_by_one_time_token("resetPasswordToken", "resetPasswordExpire", raw_token)
        if user is None:
            raise AccountError("invalid_token", "Invalid or expired reset token")
        self._commit(
            USER,
            user["id"],
            {"password": hash_password(password), "resetPasswordToken": None, "resetPasswordExpire": None},
        )
        return self.issuer.issue(user["id"], USER)

    def verify_email(self, *, raw_token: str) -> None:
        user = self._find_by_one_time_token("emailVerificationToken", "emailVerificationExpire", raw_token)
        if user is None:
            raise AccountError("invalid_token", "Invalid or expired verification token")
        self._commit(
            USER,
            user["id"],
            {"isEmailVerified": True, "emailVerificationToken": None, "emailVerificationExpire": None},
        )

    def resend_verification(self, user_id: str) -> None:
        user = self.get_user(user_id)
        if user.get("isEmailVerified"):
            raise AccountError("already_verified", "Email is already verified")
        raw, digest, expires = self._one_time_token(EMAIL_VERIFICATION_TTL_SECONDS)
        user = self._commit(USER, user_id, {"emailVerificationToken": digest, "emailVerificationExpire": expires})
        try:
            self._send_verification(user, raw)
        except MailDeliveryError as exc:
            raise AccountError("email_failed", "Failed to send verification email", 500) from exc

    # --- administrators -------------------------------------------------------
    def login_admin(self, *, email: str, password: str) -> Tuple[str, dict]:
        if not email or not password:
            raise AccountError("missing_fields", "Please provide email and password")
        admin = self.principals.find_by_email(ADMIN, email)
        if admin is None or not verify_password(password, admin.get("password")):
            raise AccountError("invalid_credentials", "Invalid credentials", 401)
        if not admin.get("isActive", True):
            raise AccountError("deactivated", "Account has been deactivated.", 403)
        admin = self._commit(ADMIN, admin["id"], {"lastLogin": _now_iso()})
        return self.issuer.issue(admin["id"], ADMIN), account_summary(admin)

    def create_admin(self, *, name: str, email: str, password: str, role: str = "admin") -> dict:
        name = (name or "").strip()
        email = normalize_email(email)
        if not name or not email or not password:
            raise AccountError("missing_fields", "Please provide all required fields (name, email, password)")
        _require_password(password)
        if role not in ADMIN_ROLES:
            raise AccountError("invalid_role", f"Role must be one of: {', '.join(sorted(ADMIN_ROLES))}")
        if self.principals.find_by_email(ADMIN, email):
            raise AccountError("email_taken", "Admin already exists with this email")
        admin = self.principals.create(
            ADMIN,
            {"name": name, "email": email, "password": hash_password(password), "role": role, "lastLogin": None},
        )
        return without_secrets(admin)

    # --- admin user management ----------------------------------------------
    def list_users(self) -> list[dict]:
        return self.principals.list(USER)

    def user_stats(self) -> dict:
        users = self.principals.list(USER)
        return {
            "total": len(users),
            "googleUsers": sum(1 for u in users if u.get("authProvider") == "google"),
            "localUsers": sum(1 for u in users if u.get("authProvider", "local") == "local"),
            "verifiedUsers": sum(1 for u in users if u.get("isEmailVerified")),
            "activeUsers": sum(1 for u in users if u.get("isActive", True)),
        }

    def set_user_active(self, user_id: str, active: bool) -> dict:
        return without_secrets(self._commit(USER, user_id, {"isActive": bool(active)}))

    def delete_user(self, user_id: str) -> None:
        if not self.principals.delete(USER, user_id):
            raise AccountError("not_found", "User not found", 404)
        self.cache.invalidate(USER, user_id)


__all__ = ["AccountService", "EMAIL_VERIFICATION_TTL_SECONDS", "PASSWORD_RESET_TTL_SECONDS"]
