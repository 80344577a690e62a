"""
Student account routes, Google sign-in and admin user management.

Why:
    Students register with email/password or sign in with Google. Token-bearing
    responses keep the shape the web client expects: `{success, message, token,
    user}` at the top level.

Security:
    - Register, login and forgot-password are rate limited per client address.
    - Google sign-in keeps `state` and the PKCE verifier server-side; the
      callback only accepts a state it issued.
    - Activating, deactivating or deleting a user invalidates the cached
      principal after the store write, so the change is visible on the next
      request.
"""
import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel, Field
from slowapi import Limiter

from coursehub.identity_access.domain import USER, account_summary
from coursehub.identity_access.errors import AccountError
from coursehub.identity_access.oidc import OAuthError

from ..deps import get_services, is_uuid_like, require_admin, require_user
from ..ratelimit import AUTH_SCOPE
from ..responses import PRIVATE_CACHE, invalid_id, ok, ok_list

logger = logging.getLogger("coursehub.web.users")

users_router = APIRouter(tags=["Users"])


class RegisterPayload(BaseModel):
    name: str = Field(default="", max_length=100)
    email: str = Field(default="", max_length=254)
    password: str = Field(default="", max_length=256)


class LoginPayload(BaseModel):
    email: str = Field(default="", max_length=254)
    password: str = Field(default="", max_length=256)


class ProfilePayload(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    avatar: Optional[str] = Field(default=None, max_length=2048)


class ChangePasswordPayload(BaseModel):
    currentPassword: str = Field(default="", max_length=256)
    newPassword: str = Field(default="", max_length=256)


class ForgotPasswordPayload(BaseModel):
    email: str = Field(default="", max_length=254)


class ResetPasswordPayload(BaseModel):
    password: str = Field(default="", max_length=256)


class UserStatusPayload(BaseModel):
    isActive: bool


def _token_response(token: str, user: dict, message: str, *, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        {"success": True, "message": message, "token": token, "user": user},
        status_code=status_code,
        headers={"Cache-Control": PRIVATE_CACHE},
    )


# --- registration, login & forgot-password (rate limited) -----------------------

def build_credentials_router(limiter: Limiter, rate: str) -> APIRouter:
    """Routes that accept credentials; they share one per-client budget."""
    router = APIRouter(tags=["Users"])
    limited = limiter.shared_limit(rate, scope=AUTH_SCOPE)

    @router.post("/api/users/register")
    @limited
    def register(request: Request, payload: RegisterPayload):
        token, user = get_services(request).accounts.register_user(
            name=payload.name, email=payload.email, password=payload.password
        )
        logger.info("Registered user id=%s", user["id"])
        return _token_response(
            token,
            user,
            "Registration successful! Please check your email to verify your account.",
            status_code=201,
        )

    @router.post("/api/users/login")
    @limited
    def login(request: Request, payload: LoginPayload):
        token, user = get_services(request).accounts.login_user(email=payload.email, password=payload.password)
        return _token_response(token, user, "Login successful")

    @router.post("/api/users/forgot-password")
    @limited
    def forgot_password(request: Request, payload: ForgotPasswordPayload):
        get_services(request).accounts.forgot_password(email=payload.email)
        return ok(None, "Password reset email sent. Please check your inbox.")

    return router


# --- profile ------------------------------------------------------------------------

@users_router.get("/api/users/me")
def me(user: dict = Depends(require_user)):
    return JSONResponse(
        {"success": True, "user": account_summary(user) | {"createdAt": user.get("createdAt")}},
        headers={"Cache-Control": PRIVATE_CACHE},
    )


@users_router.put("/api/users/profile")
def update_profile(request: Request, payload: ProfilePayload, user: dict = Depends(require_user)):
    updated = get_services(request).accounts.update_profile(user["id"], name=payload.name, avatar=payload.avatar)
    return JSONResponse(
        {"success": True, "message": "Profile updated successfully", "user": updated},
        headers={"Cache-Control": PRIVATE_CACHE},
    )


@users_router.put("/api/users/change-password")
def change_password(request: Request, payload: ChangePasswordPayload, user: dict = Depends(require_user)):
    get_services(request).accounts.change_password(
        USER, user["id"], current_password=payload.currentPassword, new_password=payload.newPassword
    )
    return ok(None, "Password changed successfully")


# --- password reset & email verification ------------------------------------------

@users_router.post("/api/users/reset-password/{token}")
def reset_password(request: Request, token: str, payload: ResetPasswordPayload):
    session_token = get_services(request).accounts.reset_password(raw_token=token, password=payload.password)
    return JSONResponse(
        {"success": True, "message": "Password reset successful", "token": session_token},
        headers={"Cache-Control": PRIVATE_CACHE},
    )


@users_router.get("/api/users/verify-email/{token}")
def verify_email(request: Request, token: str):
    get_services(request).accounts.verify_email(raw_token=token)
    return ok(None, "Email verified successfully!")


@users_router.post("/api/users/resend-verification")
def resend_verification(request: Request, user: dict = Depends(require_user)):
    get_services(request).accounts.resend_verification(user["id"])
    return ok(None, "Verification email sent")


# --- Google sign-in -------------------------------------------------------------------

def _frontend_redirect(request: Request, **params: str) -> RedirectResponse:
    base = get_services(request).settings.frontend_url.rstrip("/")
    return RedirectResponse(
        url=f"{base}/auth/google/callback?{urlencode(params)}",
        status_code=302,
        headers={"Cache-Control": PRIVATE_CACHE},
    )


@users_router.get("/api/users/google")
def google_start(request: Request):
    services = get_services(request)
    if not services.oauth.cfg.configured:
        raise AccountError("oauth_unavailable", "Google sign-in is not configured", 503)
    verifier = services.oauth.generate_code_verifier()
    record = services.oauth_states.create(code_verifier=verifier)
    url = services.oauth.build_authorization_url(
        state=record.state, code_challenge=services.oauth.code_challenge_s256(verifier)
    )
    return RedirectResponse(url=url, status_code=302, headers={"Cache-Control": PRIVATE_CACHE})


@users_router.get("/api/users/google/callback")
def google_callback(request: Request, code: str = "", state: str = "", error: str = ""):
    services = get_services(request)
    if error or not code or not state:
        return _frontend_redirect(request, error="google_auth_failed")
    record = services.oauth_states.pop_valid(state)
    if record is None:
        logger.info("Google callback with unknown or expired state")
        return _frontend_redirect(request, error="invalid_state")
    try:
        tokens = services.oauth.exchange_code_for_tokens(code=code, code_verifier=record.code_verifier)
        access_token = str(tokens.get("access_token") or "")
        if not access_token:
            raise OAuthError("token_exchange_failed")
        profile = services.oauth.fetch_profile(access_token=access_token)
        token, _user = services.accounts.login_google(profile)
    except OAuthError as exc:
        logger.warning("Google sign-in failed: %s", exc.code)
        return _frontend_redirect(request, error=exc.code)
    except AccountError as exc:
        return _frontend_redirect(request, error=exc.code)
    return _frontend_redirect(request, token=token)


# --- admin user management -------------------------------------------------------------

@users_router.get("/api/users/admin/all", dependencies=[Depends(require_admin)])
def admin_list_users(request: Request):
    return ok_list(get_services(request).accounts.list_users())


@users_router.get("/api/users/admin/stats", dependencies=[Depends(require_admin)])
def admin_user_stats(request: Request):
    return ok(get_services(request).accounts.user_stats())


@users_router.patch("/api/users/admin/{user_id}/status")
def admin_set_user_status(
    request: Request, user_id: str, payload: UserStatusPayload, admin: dict = Depends(require_admin)
):
    if not is_uuid_like(user_id):
        return invalid_id()
    user = get_services(request).accounts.set_user_active(user_id, payload.isActive)
    logger.info("Admin id=%s set user id=%s isActive=%s", admin["id"], user_id, payload.isActive)
    return ok(user, "User activated" if payload.isActive else "User deactivated")


@users_router.delete("/api/users/admin/{user_id}")
def admin_delete_user(request: Request, user_id: str, admin: dict = Depends(require_admin)):
    if not is_uuid_like(user_id):
        return invalid_id()
    get_services(request).accounts.delete_user(user_id)
    logger.info("Admin id=%s deleted user id=%s", admin["id"], user_id)
    return ok(None, "User deleted successfully")


__all__ = ["build_credentials_router", "users_router"]
