"""
Administrator authentication routes.

Why:
    Administrators manage all course content. They sign in with local
    credentials only; new administrators are created by an existing one (or
    bootstrapped with `python -m coursehub.tools.create_admin`).

Responses:
    Login returns `{success, message, data: {token, admin}}`. Every response is
    sent with "private, no-store".
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from coursehub.identity_access.domain import ADMIN, account_summary

from ..deps import get_services, require_admin
from ..responses import ok

logger = logging.getLogger("coursehub.web.auth")

auth_router = APIRouter(tags=["Auth"])


class AdminLoginPayload(BaseModel):
    email: str = Field(default="", max_length=254)
    password: str = Field(default="", max_length=256)


class AdminRegisterPayload(BaseModel):
    name: str = Field(default="", max_length=100)
    email: str = Field(default="", max_length=254)
    password: str = Field(default="", max_length=256)
    role: str = Field(default="admin")


class ChangePasswordPayload(BaseModel):
    currentPassword: str = Field(default="", max_length=256)
    newPassword: str = Field(default="", max_length=256)


@auth_router.post("/api/auth/login")
def admin_login(request: Request, payload: AdminLoginPayload):
    token, admin = get_services(request).accounts.login_admin(email=payload.email, password=payload.password)
    logger.info("Admin login id=%s", admin["id"])
    return ok({"token": token, "admin": admin}, "Login successful")


@auth_router.get("/api/auth/me")
def admin_me(admin: dict = Depends(require_admin)):
    return ok(account_summary(admin))


@auth_router.post("/api/auth/register")
def admin_register(request: Request, payload: AdminRegisterPayload, admin: dict = Depends(require_admin)):
    """Create another administrator. Only administrators may call this."""
    created = get_services(request).accounts.create_admin(
        name=payload.name, email=payload.email, password=payload.password, role=payload.role
    )
    logger.info("Admin id=%s created admin id=%s", admin["id"], created["id"])
    return ok(account_summary(created), "Admin created successfully", status_code=201)


@auth_router.put("/api/auth/change-password")
def admin_change_password(request: Request, payload: ChangePasswordPayload, admin: dict = Depends(require_admin)):
    get_services(request).accounts.change_password(
        ADMIN,
        admin["id"],
        current_password=payload.currentPassword,
        new_password=payload.newPassword,
    )
    return ok(None, "Password changed successfully")


__all__ = ["auth_router"]
