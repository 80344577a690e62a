"""
JSON envelopes shared by all API routers.

Shape: `{success, message?, data?, count?, code?}`. Public catalogue reads may
be cached by browsers and proxies for five minutes; everything else is sent
with "private, no-store" so principal-scoped data never lands in a shared
cache.
"""
from __future__ import annotations

from typing import Any, Optional, Sequence

from fastapi.responses import JSONResponse

PRIVATE_CACHE = "private, no-store"
PUBLIC_CACHE = "public, max-age=300, s-maxage=300, stale-while-revalidate=600"


def _headers(public: bool) -> dict:
    return {"Cache-Control": PUBLIC_CACHE if public else PRIVATE_CACHE}


def ok(
    data: Any = None,
    message: Optional[str] = None,
    *,
    status_code: int = 200,
    public: bool = False,
    **extra: Any,
) -> JSONResponse:
    payload: dict = {"success": True}
    if message:
        payload["message"] = message
    payload["data"] = data
    payload.update(extra)
    return JSONResponse(content=payload, status_code=status_code, headers=_headers(public))


def ok_list(items: Sequence[Any], message: Optional[str] = None, *, public: bool = False, **extra: Any) -> JSONResponse:
    return ok(list(items), message, public=public, count=len(items), **extra)


def error(message: str, *, status_code: int, code: Optional[str] = None, **extra: Any) -> JSONResponse:
    payload: dict = {"success": False, "message": message}
    if code:
        payload["code"] = code
    payload.update(extra)
    return JSONResponse(content=payload, status_code=status_code, headers=_headers(False))


def not_found(label: str) -> JSONResponse:
    return error(f"{label} not found", status_code=404, code="NOT_FOUND")


def invalid_id(param: str = "id") -> JSONResponse:
    return error(f"Invalid {param} format", status_code=400, code="INVALID_ID")


__all__ = ["ok", "ok_list", "error", "not_found", "invalid_id", "PRIVATE_CACHE", "PUBLIC_CACHE"]
