"CourseHub API"
from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Callable, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException

from coursehub import __version__
from coursehub.identity_access.cache import CacheSweeper
from coursehub.identity_access.errors import AccountError, AuthError
from coursehub.identity_access.mailer import Mailer
from coursehub.identity_access.oidc import GoogleOAuthClient
from coursehub.storage.errors import StoreError
from coursehub.storage.ports import DocumentStore

from .config import Settings, ensure_secure_config_on_startup, should_load_dotenv
from .ratelimit import RateLimitExceeded, auth_rate, build_auth_limiter, retry_after_seconds
from .responses import error, ok
from .routes.auth import auth_router
from .routes.content import build_content_routers
from .routes.courses import courses_router
from .routes.feedback import feedback_router
from .routes.users import build_credentials_router, users_router
from .services import build_services

if should_load_dotenv():
    load_dotenv()

logger = logging.getLogger("coursehub.web")


# --- Error envelopes ------------------------------------------------------------------

def _validation_message(errors) -> str:
    messages = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        msg = str(err.get("msg", "Invalid value"))
        messages.append(f"{'.'.join(loc)}: {msg}" if loc else msg)
    return ", ".join(messages) or "Validation failed"


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AuthError)
    async def _auth_error(request: Request, exc: AuthError):
        logger.info("Auth rejected %s %s: %s", request.method, request.url.path, exc.code)
        return error(exc.message, status_code=exc.status_code, code=exc.code.upper())

    @app.exception_handler(AccountError)
    async def _account_error(request: Request, exc: AccountError):
        return error(exc.message, status_code=exc.status_code, code=exc.code.upper())

    @app.exception_handler(StoreError)
    async def _store_error(request: Request, exc: StoreError):
        logger.error(
            "Store failure on %s %s (operation=%s): %s",
            request.method,
            request.url.path,
            exc.operation,
            exc.__class__.__name__,
        )
        message = (
            "Service temporarily unavailable. Please try again."
            if exc.status_code == 503
            else "An unexpected error occurred"
        )
        return error(message, status_code=exc.status_code, code=exc.code.upper())

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError):
        return error(_validation_message(exc.errors()), status_code=400, code="VALIDATION_ERROR")

    @app.exception_handler(ValidationError)
    async def _model_validation(request: Request, exc: ValidationError):
        return error(_validation_message(exc.errors()), status_code=400, code="VALIDATION_ERROR")

    @app.exception_handler(RateLimitExceeded)
    async def _rate_limited(request: Request, exc: RateLimitExceeded):
        logger.info("Rate limit %s hit on %s from %s", exc.detail, request.url.path, get_remote_address(request))
        response = error("Too many requests, please try again later.", status_code=429, code="RATE_LIMITED")
        response.headers["Retry-After"] = str(retry_after_seconds(exc))
        return response

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return error("Route not found", status_code=404, code="NOT_FOUND")
        return error(str(exc.detail), status_code=exc.status_code)


# --- App factory ------------------------------------------------------------------------

def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[DocumentStore] = None,
    clock: Callable[[], float] = time.time,
    cache_clock: Callable[[], float] = time.monotonic,
    mailer: Optional[Mailer] = None,
    oauth: Optional[GoogleOAuthClient] = None,
    start_sweeper: bool = True,
) -> FastAPI:
    if settings is None:
        # Minimal production safety checks (fail-fast on insecure config)
        ensure_secure_config_on_startup()
        settings = Settings.from_env()
    services = build_services(
        settings, store=store, clock=clock, cache_clock=cache_clock, mailer=mailer, oauth=oauth
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ensure_schema = getattr(services.store, "ensure_schema", None)
        if callable(ensure_schema):
            ensure_schema()
        sweeper = CacheSweeper(services.cache, settings.principal_cache_sweep_seconds)
        if start_sweeper:
            sweeper.start()
        logger.info("CourseHub started (env=%s store=%s)", settings.environment, settings.store_backend)
        try:
            yield
        finally:
            await sweeper.stop()

    app = FastAPI(
        title="CourseHub",
        description="University course management API",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services
    app.state.limiter = build_auth_limiter(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.client_urls),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        # JSON API: nothing to render, nothing to frame.
        response.headers.setdefault("Content-Security-Policy", "default-src 'none'; frame-ancestors 'none'")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        if settings.is_prod_like:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response

    _register_error_handlers(app)

    @app.get("/api/health")
    async def health_check():
        # Minimal health endpoint used by orchestrators and tests.
        return ok({"status": "healthy", "version": __version__}, "CourseHub API is running")

    app.include_router(auth_router)
    app.include_router(build_credentials_router(app.state.limiter, auth_rate(settings)))
    app.include_router(users_router)
    app.include_router(courses_router)
    for router in build_content_routers():
        app.include_router(router)
    app.include_router(feedback_router)
    return app


# Served with `uvicorn coursehub.web.main:app`.
app = create_app()

__all__ = ["app", "create_app"]
