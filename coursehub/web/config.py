"""
Configuration and startup security checks for CourseHub.

Why: Settings are read from the environment once at application creation so
tests can build isolated apps with explicit values. A single guard refuses to
start obviously insecure production deployments without burdening local
development.

Permissions: The caller needs no special privileges. `ensure_secure_config_on_startup`
only reads environment variables and raises `SystemExit` on fatal
misconfiguration.
"""
from __future__ import annotations

import os
import re
import sys
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple
from urllib.parse import urlparse

from coursehub.identity_access.tokens import DEFAULT_TTL_SECONDS, parse_duration

DEV_JWT_SECRET = "coursehub-dev-secret-change-me"
_PLACEHOLDER_SECRETS = {"", DEV_JWT_SECRET.lower(), "changeme", "change_me", "secret"}


def _is_prod_like(env: str) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


def under_pytest() -> bool:
    return "pytest" in sys.modules or bool(os.getenv("PYTEST_CURRENT_TEST"))


def should_load_dotenv() -> bool:
    """Decide if a local .env file is loaded.

    - Never under pytest; tests provide their own environment.
    - Explicit opt-out via COURSEHUB_ENABLE_DOTENV (default true).
    """
    if under_pytest():
        return False
    flag = (os.getenv("COURSEHUB_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


def _int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = (env.get(key) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise SystemExit(f"Refusing to start: {key} must be an integer (got {raw!r}).") from None


def _csv(value: Optional[str]) -> Tuple[str, ...]:
    return tuple(v.strip().rstrip("/") for v in (value or "").split(",") if v.strip())


@dataclass(frozen=True)
class Settings:
    environment: str = "dev"
    jwt_secret: str = DEV_JWT_SECRET
    user_token_ttl_seconds: int = DEFAULT_TTL_SECONDS
    admin_token_ttl_seconds: int = DEFAULT_TTL_SECONDS
    principal_cache_ttl_seconds: int = 300
    principal_cache_sweep_seconds: int = 60
    store_backend: str = "memory"
    database_url: str = ""
    store_timeout_ms: int = 8000
    client_urls: Tuple[str, ...] = ("http://localhost:3000",)
    frontend_url: str = "http://localhost:3000"
    google_client_id: str = ""
    google_client_secret: str = ""
    google_callback_url: str = "http://localhost:5000/api/users/google/callback"
    email_host: str = "smtp.gmail.com"
    email_port: int = 587
    email_user: str = ""
    email_password: str = ""
    email_from: str = ""
    auth_rate_limit: int = 10
    auth_rate_window_seconds: int = 3600

    @property
    def is_prod_like(self) -> bool:
        return _is_prod_like(self.environment)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        try:
            user_ttl = parse_duration(env.get("JWT_EXPIRES_IN"))
            admin_ttl = parse_duration(env.get("ADMIN_JWT_EXPIRES_IN") or env.get("JWT_EXPIRES_IN"))
        except ValueError as exc:
            raise SystemExit(f"Refusing to start: {exc}") from None
        frontend = (env.get("FRONTEND_URL") or "").strip().rstrip("/")
        clients = _csv(env.get("CLIENT_URL")) or ((frontend,) if frontend else ("http://localhost:3000",))
        return cls(
            environment=(env.get("COURSEHUB_ENV") or "dev").strip().lower(),
            jwt_secret=(env.get("JWT_SECRET") or DEV_JWT_SECRET).strip(),
            user_token_ttl_seconds=user_ttl,
            admin_token_ttl_seconds=admin_ttl,
            principal_cache_ttl_seconds=_int(env, "PRINCIPAL_CACHE_TTL_SECONDS", 300),
            principal_cache_sweep_seconds=_int(env, "PRINCIPAL_CACHE_SWEEP_SECONDS", 60),
            store_backend=(env.get("STORE_BACKEND") or "memory").strip().lower(),
            database_url=(env.get("DATABASE_URL") or env.get("COURSEHUB_DATABASE_URL") or "").strip(),
            store_timeout_ms=_int(env, "STORE_TIMEOUT_MS", 8000),
            client_urls=clients,
            frontend_url=frontend or clients[0],
            google_client_id=(env.get("GOOGLE_CLIENT_ID") or "").strip(),
            google_client_secret=(env.get("GOOGLE_CLIENT_SECRET") or "").strip(),
            google_callback_url=(
                env.get("GOOGLE_CALLBACK_URL") or "http://localhost:5000/api/users/google/callback"
            ).strip(),
            email_host=(env.get("EMAIL_HOST") or "smtp.gmail.com").strip(),
            email_port=_int(env, "EMAIL_PORT", 587),
            email_user=(env.get("EMAIL_USER") or "").strip(),
            email_password=env.get("EMAIL_PASSWORD") or "",
            email_from=(env.get("EMAIL_FROM") or "").strip(),
            auth_rate_limit=_int(env, "AUTH_RATE_LIMIT", 10),
            auth_rate_window_seconds=_int(env, "AUTH_RATE_WINDOW_SECONDS", 3600),
        )


def _dsn_disables_tls(dsn: str) -> bool:
    return bool(re.search(r"sslmode\s*=\s*disable", dsn or ""))


def ensure_secure_config_on_startup(env: Optional[Mapping[str, str]] = None) -> None:
    """Fail fast on insecure production configuration.

    Intent: Abort process startup when obviously insecure settings are detected
    in production/staging. Development remains permissive for convenience.

    Checks:
    - JWT_SECRET must be set, not a placeholder and at least 32 characters.
    - FRONTEND_URL and CLIENT_URL must use https.
    - DATABASE_URL must not explicitly disable TLS when the db store is used.
    """
    env = os.environ if env is None else env
    if not _is_prod_like(env.get("COURSEHUB_ENV", "dev")):
        return  # dev/test remain permissive

    # 1) Token signing secret
    secret = (env.get("JWT_SECRET") or "").strip()
    if secret.lower() in _PLACEHOLDER_SECRETS or len(secret) < 32:
        raise SystemExit(
            "Refusing to start: JWT_SECRET is unset, a placeholder or shorter than 32 characters in production."
        )

    # 2) Browser-facing origins must use https
    def _must_be_https(url_value: str, var_name: str) -> None:
        if not url_value:
            return
        parsed = urlparse(url_value.strip())
        if parsed.scheme.lower() != "https" or not parsed.netloc:
            raise SystemExit(f"Refusing to start: {var_name} must use https in production (got {url_value!r}).")

    _must_be_https(env.get("FRONTEND_URL", ""), "FRONTEND_URL")
    for origin in _csv(env.get("CLIENT_URL")):
        _must_be_https(origin, "CLIENT_URL")

    # 3) Postgres TLS: basic guard to avoid explicit disable
    if (env.get("STORE_BACKEND") or "memory").strip().lower() == "db":
        dsn = env.get("DATABASE_URL") or env.get("COURSEHUB_DATABASE_URL") or ""
        if not dsn:
            raise SystemExit("Refusing to start: STORE_BACKEND=db requires DATABASE_URL.")
        if _dsn_disables_tls(dsn):
            raise SystemExit(
                "Refusing to start: DATABASE_URL contains sslmode=disable in production. Use sslmode=require."
            )


__all__ = ["Settings", "ensure_secure_config_on_startup", "should_load_dotenv", "under_pytest", "DEV_JWT_SECRET"]
