"""Bootstrap an administrator account.

The admin API only lets an existing administrator create another one, so the
first account is created from the command line against the configured store.

Usage example:

    python -m coursehub.tools.create_admin \
        --name "Course Admin" --email admin@example.edu --password '...'

Environment variables (ADMIN_NAME, ADMIN_EMAIL, ADMIN_PASSWORD) can be used
instead of CLI flags. The store follows STORE_BACKEND/DATABASE_URL like the API.
"""
from __future__ import annotations

import argparse
import logging
import os
from typing import Optional, Sequence

from coursehub.identity_access.domain import ADMIN_ROLES
from coursehub.identity_access.errors import AccountError
from coursehub.identity_access.passwords import MIN_PASSWORD_LENGTH
from coursehub.storage.ports import DocumentStore
from coursehub.web.config import Settings
from coursehub.web.services import build_services

logger = logging.getLogger("coursehub.tools.create_admin")


def _mask_email(email: str) -> str:
    local, _, domain = (email or "").partition("@")
    return f"{local[:2]}***@{domain}" if domain else "***"


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a CourseHub administrator")
    parser.add_argument("--name", default=os.getenv("ADMIN_NAME", "Administrator"))
    parser.add_argument("--email", default=os.getenv("ADMIN_EMAIL"))
    parser.add_argument("--password", default=os.getenv("ADMIN_PASSWORD"))
    parser.add_argument("--role", default="admin", choices=sorted(ADMIN_ROLES))
    return parser.parse_args(argv)


def create_admin(
    *,
    name: str,
    email: str,
    password: str,
    role: str = "admin",
    settings: Optional[Settings] = None,
    store: Optional[DocumentStore] = None,
) -> dict:
    """Create the administrator and return it without credential fields."""
    services = build_services(settings or Settings.from_env(), store=store)
    ensure_schema = getattr(services.store, "ensure_schema", None)
    if callable(ensure_schema):
        ensure_schema()
    return services.accounts.create_admin(name=name, email=email, password=password, role=role)


def main(argv: Optional[Sequence[str]] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(name)s:%(message)s")
    args = _parse_args(argv)

    if not args.email:
        raise SystemExit("--email or ADMIN_EMAIL must be provided")
    if not args.password or len(args.password) < MIN_PASSWORD_LENGTH:
        raise SystemExit(f"--password or ADMIN_PASSWORD must be at least {MIN_PASSWORD_LENGTH} characters")

    try:
        admin = create_admin(name=args.name, email=args.email, password=args.password, role=args.role)
    except AccountError as exc:
        raise SystemExit(f"Could not create admin: {exc.message}") from None
    logger.info("Created %s %s (id=%s)", admin.get("role"), _mask_email(admin.get("email", "")), admin["id"])


if __name__ == "__main__":  # pragma: no cover - manual entry point
    main()
