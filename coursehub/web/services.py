"""
Service container and wiring.

One `Services` instance is built per application (or per CLI run) from
`Settings`. Tests pass their own store, clocks, mailer and OAuth client.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from coursehub.identity_access.accounts import AccountService
from coursehub.identity_access.cache import PrincipalCache
from coursehub.identity_access.gate import AuthGate
from coursehub.identity_access.mailer import MailConfig, Mailer
from coursehub.identity_access.oidc import GoogleOAuthClient, GoogleOAuthConfig
from coursehub.identity_access.stores import PrincipalStore, StateStore
from coursehub.identity_access.tokens import TokenIssuer
from coursehub.storage.memory import InMemoryDocumentStore
from coursehub.storage.ports import DocumentStore
from coursehub.teaching.courses import CourseService
from coursehub.teaching.feedback import FeedbackService
from coursehub.teaching.kinds import KINDS
from coursehub.teaching.scoped import ScopedContentRepository

from .config import Settings

logger = logging.getLogger("coursehub.web")


@dataclass
class Services:
    settings: Settings
    store: DocumentStore
    principals: PrincipalStore
    issuer: TokenIssuer
    cache: PrincipalCache
    gate: AuthGate
    accounts: AccountService
    mailer: Mailer
    oauth: GoogleOAuthClient
    oauth_states: StateStore
    courses: CourseService
    feedback: FeedbackService
    content: Dict[str, ScopedContentRepository]


def _build_store(settings: Settings) -> DocumentStore:
    if settings.store_backend == "db":
        from coursehub.storage.repo_db import DBDocumentStore

        return DBDocumentStore(dsn=settings.database_url or None, timeout_ms=settings.store_timeout_ms)
    if settings.store_backend != "memory":
        raise SystemExit(f"Refusing to start: unknown STORE_BACKEND {settings.store_backend!r}.")
    if settings.is_prod_like:
        logger.warning("Using the in-memory store in %s; data is lost on restart", settings.environment)
    return InMemoryDocumentStore()


def build_services(
    settings: Settings,
    *,
    store: Optional[DocumentStore] = None,
    clock: Callable[[], float] = time.time,
    cache_clock: Callable[[], float] = time.monotonic,
    mailer: Optional[Mailer] = None,
    oauth: Optional[GoogleOAuthClient] = None,
) -> Services:
    """Assemble every service from settings; tests inject store, clocks and adapters."""
    store = store if store is not None else _build_store(settings)
    principals = PrincipalStore(store)
    issuer = TokenIssuer(
        settings.jwt_secret,
        admin_ttl_seconds=settings.admin_token_ttl_seconds,
        user_ttl_seconds=settings.user_token_ttl_seconds,
        clock=clock,
    )
    cache = PrincipalCache(settings.principal_cache_ttl_seconds, clock=cache_clock)
    mailer = mailer or Mailer(
        MailConfig(
            host=settings.email_host,
            port=settings.email_port,
            user=settings.email_user,
            password=settings.email_password,
            sender=settings.email_from,
        )
    )
    oauth = oauth or GoogleOAuthClient(
        GoogleOAuthConfig(
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
            redirect_uri=settings.google_callback_url,
        )
    )
    return Services(
        settings=settings,
        store=store,
        principals=principals,
        issuer=issuer,
        cache=cache,
        gate=AuthGate(issuer, principals, cache),
        accounts=AccountService(
            principals, issuer, cache, mailer, frontend_url=settings.frontend_url, clock=clock
        ),
        mailer=mailer,
        oauth=oauth,
        oauth_states=StateStore(clock=clock),
        courses=CourseService(store),
        feedback=FeedbackService(store),
        content={kind.name: ScopedContentRepository(kind, store) for kind in KINDS},
    )


__all__ = ["Services", "build_services"]
