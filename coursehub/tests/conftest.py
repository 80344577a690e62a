"""
Pytest configuration for CourseHub tests.

Why: Force AnyIO to use the asyncio backend and give every test an isolated
application: its own in-memory store, token clock and cache clock, so tests
can move time and count store reads without touching module globals.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

import httpx
import pytest
from httpx import ASGITransport

from coursehub.identity_access.domain import ADMIN, USER
from coursehub.identity_access.passwords import hash_password
from coursehub.storage.memory import InMemoryDocumentStore
from coursehub.web.config import Settings
from coursehub.web.main import create_app

TEST_SECRET = "test-secret-not-for-production-use-0123456789"
PASSWORD = "s3cret-pass"

# bcrypt is deliberately slow; hash once per session.
_PASSWORD_HASH: Optional[str] = None


def password_hash() -> str:
    global _PASSWORD_HASH
    if _PASSWORD_HASH is None:
        _PASSWORD_HASH = hash_password(PASSWORD)
    return _PASSWORD_HASH


class FakeClock:
    """Manually advanced clock usable as `time.time` or `time.monotonic`."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CountingStore(InMemoryDocumentStore):
    """In-memory store that counts `get` calls per collection."""

    def __init__(self) -> None:
        super().__init__()
        self.gets: dict[str, int] = {}

    def get(self, collection: str, doc_id: str):
        self.gets[collection] = self.gets.get(collection, 0) + 1
        return super().get(collection, doc_id)


class FakeMailer:
    """Records outgoing messages; can be told to fail."""

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.fail = False

    def send(self, *, to: str, subject: str, html: str, text: Optional[str] = None) -> bool:
        from coursehub.identity_access.mailer import MailDeliveryError

        if self.fail:
            raise MailDeliveryError("smtp down")
        self.sent.append({"to": to, "subject": subject, "html": html})
        return True


@dataclass
class Harness:
    app: Any
    store: CountingStore
    clock: FakeClock
    cache_clock: FakeClock
    mailer: FakeMailer

    @property
    def services(self):
        return self.app.state.services

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=ASGITransport(app=self.app), base_url="http://test")

    def seed_admin(self, email: str = "admin@example.edu", **extra: Any) -> dict:
        record = {"name": "Admin", "email": email, "password": password_hash(), "role": "admin"}
        record.update(extra)
        return self.services.principals.create(ADMIN, record)

    def seed_user(self, email: str = "student@example.edu", **extra: Any) -> dict:
        record = {
            "name": "Student",
            "email": email,
            "password": password_hash(),
            "role": "student",
            "authProvider": "local",
            "isEmailVerified": False,
        }
        record.update(extra)
        return self.services.principals.create(USER, record)

    def token(self, principal: Mapping[str, Any], kind: Optional[str] = None) -> str:
        return self.services.issuer.issue(principal["id"], kind or principal["type"])

    def auth(self, principal: Mapping[str, Any], kind: Optional[str] = None) -> dict:
        return {"Authorization": f"Bearer {self.token(principal, kind)}"}


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings() -> Settings:
    return Settings(jwt_secret=TEST_SECRET, auth_rate_limit=1000)


@pytest.fixture
def make_harness(settings: Settings) -> Callable[..., Harness]:
    def _make(custom: Optional[Settings] = None, **kwargs: Any) -> Harness:
        store = CountingStore()
        clock = FakeClock()
        cache_clock = FakeClock(start=0.0)
        mailer = FakeMailer()
        app = create_app(
            custom or settings,
            store=store,
            clock=clock,
            cache_clock=cache_clock,
            mailer=mailer,
            start_sweeper=False,
            **kwargs,
        )
        return Harness(app=app, store=store, clock=clock, cache_clock=cache_clock, mailer=mailer)

    return _make


@pytest.fixture
def harness(make_harness) -> Harness:
    return make_harness()


@pytest.fixture(autouse=True)
def _clear_env_overrides(monkeypatch: pytest.MonkeyPatch):
    """Keep env-driven toggles from leaking between tests."""
    for var in ("COURSEHUB_ENV", "JWT_SECRET", "STORE_BACKEND", "FRONTEND_URL", "CLIENT_URL"):
        monkeypatch.delenv(var, raising=False)
    yield
