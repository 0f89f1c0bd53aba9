"""Shared fakes for the identity provider and record store."""

import os
import sys
from typing import Any, Optional

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import studio.session
from studio.errors import ErrorKind, Result, classify_provider_error
from studio.models.identity import ProviderSession, User
from studio.notifications import Notifier
from studio.providers.base import (
    AuthChangeEvent,
    AuthListeners,
    IdentityProvider,
    RecordStore,
)
from studio.session import RetryPolicy, SessionManager


def make_session(user_id: str = "user-1", email: str = "jane@example.com") -> ProviderSession:
    return ProviderSession(
        access_token=f"token-{user_id}",
        refresh_token="refresh",
        user=User(id=user_id, email=email, user_metadata={"full_name": "Jane Doe"}),
    )


def provider_error(message: str, status: Optional[int] = None) -> Result:
    return Result(error=classify_provider_error(message, status))


class Scripted:
    """Per-method queue of canned outcomes (Result or Exception)."""

    def __init__(self) -> None:
        self._outcomes: dict[str, list[Any]] = {}
        self.calls: list[tuple] = []

    def script(self, method: str, *outcomes: Any) -> None:
        self._outcomes.setdefault(method, []).extend(outcomes)

    def next(self, method: str, *args: Any) -> Optional[Result]:
        self.calls.append((method, *args))
        queue = self._outcomes.get(method)
        if not queue:
            return None
        outcome = queue.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def count(self, method: str) -> int:
        return sum(1 for c in self.calls if c[0] == method)


class FakeIdentityProvider(IdentityProvider, Scripted):
    """In-memory provider. Successful sign-in/verify/sign-out push events like the real one."""

    def __init__(self, session: Optional[ProviderSession] = None) -> None:
        Scripted.__init__(self)
        self.session = session
        self.listeners = AuthListeners()
        self.get_session_error: Optional[Exception] = None

    def push(self, event: AuthChangeEvent, session: Optional[ProviderSession]) -> None:
        self.session = session
        self.listeners.emit(event, session)

    def on_auth_state_change(self, listener):
        return self.listeners.add(listener)

    async def get_session(self):
        self.calls.append(("get_session",))
        if self.get_session_error is not None:
            raise self.get_session_error
        return self.session

    async def sign_up(self, email, password, *, redirect_to, metadata):
        return self.next("sign_up", email, password, redirect_to, metadata) or Result.success()

    async def sign_in_with_password(self, email, password):
        result = self.next("sign_in_with_password", email, password) or Result.success()
        if result.ok:
            self.push(AuthChangeEvent.SIGNED_IN, make_session(email=email))
        return result

    async def sign_out(self):
        result = self.next("sign_out") or Result.success()
        if result.ok:
            self.push(AuthChangeEvent.SIGNED_OUT, None)
        return result

    async def sign_in_with_oauth(self, provider, *, redirect_to):
        return self.next("sign_in_with_oauth", provider, redirect_to) or Result.success(
            f"https://auth.example/authorize?provider={provider}"
        )

    async def sign_in_with_otp(self, phone, *, channel="sms"):
        return self.next("sign_in_with_otp", phone, channel) or Result.success()

    async def verify_otp(self, phone, token, *, type="sms"):
        result = self.next("verify_otp", phone, token, type) or Result.success()
        if result.ok:
            self.push(AuthChangeEvent.SIGNED_IN, make_session("phone-user", email=""))
        return result

    async def get_user(self, access_token):
        result = self.next("get_user", access_token)
        if result is not None:
            return result
        if self.session and self.session.access_token == access_token:
            return Result.success(self.session.user)
        return Result.failure(ErrorKind.INVALID_CREDENTIALS, "invalid JWT", status=401)


class FakeRecordStore(RecordStore, Scripted):
    def __init__(self) -> None:
        Scripted.__init__(self)
        self.tables: dict[str, list[dict]] = {}

    async def insert(self, table, rows):
        result = self.next("insert", table, rows)
        if result is not None:
            return result
        self.tables.setdefault(table, []).extend(dict(r) for r in rows)
        return Result.success()

    async def select(self, table, *, filters=None, order_by=None, descending=True, limit=None):
        result = self.next("select", table, filters)
        if result is not None:
            return result
        rows = [
            r for r in self.tables.get(table, [])
            if all(r.get(k) == v for k, v in (filters or {}).items())
        ]
        if order_by:
            rows.sort(key=lambda r: r.get(order_by) or "", reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return Result.success(rows)

    async def update(self, table, record_id, fields):
        result = self.next("update", table, record_id, fields)
        if result is not None:
            return result
        for row in self.tables.get(table, []):
            if row.get("id") == record_id:
                row.update(fields)
        return Result.success()


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ── Fixtures ───────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _no_active_manager():
    studio.session._active_manager = None
    yield
    studio.session._active_manager = None


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def provider():
    return FakeIdentityProvider()


@pytest.fixture
def store():
    return FakeRecordStore()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
async def manager(provider, notifier, sleep):
    mgr = SessionManager(
        provider,
        notifier,
        redirect_url="https://studio.example/",
        retry_policy=RetryPolicy(max_retries=2, initial_delay=0.5, backoff=1.0),
        sleep=sleep,
    )
    await mgr.start()
    yield mgr
    await mgr.close()


@pytest.fixture
async def signed_in(manager, provider):
    provider.push(AuthChangeEvent.SIGNED_IN, make_session())
    return manager
