"""
Test configuration and fixtures.

Provides:
- In-memory SQLite store (fresh per test)
- Fake Supabase auth client that fires auth-state callbacks synchronously
- Session manager and TestClient wired to both
"""
import itertools
import os
import time
import uuid
from dataclasses import dataclass
from types import SimpleNamespace
from typing import Callable

import pytest

# Settings are read on first import; point them at test values
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"

from fastapi.testclient import TestClient
from jose import jwt
from supabase import AuthApiError

from adahi.core.config import get_settings
from adahi.database import build_engine, create_db_and_tables
from adahi.gateways.identity import IdentityGateway
from adahi.gateways.store import DocumentStore
from adahi.main import app
from adahi.schemas.submission import SubmissionData
from adahi.schemas.user import UserRead
from adahi.services.session_context import SessionContext
from adahi.services.session_manager import SessionManager

PASSWORD = "secret123"


def mint_token(user_id: str, expires_in: int = 3600) -> str:
    settings = get_settings()
    claims = {
        "sub": user_id,
        "exp": int(time.time()) + expires_in,
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(claims, settings.SUPABASE_JWT_SECRET, algorithm=settings.SUPABASE_JWT_ALG)


# =============================================================================
# Fake Supabase Auth
# =============================================================================

@dataclass
class FakeAccount:
    id: str
    email: str
    password: str


class FakeAuthBackend:
    """Accounts shared by every fake auth client (one per session)."""

    def __init__(self):
        self.accounts: dict[str, FakeAccount] = {}
        self.clients: list["FakeAuthClient"] = []
        # When True sign_up returns no session (email confirmation flow)
        self.confirm_email = False

    def add_account(self, email: str, password: str) -> FakeAccount:
        account = FakeAccount(id=str(uuid.uuid4()), email=email, password=password)
        self.accounts[email] = account
        return account

    def client(self) -> "FakeAuthClient":
        client = FakeAuthClient(self)
        self.clients.append(client)
        return client


class FakeAuthClient:
    """Mimics `supabase.Client.auth` for the calls the gateway makes."""

    def __init__(self, backend: FakeAuthBackend):
        self.backend = backend
        self.session = None
        self._listeners: dict[int, Callable] = {}
        self._ids = itertools.count(1)

    def _emit(self, event: str) -> None:
        for callback in list(self._listeners.values()):
            callback(event, self.session)

    def _start_session(self, account: FakeAccount):
        user = SimpleNamespace(id=account.id, email=account.email, identities=[{"provider": "email"}])
        self.session = SimpleNamespace(user=user, access_token=mint_token(account.id))
        self._emit("SIGNED_IN")
        return SimpleNamespace(user=user, session=self.session)

    def sign_in_with_password(self, credentials: dict):
        account = self.backend.accounts.get(credentials["email"])
        if account is None or account.password != credentials["password"]:
            raise AuthApiError("Invalid login credentials", 400, "invalid_credentials")
        return self._start_session(account)

    def sign_up(self, credentials: dict):
        if credentials["email"] in self.backend.accounts:
            raise AuthApiError("User already registered", 422, "user_already_exists")
        account = self.backend.add_account(credentials["email"], credentials["password"])
        if self.backend.confirm_email:
            user = SimpleNamespace(id=account.id, email=account.email, identities=[{"provider": "email"}])
            return SimpleNamespace(user=user, session=None)
        return self._start_session(account)

    def sign_out(self) -> None:
        self.session = None
        self._emit("SIGNED_OUT")

    def get_session(self):
        return self.session

    def on_auth_state_change(self, callback):
        key = next(self._ids)
        self._listeners[key] = callback
        return SimpleNamespace(unsubscribe=lambda: self._listeners.pop(key, None))

    def refresh_token(self) -> None:
        """Simulate a background token refresh for the same account."""
        self.session = SimpleNamespace(
            user=self.session.user,
            access_token=mint_token(self.session.user.id),
        )
        self._emit("TOKEN_REFRESHED")


# =============================================================================
# Store / Session Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def engine():
    """Fresh in-memory database per test."""
    engine = build_engine("sqlite://")
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def store(engine) -> DocumentStore:
    return DocumentStore(engine)


@pytest.fixture(scope="function")
def auth_backend() -> FakeAuthBackend:
    return FakeAuthBackend()


@pytest.fixture(scope="function")
def sent_emails() -> list[tuple[str, str, str]]:
    return []


@pytest.fixture(scope="function")
def manager(store, auth_backend, sent_emails) -> SessionManager:
    manager = SessionManager(
        store,
        identity_factory=lambda: IdentityGateway(auth_backend.client()),
        email_sender=lambda to, subject, body: sent_emails.append((to, subject, body)),
    )
    yield manager
    manager.close_all()


@pytest.fixture(scope="function")
def make_user(store, auth_backend) -> Callable[..., UserRead]:
    """Create an auth account plus its profile document."""

    def _make(username: str, email: str, is_admin: bool = False) -> UserRead:
        account = auth_backend.add_account(email, PASSWORD)
        return store.put_user(
            UserRead(id=account.id, username=username, email=email, is_admin=is_admin)
        )

    return _make


@pytest.fixture(scope="function")
def signed_in(manager) -> Callable[[str], SessionContext]:
    """Open a context and sign it in; torn down with the manager."""
    opened: list[SessionContext] = []

    def _sign_in(identifier: str, password: str = PASSWORD) -> SessionContext:
        context = manager.open()
        opened.append(context)
        assert context.login(identifier, password) is not None
        return context

    yield _sign_in
    for context in opened:
        context.teardown()


@pytest.fixture(scope="function")
def regular_user(make_user) -> UserRead:
    return make_user("ahmad", "ahmad@example.com")


@pytest.fixture(scope="function")
def admin_user(make_user) -> UserRead:
    return make_user("admin", "admin@example.com", is_admin=True)


@pytest.fixture
def submission_payload() -> dict:
    """Valid form payload as the client sends it."""
    return {
        "donor_name": "Ahmad",
        "sacrifice_for": "Father",
        "phone_number": "0791234567",
        "wants_to_attend": "no",
        "wants_from_sacrifice": "no",
        "sacrifice_wishes": "",
        "payment_confirmed": "no",
        "receipt_book_number": "",
        "voucher_number": "",
        "through_intermediary": "no",
        "intermediary_name": "",
        "distribution_preference": "gaza",
    }


@pytest.fixture
def submission_data() -> Callable[..., SubmissionData]:
    def _data(**overrides) -> SubmissionData:
        values = {
            "donor_name": "Ahmad",
            "sacrifice_for": "Father",
            "phone_number": "0791234567",
            "wants_to_attend": False,
            "wants_from_sacrifice": False,
            "payment_confirmed": False,
            "through_intermediary": False,
            "distribution_preference": "gaza",
        }
        values.update(overrides)
        return SubmissionData(**values)

    return _data


# =============================================================================
# HTTP Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def client(manager) -> TestClient:
    """TestClient on the app with the test session manager installed."""
    app.state.session_manager = manager
    with_client = TestClient(app, follow_redirects=False)
    yield with_client
    with_client.close()


@pytest.fixture
def login_as(client) -> Callable[[str], str]:
    """Sign the client in; returns the session id from the cookie."""

    def _login(identifier: str, password: str = PASSWORD) -> str:
        response = client.post(
            "/auth/login",
            json={"identifier": identifier, "password": password},
        )
        assert response.status_code == 200, response.json()
        return response.cookies[get_settings().SESSION_COOKIE_NAME]

    return _login


@pytest.fixture
def expired_token() -> Callable[[str], str]:
    """Access token for `user_id` that expired a minute ago."""
    return lambda user_id: mint_token(user_id, expires_in=-60)


@pytest.fixture
def password() -> str:
    """Password of every account created by `make_user`."""
    return PASSWORD
