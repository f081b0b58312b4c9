"""Shared test fixtures.

The database is an in-memory SQLite instance and the identity provider is an
in-process fake served through ``httpx.MockTransport``.
"""

import base64
import hashlib
import json
import time
import uuid
from datetime import datetime, timezone

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from budget_api import main as main_module
from budget_api.api.deps import get_db
from budget_api.main import app
from budget_api.models import Base
from budget_api.services.identity_client import IdentityClient

FAKE_SIGNING_KEY = "test-signing-key"


class FakeIdentityProvider:
    """Just enough of the GoTrue ``/auth/v1`` API for the tests."""

    def __init__(self):
        self.users: dict[str, dict] = {}  # email -> user record
        self.access_tokens: dict[str, str] = {}  # token -> user id
        self.refresh_tokens: dict[str, str] = {}
        self.pending_codes: dict[str, tuple[str, str]] = {}  # auth code -> (user id, challenge)
        self.calls: list[str] = []

    # ── helpers used directly by tests ────────────
    def create_user(self, email: str, password: str = "secret123", full_name: str = "Test User",
                    confirmed: bool = True) -> dict:
        user = {
            "id": str(uuid.uuid4()),
            "email": email,
            "password": password,
            "email_confirmed_at": datetime.now(timezone.utc).isoformat() if confirmed else None,
            "user_metadata": {"full_name": full_name},
        }
        self.users[email] = user
        return user

    def confirm(self, email: str) -> None:
        self.users[email]["email_confirmed_at"] = datetime.now(timezone.utc).isoformat()

    def issue_session(self, user_id: str, expires_in: int = 3600) -> dict:
        now = int(time.time())
        access_token = jwt.encode(
            {"sub": user_id, "exp": now + expires_in, "jti": uuid.uuid4().hex},
            FAKE_SIGNING_KEY,
            algorithm="HS256",
        )
        refresh_token = uuid.uuid4().hex
        self.access_tokens[access_token] = user_id
        self.refresh_tokens[refresh_token] = user_id
        return {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "expires_in": expires_in,
            "expires_at": now + expires_in,
            "token_type": "bearer",
            "user": self._public(self._by_id(user_id)),
        }

    def revoke(self, access_token: str) -> None:
        self.access_tokens.pop(access_token, None)

    def pending_code_for(self, email: str) -> str:
        user_id = self.users[email]["id"]
        return next(code for code, (uid, _) in self.pending_codes.items() if uid == user_id)

    def _by_id(self, user_id: str) -> dict:
        return next(u for u in self.users.values() if u["id"] == user_id)

    @staticmethod
    def _public(user: dict) -> dict:
        return {k: v for k, v in user.items() if k != "password"}

    # ── transport ─────────────────────────────────
    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append(path)
        body = request.read()
        payload = json.loads(body) if body else {}

        if path == "/auth/v1/signup":
            return self._signup(payload)
        if path == "/auth/v1/token":
            grant_type = request.url.params.get("grant_type")
            if grant_type == "password":
                return self._password_grant(payload)
            if grant_type == "refresh_token":
                return self._refresh_grant(payload)
            if grant_type == "pkce":
                return self._pkce_grant(payload)
        if path == "/auth/v1/verify":
            return self._verify(payload)
        if path == "/auth/v1/health":
            return httpx.Response(200, json={"name": "GoTrue", "version": "test"})
        if path == "/auth/v1/user":
            return self._user(request)
        return httpx.Response(404, json={"msg": "not found"})

    def _signup(self, payload: dict) -> httpx.Response:
        if payload["email"] in self.users:
            return httpx.Response(400, json={"msg": "User already registered"})
        user = self.create_user(
            payload["email"],
            payload["password"],
            payload.get("data", {}).get("full_name", ""),
            confirmed=False,
        )
        if payload.get("code_challenge"):
            self.pending_codes[uuid.uuid4().hex] = (user["id"], payload["code_challenge"])
        return httpx.Response(200, json=self._public(user))

    def _password_grant(self, payload: dict) -> httpx.Response:
        user = self.users.get(payload.get("email"))
        if user is None or user["password"] != payload.get("password"):
            return httpx.Response(
                400, json={"error": "invalid_grant", "error_description": "Invalid login credentials"}
            )
        return httpx.Response(200, json=self.issue_session(user["id"]))

    def _refresh_grant(self, payload: dict) -> httpx.Response:
        user_id = self.refresh_tokens.pop(payload.get("refresh_token"), None)
        if user_id is None:
            return httpx.Response(
                400, json={"error": "invalid_grant", "error_description": "Invalid Refresh Token"}
            )
        return httpx.Response(200, json=self.issue_session(user_id))

    def _pkce_grant(self, payload: dict) -> httpx.Response:
        entry = self.pending_codes.pop(payload.get("auth_code"), None)
        if entry is None:
            return httpx.Response(400, json={"msg": "invalid flow state"})
        user_id, challenge = entry
        digest = hashlib.sha256(payload["code_verifier"].encode()).digest()
        if base64.urlsafe_b64encode(digest).rstrip(b"=").decode() != challenge:
            return httpx.Response(400, json={"msg": "code challenge does not match"})
        self._by_id(user_id)["email_confirmed_at"] = datetime.now(timezone.utc).isoformat()
        return httpx.Response(200, json=self.issue_session(user_id))

    def _verify(self, payload: dict) -> httpx.Response:
        user = self.users.get(payload.get("token_hash"))  # tests use the email as token hash
        if user is None:
            return httpx.Response(403, json={"msg": "Email link is invalid or has expired"})
        user["email_confirmed_at"] = datetime.now(timezone.utc).isoformat()
        return httpx.Response(200, json=self.issue_session(user["id"]))

    def _user(self, request: httpx.Request) -> httpx.Response:
        token = request.headers.get("authorization", "").removeprefix("Bearer ")
        user_id = self.access_tokens.get(token)
        if user_id is None:
            return httpx.Response(401, json={"msg": "invalid JWT: unable to parse or verify signature"})
        return httpx.Response(200, json=self._public(self._by_id(user_id)))


@pytest.fixture
def identity():
    return FakeIdentityProvider()


@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def client(identity, session_factory, monkeypatch):
    """Async test client for the FastAPI app."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    identity_client = IdentityClient(
        "http://identity.test", "anon-key", transport=httpx.MockTransport(identity.handler)
    )
    monkeypatch.setattr(app.state, "identity_client", identity_client)
    monkeypatch.setattr(main_module, "async_session_factory", session_factory)
    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
    await identity_client.aclose()


@pytest.fixture
def auth_headers(identity):
    """Bearer headers for a confirmed user."""
    user = identity.create_user("alice@example.com")
    session = identity.issue_session(user["id"])
    return {"Authorization": f"Bearer {session['access_token']}"}


@pytest.fixture
def other_headers(identity):
    """Bearer headers for a second, unrelated user."""
    user = identity.create_user("bob@example.com")
    session = identity.issue_session(user["id"])
    return {"Authorization": f"Bearer {session['access_token']}"}


@pytest.fixture
async def budget(client, auth_headers):
    response = await client.post(
        "/api/budgets",
        json={"name": "Groceries", "amount": 500, "period": "monthly"},
        headers=auth_headers,
    )
    assert response.status_code == 201
    return response.json()
