"""Login sessions, the session store and password hashing."""

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, select

from songvote.application.session_manager import SessionManager
from songvote.constants import SESSION_COOKIE_NAME
from songvote.infrastructure.database.models import SessionModel
from songvote.infrastructure.database.session_store import DatabaseSessionStore
from songvote.infrastructure.security import PasswordHasher
from songvote.main import sweep_sessions


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture(name="clock")
def clock_fixture() -> FakeClock:
    return FakeClock()


def _stored_tokens(session: Session) -> list[str]:
    return list(session.exec(select(SessionModel.token)).all())


@pytest.fixture(name="sessions")
def sessions_fixture(session: Session, clock: FakeClock) -> SessionManager:
    store = DatabaseSessionStore(session)
    return SessionManager(store, lifetime_seconds=60, clock=clock)


# Password hashing


def test_hash_is_salted_and_verifies(hasher: PasswordHasher):
    first = hasher.hash("p@ssword")
    second = hasher.hash("p@ssword")
    assert first != second
    assert hasher.verify("p@ssword", first)
    assert not hasher.verify("wrong", first)


def test_malformed_hash_never_verifies(hasher: PasswordHasher):
    assert not hasher.verify("p@ssword", "not-a-bcrypt-hash")
    assert not hasher.verify("p@ssword", "")


# Session manager


def test_put_and_get(sessions: SessionManager):
    token = sessions.new_token()
    sessions.put(token, "username", "alice")
    sessions.put(token, "user_id", 1)
    assert sessions.get(token, "username") == "alice"
    assert sessions.get(token, "user_id") == 1
    assert sessions.get(token, "missing", "default") == "default"


def test_tokens_are_unique(sessions: SessionManager):
    assert len({sessions.new_token() for _ in range(50)}) == 50


def test_unknown_or_missing_token_reads_default(sessions: SessionManager):
    assert sessions.get(None, "username") is None
    assert sessions.get("no-such-token", "username") is None


def test_expiry_is_fixed_at_creation(sessions: SessionManager, clock: FakeClock):
    token = sessions.new_token()
    sessions.put(token, "username", "alice")
    clock.now += 50
    sessions.put(token, "user_id", 1)
    clock.now += 20
    assert sessions.get(token, "username") is None


def test_clear_is_idempotent(sessions: SessionManager):
    token = sessions.start({"username": "alice"})
    sessions.clear(token)
    sessions.clear(token)
    sessions.clear(None)
    assert sessions.get(token, "username") is None


def test_start_discards_previous_token(sessions: SessionManager):
    old = sessions.start({"username": "alice"})
    new = sessions.start({"username": "alice"}, previous_token=old)
    assert new != old
    assert sessions.get(old, "username") is None
    assert sessions.get(new, "username") == "alice"


def test_sweep_removes_only_expired(
    sessions: SessionManager, session: Session, clock: FakeClock
):
    expired = sessions.start({"username": "alice"})
    clock.now += 30
    live = sessions.start({"username": "bob"})
    clock.now += 40

    assert sessions.sweep_expired() == 1
    assert len(_stored_tokens(session)) == 1
    assert sessions.get(live, "username") == "bob"
    assert sessions.get(expired, "username") is None


def test_sweep_sessions_uses_its_own_session(engine, session: Session):
    store = DatabaseSessionStore(session)
    store.save("stale", {"username": "alice"}, expiry=1.0)
    store.save("fresh", {"username": "bob"}, expiry=4_000_000_000.0)

    assert sweep_sessions(engine, lifetime_seconds=60) == 1
    assert _stored_tokens(session) == ["fresh"]


# Login over HTTP


def test_login_sets_session_cookie(client: TestClient):
    client.post("/users", json={"name": "alice", "password": "wonderland"})

    response = client.post(
        "/api/login", data={"username": "alice", "password": "wonderland"}
    )
    assert response.status_code == 204
    assert SESSION_COOKIE_NAME in response.cookies
    set_cookie = response.headers["set-cookie"].lower()
    assert "httponly" in set_cookie
    assert "samesite=lax" in set_cookie

    page = client.get("/")
    assert "Logged in as" in page.text
    assert "alice" in page.text


def test_login_issues_fresh_token(client: TestClient):
    client.post("/users", json={"name": "alice", "password": "wonderland"})
    credentials = {"username": "alice", "password": "wonderland"}

    first = client.post("/api/login", data=credentials).cookies[SESSION_COOKIE_NAME]
    second = client.post("/api/login", data=credentials).cookies[SESSION_COOKIE_NAME]
    assert first != second


def test_login_wrong_password(client: TestClient):
    client.post("/users", json={"name": "alice", "password": "wonderland"})
    response = client.post("/api/login", data={"username": "alice", "password": "x"})
    assert response.status_code == 401
    assert response.json() == {
        "code": 401,
        "message": "incorrect username and/or password",
    }


def test_login_unknown_user(client: TestClient):
    response = client.post("/api/login", data={"username": "bob", "password": "x"})
    assert response.status_code == 404


def test_login_requires_form_fields(client: TestClient):
    response = client.post("/api/login", data={"username": "alice"})
    assert response.status_code == 400


def test_logout(client: TestClient):
    client.post("/users", json={"name": "alice", "password": "wonderland"})
    client.post("/api/login", data={"username": "alice", "password": "wonderland"})

    response = client.get("/api/logout")
    assert response.status_code == 204
    assert "Logged in as" not in client.get("/").text

    # Logging out twice is harmless
    assert client.get("/api/logout").status_code == 204
