import os

# Settings are read at import time; keep hashing cheap and the disk untouched
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DB_PATH", ":memory:")
os.environ.setdefault("DEBUG", "true")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session  # noqa: E402

from songvote.application.vote_service import SongVoteService  # noqa: E402
from songvote.infrastructure.database.database import (  # noqa: E402
    create_db_engine,
    get_session,
    init_db,
)
from songvote.infrastructure.database.repositories import SqlStore  # noqa: E402
from songvote.infrastructure.memory_store import InMemoryStore  # noqa: E402
from songvote.infrastructure.security import PasswordHasher  # noqa: E402
from songvote.main import app  # noqa: E402


@pytest.fixture(name="engine")
def engine_fixture():
    # In-memory SQLite on a StaticPool, with foreign keys enforced
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="hasher", scope="session")
def hasher_fixture() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture(name="store", params=["memory", "sql"])
def store_fixture(request, session: Session):
    """Every store contract test runs against both backings."""
    if request.param == "memory":
        return InMemoryStore()
    return SqlStore(session)


@pytest.fixture(name="service")
def service_fixture(store, hasher: PasswordHasher) -> SongVoteService:
    return SongVoteService(store, hasher, initial_veto_budget=1)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
