import pytest
from pydantic import ValidationError

from songvote.config import Settings
from songvote.constants import DEFAULT_PORT


def test_defaults(monkeypatch):
    monkeypatch.delenv("DB_PATH", raising=False)
    monkeypatch.delenv("BCRYPT_ROUNDS", raising=False)
    config = Settings(_env_file=None)
    assert config.port == DEFAULT_PORT
    assert config.db_path == "./db/songvote.db"
    assert config.initial_veto_budget == 1
    assert config.bcrypt_rounds == 12
    assert config.session_lifetime_hours == 24
    assert config.effective_database_url == "sqlite:///./db/songvote.db"
    assert config.is_memory_database is False


def test_memory_database():
    config = Settings(_env_file=None, db_path=":memory:")
    assert config.effective_database_url == "sqlite://"
    assert config.is_memory_database is True


def test_database_url_overrides_db_path():
    config = Settings(
        _env_file=None,
        db_path="ignored.db",
        database_url="postgresql://user:pw@localhost/songvote",
    )
    assert config.effective_database_url == "postgresql://user:pw@localhost/songvote"
    assert config.is_memory_database is False


def test_environment_variables(monkeypatch):
    monkeypatch.setenv("PORT", "8081")
    monkeypatch.setenv("INITIAL_VETO_BUDGET", "3")
    monkeypatch.setenv("SESSION_COOKIE_SECURE", "true")
    config = Settings(_env_file=None)
    assert config.port == 8081
    assert config.initial_veto_budget == 3
    assert config.session_cookie_secure is True


@pytest.mark.parametrize(
    "overrides",
    [
        {"db_path": "   "},
        {"port": 0},
        {"bcrypt_rounds": 3},
        {"initial_veto_budget": -1},
        {"session_lifetime_hours": 0},
    ],
)
def test_invalid_values_are_rejected(overrides):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **overrides)
