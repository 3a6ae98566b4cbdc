import json

import pytest
import structlog
from sqlmodel import Session
from typer.testing import CliRunner

from songvote.application.vote_service import SongVoteService
from songvote.cli import app
from songvote.infrastructure.database.database import create_db_engine
from songvote.infrastructure.database.repositories import SqlStore
from songvote.infrastructure.security import PasswordHasher

runner = CliRunner()


@pytest.fixture(autouse=True)
def keep_logging_out_of_runner(monkeypatch):
    # CliRunner replaces stdout only for the duration of invoke; cached
    # loggers configured inside it would write to a closed stream later
    monkeypatch.setattr("songvote.cli.setup_logging", lambda: None)
    yield
    structlog.reset_defaults()


def _write(path, data) -> str:
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def _seed_files(tmp_path):
    users = _write(
        tmp_path / "users.json",
        [{"name": "alice", "password": "a"}, {"name": "bob", "password": "b"}],
    )
    songs = _write(
        tmp_path / "songs.json",
        [
            {"title": "Ghost Town", "artist": "The Specials", "added_by": 2},
            {
                "title": "Our House",
                "artist": "Madness",
                "link_url": "https://example.com/our-house",
                "added_by": 1,
            },
        ],
    )
    return users, songs


def test_seed_loads_users_and_songs(tmp_path):
    users, songs = _seed_files(tmp_path)
    db_file = tmp_path / "db" / "seed.db"

    result = runner.invoke(
        app,
        ["seed", "--users", users, "--songs", songs]
        + ["--db-path", str(db_file), "--yes"],
    )
    assert result.exit_code == 0, result.output
    assert "2 users" in result.output

    engine = create_db_engine(f"sqlite:///{db_file}")
    with Session(engine) as session:
        service = SongVoteService(SqlStore(session), PasswordHasher(rounds=4))
        assert [u.name for u in service.list_users()] == ["alice", "bob"]
        songs_in_db = service.list_songs()
        assert [s.title for s in songs_in_db] == ["Ghost Town", "Our House"]
        # The submitter's vote is recorded on seeding
        assert [s.votes for s in songs_in_db] == [1, 1]
        assert service.list_votes_for_song(1)[0].user_id == 2
    engine.dispose()


def test_seed_twice_starts_from_scratch(tmp_path):
    users, songs = _seed_files(tmp_path)
    args = ["seed", "--users", users, "--songs", songs]
    args += ["--db-path", str(tmp_path / "seed.db"), "--yes"]

    assert runner.invoke(app, args).exit_code == 0
    result = runner.invoke(app, args)
    assert result.exit_code == 0, result.output


def test_seed_missing_file(tmp_path):
    result = runner.invoke(
        app,
        [
            "seed",
            "--users",
            str(tmp_path / "nope.json"),
            "--db-path",
            str(tmp_path / "seed.db"),
            "--yes",
        ],
    )
    assert result.exit_code == 1


def test_seed_rejects_malformed_data(tmp_path):
    users = _write(tmp_path / "users.json", [{"name": "alice"}])
    _, songs = _seed_files(tmp_path)
    result = runner.invoke(
        app,
        ["seed", "--users", users, "--songs", songs, "--db-path", ":memory:", "--yes"],
    )
    assert result.exit_code == 1


def test_seed_aborts_without_confirmation(tmp_path):
    users, songs = _seed_files(tmp_path)
    db_file = tmp_path / "seed.db"
    result = runner.invoke(
        app,
        ["seed", "--users", users, "--songs", songs, "--db-path", str(db_file)],
        input="n\n",
    )
    assert result.exit_code != 0
    assert not db_file.exists()


def test_serve_exits_when_database_cannot_be_opened(tmp_path, monkeypatch):
    blocker = tmp_path / "not-a-directory"
    blocker.write_text("", encoding="utf-8")
    started = []
    monkeypatch.setattr("songvote.cli.uvicorn.run", lambda *a, **kw: started.append(a))

    result = runner.invoke(app, ["serve", "--db-path", str(blocker / "songvote.db")])
    assert result.exit_code == 1
    assert "Could not open database" in result.output
    assert started == []
