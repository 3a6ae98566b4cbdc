"""SongVote command line: run the server or load sample data."""

from pathlib import Path

import typer
import uvicorn
from pydantic import BaseModel, TypeAdapter, ValidationError
from rich.console import Console
from sqlmodel import Session

from .application.vote_service import SongVoteService
from .config import settings
from .constants import MEMORY_DB_PATH
from .domain.exceptions import DomainError
from .infrastructure.database.database import create_db_engine, init_db, reset_db
from .infrastructure.database.repositories import SqlStore
from .infrastructure.security import PasswordHasher
from .logging_config import get_logger, setup_logging

console = Console()
logger = get_logger(__name__)

DEFAULT_USERS_FILE = Path("testdata/users.json")
DEFAULT_SONGS_FILE = Path("testdata/songs.json")

app = typer.Typer(
    help="SongVote - collaborative song queue",
    no_args_is_help=True,
)


class SeedUser(BaseModel):
    name: str
    password: str


class SeedSong(BaseModel):
    title: str
    artist: str
    link_url: str = ""
    added_by: int


def _database_url(db_path: str | None) -> str:
    if db_path is None:
        return settings.effective_database_url
    if db_path == MEMORY_DB_PATH:
        return "sqlite://"
    return f"sqlite:///{db_path}"


def _load_json(path: Path, adapter: TypeAdapter):
    try:
        return adapter.validate_json(path.read_bytes())
    except OSError as e:
        console.print(f"Could not open file {path}: {e}", style="red")
        raise typer.Exit(1) from e
    except ValidationError as e:
        console.print(f"Could not parse {path}: {e}", style="red")
        raise typer.Exit(1) from e


@app.command()
def serve(
    host: str = typer.Option(settings.host, "--host", help="Interface to bind"),
    port: int = typer.Option(settings.port, "--port", help="Port to listen on"),
    db_path: str | None = typer.Option(
        None, "--db-path", help="SQLite database file (':memory:' for in-memory)"
    ),
) -> None:
    """Create the schema if needed and start the HTTP server."""
    setup_logging()
    database_url = _database_url(db_path)
    try:
        engine = create_db_engine(database_url)
        try:
            init_db(engine)
        finally:
            engine.dispose()
    except Exception as e:
        logger.critical("Could not open database", error=str(e))
        console.print(f"Could not open database: {e}", style="red")
        raise typer.Exit(1) from e

    settings.database_url = database_url
    uvicorn.run("songvote.main:app", host=host, port=port)


@app.command()
def seed(
    users_file: Path = typer.Option(
        DEFAULT_USERS_FILE, "--users", help="JSON list of {name, password}"
    ),
    songs_file: Path = typer.Option(
        DEFAULT_SONGS_FILE,
        "--songs",
        help="JSON list of {title, artist, link_url, added_by}",
    ),
    db_path: str | None = typer.Option(
        None, "--db-path", help="SQLite database file to seed"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Clear every table and load sample users and songs."""
    setup_logging()
    users = _load_json(users_file, TypeAdapter(list[SeedUser]))
    songs = _load_json(songs_file, TypeAdapter(list[SeedSong]))

    if not yes:
        typer.confirm(
            "This deletes all users, songs, votes and vetoes. Continue?", abort=True
        )

    engine = create_db_engine(_database_url(db_path))
    reset_db(engine)
    with Session(engine) as session:
        service = SongVoteService(
            SqlStore(session),
            PasswordHasher(settings.bcrypt_rounds),
            initial_veto_budget=settings.initial_veto_budget,
        )
        try:
            for user in users:
                service.register_user(user.name, user.password)
            for song in songs:
                service.add_song(song.title, song.artist, song.link_url, song.added_by)
        except DomainError as e:
            console.print(f"Seeding failed: {e}", style="red")
            raise typer.Exit(1) from e
    engine.dispose()

    console.print(
        f"✅ Database cleared and seeded with {len(users)} users "
        f"and {len(songs)} songs",
        style="green",
    )


def main() -> None:
    app()


if __name__ == "__main__":
    main()
