from collections.abc import Generator
from pathlib import Path

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.engine import Engine, make_url
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from ...config import settings
from ...logging_config import get_logger

# Registers the table models on SQLModel.metadata
from . import models as _models  # noqa: F401

logger = get_logger(__name__)


def _is_memory_url(database_url: str) -> bool:
    database = make_url(database_url).database
    return database in (None, "", ":memory:")


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(database_url: str | None = None) -> Engine:
    """Open an engine for the configured database.

    File-backed SQLite databases get their parent directory created. The
    in-memory sentinel shares one connection so every session sees the same
    data.
    """
    database_url = database_url or settings.effective_database_url
    connect_args: dict[str, bool] = {}
    engine_kwargs: dict[str, object] = {}

    if database_url.startswith("sqlite"):
        # Request handlers run on a thread pool
        connect_args["check_same_thread"] = False
        if _is_memory_url(database_url):
            engine_kwargs["poolclass"] = StaticPool
        else:
            db_file = Path(make_url(database_url).database or "")
            db_file.parent.mkdir(parents=True, exist_ok=True)
    elif database_url.startswith("postgresql"):
        engine_kwargs["pool_pre_ping"] = True
        engine_kwargs["pool_size"] = 10
        engine_kwargs["max_overflow"] = 20

    engine = create_engine(
        database_url,
        # echo=True,  # Enable for SQL debugging
        connect_args=connect_args,
        **engine_kwargs,
    )
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    logger.info("Database engine created", dialect=engine.dialect.name)
    return engine


def init_db(engine: Engine) -> None:
    """Create the schema. Safe to run against an existing database."""
    SQLModel.metadata.create_all(engine)


def reset_db(engine: Engine) -> None:
    """Drop and recreate every table."""
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    logger.warning("Database reset", url=str(engine.url))


def get_session(request: Request) -> Generator[Session, None, None]:
    """One database session per request, closed (and rolled back) afterwards."""
    with Session(request.app.state.engine) as session:
        yield session
