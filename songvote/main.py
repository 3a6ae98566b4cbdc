import asyncio
import contextlib
import socket
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Final

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from sqlalchemy.engine import Engine
from sqlmodel import Session

from .application.session_manager import SessionManager
from .config import Settings, settings
from .infrastructure.database.database import create_db_engine, init_db
from .infrastructure.database.session_store import DatabaseSessionStore
from .infrastructure.security import PasswordHasher
from .logging_config import get_logger, setup_logging
from .logging_utils import log_system_info
from .middleware import log_requests_middleware
from .presentation.api_routes import api_router
from .presentation.error_handlers import register_error_handlers
from .presentation.routes import router
from .telemetry import setup_telemetry

PACKAGE_DIR: Final = Path(__file__).resolve().parent

logger: Final = get_logger(__name__)


def sweep_sessions(engine: Engine, lifetime_seconds: float) -> int:
    """Delete expired login sessions in a short-lived database session."""
    with Session(engine) as session:
        manager = SessionManager(DatabaseSessionStore(session), lifetime_seconds)
        return manager.sweep_expired()


async def _run_session_sweeper(app: FastAPI) -> None:
    app_settings: Settings = app.state.settings
    lifetime_seconds = app_settings.session_lifetime_hours * 3600
    while True:
        await asyncio.sleep(app_settings.session_sweep_interval_seconds)
        try:
            await asyncio.to_thread(sweep_sessions, app.state.engine, lifetime_seconds)
        except Exception as e:
            # A failed sweep is retried on the next tick
            logger.error("Session sweep failed", error=str(e))


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Setup logging first
    setup_logging()
    app_settings: Settings = app.state.settings

    owns_engine = app.state.engine is None
    if owns_engine:
        app.state.engine = create_db_engine(app_settings.effective_database_url)

    # A service without its schema cannot serve anything
    try:
        init_db(app.state.engine)
    except Exception as e:
        logger.critical("Database initialization failed", error=str(e))
        raise
    logger.info("Database initialized successfully")

    hostname = socket.gethostname()
    try:
        ip_addr = socket.gethostbyname(hostname)
    except OSError:
        ip_addr = "unknown"
    log_system_info(
        hostname, ip_addr, app_settings.debug, app_settings.effective_database_url
    )

    sweeper = asyncio.create_task(_run_session_sweeper(app))

    yield

    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper
    if owns_engine:
        app.state.engine.dispose()
    logger.info("Application shutdown completed")


def create_app(app_settings: Settings = settings, engine: Engine | None = None):
    """Build the application.

    Passing an engine makes the app use it instead of opening one from the
    settings at startup, which lets tests share an in-memory database.
    """
    app = FastAPI(
        title=app_settings.app_name,
        version=app_settings.version,
        debug=app_settings.debug,
        lifespan=lifespan,
        description="""
**SongVote** - Collaborative song queue for a shared playlist.

- Users register and log in with a name and password
- Anyone may add songs; the submitter's vote counts right away
- Each user votes for a song at most once
- Vetoes are scarce: every user starts with a small budget, and a vetoed
  song stays vetoed

Every error response has the shape `{"code": <status>, "message": "..."}`.
        """.strip(),
        openapi_tags=[
            {"name": "users", "description": "Register and manage users"},
            {"name": "songs", "description": "Add, edit and remove songs"},
            {"name": "votes", "description": "Cast votes and vetoes"},
            {"name": "auth", "description": "Login sessions"},
        ],
    )
    app.state.settings = app_settings
    app.state.engine = engine
    app.state.password_hasher = PasswordHasher(app_settings.bcrypt_rounds)
    app.state.templates = Jinja2Templates(directory=str(PACKAGE_DIR / "templates"))

    # Mount static files
    app.mount(
        "/static", StaticFiles(directory=str(PACKAGE_DIR / "static")), name="static"
    )

    # Setup OpenTelemetry tracing
    setup_telemetry(app)

    app.middleware("http")(log_requests_middleware)
    register_error_handlers(app)

    # Include routers
    app.include_router(api_router)
    app.include_router(router)
    return app


app: Final = create_app()
