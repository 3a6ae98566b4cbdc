"""FastAPI dependencies wiring requests to the service layer."""

from typing import Annotated

from fastapi import Depends, Path, Request
from sqlmodel import Session

from ..application.session_manager import SessionManager
from ..application.vote_service import SongVoteService
from ..domain.entities import validate_id
from ..domain.exceptions import BadRequestError
from ..infrastructure.database.database import get_session
from ..infrastructure.database.repositories import SqlStore
from ..infrastructure.database.session_store import DatabaseSessionStore


def parse_id(raw: str, field: str = "id") -> int:
    """Turn a path segment into an id, rejecting anything but a positive int."""
    try:
        value = int(raw)
    except ValueError as e:
        raise BadRequestError(f"invalid {field}: {raw!r}") from e
    validate_id(value, field)
    return value


def path_id(id: Annotated[str, Path(description="Entity id")]) -> int:
    return parse_id(id)


def get_service(
    request: Request, session: Annotated[Session, Depends(get_session)]
) -> SongVoteService:
    app_settings = request.app.state.settings
    return SongVoteService(
        SqlStore(session),
        request.app.state.password_hasher,
        initial_veto_budget=app_settings.initial_veto_budget,
    )


def get_session_manager(
    request: Request, session: Annotated[Session, Depends(get_session)]
) -> SessionManager:
    app_settings = request.app.state.settings
    return SessionManager(
        DatabaseSessionStore(session),
        lifetime_seconds=app_settings.session_lifetime_hours * 3600,
    )


PathId = Annotated[int, Depends(path_id)]
Service = Annotated[SongVoteService, Depends(get_service)]
Sessions = Annotated[SessionManager, Depends(get_session_manager)]
