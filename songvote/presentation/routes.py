from typing import Annotated, Final

from fastapi import APIRouter, Cookie, Request
from fastapi.responses import HTMLResponse

from ..constants import SESSION_COOKIE_NAME
from ..logging_config import get_logger
from .dependencies import Service, Sessions

logger: Final = get_logger(__name__)

router: Final = APIRouter()


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
def show_queue(
    request: Request,
    service: Service,
    sessions: Sessions,
    session_token: Annotated[str | None, Cookie(alias=SESSION_COOKIE_NAME)] = None,
):
    """Render the song queue, most voted first, vetoed songs last."""
    songs = sorted(service.list_songs(), key=lambda s: (s.vetoed, -s.votes, s.id))
    username = sessions.get(session_token, "username")
    logger.debug("Rendering song queue", songs=len(songs), logged_in=bool(username))

    return request.app.state.templates.TemplateResponse(
        request,
        "index.html",
        {"songs": songs, "username": username, "app_name": request.app.title},
    )
