from typing import Annotated, Final

from fastapi import APIRouter, Cookie, Form, Request, Response, status

from ..constants import SESSION_COOKIE_NAME
from ..logging_config import get_logger
from .dependencies import PathId, Service, Sessions
from .schemas import (
    ErrorEnvelope,
    SongCreate,
    SongResponse,
    SongUpdate,
    UserCreate,
    UserResponse,
    UserUpdate,
    VetoRequest,
    VoteRequest,
    VoteResponse,
)

logger: Final = get_logger(__name__)

api_router: Final = APIRouter(
    responses={
        400: {"model": ErrorEnvelope, "description": "Bad Request - Invalid input"},
        404: {"model": ErrorEnvelope, "description": "Not Found"},
        409: {"model": ErrorEnvelope, "description": "Conflict"},
    },
)


def _no_content() -> Response:
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Users


@api_router.post(
    "/users",
    status_code=status.HTTP_201_CREATED,
    tags=["users"],
    summary="Register a user",
)
def api_create_user(payload: UserCreate, service: Service) -> int:
    """Register a new user and return its id."""
    return service.register_user(payload.name, payload.password)


@api_router.get("/users", tags=["users"], summary="List active users")
def api_list_users(service: Service) -> list[UserResponse]:
    return [UserResponse.from_domain(user) for user in service.list_users()]


@api_router.get("/users/{id}", tags=["users"], summary="Get a user")
def api_get_user(user_id: PathId, service: Service) -> UserResponse:
    return UserResponse.from_domain(service.get_user(user_id))


@api_router.put(
    "/users/{id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["users"],
    summary="Update a user",
)
def api_update_user(user_id: PathId, payload: UserUpdate, service: Service) -> Response:
    """Partially update a user. Omitted fields are left alone."""
    service.update_user(
        user_id,
        name=payload.name,
        password=payload.password,
        inactive=payload.inactive,
        vetoes_remaining=payload.vetoes,
    )
    return _no_content()


@api_router.delete(
    "/users/{id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["users"],
    summary="Deactivate a user",
)
def api_delete_user(user_id: PathId, service: Service) -> Response:
    """Soft-delete: the user's votes and vetoes stay on record."""
    service.soft_delete_user(user_id)
    return _no_content()


# Votes and vetoes


@api_router.post(
    "/songs/vote",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["votes"],
    summary="Vote for a song",
    responses={403: {"model": ErrorEnvelope, "description": "User is inactive"}},
)
def api_vote(payload: VoteRequest, service: Service) -> Response:
    service.vote(payload.song_id, payload.user_id)
    return _no_content()


@api_router.get("/songs/vote/{id}", tags=["votes"], summary="List votes for a song")
def api_list_votes(song_id: PathId, service: Service) -> list[VoteResponse]:
    return [VoteResponse.from_domain(v) for v in service.list_votes_for_song(song_id)]


@api_router.post(
    "/songs/veto",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["votes"],
    summary="Veto a song",
    responses={
        403: {"model": ErrorEnvelope, "description": "Inactive or out of vetoes"}
    },
)
def api_veto(payload: VetoRequest, service: Service) -> Response:
    """Veto a song, spending one of the user's vetoes."""
    service.veto(payload.song_id, payload.user_id)
    return _no_content()


@api_router.get(
    "/songs/veto/{id}", tags=["votes"], summary="Get the user who vetoed a song"
)
def api_get_vetoed_by(song_id: PathId, service: Service) -> UserResponse:
    return UserResponse.from_domain(service.get_vetoed_by(song_id))


# Songs


@api_router.post(
    "/songs",
    status_code=status.HTTP_201_CREATED,
    tags=["songs"],
    summary="Add a song",
    responses={403: {"model": ErrorEnvelope, "description": "User is inactive"}},
)
def api_create_song(payload: SongCreate, service: Service) -> int:
    """Queue a song. The submitter's vote is counted immediately."""
    return service.add_song(
        payload.title, payload.artist, payload.link_url, payload.added_by
    )


@api_router.get("/songs", tags=["songs"], summary="List songs")
def api_list_songs(service: Service) -> list[SongResponse]:
    return [SongResponse.from_domain(song) for song in service.list_songs()]


@api_router.get("/songs/{id}", tags=["songs"], summary="Get a song")
def api_get_song(song_id: PathId, service: Service) -> SongResponse:
    return SongResponse.from_domain(service.get_song(song_id))


@api_router.put(
    "/songs/{id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["songs"],
    summary="Edit a song",
)
def api_update_song(song_id: PathId, payload: SongUpdate, service: Service) -> Response:
    service.update_song(
        song_id, title=payload.title, artist=payload.artist, link_url=payload.link_url
    )
    return _no_content()


@api_router.delete(
    "/songs/{id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["songs"],
    summary="Delete a song",
)
def api_delete_song(song_id: PathId, service: Service) -> Response:
    """Remove a song together with its votes and veto."""
    service.delete_song(song_id)
    return _no_content()


# Login sessions


@api_router.post(
    "/api/login",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["auth"],
    summary="Log in",
    responses={401: {"model": ErrorEnvelope, "description": "Wrong password"}},
)
def api_login(
    request: Request,
    username: Annotated[str, Form()],
    password: Annotated[str, Form()],
    service: Service,
    sessions: Sessions,
    session_token: Annotated[str | None, Cookie(alias=SESSION_COOKIE_NAME)] = None,
) -> Response:
    """Check credentials and start a new login session."""
    user = service.login(username, password)
    token = sessions.start(
        {"user_id": user.id, "username": user.name}, previous_token=session_token
    )

    app_settings = request.app.state.settings
    response = _no_content()
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=int(sessions.lifetime_seconds),
        httponly=True,
        samesite="lax",
        secure=app_settings.session_cookie_secure,
    )
    return response


@api_router.get(
    "/api/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["auth"],
    summary="Log out",
)
def api_logout(
    sessions: Sessions,
    session_token: Annotated[str | None, Cookie(alias=SESSION_COOKIE_NAME)] = None,
) -> Response:
    """End the current session. Calling it while logged out is harmless."""
    sessions.clear(session_token)
    response = _no_content()
    response.delete_cookie(SESSION_COOKIE_NAME)
    logger.info("User logged out", was_logged_in=session_token is not None)
    return response
