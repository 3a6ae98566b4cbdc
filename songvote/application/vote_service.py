"""Application service owning every state transition of the song queue.

Each write runs inside a single ``store.atomic()`` block, so a failure at
any step leaves users, songs, votes and vetoes exactly as they were.
"""

from typing import Final, Protocol

from ..domain.constants import (
    INITIAL_VETO_BUDGET,
    MAX_ARTIST_LENGTH,
    MAX_NAME_LENGTH,
    MAX_TITLE_LENGTH,
)
from ..domain.entities import Song, User, Vote
from ..domain.exceptions import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
)
from ..domain.store import SongVoteStore
from ..logging_config import get_logger
from ..logging_utils import log_database_operation, log_user_action
from ..metrics import (
    record_song_added,
    record_song_deleted,
    record_user_registered,
    record_veto_cast,
    record_vote_cast,
)
from .validation import validate_ids_with_logging, validate_text_with_logging

logger: Final = get_logger(__name__)


class PasswordHasher(Protocol):
    def hash(self, password: str) -> str: ...

    def verify(self, password: str, password_hash: str) -> bool: ...


class SongVoteService:
    """Register users, queue songs, and record votes and vetoes."""

    def __init__(
        self,
        store: SongVoteStore,
        hasher: PasswordHasher,
        initial_veto_budget: int = INITIAL_VETO_BUDGET,
    ):
        self.store = store
        self.hasher = hasher
        self.initial_veto_budget = initial_veto_budget

    # Users

    def register_user(self, name: str, password: str) -> int:
        logger.debug("Registering user", name=name)
        validate_text_with_logging(name, "name", MAX_NAME_LENGTH, "Registration")
        if not password:
            raise BadRequestError("password cannot be empty")

        user = User(
            id=None,
            name=name,
            password_hash=self.hasher.hash(password),
            inactive=False,
            vetoes_remaining=self.initial_veto_budget,
        )
        with self.store.atomic():
            user_id = self.store.add_user(user)

        log_database_operation("create", "users", user_id=user_id, user_name=name)
        record_user_registered()
        logger.info("User registered", user_id=user_id, name=name)
        return user_id

    def login(self, name: str, password: str) -> User:
        """Check credentials. Absent and inactive users are both not found."""
        user = self.store.get_user_by_name(name)
        if not self.hasher.verify(password, user.password_hash):
            logger.warning("Login failed - wrong password", user_id=user.id)
            raise UnauthorizedError("incorrect username and/or password")
        logger.info("User logged in", user_id=user.id, name=user.name)
        return user

    def get_user(self, user_id: int) -> User:
        validate_ids_with_logging("Get user", user_id=user_id)
        return self.store.get_user_by_id(user_id)

    def list_users(self) -> list[User]:
        return self.store.list_users()

    def update_user(
        self,
        user_id: int,
        name: str | None = None,
        password: str | None = None,
        inactive: bool | None = None,
        vetoes_remaining: int | None = None,
    ) -> User:
        """Apply a partial update. ``None`` (or an empty password) keeps a field."""
        validate_ids_with_logging("Update user", user_id=user_id)
        if name is not None:
            validate_text_with_logging(name, "name", MAX_NAME_LENGTH, "Update user")
        if vetoes_remaining is not None and vetoes_remaining < 0:
            raise BadRequestError("vetoes cannot be negative")

        with self.store.atomic():
            current = self.store.get_user_by_id(user_id, include_inactive=True)
            updated = current.with_changes(
                name=current.name if name is None else name,
                password_hash=(
                    self.hasher.hash(password) if password else current.password_hash
                ),
                inactive=current.inactive if inactive is None else inactive,
                vetoes_remaining=(
                    current.vetoes_remaining
                    if vetoes_remaining is None
                    else vetoes_remaining
                ),
            )
            updated.validate()
            self.store.update_user(updated)

        log_database_operation(
            "update", "users", user_id=user_id, hash_rotated=bool(password)
        )
        return updated

    def soft_delete_user(self, user_id: int) -> None:
        """Mark a user inactive. A second call reports the user as not found."""
        validate_ids_with_logging("Delete user", user_id=user_id)
        with self.store.atomic():
            self.store.soft_delete_user(user_id)
        log_database_operation("soft_delete", "users", user_id=user_id)
        logger.info("User deactivated", user_id=user_id)

    def _require_active_user(self, user_id: int, action: str) -> User:
        user = self.store.get_user_by_id(user_id, include_inactive=True)
        if user.inactive:
            logger.warning(f"{action} rejected - user inactive", user_id=user_id)
            raise ForbiddenError(f"user is inactive and cannot {action}")
        return user

    # Songs

    def add_song(self, title: str, artist: str, link_url: str, added_by: int) -> int:
        """Queue a song. The submitter automatically casts the first vote."""
        logger.debug("Adding song", title=title, artist=artist, added_by=added_by)
        validate_text_with_logging(title, "title", MAX_TITLE_LENGTH, "Add song")
        validate_text_with_logging(artist, "artist", MAX_ARTIST_LENGTH, "Add song")
        validate_ids_with_logging("Add song", added_by=added_by)
        song = Song(
            id=None,
            title=title,
            artist=artist,
            link_url=link_url or "",
            added_by=added_by,
            votes=0,
            vetoed=False,
        )
        song.validate()

        with self.store.atomic():
            self._require_active_user(added_by, "add songs")
            song_id = self.store.add_song(song)
            self._record_vote(song_id, added_by)

        log_database_operation("create", "songs", song_id=song_id, title=title)
        log_user_action("add_song", added_by, song_id=song_id, title=title)
        record_song_added()
        logger.info("Song added", song_id=song_id, title=title, artist=artist)
        return song_id

    def get_song(self, song_id: int) -> Song:
        validate_ids_with_logging("Get song", song_id=song_id)
        return self.store.get_song(song_id)

    def list_songs(self) -> list[Song]:
        return self.store.list_songs()

    def update_song(
        self,
        song_id: int,
        title: str | None = None,
        artist: str | None = None,
        link_url: str | None = None,
    ) -> Song:
        validate_ids_with_logging("Update song", song_id=song_id)
        with self.store.atomic():
            current = self.store.get_song(song_id)
            updated = current.with_changes(
                title=current.title if title is None else title,
                artist=current.artist if artist is None else artist,
                link_url=current.link_url if link_url is None else link_url,
            )
            updated.validate()
            self.store.update_song(
                song_id, updated.title, updated.artist, updated.link_url
            )

        log_database_operation("update", "songs", song_id=song_id)
        return updated

    def delete_song(self, song_id: int) -> None:
        """Hard-delete a song with its votes and veto.

        The vetoing user gets their veto back, keeping budgets consistent
        with the vetoes that still exist.
        """
        validate_ids_with_logging("Delete song", song_id=song_id)
        with self.store.atomic():
            self.store.get_song(song_id)
            try:
                veto = self.store.get_veto_for_song(song_id)
            except NotFoundError:
                veto = None
            if veto is not None:
                self.store.increment_vetoes(veto.user_id)
            self.store.delete_song(song_id)

        log_database_operation(
            "delete", "songs", song_id=song_id, veto_refunded=veto is not None
        )
        record_song_deleted()
        logger.info("Song deleted", song_id=song_id)

    # Votes

    def _record_vote(self, song_id: int, user_id: int) -> int:
        vote_id = self.store.record_vote(song_id, user_id)
        self.store.increment_votes(song_id)
        return vote_id

    def vote(self, song_id: int, user_id: int) -> int:
        """Up-vote a song, at most once per user."""
        validate_ids_with_logging("Vote", song_id=song_id, user_id=user_id)
        with self.store.atomic():
            self._require_active_user(user_id, "vote")
            self.store.get_song(song_id)
            if self.store.has_vote(song_id, user_id):
                logger.warning(
                    "Vote rejected - duplicate", song_id=song_id, user_id=user_id
                )
                raise ConflictError("user already voted for this song")
            vote_id = self._record_vote(song_id, user_id)

        log_user_action("vote", user_id, song_id=song_id, vote_id=vote_id)
        record_vote_cast()
        return vote_id

    def list_votes_for_song(self, song_id: int) -> list[Vote]:
        validate_ids_with_logging("List votes", song_id=song_id)
        self.store.get_song(song_id)
        return self.store.list_votes_for_song(song_id)

    # Vetoes

    def veto(self, song_id: int, user_id: int) -> int:
        """Veto a song, spending one unit of the user's veto budget."""
        validate_ids_with_logging("Veto", song_id=song_id, user_id=user_id)
        with self.store.atomic():
            user = self._require_active_user(user_id, "veto")
            song = self.store.get_song(song_id)
            if song.vetoed:
                raise ConflictError("song is already vetoed")
            if user.vetoes_remaining <= 0:
                logger.warning("Veto rejected - no budget", user_id=user_id)
                raise ForbiddenError("user has no vetoes remaining")
            veto_id = self.store.record_veto(song_id, user_id)
            self.store.mark_vetoed(song_id)
            self.store.decrement_vetoes(user_id)

        log_user_action("veto", user_id, song_id=song_id, veto_id=veto_id)
        record_veto_cast()
        logger.info("Song vetoed", song_id=song_id, user_id=user_id)
        return veto_id

    def get_vetoed_by(self, song_id: int) -> User:
        """Return the user who vetoed a song, even if since deactivated."""
        validate_ids_with_logging("Vetoed by", song_id=song_id)
        self.store.get_song(song_id)
        veto = self.store.get_veto_for_song(song_id)
        return self.store.get_user_by_id(veto.user_id, include_inactive=True)
