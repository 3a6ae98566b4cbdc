"""Infrastructure layer - relational implementation of the song vote store."""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Final

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, col, select

from ...domain.entities import Song, User, Veto, Vote
from ...domain.exceptions import (
    ConflictError,
    ForbiddenError,
    InternalError,
    NotFoundError,
)
from ...logging_config import get_logger
from .models import SongModel, UserModel, VetoModel, VoteModel

logger: Final = get_logger(__name__)


def _translate_integrity_error(error: IntegrityError) -> ConflictError | NotFoundError:
    """Map a constraint violation that slipped past the pre-checks."""
    message = str(error.orig).lower()
    if "foreign key" in message:
        return NotFoundError("referenced user or song does not exist")
    return ConflictError("resource already exists")


class SqlStore:
    """Song vote store backed by a SQLModel session.

    Uniqueness is pre-checked with a query; the schema constraints catch
    concurrent inserts that race past the check.
    """

    def __init__(self, session: Session):
        self.session = session
        self._depth = 0

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Run the enclosed operations as one transaction.

        Only the outermost block commits. Any exception rolls everything back.
        """
        self._depth += 1
        try:
            yield
            if self._depth == 1:
                self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise _translate_integrity_error(e) from e
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Database transaction failed", error=str(e))
            raise InternalError("a database error occurred") from e
        except BaseException:
            self.session.rollback()
            raise
        finally:
            self._depth -= 1

    def _flush(self) -> None:
        try:
            self.session.flush()
        except IntegrityError as e:
            self.session.rollback()
            raise _translate_integrity_error(e) from e

    def _rowcount(self, statement) -> int:
        result = self.session.exec(statement)  # type: ignore[call-overload]
        return int(result.rowcount)

    # Users

    def _active_user_named(self, name: str) -> UserModel | None:
        statement = select(UserModel).where(
            UserModel.name == name,
            col(UserModel.inactive).is_(False),
        )
        return self.session.exec(statement).first()

    def add_user(self, user: User) -> int:
        if self._active_user_named(user.name) is not None:
            raise ConflictError(f"user {user.name!r} already exists")

        user_model = UserModel.from_domain(user.with_changes(id=None))
        self.session.add(user_model)
        self._flush()
        assert user_model.id is not None
        return user_model.id

    def get_user_by_id(self, user_id: int, include_inactive: bool = False) -> User:
        user_model = self.session.get(UserModel, user_id)
        if user_model is None or (user_model.inactive and not include_inactive):
            raise NotFoundError(f"user {user_id} not found")
        return user_model.to_domain()

    def get_user_by_name(self, name: str) -> User:
        user_model = self._active_user_named(name)
        if user_model is None:
            raise NotFoundError(f"user {name!r} not found")
        return user_model.to_domain()

    def list_users(self) -> list[User]:
        statement = (
            select(UserModel)
            .where(col(UserModel.inactive).is_(False))
            .order_by(col(UserModel.id))
        )
        return [user.to_domain() for user in self.session.exec(statement).all()]

    def update_user(self, user: User) -> None:
        user_model = self.session.get(UserModel, user.id)
        if user_model is None:
            raise NotFoundError(f"user {user.id} not found")

        if not user.inactive:
            clash = self._active_user_named(user.name)
            if clash is not None and clash.id != user.id:
                raise ConflictError(f"user {user.name!r} already exists")

        user_model.name = user.name
        user_model.password = user.password_hash
        user_model.inactive = user.inactive
        user_model.vetoes = user.vetoes_remaining
        self.session.add(user_model)
        self._flush()

    def soft_delete_user(self, user_id: int) -> None:
        statement = (
            update(UserModel)
            .where(col(UserModel.id) == user_id, col(UserModel.inactive).is_(False))
            .values(inactive=True)
        )
        if self._rowcount(statement) == 0:
            raise NotFoundError(f"user {user_id} not found")

    def decrement_vetoes(self, user_id: int) -> None:
        statement = (
            update(UserModel)
            .where(col(UserModel.id) == user_id, col(UserModel.vetoes) > 0)
            .values(vetoes=col(UserModel.vetoes) - 1)
        )
        if self._rowcount(statement) == 0:
            self.get_user_by_id(user_id, include_inactive=True)
            raise ForbiddenError("user has no vetoes remaining")

    def increment_vetoes(self, user_id: int) -> None:
        statement = (
            update(UserModel)
            .where(col(UserModel.id) == user_id)
            .values(vetoes=col(UserModel.vetoes) + 1)
        )
        if self._rowcount(statement) == 0:
            raise NotFoundError(f"user {user_id} not found")

    # Songs

    def _song_with_fingerprint(self, title: str, artist: str) -> SongModel | None:
        statement = select(SongModel).where(
            SongModel.title == title, SongModel.artist == artist
        )
        return self.session.exec(statement).first()

    def add_song(self, song: Song) -> int:
        if self._song_with_fingerprint(song.title, song.artist) is not None:
            raise ConflictError(f"{song.title!r} by {song.artist!r} already exists")

        song_model = SongModel.from_domain(song.with_changes(id=None))
        self.session.add(song_model)
        self._flush()
        assert song_model.id is not None
        return song_model.id

    def get_song(self, song_id: int) -> Song:
        song_model = self.session.get(SongModel, song_id)
        if song_model is None:
            raise NotFoundError(f"song {song_id} not found")
        return song_model.to_domain()

    def list_songs(self) -> list[Song]:
        statement = select(SongModel).order_by(col(SongModel.id))
        return [song.to_domain() for song in self.session.exec(statement).all()]

    def update_song(self, song_id: int, title: str, artist: str, link_url: str) -> None:
        song_model = self.session.get(SongModel, song_id)
        if song_model is None:
            raise NotFoundError(f"song {song_id} not found")

        clash = self._song_with_fingerprint(title, artist)
        if clash is not None and clash.id != song_id:
            raise ConflictError(f"{title!r} by {artist!r} already exists")

        song_model.title = title
        song_model.artist = artist
        song_model.link_url = link_url
        self.session.add(song_model)
        self._flush()

    def delete_song(self, song_id: int) -> None:
        """Hard-delete a song together with its vote and veto rows."""
        for child in (VoteModel, VetoModel):
            self._rowcount(delete(child).where(col(child.song_id) == song_id))
        statement = delete(SongModel).where(col(SongModel.id) == song_id)
        if self._rowcount(statement) == 0:
            raise NotFoundError(f"song {song_id} not found")

    def increment_votes(self, song_id: int) -> None:
        statement = (
            update(SongModel)
            .where(col(SongModel.id) == song_id)
            .values(votes=col(SongModel.votes) + 1)
        )
        if self._rowcount(statement) == 0:
            raise NotFoundError(f"song {song_id} not found")

    def mark_vetoed(self, song_id: int) -> None:
        statement = (
            update(SongModel)
            .where(col(SongModel.id) == song_id, col(SongModel.vetoed).is_(False))
            .values(vetoed=True)
        )
        if self._rowcount(statement) == 0:
            self.get_song(song_id)
            raise ConflictError(f"song {song_id} is already vetoed")

    # Votes

    def record_vote(self, song_id: int, user_id: int) -> int:
        if self.has_vote(song_id, user_id):
            raise ConflictError("user already voted for this song")

        vote_model = VoteModel(song_id=song_id, user_id=user_id)
        self.session.add(vote_model)
        self._flush()
        assert vote_model.id is not None
        return vote_model.id

    def has_vote(self, song_id: int, user_id: int) -> bool:
        statement = select(VoteModel.id).where(
            VoteModel.song_id == song_id, VoteModel.user_id == user_id
        )
        return self.session.exec(statement).first() is not None

    def list_votes_for_song(self, song_id: int) -> list[Vote]:
        statement = (
            select(VoteModel)
            .where(VoteModel.song_id == song_id)
            .order_by(col(VoteModel.id))
        )
        return [vote.to_domain() for vote in self.session.exec(statement).all()]

    # Vetoes

    def record_veto(self, song_id: int, user_id: int) -> int:
        if self._veto_for_song(song_id) is not None:
            raise ConflictError(f"song {song_id} is already vetoed")

        veto_model = VetoModel(song_id=song_id, user_id=user_id)
        self.session.add(veto_model)
        self._flush()
        assert veto_model.id is not None
        return veto_model.id

    def _veto_for_song(self, song_id: int) -> VetoModel | None:
        statement = select(VetoModel).where(VetoModel.song_id == song_id)
        return self.session.exec(statement).first()

    def get_veto_for_song(self, song_id: int) -> Veto:
        veto_model = self._veto_for_song(song_id)
        if veto_model is None:
            raise NotFoundError(f"song {song_id} has not been vetoed")
        return veto_model.to_domain()

    def list_vetoes(self) -> list[Veto]:
        statement = select(VetoModel).order_by(col(VetoModel.id))
        return [veto.to_domain() for veto in self.session.exec(statement).all()]
