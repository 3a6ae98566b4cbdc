from sqlalchemy import Column, Index, LargeBinary, UniqueConstraint, text
from sqlmodel import Field, SQLModel

from ...domain.constants import (
    INITIAL_VETO_BUDGET,
    MAX_ARTIST_LENGTH,
    MAX_LINK_URL_LENGTH,
    MAX_NAME_LENGTH,
    MAX_TITLE_LENGTH,
)
from ...domain.entities import Song as DomainSong
from ...domain.entities import User as DomainUser
from ...domain.entities import Veto as DomainVeto
from ...domain.entities import Vote as DomainVote


class UserModel(SQLModel, table=True):  # type: ignore[call-arg]
    """A registered member. Rows are never deleted, only marked inactive."""

    __tablename__: str = "users"  # type: ignore[assignment]
    __table_args__ = (
        # Names only need to be unique among active users
        Index(
            "ix_users_active_name",
            "name",
            unique=True,
            sqlite_where=text("inactive = 0"),
            postgresql_where=text("NOT inactive"),
        ),
    )

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(max_length=MAX_NAME_LENGTH)
    password: str
    inactive: bool = Field(default=False)
    vetoes: int = Field(default=INITIAL_VETO_BUDGET)

    @classmethod
    def from_domain(cls, domain_user: DomainUser) -> "UserModel":
        """Convert domain entity to persistence model."""
        return cls(
            id=domain_user.id,
            name=domain_user.name,
            password=domain_user.password_hash,
            inactive=domain_user.inactive,
            vetoes=domain_user.vetoes_remaining,
        )

    def to_domain(self) -> DomainUser:
        """Convert persistence model to domain entity."""
        return DomainUser(
            id=self.id,
            name=self.name,
            password_hash=self.password,
            inactive=self.inactive,
            vetoes_remaining=self.vetoes,
        )


class SongModel(SQLModel, table=True):  # type: ignore[call-arg]
    """A song in the shared queue."""

    __tablename__: str = "songs"  # type: ignore[assignment]
    __table_args__ = (
        UniqueConstraint("title", "artist", name="uq_songs_title_artist"),
    )

    id: int | None = Field(default=None, primary_key=True)
    title: str = Field(max_length=MAX_TITLE_LENGTH)
    artist: str = Field(max_length=MAX_ARTIST_LENGTH)
    link_url: str = Field(default="", max_length=MAX_LINK_URL_LENGTH)
    votes: int = Field(default=0)
    vetoed: bool = Field(default=False)
    added_by: int = Field(foreign_key="users.id")

    @classmethod
    def from_domain(cls, domain_song: DomainSong) -> "SongModel":
        """Convert domain entity to persistence model."""
        return cls(
            id=domain_song.id,
            title=domain_song.title,
            artist=domain_song.artist,
            link_url=domain_song.link_url,
            votes=domain_song.votes,
            vetoed=domain_song.vetoed,
            added_by=domain_song.added_by,
        )

    def to_domain(self) -> DomainSong:
        """Convert persistence model to domain entity."""
        return DomainSong(
            id=self.id,
            title=self.title,
            artist=self.artist,
            link_url=self.link_url,
            added_by=self.added_by,
            votes=self.votes,
            vetoed=self.vetoed,
        )


class VoteModel(SQLModel, table=True):  # type: ignore[call-arg]
    __tablename__: str = "votes"  # type: ignore[assignment]
    __table_args__ = (
        UniqueConstraint("song_id", "user_id", name="uq_votes_song_user"),
    )

    id: int | None = Field(default=None, primary_key=True)
    song_id: int = Field(foreign_key="songs.id", index=True)
    user_id: int = Field(foreign_key="users.id")

    def to_domain(self) -> DomainVote:
        return DomainVote(id=self.id, song_id=self.song_id, user_id=self.user_id)


class VetoModel(SQLModel, table=True):  # type: ignore[call-arg]
    __tablename__: str = "vetoes"  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True)
    song_id: int = Field(foreign_key="songs.id", unique=True)
    user_id: int = Field(foreign_key="users.id", index=True)

    def to_domain(self) -> DomainVeto:
        return DomainVeto(id=self.id, song_id=self.song_id, user_id=self.user_id)


class SessionModel(SQLModel, table=True):  # type: ignore[call-arg]
    """Login session keyed by an opaque token."""

    __tablename__: str = "sessions"  # type: ignore[assignment]

    token: str = Field(primary_key=True)
    data: bytes = Field(sa_column=Column(LargeBinary, nullable=False))
    expiry: float = Field(index=True)
