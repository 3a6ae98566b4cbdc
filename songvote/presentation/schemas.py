"""JSON request and response shapes for the API."""

from pydantic import BaseModel, Field

from ..domain.constants import MAX_ID
from ..domain.entities import Song, User, Vote


# Request Models
class UserCreate(BaseModel):
    """Registration payload."""

    name: str = Field(description="Display name, unique among active users")
    password: str = Field(description="Cleartext password, never stored")


class UserUpdate(BaseModel):
    """Partial user update. Omitted fields keep their stored value."""

    name: str | None = Field(None, description="New display name")
    password: str | None = Field(
        None, description="New password; empty keeps the current one"
    )
    inactive: bool | None = Field(None, description="Deactivate or reactivate")
    vetoes: int | None = Field(None, le=MAX_ID, description="Remaining veto budget")


class SongCreate(BaseModel):
    title: str = Field(description="Song title", examples=["Mirror In The Bathroom"])
    artist: str = Field(description="Performing artist", examples=["The Beat"])
    link_url: str = Field("", description="Where to listen to the song")
    added_by: int = Field(le=MAX_ID, description="Id of the submitting user")


class SongUpdate(BaseModel):
    """Partial song update. Omitted fields keep their stored value."""

    title: str | None = None
    artist: str | None = None
    link_url: str | None = None


class VoteRequest(BaseModel):
    song_id: int = Field(le=MAX_ID, description="Song to vote for")
    user_id: int = Field(le=MAX_ID, description="Voting user")


class VetoRequest(BaseModel):
    song_id: int = Field(le=MAX_ID, description="Song to veto")
    user_id: int = Field(le=MAX_ID, description="Vetoing user")


# Response Models
class UserResponse(BaseModel):
    """Public user projection. The password hash is never exposed."""

    id: int
    name: str
    inactive: bool
    vetoes: int = Field(description="Vetoes the user may still cast")

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        assert user.id is not None
        return cls(
            id=user.id,
            name=user.name,
            inactive=user.inactive,
            vetoes=user.vetoes_remaining,
        )


class SongResponse(BaseModel):
    id: int
    title: str
    artist: str
    link_url: str
    votes: int
    vetoed: bool
    added_by: int

    @classmethod
    def from_domain(cls, song: Song) -> "SongResponse":
        assert song.id is not None
        return cls(
            id=song.id,
            title=song.title,
            artist=song.artist,
            link_url=song.link_url,
            votes=song.votes,
            vetoed=song.vetoed,
            added_by=song.added_by,
        )


class VoteResponse(BaseModel):
    id: int
    song_id: int
    user_id: int

    @classmethod
    def from_domain(cls, vote: Vote) -> "VoteResponse":
        assert vote.id is not None
        return cls(id=vote.id, song_id=vote.song_id, user_id=vote.user_id)


class ErrorEnvelope(BaseModel):
    """Body of every 4xx/5xx response."""

    code: int = Field(description="HTTP status code")
    message: str = Field(description="Human-readable explanation")
