"""Pure domain entities without infrastructure dependencies.

Entities are immutable value copies: the store hands them upward and
modifications go back through the store, never through shared objects.
"""

from dataclasses import dataclass, replace

from .constants import (
    INITIAL_VETO_BUDGET,
    MAX_ARTIST_LENGTH,
    MAX_ID,
    MAX_LINK_URL_LENGTH,
    MAX_NAME_LENGTH,
    MAX_TITLE_LENGTH,
)
from .exceptions import BadRequestError


def validate_required_text(value: str, field: str, max_length: int) -> None:
    """Validate a required text field according to domain business rules.

    Pure domain validation without logging or external dependencies.

    Args:
        value: The text to validate
        field: Field name used in error messages
        max_length: Maximum allowed length

    Raises:
        BadRequestError: If the value is empty, too long, or contains control
            characters
    """
    if not value or not value.strip():
        raise BadRequestError(f"{field} cannot be empty")

    if len(value) > max_length:
        raise BadRequestError(
            f"{field} cannot be longer than {max_length} " + "characters"
        )

    for char in value:
        if ord(char) < 32 or ord(char) == 127:
            raise BadRequestError(
                f"{field} cannot contain newlines, tabs, "
                + "or other control characters"
            )


def validate_id(value: int, field: str = "id") -> None:
    """Ids are assigned by the store starting at 1."""
    if value < 1 or value > MAX_ID:
        raise BadRequestError(f"{field} must be a positive 64-bit integer")


@dataclass(frozen=True)
class User:
    """A member of the group."""

    id: int | None
    name: str
    password_hash: str
    inactive: bool = False
    vetoes_remaining: int = INITIAL_VETO_BUDGET

    def validate(self) -> None:
        validate_required_text(self.name, "name", MAX_NAME_LENGTH)
        if self.vetoes_remaining < 0:
            raise BadRequestError("vetoes cannot be negative")

    def with_changes(self, **changes) -> "User":
        return replace(self, **changes)


@dataclass(frozen=True)
class Song:
    """A song in the shared queue."""

    id: int | None
    title: str
    artist: str
    link_url: str
    added_by: int
    votes: int = 0
    vetoed: bool = False

    def validate(self) -> None:
        validate_required_text(self.title, "title", MAX_TITLE_LENGTH)
        validate_required_text(self.artist, "artist", MAX_ARTIST_LENGTH)
        if len(self.link_url) > MAX_LINK_URL_LENGTH:
            raise BadRequestError(
                f"link_url cannot be longer than {MAX_LINK_URL_LENGTH} characters"
            )
        validate_id(self.added_by, "added_by")

    @property
    def fingerprint(self) -> tuple[str, str]:
        """The (title, artist) pair that must be unique across songs."""
        return (self.title, self.artist)

    def with_changes(self, **changes) -> "Song":
        return replace(self, **changes)


@dataclass(frozen=True)
class Vote:
    """One user's up-vote for one song."""

    id: int | None
    song_id: int
    user_id: int

    @property
    def fingerprint(self) -> tuple[int, int]:
        return (self.song_id, self.user_id)


@dataclass(frozen=True)
class Veto:
    """A user's veto of a song. At most one exists per song."""

    id: int | None
    song_id: int
    user_id: int
