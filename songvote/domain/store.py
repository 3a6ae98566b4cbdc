"""The storage capability the domain service depends on.

One protocol covers users, songs, votes and vetoes so that a relational
backing and an in-memory backing can be swapped behind a single boundary.
"""

from contextlib import AbstractContextManager
from typing import Protocol

from .entities import Song, User, Veto, Vote


class SongVoteStore(Protocol):
    """Typed CRUD and relational queries over the domain entities.

    Failures are reported with the exceptions from ``domain.exceptions``.
    Writes only become durable when the outermost ``atomic()`` block exits
    without an exception.
    """

    def atomic(self) -> AbstractContextManager[None]: ...

    # Users
    def add_user(self, user: User) -> int: ...

    def get_user_by_id(self, user_id: int, include_inactive: bool = False) -> User: ...

    def get_user_by_name(self, name: str) -> User: ...

    def list_users(self) -> list[User]: ...

    def update_user(self, user: User) -> None: ...

    def soft_delete_user(self, user_id: int) -> None: ...

    def decrement_vetoes(self, user_id: int) -> None: ...

    def increment_vetoes(self, user_id: int) -> None: ...

    # Songs
    def add_song(self, song: Song) -> int: ...

    def get_song(self, song_id: int) -> Song: ...

    def list_songs(self) -> list[Song]: ...

    def update_song(
        self, song_id: int, title: str, artist: str, link_url: str
    ) -> None: ...

    def delete_song(self, song_id: int) -> None: ...

    def increment_votes(self, song_id: int) -> None: ...

    def mark_vetoed(self, song_id: int) -> None: ...

    # Votes
    def record_vote(self, song_id: int, user_id: int) -> int: ...

    def has_vote(self, song_id: int, user_id: int) -> bool: ...

    def list_votes_for_song(self, song_id: int) -> list[Vote]: ...

    # Vetoes
    def record_veto(self, song_id: int, user_id: int) -> int: ...

    def get_veto_for_song(self, song_id: int) -> Veto: ...

    def list_vetoes(self) -> list[Veto]: ...
