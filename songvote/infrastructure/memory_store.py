"""In-memory implementation of the song vote store.

Used as a test double and for throwaway runs. All state lives in dicts
guarded by one re-entrant lock; ``atomic()`` holds the lock for the whole
block and restores a snapshot if the block fails.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from ..domain.entities import Song, User, Veto, Vote
from ..domain.exceptions import ConflictError, ForbiddenError, NotFoundError


@dataclass
class _Tables:
    users: dict[int, User] = field(default_factory=dict)
    songs: dict[int, Song] = field(default_factory=dict)
    votes: dict[int, Vote] = field(default_factory=dict)
    vetoes: dict[int, Veto] = field(default_factory=dict)
    next_ids: dict[str, int] = field(
        default_factory=lambda: {"users": 1, "songs": 1, "votes": 1, "vetoes": 1}
    )

    def snapshot(self) -> "_Tables":
        # Entities are frozen, so copying the dicts is enough
        return _Tables(
            users=dict(self.users),
            songs=dict(self.songs),
            votes=dict(self.votes),
            vetoes=dict(self.vetoes),
            next_ids=dict(self.next_ids),
        )

    def allocate_id(self, table: str) -> int:
        new_id = self.next_ids[table]
        self.next_ids[table] = new_id + 1
        return new_id


class InMemoryStore:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._tables = _Tables()
        self._depth = 0

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._lock:
            self._depth += 1
            snapshot = self._tables.snapshot() if self._depth == 1 else None
            try:
                yield
            except BaseException:
                if snapshot is not None:
                    self._tables = snapshot
                raise
            finally:
                self._depth -= 1

    # Users

    def _active_user_named(self, name: str) -> User | None:
        for user in self._tables.users.values():
            if user.name == name and not user.inactive:
                return user
        return None

    def add_user(self, user: User) -> int:
        with self._lock:
            if self._active_user_named(user.name) is not None:
                raise ConflictError(f"user {user.name!r} already exists")
            user_id = self._tables.allocate_id("users")
            self._tables.users[user_id] = user.with_changes(id=user_id)
            return user_id

    def get_user_by_id(self, user_id: int, include_inactive: bool = False) -> User:
        with self._lock:
            user = self._tables.users.get(user_id)
            if user is None or (user.inactive and not include_inactive):
                raise NotFoundError(f"user {user_id} not found")
            return user

    def get_user_by_name(self, name: str) -> User:
        with self._lock:
            user = self._active_user_named(name)
            if user is None:
                raise NotFoundError(f"user {name!r} not found")
            return user

    def list_users(self) -> list[User]:
        with self._lock:
            return [
                user
                for _, user in sorted(self._tables.users.items())
                if not user.inactive
            ]

    def update_user(self, user: User) -> None:
        with self._lock:
            if user.id not in self._tables.users:
                raise NotFoundError(f"user {user.id} not found")
            if not user.inactive:
                clash = self._active_user_named(user.name)
                if clash is not None and clash.id != user.id:
                    raise ConflictError(f"user {user.name!r} already exists")
            self._tables.users[user.id] = user

    def soft_delete_user(self, user_id: int) -> None:
        with self._lock:
            user = self._tables.users.get(user_id)
            if user is None or user.inactive:
                raise NotFoundError(f"user {user_id} not found")
            self._tables.users[user_id] = user.with_changes(inactive=True)

    def decrement_vetoes(self, user_id: int) -> None:
        with self._lock:
            user = self.get_user_by_id(user_id, include_inactive=True)
            if user.vetoes_remaining <= 0:
                raise ForbiddenError("user has no vetoes remaining")
            self._tables.users[user_id] = user.with_changes(
                vetoes_remaining=user.vetoes_remaining - 1
            )

    def increment_vetoes(self, user_id: int) -> None:
        with self._lock:
            user = self.get_user_by_id(user_id, include_inactive=True)
            self._tables.users[user_id] = user.with_changes(
                vetoes_remaining=user.vetoes_remaining + 1
            )

    # Songs

    def _song_with_fingerprint(self, title: str, artist: str) -> Song | None:
        for song in self._tables.songs.values():
            if song.fingerprint == (title, artist):
                return song
        return None

    def add_song(self, song: Song) -> int:
        with self._lock:
            if self._song_with_fingerprint(song.title, song.artist) is not None:
                raise ConflictError(
                    f"{song.title!r} by {song.artist!r} already exists"
                )
            if song.added_by not in self._tables.users:
                raise NotFoundError("referenced user or song does not exist")
            song_id = self._tables.allocate_id("songs")
            self._tables.songs[song_id] = song.with_changes(id=song_id)
            return song_id

    def get_song(self, song_id: int) -> Song:
        with self._lock:
            song = self._tables.songs.get(song_id)
            if song is None:
                raise NotFoundError(f"song {song_id} not found")
            return song

    def list_songs(self) -> list[Song]:
        with self._lock:
            return [song for _, song in sorted(self._tables.songs.items())]

    def update_song(self, song_id: int, title: str, artist: str, link_url: str) -> None:
        with self._lock:
            song = self.get_song(song_id)
            clash = self._song_with_fingerprint(title, artist)
            if clash is not None and clash.id != song_id:
                raise ConflictError(f"{title!r} by {artist!r} already exists")
            self._tables.songs[song_id] = song.with_changes(
                title=title, artist=artist, link_url=link_url
            )

    def delete_song(self, song_id: int) -> None:
        with self._lock:
            if song_id not in self._tables.songs:
                raise NotFoundError(f"song {song_id} not found")
            del self._tables.songs[song_id]
            for table in (self._tables.votes, self._tables.vetoes):
                for row_id in [k for k, row in table.items() if row.song_id == song_id]:
                    del table[row_id]

    def increment_votes(self, song_id: int) -> None:
        with self._lock:
            song = self.get_song(song_id)
            self._tables.songs[song_id] = song.with_changes(votes=song.votes + 1)

    def mark_vetoed(self, song_id: int) -> None:
        with self._lock:
            song = self.get_song(song_id)
            if song.vetoed:
                raise ConflictError(f"song {song_id} is already vetoed")
            self._tables.songs[song_id] = song.with_changes(vetoed=True)

    # Votes

    def _check_references(self, song_id: int, user_id: int) -> None:
        if song_id not in self._tables.songs or user_id not in self._tables.users:
            raise NotFoundError("referenced user or song does not exist")

    def record_vote(self, song_id: int, user_id: int) -> int:
        with self._lock:
            if self.has_vote(song_id, user_id):
                raise ConflictError("user already voted for this song")
            self._check_references(song_id, user_id)
            vote_id = self._tables.allocate_id("votes")
            self._tables.votes[vote_id] = Vote(
                id=vote_id, song_id=song_id, user_id=user_id
            )
            return vote_id

    def has_vote(self, song_id: int, user_id: int) -> bool:
        with self._lock:
            return any(
                vote.fingerprint == (song_id, user_id)
                for vote in self._tables.votes.values()
            )

    def list_votes_for_song(self, song_id: int) -> list[Vote]:
        with self._lock:
            return [
                vote
                for _, vote in sorted(self._tables.votes.items())
                if vote.song_id == song_id
            ]

    # Vetoes

    def record_veto(self, song_id: int, user_id: int) -> int:
        with self._lock:
            if any(v.song_id == song_id for v in self._tables.vetoes.values()):
                raise ConflictError(f"song {song_id} is already vetoed")
            self._check_references(song_id, user_id)
            veto_id = self._tables.allocate_id("vetoes")
            self._tables.vetoes[veto_id] = Veto(
                id=veto_id, song_id=song_id, user_id=user_id
            )
            return veto_id

    def get_veto_for_song(self, song_id: int) -> Veto:
        with self._lock:
            for veto in self._tables.vetoes.values():
                if veto.song_id == song_id:
                    return veto
            raise NotFoundError(f"song {song_id} has not been vetoed")

    def list_vetoes(self) -> list[Veto]:
        with self._lock:
            return [veto for _, veto in sorted(self._tables.vetoes.items())]
