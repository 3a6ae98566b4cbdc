"""Contract tests shared by the in-memory and SQL stores."""

import pytest

from songvote.domain.entities import Song, User
from songvote.domain.exceptions import ConflictError, ForbiddenError, NotFoundError


def _add_user(store, name: str = "alice", vetoes: int = 1) -> int:
    with store.atomic():
        return store.add_user(
            User(id=None, name=name, password_hash="hash", vetoes_remaining=vetoes)
        )


def _add_song(store, added_by: int, title: str = "Ghost Town") -> int:
    song = Song(
        id=None, title=title, artist="The Specials", link_url="", added_by=added_by
    )
    with store.atomic():
        return store.add_song(song)


def test_ids_start_at_one_and_ascend(store):
    assert _add_user(store, "alice") == 1
    assert _add_user(store, "bob") == 2
    assert [u.name for u in store.list_users()] == ["alice", "bob"]


def test_add_user_duplicate_active_name_conflicts(store):
    _add_user(store, "alice")
    with pytest.raises(ConflictError):
        _add_user(store, "alice")


def test_names_are_case_sensitive(store):
    _add_user(store, "alice")
    _add_user(store, "Alice")
    assert len(store.list_users()) == 2


def test_soft_deleted_user_is_hidden_but_kept(store):
    user_id = _add_user(store)
    with store.atomic():
        store.soft_delete_user(user_id)

    assert store.list_users() == []
    with pytest.raises(NotFoundError):
        store.get_user_by_id(user_id)
    with pytest.raises(NotFoundError):
        store.get_user_by_name("alice")
    assert store.get_user_by_id(user_id, include_inactive=True).inactive


def test_soft_delete_twice_is_not_found(store):
    user_id = _add_user(store)
    with store.atomic():
        store.soft_delete_user(user_id)
    with pytest.raises(NotFoundError):
        store.soft_delete_user(user_id)


def test_name_of_inactive_user_can_be_reused(store):
    first = _add_user(store, "alice")
    with store.atomic():
        store.soft_delete_user(first)
    second = _add_user(store, "alice")
    assert second != first
    assert store.get_user_by_name("alice").id == second


def test_reactivating_onto_taken_name_conflicts(store):
    first = _add_user(store, "alice")
    with store.atomic():
        store.soft_delete_user(first)
    _add_user(store, "alice")

    old = store.get_user_by_id(first, include_inactive=True)
    with pytest.raises(ConflictError):
        with store.atomic():
            store.update_user(old.with_changes(inactive=False))


def test_veto_budget_never_goes_negative(store):
    user_id = _add_user(store, vetoes=1)
    with store.atomic():
        store.decrement_vetoes(user_id)
    assert store.get_user_by_id(user_id).vetoes_remaining == 0

    with pytest.raises(ForbiddenError):
        store.decrement_vetoes(user_id)
    assert store.get_user_by_id(user_id).vetoes_remaining == 0


def test_increment_vetoes_unknown_user(store):
    with pytest.raises(NotFoundError):
        store.increment_vetoes(99)


def test_song_fingerprint_is_unique(store):
    user_id = _add_user(store)
    _add_song(store, user_id)
    with pytest.raises(ConflictError):
        _add_song(store, user_id)
    assert len(store.list_songs()) == 1


def test_new_song_starts_unvoted(store):
    song_id = _add_song(store, _add_user(store))
    song = store.get_song(song_id)
    assert song.votes == 0
    assert song.vetoed is False


def test_update_song_onto_existing_pair_conflicts(store):
    user_id = _add_user(store)
    _add_song(store, user_id, "Ghost Town")
    other = _add_song(store, user_id, "Too Much Too Young")
    with pytest.raises(ConflictError):
        store.update_song(other, "Ghost Town", "The Specials", "")


def test_update_missing_song_is_not_found(store):
    with pytest.raises(NotFoundError):
        store.update_song(42, "t", "a", "")


def test_duplicate_vote_conflicts(store):
    user_id = _add_user(store)
    song_id = _add_song(store, user_id)
    with store.atomic():
        store.record_vote(song_id, user_id)
    assert store.has_vote(song_id, user_id)
    with pytest.raises(ConflictError):
        store.record_vote(song_id, user_id)


def test_vote_for_unknown_song_is_not_found(store):
    user_id = _add_user(store)
    with pytest.raises(NotFoundError):
        with store.atomic():
            store.record_vote(99, user_id)


def test_mark_vetoed_twice_conflicts(store):
    song_id = _add_song(store, _add_user(store))
    with store.atomic():
        store.mark_vetoed(song_id)
    assert store.get_song(song_id).vetoed
    with pytest.raises(ConflictError):
        store.mark_vetoed(song_id)


def test_one_veto_per_song(store):
    alice = _add_user(store, "alice")
    bob = _add_user(store, "bob")
    song_id = _add_song(store, alice)
    with store.atomic():
        store.record_veto(song_id, alice)
    with pytest.raises(ConflictError):
        store.record_veto(song_id, bob)
    assert store.get_veto_for_song(song_id).user_id == alice


def test_delete_song_removes_votes_and_veto(store):
    user_id = _add_user(store)
    song_id = _add_song(store, user_id)
    with store.atomic():
        store.record_vote(song_id, user_id)
        store.record_veto(song_id, user_id)
        store.delete_song(song_id)

    with pytest.raises(NotFoundError):
        store.get_song(song_id)
    assert store.list_votes_for_song(song_id) == []
    assert store.list_vetoes() == []


def test_delete_missing_song_is_not_found(store):
    with pytest.raises(NotFoundError):
        store.delete_song(7)


def test_failed_atomic_block_rolls_back(store):
    with pytest.raises(RuntimeError):
        with store.atomic():
            store.add_user(User(id=None, name="ghost", password_hash="hash"))
            raise RuntimeError("boom")
    assert store.list_users() == []


def test_nested_atomic_commits_once(store):
    with store.atomic():
        with store.atomic():
            store.add_user(User(id=None, name="alice", password_hash="hash"))
        store.add_user(User(id=None, name="bob", password_hash="hash"))
    assert [u.name for u in store.list_users()] == ["alice", "bob"]
