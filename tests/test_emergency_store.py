import logging

import pytest

from watchlist_core.schemas.user import InsertUser, UserUpdate
from watchlist_core.storage.emergency import GUEST_USERNAME, EmergencyStore, is_emergency_id
from watchlist_core.storage.errors import DuplicateUsername


def test_seeded_with_guest_user():
    store = EmergencyStore()

    guest = store.get_user_by_username(GUEST_USERNAME)

    assert guest is not None
    assert guest.id == -1
    assert store.has_emergency_data is False


def test_create_and_lookup_user():
    store = EmergencyStore()

    user = store.create_user(InsertUser(username="bob", password="x"))

    assert user.id == -2
    assert user.created_at is not None
    assert store.get_user(user.id) == user
    assert store.get_user_by_username("BOB") == user
    assert store.has_emergency_data is True


def test_username_is_unique_ignoring_case():
    store = EmergencyStore()
    store.create_user(InsertUser(username="alice", password="secret123"))

    with pytest.raises(DuplicateUsername):
        store.create_user(InsertUser(username="Alice", password="other"))


def test_missing_rows_return_none():
    store = EmergencyStore()
    assert store.get_user(999) is None
    assert store.get_user_by_username("nobody") is None
    assert store.update_user(999, UserUpdate(display_name="x")) is None
    assert store.get("movies", 1) is None


def test_update_user_changes_only_given_fields():
    store = EmergencyStore()
    user = store.create_user(InsertUser(username="carol", password="old", display_name="Carol"))

    updated = store.update_user(user.id, UserUpdate(password="new"))

    assert updated.password == "new"
    assert updated.display_name == "Carol"
    assert store.get_user(user.id).password == "new"


def test_mirror_tables_have_independent_ids():
    store = EmergencyStore()

    movie = store.insert("movies", {"tmdb_id": 550, "title": "Fight Club"})
    entry = store.insert("watchlist_entries", {"user_id": 1, "movie_id": movie["id"]})

    assert movie["id"] == -1
    assert entry["id"] == -1
    assert store.get("movies", -1)["title"] == "Fight Club"
    assert store.counts() == {"users": 1, "movies": 1, "platforms": 0, "watchlist_entries": 1}


def test_emergency_access_is_logged_distinctly(caplog):
    store = EmergencyStore()
    with caplog.at_level(logging.WARNING, logger="watchlist_core.storage.emergency"):
        store.create_user(InsertUser(username="dave", password="x"))

    assert any("[EMERGENCY]" in record.getMessage() for record in caplog.records)


def test_ids_never_overlap_database_ids():
    store = EmergencyStore()

    ids = [store.create_user(InsertUser(username=name, password="x")).id for name in ("ann", "ben", "cat")]

    assert ids == [-2, -3, -4]
    assert all(is_emergency_id(user_id) for user_id in ids)
    assert not is_emergency_id(1)
