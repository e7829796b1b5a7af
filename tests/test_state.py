import pytest

from essembi_teams import state
from essembi_teams.schema import PendingSelection
from essembi_teams.state import SessionStore


def selection(email="ada@example.com", subject=None):
    return PendingSelection(apps=[], email=email, subject=subject)


@pytest.fixture
def clock(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr(state.time, "time", lambda: now[0])
    return now


def test_save_then_load():
    store = SessionStore()
    store.save("conv", "user", selection(subject="Hi"))

    loaded = store.load("conv", "user")

    assert loaded.subject == "Hi"


def test_missing_key_loads_none():
    assert SessionStore().load("conv", "user") is None


def test_selections_are_scoped_per_user_and_conversation():
    store = SessionStore()
    store.save("conv", "ada", selection("ada@example.com"))
    store.save("conv", "bob", selection("bob@example.com"))

    assert store.load("conv", "ada").email == "ada@example.com"
    assert store.load("conv", "bob").email == "bob@example.com"
    assert store.load("other-conv", "ada") is None


def test_last_write_wins():
    store = SessionStore()
    store.save("conv", "user", selection(subject="first"))
    store.save("conv", "user", selection(subject="second"))

    assert store.load("conv", "user").subject == "second"
    assert len(store) == 1


def test_clear():
    store = SessionStore()
    store.save("conv", "user", selection())
    store.clear("conv", "user")
    store.clear("conv", "never-saved")

    assert store.load("conv", "user") is None


def test_entries_expire(clock):
    store = SessionStore(ttl_seconds=60)
    store.save("conv", "user", selection())

    clock[0] += 59
    assert store.load("conv", "user") is not None

    clock[0] += 1
    assert store.load("conv", "user") is None
    assert len(store) == 0


def test_sweep_expired(clock):
    store = SessionStore(ttl_seconds=60)
    store.save("conv", "old", selection())
    clock[0] += 30
    store.save("conv", "new", selection())
    clock[0] += 30

    assert store.sweep_expired() == 1
    assert store.load("conv", "new") is not None


def test_abandoned_selections_are_dropped_on_save(clock):
    store = SessionStore(ttl_seconds=60)
    for user in range(50):
        store.save("conv", f"user-{user}", selection())

    clock[0] += 60
    store.save("conv", "late", selection())

    assert list(store._items) == [("conv", "late")]


def test_zero_ttl_keeps_nothing(clock):
    store = SessionStore(ttl_seconds=0)
    for user in range(50):
        store.save("conv", f"user-{user}", selection())

    assert len(store) == 0
