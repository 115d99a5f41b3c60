"""Versioned store: conditional writes and change notifications."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from backend.api.database import init_db
from backend.api.store import GameStore, is_newer_snapshot
from backend.engine.actions import place_castle
from backend.engine.errors import SyncConflict
from backend.engine.reducer import apply_action

from conftest import ROSTER


@pytest.fixture
def store():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    return GameStore(sessionmaker(autocommit=False, autoflush=False, bind=engine))


def test_create_and_load(store, two_player_state):
    store.create(two_player_state, ROSTER[:2])
    loaded = store.load("m1")
    assert loaded.to_dict() == two_player_state.to_dict()
    assert store.current_version("m1") == 1


def test_load_missing(store):
    assert store.load("nope") is None
    assert store.current_version("nope") is None


def test_save_advances_version(store, two_player_state):
    store.create(two_player_state, ROSTER[:2])
    new_state, _ = apply_action(two_player_state, place_castle("p1", "red-rank1-0", 0, 0))
    store.save("m1", new_state, expected_version=1)
    assert store.current_version("m1") == 2
    assert store.load("m1").board[0][0].id == "red-rank1-0"


def test_stale_write_is_rejected(store, two_player_state):
    store.create(two_player_state, ROSTER[:2])
    winner, _ = apply_action(two_player_state, place_castle("p1", "red-rank1-0", 0, 0))
    loser, _ = apply_action(two_player_state, place_castle("p1", "red-rank2-0", 4, 5))

    store.save("m1", winner, expected_version=1)
    with pytest.raises(SyncConflict) as exc:
        store.save("m1", loser, expected_version=1)

    assert exc.value.actual_version == 2
    stored = store.load("m1")
    assert stored.board[0][0] is not None
    assert stored.board[4][5] is None


def test_save_to_missing_match_conflicts(store, two_player_state):
    new_state, _ = apply_action(two_player_state, place_castle("p1", "red-rank1-0", 0, 0))
    with pytest.raises(SyncConflict) as exc:
        store.save("m1", new_state, expected_version=1)
    assert exc.value.actual_version is None


def test_version_must_move_forward(store, two_player_state):
    store.create(two_player_state, ROSTER[:2])
    with pytest.raises(ValueError):
        store.save("m1", two_player_state, expected_version=1)


def test_subscribers_see_saves_until_unsubscribed(store, two_player_state):
    store.create(two_player_state, ROSTER[:2])
    seen = []
    unsubscribe = store.subscribe("m1", lambda s: seen.append(s.version))

    state, _ = apply_action(two_player_state, place_castle("p1", "red-rank1-0", 0, 0))
    store.save("m1", state, expected_version=1)
    unsubscribe()
    unsubscribe()
    later, _ = apply_action(state, place_castle("p2", "blue-rank1-0", 0, 1))
    store.save("m1", later, expected_version=2)

    assert seen == [2]


def test_failing_listener_does_not_block_others(store, two_player_state):
    store.create(two_player_state, ROSTER[:2])
    seen = []

    def broken(_state):
        raise RuntimeError("boom")

    store.subscribe("m1", broken)
    store.subscribe("m1", lambda s: seen.append(s.version))
    state, _ = apply_action(two_player_state, place_castle("p1", "red-rank1-0", 0, 0))
    store.save("m1", state, expected_version=1)

    assert seen == [2]
    assert store.current_version("m1") == 2


def test_is_newer_snapshot(two_player_state):
    assert is_newer_snapshot(None, two_player_state)
    assert is_newer_snapshot(0, two_player_state)
    assert not is_newer_snapshot(1, two_player_state)
    assert not is_newer_snapshot(5, two_player_state)
