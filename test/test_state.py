"""Serialization and roster setup."""

import pytest

from backend.engine.state import GameState, Castle, Tile, cell_from_dict
from backend.engine.actions import Action, place_castle, draw_tile
from backend.engine.events import GameEvent
from backend.engine.errors import InvalidRoster
from backend.engine.reducer import apply_action
from backend.engine.utils import validate_roster

from conftest import ROSTER, exhaust


def test_json_round_trip_mid_epoch(two_player_state):
    state, _ = apply_action(two_player_state, place_castle("p1", "red-rank2-0", 1, 1))
    state, _ = apply_action(state, draw_tile("p2"))

    restored = GameState.from_json(state.to_json())
    assert restored.to_dict() == state.to_dict()
    assert isinstance(restored.board[1][1], Castle)
    assert restored.board[1][1].position == (1, 1)
    assert restored.held_tile.id == state.held_tile.id


def test_round_trip_keeps_epoch_keys_as_ints(two_player_state):
    state = two_player_state
    exhaust(state)
    state.scores_by_epoch[1] = {"p1": 4, "p2": -2}
    restored = GameState.from_json(state.to_json())
    assert restored.scores_by_epoch == {1: {"p1": 4, "p2": -2}}


def test_save_and_load(tmp_path, two_player_state):
    path = tmp_path / "match.json"
    two_player_state.save(str(path))
    assert GameState.load(str(path)).to_dict() == two_player_state.to_dict()


def test_board_cells_are_tagged():
    castle = cell_from_dict({"kind": "castle", "id": "red-rank1-0", "rank": 1, "color": "red",
                             "position": [2, 3]})
    tile = cell_from_dict({"kind": "tile", "id": "dragon", "tile_kind": "dragon"})
    assert isinstance(castle, Castle) and castle.position == (2, 3)
    assert isinstance(tile, Tile) and tile.kind == "dragon"
    assert cell_from_dict(None) is None
    assert cell_from_dict({"id": "x"}) is None


def test_from_dict_tolerates_junk():
    state = GameState.from_dict({"players": "nope", "board": [[1, 2]], "epoch": "x"})
    assert state.players == []
    assert state.epoch == 1
    assert state.version == 0
    assert state.is_board_full() is False


def test_action_round_trip():
    action = place_castle("p1", "red-rank1-0", 0, 4)
    assert Action.from_dict(action.to_dict()) == action


def test_event_round_trip(two_player_state):
    _, events = apply_action(two_player_state, place_castle("p1", "red-rank1-0", 0, 0))
    restored = [GameEvent.from_dict(e.to_dict()) for e in events]
    assert restored == events
    assert restored[0].payload["castle_id"] == "red-rank1-0"


@pytest.mark.parametrize("roster", [
    ROSTER[:1],
    ROSTER + [{"id": "p5", "name": "E", "color": "red"}],
    [ROSTER[0], {"id": "p2", "name": "B", "color": "red"}],
    [ROSTER[0], {"id": "p1", "name": "B", "color": "blue"}],
    [ROSTER[0], {"id": "p2", "name": "B", "color": "purple"}],
    [ROSTER[0], {"id": "", "name": "B", "color": "blue"}],
])
def test_bad_rosters_rejected(roster):
    with pytest.raises(InvalidRoster):
        validate_roster(roster)
