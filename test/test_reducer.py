"""Turn engine: each action type, rejection paths, passing and player removal."""

import random

import pytest

from backend.engine.state import Castle, Tile
from backend.engine.actions import (
    Action,
    place_castle,
    draw_tile,
    place_held_tile,
    place_starting_tile,
    pass_turn,
)
from backend.engine.errors import InvalidMove, ResourceUnavailable
from backend.engine.events import CASTLE_PLACED, TILE_DRAWN, TILE_PLACED, TURN_ADVANCED, PLAYER_REMOVED
from backend.engine.queries import can_act, validate_action, get_available_action_types
from backend.engine.reducer import apply_action, remove_player, replay_from_actions
from backend.engine.epoch import check_epoch_end

from conftest import exhaust, fill_board, make_state


def test_initial_state(two_player_state):
    state = two_player_state
    assert state.version == 1
    assert state.epoch == 1
    assert state.current_player.id == "p1"
    assert [p.gold for p in state.players] == [50, 50]
    assert all(p.starting_tile is not None for p in state.players)
    assert len(state.tile_supply) == 21
    assert len(state.empty_cells()) == 30


def test_place_castle(two_player_state):
    state = two_player_state
    new_state, events = apply_action(state, place_castle("p1", "red-rank1-0", 0, 0))

    cell = new_state.board[0][0]
    assert isinstance(cell, Castle) and cell.id == "red-rank1-0"
    assert new_state.get_player("p1").castles[0].position == (0, 0)
    assert new_state.current_player.id == "p2"
    assert new_state.version == 2
    assert [e.type for e in events] == [CASTLE_PLACED, TURN_ADVANCED]

    # input state untouched
    assert state.board[0][0] is None
    assert state.version == 1
    assert state.current_player.id == "p1"


@pytest.mark.parametrize("action", [
    place_castle("p2", "blue-rank1-0", 0, 0),  # not p2's turn
    place_castle("p1", "blue-rank1-0", 0, 0),  # not p1's castle
    place_castle("p1", "red-rank9-0", 0, 0),  # no such castle
    place_castle("p1", "red-rank1-0", 5, 0),  # off board
    place_castle("p1", "red-rank1-0", 0, -1),  # off board
    place_castle("p1", "red-rank1-0", "a", 0),  # not a position
    pass_turn("p1"),  # can still act
    Action("bogus", "p1", {}),
])
def test_invalid_moves_leave_state_unchanged(two_player_state, action):
    before = two_player_state.to_dict()
    assert not validate_action(two_player_state, action).valid
    with pytest.raises(InvalidMove):
        apply_action(two_player_state, action)
    assert two_player_state.to_dict() == before


def test_occupied_cell_rejected(two_player_state):
    state, _ = apply_action(two_player_state, place_castle("p1", "red-rank1-0", 2, 2))
    with pytest.raises(InvalidMove):
        apply_action(state, place_castle("p2", "blue-rank1-0", 2, 2))


def test_castle_cannot_be_placed_twice(two_player_state):
    state, _ = apply_action(two_player_state, place_castle("p1", "red-rank1-0", 0, 0))
    state, _ = apply_action(state, place_castle("p2", "blue-rank1-0", 0, 1))
    with pytest.raises(InvalidMove):
        apply_action(state, place_castle("p1", "red-rank1-0", 0, 2))


def test_draw_then_place_held_tile(two_player_state):
    front = two_player_state.tile_supply[0]
    state, events = apply_action(two_player_state, draw_tile("p1"))

    assert state.held_tile.id == front.id
    assert len(state.tile_supply) == 20
    assert state.current_player.id == "p1"
    assert [e.type for e in events] == [TILE_DRAWN]
    assert get_available_action_types(state, "p1") == ["place_held_tile"]

    state, events = apply_action(state, place_held_tile("p1", 3, 4))
    assert state.held_tile is None
    assert isinstance(state.board[3][4], Tile) and state.board[3][4].id == front.id
    assert state.current_player.id == "p2"
    assert [e.type for e in events] == [TILE_PLACED, TURN_ADVANCED]


def test_held_tile_blocks_other_actions(two_player_state):
    state, _ = apply_action(two_player_state, draw_tile("p1"))
    for action in (place_castle("p1", "red-rank1-0", 0, 0), draw_tile("p1"), place_starting_tile("p1", 0, 0)):
        with pytest.raises(InvalidMove):
            apply_action(state, action)


def test_draw_from_empty_supply(two_player_state):
    state = two_player_state
    state.tile_supply = []
    with pytest.raises(ResourceUnavailable):
        apply_action(state, draw_tile("p1"))


def test_place_held_tile_without_drawing(two_player_state):
    with pytest.raises(ResourceUnavailable):
        apply_action(two_player_state, place_held_tile("p1", 0, 0))


def test_starting_tile_is_placed_once(two_player_state):
    starting = two_player_state.players[0].starting_tile
    state, events = apply_action(two_player_state, place_starting_tile("p1", 1, 1))
    assert state.board[1][1].id == starting.id
    assert state.get_player("p1").starting_tile is None
    assert events[0].payload["source"] == "starting"

    state, _ = apply_action(state, place_castle("p2", "blue-rank1-0", 0, 0))
    with pytest.raises(ResourceUnavailable):
        apply_action(state, place_starting_tile("p1", 1, 2))


def test_pass_only_when_nothing_to_do(two_player_state):
    state = two_player_state
    p1 = state.players[0]
    p1.castles = []
    p1.starting_tile = None
    state.tile_supply = []
    assert not can_act(p1, state)
    assert can_act(state.players[1], state)

    new_state, _ = apply_action(state, pass_turn("p1"))
    assert new_state.current_player.id == "p2"
    assert new_state.epoch == 1


def test_can_act_false_on_full_board(two_player_state):
    state = two_player_state
    fill_board(state)
    assert not any(can_act(p, state) for p in state.players)


def test_turns_rotate_round_robin(three_player_state):
    state = three_player_state
    order = []
    for i, player_id in enumerate(["p1", "p2", "p3", "p1"]):
        color = state.get_player(player_id).color
        state, _ = apply_action(state, place_castle(player_id, f"{color}-rank2-{i // 3}", 0, i))
        order.append(state.current_player.id)
    assert order == ["p2", "p3", "p1", "p2"]


def test_remove_player_before_current_keeps_current(three_player_state):
    state = three_player_state
    state.current_player_index = 2
    new_state, events = remove_player(state, "p1")
    assert [p.id for p in new_state.players] == ["p2", "p3"]
    assert new_state.current_player.id == "p3"
    assert events[0].type == PLAYER_REMOVED
    assert new_state.version == state.version + 1


def test_remove_current_player_passes_turn_on(three_player_state):
    state = three_player_state
    state.current_player_index = 1
    new_state, _ = remove_player(state, "p2")
    assert new_state.current_player.id == "p3"


def test_remove_last_seat_wraps_to_first(three_player_state):
    state = three_player_state
    state.current_player_index = 2
    new_state, _ = remove_player(state, "p3")
    assert new_state.current_player.id == "p1"


def test_remove_current_player_returns_held_tile(three_player_state):
    state, _ = apply_action(three_player_state, draw_tile("p1"))
    held = state.held_tile
    new_state, _ = remove_player(state, "p1")
    assert new_state.held_tile is None
    assert new_state.tile_supply[0].id == held.id
    assert new_state.current_player.id == "p2"


def test_remove_unknown_player(two_player_state):
    with pytest.raises(InvalidMove):
        remove_player(two_player_state, "nobody")


def test_remove_player_after_match_finished(two_player_state):
    state = two_player_state
    state.epoch = 3
    exhaust(state)
    final, _ = check_epoch_end(state)
    assert final.phase == "finished"

    with pytest.raises(InvalidMove):
        remove_player(final, final.winner_id)
    assert final.get_player(final.winner_id) is not None


def test_replay_matches_step_by_step(two_player_state):
    actions = [
        place_castle("p1", "red-rank4-0", 2, 2),
        draw_tile("p2"),
        place_held_tile("p2", 2, 3),
        place_starting_tile("p1", 1, 2),
    ]
    state = two_player_state
    for action in actions:
        state, _ = apply_action(state, action)

    replayed, events = replay_from_actions(two_player_state, actions)
    assert replayed.to_dict() == state.to_dict()
    assert len(events) == 7


def test_same_seed_same_match():
    a = make_state(4, seed=9)
    b = make_state(4, seed=9)
    assert [t.id for t in a.tile_supply] == [t.id for t in b.tile_supply]
    assert [p.starting_tile.id for p in a.players] == [p.starting_tile.id for p in b.players]


def test_full_random_match_finishes():
    rng = random.Random(3)
    state = make_state(2, seed=3)
    for _ in range(500):
        if state.phase == "finished":
            break
        player = state.current_player
        types = get_available_action_types(state, player.id)
        row, col = rng.choice(state.empty_cells()) if state.empty_cells() else (0, 0)
        if "place_held_tile" in types:
            action = place_held_tile(player.id, row, col)
        elif "place_castle" in types:
            action = place_castle(player.id, player.unplaced_castles()[0].id, row, col)
        elif "draw_tile" in types:
            action = draw_tile(player.id)
        elif "place_starting_tile" in types:
            action = place_starting_tile(player.id, row, col)
        else:
            action = pass_turn(player.id)
        state, _ = apply_action(state, action, rng)

    assert state.phase == "finished"
    assert sorted(state.scores_by_epoch) == [1, 2, 3]
    assert state.winner_id in {"p1", "p2"}
    assert all(p.gold >= 0 for p in state.players)
