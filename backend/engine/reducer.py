"""
Main game reducer.
Applies actions to state, enforcing rules and producing new state.
Returns (new_state, events) where events describe what happened.
"""

import logging
import random

from backend.engine import PHASE_FINISHED
from backend.engine.state import GameState, Player, Tile
from backend.engine.actions import (
    Action,
    PLACE_CASTLE,
    DRAW_TILE,
    PLACE_HELD_TILE,
    PLACE_STARTING_TILE,
    PASS_TURN,
)
from backend.engine.errors import InvalidMove, ResourceUnavailable
from backend.engine.queries import can_act, cell_error
from backend.engine.epoch import check_epoch_end
from backend.engine.events import (
    GameEvent,
    turn_advanced,
    turn_passed,
    castle_placed,
    tile_drawn,
    tile_placed,
    player_removed,
)

logger = logging.getLogger(__name__)


def _validate_turn(action: Action, state: GameState) -> None:
    """
    Validate that the match is running, the actor is the current player,
    and that a drawn tile is resolved before anything else.
    """
    if state.phase == PHASE_FINISHED:
        winner = state.get_player(state.winner_id) if state.winner_id else None
        raise InvalidMove(f"Match is over. {winner.name if winner else 'Nobody'} has won.")

    if not state.players:
        raise InvalidMove("Match has no players")

    current = state.current_player
    if action.player_id != current.id:
        raise InvalidMove(
            f"Action player {action.player_id} does not match current player {current.id}")

    if state.held_tile is not None and action.type != PLACE_HELD_TILE:
        raise InvalidMove(
            f"Drawn tile {state.held_tile.name or state.held_tile.id} must be placed before '{action.type}'"
        )


def apply_action(
    state: GameState,
    action: Action,
    rng: random.Random | None = None,
) -> tuple[GameState, list[GameEvent]]:
    """
    Apply a single action to the current state, returning new state and events.

    The input state is never modified. After the action, the epoch is settled
    if it has ended (scores, gold, and the next epoch's setup), so the returned
    state is always ready to be stored.

    Args:
        state: Current game state
        action: Action to apply
        rng: Randomness for the next epoch's shuffle (module random if None)

    Returns:
        Tuple of (new_state, events) where events describe what happened

    Raises:
        InvalidMove: wrong player, bad cell, castle not owned, unresolved drawn tile
        ResourceUnavailable: nothing to draw, no held or starting tile
    """
    _validate_turn(action, state)

    new_state = state.copy()
    new_state.version += 1
    events: list[GameEvent] = []

    if action.type == PLACE_CASTLE:
        evts = _handle_place_castle(new_state, action)
    elif action.type == DRAW_TILE:
        evts = _handle_draw_tile(new_state, action)
    elif action.type == PLACE_HELD_TILE:
        evts = _handle_place_held_tile(new_state, action)
    elif action.type == PLACE_STARTING_TILE:
        evts = _handle_place_starting_tile(new_state, action)
    elif action.type == PASS_TURN:
        evts = _handle_pass(new_state, action)
    else:
        raise InvalidMove(f"Unknown action type: {action.type}")
    events.extend(evts)

    logger.debug(
        "Match %s v%s: %s applied %s", new_state.match_id, new_state.version, action.player_id, action.type
    )

    new_state, evts = check_epoch_end(new_state, rng)
    events.extend(evts)
    return new_state, events


def _target_cell(state: GameState, action: Action) -> tuple[int, int]:
    row = action.payload.get("row")
    col = action.payload.get("col")
    error = cell_error(state, row, col)
    if error:
        raise InvalidMove(error)
    return row, col


def _advance_turn(state: GameState) -> GameEvent:
    """Round-robin to the next player."""
    old_index = state.current_player_index
    state.current_player_index = (old_index + 1) % len(state.players)
    return turn_advanced(old_index, state.current_player_index, state.current_player.id)


def _handle_place_castle(state: GameState, action: Action) -> list[GameEvent]:
    """
    Place one of the current player's castles.
    Validates:
    - Castle belongs to the player and is not yet placed
    - Target cell is on the board and empty
    """
    player = state.current_player
    castle_id = action.payload.get("castle_id")

    castle = next((c for c in player.castles if c.id == castle_id), None)
    if castle is None:
        raise InvalidMove(f"Castle {castle_id} does not belong to {player.id}")
    if castle.position is not None:
        raise InvalidMove(f"Castle {castle_id} is already placed at {castle.position}")

    row, col = _target_cell(state, action)
    castle.position = (row, col)
    state.board[row][col] = castle
    state.add_log(player, f"Placed rank {castle.rank} castle at ({row}, {col})")

    return [
        castle_placed(player.id, castle.id, castle.rank, row, col),
        _advance_turn(state),
    ]


def _handle_draw_tile(state: GameState, action: Action) -> list[GameEvent]:
    """
    Draw the front tile of the supply into the held slot.
    The turn does not advance until the tile is placed.
    """
    player = state.current_player
    if not state.tile_supply:
        raise ResourceUnavailable("No tiles left to draw")
    if not state.has_empty_cell():
        raise ResourceUnavailable("No empty space to place a tile")

    tile = state.tile_supply.pop(0)
    state.held_tile = tile
    state.add_log(player, f"Drew {tile.name or tile.id}")

    return [tile_drawn(player.id, tile.id, len(state.tile_supply))]


def _place_tile(state: GameState, player: Player, tile: Tile, action: Action, source: str) -> list[GameEvent]:
    row, col = _target_cell(state, action)
    tile.position = (row, col)
    state.board[row][col] = tile
    label = "starting tile" if source == "starting" else "tile"
    state.add_log(player, f"Placed {label} {tile.name or tile.id} at ({row}, {col})")
    return [
        tile_placed(player.id, tile.id, tile.kind, row, col, source),
        _advance_turn(state),
    ]


def _handle_place_held_tile(state: GameState, action: Action) -> list[GameEvent]:
    player = state.current_player
    tile = state.held_tile
    if tile is None:
        raise ResourceUnavailable("No drawn tile to place")

    events = _place_tile(state, player, tile, action, "held")
    state.held_tile = None
    return events


def _handle_place_starting_tile(state: GameState, action: Action) -> list[GameEvent]:
    player = state.current_player
    tile = player.starting_tile
    if tile is None:
        raise ResourceUnavailable(f"{player.name} has no starting tile to place")

    events = _place_tile(state, player, tile, action, "starting")
    player.starting_tile = None
    return events


def _handle_pass(state: GameState, action: Action) -> list[GameEvent]:
    """Passing is only allowed when the player has nothing else to do."""
    player = state.current_player
    if can_act(player, state):
        raise InvalidMove(f"{player.name} cannot pass while an action is available")

    state.add_log(player, "Passed")
    return [turn_passed(player.id), _advance_turn(state)]


def remove_player(
    state: GameState,
    player_id: str,
    rng: random.Random | None = None,
) -> tuple[GameState, list[GameEvent]]:
    """
    Remove a player who left the match.

    Their castles already on the board stay there but no longer score.
    current_player_index keeps pointing at the same logical player: it is
    decremented when the departing player sat before the current one. If the
    departing player was the current player, the next player in order takes
    over and any drawn tile goes back to the front of the supply.
    """
    if state.phase == PHASE_FINISHED:
        raise InvalidMove("Match is over; the final roster is kept")

    index = state.player_index(player_id)
    if index is None:
        raise InvalidMove(f"Player {player_id} is not in this match")
    if len(state.players) <= 1:
        raise InvalidMove("Cannot remove the last player")

    new_state = state.copy()
    new_state.version += 1
    departing = new_state.players[index]

    if index < new_state.current_player_index:
        new_state.current_player_index -= 1
    elif index == new_state.current_player_index and new_state.held_tile is not None:
        new_state.tile_supply.insert(0, new_state.held_tile)
        new_state.held_tile = None

    new_state.players.pop(index)
    if new_state.current_player_index >= len(new_state.players):
        new_state.current_player_index = 0

    new_state.add_log(departing, "Left the match")
    logger.info("Match %s: player %s left", new_state.match_id, player_id)
    events = [player_removed(player_id, index, new_state.current_player_index)]

    new_state, evts = check_epoch_end(new_state, rng)
    events.extend(evts)
    return new_state, events


def replay_from_actions(
    initial_state: GameState,
    actions: list[Action],
    rng: random.Random | None = None,
) -> tuple[GameState, list[GameEvent]]:
    """
    Replay a series of actions from an initial state.
    Event sourcing: state is derived from action log.

    Args:
        initial_state: Starting game state
        actions: List of actions to apply in sequence
        rng: Shared randomness for every epoch reset during the replay

    Returns:
        Tuple of (final_state, all_events) after all actions applied
    """
    current_state = initial_state.copy()
    all_events: list[GameEvent] = []

    for action in actions:
        current_state, events = apply_action(current_state, action, rng)
        all_events.extend(events)

    return current_state, all_events
