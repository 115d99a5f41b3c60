"""
Main entry point for the Kingdoms game engine.
Plays a full seeded three-epoch match with a simple bot for every seat.
"""

import logging
import random
import sys

from backend.config import LOG_LEVEL
from backend.engine import PHASE_FINISHED
from backend.engine.state import GameState
from backend.engine.actions import (
    Action,
    PLACE_CASTLE,
    DRAW_TILE,
    PLACE_HELD_TILE,
    PLACE_STARTING_TILE,
    PASS_TURN,
    place_castle,
    draw_tile,
    place_held_tile,
    place_starting_tile,
    pass_turn,
)
from backend.engine.errors import GameError
from backend.engine.reducer import apply_action
from backend.engine.queries import get_available_action_types, get_score_preview
from backend.engine.utils import initialize_game_state, print_game_state

ROSTER = [
    {"id": "p1", "name": "Alice", "color": "red"},
    {"id": "p2", "name": "Bruno", "color": "blue"},
    {"id": "p3", "name": "Chen", "color": "yellow"},
]


def choose_action(state: GameState, rng: random.Random) -> Action:
    """Pick a random legal action for the current player."""
    player = state.current_player
    available = get_available_action_types(state, player.id)
    empty = state.empty_cells()

    if PLACE_HELD_TILE in available:
        row, col = rng.choice(empty)
        return place_held_tile(player.id, row, col)

    choice = rng.choice(available)
    if choice == PLACE_CASTLE:
        castle = max(player.unplaced_castles(), key=lambda c: c.rank)
        row, col = rng.choice(empty)
        return place_castle(player.id, castle.id, row, col)
    if choice == DRAW_TILE:
        return draw_tile(player.id)
    if choice == PLACE_STARTING_TILE:
        row, col = rng.choice(empty)
        return place_starting_tile(player.id, row, col)
    return pass_turn(player.id)


def main(seed: int = 7):
    print("Kingdoms Game Engine")
    print("=" * 60)

    rng = random.Random(seed)
    state = initialize_game_state(ROSTER, match_id=f"demo-{seed}", rng=rng)

    print("\n[INITIAL STATE]")
    print_game_state(state)

    epoch = state.epoch
    while state.phase != PHASE_FINISHED:
        action = choose_action(state, rng)
        try:
            state, events = apply_action(state, action, rng)
        except GameError as e:
            print(f"✗ {action.type} rejected: {e}")
            return 1

        if state.epoch != epoch or state.phase == PHASE_FINISHED:
            scores = state.scores_by_epoch.get(epoch, {})
            print(f"\n[EPOCH {epoch} SCORED]")
            for player in state.players:
                print(f"  {player.name}: {scores.get(player.id, 0):+d} -> {player.gold} gold")
            epoch = state.epoch
            if state.phase != PHASE_FINISHED:
                print(f"  Epoch {epoch} starts with {state.current_player.name}")
        elif action.type not in (DRAW_TILE, PASS_TURN) and len(state.empty_cells()) % 10 == 0:
            print(f"  live score: {get_score_preview(state)}")

    print("\n[FINAL STATE]")
    print_game_state(state, verbose=True)
    winner = state.get_player(state.winner_id)
    print(f"Winner: {winner.name} with {winner.gold} gold")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=LOG_LEVEL)
    seed = int(sys.argv[1]) if len(sys.argv) > 1 else 7
    sys.exit(main(seed))
