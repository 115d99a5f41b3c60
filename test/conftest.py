import random

import pytest

from backend.engine.state import GameState, Tile, RESOURCE
from backend.engine.utils import initialize_game_state

ROSTER = [
    {"id": "p1", "name": "Alice", "color": "red"},
    {"id": "p2", "name": "Bruno", "color": "blue"},
    {"id": "p3", "name": "Chen", "color": "yellow"},
    {"id": "p4", "name": "Dana", "color": "green"},
]


def make_state(players: int = 2, seed: int = 1, match_id: str = "m1") -> GameState:
    return initialize_game_state(ROSTER[:players], match_id=match_id, rng=random.Random(seed))


def fill_board(state: GameState, value: int = 1, kind: str = RESOURCE, skip=()) -> None:
    """Cover every cell except those in skip with identical tiles."""
    for r, row in enumerate(state.board):
        for c in range(len(row)):
            if (r, c) in skip:
                continue
            row[c] = Tile(id=f"filler-{r}-{c}", kind=kind, value=value, position=(r, c))


def exhaust(state: GameState) -> None:
    """Leave every player with nothing to do (no castles, no starting tile, empty supply)."""
    for player in state.players:
        player.castles = []
        player.starting_tile = None
    state.tile_supply = []


@pytest.fixture
def two_player_state() -> GameState:
    return make_state(2)


@pytest.fixture
def three_player_state() -> GameState:
    return make_state(3)
