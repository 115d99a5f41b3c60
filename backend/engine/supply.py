"""
Supply management: the tile deck, per-player castle sets, and shuffling.
"""

import random

from backend.engine import MIN_PLAYERS, MAX_PLAYERS
from backend.engine.errors import InvalidRoster
from backend.engine.state import (
    Castle,
    Player,
    Tile,
    RESOURCE,
    HAZARD,
    MOUNTAIN,
    DRAGON,
    GOLDMINE,
    WIZARD,
)

DECK_SIZE = 23

# Rank-1 castles per player by match size; higher ranks never vary
RANK1_COUNT_BY_PLAYERS = {2: 4, 3: 3, 4: 2}
HIGHER_RANK_COUNTS = {2: 3, 3: 2, 4: 1}


def build_deck() -> list[Tile]:
    """
    Build the fixed 23-tile deck, in a deterministic order:
    12 resources (two each of 1..6), 6 hazards (-1..-6), 2 mountains,
    1 dragon, 1 goldmine, 1 wizard.
    """
    tiles: list[Tile] = []
    for value in range(1, 7):
        for copy_number in (1, 2):
            tiles.append(Tile(
                id=f"resource-{value}-{copy_number}",
                kind=RESOURCE,
                value=value,
                name=f"Resource {value}",
            ))
    for value in range(1, 7):
        tiles.append(Tile(
            id=f"hazard--{value}",
            kind=HAZARD,
            value=-value,
            name=f"Hazard -{value}",
        ))
    tiles.append(Tile(id="mountain-1", kind=MOUNTAIN, name="Mountain"))
    tiles.append(Tile(id="mountain-2", kind=MOUNTAIN, name="Mountain"))
    tiles.append(Tile(id="dragon", kind=DRAGON, name="Dragon"))
    tiles.append(Tile(id="goldmine", kind=GOLDMINE, name="Gold Mine"))
    tiles.append(Tile(id="wizard", kind=WIZARD, name="Wizard"))
    return tiles


def shuffle(deck: list, rng: random.Random | None = None) -> list:
    """
    Shuffle in place with Fisher-Yates and return the same list.
    Every permutation is equally likely given a uniform rng.
    """
    rng = rng or random
    for i in range(len(deck) - 1, 0, -1):
        j = rng.randrange(i + 1)
        deck[i], deck[j] = deck[j], deck[i]
    return deck


def rank1_count(player_count: int) -> int:
    if player_count not in RANK1_COUNT_BY_PLAYERS:
        raise InvalidRoster(
            f"Player count must be between {MIN_PLAYERS} and {MAX_PLAYERS}, got {player_count}"
        )
    return RANK1_COUNT_BY_PLAYERS[player_count]


def build_rank1_castles(color: str, player_count: int) -> list[Castle]:
    """The rank-1 part of a castle set; regranted in full every epoch."""
    return [
        Castle(id=f"{color}-rank1-{i}", rank=1, color=color)
        for i in range(rank1_count(player_count))
    ]


def build_castles(color: str, player_count: int) -> list[Castle]:
    """
    Full castle set for one player.
    Rank 1: 4/3/2 for 2/3/4 players. Ranks 2, 3, 4: always 3, 2, 1.
    """
    castles = build_rank1_castles(color, player_count)
    for rank, count in HIGHER_RANK_COUNTS.items():
        for i in range(count):
            castles.append(Castle(id=f"{color}-rank{rank}-{i}", rank=rank, color=color))
    return castles


def castle_allotment(player_count: int) -> int:
    return rank1_count(player_count) + sum(HIGHER_RANK_COUNTS.values())


def deal_starting_tiles(players: list[Player], supply: list[Tile]) -> None:
    """
    Give each player, in roster order, one starting tile from the back of the supply.
    Mutates both players and supply; the front of the supply (draw order) is untouched.
    """
    for player in players:
        player.starting_tile = supply.pop() if supply else None


def build_epoch_supply(players: list[Player], rng: random.Random | None = None) -> list[Tile]:
    """Fresh shuffled deck with starting tiles dealt; returns what is left as the draw supply."""
    supply = shuffle(build_deck(), rng)
    deal_starting_tiles(players, supply)
    return supply
