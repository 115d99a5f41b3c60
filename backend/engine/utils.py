"""
Utility functions for the game engine.
"""

import random
import uuid

from backend.config import STARTING_GOLD
from backend.engine import PLAYER_COLORS, MIN_PLAYERS, MAX_PLAYERS
from backend.engine.state import GameState, Player, Castle, Tile, Cell, empty_board
from backend.engine.errors import InvalidRoster
from backend.engine.supply import build_castles, build_epoch_supply


def validate_roster(roster: list[dict]) -> None:
    """
    Check a roster of {"id", "name", "color"} entries.
    Raises InvalidRoster on bad player count, unknown or repeated colors, or repeated ids.
    """
    if not MIN_PLAYERS <= len(roster) <= MAX_PLAYERS:
        raise InvalidRoster(
            f"A match needs {MIN_PLAYERS}-{MAX_PLAYERS} players, got {len(roster)}")

    seen_colors: set[str] = set()
    seen_ids: set[str] = set()
    for entry in roster:
        player_id = str(entry.get("id") or "")
        color = entry.get("color")
        if not player_id:
            raise InvalidRoster("Every player needs an id")
        if player_id in seen_ids:
            raise InvalidRoster(f"Duplicate player id: {player_id}")
        if color not in PLAYER_COLORS:
            raise InvalidRoster(
                f"Unknown color {color!r} for {player_id}. Colors: {', '.join(PLAYER_COLORS)}")
        if color in seen_colors:
            raise InvalidRoster(f"Color {color} is taken by another player")
        seen_ids.add(player_id)
        seen_colors.add(color)


def initialize_game_state(
    roster: list[dict],
    match_id: str | None = None,
    rng: random.Random | None = None,
    starting_gold: int | None = None,
) -> GameState:
    """
    Create the epoch-1 game state for an assembled roster.

    Args:
        roster: Ordered [{"id": str, "name": str, "color": str}, ...]; order is turn order
        match_id: Id for the match (random uuid if None)
        rng: Randomness for the deck shuffle (module random if None)
        starting_gold: Gold per player (backend.config.STARTING_GOLD if None)
    """
    validate_roster(roster)
    gold = STARTING_GOLD if starting_gold is None else starting_gold

    player_count = len(roster)
    players = [
        Player(
            id=str(entry["id"]),
            name=str(entry.get("name") or entry["id"]),
            color=entry["color"],
            gold=gold,
            castles=build_castles(entry["color"], player_count),
        )
        for entry in roster
    ]

    state = GameState(
        match_id=match_id or str(uuid.uuid4()),
        players=players,
        current_player_index=0,
        epoch=1,
        board=empty_board(),
        tile_supply=build_epoch_supply(players, rng),
        version=1,
    )
    state.add_log(None, f"Match started with {', '.join(p.name for p in players)}")
    return state


def format_cell(cell: Cell) -> str:
    """Short fixed-width label for a board cell."""
    if cell is None:
        return " .  "
    if isinstance(cell, Castle):
        return f"{cell.color[0].upper()}{cell.rank}  "
    if isinstance(cell, Tile):
        if cell.value:
            return f"{cell.value:+d}  "[:4]
        return f"{cell.kind[:3].upper()} "
    return " ?  "


def print_game_state(state: GameState, verbose: bool = False):
    """
    Pretty-print the current game state.

    Args:
        state: Current game state
        verbose: If True, also show each player's unplaced castles and the last log entries
    """
    print(f"\n{'='*60}")
    current = state.current_player.name if state.players else "-"
    print(f"Epoch {state.epoch} | Player: {current} | Phase: {state.phase} | v{state.version}")
    print(f"{'='*60}")

    for row in state.board:
        print("  " + " ".join(format_cell(cell) for cell in row))

    print(f"\nTiles in supply: {len(state.tile_supply)}")
    if state.held_tile:
        print(f"Held tile: {state.held_tile.name}")

    print(f"\n{'Players':.<40}")
    for player in state.players:
        starting = player.starting_tile.name if player.starting_tile else "-"
        print(f"  {player.name} ({player.color}): gold={player.gold}, "
              f"castles left={len(player.unplaced_castles())}, starting tile={starting}")
        if verbose:
            ranks = sorted(c.rank for c in player.unplaced_castles())
            print(f"    unplaced ranks: {ranks}")

    if verbose and state.log:
        print(f"\n{'Log':.<40}")
        for entry in state.log[-10:]:
            who = entry.player_name or "match"
            print(f"  [{entry.sequence}] {who}: {entry.action}")
    print()
