"""
Action definitions for the game.
Actions are immutable, deterministic instructions.
"""

from dataclasses import dataclass

PLACE_CASTLE = "place_castle"
DRAW_TILE = "draw_tile"
PLACE_HELD_TILE = "place_held_tile"
PLACE_STARTING_TILE = "place_starting_tile"
PASS_TURN = "pass_turn"

ACTION_TYPES = (PLACE_CASTLE, DRAW_TILE, PLACE_HELD_TILE, PLACE_STARTING_TILE, PASS_TURN)


@dataclass(frozen=True)
class Action:
    """Base action class. All actions have a type, the acting player, and a payload."""
    type: str  # one of ACTION_TYPES
    player_id: str  # roster id of the player performing the action
    payload: dict  # Action-specific data

    def to_dict(self) -> dict:
        return {"type": self.type, "player_id": self.player_id, "payload": dict(self.payload)}

    @classmethod
    def from_dict(cls, data: dict) -> "Action":
        return cls(
            type=str(data.get("type") or ""),
            player_id=str(data.get("player_id") or ""),
            payload=dict(data.get("payload") or {}),
        )


def place_castle(player_id: str, castle_id: str, row: int, col: int) -> Action:
    """
    Place one of the player's unplaced castles on an empty cell.
    Example: place_castle("p1", "red-rank2-0", 1, 3)
    """
    return Action(
        type=PLACE_CASTLE,
        player_id=player_id,
        payload={"castle_id": castle_id, "row": row, "col": col},
    )


def draw_tile(player_id: str) -> Action:
    """
    Draw the front tile of the supply into the held slot.
    Does not end the turn: the held tile must be placed with place_held_tile.
    """
    return Action(type=DRAW_TILE, player_id=player_id, payload={})


def place_held_tile(player_id: str, row: int, col: int) -> Action:
    """Place the tile drawn this turn."""
    return Action(
        type=PLACE_HELD_TILE,
        player_id=player_id,
        payload={"row": row, "col": col},
    )


def place_starting_tile(player_id: str, row: int, col: int) -> Action:
    """Place the player's start-of-epoch tile."""
    return Action(
        type=PLACE_STARTING_TILE,
        player_id=player_id,
        payload={"row": row, "col": col},
    )


def pass_turn(player_id: str) -> Action:
    """Pass. Only legal when the player has nothing they can do."""
    return Action(type=PASS_TURN, player_id=player_id, payload={})
