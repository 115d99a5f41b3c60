"""
Game events for UI hooks and logging.
Events describe what happened during action processing.
"""

from dataclasses import dataclass
from typing import Any


@dataclass
class GameEvent:
    """Base event class. All events have a type and payload."""
    type: str
    payload: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "payload": self.payload}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GameEvent":
        return cls(type=data["type"], payload=data["payload"])


# ===== Event Type Constants =====

# Turn events
TURN_ADVANCED = "turn_advanced"
TURN_PASSED = "turn_passed"

# Board events
CASTLE_PLACED = "castle_placed"
TILE_DRAWN = "tile_drawn"
TILE_PLACED = "tile_placed"

# Roster events
PLAYER_REMOVED = "player_removed"

# Epoch events
EPOCH_SCORED = "epoch_scored"
GOLD_CHANGED = "gold_changed"
EPOCH_STARTED = "epoch_started"

# Victory events
MATCH_FINISHED = "match_finished"


# ===== Event Factory Functions =====

def turn_advanced(old_index: int, new_index: int, player_id: str) -> GameEvent:
    return GameEvent(TURN_ADVANCED, {
        "old_index": old_index,
        "new_index": new_index,
        "player_id": player_id,  # player whose turn it is now
    })


def turn_passed(player_id: str) -> GameEvent:
    return GameEvent(TURN_PASSED, {"player_id": player_id})


def castle_placed(player_id: str, castle_id: str, rank: int, row: int, col: int) -> GameEvent:
    return GameEvent(CASTLE_PLACED, {
        "player_id": player_id,
        "castle_id": castle_id,
        "rank": rank,
        "row": row,
        "col": col,
    })


def tile_drawn(player_id: str, tile_id: str, tiles_remaining: int) -> GameEvent:
    return GameEvent(TILE_DRAWN, {
        "player_id": player_id,
        "tile_id": tile_id,
        "tiles_remaining": tiles_remaining,
    })


def tile_placed(
    player_id: str,
    tile_id: str,
    tile_kind: str,
    row: int,
    col: int,
    source: str,  # "held" or "starting"
) -> GameEvent:
    return GameEvent(TILE_PLACED, {
        "player_id": player_id,
        "tile_id": tile_id,
        "tile_kind": tile_kind,
        "row": row,
        "col": col,
        "source": source,
    })


def player_removed(player_id: str, old_index: int, current_player_index: int) -> GameEvent:
    return GameEvent(PLAYER_REMOVED, {
        "player_id": player_id,
        "old_index": old_index,
        "current_player_index": current_player_index,
    })


def epoch_scored(epoch: int, scores: dict[str, int]) -> GameEvent:
    """Emitted once per epoch when the board is settled. scores: player_id -> signed score."""
    return GameEvent(EPOCH_SCORED, {
        "epoch": epoch,
        "scores": scores,
    })


def gold_changed(player_id: str, old_value: int, new_value: int, score: int) -> GameEvent:
    """new_value is floored at zero, so change can differ from score."""
    return GameEvent(GOLD_CHANGED, {
        "player_id": player_id,
        "old_value": old_value,
        "new_value": new_value,
        "change": new_value - old_value,
        "score": score,
    })


def epoch_started(epoch: int, first_player_id: str) -> GameEvent:
    return GameEvent(EPOCH_STARTED, {
        "epoch": epoch,
        "first_player_id": first_player_id,
    })


def match_finished(winner_id: str | None, final_gold: dict[str, int]) -> GameEvent:
    """
    Emitted when the last epoch is settled.

    Args:
        winner_id: Player with the strictly greatest gold (first in roster order on ties)
        final_gold: {player_id: gold} for every player
    """
    return GameEvent(MATCH_FINISHED, {
        "winner_id": winner_id,
        "final_gold": final_gold,
    })
