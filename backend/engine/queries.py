"""
Query functions for UI integration.
These functions help the UI understand what actions are available
without mutating game state.
"""

from dataclasses import dataclass
from typing import Any

from backend.engine import BOARD_ROWS, BOARD_COLS, PHASE_FINISHED
from backend.engine.state import GameState, Player
from backend.engine.actions import (
    Action,
    PLACE_CASTLE,
    DRAW_TILE,
    PLACE_HELD_TILE,
    PLACE_STARTING_TILE,
    PASS_TURN,
)
from backend.engine.scoring import score_board


@dataclass
class ValidationResult:
    """Result of action validation."""
    valid: bool
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "error": self.error}


def can_act(player: Player, state: GameState) -> bool:
    """
    True if the player has anything to do besides passing:
    an unplaced castle, a tile to draw, or a starting tile, and somewhere to put it.
    """
    if not state.has_empty_cell():
        return False
    if player.unplaced_castles():
        return True
    if state.tile_supply:
        return True
    return player.starting_tile is not None


def in_bounds(row: int, col: int) -> bool:
    return 0 <= row < BOARD_ROWS and 0 <= col < BOARD_COLS


def cell_error(state: GameState, row: Any, col: Any) -> str | None:
    """Why (row, col) cannot take a piece, or None if it is an empty in-bounds cell."""
    if not isinstance(row, int) or not isinstance(col, int) or isinstance(row, bool) or isinstance(col, bool):
        return f"Invalid position: ({row}, {col})"
    if not in_bounds(row, col):
        return f"Position ({row}, {col}) is off the board"
    if state.board[row][col] is not None:
        return f"Position ({row}, {col}) is already occupied"
    return None


# ===== Action Validation =====

def validate_action(state: GameState, action: Action) -> ValidationResult:
    """
    Validate an action without applying it.
    Returns ValidationResult with valid=True or valid=False with error message.
    """
    if state.phase == PHASE_FINISHED:
        return ValidationResult(False, "Match is over")

    if not state.players:
        return ValidationResult(False, "Match has no players")

    current = state.current_player
    if action.player_id != current.id:
        return ValidationResult(
            False,
            f"Not {action.player_id}'s turn. Current player: {current.id}"
        )

    if state.held_tile is not None and action.type != PLACE_HELD_TILE:
        return ValidationResult(False, "Drawn tile must be placed before any other action")

    if action.type == PLACE_CASTLE:
        return _validate_place_castle(state, action, current)
    elif action.type == DRAW_TILE:
        return _validate_draw_tile(state)
    elif action.type == PLACE_HELD_TILE:
        if state.held_tile is None:
            return ValidationResult(False, "No drawn tile to place")
        return _validate_cell(state, action)
    elif action.type == PLACE_STARTING_TILE:
        if current.starting_tile is None:
            return ValidationResult(False, "No starting tile to place")
        return _validate_cell(state, action)
    elif action.type == PASS_TURN:
        if can_act(current, state):
            return ValidationResult(False, "Cannot pass while an action is available")
        return ValidationResult(True)

    return ValidationResult(False, f"Unknown action type: {action.type}")


def _validate_place_castle(state: GameState, action: Action, player: Player) -> ValidationResult:
    castle_id = action.payload.get("castle_id")
    castle = next((c for c in player.castles if c.id == castle_id), None)
    if castle is None:
        return ValidationResult(False, f"Castle {castle_id} does not belong to {player.id}")
    if castle.position is not None:
        return ValidationResult(False, f"Castle {castle_id} is already placed")
    return _validate_cell(state, action)


def _validate_draw_tile(state: GameState) -> ValidationResult:
    if not state.tile_supply:
        return ValidationResult(False, "No tiles left to draw")
    if not state.has_empty_cell():
        return ValidationResult(False, "No empty space to place a tile")
    return ValidationResult(True)


def _validate_cell(state: GameState, action: Action) -> ValidationResult:
    error = cell_error(state, action.payload.get("row"), action.payload.get("col"))
    if error:
        return ValidationResult(False, error)
    return ValidationResult(True)


# ===== Query Functions =====

def get_available_action_types(state: GameState, player_id: str) -> list[str]:
    """Action types the given player could submit right now (empty when it is not their turn)."""
    if state.phase == PHASE_FINISHED or not state.players:
        return []
    current = state.current_player
    if current.id != player_id:
        return []
    if state.held_tile is not None:
        return [PLACE_HELD_TILE]

    has_empty = state.has_empty_cell()
    available = []
    if has_empty and current.unplaced_castles():
        available.append(PLACE_CASTLE)
    if has_empty and state.tile_supply:
        available.append(DRAW_TILE)
    if has_empty and current.starting_tile is not None:
        available.append(PLACE_STARTING_TILE)
    if not available:
        available.append(PASS_TURN)
    return available


def get_available_actions(state: GameState, player_id: str) -> dict[str, Any]:
    """Everything a client needs to enable or disable its controls for this player."""
    player = state.get_player(player_id)
    is_turn = bool(state.players) and state.phase != PHASE_FINISHED and state.current_player.id == player_id
    result: dict[str, Any] = {
        "player_id": player_id,
        "is_turn": is_turn,
        "action_types": get_available_action_types(state, player_id),
        "empty_cells": [list(pos) for pos in state.empty_cells()],
        "tiles_remaining": len(state.tile_supply),
        "held_tile": state.held_tile.to_dict() if is_turn and state.held_tile else None,
    }
    if player is not None:
        result["unplaced_castles"] = [c.to_dict() for c in player.unplaced_castles()]
        result["starting_tile"] = player.starting_tile.to_dict() if player.starting_tile else None
        result["can_act"] = can_act(player, state)
    return result


def get_score_preview(state: GameState) -> dict[str, int]:
    """Live score of the current board; nothing is committed."""
    return score_board(state.board, state.players)


def get_game_summary(state: GameState) -> dict[str, Any]:
    """Get a summary of the current game state."""
    winner = state.get_player(state.winner_id) if state.winner_id else None
    return {
        "match_id": state.match_id,
        "version": state.version,
        "epoch": state.epoch,
        "phase": state.phase,
        "current_player_id": state.current_player.id if state.players else None,
        "tiles_remaining": len(state.tile_supply),
        "empty_cells": len(state.empty_cells()),
        "gold": {p.id: p.gold for p in state.players},
        "scores_by_epoch": {str(e): s for e, s in state.scores_by_epoch.items()},
        "winner": {"id": winner.id, "name": winner.name, "gold": winner.gold} if winner else None,
    }
