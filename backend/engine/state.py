"""
Game state representation.
All state is immutable; mutations return new state copies.
Includes JSON serialization for save/load functionality.
"""

import json
from dataclasses import dataclass, field
from copy import deepcopy
from typing import Any

from backend.engine import BOARD_ROWS, BOARD_COLS, PHASE_PLAYING

# Tile kinds
RESOURCE = "resource"
HAZARD = "hazard"
MOUNTAIN = "mountain"
DRAGON = "dragon"
GOLDMINE = "goldmine"
WIZARD = "wizard"

TILE_KINDS = (RESOURCE, HAZARD, MOUNTAIN, DRAGON, GOLDMINE, WIZARD)

Position = tuple[int, int]


def _int(v: Any, default: int) -> int:
    try:
        return int(v) if v is not None else default
    except (TypeError, ValueError):
        return default


def _position_from(value: Any) -> Position | None:
    """Parse a position from [row, col] or {"row": r, "col": c}; None if absent or malformed."""
    if isinstance(value, dict):
        value = [value.get("row"), value.get("col")]
    if isinstance(value, (list, tuple)) and len(value) == 2:
        try:
            return (int(value[0]), int(value[1]))
        except (TypeError, ValueError):
            return None
    return None


def _position_to(position: Position | None) -> dict[str, int] | None:
    if position is None:
        return None
    return {"row": position[0], "col": position[1]}


@dataclass
class Castle:
    """A castle piece. Unplaced castles have no position."""
    id: str  # e.g. "red-rank2-0"
    rank: int  # 1..4
    color: str
    position: Position | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": "castle",
            "id": self.id,
            "rank": self.rank,
            "color": self.color,
            "position": _position_to(self.position),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Castle":
        if not isinstance(data, dict):
            data = {}
        return cls(
            id=str(data.get("id") or ""),
            rank=_int(data.get("rank"), 1),
            color=str(data.get("color") or ""),
            position=_position_from(data.get("position")),
        )


@dataclass
class Tile:
    """A land tile. value is nonzero only for resource (positive) and hazard (negative) tiles."""
    id: str  # e.g. "resource-3-1", "hazard--4", "dragon"
    kind: str  # one of TILE_KINDS
    value: int = 0
    name: str = ""
    position: Position | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": "tile",
            "id": self.id,
            "tile_kind": self.kind,
            "value": self.value,
            "name": self.name,
            "position": _position_to(self.position),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Tile":
        if not isinstance(data, dict):
            data = {}
        return cls(
            id=str(data.get("id") or ""),
            kind=str(data.get("tile_kind") or data.get("type") or ""),
            value=_int(data.get("value"), 0),
            name=str(data.get("name") or ""),
            position=_position_from(data.get("position")),
        )


# A board cell is exactly one of: a castle, a tile, or empty (None)
Cell = Castle | Tile | None


def cell_to_dict(cell: Cell) -> dict[str, Any] | None:
    return cell.to_dict() if cell is not None else None


def cell_from_dict(data: Any) -> Cell:
    """Rebuild a board cell from its tagged form."""
    if not isinstance(data, dict):
        return None
    kind = data.get("kind")
    if kind == "castle":
        return Castle.from_dict(data)
    if kind == "tile":
        return Tile.from_dict(data)
    return None


def empty_board() -> list[list[Cell]]:
    return [[None for _ in range(BOARD_COLS)] for _ in range(BOARD_ROWS)]


@dataclass
class Player:
    """A seat in the match. Colors are unique per match and never change."""
    id: str
    name: str
    color: str
    gold: int = 0
    castles: list[Castle] = field(default_factory=list)
    # Start-of-epoch tile not yet placed on the board
    starting_tile: Tile | None = None

    def unplaced_castles(self) -> list[Castle]:
        return [c for c in self.castles if c.position is None]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "gold": self.gold,
            "castles": [c.to_dict() for c in self.castles],
            "starting_tile": self.starting_tile.to_dict() if self.starting_tile else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Player":
        if not isinstance(data, dict):
            data = {}
        castles_raw = data.get("castles") or []
        if not isinstance(castles_raw, list):
            castles_raw = []
        st = data.get("starting_tile")
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            color=str(data.get("color") or ""),
            gold=max(0, _int(data.get("gold"), 0)),
            castles=[Castle.from_dict(c) for c in castles_raw if isinstance(c, dict)],
            starting_tile=Tile.from_dict(st) if isinstance(st, dict) else None,
        )


@dataclass
class LogEntry:
    """One line of the match log (applied action or epoch settlement)."""
    sequence: int  # state version that produced this entry
    epoch: int
    player_id: str
    player_name: str
    color: str
    action: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "sequence": self.sequence,
            "epoch": self.epoch,
            "player_id": self.player_id,
            "player_name": self.player_name,
            "color": self.color,
            "action": self.action,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LogEntry":
        if not isinstance(data, dict):
            data = {}
        return cls(
            sequence=_int(data.get("sequence"), 0),
            epoch=_int(data.get("epoch"), 1),
            player_id=str(data.get("player_id") or ""),
            player_name=str(data.get("player_name") or ""),
            color=str(data.get("color") or ""),
            action=str(data.get("action") or ""),
        )


@dataclass
class GameState:
    """Complete game state."""
    match_id: str
    players: list[Player]
    current_player_index: int
    epoch: int  # 1..3
    board: list[list[Cell]] = field(default_factory=empty_board)
    # Draw order for the epoch: front of the list is drawn first
    tile_supply: list[Tile] = field(default_factory=list)
    # Tile drawn by the current player, awaiting placement
    held_tile: Tile | None = None
    phase: str = PHASE_PLAYING  # "playing" or "finished"
    # epoch -> {player_id -> score}
    scores_by_epoch: dict[int, dict[str, int]] = field(default_factory=dict)
    winner_id: str | None = None
    # Monotonic sequence number, bumped on every state replacement (compare-and-swap key)
    version: int = 0
    log: list[LogEntry] = field(default_factory=list)

    def copy(self) -> "GameState":
        """Return a deep copy of this game state."""
        return deepcopy(self)

    @property
    def current_player(self) -> Player:
        return self.players[self.current_player_index]

    def get_player(self, player_id: str) -> Player | None:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def player_index(self, player_id: str) -> int | None:
        for i, player in enumerate(self.players):
            if player.id == player_id:
                return i
        return None

    def empty_cells(self) -> list[Position]:
        return [
            (r, c)
            for r, row in enumerate(self.board)
            for c, cell in enumerate(row)
            if cell is None
        ]

    def has_empty_cell(self) -> bool:
        return any(cell is None for row in self.board for cell in row)

    def is_board_full(self) -> bool:
        return not self.has_empty_cell()

    def add_log(self, player: Player | None, action: str) -> None:
        """Append a log entry stamped with the current version and epoch. player=None for match-level entries."""
        self.log.append(LogEntry(
            sequence=self.version,
            epoch=self.epoch,
            player_id=player.id if player else "",
            player_name=player.name if player else "",
            color=player.color if player else "",
            action=action,
        ))

    # ===== Serialization Methods =====

    def to_dict(self) -> dict[str, Any]:
        """Convert GameState to a dictionary for JSON serialization."""
        return {
            "match_id": self.match_id,
            "version": self.version,
            "players": [p.to_dict() for p in self.players],
            "current_player_index": self.current_player_index,
            "epoch": self.epoch,
            "board": [[cell_to_dict(cell) for cell in row] for row in self.board],
            "tile_supply": [t.to_dict() for t in self.tile_supply],
            "held_tile": self.held_tile.to_dict() if self.held_tile else None,
            "phase": self.phase,
            # JSON object keys are strings
            "scores_by_epoch": {
                str(epoch): dict(scores) for epoch, scores in self.scores_by_epoch.items()
            },
            "winner_id": self.winner_id,
            "log": [entry.to_dict() for entry in self.log],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GameState":
        """Create GameState from a dictionary (missing fields fall back to defaults)."""
        players_raw = data.get("players") or []
        if not isinstance(players_raw, list):
            players_raw = []
        board = empty_board()
        board_raw = data.get("board")
        if isinstance(board_raw, list):
            for r, row in enumerate(board_raw[:BOARD_ROWS]):
                if not isinstance(row, list):
                    continue
                for c, cell in enumerate(row[:BOARD_COLS]):
                    board[r][c] = cell_from_dict(cell)
        supply_raw = data.get("tile_supply") or []
        if not isinstance(supply_raw, list):
            supply_raw = []
        scores_raw = data.get("scores_by_epoch") or {}
        if not isinstance(scores_raw, dict):
            scores_raw = {}
        scores_by_epoch: dict[int, dict[str, int]] = {}
        for epoch_key, scores in scores_raw.items():
            if isinstance(scores, dict):
                scores_by_epoch[_int(epoch_key, 0)] = {
                    str(pid): _int(v, 0) for pid, v in scores.items()
                }
        held = data.get("held_tile")
        log_raw = data.get("log") or []
        if not isinstance(log_raw, list):
            log_raw = []
        return cls(
            match_id=str(data.get("match_id") or ""),
            version=_int(data.get("version"), 0),
            players=[Player.from_dict(p) for p in players_raw if isinstance(p, dict)],
            current_player_index=_int(data.get("current_player_index"), 0),
            epoch=_int(data.get("epoch"), 1),
            board=board,
            tile_supply=[Tile.from_dict(t) for t in supply_raw if isinstance(t, dict)],
            held_tile=Tile.from_dict(held) if isinstance(held, dict) else None,
            phase=str(data.get("phase") or PHASE_PLAYING),
            scores_by_epoch=scores_by_epoch,
            winner_id=data.get("winner_id"),
            log=[LogEntry.from_dict(e) for e in log_raw if isinstance(e, dict)],
        )

    def to_json(self, indent: int = 2) -> str:
        """Serialize GameState to a JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> "GameState":
        """Deserialize GameState from a JSON string."""
        return cls.from_dict(json.loads(json_str))

    def save(self, filepath: str) -> None:
        """Save GameState to a JSON file."""
        with open(filepath, "w") as f:
            f.write(self.to_json())

    @classmethod
    def load(cls, filepath: str) -> "GameState":
        """Load GameState from a JSON file."""
        with open(filepath, "r") as f:
            return cls.from_json(f.read())
