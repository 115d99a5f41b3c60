"""
Board scoring.

Every row and every column is scored independently, so each tile value and
each castle rank counts twice: once for its row and once for its column.

Per line:
- Mountains split the line into segments and are not scored themselves.
- Segment base value = resources + hazards; a dragon zeroes the resources
  (never the hazards); a goldmine then doubles the result.
- A castle's effective rank is its rank, +1 when orthogonally adjacent to a
  wizard anywhere on the board.
- Each player scores base value x (sum of their effective ranks in the segment).
"""

import logging

from backend.engine import BOARD_ROWS, BOARD_COLS
from backend.engine.state import (
    Castle,
    Cell,
    Player,
    Position,
    Tile,
    RESOURCE,
    HAZARD,
    MOUNTAIN,
    DRAGON,
    GOLDMINE,
    WIZARD,
)

logger = logging.getLogger(__name__)

# A line (row or column) is a list of (absolute position, cell)
Line = list[tuple[Position, Cell]]

ORTHOGONAL_DIRECTIONS = ((-1, 0), (1, 0), (0, -1), (0, 1))


def _is_tile(cell: Cell, kind: str) -> bool:
    return isinstance(cell, Tile) and cell.kind == kind


def row_line(board: list[list[Cell]], row: int) -> Line:
    return [((row, col), board[row][col]) for col in range(BOARD_COLS)]


def column_line(board: list[list[Cell]], col: int) -> Line:
    return [((row, col), board[row][col]) for row in range(BOARD_ROWS)]


def split_segments(line: Line) -> list[Line]:
    """
    Split a line at its mountains.
    Returns the maximal non-empty runs between/around mountains; a line
    without mountains is a single segment.
    """
    segments: list[Line] = []
    current: Line = []
    for position, cell in line:
        if _is_tile(cell, MOUNTAIN):
            if current:
                segments.append(current)
            current = []
        else:
            current.append((position, cell))
    if current:
        segments.append(current)
    return segments


def segment_base_value(cells: list[Cell]) -> int:
    """Resource + hazard total, with dragon cancellation applied before goldmine doubling."""
    has_dragon = any(_is_tile(cell, DRAGON) for cell in cells)
    has_goldmine = any(_is_tile(cell, GOLDMINE) for cell in cells)

    base_value = 0
    for cell in cells:
        if not isinstance(cell, Tile):
            continue
        if cell.kind == RESOURCE and not has_dragon:
            base_value += cell.value
        elif cell.kind == HAZARD:
            base_value += cell.value  # hazard values are negative

    if has_goldmine:
        base_value *= 2
    return base_value


def is_adjacent_to_wizard(board: list[list[Cell]], row: int, col: int) -> bool:
    """True if any orthogonal neighbour of (row, col) on the board is a wizard tile."""
    for dr, dc in ORTHOGONAL_DIRECTIONS:
        r, c = row + dr, col + dc
        if 0 <= r < BOARD_ROWS and 0 <= c < BOARD_COLS and _is_tile(board[r][c], WIZARD):
            return True
    return False


def effective_rank(board: list[list[Cell]], castle: Castle, position: Position) -> int:
    rank = castle.rank
    if is_adjacent_to_wizard(board, position[0], position[1]):
        rank += 1
    return rank


def score_segment(
    segment: Line,
    board: list[list[Cell]],
    color_to_player: dict[str, str],
) -> dict[str, int]:
    """
    Score one segment.
    Returns {player_id: score} for every player with at least one castle in the segment.
    Castles whose color has no player in color_to_player are ignored.
    """
    base_value = segment_base_value([cell for _, cell in segment])

    rank_totals: dict[str, int] = {}
    for position, cell in segment:
        if not isinstance(cell, Castle):
            continue
        player_id = color_to_player.get(cell.color)
        if player_id is None:
            logger.debug("Ignoring castle %s: no player has color %s", cell.id, cell.color)
            continue
        rank_totals[player_id] = rank_totals.get(player_id, 0) + effective_rank(board, cell, position)

    scores = {player_id: base_value * total for player_id, total in rank_totals.items()}
    if scores:
        logger.debug("Segment %s..%s base %s: %s", segment[0][0], segment[-1][0], base_value, scores)
    return scores


def score_line(
    line: Line,
    board: list[list[Cell]],
    color_to_player: dict[str, str],
) -> dict[str, int]:
    """Sum of segment scores for one row or column."""
    scores: dict[str, int] = {}
    for segment in split_segments(line):
        for player_id, score in score_segment(segment, board, color_to_player).items():
            scores[player_id] = scores.get(player_id, 0) + score
    return scores


def score_board(board: list[list[Cell]], players: list[Player]) -> dict[str, int]:
    """
    Score the whole board for an epoch.

    Args:
        board: BOARD_ROWS x BOARD_COLS grid of cells
        players: Roster; castles are attributed to players by color

    Returns:
        {player_id: signed epoch score} for every player on the roster
    """
    scores = {player.id: 0 for player in players}
    color_to_player = {player.color: player.id for player in players}

    lines = [row_line(board, row) for row in range(BOARD_ROWS)]
    lines += [column_line(board, col) for col in range(BOARD_COLS)]
    for line in lines:
        for player_id, score in score_line(line, board, color_to_player).items():
            scores[player_id] += score

    logger.debug("Board scored: %s", scores)
    return scores
