"""
Epoch lifecycle: termination detection, settlement, and the reset between epochs.

epoch 1 -> epoch 2 -> epoch 3 -> finished
"""

import logging
import random

from backend.engine import EPOCH_COUNT, MIN_PLAYERS, MAX_PLAYERS, PHASE_FINISHED
from backend.engine.state import GameState, Player, empty_board
from backend.engine.errors import DuplicateTermination
from backend.engine.queries import can_act
from backend.engine.scoring import score_board
from backend.engine.supply import build_rank1_castles, build_epoch_supply
from backend.engine.events import (
    GameEvent,
    epoch_scored,
    gold_changed,
    epoch_started,
    match_finished,
)

logger = logging.getLogger(__name__)


def is_epoch_over(state: GameState) -> bool:
    """
    The epoch ends when the board is full or nobody can act.
    A drawn tile that has not been placed yet keeps the epoch open.
    """
    if state.held_tile is not None:
        return False
    if state.is_board_full():
        return True
    return not any(can_act(player, state) for player in state.players)


def _first_max_index(players: list[Player]) -> int | None:
    """Index of the first player holding the greatest gold (strict comparison, roster order)."""
    best_index = None
    for i, player in enumerate(players):
        if best_index is None or player.gold > players[best_index].gold:
            best_index = i
    return best_index


def pick_winner(players: list[Player]) -> Player | None:
    """Player with the strictly greatest gold; ties go to whoever comes first in the roster."""
    index = _first_max_index(players)
    return players[index] if index is not None else None


def richest_player_index(players: list[Player]) -> int:
    index = _first_max_index(players)
    return index if index is not None else 0


def epoch_authority_id(state: GameState) -> str | None:
    """The host (first seat in the roster) is the only client allowed to settle an epoch."""
    return state.players[0].id if state.players else None


def settle_epoch(
    state: GameState,
    rng: random.Random | None = None,
) -> tuple[GameState, list[GameEvent]]:
    """
    Score the board, pay out gold, record the scores, then either finish the
    match (last epoch) or set up the next epoch.

    Raises:
        DuplicateTermination: scores for the current epoch are already recorded
    """
    if state.epoch in state.scores_by_epoch:
        raise DuplicateTermination(state.epoch)

    new_state = state.copy()
    new_state.version += 1
    events: list[GameEvent] = []

    scores = score_board(new_state.board, new_state.players)
    events.append(epoch_scored(new_state.epoch, dict(scores)))

    # Gold never drops below zero, even on a negative epoch
    for player in new_state.players:
        score = scores.get(player.id, 0)
        old_gold = player.gold
        player.gold = max(0, old_gold + score)
        events.append(gold_changed(player.id, old_gold, player.gold, score))

    new_state.scores_by_epoch[new_state.epoch] = dict(scores)
    new_state.add_log(None, f"Epoch {new_state.epoch} scored: " + ", ".join(
        f"{p.name} {scores.get(p.id, 0):+d}" for p in new_state.players
    ))
    logger.info("Match %s epoch %s scored: %s", new_state.match_id, new_state.epoch, scores)

    if new_state.epoch >= EPOCH_COUNT:
        new_state.phase = PHASE_FINISHED
        new_state.held_tile = None
        winner = pick_winner(new_state.players)
        new_state.winner_id = winner.id if winner else None
        if winner:
            new_state.add_log(winner, f"Wins with {winner.gold} gold")
        events.append(match_finished(
            new_state.winner_id,
            {p.id: p.gold for p in new_state.players},
        ))
        logger.info("Match %s finished, winner %s", new_state.match_id, new_state.winner_id)
    else:
        _start_next_epoch(new_state, rng)
        events.append(epoch_started(new_state.epoch, new_state.current_player.id))

    return new_state, events


def _start_next_epoch(state: GameState, rng: random.Random | None) -> None:
    """
    Reset state for the next epoch (mutates state in place):
    - unplaced castles of rank > 1 carry over; placed castles are gone
    - every player gets a fresh full rank-1 set, however many they placed before
    - empty board, fresh shuffled deck, one starting tile per player
    - the richest player starts
    """
    player_count = min(max(len(state.players), MIN_PLAYERS), MAX_PLAYERS)
    for player in state.players:
        carried = [c for c in player.castles if c.position is None and c.rank > 1]
        player.castles = build_rank1_castles(player.color, player_count) + carried
        player.starting_tile = None

    state.epoch += 1
    state.board = empty_board()
    state.held_tile = None
    state.tile_supply = build_epoch_supply(state.players, rng)
    state.current_player_index = richest_player_index(state.players)
    state.add_log(state.current_player, f"Starts epoch {state.epoch}")


def check_epoch_end(
    state: GameState,
    rng: random.Random | None = None,
) -> tuple[GameState, list[GameEvent]]:
    """
    Settle the epoch if it is over. Safe to call after every mutation:
    returns the state unchanged when the match is finished, the epoch is
    still running, or the epoch has already been scored.
    """
    if state.phase == PHASE_FINISHED or not state.players or not is_epoch_over(state):
        return state, []
    try:
        return settle_epoch(state, rng)
    except DuplicateTermination as e:
        logger.debug("Skipping settlement for match %s: %s", state.match_id, e)
        return state, []
