"""
Versioned match store.

load / save / subscribe over the matches table. Every save is a
compare-and-swap on the state version, so an action computed from a stale
snapshot is rejected instead of overwriting a newer state.
"""

import json
import logging
import threading
from typing import Callable

from sqlalchemy import update
from sqlalchemy.orm import Session, sessionmaker

from backend.engine import PHASE_FINISHED
from backend.engine.state import GameState
from backend.engine.errors import SyncConflict
from .models import Match

logger = logging.getLogger(__name__)

Listener = Callable[[GameState], None]


def is_newer_snapshot(last_seen_version: int | None, state: GameState) -> bool:
    """
    Notifications may arrive duplicated or out of order; subscribers keep the
    last version they applied and drop anything that is not newer.
    """
    return last_seen_version is None or state.version > last_seen_version


class GameStore:
    """Match persistence with conditional writes and in-process change notifications."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory
        self._listeners: dict[str, list[Listener]] = {}
        self._lock = threading.Lock()

    def _session(self) -> Session:
        return self._session_factory()

    def create(self, state: GameState, roster: list[dict]) -> None:
        """Insert a new match."""
        with self._session() as db:
            db.add(Match(
                id=state.match_id,
                status=state.phase,
                version=state.version,
                game_state=state.to_json(indent=None),
                roster=json.dumps(roster),
            ))
            db.commit()
        logger.info("Match %s created at version %s", state.match_id, state.version)

    def load(self, match_id: str) -> GameState | None:
        """Latest snapshot of the match, or None if it does not exist."""
        with self._session() as db:
            row = db.get(Match, match_id)
            if row is None:
                return None
            return GameState.from_json(row.game_state)

    def current_version(self, match_id: str) -> int | None:
        with self._session() as db:
            row = db.get(Match, match_id)
            return row.version if row is not None else None

    def save(self, match_id: str, state: GameState, expected_version: int) -> None:
        """
        Write state only if the stored version still equals expected_version.

        Raises:
            SyncConflict: the stored match moved on (or is gone); re-fetch and retry
            ValueError: state.version does not move forward
        """
        if state.version <= expected_version:
            raise ValueError(
                f"New state version {state.version} must be greater than {expected_version}")

        with self._session() as db:
            result = db.execute(
                update(Match)
                .where(Match.id == match_id, Match.version == expected_version)
                .values(
                    game_state=state.to_json(indent=None),
                    version=state.version,
                    status=PHASE_FINISHED if state.phase == PHASE_FINISHED else "playing",
                )
            )
            if result.rowcount != 1:
                db.rollback()
                actual = self.current_version(match_id)
                logger.warning(
                    "Rejected stale write to match %s: expected v%s, stored v%s",
                    match_id, expected_version, actual,
                )
                raise SyncConflict(match_id, expected_version, actual)
            db.commit()

        self._notify(match_id, state)

    def subscribe(self, match_id: str, on_change: Listener) -> Callable[[], None]:
        """
        Call on_change with every state saved for the match.
        Returns a function that removes the subscription.
        """
        with self._lock:
            self._listeners.setdefault(match_id, []).append(on_change)

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(match_id, [])
                if on_change in listeners:
                    listeners.remove(on_change)
                if not listeners:
                    self._listeners.pop(match_id, None)

        return unsubscribe

    def _notify(self, match_id: str, state: GameState) -> None:
        with self._lock:
            listeners = list(self._listeners.get(match_id, []))
        for listener in listeners:
            # The write is already committed; a failing listener must not undo it
            try:
                listener(state)
            except Exception:
                logger.exception("Listener for match %s failed on v%s", match_id, state.version)
