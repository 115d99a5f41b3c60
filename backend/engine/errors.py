"""
Error taxonomy for the engine.
Every error is recoverable: a rejected action leaves the match exactly as it was.
"""


class GameError(ValueError):
    """Base class for all engine errors. Subclasses ValueError so callers catching ValueError keep working."""


class InvalidMove(GameError):
    """Wrong turn owner, occupied or out-of-range cell, castle not owned by the actor."""


class ResourceUnavailable(GameError):
    """No tiles left to draw, no castles left to place, no starting tile or held tile."""


class SyncConflict(GameError):
    """The store holds a newer version than the one the action was based on."""

    def __init__(self, match_id: str, expected_version: int, actual_version: int | None):
        self.match_id = match_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Match {match_id} is at version {actual_version}, action was based on {expected_version}"
        )


class DuplicateTermination(GameError):
    """Epoch-end settlement requested for an epoch whose scores are already recorded."""

    def __init__(self, epoch: int):
        self.epoch = epoch
        super().__init__(f"Epoch {epoch} has already been scored")


class InvalidRoster(GameError):
    """Roster handed to setup breaks player count or color rules."""
