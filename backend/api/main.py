"""
FastAPI backend for Kingdoms.
Provides REST API endpoints for match state and player actions.
Every action request carries the state version it was based on; stale
requests get 409 and must re-fetch.
"""

import logging
from typing import Any, Callable

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from .database import SessionLocal, init_db
from .store import GameStore
from .auth import (
    Seat,
    create_seat_token,
    get_current_seat,
    get_current_seat_optional,
    require_seat_in_match,
)

from backend.config import CORS_ORIGINS, LOG_LEVEL
from backend.engine import PHASE_FINISHED
from backend.engine.state import GameState
from backend.engine.actions import (
    Action,
    place_castle,
    draw_tile,
    place_held_tile,
    place_starting_tile,
    pass_turn,
)
from backend.engine.errors import GameError, InvalidRoster, SyncConflict, DuplicateTermination
from backend.engine.reducer import apply_action, remove_player
from backend.engine.epoch import is_epoch_over, settle_epoch, epoch_authority_id
from backend.engine.queries import (
    can_act,
    validate_action,
    get_available_actions,
    get_score_preview,
    get_game_summary,
)
from backend.engine.utils import initialize_game_state

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Kingdoms API",
    description="Backend API for Kingdoms - a three-epoch castle and tile board game",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request, call_next):
    """Log method and path so 500s can be traced to the failing endpoint."""
    method = getattr(request, "method", "?")
    url = getattr(request, "url", None)
    path = url.path if url else "?"
    try:
        response = await call_next(request)
        if response.status_code >= 500:
            logger.error("[500] %s %s", method, path)
        return response
    except Exception:
        logger.exception("[500] %s %s (exception)", method, path)
        raise


store = GameStore(SessionLocal)


def get_store() -> GameStore:
    """Dependency that returns the match store (overridden in tests)."""
    return store


# ===== Pydantic Models =====

class RosterEntry(BaseModel):
    id: str
    name: str
    color: str


class CreateMatchRequest(BaseModel):
    roster: list[RosterEntry]


class VersionedRequest(BaseModel):
    version: int  # state version the client acted on


class PlaceCastleRequest(VersionedRequest):
    castle_id: str
    row: int
    col: int


class CellRequest(VersionedRequest):
    row: int
    col: int


# ===== Helper Functions =====

def get_match(match_id: str, match_store: GameStore) -> GameState:
    """Load the match; raise 404 if not found."""
    state = match_store.load(match_id)
    if state is None:
        raise HTTPException(status_code=404, detail=f"Match {match_id} not found")
    return state


def save_match(match_store: GameStore, state: GameState, expected_version: int) -> None:
    """Conditional write; a stale base version becomes 409."""
    try:
        match_store.save(state.match_id, state, expected_version)
    except SyncConflict as e:
        raise HTTPException(status_code=409, detail=str(e))


def _seat_can_act(state: GameState, seat: Seat | None) -> bool:
    """True if this seat is the current player and has something to do."""
    if seat is None or seat.match_id != state.match_id or not state.players:
        return False
    player = state.get_player(seat.player_id)
    return player is not None and state.current_player.id == player.id and (
        state.held_tile is not None or can_act(player, state)
    )


def _response(state: GameState, seat: Seat | None, events: list | None = None) -> dict[str, Any]:
    out: dict[str, Any] = {
        "state": state.to_dict(),
        "summary": get_game_summary(state),
        "can_act": _seat_can_act(state, seat),
    }
    if events is not None:
        out["events"] = [e.to_dict() for e in events]
    return out


def _run_action(
    match_id: str,
    request: VersionedRequest,
    seat: Seat,
    match_store: GameStore,
    build_action: Callable[[str], Action],
) -> dict[str, Any]:
    """Shared flow for every player action: check seat and version, validate, apply, conditional save."""
    require_seat_in_match(seat, match_id)
    state = get_match(match_id, match_store)
    if state.version != request.version:
        raise HTTPException(
            status_code=409,
            detail=f"Match is at version {state.version}, action was based on {request.version}",
        )
    action = build_action(seat.player_id)
    validation = validate_action(state, action)
    if not validation.valid:
        raise HTTPException(status_code=400, detail=validation.error)
    try:
        new_state, events = apply_action(state, action)
    except GameError as e:
        raise HTTPException(status_code=400, detail=str(e))
    save_match(match_store, new_state, state.version)
    return _response(new_state, seat, events)


@app.on_event("startup")
def on_startup():
    init_db()


# ===== API Endpoints =====

@app.get("/")
def root():
    return {"message": "Kingdoms API", "version": "1.0.0"}


@app.post("/matches")
def create_match(request: CreateMatchRequest, match_store: GameStore = Depends(get_store)):
    """
    Create a match from an assembled roster (roster order is turn order).
    Returns one seat token per player; clients send it as a Bearer token.
    """
    roster = [entry.model_dump() for entry in request.roster]
    try:
        state = initialize_game_state(roster)
    except InvalidRoster as e:
        raise HTTPException(status_code=400, detail=str(e))
    match_store.create(state, roster)
    tokens = {p.id: create_seat_token(state.match_id, p.id) for p in state.players}
    return {"match_id": state.match_id, "state": state.to_dict(), "tokens": tokens}


@app.get("/matches/{match_id}")
def get_match_state(
    match_id: str,
    seat: Seat | None = Depends(get_current_seat_optional),
    match_store: GameStore = Depends(get_store),
):
    """Current state. can_act is true only for the seat whose turn it is."""
    state = get_match(match_id, match_store)
    return _response(state, seat)


@app.get("/matches/{match_id}/available-actions")
def available_actions(
    match_id: str,
    seat: Seat = Depends(get_current_seat),
    match_store: GameStore = Depends(get_store),
):
    require_seat_in_match(seat, match_id)
    state = get_match(match_id, match_store)
    return get_available_actions(state, seat.player_id)


@app.get("/matches/{match_id}/score-preview")
def score_preview(match_id: str, match_store: GameStore = Depends(get_store)):
    """Scores the board would give right now; nothing is committed."""
    state = get_match(match_id, match_store)
    return {"epoch": state.epoch, "scores": get_score_preview(state)}


@app.post("/matches/{match_id}/castle")
def do_place_castle(
    match_id: str,
    request: PlaceCastleRequest,
    seat: Seat = Depends(get_current_seat),
    match_store: GameStore = Depends(get_store),
):
    return _run_action(
        match_id, request, seat, match_store,
        lambda pid: place_castle(pid, request.castle_id, request.row, request.col),
    )


@app.post("/matches/{match_id}/draw")
def do_draw_tile(
    match_id: str,
    request: VersionedRequest,
    seat: Seat = Depends(get_current_seat),
    match_store: GameStore = Depends(get_store),
):
    return _run_action(match_id, request, seat, match_store, draw_tile)


@app.post("/matches/{match_id}/held-tile")
def do_place_held_tile(
    match_id: str,
    request: CellRequest,
    seat: Seat = Depends(get_current_seat),
    match_store: GameStore = Depends(get_store),
):
    return _run_action(
        match_id, request, seat, match_store,
        lambda pid: place_held_tile(pid, request.row, request.col),
    )


@app.post("/matches/{match_id}/starting-tile")
def do_place_starting_tile(
    match_id: str,
    request: CellRequest,
    seat: Seat = Depends(get_current_seat),
    match_store: GameStore = Depends(get_store),
):
    return _run_action(
        match_id, request, seat, match_store,
        lambda pid: place_starting_tile(pid, request.row, request.col),
    )


@app.post("/matches/{match_id}/pass")
def do_pass(
    match_id: str,
    request: VersionedRequest,
    seat: Seat = Depends(get_current_seat),
    match_store: GameStore = Depends(get_store),
):
    return _run_action(match_id, request, seat, match_store, pass_turn)


@app.post("/matches/{match_id}/settle")
def do_settle(
    match_id: str,
    request: VersionedRequest,
    seat: Seat = Depends(get_current_seat),
    match_store: GameStore = Depends(get_store),
):
    """
    Settle a finished epoch. Only the host seat may call this; repeating it
    for an epoch that is already scored is a no-op.
    """
    require_seat_in_match(seat, match_id)
    state = get_match(match_id, match_store)
    if seat.player_id != epoch_authority_id(state):
        raise HTTPException(status_code=403, detail="Only the host settles epochs")
    if state.version != request.version:
        raise HTTPException(
            status_code=409,
            detail=f"Match is at version {state.version}, request was based on {request.version}",
        )
    if state.phase == PHASE_FINISHED:
        return {"settled": False, **_response(state, seat, [])}
    if not is_epoch_over(state):
        raise HTTPException(status_code=400, detail=f"Epoch {state.epoch} is still in progress")
    try:
        new_state, events = settle_epoch(state)
    except DuplicateTermination:
        return {"settled": False, **_response(state, seat, [])}
    save_match(match_store, new_state, state.version)
    return {"settled": True, **_response(new_state, seat, events)}


@app.delete("/matches/{match_id}/players/{player_id}")
def do_remove_player(
    match_id: str,
    player_id: str,
    seat: Seat = Depends(get_current_seat),
    match_store: GameStore = Depends(get_store),
):
    """A player leaves. Callers may remove themselves; the host may remove anyone."""
    require_seat_in_match(seat, match_id)
    state = get_match(match_id, match_store)
    if seat.player_id not in (player_id, epoch_authority_id(state)):
        raise HTTPException(status_code=403, detail="Cannot remove another player")
    try:
        new_state, events = remove_player(state, player_id)
    except GameError as e:
        raise HTTPException(status_code=400, detail=str(e))
    save_match(match_store, new_state, state.version)
    return _response(new_state, seat, events)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
