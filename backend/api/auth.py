"""
Seat tokens: a signed JWT per roster entry, issued when a match is created.
A token proves which player of which match is calling; it carries no account.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from backend.config import JWT_SECRET, ACCESS_TOKEN_EXPIRE_DAYS

ALGORITHM = "HS256"

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Seat:
    match_id: str
    player_id: str


def create_seat_token(match_id: str, player_id: str) -> str:
    expire = datetime.utcnow() + timedelta(days=ACCESS_TOKEN_EXPIRE_DAYS)
    payload = {"sub": player_id, "match": match_id, "exp": expire}
    return jwt.encode(payload, JWT_SECRET, algorithm=ALGORITHM)


def decode_seat_token(token: str) -> Seat | None:
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[ALGORITHM])
    except JWTError:
        return None
    player_id = payload.get("sub")
    match_id = payload.get("match")
    if not player_id or not match_id:
        return None
    return Seat(match_id=str(match_id), player_id=str(player_id))


def get_current_seat(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> Seat:
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    seat = decode_seat_token(credentials.credentials)
    if seat is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    return seat


def get_current_seat_optional(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> Seat | None:
    if not credentials:
        return None
    return decode_seat_token(credentials.credentials)


def require_seat_in_match(seat: Seat, match_id: str) -> None:
    """Raise 403 if the token was issued for another match."""
    if seat.match_id != match_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Token is for another match")
