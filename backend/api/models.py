"""
SQLAlchemy models for stored matches.
"""

from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text, Integer

from .database import Base


class Match(Base):
    __tablename__ = "matches"

    id = Column(String(36), primary_key=True)  # uuid
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    status = Column(String(32), nullable=False, default="playing")  # playing | finished
    # Mirrors GameState.version; conditional writes compare against it
    version = Column(Integer, nullable=False, default=0)
    game_state = Column(Text, nullable=False)  # JSON string of full game state
    roster = Column(Text, nullable=False)  # JSON array of {"id", "name", "color"}
