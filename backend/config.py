"""
Single place for default game/service configuration.
Every value can be overridden with an environment variable of the same name.
"""

import os

# Gold each player starts the match with
STARTING_GOLD = int(os.environ.get("STARTING_GOLD", "50"))

# Database: SQLite next to the api package unless DATABASE_URL is set (see backend/api/database.py)
DATABASE_URL = os.environ.get("DATABASE_URL")

# Seat tokens
JWT_SECRET = os.environ.get("JWT_SECRET", "change-me-in-production-use-env")
ACCESS_TOKEN_EXPIRE_DAYS = int(os.environ.get("ACCESS_TOKEN_EXPIRE_DAYS", "7"))

# Comma-separated list of allowed frontend origins
CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get(
        "CORS_ORIGINS", "http://localhost:5173,http://localhost:3000"
    ).split(",")
    if origin.strip()
]

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
