"""
Kingdoms Board Game Engine
Core rules engine without web framework, database, or UI
"""

BOARD_ROWS = 5
BOARD_COLS = 6

EPOCH_COUNT = 3

PLAYER_COLORS = ("red", "blue", "yellow", "green")
MIN_PLAYERS = 2
MAX_PLAYERS = 4

# Match phases
PHASE_PLAYING = "playing"
PHASE_FINISHED = "finished"
