"""Gameplay rule and geometry constants."""

# Map dimensions in pixels (must match Canvas size in frontend)
MAP_WIDTH = 800
MAP_HEIGHT = 600

# Collectible stars
STAR_COUNT = 3
STAR_SPAWN_INSET = 50  # Stars spawn inside [inset, size - inset] on both axes

# Avatars
AVATAR_WIDTH = 30
AVATAR_HEIGHT = 30
PLAYER_SPAWN = (700, 500)
AI_SPAWN = (100, 500)

# Round timing (seconds)
ROUND_DURATION = 30
TICK_INTERVAL = 1.0  # Countdown / broadcast cadence
AI_TICK_INTERVAL = 0.1  # Opponent decision cadence

# Scoring rules
ROLE_SWITCH_SCORE = 5  # Exact score that swaps roles (once per match)
MATCH_END_SCORE = 10  # First side reaching this wins
STAR_PICKUP_RANGE = 30  # Per-axis distance for collecting a star
TAG_RANGE = 40  # Euclidean distance for a tag
STAR_POINTS = 1
TAG_POINTS = 100
TIMEOUT_POINTS = 1  # Awarded to both sides when the countdown expires

# Opponent movement
AI_STEP = 3
AI_JUMP = 15
