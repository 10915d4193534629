"""Hyper-parameters for the adaptive opponent."""

# Q-learning defaults (used when no memory file exists or it is unreadable)
DEFAULT_EPSILON = 0.3
EPSILON_MIN = 0.1
EPSILON_DECAY = 0.995
DEFAULT_LEARNING_RATE = 0.1
DEFAULT_DISCOUNT_FACTOR = 0.9

# State discretisation
CLOSE_DISTANCE = 50
MEDIUM_DISTANCE = 150
DANGER_RADIUS = 100  # Runner states get a "_danger" suffix inside this radius

# Shaping rewards
REWARD_CLOSER = 1.0
PENALTY_CHASER_NOT_CLOSER = -0.5
REWARD_EVADE = 0.5
PENALTY_NOT_EVADING = -1.0
PENALTY_BOUNDARY = -2.0

# External rewards granted by the session engine
STAR_REWARD = 10
TAG_REWARD = 100

# Player movement pattern tracking
POSITION_HISTORY = 10
PATTERN_HISTORY = 20
PATTERN_MIN_SAMPLES = 3
PREDICTION_WINDOW = 5

# Persistence
DEFAULT_MEMORY_FILE = "data/ai_memory.json"
