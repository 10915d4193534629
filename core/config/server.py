"""Server configuration constants."""

# Server Configuration
DEFAULT_API_PORT = 3000  # Used when PORT is unset
DEFAULT_API_HOST = "0.0.0.0"

# Feature Flags
DECAY_EXPLORATION_ON_MATCH_END = False  # Call decay_epsilon() at match end
DEFAULT_INTENT_POLICY = "trust"  # "trust" merges client kinematics verbatim, "clamp" bounds them
