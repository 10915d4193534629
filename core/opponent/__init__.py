"""Adaptive opponent: tabular Q-learning with memory persisted across sessions.

- actions: the discrete action set and how each action moves the avatar
- state_encoding: lossy discretisation of positions into state labels
- rewards: per-move shaping reward
- pattern_tracker: advisory player movement classifier
- memory_store: durable record of the learned value table
- decision_engine: the learner tying these together
"""

from core.opponent.actions import ACTIONS, Action
from core.opponent.decision_engine import DecisionEngine
from core.opponent.memory_store import LearnedMemory, MemoryStore

__all__ = [
    "ACTIONS",
    "Action",
    "DecisionEngine",
    "LearnedMemory",
    "MemoryStore",
]
