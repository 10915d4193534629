"""Q-learning decision engine for the AI avatar.

Each call to ``make_move`` encodes the current situation, picks an action
epsilon-greedily, and uses the shaping reward of that move to update the value
of the *previous* (state, action) pair. The previous pair lives only in
process memory, so the first move after a restart updates nothing.

Learned values, the exploration rate and the episode counter are persisted via
a ``MemoryStore`` so the opponent keeps improving across sessions.
"""

import logging
import random
from typing import Any, Dict, Optional

from core.config.learning import EPSILON_DECAY, EPSILON_MIN
from core.exceptions import PersistenceError
from core.math_utils import HasPosition, Position
from core.opponent.actions import ACTIONS, Action, apply_action
from core.opponent.memory_store import LearnedMemory, MemoryStore, QTable
from core.opponent.pattern_tracker import PlayerPatternTracker
from core.opponent.rewards import compute_reward
from core.opponent.state_encoding import encode_state
from core.session_state import Role

logger = logging.getLogger(__name__)


class DecisionEngine:
    """Chooses opponent moves and learns from their outcomes."""

    def __init__(
        self,
        store: Optional[MemoryStore] = None,
        rng: Optional[random.Random] = None,
        pattern_tracker: Optional[PlayerPatternTracker] = None,
    ):
        """Initialize the engine and restore its memory.

        Args:
            store: Where memory is persisted. Without one the engine learns
                in memory only.
            rng: Optional random number generator for determinism
            pattern_tracker: Optional tracker for player movement patterns
        """
        self._store = store
        self._rng = rng if rng is not None else random.Random()
        self.patterns = pattern_tracker or PlayerPatternTracker()

        self._last_state: Optional[str] = None
        self._last_action: Optional[Action] = None

        self.memory = self._load_memory()

    # ------------------------------------------------------------------
    # Memory
    # ------------------------------------------------------------------

    def _load_memory(self) -> LearnedMemory:
        if self._store is None:
            return LearnedMemory()

        if not self._store.exists():
            logger.info("No opponent memory at %s, starting fresh", self._store.path)
            memory = LearnedMemory()
            self._store.save(memory)
            return memory

        try:
            return self._store.load()
        except PersistenceError as e:
            logger.error("Error loading opponent memory, using defaults: %s", e)
            return LearnedMemory()

    def save_memory(self) -> bool:
        """Persist the full memory record now.

        Returns:
            True if written, False if there is no store or the write failed
        """
        if self._store is None:
            return False
        return self._store.save(self.memory)

    def snapshot_memory(self) -> LearnedMemory:
        """Deep copy of the memory, safe to serialise off the event loop."""
        return self.memory.copy()

    @property
    def store(self) -> Optional[MemoryStore]:
        return self._store

    @property
    def q_table(self) -> QTable:
        return self.memory.q_table

    @property
    def epsilon(self) -> float:
        return self.memory.epsilon

    @epsilon.setter
    def epsilon(self, value: float) -> None:
        self.memory.epsilon = value

    @property
    def episodes(self) -> int:
        return self.memory.episodes

    @property
    def last_transition(self):
        """The (state, action) pair the next update will be applied to."""
        if self._last_state is None or self._last_action is None:
            return None
        return self._last_state, self._last_action

    # ------------------------------------------------------------------
    # Values and policy
    # ------------------------------------------------------------------

    def get_q_value(self, state: str, action: Action) -> float:
        """Learned value, 0.0 for anything never written."""
        return self.memory.q_table.get(state, {}).get(action.value, 0.0)

    def _set_q_value(self, state: str, action: Action, value: float) -> None:
        self.memory.q_table.setdefault(state, {})[action.value] = value

    def best_value(self, state: str) -> float:
        return max(self.get_q_value(state, action) for action in ACTIONS)

    def encode_state(
        self,
        ai_pos: HasPosition,
        target: HasPosition,
        role: Role,
        player: Optional[HasPosition] = None,
    ) -> str:
        return encode_state(ai_pos, target, role, player)

    def select_action(self, state: str) -> Action:
        """Epsilon-greedy choice.

        Exploits by taking the highest valued action; ties (including every
        action of an unseen state) go to the earliest action in ``ACTIONS``.
        """
        if self._rng.random() < self.memory.epsilon:
            return self._rng.choice(ACTIONS)

        best_action = ACTIONS[0]
        best_value = self.get_q_value(state, best_action)
        for action in ACTIONS[1:]:
            value = self.get_q_value(state, action)
            if value > best_value:
                best_value = value
                best_action = action
        return best_action

    def update_q_value(self, state: str, action: Action, reward: float, next_state: str) -> float:
        """Apply ``Q(s,a) += alpha * (r + gamma * max_a' Q(s',a') - Q(s,a))``."""
        current = self.get_q_value(state, action)
        target = reward + self.memory.discount_factor * self.best_value(next_state)
        new_value = current + self.memory.learning_rate * (target - current)
        self._set_q_value(state, action, new_value)
        return new_value

    # ------------------------------------------------------------------
    # Moves
    # ------------------------------------------------------------------

    def make_move(
        self,
        ai_pos: HasPosition,
        target: HasPosition,
        role: Role,
        player: Optional[HasPosition] = None,
    ) -> Position:
        """Pick and learn from one move.

        Args:
            ai_pos: Current opponent position
            target: The player (chasing) or a star (running)
            role: The opponent's role
            player: The player's avatar, if one is connected

        Returns:
            The opponent's next position
        """
        state = self.encode_state(ai_pos, target, role, player)
        action = self.select_action(state)
        new_pos = apply_action(action, ai_pos)

        if player is not None:
            self.patterns.record(player)

        reward = compute_reward(ai_pos, target, role, player, new_pos)

        previous = self.last_transition
        if previous is not None:
            prev_state, prev_action = previous
            self.update_q_value(prev_state, prev_action, reward, state)

        self._last_state = state
        self._last_action = action
        return new_pos

    def give_reward(self, reward: float) -> None:
        """Credit an external event (star pickup, tag) to the last move.

        No lookahead: ``Q(s,a) += alpha * r``.
        """
        previous = self.last_transition
        if previous is None:
            logger.debug("Ignoring external reward %.1f with no previous move", reward)
            return
        state, action = previous
        self._set_q_value(
            state, action, self.get_q_value(state, action) + self.memory.learning_rate * reward
        )

    def reset_transition(self) -> None:
        """Forget the previous (state, action) pair."""
        self._last_state = None
        self._last_action = None

    # ------------------------------------------------------------------
    # Optional hooks
    # ------------------------------------------------------------------

    def decay_epsilon(self) -> float:
        """Shrink exploration (floored at the minimum) and count an episode."""
        self.memory.epsilon = max(EPSILON_MIN, self.memory.epsilon * EPSILON_DECAY)
        self.memory.episodes += 1
        return self.memory.epsilon

    def predict_player_movement(self) -> Optional[str]:
        return self.patterns.predict()

    def get_stats(self) -> Dict[str, Any]:
        """Summary for diagnostics endpoints."""
        return {
            "episodes": self.memory.episodes,
            "epsilon": self.memory.epsilon,
            "learning_rate": self.memory.learning_rate,
            "discount_factor": self.memory.discount_factor,
            "state_count": len(self.memory.q_table),
            "predicted_player_movement": self.predict_player_movement(),
            "recent_patterns": self.patterns.patterns,
        }
