"""Durable storage for the opponent's learned memory.

The record is a small JSON document::

    {
      "q_table": {"<state>": {"<action>": <value>, ...}, ...},
      "episodes": 12,
      "epsilon": 0.3,
      "learning_rate": 0.1,
      "discount_factor": 0.9
    }

It must round-trip exactly; Python's JSON float formatting is lossless.
"""

import copy
import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Union

from core.config.learning import (
    DEFAULT_DISCOUNT_FACTOR,
    DEFAULT_EPSILON,
    DEFAULT_LEARNING_RATE,
    DEFAULT_MEMORY_FILE,
)
from core.exceptions import PersistenceError

logger = logging.getLogger(__name__)

QTable = Dict[str, Dict[str, float]]


def _finite_number(data: Dict[str, Any], key: str, default: float) -> float:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise PersistenceError(f"Invalid memory record: '{key}' must be a finite number, got {value!r}")
    return float(value)


@dataclass
class LearnedMemory:
    """Everything the opponent carries from one session to the next."""

    q_table: QTable = field(default_factory=dict)
    episodes: int = 0
    epsilon: float = DEFAULT_EPSILON
    learning_rate: float = DEFAULT_LEARNING_RATE
    discount_factor: float = DEFAULT_DISCOUNT_FACTOR

    def copy(self) -> "LearnedMemory":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "q_table": {state: dict(values) for state, values in self.q_table.items()},
            "episodes": self.episodes,
            "epsilon": self.epsilon,
            "learning_rate": self.learning_rate,
            "discount_factor": self.discount_factor,
        }

    @staticmethod
    def from_dict(data: Any) -> "LearnedMemory":
        """Create from a decoded record; missing fields take defaults.

        Raises:
            PersistenceError: If the record or any field has the wrong shape
        """
        if not isinstance(data, dict):
            raise PersistenceError("Invalid memory record: expected a JSON object")

        raw_table = data.get("q_table", {})
        if not isinstance(raw_table, dict):
            raise PersistenceError("Invalid memory record: 'q_table' must be an object")

        q_table: QTable = {}
        for state, values in raw_table.items():
            if not isinstance(values, dict):
                raise PersistenceError(f"Invalid memory record: state '{state}' must map actions to values")
            q_table[str(state)] = {
                str(action): _finite_number(values, action, 0.0) for action in values
            }

        episodes = data.get("episodes", 0)
        if isinstance(episodes, bool) or not isinstance(episodes, int) or episodes < 0:
            raise PersistenceError(f"Invalid memory record: 'episodes' must be a non-negative integer, got {episodes!r}")

        return LearnedMemory(
            q_table=q_table,
            episodes=episodes,
            epsilon=_finite_number(data, "epsilon", DEFAULT_EPSILON),
            learning_rate=_finite_number(data, "learning_rate", DEFAULT_LEARNING_RATE),
            discount_factor=_finite_number(data, "discount_factor", DEFAULT_DISCOUNT_FACTOR),
        )


class MemoryStore:
    """Reads and writes a ``LearnedMemory`` record at a fixed path."""

    def __init__(self, path: Union[str, Path] = DEFAULT_MEMORY_FILE):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.exists()

    def load(self) -> LearnedMemory:
        """Load the record from disk.

        Raises:
            PersistenceError: If the file cannot be read or is malformed
        """
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Could not read memory file {self._path}: {e}") from e

        memory = LearnedMemory.from_dict(data)
        logger.info(
            "Loaded opponent memory from %s (%d states, %d episodes, epsilon=%.3f)",
            self._path,
            len(memory.q_table),
            memory.episodes,
            memory.epsilon,
        )
        return memory

    def save(self, memory: LearnedMemory) -> bool:
        """Write the record to disk.

        Returns:
            True if save succeeded, False otherwise (the failure is logged)
        """
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as f:
                json.dump(memory.to_dict(), f, indent=2)

            logger.info(f"Saved opponent memory to {self._path} ({len(memory.q_table)} states)")
            return True

        except Exception as e:
            logger.error(f"Failed to save opponent memory to {self._path}: {e}", exc_info=True)
            return False
