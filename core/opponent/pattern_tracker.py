"""Player movement pattern tracking.

Keeps a short trace of observed player positions, classifies the latest three
points into a coarse movement label and offers a majority-vote prediction.
The prediction is advisory; nothing in the game rules depends on it.
"""

import time
from collections import Counter, deque
from dataclasses import dataclass
from typing import Callable, Deque, List, Optional, Sequence

from core.config.learning import (
    PATTERN_HISTORY,
    PATTERN_MIN_SAMPLES,
    POSITION_HISTORY,
    PREDICTION_WINDOW,
)
from core.math_utils import HasPosition

# Fixed label order; also the tie-break order for predictions
PATTERN_LABELS = (
    "moving_left",
    "moving_right",
    "moving_up",
    "moving_down",
    "horizontal",
    "vertical",
    "random",
)


@dataclass(frozen=True)
class TracePoint:
    x: float
    y: float
    timestamp: float


def classify_movement(a: TracePoint, b: TracePoint, c: TracePoint) -> str:
    """Label the two steps a->b->c by their dominant axis and direction."""
    dx1, dy1 = b.x - a.x, b.y - a.y
    dx2, dy2 = c.x - b.x, c.y - b.y

    if abs(dx1) > abs(dy1) and abs(dx2) > abs(dy2):
        if dx1 > 0 and dx2 > 0:
            return "moving_right"
        if dx1 < 0 and dx2 < 0:
            return "moving_left"
        return "horizontal"

    if abs(dy1) > abs(dx1) and abs(dy2) > abs(dx2):
        if dy1 > 0 and dy2 > 0:
            return "moving_down"
        if dy1 < 0 and dy2 < 0:
            return "moving_up"
        return "vertical"

    return "random"


def majority_pattern(labels: Sequence[str]) -> str:
    """Most frequent label; ties go to the earliest entry of ``PATTERN_LABELS``."""
    counts = Counter(labels)
    return max(PATTERN_LABELS, key=lambda label: (counts[label], -PATTERN_LABELS.index(label)))


class PlayerPatternTracker:
    """Bounded FIFO traces of player positions and movement labels."""

    def __init__(
        self,
        position_capacity: int = POSITION_HISTORY,
        pattern_capacity: int = PATTERN_HISTORY,
        clock: Callable[[], float] = time.time,
    ):
        self._positions: Deque[TracePoint] = deque(maxlen=position_capacity)
        self._patterns: Deque[str] = deque(maxlen=pattern_capacity)
        self._clock = clock

    @property
    def positions(self) -> List[TracePoint]:
        return list(self._positions)

    @property
    def patterns(self) -> List[str]:
        return list(self._patterns)

    def record(self, player: HasPosition) -> None:
        """Append the player's position and re-classify once enough points exist."""
        self._positions.append(TracePoint(player.x, player.y, self._clock()))
        if len(self._positions) >= PATTERN_MIN_SAMPLES:
            self.analyze()

    def analyze(self) -> Optional[str]:
        """Classify the three most recent positions and store the label."""
        if len(self._positions) < PATTERN_MIN_SAMPLES:
            return None
        a, b, c = list(self._positions)[-3:]
        label = classify_movement(a, b, c)
        self._patterns.append(label)
        return label

    def predict(self) -> Optional[str]:
        """Most common label among the recent window.

        Returns None until at least three labels exist. Ties go to the label
        listed first in ``PATTERN_LABELS``.
        """
        if len(self._patterns) < PATTERN_MIN_SAMPLES:
            return None
        return majority_pattern(list(self._patterns)[-PREDICTION_WINDOW:])

    def clear(self) -> None:
        self._positions.clear()
        self._patterns.clear()
