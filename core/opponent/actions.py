"""Discrete opponent actions."""

from enum import Enum
from typing import Tuple

from core.config.arena import AI_JUMP, AI_STEP, MAP_HEIGHT, MAP_WIDTH
from core.math_utils import HasPosition, Position, clamp


class Action(Enum):
    """Opponent moves. Declaration order is the greedy tie-break order."""

    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    JUMP = "jump"


ACTIONS: Tuple[Action, ...] = tuple(Action)

# (dx, dy) per action; y grows downward, so jumping only ever moves up
ACTION_DELTAS = {
    Action.UP: (0, -AI_STEP),
    Action.DOWN: (0, AI_STEP),
    Action.LEFT: (-AI_STEP, 0),
    Action.RIGHT: (AI_STEP, 0),
    Action.JUMP: (0, -AI_JUMP),
}


def apply_action(action: Action, ai_pos: HasPosition) -> Position:
    """Candidate position after ``action``, clamped to the map.

    Platform geometry is not consulted; collision response is client-side.
    """
    dx, dy = ACTION_DELTAS[action]
    return Position(
        clamp(ai_pos.x + dx, 0, MAP_WIDTH),
        clamp(ai_pos.y + dy, 0, MAP_HEIGHT),
    )
