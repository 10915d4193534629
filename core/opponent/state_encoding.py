"""Discretisation of continuous positions into Q-table state labels.

The encoding is deliberately many-to-one; it is the learner's only means of
generalising between situations. A label looks like
``chaser_target_left_medium`` or ``runner_target_up_close_danger``.
"""

from typing import Optional

from core.config.learning import CLOSE_DISTANCE, DANGER_RADIUS, MEDIUM_DISTANCE
from core.math_utils import HasPosition, distance
from core.session_state import Role


def direction_bucket(ai_pos: HasPosition, target: HasPosition) -> str:
    """Direction of the target along its dominant axis."""
    dx = target.x - ai_pos.x
    dy = target.y - ai_pos.y
    if abs(dx) > abs(dy):
        return "target_right" if dx > 0 else "target_left"
    return "target_down" if dy > 0 else "target_up"


def distance_bucket(ai_pos: HasPosition, target: HasPosition) -> str:
    gap = distance(ai_pos, target)
    if gap < CLOSE_DISTANCE:
        return "close"
    if gap < MEDIUM_DISTANCE:
        return "medium"
    return "far"


def encode_state(
    ai_pos: HasPosition,
    target: HasPosition,
    role: Role,
    player: Optional[HasPosition] = None,
) -> str:
    """Map positions and role to a discrete state label.

    Args:
        ai_pos: Opponent position
        target: What the opponent is heading for (player or star)
        role: The opponent's current role
        player: Player position; only used to flag danger while running

    Returns:
        The state label
    """
    state = f"{role.value}_{direction_bucket(ai_pos, target)}_{distance_bucket(ai_pos, target)}"

    if role is Role.RUNNER and player is not None:
        if distance(ai_pos, player) < DANGER_RADIUS:
            return f"{state}_danger"

    return state
