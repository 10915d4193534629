"""Shaping reward for a single opponent move."""

from typing import Optional

from core.config.arena import MAP_HEIGHT, MAP_WIDTH
from core.config.learning import (
    PENALTY_BOUNDARY,
    PENALTY_CHASER_NOT_CLOSER,
    PENALTY_NOT_EVADING,
    REWARD_CLOSER,
    REWARD_EVADE,
)
from core.math_utils import HasPosition, distance
from core.session_state import Role


def touches_boundary(pos: HasPosition) -> bool:
    return pos.x <= 0 or pos.x >= MAP_WIDTH or pos.y <= 0 or pos.y >= MAP_HEIGHT


def compute_reward(
    old_pos: HasPosition,
    target: HasPosition,
    role: Role,
    player: Optional[HasPosition],
    new_pos: HasPosition,
) -> float:
    """Reward for moving from ``old_pos`` to ``new_pos``.

    Clauses are additive:
    - chaser: +1 for closing on the target, -0.5 otherwise
    - runner: +1 for closing on a target that is not the player itself, and
      +0.5 / -1 for gaining / not gaining distance from the player
    - any role: -2 when the new position sits on or past a map edge

    ``target is player`` is an identity check; the engine passes the player's
    avatar as the target when a runner has no stars left to chase.
    """
    reward = 0.0
    closer = distance(new_pos, target) < distance(old_pos, target)

    if role is Role.CHASER:
        reward += REWARD_CLOSER if closer else PENALTY_CHASER_NOT_CLOSER
    elif role is Role.RUNNER:
        if target is not player and closer:
            reward += REWARD_CLOSER

        if player is not None:
            if distance(new_pos, player) > distance(old_pos, player):
                reward += REWARD_EVADE
            else:
                reward += PENALTY_NOT_EVADING

    if touches_boundary(new_pos):
        reward += PENALTY_BOUNDARY

    return reward
