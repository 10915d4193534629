"""Arena entities: avatars and collectible stars.

Entities are plain dataclasses. The session engine is their only mutator;
``to_dict`` produces the wire shape the browser client renders.
"""

import random
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from core.config.arena import (
    AVATAR_HEIGHT,
    AVATAR_WIDTH,
    MAP_HEIGHT,
    MAP_WIDTH,
    STAR_COUNT,
    STAR_SPAWN_INSET,
)

# Wire field name -> attribute name for kinematics a client may report
INTENT_FIELDS = {
    "x": "x",
    "y": "y",
    "velocityX": "velocity_x",
    "velocityY": "velocity_y",
    "onGround": "on_ground",
}


@dataclass
class Avatar:
    """A player or AI body in the arena."""

    x: float
    y: float
    width: float = AVATAR_WIDTH
    height: float = AVATAR_HEIGHT
    velocity_x: float = 0.0
    velocity_y: float = 0.0
    on_ground: bool = False

    def merge(self, fields: Mapping[str, Any]) -> None:
        """Overwrite kinematics with the wire-named ``fields`` that are present.

        Unknown keys are ignored, so size and identity can never be changed
        through a movement intent.
        """
        for wire_name, attr in INTENT_FIELDS.items():
            if wire_name in fields and fields[wire_name] is not None:
                setattr(self, attr, fields[wire_name])

    def move_to(self, x: float, y: float) -> None:
        self.x = x
        self.y = y

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "velocityX": self.velocity_x,
            "velocityY": self.velocity_y,
            "onGround": self.on_ground,
        }


@dataclass
class Collectible:
    """A star. ``collected`` only ever goes from False to True."""

    id: str
    x: float
    y: float
    collected: bool = False

    def collect(self) -> bool:
        """Mark the star collected.

        Returns:
            True if this call collected it, False if it was already taken
        """
        if self.collected:
            return False
        self.collected = True
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "x": self.x, "y": self.y, "collected": self.collected}


def generate_stars(
    count: int = STAR_COUNT,
    rng: Optional[random.Random] = None,
    width: float = MAP_WIDTH,
    height: float = MAP_HEIGHT,
    inset: float = STAR_SPAWN_INSET,
) -> List[Collectible]:
    """Create a fresh set of uncollected stars at random inset positions.

    Args:
        count: Number of stars
        rng: Optional random number generator for determinism
        width: Map width
        height: Map height
        inset: Margin kept free along every map edge

    Returns:
        Stars with distinct ids ``star_0`` .. ``star_{count-1}``
    """
    _rng = rng if rng is not None else random.Random()
    return [
        Collectible(
            id=f"star_{i}",
            x=_rng.random() * (width - 2 * inset) + inset,
            y=_rng.random() * (height - 2 * inset) + inset,
        )
        for i in range(count)
    ]
