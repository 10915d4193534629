"""Small geometry helpers shared by the engine and the opponent.

Positions are anything exposing ``x`` and ``y`` attributes (avatars, stars,
plain ``Position`` tuples), so these helpers stay free of entity imports.
"""

from __future__ import annotations

import math
from typing import NamedTuple, Protocol


class HasPosition(Protocol):
    x: float
    y: float


class Position(NamedTuple):
    """An immutable 2D point."""

    x: float
    y: float


def distance(a: HasPosition, b: HasPosition) -> float:
    """Euclidean distance between two points."""
    return math.hypot(a.x - b.x, a.y - b.y)


def within_box(a: HasPosition, b: HasPosition, reach: float) -> bool:
    """True when both axis distances are strictly below ``reach``."""
    return abs(a.x - b.x) < reach and abs(a.y - b.y) < reach


def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp ``value`` into ``[lo, hi]``."""
    return max(lo, min(hi, value))
