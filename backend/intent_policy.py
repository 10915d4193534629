"""Validation seam for client-reported movement intents.

The server trusts client kinematics: the baseline policy merges intents
verbatim. A stricter policy can be selected without touching the game rules.
"""

import logging
from typing import Any, Dict, Protocol

from core.config.arena import MAP_HEIGHT, MAP_WIDTH
from core.entities import Avatar
from core.exceptions import ConfigurationError
from core.math_utils import clamp

logger = logging.getLogger(__name__)


class IntentPolicy(Protocol):
    """Turns a raw intent into the fields merged into the avatar."""

    def apply(self, avatar: Avatar, fields: Dict[str, Any]) -> Dict[str, Any]:
        ...


class TrustingIntentPolicy:
    """Accept reported kinematics as-is."""

    def apply(self, avatar: Avatar, fields: Dict[str, Any]) -> Dict[str, Any]:
        return fields


class ClampingIntentPolicy:
    """Keep reported positions inside the map bounds."""

    def apply(self, avatar: Avatar, fields: Dict[str, Any]) -> Dict[str, Any]:
        bounded = dict(fields)
        if "x" in bounded:
            bounded["x"] = clamp(bounded["x"], 0, MAP_WIDTH)
        if "y" in bounded:
            bounded["y"] = clamp(bounded["y"], 0, MAP_HEIGHT)
        if bounded != fields:
            logger.debug("Clamped out-of-bounds intent %s -> %s", fields, bounded)
        return bounded


INTENT_POLICIES = {
    "trust": TrustingIntentPolicy,
    "clamp": ClampingIntentPolicy,
}


def create_intent_policy(name: str) -> IntentPolicy:
    """Build the policy registered under ``name``.

    Raises:
        ConfigurationError: If no such policy exists
    """
    try:
        return INTENT_POLICIES[name.strip().lower()]()
    except KeyError:
        allowed = ", ".join(sorted(INTENT_POLICIES))
        raise ConfigurationError(f"Unknown intent policy {name!r} (expected one of {allowed})") from None
