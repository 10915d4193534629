"""Pytest configuration and fixtures for arena tests."""

import copy
import random
from typing import Any, List, Optional, Tuple

import pytest

from backend.session_engine import SessionEngine
from core.entities import Avatar, Collectible
from core.opponent.decision_engine import DecisionEngine


class RecordingSink:
    """Collects outbound events instead of sending them."""

    def __init__(self):
        # (connection_id or None for broadcasts, event, payload)
        self.sent: List[Tuple[Optional[str], str, Any]] = []

    def emit(self, connection_id: str, event: str, data: Any) -> None:
        self.sent.append((connection_id, event, copy.deepcopy(data)))

    def broadcast(self, event: str, data: Any) -> None:
        self.sent.append((None, event, copy.deepcopy(data)))

    def events(self, name: str) -> List[Any]:
        return [data for _, event, data in self.sent if event == name]

    def clear(self) -> None:
        self.sent.clear()


@pytest.fixture
def seeded_rng():
    """Provide a deterministic RNG for tests."""
    return random.Random(42)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def decision_engine(seeded_rng):
    """An in-memory learner that always exploits."""
    engine = DecisionEngine(rng=seeded_rng)
    engine.epsilon = 0.0
    return engine


@pytest.fixture
def engine(decision_engine, sink):
    """Session engine whose cadences never fire on their own during a test."""
    return SessionEngine(
        decision_engine,
        sink,
        rng=random.Random(7),
        tick_interval=3600,
        ai_tick_interval=3600,
    )


@pytest.fixture
def active_match(engine):
    """An active round with one player at spawn and stars at known spots."""
    engine.reset_round()
    engine.state.players["p1"] = Avatar(700, 500)
    engine.state.stars = [
        Collectible("star_0", 300, 300),
        Collectible("star_1", 500, 150),
        Collectible("star_2", 650, 400),
    ]
    return engine
