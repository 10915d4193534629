"""Authoritative session state for one running match.

The ``SessionState`` aggregate is owned by a single ``SessionEngine``; nothing
else writes to it. Every mutation goes through the engine, which bumps
``version`` so snapshots can be ordered by clients.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from core.config.arena import ROUND_DURATION
from core.entities import Avatar, Collectible


class Role(Enum):
    """The two exclusive roles of a match."""

    RUNNER = "runner"
    CHASER = "chaser"

    @property
    def opposite(self) -> "Role":
        return Role.CHASER if self is Role.RUNNER else Role.RUNNER


class MatchPhase(Enum):
    """Lifecycle of a match.

    IDLE -> ACTIVE (first connection or restart) -> ENDED (score threshold)
    -> IDLE (restart request).
    """

    IDLE = "idle"
    ACTIVE = "active"
    ENDED = "ended"


@dataclass
class Scoreboard:
    player: int = 0
    ai: int = 0

    def leader(self) -> str:
        """Side with the higher score; an exact tie goes to the player."""
        return "ai" if self.ai > self.player else "player"

    def to_dict(self) -> Dict[str, int]:
        return {"player": self.player, "ai": self.ai}


@dataclass(frozen=True)
class RoleAssignment:
    """Role pairing where the AI always holds the opposite of the player."""

    player: Role = Role.RUNNER

    @property
    def ai(self) -> Role:
        return self.player.opposite

    def swapped(self) -> "RoleAssignment":
        return RoleAssignment(player=self.player.opposite)

    def to_dict(self) -> Dict[str, str]:
        return {"playerRole": self.player.value, "aiRole": self.ai.value}


@dataclass
class SessionState:
    """Single record of truth for the arena."""

    players: Dict[str, Avatar] = field(default_factory=dict)
    ai: Optional[Avatar] = None
    stars: List[Collectible] = field(default_factory=list)
    scores: Scoreboard = field(default_factory=Scoreboard)
    timer: int = ROUND_DURATION
    phase: MatchPhase = MatchPhase.IDLE
    roles: RoleAssignment = field(default_factory=RoleAssignment)
    version: int = 0

    @property
    def active(self) -> bool:
        return self.phase is MatchPhase.ACTIVE

    def touch(self) -> None:
        """Record that the state changed."""
        self.version += 1

    def first_player(self) -> Optional[Avatar]:
        """The opponent's adversary: the earliest connected player, if any."""
        return next(iter(self.players.values()), None)

    def uncollected_stars(self) -> List[Collectible]:
        return [star for star in self.stars if not star.collected]

    def to_dict(self) -> Dict[str, Any]:
        """Full snapshot in the shape the browser client consumes."""
        return {
            "players": {pid: avatar.to_dict() for pid, avatar in self.players.items()},
            "ai": self.ai.to_dict() if self.ai is not None else None,
            "stars": [star.to_dict() for star in self.stars],
            "scores": self.scores.to_dict(),
            "gameTimer": self.timer,
            "gameActive": self.active,
            "phase": self.phase.value,
            **self.roles.to_dict(),
            "version": self.version,
        }
