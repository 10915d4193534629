"""Authoritative session engine.

The engine is the only writer of ``SessionState``. It ingests client events,
drives two cadences on the event loop (a 1 s countdown that also broadcasts
state, and a 100 ms opponent step), and applies the scoring rules:

- stars: +1 to the runner that touches an uncollected star
- tags: +100 to the chaser that reaches the runner
- countdown expiry: +1 to both sides
- the first time a score hits exactly 5 while the player runs, roles swap
- the first side to reach 10 wins and the match ends

All handlers run to completion without awaiting, so rule evaluation always
finishes before the resulting broadcast is queued.
"""

import asyncio
import logging
import random
from contextlib import suppress
from typing import Any, Mapping, Optional, Protocol, Set

from backend.broadcast import handle_task_exception
from backend.intent_policy import IntentPolicy, TrustingIntentPolicy
from core.config.arena import (
    AI_SPAWN,
    AI_TICK_INTERVAL,
    MATCH_END_SCORE,
    PLAYER_SPAWN,
    ROLE_SWITCH_SCORE,
    ROUND_DURATION,
    STAR_PICKUP_RANGE,
    STAR_POINTS,
    TAG_POINTS,
    TAG_RANGE,
    TICK_INTERVAL,
    TIMEOUT_POINTS,
)
from core.config.learning import STAR_REWARD, TAG_REWARD
from core.entities import Avatar, generate_stars
from core.math_utils import HasPosition, distance, within_box
from core.opponent.decision_engine import DecisionEngine
from core.session_state import MatchPhase, Role, SessionState

logger = logging.getLogger(__name__)


class EventSink(Protocol):
    """Where the engine sends outbound events."""

    def emit(self, connection_id: str, event: str, data: Any) -> None:
        ...

    def broadcast(self, event: str, data: Any) -> None:
        ...


class SessionEngine:
    """Owns the match state and enforces the game rules."""

    def __init__(
        self,
        decision_engine: DecisionEngine,
        sink: EventSink,
        *,
        rng: Optional[random.Random] = None,
        intent_policy: Optional[IntentPolicy] = None,
        tick_interval: float = TICK_INTERVAL,
        ai_tick_interval: float = AI_TICK_INTERVAL,
        decay_exploration_on_match_end: bool = False,
    ):
        """Initialize the engine with an idle, empty session.

        Args:
            decision_engine: The learner that moves the AI avatar
            sink: Outbound event delivery
            rng: Optional random number generator for star placement
            intent_policy: Filter applied to client kinematics before merging
            tick_interval: Seconds between countdown ticks
            ai_tick_interval: Seconds between opponent moves
            decay_exploration_on_match_end: Call ``decay_epsilon`` once per
                finished match before memory is saved
        """
        self.decision_engine = decision_engine
        self._sink = sink
        self._rng = rng if rng is not None else random.Random()
        self._intent_policy = intent_policy or TrustingIntentPolicy()
        self._tick_interval = tick_interval
        self._ai_tick_interval = ai_tick_interval
        self._decay_exploration = decay_exploration_on_match_end

        self.state = SessionState()

        self._tick_task: Optional[asyncio.Task] = None
        self._ai_task: Optional[asyncio.Task] = None
        self._pending_saves: Set[asyncio.Future] = set()

    # ------------------------------------------------------------------
    # Cadences
    # ------------------------------------------------------------------

    @property
    def tick_timer_running(self) -> bool:
        return self._tick_task is not None

    @property
    def ai_loop_running(self) -> bool:
        return self._ai_task is not None

    def start(self) -> None:
        """Arm the opponent cadence. Must be called from the event loop."""
        if self._ai_task is not None:
            self._ai_task.cancel()
        self._ai_task = asyncio.create_task(self._ai_loop(), name="arena_ai_tick")
        self._ai_task.add_done_callback(handle_task_exception)
        logger.info("Opponent loop started (every %.2fs)", self._ai_tick_interval)

    async def shutdown(self) -> None:
        """Cancel both cadences and wait for in-flight memory saves."""
        tasks = [task for task in (self._tick_task, self._ai_task) if task is not None]
        self._tick_task = None
        self._ai_task = None
        for task in tasks:
            task.cancel()
        for task in tasks:
            with suppress(asyncio.CancelledError):
                await task
        await self.wait_for_saves()
        logger.info("Session engine stopped")

    def start_tick_timer(self) -> None:
        """(Re)arm the countdown; any existing countdown is cleared first."""
        self.stop_tick_timer()
        self._tick_task = asyncio.create_task(self._tick_loop(), name="arena_countdown")
        self._tick_task.add_done_callback(handle_task_exception)

    def stop_tick_timer(self) -> None:
        if self._tick_task is not None:
            self._tick_task.cancel()
            self._tick_task = None

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self._tick_interval)
            try:
                self.tick()
            except Exception as e:
                logger.error("Countdown tick failed: %s", e, exc_info=True)

    async def _ai_loop(self) -> None:
        while True:
            await asyncio.sleep(self._ai_tick_interval)
            try:
                self.ai_tick()
            except Exception as e:
                logger.error("Opponent tick failed: %s", e, exc_info=True)

    # ------------------------------------------------------------------
    # Client events
    # ------------------------------------------------------------------

    def on_connect(self, connection_id: str) -> None:
        """Spawn a player avatar, starting a round if none is active."""
        logger.info("Player connected: %s", connection_id)
        self.state.players[connection_id] = Avatar(*PLAYER_SPAWN)
        self.state.touch()

        if not self.state.active:
            self.reset_round()
            self.start_tick_timer()

        self._sink.emit(connection_id, "gameState", self.snapshot())
        self._sink.emit(connection_id, "playerId", connection_id)

    def on_disconnect(self, connection_id: str) -> None:
        """Remove the player's avatar; the match itself carries on."""
        if self.state.players.pop(connection_id, None) is not None:
            self.state.touch()
            logger.info("Player disconnected: %s", connection_id)

    def on_movement_intent(self, connection_id: str, fields: Mapping[str, Any]) -> None:
        """Merge client kinematics and adjudicate the player's pickups or tags."""
        avatar = self.state.players.get(connection_id)
        if avatar is None:
            logger.debug("Ignoring move from unknown connection %s", connection_id)
            return
        if not self.state.active:
            logger.debug("Ignoring move from %s outside an active match", connection_id)
            return

        avatar.merge(self._intent_policy.apply(avatar, dict(fields)))
        self.state.touch()

        if self.state.roles.player is Role.RUNNER:
            self._collect_stars(avatar, "player")
        elif self.state.ai is not None and distance(avatar, self.state.ai) < TAG_RANGE:
            logger.info("Player %s tagged the opponent", connection_id)
            self._award("player", TAG_POINTS)

        self._broadcast_state()

    def on_restart_request(self) -> None:
        """Abandon the current match and, if anyone is connected, start a new one.

        Safe to call in any phase and any number of times.
        """
        logger.info("Restart requested (phase=%s)", self.state.phase.value)
        self.stop_tick_timer()
        self.state.phase = MatchPhase.IDLE
        self.state.touch()

        if self.state.players:
            self.reset_round()
            self.start_tick_timer()

        self._broadcast_state()

    # ------------------------------------------------------------------
    # Periodic steps
    # ------------------------------------------------------------------

    def tick(self) -> None:
        """Advance the countdown by one second and broadcast state."""
        if self.state.active and self.state.timer > 0:
            self.state.timer -= 1
            self.state.touch()

            if self.state.timer <= 0:
                logger.info("Round timer expired, awarding both sides")
                self.state.scores.player += TIMEOUT_POINTS
                self.state.scores.ai += TIMEOUT_POINTS
                self.check_round_outcome()

        self._broadcast_state()

    def ai_tick(self) -> None:
        """Let the opponent take one step, then adjudicate its pickups or tags."""
        state = self.state
        if not state.active or state.ai is None:
            return

        player = state.first_player()
        if player is None:
            return

        role = state.roles.ai
        target = self.select_ai_target(player)

        new_pos = self.decision_engine.make_move(state.ai, target, role, player)
        state.ai.move_to(new_pos.x, new_pos.y)
        state.touch()

        if role is Role.RUNNER:
            self._collect_stars(state.ai, "ai", reward=STAR_REWARD)
        elif distance(state.ai, player) < TAG_RANGE:
            logger.info("Opponent tagged the player")
            self.decision_engine.give_reward(TAG_REWARD)
            self._award("ai", TAG_POINTS)

    def select_ai_target(self, player: Avatar) -> HasPosition:
        """The player when chasing, else the nearest uncollected star.

        A runner with no stars left heads for the player.
        """
        if self.state.roles.ai is Role.CHASER:
            return player

        stars = self.state.uncollected_stars()
        if not stars:
            return player
        ai = self.state.ai
        return min(stars, key=lambda star: distance(ai, star))

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def reset_round(self) -> None:
        """Replace the session with a fresh active match, keeping connected players."""
        self.state = SessionState(
            players=self.state.players,
            ai=Avatar(*AI_SPAWN),
            stars=generate_stars(rng=self._rng),
            timer=ROUND_DURATION,
            phase=MatchPhase.ACTIVE,
            version=self.state.version + 1,
        )
        logger.info("New round started with %d player(s)", len(self.state.players))

    def check_round_outcome(self) -> None:
        """Evaluate the role-switch rule, then the match-end rule."""
        state = self.state
        if not state.active:
            return
        scores = state.scores

        if state.roles.player is Role.RUNNER and ROLE_SWITCH_SCORE in (scores.player, scores.ai):
            self._switch_roles()

        if scores.player >= MATCH_END_SCORE or scores.ai >= MATCH_END_SCORE:
            self._end_match()

    def _switch_roles(self) -> None:
        state = self.state
        state.roles = state.roles.swapped()
        state.timer = ROUND_DURATION
        state.stars = generate_stars(rng=self._rng)
        state.touch()
        logger.info(
            "Roles switched: player=%s ai=%s (scores %s)",
            state.roles.player.value,
            state.roles.ai.value,
            state.scores.to_dict(),
        )
        self._sink.broadcast("roleSwitch", state.roles.to_dict())

    def _end_match(self) -> None:
        state = self.state
        state.phase = MatchPhase.ENDED
        state.touch()
        self.stop_tick_timer()

        winner = state.scores.leader()
        logger.info("Match over: %s wins %s", winner, state.scores.to_dict())
        self._sink.broadcast("gameEnd", {"winner": winner, "scores": state.scores.to_dict()})

        if self._decay_exploration:
            self.decision_engine.decay_epsilon()
        self._persist_memory()

    def _award(self, side: str, points: int) -> None:
        if side == "player":
            self.state.scores.player += points
        else:
            self.state.scores.ai += points
        self.state.touch()
        self.check_round_outcome()

    def _collect_stars(self, avatar: Avatar, side: str, reward: Optional[float] = None) -> int:
        """Collect every star within reach of ``avatar`` for ``side``.

        ``reward`` is credited to the opponent before the score is evaluated.
        Stops early when a rule fires (roles swapped or match over), since the
        collector is then no longer a runner in an active match.
        """
        roles = self.state.roles
        collected = 0
        for star in list(self.state.stars):
            if not self.state.active or self.state.roles is not roles:
                break
            if not within_box(avatar, star, STAR_PICKUP_RANGE) or not star.collect():
                continue
            collected += 1
            if reward is not None:
                self.decision_engine.give_reward(reward)
            self._award(side, STAR_POINTS)
        return collected

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def snapshot(self) -> dict:
        return self.state.to_dict()

    def _broadcast_state(self) -> None:
        self._sink.broadcast("gameState", self.snapshot())

    def _persist_memory(self) -> None:
        """Save opponent memory without blocking the event loop."""
        store = self.decision_engine.store
        if store is None:
            return
        memory = self.decision_engine.snapshot_memory()

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            store.save(memory)
            return

        future = loop.run_in_executor(None, store.save, memory)
        self._pending_saves.add(future)
        future.add_done_callback(self._on_save_done)

    def _on_save_done(self, future: asyncio.Future) -> None:
        self._pending_saves.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Opponent memory save failed: %s", exc, exc_info=(type(exc), exc, exc.__traceback__))
        elif not future.result():
            logger.error("Opponent memory save reported failure")

    async def wait_for_saves(self) -> None:
        """Await memory saves still running in the executor."""
        if self._pending_saves:
            await asyncio.gather(*list(self._pending_saves), return_exceptions=True)
