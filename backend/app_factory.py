"""Application factory and context for the arena server.

This module provides a factory for creating the FastAPI app without
import-time side effects. Runtime state lives in an ``AppContext`` instead of
module-level globals, so each test can build a fresh app.

Usage:
------
    # For production (settings from environment)
    app = create_app()

    # For testing (custom configuration)
    app = create_app(context=AppContext(memory_file=str(tmp_path / "memory.json")))
"""

import logging
import os
import random
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.broadcast import ClientHub
from backend.intent_policy import create_intent_policy
from backend.logging_config import configure_logging
from backend.session_engine import SessionEngine
from core.config.arena import AI_TICK_INTERVAL, TICK_INTERVAL
from core.config.learning import DEFAULT_MEMORY_FILE
from core.config.server import (
    DECAY_EXPLORATION_ON_MATCH_END,
    DEFAULT_API_HOST,
    DEFAULT_API_PORT,
    DEFAULT_INTENT_POLICY,
)
from core.opponent.decision_engine import DecisionEngine
from core.opponent.memory_store import MemoryStore


def _env_flag(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).strip().lower() == "true"


@dataclass
class AppContext:
    """Runtime context holding all application state."""

    hub: ClientHub = field(default_factory=ClientHub)

    # Configuration
    api_port: int = field(default_factory=lambda: int(os.getenv("PORT", str(DEFAULT_API_PORT))))
    api_host: str = field(default_factory=lambda: os.getenv("ARENA_HOST", DEFAULT_API_HOST))
    memory_file: str = field(default_factory=lambda: os.getenv("ARENA_MEMORY_FILE", DEFAULT_MEMORY_FILE))
    intent_policy: str = field(
        default_factory=lambda: os.getenv("ARENA_INTENT_POLICY", DEFAULT_INTENT_POLICY)
    )
    decay_exploration_on_match_end: bool = field(
        default_factory=lambda: _env_flag("ARENA_DECAY_EXPLORATION", DECAY_EXPLORATION_ON_MATCH_END)
    )
    production_mode: bool = field(default_factory=lambda: _env_flag("PRODUCTION", False))
    allowed_origins: list = field(
        default_factory=lambda: os.getenv("ALLOWED_ORIGINS", "*").split(",")
    )
    tick_interval: float = TICK_INTERVAL
    ai_tick_interval: float = AI_TICK_INTERVAL
    seed: Optional[int] = None

    # Runtime state (initialized during lifespan)
    engine: Optional[SessionEngine] = None

    # Logging
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("backend"))

    def build_engine(self) -> SessionEngine:
        """Create the session engine and its opponent, restoring learned memory."""
        rng = random.Random(self.seed) if self.seed is not None else None
        decision_engine = DecisionEngine(store=MemoryStore(self.memory_file), rng=rng)
        self.engine = SessionEngine(
            decision_engine,
            self.hub,
            rng=rng,
            intent_policy=create_intent_policy(self.intent_policy),
            tick_interval=self.tick_interval,
            ai_tick_interval=self.ai_tick_interval,
            decay_exploration_on_match_end=self.decay_exploration_on_match_end,
        )
        return self.engine

    def require_engine(self) -> SessionEngine:
        if self.engine is None:
            raise RuntimeError("Session engine is not running")
        return self.engine


def create_app(*, production_mode: Optional[bool] = None, context: Optional[AppContext] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        production_mode: Override production mode (default: from PRODUCTION env var)
        context: Pre-configured AppContext (for testing). If None, creates a new one.

    Returns:
        Configured FastAPI application with context attached as app.state.context
    """
    # Configure logging (idempotent)
    logger = configure_logging()

    if context is None:
        context = AppContext()
    if production_mode is not None:
        context.production_mode = production_mode

    context.logger = logger

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan context manager for startup and shutdown."""
        ctx = app.state.context

        try:
            engine = ctx.engine or ctx.build_engine()
            engine.start()
            ctx.logger.info("LIFESPAN: Startup complete - yielding control to app")
            yield
            ctx.logger.info("LIFESPAN: Received shutdown signal")
        except Exception as e:
            ctx.logger.error(f"Exception in lifespan startup: {e}", exc_info=True)
            raise
        finally:
            if ctx.engine is not None:
                await ctx.engine.shutdown()

    app = FastAPI(
        title="Arena Game Server",
        lifespan=lifespan,
        docs_url=None if context.production_mode else "/docs",
        redoc_url=None if context.production_mode else "/redoc",
    )

    # Attach context to app state for access in routes
    app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=context.allowed_origins if context.production_mode else ["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    _setup_routers(app, context)
    return app


def _setup_routers(app: FastAPI, ctx: AppContext) -> None:
    """Setup and include all API routers."""
    from backend.routers import session, websocket

    app.include_router(session.setup_router(ctx))
    app.include_router(websocket.setup_router(ctx))

    ctx.logger.info("All API routers configured successfully")
