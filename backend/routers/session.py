"""HTTP endpoints for inspecting the match and the opponent."""

import logging
from typing import TYPE_CHECKING, Any, Dict

from fastapi import APIRouter
from fastapi.concurrency import run_in_threadpool

from backend.models import OpponentStats, SaveResponse

if TYPE_CHECKING:
    from backend.app_factory import AppContext

logger = logging.getLogger(__name__)


def setup_router(context: "AppContext") -> APIRouter:
    """Create the session router bound to the application context."""
    router = APIRouter(tags=["session"])

    @router.get("/health")
    async def health() -> Dict[str, Any]:
        """Liveness probe."""
        return {"status": "ok", "clients": context.hub.client_count}

    @router.get("/api/session")
    async def get_session() -> Dict[str, Any]:
        """Current authoritative match snapshot."""
        return context.require_engine().snapshot()

    @router.get("/api/opponent", response_model=OpponentStats)
    async def get_opponent() -> OpponentStats:
        """Learning statistics of the adaptive opponent."""
        return OpponentStats(**context.require_engine().decision_engine.get_stats())

    @router.post("/api/opponent/save", response_model=SaveResponse)
    async def save_opponent() -> SaveResponse:
        """Persist the opponent's memory now."""
        decision_engine = context.require_engine().decision_engine
        store = decision_engine.store
        memory = decision_engine.snapshot_memory()
        if store is None:
            return SaveResponse(saved=False)
        saved = await run_in_threadpool(store.save, memory)
        logger.info("Manual opponent save %s", "completed" if saved else "failed")
        return SaveResponse(saved=saved, path=str(store.path))

    return router
