"""WebSocket endpoint for real-time play."""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from contextlib import suppress
from typing import TYPE_CHECKING, Any, Callable, Dict

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from backend.broadcast import ClientHub, handle_task_exception
from backend.models import ClientMessage, PlayerMoveIntent
from backend.session_engine import SessionEngine
from core.exceptions import ProtocolError

if TYPE_CHECKING:
    from backend.app_factory import AppContext

logger = logging.getLogger(__name__)


def _on_player_move(engine: SessionEngine, connection_id: str, data: Any) -> None:
    try:
        intent = PlayerMoveIntent.model_validate(data or {})
    except ValidationError as e:
        logger.debug("Ignoring malformed playerMove from %s: %s", connection_id[:8], e)
        return
    engine.on_movement_intent(connection_id, intent.fields())


def _on_restart(engine: SessionEngine, connection_id: str, data: Any) -> None:
    engine.on_restart_request()


CLIENT_EVENTS: Dict[str, Callable[[SessionEngine, str, Any], None]] = {
    "playerMove": _on_player_move,
    "restartGame": _on_restart,
}


def dispatch_client_event(engine: SessionEngine, connection_id: str, payload: Any) -> bool:
    """Route one decoded client frame to the engine.

    Returns:
        True if the event was recognised
    """
    try:
        message = ClientMessage.model_validate(payload)
    except ValidationError:
        logger.debug("Ignoring frame without an event name from %s", connection_id[:8])
        return False

    handler = CLIENT_EVENTS.get(message.event)
    if handler is None:
        logger.debug("Ignoring unknown event %r from %s", message.event, connection_id[:8])
        return False

    handler(engine, connection_id, message.data)
    return True


def decode_frame(message: Dict[str, Any]) -> Any:
    """Decode the JSON body of a received frame.

    Returns:
        The decoded payload, or None for an empty frame

    Raises:
        ProtocolError: If the frame is not UTF-8 or not JSON
    """
    raw_text = message.get("text")
    if raw_text is None and message.get("bytes"):
        try:
            raw_text = message["bytes"].decode("utf-8")
        except UnicodeDecodeError:
            raise ProtocolError("Invalid message encoding.") from None

    if not raw_text:
        return None

    try:
        return json.loads(raw_text)
    except json.JSONDecodeError:
        raise ProtocolError("Invalid JSON payload.") from None


async def _handle_websocket(websocket: WebSocket, hub: ClientHub, engine: SessionEngine) -> None:
    connection_id = str(uuid.uuid4())
    sender: asyncio.Task | None = None
    connected = False

    try:
        await websocket.accept()

        channel = hub.register(connection_id, websocket)
        sender = asyncio.create_task(channel.run_sender(), name=f"sender_{connection_id[:8]}")
        sender.add_done_callback(handle_task_exception)

        engine.on_connect(connection_id)
        connected = True

        while True:
            try:
                message = await websocket.receive()
            except WebSocketDisconnect:
                break

            if message["type"] == "websocket.disconnect":
                break
            if message["type"] != "websocket.receive":
                continue

            try:
                payload = decode_frame(message)
            except ProtocolError as e:
                hub.emit(connection_id, "error", {"error": str(e)})
                continue

            if payload is not None:
                dispatch_client_event(engine, connection_id, payload)
    except Exception:
        logger.exception("WebSocket error for client %s", connection_id[:8])
    finally:
        if connected:
            engine.on_disconnect(connection_id)
        hub.unregister(connection_id)
        if sender is not None:
            sender.cancel()
            with suppress(asyncio.CancelledError):
                await sender


def setup_router(context: "AppContext") -> APIRouter:
    """Create the websocket router bound to the application context."""
    router = APIRouter()

    @router.websocket("/ws")
    async def websocket_play(websocket: WebSocket) -> None:
        await _handle_websocket(websocket, context.hub, context.require_engine())

    return router
