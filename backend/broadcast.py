"""Outbound event delivery to connected clients.

Game rules run synchronously and must never await mid-mutation, so emitting an
event only serialises it and puts it on each client's queue. A sender task per
connection drains the queue onto the WebSocket.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import orjson
from fastapi import WebSocket

logger = logging.getLogger(__name__)

# Per-client backlog before state frames are dropped
MAX_PENDING_FRAMES = 256


def handle_task_exception(task: asyncio.Task) -> None:
    """Handle exceptions from background tasks."""
    try:
        exc = task.exception()
        if exc is not None:
            logger.error(
                f"Unhandled exception in task {task.get_name()}: {exc}",
                exc_info=(type(exc), exc, exc.__traceback__),
            )
    except asyncio.CancelledError:
        logger.debug(f"Task {task.get_name()} was cancelled")
    except Exception as e:
        logger.error(f"Error getting task exception: {e}", exc_info=True)


# One-shot events; queued even when the backlog is full
CONTROL_EVENTS = frozenset({"playerId", "roleSwitch", "gameEnd", "error"})


def encode_event(event: str, data: Any) -> str:
    """Serialise one frame; the payload is captured as it is right now."""
    return orjson.dumps({"event": event, "data": data}).decode("utf-8")


class ClientChannel:
    """Queue of outbound frames for one WebSocket.

    State snapshots beyond ``max_pending`` queued frames are dropped; control
    events are always queued. Once the sender stops the channel is closed and
    accepts nothing.
    """

    def __init__(self, connection_id: str, websocket: WebSocket, max_pending: int = MAX_PENDING_FRAMES):
        self.connection_id = connection_id
        self.websocket = websocket
        self.max_pending = max_pending
        self.closed = False
        self._queue: "asyncio.Queue[str]" = asyncio.Queue()
        self._dropping = False

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def enqueue(self, frame: str, droppable: bool = True) -> bool:
        if self.closed:
            return False
        if droppable and self._queue.qsize() >= self.max_pending:
            if not self._dropping:
                logger.warning("Client %s backlog full, dropping state frames", self.connection_id[:8])
                self._dropping = True
            return False
        self._dropping = False
        self._queue.put_nowait(frame)
        return True

    async def run_sender(self) -> None:
        """Deliver queued frames until the socket fails or the task is cancelled."""
        while True:
            frame = await self._queue.get()
            try:
                await self.websocket.send_text(frame)
            except Exception as e:
                logger.warning("Error sending to client %s, stopping sender: %s", self.connection_id[:8], e)
                self.closed = True
                return


class ClientHub:
    """Registry of connected clients with emit/broadcast helpers."""

    def __init__(self):
        self._channels: Dict[str, ClientChannel] = {}

    def register(self, connection_id: str, websocket: WebSocket) -> ClientChannel:
        channel = ClientChannel(connection_id, websocket)
        self._channels[connection_id] = channel
        logger.debug("Registered client %s (%d connected)", connection_id[:8], len(self._channels))
        return channel

    def unregister(self, connection_id: str) -> Optional[ClientChannel]:
        return self._channels.pop(connection_id, None)

    @property
    def client_count(self) -> int:
        return len(self._channels)

    def emit(self, connection_id: str, event: str, data: Any) -> None:
        """Send an event to a single client."""
        channel = self._channels.get(connection_id)
        if channel is None:
            logger.debug("Dropping %s for unknown client %s", event, connection_id[:8])
            return
        self._deliver(channel, encode_event(event, data), event)

    def broadcast(self, event: str, data: Any) -> None:
        """Send an event to every connected client."""
        if not self._channels:
            return
        frame = encode_event(event, data)
        for channel in list(self._channels.values()):
            self._deliver(channel, frame, event)

    def _deliver(self, channel: ClientChannel, frame: str, event: str) -> None:
        if channel.closed:
            # Sender is gone; the receive loop finishes the disconnect
            self.unregister(channel.connection_id)
            return
        channel.enqueue(frame, droppable=event not in CONTROL_EVENTS)
