"""Tests for outbound delivery and inbound event routing."""

import asyncio
import json
from contextlib import suppress
from unittest.mock import AsyncMock, MagicMock

import pytest

from backend.broadcast import ClientChannel, ClientHub, encode_event
from backend.intent_policy import ClampingIntentPolicy, TrustingIntentPolicy, create_intent_policy
from backend.routers.websocket import decode_frame, dispatch_client_event
from backend.session_engine import SessionEngine
from core.entities import Avatar
from core.exceptions import ConfigurationError, ProtocolError


def _socket():
    websocket = MagicMock()
    websocket.send_text = AsyncMock()
    return websocket


class TestClientHub:
    def test_encode_event_envelope(self):
        assert json.loads(encode_event("playerId", "abc")) == {"event": "playerId", "data": "abc"}

    def test_broadcast_reaches_every_client(self):
        hub = ClientHub()
        first = hub.register("a", _socket())
        second = hub.register("b", _socket())

        hub.broadcast("gameState", {"gameTimer": 30})

        assert first.pending == 1
        assert second.pending == 1

    def test_emit_targets_one_client(self):
        hub = ClientHub()
        first = hub.register("a", _socket())
        second = hub.register("b", _socket())

        hub.emit("a", "playerId", "a")
        hub.emit("missing", "playerId", "x")

        assert first.pending == 1
        assert second.pending == 0

    def test_unregister(self):
        hub = ClientHub()
        hub.register("a", _socket())
        assert hub.unregister("a") is not None
        assert hub.unregister("a") is None
        assert hub.client_count == 0

    def test_full_backlog_drops_frames(self):
        channel = ClientChannel("a", _socket(), max_pending=1)
        assert channel.enqueue("one") is True
        assert channel.enqueue("two") is False
        assert channel.pending == 1

    def test_control_events_survive_full_backlog(self):
        hub = ClientHub()
        channel = hub.register("a", _socket())
        channel.max_pending = 1

        hub.broadcast("gameState", {"gameTimer": 30})
        hub.broadcast("gameState", {"gameTimer": 29})
        hub.broadcast("gameEnd", {"winner": "player"})
        hub.emit("a", "error", {"error": "Invalid JSON payload."})

        frames = [json.loads(channel._queue.get_nowait())["event"] for _ in range(channel.pending)]
        assert frames == ["gameState", "gameEnd", "error"]

    def test_backlog_warning_logged_once(self, caplog):
        channel = ClientChannel("a", _socket(), max_pending=1)
        for i in range(5):
            channel.enqueue(str(i))

        warnings = [r for r in caplog.records if "backlog full" in r.message]
        assert len(warnings) == 1

    def test_payload_is_captured_at_emit_time(self):
        hub = ClientHub()
        channel = hub.register("a", _socket())
        data = {"gameTimer": 30}
        hub.broadcast("gameState", data)
        data["gameTimer"] = 0

        frame = channel._queue.get_nowait()
        assert json.loads(frame)["data"]["gameTimer"] == 30


@pytest.mark.asyncio
async def test_sender_delivers_in_order():
    websocket = _socket()
    channel = ClientChannel("a", websocket)
    channel.enqueue("one")
    channel.enqueue("two")

    task = asyncio.create_task(channel.run_sender())
    await asyncio.sleep(0.01)
    task.cancel()
    with suppress(asyncio.CancelledError):
        await task

    assert [c.args[0] for c in websocket.send_text.await_args_list] == ["one", "two"]


@pytest.mark.asyncio
async def test_sender_stops_on_send_failure():
    websocket = _socket()
    websocket.send_text.side_effect = RuntimeError("closed")
    channel = ClientChannel("a", websocket)
    channel.enqueue("one")
    channel.enqueue("two")

    await asyncio.wait_for(channel.run_sender(), timeout=1)

    assert websocket.send_text.await_count == 1


class TestDispatch:
    @pytest.fixture
    def engine(self):
        return MagicMock(spec=SessionEngine)

    def test_player_move_forwards_known_fields(self, engine):
        handled = dispatch_client_event(
            engine, "c1", {"event": "playerMove", "data": {"x": 5, "onGround": True, "color": "red"}}
        )
        assert handled is True
        engine.on_movement_intent.assert_called_once_with("c1", {"x": 5.0, "onGround": True})

    def test_malformed_move_is_ignored(self, engine):
        dispatch_client_event(engine, "c1", {"event": "playerMove", "data": {"x": "left"}})
        engine.on_movement_intent.assert_not_called()

    def test_restart_game(self, engine):
        assert dispatch_client_event(engine, "c1", {"event": "restartGame"}) is True
        engine.on_restart_request.assert_called_once_with()

    def test_unknown_event(self, engine):
        assert dispatch_client_event(engine, "c1", {"event": "teleport", "data": {}}) is False
        assert engine.method_calls == []

    def test_frame_without_event(self, engine):
        assert dispatch_client_event(engine, "c1", ["playerMove"]) is False
        assert dispatch_client_event(engine, "c1", {"data": {}}) is False


class TestDecodeFrame:
    def test_text_frame(self):
        assert decode_frame({"type": "websocket.receive", "text": '{"event": "restartGame"}'}) == {
            "event": "restartGame"
        }

    def test_bytes_frame(self):
        assert decode_frame({"type": "websocket.receive", "bytes": b'{"event": "x"}'}) == {"event": "x"}

    def test_empty_frame(self):
        assert decode_frame({"type": "websocket.receive", "text": ""}) is None

    def test_invalid_json(self):
        with pytest.raises(ProtocolError, match="Invalid JSON"):
            decode_frame({"type": "websocket.receive", "text": "{oops"})

    def test_invalid_encoding(self):
        with pytest.raises(ProtocolError, match="encoding"):
            decode_frame({"type": "websocket.receive", "bytes": b"\xff\xfe"})


class TestIntentPolicies:
    def test_lookup_is_case_insensitive(self):
        assert isinstance(create_intent_policy("CLAMP"), ClampingIntentPolicy)
        assert isinstance(create_intent_policy("trust"), TrustingIntentPolicy)

    def test_unknown_policy(self):
        with pytest.raises(ConfigurationError):
            create_intent_policy("strict")

    def test_clamp_leaves_other_fields(self):
        fields = ClampingIntentPolicy().apply(Avatar(0, 0), {"x": 900, "velocityY": -4})
        assert fields == {"x": 800, "velocityY": -4}


@pytest.mark.asyncio
async def test_failed_sender_closes_channel_and_leaves_hub():
    websocket = _socket()
    websocket.send_text.side_effect = RuntimeError("closed")
    hub = ClientHub()
    channel = hub.register("a", websocket)
    hub.emit("a", "playerId", "a")

    await asyncio.wait_for(channel.run_sender(), timeout=1)
    assert channel.closed
    assert channel.enqueue("late") is False

    hub.broadcast("gameEnd", {"winner": "ai"})
    assert hub.client_count == 0
    assert channel.pending == 0
