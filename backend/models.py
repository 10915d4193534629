"""Data models for WebSocket and HTTP communication."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class ClientMessage(BaseModel):
    """Envelope of every inbound WebSocket frame."""

    event: str
    data: Any = None


class PlayerMoveIntent(BaseModel):
    """Kinematics a client reports for its own avatar.

    Field names match the browser client. Absent fields leave the avatar's
    current value untouched.
    """

    model_config = ConfigDict(extra="ignore")

    x: Optional[float] = None
    y: Optional[float] = None
    velocityX: Optional[float] = None
    velocityY: Optional[float] = None
    onGround: Optional[bool] = None

    def fields(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class OpponentStats(BaseModel):
    """GET /api/opponent response."""

    episodes: int
    epsilon: float
    learning_rate: float
    discount_factor: float
    state_count: int
    predicted_player_movement: Optional[str] = None
    recent_patterns: List[str] = []


class SaveResponse(BaseModel):
    """POST /api/opponent/save response."""

    saved: bool
    path: Optional[str] = None
