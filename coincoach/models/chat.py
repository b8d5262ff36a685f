"""Chat assistant request/response models."""
from typing import Any, Optional

from pydantic import Field

from coincoach.models.base import CamelModel


class ChatMessage(CamelModel):
    type: str = "user"
    content: str = ""


class SimulatorSession(CamelModel):
    """Live simulator state the UI attaches when chatting from the game page."""

    is_playing: Optional[bool] = None
    current_price: Optional[float] = None
    balance: Optional[float] = None
    holdings: Optional[float] = None
    portfolio_value: Optional[float] = None
    roi: Optional[float] = None
    trades: list[Any] = Field(default_factory=list)


class ChatRequest(CamelModel):
    message: Any = None
    session_data: Optional[SimulatorSession] = None
    conversation_history: list[ChatMessage] = Field(default_factory=list)


class ChatResponse(CamelModel):
    response: str
