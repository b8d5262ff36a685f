"""Simulator trade data sent for pattern analysis."""
from typing import Literal, Optional

from pydantic import Field

from coincoach.models.base import CamelModel


class TradeRecord(CamelModel):
    type: Literal["buy", "sell"]
    price: float
    amount: float
    timestamp: Optional[float] = None


class PricePoint(CamelModel):
    time: float
    price: float


class AnalysisRequest(CamelModel):
    trades: list[TradeRecord] = Field(default_factory=list)
    price_history: list[PricePoint] = Field(default_factory=list)
    current_price: float = 0.0
    balance: float = 0.0
    holdings: float = 0.0
    portfolio_value: float = 0.0
    roi: float = 0.0


class PatternAnalysis(CamelModel):
    patterns: list[str]
    insights: Optional[str] = None
    suggestion: Optional[str] = None
