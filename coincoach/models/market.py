"""Typed views of the market-data proxy's JSON."""
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class Sparkline(BaseModel):
    price: list[float] = Field(default_factory=list)


class CoinMarketData(BaseModel):
    """One row of the markets endpoint; missing numbers read as 0."""

    id: str
    symbol: str = ""
    name: str = ""
    image: str = ""
    current_price: float = 0
    market_cap: float = 0
    market_cap_rank: int = 0
    total_volume: float = 0
    price_change_percentage_24h: float = 0
    price_change_percentage_7d_in_currency: float = 0
    sparkline_in_7d: Optional[Sparkline] = None
    ath: float = 0
    ath_change_percentage: float = 0
    atl: float = 0
    high_24h: float = 0
    low_24h: float = 0

    @field_validator(
        "current_price", "market_cap", "market_cap_rank", "total_volume",
        "price_change_percentage_24h", "price_change_percentage_7d_in_currency",
        "ath", "ath_change_percentage", "atl", "high_24h", "low_24h",
        mode="before",
    )
    @classmethod
    def null_as_zero(cls, v):
        return v or 0


class CoinWithRisk(CoinMarketData):
    risk_score: float


class PriceHistory(BaseModel):
    prices: list[tuple[float, float]] = Field(default_factory=list)
    market_caps: list[tuple[float, float]] = Field(default_factory=list)
    total_volumes: list[tuple[float, float]] = Field(default_factory=list)


class SimplePrice(BaseModel):
    usd: float = 0
    usd_24h_change: float = 0

    @field_validator("usd", "usd_24h_change", mode="before")
    @classmethod
    def null_as_zero(cls, v):
        return v or 0
