"""Volatility-based risk score (0-10) shown next to each coin."""
import math
from typing import Literal

RiskLevel = Literal["low", "medium", "high", "extreme"]


def calculate_risk_score(
    price_change_24h: float,
    price_change_7d: float = 0,
    volume: float = 0,
    market_cap: float = 0,
) -> float:
    """Score a coin from its recent volatility and size.

    - 24h move contributes up to 5 points (1 per 5%)
    - 7d move contributes up to 3 points (1 per 10%)
    - small caps add 2 (< $1B) or 1 (< $10B)

    ``volume`` is accepted for callers that pass full market rows; it does
    not affect the score.
    """
    risk = min(abs(price_change_24h) / 5, 5)
    risk += min(abs(price_change_7d) / 10, 3)

    if market_cap > 0:
        if market_cap < 1_000_000_000:
            risk += 2
        elif market_cap < 10_000_000_000:
            risk += 1

    return min(math.floor(risk * 10 + 0.5) / 10, 10)


def risk_level(score: float) -> RiskLevel:
    if score <= 2.5:
        return "low"
    if score <= 5:
        return "medium"
    if score <= 7.5:
        return "high"
    return "extreme"
