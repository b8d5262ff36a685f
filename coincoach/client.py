"""Async client for the CoinCoach market-data endpoint.

Mirrors what the dashboards do with ``/api/v1/crypto``: typed market rows,
price history, lightweight prices and trending coins, with risk scores
computed client-side.
"""
import logging
from typing import Any, Iterable, Optional

import httpx

from coincoach.core.exceptions import UpstreamError
from coincoach.models.market import CoinMarketData, CoinWithRisk, PriceHistory, SimplePrice
from coincoach.services.risk import calculate_risk_score

logger = logging.getLogger(__name__)

# Supported coin IDs (CoinGecko format)
SUPPORTED_COINS = (
    "bitcoin",
    "ethereum",
    "solana",
    "cardano",
    "binancecoin",
    "ripple",
    "dogecoin",
    "polkadot",
    "avalanche-2",
    "chainlink",
)

# Ticker symbol -> CoinGecko id
COIN_ID_MAP = {
    "btc": "bitcoin",
    "eth": "ethereum",
    "sol": "solana",
    "ada": "cardano",
    "bnb": "binancecoin",
    "xrp": "ripple",
    "doge": "dogecoin",
    "dot": "polkadot",
    "avax": "avalanche-2",
    "link": "chainlink",
}


class CoinCoachClient:
    """Client for a running CoinCoach API."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000/api/v1",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def _get(self, params: dict[str, str]) -> Any:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(f"{self.base_url}/crypto", params=params)
        except httpx.HTTPError as e:
            logger.error("CoinCoach API request failed: %s", e)
            raise UpstreamError("Failed to fetch crypto data. Check your internet connection.", 500) from e

        if not response.is_success:
            raise UpstreamError(f"API error: {response.status_code}", response.status_code)

        data = response.json()
        if isinstance(data, dict) and data.get("error"):
            raise UpstreamError(data["error"], response.status_code)
        return data

    async def get_market_data(self, coin_ids: Iterable[str] = SUPPORTED_COINS) -> list[CoinMarketData]:
        data = await self._get({"endpoint": "markets", "ids": ",".join(coin_ids)})
        if not isinstance(data, list) or not data:
            raise UpstreamError("No data received from API")
        return [CoinMarketData.model_validate(coin) for coin in data]

    async def get_coin_detail(self, coin_id: str) -> CoinMarketData:
        coins = await self.get_market_data([coin_id])
        return coins[0]

    async def get_price_history(self, coin_id: str, days: int | str = 30) -> PriceHistory:
        data = await self._get({"endpoint": f"history/{coin_id}", "days": str(days)})
        # A rate-limited proxy may answer with another endpoint's last payload
        if not isinstance(data, dict):
            logger.warning("Unexpected price history shape for %s: %s", coin_id, type(data).__name__)
            return PriceHistory()
        return PriceHistory(
            prices=data.get("prices") or [],
            market_caps=data.get("market_caps") or [],
            total_volumes=data.get("total_volumes") or [],
        )

    async def get_simple_prices(self, coin_ids: Iterable[str] = SUPPORTED_COINS) -> dict[str, SimplePrice]:
        data = await self._get({"endpoint": "simple", "ids": ",".join(coin_ids)})
        if not isinstance(data, dict):
            logger.warning("Unexpected simple price shape: %s", type(data).__name__)
            return {}
        return {
            coin_id: SimplePrice.model_validate(values)
            for coin_id, values in data.items()
            if isinstance(values, dict)
        }

    async def get_trending_coins(self) -> list[str]:
        data = await self._get({"endpoint": "trending"})
        if not isinstance(data, dict):
            logger.warning("Unexpected trending shape: %s", type(data).__name__)
            return []
        return [
            entry["item"]["id"]
            for entry in data.get("coins") or []
            if isinstance(entry, dict) and isinstance(entry.get("item"), dict) and "id" in entry["item"]
        ]

    async def get_markets_with_risk(self, coin_ids: Iterable[str] = SUPPORTED_COINS) -> list[CoinWithRisk]:
        coins = await self.get_market_data(coin_ids)
        return [
            CoinWithRisk(
                **coin.model_dump(),
                risk_score=calculate_risk_score(
                    coin.price_change_percentage_24h,
                    coin.price_change_percentage_7d_in_currency,
                    coin.total_volume,
                    coin.market_cap,
                ),
            )
            for coin in coins
        ]
