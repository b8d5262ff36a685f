"""CoinGecko market-data proxy.

The UI never talks to CoinGecko directly. It asks for one of a few logical
endpoints and this proxy maps each to a single upstream request:

- ``markets`` / ``assets``: bulk coin list with sparkline
- ``history/<coin>``: price series over N days
- ``trending``: trending searches
- ``simple``: price and 24h change only

Anything else falls back to the top-20 market list. Responses are cached
for a short TTL; on upstream 429 the last known data is served instead.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import httpx

from coincoach.config import get_settings
from coincoach.core.cache import MarketDataCache, cache_key
from coincoach.core.exceptions import UpstreamError, UpstreamRateLimited

logger = logging.getLogger(__name__)


class EndpointKind(str, Enum):
    MARKETS = "markets"
    HISTORY = "history"
    TRENDING = "trending"
    SIMPLE = "simple"
    DEFAULT = "default"


@dataclass(frozen=True)
class UpstreamRequest:
    kind: EndpointKind
    path: str
    params: dict[str, str]


def classify_endpoint(endpoint: str) -> EndpointKind:
    if endpoint in ("markets", "assets"):
        return EndpointKind.MARKETS
    if "history" in endpoint:
        return EndpointKind.HISTORY
    if endpoint == "trending":
        return EndpointKind.TRENDING
    if endpoint == "simple":
        return EndpointKind.SIMPLE
    return EndpointKind.DEFAULT


def build_request(endpoint: str, ids: str = "", days: str = "30") -> UpstreamRequest:
    """Map a logical endpoint onto exactly one CoinGecko path and query."""
    kind = classify_endpoint(endpoint)

    if kind == EndpointKind.MARKETS:
        return UpstreamRequest(kind, "/coins/markets", {
            "vs_currency": "usd",
            "ids": ids,
            "order": "market_cap_desc",
            "per_page": "100",
            "page": "1",
            "sparkline": "true",
            "price_change_percentage": "24h,7d",
        })

    if kind == EndpointKind.HISTORY:
        # history/<coinId>, or the first of ids when no suffix is given
        parts = endpoint.split("/")
        coin_id = parts[1] if len(parts) > 1 and parts[1] else ids.split(",")[0]
        return UpstreamRequest(kind, f"/coins/{coin_id}/market_chart", {
            "vs_currency": "usd",
            "days": days,
        })

    if kind == EndpointKind.TRENDING:
        return UpstreamRequest(kind, "/search/trending", {})

    if kind == EndpointKind.SIMPLE:
        return UpstreamRequest(kind, "/simple/price", {
            "ids": ids,
            "vs_currencies": "usd",
            "include_24hr_change": "true",
        })

    return UpstreamRequest(kind, "/coins/markets", {
        "vs_currency": "usd",
        "order": "market_cap_desc",
        "per_page": "20",
        "page": "1",
        "sparkline": "true",
    })


class CoinGeckoProxy:
    """Cached, rate-limit tolerant access to the CoinGecko API."""

    def __init__(
        self,
        cache: MarketDataCache,
        base_url: str = "https://api.coingecko.com/api/v3",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.cache = cache
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def build_url(self, endpoint: str, ids: str = "", days: str = "30") -> str:
        request = build_request(endpoint, ids, days)
        return str(httpx.URL(f"{self.base_url}{request.path}", params=request.params))

    async def fetch(self, endpoint: str, ids: str = "", days: str = "30") -> Any:
        """Return upstream JSON for a logical endpoint.

        Raises:
            UpstreamRateLimited: upstream answered 429 and nothing is cached.
            UpstreamError: any other non-2xx status, or the request failed.
        """
        key = cache_key(endpoint, ids, days)

        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit: %s", key)
            return cached

        url = self.build_url(endpoint, ids, days)
        logger.info("Fetching: %s", url)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(url, headers={"Accept": "application/json"})
        except httpx.HTTPError as e:
            logger.error("API proxy error: %s", e)
            raise UpstreamError("Failed to fetch crypto data. Check your internet connection.", 500) from e

        if response.status_code == 429:
            stale = self.cache.get_stale(key)
            if stale is not None:
                logger.warning("CoinGecko rate limited, serving last known data for %s", key)
                return stale
            raise UpstreamRateLimited()

        if not response.is_success:
            logger.error("API Error: %s %s", response.status_code, response.text)
            raise UpstreamError(f"CoinGecko API error: {response.status_code}", response.status_code)

        data = response.json()
        self.cache.set(key, data)
        return data


# Singleton instance
_proxy: CoinGeckoProxy | None = None


def get_coingecko_proxy() -> CoinGeckoProxy:
    """Get or create the process-wide proxy and its cache."""
    global _proxy
    if _proxy is None:
        settings = get_settings()
        _proxy = CoinGeckoProxy(
            cache=MarketDataCache(
                ttl_seconds=settings.market_cache_ttl_seconds,
                maxsize=settings.market_cache_max_entries,
            ),
            base_url=settings.coingecko_base_url,
            timeout=settings.upstream_timeout_seconds,
        )
    return _proxy
