"""Market-data proxy endpoint."""
from typing import Any

from fastapi import APIRouter, Depends, Query

from coincoach.integrations.coingecko import CoinGeckoProxy, get_coingecko_proxy

router = APIRouter(prefix="/crypto", tags=["market-data"])


@router.get("")
async def get_market_data(
    endpoint: str = Query(default="coins/markets", description="markets | assets | history/<coinId> | trending | simple"),
    ids: str = Query(default="", description="Comma-separated CoinGecko coin ids"),
    days: str = Query(default="30", description="History window in days"),
    proxy: CoinGeckoProxy = Depends(get_coingecko_proxy),
) -> Any:
    """
    Proxy a CoinGecko request through the shared 60s cache.

    On upstream rate limiting the last cached payload is returned with
    status 200; with nothing cached the response is 429.
    """
    return await proxy.fetch(endpoint, ids, days)
