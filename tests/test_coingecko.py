"""Tests for the CoinGecko proxy: endpoint mapping, caching and 429 fallback."""
import httpx
import pytest

from coincoach.api.v1.crypto import get_coingecko_proxy
from coincoach.core.cache import MarketDataCache
from coincoach.core.exceptions import UpstreamError, UpstreamRateLimited
from coincoach.integrations.coingecko import CoinGeckoProxy, EndpointKind, build_request, classify_endpoint

BASE = "https://api.coingecko.com/api/v3"

MARKETS = [{"id": "bitcoin", "symbol": "btc", "current_price": 67000.0}]


class Upstream:
    """Scripted CoinGecko responses, one per call."""

    def __init__(self, *responses: httpx.Response):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)


def make_proxy(upstream: Upstream, clock=None) -> CoinGeckoProxy:
    cache = MarketDataCache(ttl_seconds=60, timer=clock) if clock else MarketDataCache(ttl_seconds=60)
    return CoinGeckoProxy(cache=cache, base_url=BASE, transport=httpx.MockTransport(upstream))


class TestEndpointMapping:
    @pytest.mark.parametrize("endpoint,kind", [
        ("markets", EndpointKind.MARKETS),
        ("assets", EndpointKind.MARKETS),
        ("history/bitcoin", EndpointKind.HISTORY),
        ("trending", EndpointKind.TRENDING),
        ("simple", EndpointKind.SIMPLE),
        ("coins/markets", EndpointKind.DEFAULT),
        ("whatever", EndpointKind.DEFAULT),
    ])
    def test_classify(self, endpoint, kind):
        assert classify_endpoint(endpoint) == kind

    def test_markets_url(self):
        url = httpx.URL(make_proxy(Upstream()).build_url("markets", "bitcoin,ethereum"))

        assert url.path == "/api/v3/coins/markets"
        assert url.params["ids"] == "bitcoin,ethereum"
        assert url.params["per_page"] == "100"
        assert url.params["sparkline"] == "true"
        assert url.params["price_change_percentage"] == "24h,7d"

    def test_history_uses_path_coin(self):
        request = build_request("history/solana", "bitcoin", "7")

        assert request.path == "/coins/solana/market_chart"
        assert request.params == {"vs_currency": "usd", "days": "7"}

    def test_history_without_suffix_uses_first_id(self):
        assert build_request("history", "cardano,ripple").path == "/coins/cardano/market_chart"

    def test_trending_and_simple(self):
        assert build_request("trending").path == "/search/trending"
        simple = build_request("simple", "bitcoin")
        assert simple.path == "/simple/price"
        assert simple.params["include_24hr_change"] == "true"

    def test_unknown_endpoint_is_top_twenty(self):
        request = build_request("coins/markets")
        assert request.path == "/coins/markets"
        assert request.params["per_page"] == "20"


class TestFetch:
    @pytest.mark.asyncio
    async def test_success_is_cached(self):
        upstream = Upstream(httpx.Response(200, json=MARKETS))
        proxy = make_proxy(upstream)

        first = await proxy.fetch("markets", "bitcoin")
        second = await proxy.fetch("markets", "bitcoin")

        assert first == MARKETS
        assert second == MARKETS
        assert len(upstream.requests) == 1

    @pytest.mark.asyncio
    async def test_distinct_days_are_distinct_entries(self):
        upstream = Upstream(
            httpx.Response(200, json={"prices": [[1, 2.0]]}),
            httpx.Response(200, json={"prices": [[1, 3.0]]}),
        )
        proxy = make_proxy(upstream)

        await proxy.fetch("history/bitcoin", "", "7")
        await proxy.fetch("history/bitcoin", "", "30")

        assert len(upstream.requests) == 2

    @pytest.mark.asyncio
    async def test_expired_entry_refetches(self, clock):
        upstream = Upstream(httpx.Response(200, json=MARKETS), httpx.Response(200, json=[]))
        proxy = make_proxy(upstream, clock)

        await proxy.fetch("markets", "bitcoin")
        clock.advance(61)

        assert await proxy.fetch("markets", "bitcoin") == []
        assert len(upstream.requests) == 2

    @pytest.mark.asyncio
    async def test_rate_limited_serves_stale(self, clock):
        upstream = Upstream(httpx.Response(200, json=MARKETS), httpx.Response(429))
        proxy = make_proxy(upstream, clock)

        await proxy.fetch("markets", "bitcoin")
        clock.advance(120)

        assert await proxy.fetch("markets", "bitcoin") == MARKETS

    @pytest.mark.asyncio
    async def test_rate_limited_without_cache(self):
        proxy = make_proxy(Upstream(httpx.Response(429)))

        with pytest.raises(UpstreamRateLimited) as exc_info:
            await proxy.fetch("trending")

        assert exc_info.value.status_code == 429
        assert exc_info.value.message == "Rate limited. Please wait a moment and try again."

    @pytest.mark.asyncio
    async def test_upstream_error_status_passes_through(self):
        proxy = make_proxy(Upstream(httpx.Response(503, text="down")))

        with pytest.raises(UpstreamError) as exc_info:
            await proxy.fetch("markets")

        assert exc_info.value.status_code == 503
        assert exc_info.value.message == "CoinGecko API error: 503"

    @pytest.mark.asyncio
    async def test_network_failure(self):
        def broken(request):
            raise httpx.ConnectError("no route", request=request)

        proxy = CoinGeckoProxy(cache=MarketDataCache(), base_url=BASE, transport=httpx.MockTransport(broken))

        with pytest.raises(UpstreamError) as exc_info:
            await proxy.fetch("markets")

        assert exc_info.value.status_code == 500
        assert "Check your internet connection" in exc_info.value.message


class TestCryptoRoute:
    def test_returns_upstream_json(self, app, client):
        app.dependency_overrides[get_coingecko_proxy] = lambda: make_proxy(Upstream(httpx.Response(200, json=MARKETS)))

        response = client.get("/api/v1/crypto", params={"endpoint": "markets", "ids": "bitcoin"})

        assert response.status_code == 200
        assert response.json() == MARKETS

    def test_rate_limited_without_cache_is_429(self, app, client):
        app.dependency_overrides[get_coingecko_proxy] = lambda: make_proxy(Upstream(httpx.Response(429)))

        response = client.get("/api/v1/crypto", params={"endpoint": "trending"})

        assert response.status_code == 429
        assert response.json() == {"error": "Rate limited. Please wait a moment and try again."}

    def test_upstream_error_body(self, app, client):
        app.dependency_overrides[get_coingecko_proxy] = lambda: make_proxy(Upstream(httpx.Response(404)))

        response = client.get("/api/v1/crypto", params={"endpoint": "simple", "ids": "nope"})

        assert response.status_code == 404
        assert response.json() == {"error": "CoinGecko API error: 404"}

    def test_rate_limited_with_cache_serves_old_payload(self, app, client, clock):
        proxy = make_proxy(Upstream(httpx.Response(200, json=MARKETS), httpx.Response(429)), clock)
        app.dependency_overrides[get_coingecko_proxy] = lambda: proxy
        params = {"endpoint": "markets", "ids": "bitcoin"}

        client.get("/api/v1/crypto", params=params)
        clock.advance(120)
        response = client.get("/api/v1/crypto", params=params)

        assert response.status_code == 200
        assert response.json() == MARKETS

    def test_rate_limited_other_endpoint_serves_latest_payload(self, app, client):
        proxy = make_proxy(Upstream(httpx.Response(200, json=MARKETS), httpx.Response(429)))
        app.dependency_overrides[get_coingecko_proxy] = lambda: proxy

        client.get("/api/v1/crypto", params={"endpoint": "markets", "ids": "bitcoin"})
        response = client.get("/api/v1/crypto", params={"endpoint": "history/bitcoin"})

        assert response.status_code == 200
        assert response.json() == MARKETS
