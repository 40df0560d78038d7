import json

import httpx
import pytest
from fastapi.testclient import TestClient

from quotedesk.config.settings import ProviderSettings, Settings, settings
from quotedesk.main import create_app
from quotedesk.runtime import build_services, get_services

HTML = '<script>{"PE_RATIO": "31.2", "FIFTY_TWO_WK_LOW": "900"}</script>'


class Upstream:
    """Routes requests by host the way the real upstreams would answer them."""

    def __init__(self) -> None:
        self.yahoo_prices: dict[str, float] = {"INFY.NS": 1500.0, "TCS.NS": 3900.0}
        self.alpha_prices: dict[str, str] = {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        if host == "yahoo.test":
            symbol = request.url.path.rsplit("/", 1)[-1]
            if "range" in request.url.params:
                return httpx.Response(
                    200,
                    json={
                        "chart": {
                            "result": [
                                {
                                    "timestamp": [1735776000],
                                    "indicators": {
                                        "quote": [
                                            {"open": [1.0], "high": [2.0], "low": [0.5], "close": [1.5], "volume": [42]}
                                        ]
                                    },
                                }
                            ],
                            "error": None,
                        }
                    },
                )
            if symbol not in self.yahoo_prices:
                return httpx.Response(404, json={"chart": {"result": None, "error": {"description": "Not Found"}}})
            return httpx.Response(
                200,
                json={"chart": {"result": [{"meta": {"regularMarketPrice": self.yahoo_prices[symbol], "currency": "INR"}}], "error": None}},
            )
        if host == "av.test":
            symbol = request.url.params["symbol"]
            if symbol not in self.alpha_prices:
                return httpx.Response(200, json={"Global Quote": {}})
            return httpx.Response(200, json={"Global Quote": {"05. price": self.alpha_prices[symbol]}})
        if host == "gf.test":
            return httpx.Response(200, text=HTML)
        return httpx.Response(500)


@pytest.fixture
def upstream() -> Upstream:
    return Upstream()


@pytest.fixture
def client(upstream, tmp_path, monkeypatch):
    holdings = [
        {"stockName": "Infosys", "exchangeCode": "INFY", "sector": "Technology", "quantity": 2, "purchasePrice": 1000.0},
        {"stockName": "Unknown", "exchangeCode": "UNKN", "sector": "Energy", "quantity": 1, "purchasePrice": 10.0},
    ]
    holdings_path = tmp_path / "portfolio.json"
    holdings_path.write_text(json.dumps(holdings), encoding="utf-8")
    monkeypatch.setattr(settings, "holdings_path", str(holdings_path))

    config = Settings(
        retry_max_attempts=2,
        retry_base_delay_seconds=0,
        providers=ProviderSettings(
            yahoo_base_url="https://yahoo.test",
            yahoo_min_interval_seconds=0,
            alpha_vantage_base_url="https://av.test",
            alpha_vantage_api_key="test-key",
            alpha_vantage_min_interval_seconds=0,
            google_finance_base_url="https://gf.test/finance",
        ),
    )
    services = build_services(config, http=httpx.AsyncClient(transport=httpx.MockTransport(upstream)))
    app = create_app()
    app.dependency_overrides[get_services] = lambda: services
    return TestClient(app)


def test_health(client) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_quote_live_then_cached(client, upstream) -> None:
    first = client.get("/quote", params={"symbol": "infy.ns"})
    second = client.get("/quote", params={"symbol": "INFY.NS"})

    assert first.status_code == 200
    body = first.json()
    assert body["price"] == 1500.0
    assert body["currency"] == "INR"
    assert body["source"] == "primary"
    assert body["cached"] is False
    assert "lastUpdated" in body
    assert second.json()["cached"] is True
    assert second.json()["source"] == "cache"
    assert len(upstream.requests) == 1


def test_quote_cache_flag_forces_live_fetch(client, upstream) -> None:
    client.get("/quote", params={"symbol": "INFY.NS"})
    response = client.get("/quote", params={"symbol": "INFY.NS", "cache": "false"})

    assert response.json()["cached"] is False
    assert len(upstream.requests) == 2


def test_quote_falls_back_to_secondary(client, upstream) -> None:
    upstream.alpha_prices["ACME"] = "101.5000"

    response = client.get("/quote", params={"symbol": "ACME"})

    assert response.status_code == 200
    assert response.json()["price"] == 101.5
    assert response.json()["source"] == "secondary"
    assert response.json()["warning"]


def test_quote_total_failure_is_503(client) -> None:
    response = client.get("/quote", params={"symbol": "XYZ"})

    assert response.status_code == 503
    body = response.json()
    assert body["symbol"] == "XYZ"
    assert body["error"]
    assert body["details"]


def test_missing_symbol_is_400_without_upstream_calls(client, upstream) -> None:
    for path in ("/quote", "/historical", "/fundamentals"):
        assert client.get(path).status_code == 400
        assert client.get(path, params={"symbol": "  "}).status_code == 400
    assert upstream.requests == []


def test_historical_endpoint(client) -> None:
    response = client.get("/historical", params={"symbol": "TCS.NS", "range": "1mo"})
    repeat = client.get("/historical", params={"symbol": "TCS.NS", "range": "1mo"})

    assert response.status_code == 200
    assert response.json()["data"] == [
        {"date": "2025-01-02", "open": 1.0, "high": 2.0, "low": 0.5, "close": 1.5, "volume": 42}
    ]
    assert response.json()["cached"] is False
    assert repeat.json()["cached"] is True


def test_historical_rejects_unknown_range(client) -> None:
    assert client.get("/historical", params={"symbol": "TCS.NS", "range": "2w"}).status_code == 400


def test_fundamentals_endpoint(client) -> None:
    response = client.get("/fundamentals", params={"symbol": "INFY"})

    assert response.status_code == 200
    assert response.json() == {
        "peRatio": 31.2,
        "eps": None,
        "marketCap": None,
        "dividendYield": None,
        "yearHigh": None,
        "yearLow": 900.0,
    }


def test_portfolio_and_overview(client) -> None:
    holdings = client.get("/portfolio")
    overview = client.get("/portfolio/overview")

    assert holdings.status_code == 200
    assert holdings.json()[0]["exchangeCode"] == "INFY"
    body = overview.json()
    assert body["holdings"][0]["currentPrice"] == 1500.0
    assert body["holdings"][0]["gainLoss"] == 1000.0
    assert body["holdings"][1]["error"]
    assert body["failedSymbols"] == ["UNKN.NS"]


def test_portfolio_read_failure_is_structured(client, monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(settings, "holdings_path", str(tmp_path / "missing.json"))

    response = client.get("/portfolio")

    assert response.status_code == 500
    assert response.json()["error"] == "HOLDINGS_ERROR"


def test_cache_stats_and_clear(client) -> None:
    client.get("/quote", params={"symbol": "INFY.NS"})

    assert client.get("/cache/stats").json() == {"size": 1, "keys": ["price:INFY.NS"]}
    assert client.delete("/cache").status_code == 204
    assert client.get("/cache/stats").json()["size"] == 0


def test_lifespan_builds_and_closes_services() -> None:
    app = create_app()

    with TestClient(app) as lifespan_client:
        services = app.state.services
        assert lifespan_client.get("/cache/stats").json() == {"size": 0, "keys": []}

    assert services.http.is_closed
