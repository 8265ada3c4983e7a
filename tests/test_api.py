from fastapi.testclient import TestClient
import pytest

from whalewatch.core.config import Settings
from whalewatch.main import app
from whalewatch.transactions.clients.http import HttpClient
from whalewatch.transactions.config import RetryConfig
from whalewatch.transactions.controller import build_dashboard
from whalewatch.transactions.router import get_dashboard
from tests.fixtures.sample_trades import make_trade


@pytest.fixture
def dashboard(binance_stub):
    binance_stub.trades["BTCUSDT"] = [make_trade(1, 150_000), make_trade(2, 20_000)]
    binance_stub.trades["ETHUSDT"] = [make_trade(3, 640_000, price=3_200.0)]
    http = HttpClient(retry=RetryConfig(max_attempts=1, delay=0), transport=binance_stub.transport())
    return build_dashboard(Settings(_env_file=None, DATA_PROVIDER="binance"), http=http)


@pytest.fixture
def client(dashboard):
    app.dependency_overrides[get_dashboard] = lambda: dashboard
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_dashboard, None)


def test_health_endpoints():
    client = TestClient(app)
    assert client.get("/").json() == {"status": "ok"}
    body = client.get("/healthz").json()
    assert body["status"] == "healthy"
    assert "provider" in body


def test_dashboard_not_initialized():
    client = TestClient(app)
    resp = client.get("/transactions")
    assert resp.status_code == 503


def test_list_before_load_is_empty(client):
    body = client.get("/transactions").json()
    assert body["view"] == "empty"
    assert body["state"] == "idle"
    assert body["last_update_text"] == "Loading..."
    assert body["transactions"] == []


def test_refresh_then_list(client):
    resp = client.post("/transactions/refresh")
    assert resp.status_code == 200
    assert resp.json()["status"] == "loaded"
    assert resp.json()["message"] == "Loaded 2 transactions"

    body = client.get("/transactions").json()
    assert body["view"] == "transactions"
    assert body["count"] == 2
    assert [tx["id"] for tx in body["transactions"]] == ["binance_eth_3", "binance_btc_1"]
    assert body["last_update_text"] == "Last updated: just now"


def test_list_filter_and_sort(client):
    client.post("/transactions/refresh")

    body = client.get("/transactions", params={"asset": "btc", "sort": "time"}).json()

    assert body["asset"] == "btc"
    assert body["sort"] == "time"
    assert [tx["id"] for tx in body["transactions"]] == ["binance_btc_1"]


def test_list_rejects_unknown_filter_and_sort(client):
    assert client.get("/transactions", params={"asset": "doge"}).status_code == 422
    assert client.get("/transactions", params={"sort": "size"}).status_code == 422


def test_forced_refresh(client, binance_stub):
    client.post("/transactions/refresh")
    requests_after_first = len(binance_stub.requests)

    client.post("/transactions/refresh")
    assert len(binance_stub.requests) == requests_after_first

    client.post("/transactions/refresh", params={"force": "true"})
    assert len(binance_stub.requests) > requests_after_first


def test_transaction_detail_and_toggle(client):
    client.post("/transactions/refresh")

    resp = client.get("/transactions/binance_btc_1")
    assert resp.status_code == 200
    assert resp.json()["from_address"] == "Binance Buyer"

    assert client.post("/transactions/binance_btc_1/toggle").json() == {"expanded_tx_id": "binance_btc_1"}
    assert client.post("/transactions/binance_btc_1/toggle").json() == {"expanded_tx_id": None}

    assert client.get("/transactions/missing").status_code == 404
    assert client.post("/transactions/missing/toggle").status_code == 404


def test_update_view(client):
    resp = client.put("/transactions/view", json={"asset": "eth", "sort": "time"})
    assert resp.json() == {"asset": "eth", "sort": "time"}

    assert client.get("/transactions").json()["asset"] == "eth"
    assert client.put("/transactions/view", json={"asset": "doge"}).status_code == 422


def test_status_and_metrics(client):
    client.post("/transactions/refresh")

    status = client.get("/transactions/status").json()
    assert status["state"] == "loaded"
    assert status["config"]["source"] == "binance"
    assert status["last_run"]["transactions_per_asset"] == {"btc": 1, "eth": 1, "sol": 0}

    metrics = client.get("/transactions/metrics", params={"hours": 1}).json()
    assert metrics["aggregate"]["total_runs"] == 1
    assert metrics["success_rate"] == 1.0


def test_market_price_and_stats(client, binance_stub):
    price = client.get("/market/eth/price").json()
    assert price["price"] == 3200.0
    assert price["is_fallback"] is False

    stats = client.get("/market/btc/stats").json()
    assert stats["high"] == 97000.0

    assert client.get("/market/doge/price").status_code == 404

    binance_stub.status = 500
    assert client.get("/market/sol/stats").status_code == 503
    assert client.get("/market/sol/price").json()["is_fallback"] is True


def test_request_id_header():
    client = TestClient(app)
    assert client.get("/", headers={"x-request-id": "abc123"}).headers["x-request-id"] == "abc123"
    assert client.get("/healthz").headers["x-request-id"]
