"""
API route tests: read model endpoints, user commands and manual orders.
"""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from candlepulse.api import routes
from candlepulse.application.aggregation_engine import AggregationEngine
from candlepulse.application.market_stream_usecase import MarketStreamUseCase
from candlepulse.core.settings import Settings
from candlepulse.domain.entities.candle import Candlestick
from candlepulse.domain.value_objects.granularity import Granularity, Market
from candlepulse.infrastructure.event_bus import EventBus
from candlepulse.infrastructure.history_provider import InMemoryHistoryProvider
from candlepulse.infrastructure.trade_stream import InMemoryTradeStream

W = 60_000
T0 = 28_333_333 * W


@pytest.fixture
def dispatched():
    return []


@pytest.fixture
def engine(clock, dispatched):
    engine = AggregationEngine(
        cfg=Settings(default_granularity="1m"),
        dispatch=dispatched.append,
        market=Market("BTC"),
        granularity=Granularity.MINUTE_1,
        clock=clock,
    )
    candles = {
        T0 + i * W: Candlestick(100.0 + i, 101.0 + i, 99.0 + i, 100.5 + i, 1.0)
        for i in range(30)
    }
    engine.replace_series(Market("BTC"), Granularity.MINUTE_1, candles)
    return engine


@pytest.fixture
def client(engine):
    usecase = MarketStreamUseCase(engine, EventBus(), InMemoryHistoryProvider())
    routes.init_routes(engine, market_stream=usecase)
    app = FastAPI()
    app.include_router(routes.router)
    yield TestClient(app)
    routes.init_routes(None)


# ──────────────────────────────────────────────
# Read model
# ──────────────────────────────────────────────

class TestReadRoutes:

    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    def test_status(self, client):
        data = client.get("/api/status").json()
        assert data["engine"]["candles"] == 30
        assert data["engine"]["market"]["pair"] == "BTCUSDT"
        assert data["engine"]["loading_more"] is False

    def test_candles_latest_window(self, client):
        data = client.get("/api/candles", params={"count": 5}).json()
        assert data["count"] == 5
        timestamps = [c["timestamp"] for c in data["candles"]]
        assert timestamps == sorted(timestamps)
        assert timestamps[-1] == T0 + 29 * W

    def test_indicators(self, client):
        data = client.get("/api/indicators").json()
        assert set(data["moving_averages"]) == {"ma5", "ma10", "ma20", "ma200"}
        assert data["moving_averages"]["ma200"] == {}
        assert len(data["rsi"]) == 30 - 14

    def test_scored_signals(self, client):
        data = client.get("/api/signals/scored").json()
        assert data["enabled"] is True
        assert data["buy"] == {} and data["sell"] == {}

    def test_reads_do_not_mutate(self, client, engine):
        before = engine.series.to_dict()
        for path in ("/api/status", "/api/candles", "/api/indicators", "/api/alerts"):
            client.get(path)
        assert engine.series.to_dict() == before

    def test_not_ready(self):
        routes.init_routes(None)
        app = FastAPI()
        app.include_router(routes.router)
        assert TestClient(app).get("/api/status").status_code == 503


# ──────────────────────────────────────────────
# Commands
# ──────────────────────────────────────────────

class TestCommandRoutes:

    def test_toggle_auto_trading_posts_alert(self, client):
        assert client.post("/api/auto-trading/toggle").json() == {"auto_trading_enabled": True}
        alerts = client.get("/api/alerts").json()
        assert alerts["count"] == 1
        assert alerts["alerts"][0]["alert_type"] == "INFO"

    def test_toggle_scored_signals(self, client):
        resp = client.post("/api/scored-signals/toggle")
        assert resp.json() == {"scored_signals_enabled": False}

    def test_backfill_guard(self, client):
        first = client.post("/api/backfill").json()
        second = client.post("/api/backfill").json()
        assert first["started"] is True
        assert second["started"] is False
        assert second["loading_more"] is True

    def test_select_market_rejects_unknown_granularity(self, client):
        resp = client.post("/api/market", json={"base": "eth", "granularity": "5m"})
        assert resp.status_code == 400
        assert resp.json()["detail"]["error"] == "VALIDATION_ERROR"

    def test_select_market_accepts_label(self, client):
        resp = client.post("/api/market", json={"base": "eth", "granularity": "3Minute"})
        assert resp.status_code == 200
        assert resp.json()["requested"]["pair"] == "ETHUSDT"
        assert resp.json()["requested"]["granularity"] == "3m"

    def test_remove_latest_candle(self, client, engine):
        resp = client.delete("/api/candles/latest")
        assert resp.status_code == 200
        assert resp.json()["removed"]["timestamp"] == T0 + 29 * W
        assert len(engine.series) == 29

    def test_dismiss_oldest_alert(self, client):
        client.post("/api/auto-trading/toggle")
        client.post("/api/auto-trading/toggle")
        resp = client.delete("/api/alerts/oldest")
        assert resp.status_code == 200
        assert resp.json()["dismissed"]["message"] == "Trading automático activado"
        assert resp.json()["remaining"] == 1
        client.delete("/api/alerts/oldest")
        assert client.delete("/api/alerts/oldest").status_code == 404

    def test_feed_trade_requires_trade_stream(self, client):
        body = {"symbol": "BTCUSDT", "price": "130", "quantity": "0.1", "timestamp_ms": T0 + 30 * W}
        assert client.post("/api/trades", json=body).status_code == 503

    def test_feed_trade_without_listener(self, engine):
        routes.init_routes(engine, trade_stream=InMemoryTradeStream())
        app = FastAPI()
        app.include_router(routes.router)
        body = {"symbol": "BTCUSDT", "price": "abc", "quantity": "0.1", "timestamp_ms": T0}
        data = TestClient(app).post("/api/trades", json=body).json()
        routes.init_routes(None)
        assert data["accepted"] is False
        assert data["trade"]["price"] == 0.0


# ──────────────────────────────────────────────
# Manual orders
# ──────────────────────────────────────────────

class TestManualOrders:

    def test_buy_at_latest_close(self, client, dispatched):
        resp = client.post("/api/orders/buy")
        assert resp.status_code == 200
        intent = resp.json()["intent"]
        assert intent["direction"] == "BUY"
        assert intent["symbol"] == "BTCUSDT"
        assert intent["price"] == 129.5
        assert intent["timestamp"] == T0 + 29 * W
        assert [i.id for i in dispatched] == [intent["id"]]

    def test_manual_orders_bypass_gate(self, client, engine, dispatched):
        assert engine.gate.auto_trading_enabled is False
        client.post("/api/orders/sell")
        client.post("/api/orders/SELL")
        assert len(dispatched) == 2
        assert engine.gate.last_trade_time is None

    def test_uses_last_trade_price(self, client, engine, dispatched):
        engine.ingest(T0 + 29 * W + 1_000, 131.25, 0.5)
        engine.recompute()
        assert client.post("/api/orders/buy").json()["intent"]["price"] == 131.25

    def test_unknown_direction(self, client):
        assert client.post("/api/orders/hold").status_code == 400

    def test_empty_series(self, client, engine, dispatched):
        engine.replace_series(Market("BTC"), Granularity.MINUTE_1, {})
        assert client.post("/api/orders/buy").status_code == 409
        assert dispatched == []


# ──────────────────────────────────────────────
# Application wiring
# ──────────────────────────────────────────────

class TestApplicationLifespan:

    def test_app_starts_and_stops(self):
        from candlepulse.main import app

        with TestClient(app) as lifespan_client:
            assert lifespan_client.get("/api/health").status_code == 200
            status = lifespan_client.get("/api/status").json()
            assert status["execution_worker"]["running"] is True
            assert status["engine"]["market"]["pair"] == "BTCUSDT"
        routes.init_routes(None)
