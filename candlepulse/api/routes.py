"""
CandlePulse – API Routes (FastAPI)
====================================
Modelo de lectura REST para la capa de presentación + comandos de usuario.

Endpoints disponibles:
  GET    /api/health              → health check
  GET    /api/status              → estado del engine, worker y use case
  GET    /api/candles             → últimas N velas de la serie activa
  GET    /api/indicators          → MA 5/10/20/200, RSI 14, momentum
  GET    /api/signals/scored      → señales puntuadas BUY / SELL
  GET    /api/alerts              → alertas activas
  POST   /api/market              → cambiar mercado / granularidad
  POST   /api/backfill            → pedir velas más antiguas
  POST   /api/auto-trading/toggle → activar / desactivar trading automático
  POST   /api/scored-signals/toggle → activar / desactivar señales puntuadas
  DELETE /api/candles/latest      → eliminar la vela más reciente
  DELETE /api/alerts/oldest       → descartar la alerta más antigua
  POST   /api/orders/{direction}  → orden manual a mercado (buy / sell)
  POST   /api/trades              → inyectar un trade en el stream en memoria

Los GET nunca mutan la serie. Los handlers corren en el mismo event loop
que el MarketStreamUseCase, así que no hay accesos concurrentes al engine.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from candlepulse.core.logging import get_logger
from candlepulse.domain.entities.trade_intent import TradeDirection
from candlepulse.domain.exceptions.domain_errors import ValidationError
from candlepulse.domain.value_objects.granularity import Granularity, Market
from candlepulse.domain.value_objects.trade import TradeEvent
from candlepulse.infrastructure.trade_stream import InMemoryTradeStream

logger = get_logger("api.routes")

router = APIRouter()

# Referencias a componentes inyectados desde main.py
_engine = None
_market_stream = None
_execution_worker = None
_trade_stream = None


class MarketRequest(BaseModel):
    """Body para cambiar el mercado o la granularidad activos."""
    base: str
    quote: str = "USDT"
    granularity: str = "1d"


class TradeRequest(BaseModel):
    """Trade crudo tal como lo envía el exchange (precio y cantidad como strings)."""
    symbol: str
    price: str
    quantity: str
    timestamp_ms: int
    is_buyer: bool = False


def init_routes(engine, market_stream=None, execution_worker=None, trade_stream=None) -> None:
    """Inyectar dependencias desde main.py al arrancar."""
    global _engine, _market_stream, _execution_worker, _trade_stream
    _engine = engine
    _market_stream = market_stream
    _execution_worker = execution_worker
    _trade_stream = trade_stream


def _require_engine():
    if _engine is None:
        raise HTTPException(status_code=503, detail="Server not ready")
    return _engine


# ─── REST endpoints de estado ──────────────────────────────────────────

@router.get("/api/health")
async def health_check() -> dict:
    """Health check para monitoreo."""
    return {"status": "ok", "service": "candlepulse"}


@router.get("/api/status")
async def system_status() -> dict:
    engine = _require_engine()
    return {
        "engine": engine.status(),
        "market_stream": _market_stream.get_stats() if _market_stream else {},
        "execution_worker": _execution_worker.get_stats() if _execution_worker else {},
    }


# ─── Serie e indicadores ───────────────────────────────────────────────

@router.get("/api/candles")
async def get_candles(count: int = Query(default=200, ge=1, le=1000)) -> dict:
    """Últimas N velas de la serie activa, en orden ascendente."""
    engine = _require_engine()
    items = engine.series.items()[-count:]
    return {
        "symbol": engine.market.pair,
        "granularity": engine.granularity.value,
        "count": len(items),
        "candles": [{"timestamp": ts, **candle.to_dict()} for ts, candle in items],
    }


@router.get("/api/indicators")
async def get_indicators() -> dict:
    engine = _require_engine()
    return {
        "symbol": engine.market.pair,
        "granularity": engine.granularity.value,
        **engine.indicators.to_dict(),
    }


@router.get("/api/signals/scored")
async def get_scored_signals() -> dict:
    engine = _require_engine()
    return {
        "enabled": engine.scored_signals_enabled,
        **engine.scored_signals_view(),
    }


@router.get("/api/alerts")
async def get_alerts() -> dict:
    engine = _require_engine()
    alerts = [alert.to_dict() for alert in engine.alerts.active()]
    return {"count": len(alerts), "alerts": alerts}


# ─── Comandos ──────────────────────────────────────────────────────────

@router.post("/api/market")
async def select_market(body: MarketRequest) -> dict:
    """Cambiar mercado/granularidad; la serie se reemplaza al llegar el histórico."""
    if _market_stream is None:
        raise HTTPException(status_code=503, detail="Market stream not ready")
    try:
        granularity = Granularity.parse(body.granularity)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.to_dict())

    market = Market(base=body.base.upper(), quote=body.quote.upper())
    _market_stream.select_market(market, granularity)
    return {"requested": {**market.to_dict(), "granularity": granularity.value}}


@router.post("/api/backfill")
async def request_backfill() -> dict:
    if _market_stream is None:
        raise HTTPException(status_code=503, detail="Market stream not ready")
    started = _market_stream.request_backfill() is not None
    return {"started": started, "loading_more": _market_stream.engine.loading_more}


@router.post("/api/auto-trading/toggle")
async def toggle_auto_trading() -> dict:
    engine = _require_engine()
    return {"auto_trading_enabled": engine.toggle_auto_trading()}


@router.post("/api/scored-signals/toggle")
async def toggle_scored_signals() -> dict:
    engine = _require_engine()
    return {"scored_signals_enabled": engine.toggle_scored_signals()}


@router.delete("/api/candles/latest")
async def remove_latest_candle() -> dict:
    engine = _require_engine()
    removed: Optional[tuple] = engine.remove_latest_candle()
    if removed is None:
        raise HTTPException(status_code=404, detail="No hay velas")
    ts, candle = removed
    logger.info("Vela %d eliminada manualmente", ts)
    return {"removed": {"timestamp": ts, **candle.to_dict()}}


@router.delete("/api/alerts/oldest")
async def dismiss_alert() -> dict:
    engine = _require_engine()
    dismissed = engine.alerts.dismiss()
    if dismissed is None:
        raise HTTPException(status_code=404, detail="No hay alertas")
    return {"dismissed": dismissed.to_dict(), "remaining": len(engine.alerts)}


@router.post("/api/orders/{direction}")
async def place_order(direction: str) -> dict:
    """Orden manual a mercado; el resultado llega como alerta BUY/SELL/ERROR."""
    engine = _require_engine()
    try:
        trade_direction = TradeDirection(direction.upper())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Dirección desconocida: {direction}")

    intent = engine.place_manual_order(trade_direction)
    if intent is None:
        raise HTTPException(status_code=409, detail="Sin precio de referencia")
    return {"intent": intent.to_dict()}


@router.post("/api/trades")
async def feed_trade(body: TradeRequest) -> dict:
    """Inyectar un trade en el stream en memoria del mercado seguido."""
    if not isinstance(_trade_stream, InMemoryTradeStream):
        raise HTTPException(status_code=503, detail="Trade feed not available")
    event = TradeEvent.from_raw(
        body.symbol, body.price, body.quantity, body.timestamp_ms, body.is_buyer,
    )
    return {"accepted": _trade_stream.feed(event), "trade": event.to_dict()}
