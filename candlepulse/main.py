"""
CandlePulse – Main Application Entry Point
============================================
Orquesta los componentes: Event Bus + Aggregation Engine + Market Stream
Use Case + Execution Worker + API REST.

ARQUITECTURA DE ARRANQUE:
  1. Configurar logging
  2. Crear instancias desde el Container
  3. FastAPI lifespan (startup):
     a. Inyectar dependencias en el router
     b. Iniciar ExecutionWorker
     c. Iniciar MarketStreamUseCase (inbox de trades + control: históricos, reportes)
     d. Pedir la serie inicial del mercado por defecto y abrir su stream de trades
  4. FastAPI lifespan (shutdown): detener todo en orden inverso

FLUJO DE DATOS:
  ITradeStreamProvider → TradeStreamPump → EventBus(trade) → MarketStreamUseCase
       → AggregationEngine → CandlestickSeries → IndicatorState → PatternScorer
       → SignalGate → ExecutionWorker → ExecutionReport → control
  uvicorn candlepulse.main:app --host 0.0.0.0 --port 8888
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from candlepulse.api.routes import init_routes, router
from candlepulse.container import get_container
from candlepulse.core.logging import get_logger, setup_logging
from candlepulse.core.settings import settings
from candlepulse.domain.value_objects.granularity import Granularity, Market

# ─── Logging ────────────────────────────────────────────────────────────
setup_logging(logging.DEBUG if settings.debug else logging.INFO)
logger = get_logger("main")

container = get_container()

# Task references para lifecycle
_background_tasks: list[asyncio.Task] = []


# ─── FastAPI Lifespan ───────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle de la aplicación."""
    cfg = container.settings
    logger.info("=" * 60)
    logger.info("  CandlePulse")
    logger.info("  Mercado: %s%s  Granularidad: %s",
                cfg.base_asset, cfg.quote_asset, cfg.default_granularity)
    logger.info("  Buffer máximo: %d velas", cfg.max_candles)
    logger.info("  Indicadores: MA 5/10/20/200, RSI 14, momentum con filtro de volumen")
    logger.info("  Scores: publicar ≥%.0f, alertar ≥%.0f, cooldown %.0fs",
                cfg.score_publish_threshold, cfg.score_alert_threshold,
                cfg.trade_cooldown_seconds)
    logger.info("  Trading automático: %s",
                "activo" if cfg.auto_trading_enabled else "inactivo")
    logger.info("=" * 60)

    init_routes(
        container.engine,
        market_stream=container.market_stream,
        execution_worker=container.execution_worker,
        trade_stream=container.trade_stream,
    )

    await container.execution_worker.start()

    stream_task = asyncio.create_task(
        container.market_stream.start(), name="market-stream-usecase"
    )
    _background_tasks.append(stream_task)

    container.market_stream.select_market(
        Market(cfg.base_asset, cfg.quote_asset),
        Granularity.parse(cfg.default_granularity),
    )

    logger.info("✓ Todos los componentes iniciados correctamente")

    yield  # ← La app está corriendo aquí

    # ── SHUTDOWN ──
    logger.info("Iniciando shutdown...")
    await container.market_stream.stop()
    await container.execution_worker.stop()

    for task in _background_tasks:
        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
    _background_tasks.clear()

    container.event_bus.unsubscribe_all()
    logger.info("✓ Shutdown completo")


# ─── FastAPI App ────────────────────────────────────────────────────────

app = FastAPI(
    title="CandlePulse",
    description="Agregación de velas en tiempo real, indicadores técnicos y scoring de patrones",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)
