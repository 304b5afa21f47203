"""
CandlePulse – Market Stream Use Case
======================================
Caso de uso central: un único loop dueño del AggregationEngine que
consume TODOS los mensajes que mutan estado.

FLUJO:
  EventBus ("trade")  ──▸  inbox (asyncio.Queue acotada, drop-oldest)
  fetch histórico     ─┐
  backfill            ─┼──▸  control (deque sin límite, nunca descarta)
  ExecutionWorker     ─┘
                                            │
                         control se vacía antes de cada trade
                                            ▼
                          MarketStreamUseCase._run()
                                            │
            ├── TradeEvent       → ingest_trade + recompute + retención
            ├── MarketLoaded     → replace_series
            ├── BackfillLoaded   → complete_backfill
            ├── BackfillFailed   → fail_backfill
            └── ExecutionReport  → apply_execution_report
                                            │
                                            ▼
          EventBus.publish("alerts" | "scored_signals" | "trade_intent")

CONCURRENCIA:
- Las llamadas de red (histórico, ejecución) corren como tasks y NUNCA
  tocan el engine: responden con un mensaje vía post().
- Cada mensaje se aplica de forma síncrona y completa antes del
  siguiente, así que las lecturas de presentación ven estados consistentes.
- Con el inbox vacío el loop expira alertas cada segundo.

CONTRAPRESIÓN:
- Solo los trades pueden descartarse si el consumidor se atrasa.
- Los resultados de histórico, backfill y ejecución van por `control`,
  que nunca descarta y se aplica completo antes del siguiente trade.
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Optional, Set

from candlepulse.application.aggregation_engine import AggregationEngine, BackfillRequest
from candlepulse.application.ports.market_data_provider import ICandleHistoryProvider
from candlepulse.core.logging import get_logger
from candlepulse.domain.entities.alert import AlertType
from candlepulse.domain.entities.candle import Candlestick
from candlepulse.domain.entities.trade_intent import ExecutionReport
from candlepulse.domain.exceptions.domain_errors import HistoryFetchError
from candlepulse.domain.value_objects.granularity import Granularity, Market
from candlepulse.domain.value_objects.trade import TradeEvent
from candlepulse.infrastructure.event_bus import (
    ALERTS_TOPIC,
    SCORED_SIGNALS_TOPIC,
    SERIES_TOPIC,
    TRADE_INTENT_TOPIC,
    TRADE_TOPIC,
    EventBus,
)
from candlepulse.infrastructure.trade_stream import TradeStreamPump

logger = get_logger("market_stream")

# Marcador en el inbox: hay mensajes en `control`
_WAKE = object()

# ─── Mensajes del inbox ────────────────────────────────────────────

@dataclass(frozen=True, slots=True)
class MarketLoaded:
    market: Market
    granularity: Granularity
    candles: Dict[int, Candlestick]
    token: int


@dataclass(frozen=True, slots=True)
class MarketLoadFailed:
    market: Market
    granularity: Granularity
    error: Exception
    token: int


@dataclass(frozen=True, slots=True)
class BackfillLoaded:
    request: BackfillRequest
    candles: Dict[int, Candlestick]


@dataclass(frozen=True, slots=True)
class BackfillFailed:
    request: BackfillRequest
    error: Exception


class MarketStreamUseCase:
    """Loop único que aplica trades, históricos y reportes al engine."""

    def __init__(
        self,
        engine: AggregationEngine,
        event_bus: EventBus,
        history: ICandleHistoryProvider,
        inbox_size: int = 10_000,
        trade_stream: Optional[TradeStreamPump] = None,
    ) -> None:
        self._engine = engine
        self._event_bus = event_bus
        self._history = history
        self._trade_stream = trade_stream
        # Trades del EventBus (acotada, drop-oldest)
        self.inbox: asyncio.Queue = asyncio.Queue(maxsize=inbox_size)
        # Resultados de colaboradores (sin límite)
        self.control: Deque[object] = deque()
        self._running = False
        self._processed_count = 0
        self._load_token = 0
        self._tasks: Set[asyncio.Task] = set()

    @property
    def engine(self) -> AggregationEngine:
        return self._engine

    # ════════════════════════════════════════════════════════════════
    #  CICLO DE VIDA
    # ════════════════════════════════════════════════════════════════

    async def start(self) -> None:
        """Suscribir el inbox al tópico de trades y lanzar el loop."""
        self._event_bus.attach(TRADE_TOPIC, "market_stream_usecase", self.inbox)
        self._running = True
        logger.info("MarketStreamUseCase iniciado, consumiendo tópico '%s'", TRADE_TOPIC)
        await self._run()

    async def stop(self) -> None:
        self._running = False
        for task in list(self._tasks):
            task.cancel()
        if self._trade_stream is not None:
            await self._trade_stream.stop()
        logger.info(
            "MarketStreamUseCase detenido. Mensajes procesados: %d", self._processed_count,
        )

    def post(self, message: object) -> None:
        """
        Entregar un resultado de colaborador (histórico, backfill, reporte).

        Va a `control`, que nunca descarta. Un marcador en el inbox
        despierta al loop; si el inbox está lleno el loop ya tiene trabajo
        y vacía `control` antes del siguiente trade.
        """
        self.control.append(message)
        try:
            self.inbox.put_nowait(_WAKE)
        except asyncio.QueueFull:
            pass

    def process_pending(self) -> int:
        """Aplicar todo lo pendiente sin esperar. Retorna mensajes aplicados."""
        applied = self._apply_control()
        while not self.inbox.empty():
            applied += self._apply(self.inbox.get_nowait())
        return applied

    async def _run(self) -> None:
        while self._running:
            try:
                try:
                    message = await asyncio.wait_for(self.inbox.get(), timeout=1.0)
                except asyncio.TimeoutError:
                    self._apply_control()
                    self._engine.expire_alerts()
                    continue

                self._apply(message)

            except asyncio.CancelledError:
                logger.info("MarketStreamUseCase cancelado")
                break
            except Exception as e:
                logger.error("Error procesando mensaje: %s", e, exc_info=True)
                continue

    def _apply(self, message: object) -> int:
        applied = self._apply_control()
        if message is _WAKE:
            return applied
        self.handle(message)
        self._processed_count += 1
        return applied + 1

    def _apply_control(self) -> int:
        applied = 0
        while self.control:
            self.handle(self.control.popleft())
            self._processed_count += 1
            applied += 1
        return applied

    # ════════════════════════════════════════════════════════════════
    #  DESPACHO DE MENSAJES
    # ════════════════════════════════════════════════════════════════

    def handle(self, message: object) -> None:
        """Aplicar un mensaje al engine y publicar los cambios visibles."""
        pushed_before = self._engine.alerts.pushed_count

        if isinstance(message, TradeEvent):
            self._on_trade(message)
        elif isinstance(message, ExecutionReport):
            self._engine.apply_execution_report(message)
        elif isinstance(message, MarketLoaded):
            self._on_market_loaded(message)
        elif isinstance(message, MarketLoadFailed):
            if message.token == self._load_token:
                logger.warning(
                    "Carga de %s %s fallida: %s",
                    message.market.pair, message.granularity.label, message.error,
                )
                self._engine.alerts.push(
                    f"Error al cargar {message.market.pair}: {message.error}", AlertType.ERROR,
                )
        elif isinstance(message, BackfillLoaded):
            self._engine.complete_backfill(message.candles, message.request.generation)
            self._publish_series()
        elif isinstance(message, BackfillFailed):
            self._engine.fail_backfill(message.error, message.request.generation)
        else:
            logger.warning("Mensaje desconocido en inbox: %r", message)

        self._engine.expire_alerts()
        if self._engine.alerts.pushed_count != pushed_before:
            self._event_bus.publish(
                ALERTS_TOPIC, [alert.to_dict() for alert in self._engine.alerts.active()],
            )

    def _on_trade(self, event: TradeEvent) -> None:
        if not self._engine.ingest_trade(event):
            return
        intents = self._engine.recompute(is_realtime=True)
        self._engine.enforce_retention()

        for intent in intents:
            self._event_bus.publish(TRADE_INTENT_TOPIC, intent.to_dict())

        latest = self._engine.series.latest_timestamp()
        buy = self._engine.buy_scores.get(latest)
        sell = self._engine.sell_scores.get(latest)
        if buy is not None or sell is not None:
            self._event_bus.publish(SCORED_SIGNALS_TOPIC, {
                "timestamp": latest,
                "buy": buy.to_dict() if buy is not None else None,
                "sell": sell.to_dict() if sell is not None else None,
            })

    def _on_market_loaded(self, message: MarketLoaded) -> None:
        if message.token != self._load_token:
            logger.info(
                "Carga obsoleta de %s %s descartada",
                message.market.pair, message.granularity.label,
            )
            return
        self._engine.replace_series(message.market, message.granularity, message.candles)
        self._publish_series()

    def _publish_series(self) -> None:
        self._event_bus.publish(SERIES_TOPIC, self._engine.status())

    # ════════════════════════════════════════════════════════════════
    #  PETICIONES AL HISTÓRICO
    # ════════════════════════════════════════════════════════════════

    def select_market(self, market: Market, granularity: Granularity) -> asyncio.Task:
        """Pedir la serie reciente de un mercado; se aplica al llegar."""
        self._load_token += 1
        token = self._load_token
        logger.info("Seleccionando %s %s", market.pair, granularity.label)
        if self._trade_stream is not None:
            self._trade_stream.follow(market)
        return self._spawn(self._load_market(market, granularity, token))

    def request_backfill(self) -> Optional[asyncio.Task]:
        """Pedir velas más antiguas. None si ya hay un backfill en vuelo."""
        request = self._engine.begin_backfill()
        if request is None:
            return None
        logger.info(
            "Backfill de %s %s antes de ts=%d",
            request.market.pair, request.granularity.label, request.before_ms,
        )
        return self._spawn(self._load_backfill(request))

    async def _load_market(self, market: Market, granularity: Granularity, token: int) -> None:
        try:
            candles = await self._history.fetch_candles(market, granularity)
        except HistoryFetchError as e:
            self.post(MarketLoadFailed(market, granularity, e, token))
            return
        except Exception as e:
            logger.error("Error inesperado cargando %s: %s", market.pair, e, exc_info=True)
            self.post(MarketLoadFailed(market, granularity, e, token))
            return
        self.post(MarketLoaded(market, granularity, candles, token))

    async def _load_backfill(self, request: BackfillRequest) -> None:
        try:
            candles = await self._history.fetch_candles(
                request.market, request.granularity, before_ms=request.before_ms,
            )
        except HistoryFetchError as e:
            self.post(BackfillFailed(request, e))
            return
        except Exception as e:
            logger.error("Error inesperado en backfill: %s", e, exc_info=True)
            self.post(BackfillFailed(request, e))
            return
        self.post(BackfillLoaded(request, candles))

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def get_stats(self) -> dict:
        return {
            "running": self._running,
            "processed": self._processed_count,
            "inbox": self.inbox.qsize(),
            "control": len(self.control),
            "pending_fetches": len(self._tasks),
        }
