"""
CandlePulse – Aggregation Engine
=================================
Dueño explícito de TODO el estado mutable: serie de velas, caché de
indicadores, mapas de señales puntuadas, gate de trading y alertas.

FLUJO (un trade del stream):
  TradeEvent
     │
     ├── ingest_trade(event)      → filtro de símbolo + bucket OHLCV
     ├── recompute(is_realtime)   → indicadores y scores desde la
     │                              posición más antigua modificada
     │       │
     │       └── última vela:
     │             ├── alertas BUY/SELL (score ≥ 85)
     │             ├── momentum fuerte (> 0.7, solo en vivo) → log
     │             └── SignalGate.try_trade(...)  → TradeIntent
     │                   orden: score BUY, score SELL,
     │                          momentum BUY, momentum SELL
     └── enforce_retention()      → capacidad máxima (salvo backfill)

CONCURRENCIA:
- Un único hilo lógico (la coroutine de MarketStreamUseCase) muta este
  objeto. Los colaboradores externos (histórico, ejecución) responden
  con mensajes que se aplican aquí: complete_backfill / fail_backfill /
  apply_execution_report.
- snapshot() y las vistas de lectura no mutan la serie.

BACKFILL:
- loading_more garantiza una sola petición en vuelo, sin reintentos.
- Cada replace_series incrementa `generation`: una respuesta de
  histórico de un mercado/granularidad anterior se descarta.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from candlepulse.core.logging import get_logger
from candlepulse.core.settings import Settings, settings as default_settings
from candlepulse.domain.entities.alert import AlertType
from candlepulse.domain.entities.candle import Candlestick
from candlepulse.domain.entities.signal_scoring import SignalScoring
from candlepulse.domain.entities.trade_intent import (
    ExecutionReport,
    TradeDirection,
    TradeIntent,
)
from candlepulse.domain.value_objects.granularity import Granularity, Market
from candlepulse.domain.value_objects.trade import TradeEvent
from candlepulse.services.candle_series import FULL_RECOMPUTE, CandlestickSeries
from candlepulse.services.indicator_service import MomentumParams
from candlepulse.services.pattern_scorer import score_signals
from candlepulse.services.signal_gate import Dispatch, SignalGate
from candlepulse.state.alert_state import AlertQueue
from candlepulse.state.indicator_state import IndicatorState, truncate_from

logger = get_logger("aggregation_engine")


@dataclass(frozen=True, slots=True)
class BackfillRequest:
    """Petición de velas más antiguas que `before_ms` para la serie activa."""

    market: Market
    granularity: Granularity
    before_ms: int
    generation: int


class AggregationEngine:
    """
    Agregación de trades en velas + indicadores + scores + gate.

    Uso:
        engine = AggregationEngine(dispatch=worker.submit)
        if engine.ingest_trade(event):
            intents = engine.recompute()
    """

    def __init__(
        self,
        cfg: Optional[Settings] = None,
        dispatch: Optional[Dispatch] = None,
        market: Optional[Market] = None,
        granularity: Optional[Granularity] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cfg = cfg or default_settings
        self.market = market or Market(self._cfg.base_asset, self._cfg.quote_asset)
        self.granularity = granularity or Granularity.parse(self._cfg.default_granularity)

        self.series = CandlestickSeries()
        self.indicators = IndicatorState(
            MomentumParams.for_granularity(self.granularity, self._cfg),
        )
        self.buy_scores: Dict[int, SignalScoring] = {}
        self.sell_scores: Dict[int, SignalScoring] = {}
        self.scored_signals_enabled = self._cfg.scored_signals_enabled

        self.alerts = AlertQueue(
            max_items=self._cfg.alert_max_items,
            ttl_seconds=self._cfg.alert_ttl_seconds,
            clock=clock,
        )
        self.gate = SignalGate(
            dispatch=dispatch or self._dispatch_unavailable,
            symbol=self.market.pair,
            alert_threshold=self._cfg.score_alert_threshold,
            cooldown_seconds=self._cfg.trade_cooldown_seconds,
            trade_amount=self._cfg.trade_amount,
            auto_trading_enabled=self._cfg.auto_trading_enabled,
            clock=clock,
        )

        self.loading_more = False
        self.generation = 0
        self.last_price: Optional[float] = None

    @property
    def config(self) -> Settings:
        return self._cfg

    # ════════════════════════════════════════════════════════════════
    #  INGESTA
    # ════════════════════════════════════════════════════════════════

    def ingest(self, timestamp_ms: int, price: float, volume: float) -> int:
        """Aplicar un trade a la serie activa. Retorna la clave del bucket."""
        self.last_price = price
        return self.series.ingest(timestamp_ms, price, volume, self.granularity)

    def ingest_trade(self, event: TradeEvent) -> bool:
        """Filtrar por símbolo del mercado activo e ingerir. True si se aplicó."""
        if event.symbol.upper() != self.market.pair:
            logger.debug(
                "Trade de %s ignorado (mercado activo %s)", event.symbol, self.market.pair,
            )
            return False
        self.ingest(event.timestamp_ms, event.price, event.quantity)
        return True

    def remove_latest_candle(self) -> Optional[Tuple[int, Candlestick]]:
        removed = self.series.pop_latest()
        if removed is not None:
            self._recompute(evaluate=False)
        return removed

    # ════════════════════════════════════════════════════════════════
    #  RECÁLCULO
    # ════════════════════════════════════════════════════════════════

    def recompute(self, is_realtime: bool = True) -> List[TradeIntent]:
        """
        Recalcular indicadores y scores desde la posición más antigua
        modificada y evaluar la última vela. Retorna las órdenes despachadas.
        """
        return self._recompute(evaluate=True, is_realtime=is_realtime)

    def _recompute(self, evaluate: bool, is_realtime: bool = False) -> List[TradeIntent]:
        if not self.series.is_dirty:
            return []

        data = self.series.items()
        dirty_since = self.series.dirty_since
        start = 0 if dirty_since == FULL_RECOMPUTE else self.series.position_of(dirty_since)

        self.indicators.recompute(data, start)
        if self.scored_signals_enabled:
            self._rescore(data, start)
        self.series.mark_clean()

        if not evaluate or not data:
            return []
        return self._evaluate_latest(data, is_realtime)

    def _rescore(self, data, start: int) -> None:
        truncate_from(self.buy_scores, data, start)
        truncate_from(self.sell_scores, data, start)
        buy, sell = score_signals(
            data,
            start=start,
            window=self._cfg.pattern_window,
            publish_threshold=self._cfg.score_publish_threshold,
        )
        self.buy_scores.update(buy)
        self.sell_scores.update(sell)

    def _evaluate_latest(self, data, is_realtime: bool) -> List[TradeIntent]:
        latest_ts, latest = data[-1]
        buy_score = self.buy_scores.get(latest_ts)
        sell_score = self.sell_scores.get(latest_ts)

        if self.scored_signals_enabled:
            for alert in self.gate.evaluate(latest_ts, buy_score, sell_score):
                self.alerts.add(alert)

        candidates: List[Tuple[TradeDirection, float]] = []
        threshold = self.gate.alert_threshold
        if buy_score is not None and buy_score.total_score >= threshold:
            candidates.append((TradeDirection.BUY, buy_score.total_score / 100.0))
        if sell_score is not None and sell_score.total_score >= threshold:
            candidates.append((TradeDirection.SELL, sell_score.total_score / 100.0))

        if is_realtime:
            strong = self._cfg.strong_momentum_strength
            buy_strength = self.indicators.momentum_buy.get(latest_ts)
            if buy_strength is not None and buy_strength > strong:
                logger.info("Momentum BUY fuerte en ts=%d (fuerza=%.2f)", latest_ts, buy_strength)
                candidates.append((TradeDirection.BUY, buy_strength))
            sell_strength = self.indicators.momentum_sell.get(latest_ts)
            if sell_strength is not None and sell_strength > strong:
                logger.info("Momentum SELL fuerte en ts=%d (fuerza=%.2f)", latest_ts, sell_strength)
                candidates.append((TradeDirection.SELL, sell_strength))

        if not candidates:
            return []

        snapshot = self.indicators.trade_indicators(latest_ts)
        intents: List[TradeIntent] = []
        for direction, strength in candidates:
            intent = self.gate.try_trade(direction, latest.close, strength, latest_ts, snapshot)
            if intent is not None:
                intents.append(intent)
        return intents

    def enforce_retention(self) -> int:
        """Aplicar la capacidad máxima salvo con un backfill en vuelo."""
        if self.loading_more:
            return 0
        evicted = self.series.evict_oldest_if_over_capacity(self._cfg.max_candles)
        if evicted:
            logger.debug("Retención: %d velas antiguas descartadas", evicted)
            self._recompute(evaluate=False)
        return evicted

    # ════════════════════════════════════════════════════════════════
    #  MERCADO / BACKFILL
    # ════════════════════════════════════════════════════════════════

    def replace_series(
        self,
        market: Market,
        granularity: Granularity,
        candles: Mapping[int, Candlestick],
    ) -> None:
        """Cambio de mercado o granularidad: reemplazo total de la serie."""
        self.market = market
        self.granularity = granularity
        self.gate.symbol = market.pair
        self.generation += 1
        self.loading_more = False

        self.indicators.set_params(MomentumParams.for_granularity(granularity, self._cfg))
        self.buy_scores.clear()
        self.sell_scores.clear()
        self.series.replace(candles)
        self.last_price = None
        self._recompute(evaluate=False)

        logger.info(
            "Serie activa: %s %s (%d velas, generación %d)",
            market.pair, granularity.label, len(self.series), self.generation,
        )

    def begin_backfill(self) -> Optional[BackfillRequest]:
        """Reservar el slot de backfill. None si ya hay uno en vuelo o no hay velas."""
        if self.loading_more:
            logger.debug("Backfill ignorado: ya hay una petición en vuelo")
            return None
        oldest = self.series.oldest_timestamp()
        if oldest is None:
            return None

        self.loading_more = True
        return BackfillRequest(
            market=self.market,
            granularity=self.granularity,
            before_ms=oldest,
            generation=self.generation,
        )

    def complete_backfill(
        self,
        candles: Mapping[int, Candlestick],
        generation: Optional[int] = None,
    ) -> int:
        """Fusionar velas antiguas. Retorna cuántas se insertaron."""
        if generation is not None and generation != self.generation:
            logger.info("Backfill descartado: generación %d obsoleta", generation)
            return 0

        self.loading_more = False
        inserted = self.series.merge_backfill(candles)
        if inserted:
            self._recompute(evaluate=False)
        logger.info("Backfill completado: %d velas nuevas", inserted)
        return inserted

    def fail_backfill(self, error: Exception, generation: Optional[int] = None) -> None:
        if generation is not None and generation != self.generation:
            return
        self.loading_more = False
        logger.warning("Backfill fallido: %s", error)
        self.alerts.push(f"Error al cargar velas: {error}", AlertType.ERROR)

    # ════════════════════════════════════════════════════════════════
    #  EJECUCIÓN / TOGGLES / ALERTAS
    # ════════════════════════════════════════════════════════════════

    def apply_execution_report(self, report: ExecutionReport) -> None:
        intent = report.intent
        if report.success:
            alert_type = AlertType.BUY if intent.direction is TradeDirection.BUY else AlertType.SELL
            self.alerts.push(
                f"Orden {intent.direction.value} ejecutada: {intent.amount} {intent.symbol} @ {intent.price:.2f}",
                alert_type,
            )
            return
        logger.warning("Orden %s fallida: %s", intent.id, report.error)
        self.alerts.push(
            f"Orden {intent.direction.value} fallida: {report.error}", AlertType.ERROR,
        )

    def place_manual_order(self, direction: TradeDirection) -> Optional[TradeIntent]:
        """
        Orden a mercado pedida por el usuario, al último precio conocido
        (o al cierre de la última vela). None si la serie está vacía.
        """
        latest_ts = self.series.latest_timestamp()
        if latest_ts is None:
            logger.warning("Orden manual %s rechazada: no hay velas", direction.value)
            return None
        price = self.last_price if self.last_price is not None else self.series.get(latest_ts).close
        return self.gate.place_order(
            direction, price, latest_ts, self.indicators.trade_indicators(latest_ts),
        )

    def toggle_auto_trading(self) -> bool:
        enabled = self.gate.toggle_auto_trading()
        self.alerts.push(
            "Trading automático activado" if enabled else "Trading automático desactivado",
            AlertType.INFO,
        )
        return enabled

    def toggle_scored_signals(self) -> bool:
        self.scored_signals_enabled = not self.scored_signals_enabled
        if self.scored_signals_enabled:
            self._rescore(self.series.items(), 0)
        else:
            self.buy_scores.clear()
            self.sell_scores.clear()
        logger.info(
            "Señales puntuadas %s",
            "activadas" if self.scored_signals_enabled else "desactivadas",
        )
        return self.scored_signals_enabled

    def expire_alerts(self, now: Optional[float] = None) -> int:
        return self.alerts.expire(now)

    # ════════════════════════════════════════════════════════════════
    #  LECTURA
    # ════════════════════════════════════════════════════════════════

    def scored_signals(self) -> Tuple[Dict[int, SignalScoring], Dict[int, SignalScoring]]:
        """Copias de los mapas (BUY, SELL) publicados."""
        return dict(self.buy_scores), dict(self.sell_scores)

    def status(self) -> dict:
        return {
            "market": self.market.to_dict(),
            "granularity": self.granularity.value,
            "candles": len(self.series),
            "oldest": self.series.oldest_timestamp(),
            "latest": self.series.latest_timestamp(),
            "last_price": self.last_price,
            "auto_trading_enabled": self.gate.auto_trading_enabled,
            "scored_signals_enabled": self.scored_signals_enabled,
            "loading_more": self.loading_more,
            "last_trade_time": self.gate.last_trade_time,
        }

    def snapshot(self) -> dict:
        """Vista de solo lectura para la capa de presentación."""
        return {
            **self.status(),
            "series": self.series.to_dict(),
            "indicators": self.indicators.to_dict(),
            "scored_signals": self.scored_signals_view(),
            "alerts": [alert.to_dict() for alert in self.alerts.active()],
        }

    def scored_signals_view(self) -> dict:
        return {
            "buy": {ts: s.to_dict() for ts, s in self.buy_scores.items()},
            "sell": {ts: s.to_dict() for ts, s in self.sell_scores.items()},
        }

    @staticmethod
    def _dispatch_unavailable(intent: TradeIntent) -> None:
        logger.warning("Sin colaborador de ejecución: orden %s descartada", intent.id)
