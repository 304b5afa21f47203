"""
CandlePulse – Indicator State (caché incremental)
==================================================
Series de indicadores indexadas por timestamp para la serie activa.

DISEÑO:
- Un indicador en la posición i solo depende de velas en posiciones ≤ i.
  Cuando la serie cambia desde la posición k, las entradas < k siguen
  siendo válidas: se descartan las posteriores y se recalcula [k, len).
- dirty_from = 0 equivale a un recálculo completo.
- Se usa la misma fórmula por posición (IndicatorEngine con `start`), así
  que el resultado es idéntico a recalcular todo desde cero.

POR QUÉ NO VARIABLES GLOBALES:
- El estado vive dentro de IndicatorState, propiedad del
  AggregationEngine. Testeable y fácil de resetear.
"""

from __future__ import annotations

from typing import Dict, MutableMapping, Optional, Sequence, Tuple

from candlepulse.core.logging import get_logger
from candlepulse.domain.entities.candle import Candlestick
from candlepulse.domain.entities.trade_intent import TradeIndicators
from candlepulse.services.indicator_service import (
    MA_PERIODS,
    RSI_PERIOD,
    IndicatorEngine,
    MomentumParams,
    MomentumReading,
)

logger = get_logger("indicator_state")

CandleView = Sequence[Tuple[int, Candlestick]]


def truncate_from(
    mapping: MutableMapping[int, object],
    data: CandleView,
    dirty_from: int,
) -> None:
    """
    Descartar entradas en posiciones ≥ dirty_from.

    Se conserva todo lo que sea ≤ timestamp de la última posición limpia,
    de modo que también desaparecen las claves de velas ya eliminadas.
    """
    if dirty_from <= 0 or not data:
        mapping.clear()
        return
    last_clean_ts = data[min(dirty_from, len(data)) - 1][0]
    for ts in [ts for ts in mapping if ts > last_clean_ts]:
        del mapping[ts]


class IndicatorState:
    """Caché de MA 5/10/20/200, RSI 14 y momentum para la serie activa."""

    def __init__(self, params: MomentumParams) -> None:
        self.params = params
        self.moving_averages: Dict[int, Dict[int, float]] = {p: {} for p in MA_PERIODS}
        self.rsi: Dict[int, float] = {}
        self.momentum_buy: Dict[int, float] = {}
        self.momentum_sell: Dict[int, float] = {}
        self.momentum_readings: Dict[int, MomentumReading] = {}

    def set_params(self, params: MomentumParams) -> None:
        """Cambiar parámetros de momentum (requiere recálculo completo)."""
        self.params = params
        self.reset()

    def reset(self) -> None:
        for series in self.moving_averages.values():
            series.clear()
        self.rsi.clear()
        self.momentum_buy.clear()
        self.momentum_sell.clear()
        self.momentum_readings.clear()

    def _all_series(self) -> list:
        return [
            *self.moving_averages.values(),
            self.rsi,
            self.momentum_buy,
            self.momentum_sell,
            self.momentum_readings,
        ]

    def recompute(self, data: CandleView, dirty_from: int = 0) -> None:
        """Recalcular posiciones [dirty_from, len(data))."""
        dirty_from = max(dirty_from, 0)
        for series in self._all_series():
            truncate_from(series, data, dirty_from)

        for period, series in self.moving_averages.items():
            series.update(IndicatorEngine.moving_average(data, period, start=dirty_from))
        self.rsi.update(IndicatorEngine.rsi(data, RSI_PERIOD, start=dirty_from))

        momentum = IndicatorEngine.momentum_signals(data, self.params, start=dirty_from)
        self.momentum_buy.update(momentum.buy)
        self.momentum_sell.update(momentum.sell)
        self.momentum_readings.update(momentum.readings)

        logger.debug(
            "Indicadores recalculados desde posición %d de %d", dirty_from, len(data),
        )

    # ─── Lectura ────────────────────────────────────────────────────

    def trade_indicators(self, timestamp: int) -> TradeIndicators:
        """Snapshot de indicadores en un timestamp (0.0 donde no hay valor)."""
        reading: Optional[MomentumReading] = self.momentum_readings.get(timestamp)
        return TradeIndicators(
            rsi=self.rsi.get(timestamp, 0.0),
            ma5=self.moving_averages[5].get(timestamp, 0.0),
            ma20=self.moving_averages[20].get(timestamp, 0.0),
            volume_ratio=reading.volume_ratio if reading is not None else 0.0,
        )

    def to_dict(self) -> dict:
        """Serialización para API."""
        return {
            "moving_averages": {
                f"ma{period}": {ts: round(v, 5) for ts, v in series.items()}
                for period, series in self.moving_averages.items()
            },
            "rsi": {ts: round(v, 2) for ts, v in self.rsi.items()},
            "momentum": {
                "buy": {ts: round(v, 3) for ts, v in self.momentum_buy.items()},
                "sell": {ts: round(v, 3) for ts, v in self.momentum_sell.items()},
            },
            "params": {
                "period": self.params.period,
                "momentum_threshold": self.params.momentum_threshold,
                "volume_threshold": self.params.volume_threshold,
            },
        }
