"""
CandlePulse – Indicator Engine (MA 5/10/20/200, RSI 14, Momentum)
===================================================================
Cálculos de indicadores técnicos puros sobre la vista ascendente de la
serie: data[i] = (timestamp, vela) de la i-ésima vela más antigua.

═══════════════════════════════════════════════════════════════════
                    MATEMÁTICA
═══════════════════════════════════════════════════════════════════

─── Media móvil simple (período p) ──────────────────────────────
      MA[i] = Σ close[i-p+1 .. i] / p        para i ≥ p-1
  Sin promedios parciales: posiciones con menos de p velas se omiten.

─── RSI (período 14, promedio simple, NO Wilder) ────────────────
      delta_j = close_j − close_{j-1}
      gain_j  = max(delta_j, 0)     loss_j = max(−delta_j, 0)
      avg_gain / avg_loss = media de las p deltas que terminan en i
      RS  = avg_gain / avg_loss
      RSI = 100 − 100 / (1 + RS)
  Edge case: avg_loss == 0 → RSI = 100. Las primeras p posiciones
  no tienen valor.

─── Momentum con filtro de volumen ──────────────────────────────
      momentum     = (close[i] − close[i-p]) / close[i-p] × 100
      volume_ratio = volume[i] / Σ volume[i-p .. i-1] × p
  BUY  si momentum >  umbral y volume_ratio > umbral_volumen
  SELL si momentum < −umbral con el mismo filtro de volumen
  Fuerza = 0.5 + min(|momentum|/10, 0.3)
               + min((volume_ratio − 1.2)/2, 0.2)  si volume_ratio > 1.2
         tope 1.0

═══════════════════════════════════════════════════════════════════
               DECISIONES DE DISEÑO
═══════════════════════════════════════════════════════════════════

RECÁLCULO INCREMENTAL:
- Todas las funciones aceptan `start`: calculan solo posiciones ≥ start
  con exactamente la misma fórmula por posición. Recalcular la cola
  desde `start` produce valores idénticos bit a bit a un recálculo total.

DATOS INSUFICIENTES:
- No es un error: se retorna un resultado vacío.

POR QUÉ NO PANDAS / TA-LIB:
- Cada posición se evalúa con la misma suma en el mismo orden, lo que
  garantiza igualdad exacta entre recálculo incremental y total.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Sequence, Tuple

from candlepulse.core.settings import Settings
from candlepulse.domain.entities.candle import Candlestick
from candlepulse.domain.value_objects.granularity import Granularity

CandleView = Sequence[Tuple[int, Candlestick]]

MA_PERIODS: Tuple[int, ...] = (5, 10, 20, 200)
RSI_PERIOD = 14


@dataclass(frozen=True, slots=True)
class MomentumParams:
    """(period, momentum_threshold %, volume_threshold) por granularidad."""

    period: int
    momentum_threshold: float
    volume_threshold: float

    @classmethod
    def for_granularity(cls, granularity: Granularity, cfg: Settings) -> "MomentumParams":
        if granularity is Granularity.MINUTE_1:
            return cls(
                cfg.momentum_1m_period,
                cfg.momentum_1m_threshold,
                cfg.momentum_1m_volume_threshold,
            )
        if granularity is Granularity.MINUTE_3:
            return cls(
                cfg.momentum_3m_period,
                cfg.momentum_3m_threshold,
                cfg.momentum_3m_volume_threshold,
            )
        return cls(
            cfg.momentum_day_period,
            cfg.momentum_day_threshold,
            cfg.momentum_day_volume_threshold,
        )


@dataclass(frozen=True, slots=True)
class MomentumReading:
    """Lectura cruda de momentum en una posición."""

    momentum: float
    volume_ratio: float


@dataclass(slots=True)
class MomentumSignals:
    """Resultado del motor de momentum, indexado por timestamp."""

    buy: Dict[int, float] = field(default_factory=dict)
    sell: Dict[int, float] = field(default_factory=dict)
    readings: Dict[int, MomentumReading] = field(default_factory=dict)


class IndicatorEngine:
    """
    Calculadora de indicadores técnicos puros.

    NO mantiene estado. Para la caché incremental ver
    state.indicator_state.IndicatorState.
    """

    @staticmethod
    def moving_average(data: CandleView, period: int, start: int = 0) -> Dict[int, float]:
        """MA simple del close; solo ventanas completas."""
        result: Dict[int, float] = {}
        if period <= 0 or len(data) < period:
            return result

        for i in range(max(start, period - 1), len(data)):
            window = data[i + 1 - period:i + 1]
            result[data[i][0]] = sum(candle.close for _, candle in window) / period
        return result

    @staticmethod
    def rsi(data: CandleView, period: int = RSI_PERIOD, start: int = 0) -> Dict[int, float]:
        """RSI con promedios simples de las `period` deltas que terminan en i."""
        result: Dict[int, float] = {}
        if period <= 0 or len(data) < period + 1:
            return result

        closes = [candle.close for _, candle in data]
        for i in range(max(start, period), len(closes)):
            total_gain = 0.0
            total_loss = 0.0
            for j in range(i - period + 1, i + 1):
                delta = closes[j] - closes[j - 1]
                if delta > 0:
                    total_gain += delta
                else:
                    total_loss -= delta

            avg_gain = total_gain / period
            avg_loss = total_loss / period
            result[data[i][0]] = IndicatorEngine._compute_rsi(avg_gain, avg_loss)
        return result

    @staticmethod
    def momentum_signals(
        data: CandleView,
        params: MomentumParams,
        start: int = 0,
    ) -> MomentumSignals:
        """Señales de momentum filtradas por volumen relativo."""
        signals = MomentumSignals()
        period = params.period
        if period <= 0 or len(data) <= period:
            return signals

        for i in range(max(start, period), len(data)):
            timestamp, current = data[i]
            past_close = data[i - period][1].close
            volume_sum = sum(candle.volume for _, candle in data[i - period:i])
            # Sin referencia de precio o volumen no hay lectura definida
            if past_close == 0 or volume_sum == 0:
                continue

            momentum = (current.close - past_close) / past_close * 100.0
            volume_ratio = current.volume / volume_sum * period
            signals.readings[timestamp] = MomentumReading(momentum, volume_ratio)

            if volume_ratio <= params.volume_threshold:
                continue
            if momentum > params.momentum_threshold:
                signals.buy[timestamp] = IndicatorEngine.signal_strength(momentum, volume_ratio)
            if momentum < -params.momentum_threshold:
                signals.sell[timestamp] = IndicatorEngine.signal_strength(-momentum, volume_ratio)

        return signals

    # ════════════════════════════════════════════════════════════════
    #  HELPERS
    # ════════════════════════════════════════════════════════════════

    @staticmethod
    def signal_strength(momentum_magnitude: float, volume_ratio: float) -> float:
        """Fuerza [0.5, 1.0] a partir de |momentum| y el ratio de volumen."""
        strength = 0.5 + min(momentum_magnitude / 10.0, 0.3)
        if volume_ratio > 1.2:
            strength += min((volume_ratio - 1.2) / 2.0, 0.2)
        return min(strength, 1.0)

    @staticmethod
    def _compute_rsi(avg_gain: float, avg_loss: float) -> float:
        if avg_loss == 0.0:
            return 100.0
        rs = avg_gain / avg_loss
        return 100.0 - (100.0 / (1.0 + rs))
