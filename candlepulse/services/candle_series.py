"""
CandlePulse – Candlestick Series
==================================
Mapa ordenado timestamp(ms) → Candlestick para el mercado y la
granularidad activos.

ALGORITMO DE INGESTA:
  1. bucket = bucket_start(timestamp, granularidad)
  2. Si el bucket no existe → nueva vela o=h=l=c=precio, v=volumen.
  3. Si existe → high=max, low=min, close=precio, volume+=volumen.

ORDEN:
- Las claves se mantienen ordenadas con bisect, así que la iteración es
  siempre ascendente aunque los trades lleguen desordenados.
- Nunca hay dos velas con ventanas solapadas: la clave es el bucket.

RECÁLCULO INCREMENTAL:
- Cada mutación registra el timestamp más antiguo afectado (dirty_since).
  Un indicador en la posición i solo depende de velas ≤ i, así que basta
  recalcular desde esa posición hacia adelante.
- replace / merge_backfill / evict cambian posiciones de toda la serie y
  fuerzan recálculo completo (FULL_RECOMPUTE).

RETENCIÓN:
- evict_oldest_if_over_capacity() se aplica en las fronteras de consumo
  (snapshot para presentación), no en cada ingesta, para no descartar
  datos a mitad de un backfill.
"""

from __future__ import annotations

import bisect
from typing import Dict, List, Mapping, Optional, Tuple

from candlepulse.core.logging import get_logger
from candlepulse.domain.entities.candle import Candlestick
from candlepulse.domain.value_objects.granularity import Granularity
from candlepulse.services.time_bucket import bucket_start

logger = get_logger("candle_series")

# dirty_since para "recalcular todo": menor que cualquier timestamp válido
FULL_RECOMPUTE = -1


class CandlestickSeries:
    """
    Serie OHLCV ordenada por timestamp de bucket.

    Uso:
        series = CandlestickSeries()
        series.ingest(ts_ms, price, qty, Granularity.MINUTE_1)
        for ts, candle in series.items(): ...
    """

    def __init__(self, candles: Optional[Mapping[int, Candlestick]] = None) -> None:
        self._candles: Dict[int, Candlestick] = {}
        self._keys: List[int] = []
        self._dirty_since: Optional[int] = None
        if candles:
            self.replace(candles)

    # ════════════════════════════════════════════════════════════════
    #  MUTACIONES
    # ════════════════════════════════════════════════════════════════

    def ingest(
        self,
        timestamp_ms: int,
        trade_price: float,
        trade_volume: float,
        granularity: Granularity,
    ) -> int:
        """
        Aplicar un trade a su bucket. Retorna la clave del bucket.

        Nunca falla: el filtrado por símbolo o rango es responsabilidad
        del llamador.
        """
        key = bucket_start(timestamp_ms, granularity)
        candle = self._candles.get(key)

        if candle is None:
            self._candles[key] = Candlestick.from_trade(trade_price, trade_volume)
            bisect.insort(self._keys, key)
        else:
            candle.apply_trade(trade_price, trade_volume)

        self._mark_dirty(key)
        return key

    def replace(self, new_series: Mapping[int, Candlestick]) -> None:
        """Reemplazo total (cambio de mercado o granularidad)."""
        self._candles = {int(ts): candle for ts, candle in new_series.items()}
        self._keys = sorted(self._candles)
        self._dirty_since = FULL_RECOMPUTE
        logger.debug("Serie reemplazada: %d velas", len(self._keys))

    def merge_backfill(self, older_series: Mapping[int, Candlestick]) -> int:
        """
        Insertar velas más antiguas que la actual mínima.

        Nunca sobreescribe una clave existente. Retorna cuántas se insertaron.
        """
        oldest = self.oldest_timestamp()
        accepted = {
            int(ts): candle
            for ts, candle in older_series.items()
            if oldest is None or int(ts) < oldest
        }
        if not accepted:
            return 0

        self._candles.update(accepted)
        self._keys = sorted(accepted) + self._keys
        self._dirty_since = FULL_RECOMPUTE
        logger.debug(
            "Backfill: %d velas insertadas (%d ofrecidas)",
            len(accepted), len(older_series),
        )
        return len(accepted)

    def evict_oldest_if_over_capacity(self, max_len: int) -> int:
        """Descartar las velas más antiguas hasta len ≤ max_len."""
        excess = len(self._keys) - max(max_len, 0)
        if excess <= 0:
            return 0

        for key in self._keys[:excess]:
            del self._candles[key]
        del self._keys[:excess]
        self._dirty_since = FULL_RECOMPUTE
        return excess

    def pop_latest(self) -> Optional[Tuple[int, Candlestick]]:
        """Eliminar la vela más reciente (si existe)."""
        if not self._keys:
            return None
        key = self._keys.pop()
        candle = self._candles.pop(key)
        self._mark_dirty(key)
        return key, candle

    # ════════════════════════════════════════════════════════════════
    #  LECTURA
    # ════════════════════════════════════════════════════════════════

    def oldest_timestamp(self) -> Optional[int]:
        return self._keys[0] if self._keys else None

    def latest_timestamp(self) -> Optional[int]:
        return self._keys[-1] if self._keys else None

    def get(self, timestamp_ms: int) -> Optional[Candlestick]:
        return self._candles.get(timestamp_ms)

    def keys(self) -> List[int]:
        return list(self._keys)

    def items(self) -> List[Tuple[int, Candlestick]]:
        """Vista indexable ascendente: data[i] = i-ésima vela más antigua."""
        return [(key, self._candles[key]) for key in self._keys]

    def position_of(self, timestamp_ms: int) -> int:
        """Primera posición con timestamp ≥ timestamp_ms."""
        return bisect.bisect_left(self._keys, timestamp_ms)

    def to_dict(self) -> Dict[int, dict]:
        return {key: self._candles[key].to_dict() for key in self._keys}

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, timestamp_ms: object) -> bool:
        return timestamp_ms in self._candles

    # ════════════════════════════════════════════════════════════════
    #  DIRTY TRACKING
    # ════════════════════════════════════════════════════════════════

    @property
    def dirty_since(self) -> Optional[int]:
        """Timestamp más antiguo modificado desde el último recálculo."""
        return self._dirty_since

    @property
    def is_dirty(self) -> bool:
        return self._dirty_since is not None

    def mark_clean(self) -> None:
        self._dirty_since = None

    def _mark_dirty(self, key: int) -> None:
        if self._dirty_since is None or key < self._dirty_since:
            self._dirty_since = key
