"""
CandlePulse – In-Memory Candle History Provider
=================================================
Implementación de ICandleHistoryProvider sobre velas precargadas.

Permite arrancar el servicio (y testear el flujo de backfill) sin un
cliente REST del exchange: `seed()` carga velas por mercado y
granularidad; fetch_candles() devuelve las más recientes, o las
anteriores a `before_ms` en un backfill.
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Tuple

from candlepulse.application.ports.market_data_provider import ICandleHistoryProvider
from candlepulse.core.logging import get_logger
from candlepulse.domain.entities.candle import Candlestick
from candlepulse.domain.exceptions.domain_errors import HistoryFetchError
from candlepulse.domain.value_objects.granularity import Granularity, Market

logger = get_logger("history_provider")


class InMemoryHistoryProvider(ICandleHistoryProvider):
    """Histórico en memoria con páginas de `page_size` velas."""

    def __init__(self, page_size: int = 200) -> None:
        self._page_size = page_size
        self._store: Dict[Tuple[str, Granularity], Dict[int, Candlestick]] = {}
        self._failing: Dict[Tuple[str, Granularity], str] = {}

    def seed(
        self,
        market: Market,
        granularity: Granularity,
        candles: Mapping[int, Candlestick],
    ) -> None:
        self._store.setdefault((market.pair, granularity), {}).update(candles)

    def fail_next(self, market: Market, granularity: Granularity, reason: str) -> None:
        """Hacer que la próxima petición de este mercado falle."""
        self._failing[(market.pair, granularity)] = reason

    async def fetch_candles(
        self,
        market: Market,
        granularity: Granularity,
        before_ms: Optional[int] = None,
    ) -> Dict[int, Candlestick]:
        key = (market.pair, granularity)
        reason = self._failing.pop(key, None)
        if reason is not None:
            raise HistoryFetchError(reason, market=market.pair)

        stored = self._store.get(key, {})
        timestamps = sorted(ts for ts in stored if before_ms is None or ts < before_ms)
        page = timestamps[-self._page_size:]
        logger.debug(
            "Histórico %s %s: %d velas (before=%s)",
            market.pair, granularity.label, len(page), before_ms,
        )
        return {ts: stored[ts].copy() for ts in page}
