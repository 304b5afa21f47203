"""
CandlePulse – Application Port: Candle History Provider
=========================================================
Interfaz para obtener velas históricas.

El use case solicita velas; la infraestructura decide CÓMO obtenerlas
(API REST del exchange, archivo local, fixture de test, etc.)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Optional

from candlepulse.domain.entities.candle import Candlestick
from candlepulse.domain.value_objects.granularity import Granularity, Market


class ICandleHistoryProvider(ABC):
    """
    Interfaz para proveer velas históricas.

    IMPLEMENTACIONES POSIBLES:
    - ExchangeRestProvider (producción)
    - InMemoryHistoryProvider (testing)
    """

    @abstractmethod
    async def fetch_candles(
        self,
        market: Market,
        granularity: Granularity,
        before_ms: Optional[int] = None,
    ) -> Dict[int, Candlestick]:
        """
        Obtiene velas históricas.

        Args:
            market: Par a consultar
            granularity: Ancho de vela
            before_ms: Si se indica, solo velas con timestamp < before_ms
                       (backfill). None → velas más recientes.

        Returns:
            Mapa timestamp(ms) → vela

        Raises:
            HistoryFetchError: si el proveedor no pudo responder
        """
        pass
