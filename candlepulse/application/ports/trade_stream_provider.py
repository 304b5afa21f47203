"""
CandlePulse – Application Port: Trade Stream Provider
=======================================================
Interfaz del stream de trades en vivo de un mercado.

El use case decide QUÉ mercado seguir; la infraestructura decide CÓMO
recibir los trades (WebSocket del exchange, replay de archivo, feed en
memoria).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator

from candlepulse.domain.value_objects.granularity import Market
from candlepulse.domain.value_objects.trade import TradeEvent


class ITradeStreamProvider(ABC):
    """
    Interfaz para recibir trades en tiempo real.

    IMPLEMENTACIONES POSIBLES:
    - ExchangeWebSocketProvider (producción)
    - InMemoryTradeStream (feed manual / testing)
    """

    @abstractmethod
    async def stream_trades(self, market: Market) -> AsyncIterator[TradeEvent]:
        """
        Stream de trades de un mercado.

        Args:
            market: Par a escuchar

        Yields:
            TradeEvent a medida que llegan. El stream termina al cancelar
            la task que lo consume.
        """
        pass
