"""
CandlePulse – Trade Stream (feed en memoria + bombeo al EventBus)
===================================================================
- InMemoryTradeStream: implementación de ITradeStreamProvider alimentada
  con feed(). Sirve para arrancar el servicio sin WebSocket del exchange
  y para inyectar trades desde la API.
- TradeStreamPump: consume el stream del mercado seguido y publica cada
  TradeEvent en el tópico "trade" del EventBus.

  ITradeStreamProvider ──stream_trades(market)──▸ TradeStreamPump
                                                      │
                                                      ▼
                                        EventBus("trade") → inbox

Cambiar de mercado cancela la task de bombeo anterior y abre el stream
del nuevo par.
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Dict, Optional

from candlepulse.application.ports.trade_stream_provider import ITradeStreamProvider
from candlepulse.core.logging import get_logger
from candlepulse.domain.value_objects.granularity import Market
from candlepulse.domain.value_objects.trade import TradeEvent
from candlepulse.infrastructure.event_bus import TRADE_TOPIC, EventBus

logger = get_logger("trade_stream")


class InMemoryTradeStream(ITradeStreamProvider):
    """Stream de trades alimentado a mano, una cola por par escuchado."""

    def __init__(self, max_queue_size: int = 10_000) -> None:
        self._max_queue_size = max_queue_size
        self._queues: Dict[str, asyncio.Queue] = {}

    def feed(self, event: TradeEvent) -> bool:
        """Entregar un trade al stream de su par. False si nadie lo escucha."""
        queue = self._queues.get(event.symbol.upper())
        if queue is None:
            logger.debug("Trade de %s sin stream abierto, ignorado", event.symbol)
            return False
        if queue.full():
            queue.get_nowait()
            logger.warning("Stream de %s lleno – trade antiguo descartado", event.symbol)
        queue.put_nowait(event)
        return True

    async def stream_trades(self, market: Market) -> AsyncIterator[TradeEvent]:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
        self._queues[market.pair] = queue
        logger.info("Stream de trades abierto para %s", market.pair)
        try:
            while True:
                yield await queue.get()
        finally:
            if self._queues.get(market.pair) is queue:
                del self._queues[market.pair]
            logger.info("Stream de trades cerrado para %s", market.pair)

    def is_streaming(self, market: Market) -> bool:
        return market.pair in self._queues


class TradeStreamPump:
    """Publica en el EventBus los trades del mercado seguido."""

    def __init__(
        self,
        provider: ITradeStreamProvider,
        event_bus: EventBus,
        topic: str = TRADE_TOPIC,
    ) -> None:
        self._provider = provider
        self._event_bus = event_bus
        self._topic = topic
        self._market: Optional[Market] = None
        self._task: Optional[asyncio.Task] = None
        self._published_count = 0

    @property
    def market(self) -> Optional[Market]:
        return self._market

    def follow(self, market: Market) -> None:
        """Seguir el stream de `market`, cerrando el anterior."""
        if market == self._market and self._task is not None and not self._task.done():
            return
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._market = market
        self._task = asyncio.create_task(self._pump(market), name=f"trade-stream-{market.pair}")

    async def stop(self) -> None:
        if self._task is None:
            return
        if not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("TradeStreamPump detenido. Trades publicados: %d", self._published_count)

    async def _pump(self, market: Market) -> None:
        try:
            async for event in self._provider.stream_trades(market):
                self._event_bus.publish(self._topic, event)
                self._published_count += 1
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("Stream de trades de %s interrumpido: %s", market.pair, e, exc_info=True)

    def get_stats(self) -> dict:
        return {
            "market": self._market.pair if self._market else None,
            "running": self._task is not None and not self._task.done(),
            "published": self._published_count,
        }
