"""
CandlePulse – Event Bus (asyncio.Queue fan-out)
================================================
Bus de eventos interno para desacoplar el stream de trades de los
consumidores (MarketStreamUseCase, presentación).

Arquitectura:
  ┌──────────┐          ┌───────────┐
  │  Trade   │──trade──▸│ Event Bus │──▸ MarketStreamUseCase (inbox)
  │  Stream  │          │ (fan-out) │──▸ alerts / scores consumers
  └──────────┘          └───────────┘

CONTRAPRESIÓN:
- Cada consumidor tiene su propia asyncio.Queue con tamaño limitado.
- Si su cola se llena, se descarta el evento MÁS ANTIGUO (drop-oldest):
  el productor nunca se bloquea.

THREAD-SAFETY:
- asyncio.Queue es safe dentro del mismo event loop.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Tuple

from candlepulse.core.logging import get_logger

logger = get_logger("event_bus")

# Tópicos
TRADE_TOPIC = "trade"
ALERTS_TOPIC = "alerts"
SCORED_SIGNALS_TOPIC = "scored_signals"
TRADE_INTENT_TOPIC = "trade_intent"
SERIES_TOPIC = "series"


class EventBus:
    """Fan-out event bus basado en asyncio.Queue."""

    def __init__(self, max_queue_size: int = 10_000) -> None:
        self._max_queue_size = max_queue_size
        # topic → lista de (queue, nombre_consumidor)
        self._subscribers: Dict[str, List[Tuple[asyncio.Queue, str]]] = {}

    def subscribe(self, topic: str, consumer_name: str) -> asyncio.Queue:
        """Registrar un consumidor; retorna su Queue exclusiva."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
        self.attach(topic, consumer_name, queue)
        return queue

    def attach(self, topic: str, consumer_name: str, queue: asyncio.Queue) -> None:
        """Suscribir una cola existente (p.ej. el inbox del dueño del estado)."""
        self._subscribers.setdefault(topic, []).append((queue, consumer_name))
        logger.info(
            "Consumidor '%s' suscrito a tópico '%s' (max_queue=%d)",
            consumer_name, topic, queue.maxsize,
        )

    def publish(self, topic: str, data: Any) -> None:
        """
        Publicar un evento a todos los suscriptores de un tópico.
        Política drop-oldest si la cola está llena.
        """
        for queue, consumer_name in self._subscribers.get(topic, []):
            if queue.full():
                try:
                    queue.get_nowait()
                    logger.warning(
                        "Cola llena para '%s' en tópico '%s' – evento antiguo descartado",
                        consumer_name, topic,
                    )
                except asyncio.QueueEmpty:
                    pass
            try:
                queue.put_nowait(data)
            except asyncio.QueueFull:
                logger.error(
                    "No se pudo encolar evento para '%s' (tópico '%s')",
                    consumer_name, topic,
                )

    def unsubscribe_all(self, topic: Optional[str] = None) -> None:
        """Desuscribir consumidores (cleanup al shutdown)."""
        if topic:
            self._subscribers.pop(topic, None)
            logger.info("Todos los suscriptores del tópico '%s' eliminados", topic)
        else:
            self._subscribers.clear()
            logger.info("Todos los suscriptores eliminados (shutdown)")

    @property
    def subscriber_count(self) -> int:
        return sum(len(subs) for subs in self._subscribers.values())
