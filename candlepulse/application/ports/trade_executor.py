"""
CandlePulse – Application Port: Trade Executor
================================================
Interfaz del colaborador que coloca órdenes a mercado.

El gate decide QUÉ ejecutar; la infraestructura decide CÓMO (API del
broker, paper trading, mock de test).
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from candlepulse.domain.entities.trade_intent import TradeIntent


class ITradeExecutor(ABC):
    """Colocación de órdenes a mercado."""

    @abstractmethod
    async def execute(self, intent: TradeIntent) -> None:
        """
        Ejecuta una orden.

        Raises:
            ExecutionError: si la orden fue rechazada o no pudo colocarse
        """
        pass
