"""
CandlePulse – Domain Entity: TradeIntent
==========================================
Orden que el Signal Gate entrega al colaborador de ejecución.

DECISIONES DE DISEÑO:
- frozen=True → el worker de ejecución recibe un snapshot inmutable,
  nunca una referencia a la serie viva.
- indicators (TradeIndicators) viaja con la orden para auditoría/log.
- El resultado de la ejecución vuelve como ExecutionReport, un mensaje
  que procesa el hilo dueño del estado en su siguiente turno.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class TradeDirection(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


@dataclass(frozen=True, slots=True)
class TradeIndicators:
    """Snapshot de indicadores en la vela que disparó la orden."""

    rsi: float = 0.0
    ma5: float = 0.0
    ma20: float = 0.0
    volume_ratio: float = 0.0

    def to_dict(self) -> dict:
        return {
            "rsi": round(self.rsi, 2),
            "ma5": round(self.ma5, 5),
            "ma20": round(self.ma20, 5),
            "volume_ratio": round(self.volume_ratio, 3),
        }


@dataclass(frozen=True, slots=True)
class TradeIntent:
    """Orden a mercado decidida por el gate."""

    symbol: str                  # e.g. "BTCUSDT"
    direction: TradeDirection
    price: float
    amount: float
    strength: float              # [0, 1]
    timestamp: int               # bucket (ms) que originó la orden
    indicators: TradeIndicators = field(default_factory=TradeIndicators)
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "direction": self.direction.value,
            "price": self.price,
            "amount": self.amount,
            "strength": round(self.strength, 3),
            "timestamp": self.timestamp,
            "indicators": self.indicators.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class ExecutionReport:
    """Resultado asíncrono de una orden despachada."""

    intent: TradeIntent
    success: bool
    error: Optional[str] = None
    completed_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "intent": self.intent.to_dict(),
            "success": self.success,
            "error": self.error,
            "completed_at": self.completed_at,
        }
