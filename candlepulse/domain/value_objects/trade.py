"""
CandlePulse – Domain Value Object: TradeEvent
===============================================
Una ejecución individual recibida del stream de trades del exchange.

- frozen=True → inmutable, seguro para pasar entre coroutines.
- slots=True  → menor footprint de memoria en hot-path.

PARSING CON PÉRDIDA:
El exchange envía precio y cantidad como strings decimales. Un valor
malformado se sustituye por 0.0 y la ingesta continúa: es un fallo
documentado y no fatal.
"""

from __future__ import annotations

from dataclasses import dataclass

from candlepulse.core.logging import get_logger

logger = get_logger("trade_event")


def parse_decimal(raw: object, field: str = "value") -> float:
    """Parsear un string decimal; 0.0 si no es un número válido."""
    try:
        return float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        logger.warning("No se pudo parsear %s=%r, usando 0.0", field, raw)
        return 0.0


@dataclass(frozen=True, slots=True)
class TradeEvent:
    """Trade ejecutado en el exchange."""

    symbol: str          # e.g. "BTCUSDT"
    price: float
    quantity: float
    timestamp_ms: int    # epoch en milisegundos del exchange
    is_buyer: bool = False

    @classmethod
    def from_raw(
        cls,
        symbol: str,
        price: object,
        quantity: object,
        timestamp_ms: int,
        is_buyer: bool = False,
    ) -> "TradeEvent":
        """Construir desde los campos crudos del stream (precio/cantidad como strings)."""
        return cls(
            symbol=symbol,
            price=parse_decimal(price, "price"),
            quantity=parse_decimal(quantity, "quantity"),
            timestamp_ms=int(timestamp_ms),
            is_buyer=bool(is_buyer),
        )

    def to_dict(self) -> dict:
        """Serialización para WebSocket / frontend."""
        return {
            "symbol": self.symbol,
            "price": self.price,
            "quantity": self.quantity,
            "timestamp_ms": self.timestamp_ms,
            "is_buyer": self.is_buyer,
        }
