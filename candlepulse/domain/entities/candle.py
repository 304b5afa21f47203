"""
CandlePulse – Domain Entity: Candlestick
==========================================
Vela OHLCV agregada a partir de trades.

A diferencia de una vela cerrada e inmutable, la vela del bucket más
reciente se actualiza en sitio con cada trade: la serie completa se
re-puntúa en cada actualización, así que la vela en construcción forma
parte de la vista que consumen indicadores y patrones.

Invariante: low ≤ min(open, close) ≤ max(open, close) ≤ high, volume ≥ 0.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class Candlestick:
    """Vela OHLCV de un bucket de tiempo."""

    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @classmethod
    def from_trade(cls, price: float, volume: float) -> "Candlestick":
        """Primer trade del bucket: abre la vela."""
        return cls(open=price, high=price, low=price, close=price, volume=volume)

    def apply_trade(self, price: float, volume: float) -> None:
        """Actualizar high/low/close y acumular volumen."""
        self.high = max(self.high, price)
        self.low = min(self.low, price)
        self.close = price
        self.volume += volume

    @property
    def body(self) -> float:
        return abs(self.close - self.open)

    @property
    def range(self) -> float:
        return self.high - self.low

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        return self.close < self.open

    def copy(self) -> "Candlestick":
        return Candlestick(self.open, self.high, self.low, self.close, self.volume)

    def to_dict(self) -> dict:
        """Serialización para API / frontend."""
        return {
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }
