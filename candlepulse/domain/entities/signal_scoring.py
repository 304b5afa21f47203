"""
CandlePulse – Domain Entity: SignalScoring
============================================
Puntuación de patrones de velas para un timestamp y una dirección.

Cada sub-score vive en [0, 25]. total_score es la suma de los dos
sub-scores relevantes para la dirección:
  - BUY:  bullish_engulfing + morning_star
  - SELL: bearish_engulfing + evening_star
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SignalScoring:
    """Sub-scores de patrones y puntaje total."""

    bullish_engulfing: float = 0.0
    bearish_engulfing: float = 0.0
    morning_star: float = 0.0
    evening_star: float = 0.0
    total_score: float = 0.0

    def to_dict(self) -> dict:
        return {
            "bullish_engulfing": round(self.bullish_engulfing, 2),
            "bearish_engulfing": round(self.bearish_engulfing, 2),
            "morning_star": round(self.morning_star, 2),
            "evening_star": round(self.evening_star, 2),
            "total_score": round(self.total_score, 2),
        }
