"""
CandlePulse – Domain Layer
===========================
Núcleo puro del sistema. Sin frameworks externos.

- entities/:      Candlestick, SignalScoring, TradeIntent, Alert
- value_objects/: Granularity, Market, TradeEvent
- exceptions/:    Excepciones de dominio
"""

from candlepulse.domain.entities import (
    Alert,
    AlertType,
    Candlestick,
    ExecutionReport,
    SignalScoring,
    TradeDirection,
    TradeIndicators,
    TradeIntent,
)
from candlepulse.domain.value_objects import Granularity, Market, TradeEvent

__all__ = [
    "Alert",
    "AlertType",
    "Candlestick",
    "ExecutionReport",
    "SignalScoring",
    "TradeDirection",
    "TradeIndicators",
    "TradeIntent",
    "Granularity",
    "Market",
    "TradeEvent",
]
