"""Domain entities."""
from candlepulse.domain.entities.alert import Alert, AlertType
from candlepulse.domain.entities.candle import Candlestick
from candlepulse.domain.entities.signal_scoring import SignalScoring
from candlepulse.domain.entities.trade_intent import (
    ExecutionReport,
    TradeDirection,
    TradeIndicators,
    TradeIntent,
)

__all__ = [
    "Alert",
    "AlertType",
    "Candlestick",
    "SignalScoring",
    "ExecutionReport",
    "TradeDirection",
    "TradeIndicators",
    "TradeIntent",
]
