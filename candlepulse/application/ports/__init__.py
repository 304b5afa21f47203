"""Application ports (interfaces hacia la infraestructura)."""
from candlepulse.application.ports.market_data_provider import ICandleHistoryProvider
from candlepulse.application.ports.trade_executor import ITradeExecutor
from candlepulse.application.ports.trade_stream_provider import ITradeStreamProvider

__all__ = [
    "ICandleHistoryProvider",
    "ITradeExecutor",
    "ITradeStreamProvider",
]
