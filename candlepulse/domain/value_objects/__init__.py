"""Value objects - Immutable domain primitives."""
from candlepulse.domain.value_objects.granularity import Granularity, Market
from candlepulse.domain.value_objects.trade import TradeEvent, parse_decimal

__all__ = ["Granularity", "Market", "TradeEvent", "parse_decimal"]
