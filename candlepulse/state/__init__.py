"""State - estado mutable propiedad del AggregationEngine."""
from candlepulse.state.alert_state import AlertQueue
from candlepulse.state.indicator_state import IndicatorState

__all__ = ["AlertQueue", "IndicatorState"]
