"""Services - cálculos puros sobre la serie de velas."""
from candlepulse.services.candle_series import FULL_RECOMPUTE, CandlestickSeries
from candlepulse.services.indicator_service import (
    IndicatorEngine,
    MomentumParams,
    MomentumReading,
    MomentumSignals,
)
from candlepulse.services.pattern_scorer import score_signals
from candlepulse.services.signal_gate import SignalGate
from candlepulse.services.time_bucket import bucket_start, bucket_width

__all__ = [
    "FULL_RECOMPUTE",
    "CandlestickSeries",
    "IndicatorEngine",
    "MomentumParams",
    "MomentumReading",
    "MomentumSignals",
    "score_signals",
    "SignalGate",
    "bucket_start",
    "bucket_width",
]
