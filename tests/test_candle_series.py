"""
CandlestickSeries tests: ingestion, ordering, backfill merge, retention
and dirty tracking.
"""

from __future__ import annotations

from candlepulse.domain.entities.candle import Candlestick
from candlepulse.domain.value_objects.granularity import Granularity
from candlepulse.services.candle_series import FULL_RECOMPUTE, CandlestickSeries

W = 60_000
T0 = 28_333_333 * W


def flat(price: float, volume: float = 1.0) -> Candlestick:
    return Candlestick(price, price, price, price, volume)


# ════════════════════════════════════════════
# Ingest
# ════════════════════════════════════════════

class TestIngest:

    def test_trades_in_same_bucket_build_ohlcv(self):
        series = CandlestickSeries()
        for offset, (price, qty) in enumerate([(100.0, 1.0), (105.0, 2.0), (95.0, 3.0)]):
            series.ingest(T0 + offset * 1_000, price, qty, Granularity.MINUTE_1)

        assert len(series) == 1
        candle = series.get(T0)
        assert candle.open == 100.0
        assert candle.high == 105.0
        assert candle.low == 95.0
        assert candle.close == 95.0
        assert candle.volume == 6.0

    def test_ingest_returns_bucket_key(self):
        series = CandlestickSeries()
        key = series.ingest(T0 + 42_000, 10.0, 1.0, Granularity.MINUTE_1)
        assert key == T0

    def test_out_of_order_trades_iterate_ascending(self):
        series = CandlestickSeries()
        for i in (3, 1, 2):
            series.ingest(T0 + i * W, float(i), 1.0, Granularity.MINUTE_1)
        assert series.keys() == [T0 + W, T0 + 2 * W, T0 + 3 * W]
        assert [ts for ts, _ in series.items()] == series.keys()

    def test_candle_invariant_holds(self):
        series = CandlestickSeries()
        for i, price in enumerate([10.0, 12.0, 9.0, 11.0, 8.5, 10.5]):
            series.ingest(T0 + i * 5_000, price, 0.5, Granularity.MINUTE_1)
        candle = series.get(T0)
        assert candle.low <= min(candle.open, candle.close)
        assert max(candle.open, candle.close) <= candle.high
        assert candle.volume >= 0


# ════════════════════════════════════════════
# Backfill / replace
# ════════════════════════════════════════════

class TestMergeBackfill:

    def test_only_older_keys_are_inserted(self):
        series = CandlestickSeries({T0 + 10 * W: flat(10.0), T0 + 11 * W: flat(11.0)})
        older = {
            T0 + 5 * W: flat(5.0),
            T0 + 10 * W: flat(999.0),
            T0 + 12 * W: flat(12.0),
        }

        inserted = series.merge_backfill(older)

        assert inserted == 1
        assert series.get(T0 + 10 * W).close == 10.0
        assert T0 + 12 * W not in series
        assert series.oldest_timestamp() == T0 + 5 * W

    def test_existing_entries_never_overwritten(self):
        original = {T0 + i * W: flat(float(i)) for i in range(5, 8)}
        series = CandlestickSeries(original)
        series.merge_backfill({ts: flat(-1.0) for ts in original})
        assert all(series.get(ts).close == candle.close for ts, candle in original.items())

    def test_empty_series_accepts_everything(self):
        series = CandlestickSeries()
        inserted = series.merge_backfill({T0 + W: flat(1.0), T0: flat(0.5)})
        assert inserted == 2
        assert series.keys() == [T0, T0 + W]

    def test_merge_forces_full_recompute(self):
        series = CandlestickSeries({T0 + 5 * W: flat(5.0)})
        series.mark_clean()
        series.merge_backfill({T0: flat(1.0)})
        assert series.dirty_since == FULL_RECOMPUTE

    def test_replace_swaps_everything(self):
        series = CandlestickSeries({T0: flat(1.0)})
        series.replace({T0 + 7 * W: flat(7.0)})
        assert series.keys() == [T0 + 7 * W]
        assert series.dirty_since == FULL_RECOMPUTE


# ════════════════════════════════════════════
# Retention / removal
# ════════════════════════════════════════════

class TestRetention:

    def test_evicts_lowest_keys(self):
        series = CandlestickSeries({T0 + i * W: flat(float(i)) for i in range(5)})
        evicted = series.evict_oldest_if_over_capacity(3)
        assert evicted == 2
        assert series.keys() == [T0 + 2 * W, T0 + 3 * W, T0 + 4 * W]

    def test_under_capacity_is_noop(self):
        series = CandlestickSeries({T0: flat(1.0)})
        series.mark_clean()
        assert series.evict_oldest_if_over_capacity(10) == 0
        assert not series.is_dirty

    def test_pop_latest(self):
        series = CandlestickSeries({T0: flat(1.0), T0 + W: flat(2.0)})
        ts, candle = series.pop_latest()
        assert ts == T0 + W
        assert candle.close == 2.0
        assert series.latest_timestamp() == T0

    def test_pop_latest_on_empty(self):
        assert CandlestickSeries().pop_latest() is None

    def test_empty_bounds(self):
        series = CandlestickSeries()
        assert series.oldest_timestamp() is None
        assert series.latest_timestamp() is None


# ════════════════════════════════════════════
# Dirty tracking
# ════════════════════════════════════════════

class TestDirtyTracking:

    def test_tracks_oldest_modified_bucket(self):
        series = CandlestickSeries({T0 + i * W: flat(float(i)) for i in range(5)})
        series.mark_clean()

        series.ingest(T0 + 4 * W + 1, 4.5, 1.0, Granularity.MINUTE_1)
        series.ingest(T0 + 2 * W + 1, 2.5, 1.0, Granularity.MINUTE_1)
        series.ingest(T0 + 3 * W + 1, 3.5, 1.0, Granularity.MINUTE_1)

        assert series.dirty_since == T0 + 2 * W
        assert series.position_of(series.dirty_since) == 2

    def test_mark_clean(self):
        series = CandlestickSeries()
        series.ingest(T0, 1.0, 1.0, Granularity.MINUTE_1)
        assert series.is_dirty
        series.mark_clean()
        assert not series.is_dirty
        assert series.dirty_since is None
