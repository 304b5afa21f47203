"""
PatternScorer tests: engulfing, morning/evening star and publication.
"""

from __future__ import annotations

import pytest

from candlepulse.domain.entities.candle import Candlestick
from candlepulse.services.pattern_scorer import (
    bearish_engulfing,
    bullish_engulfing,
    evening_star,
    morning_star,
    score_signals,
)

W = 60_000


def c(o, h, l, cl, v=1.0) -> Candlestick:
    return Candlestick(open=o, high=h, low=l, close=cl, volume=v)


def seq(*candles):
    return [(i * W, candle) for i, candle in enumerate(candles)]


def flat_run(n: int, price: float = 100.0):
    return [c(price, price, price, price) for _ in range(n)]


# ════════════════════════════════════════════
# Engulfing
# ════════════════════════════════════════════

class TestEngulfing:

    def test_bullish_engulfing_scores_within_bounds(self):
        data = seq(c(10, 10, 8, 8), c(7, 12, 7, 12))
        score = bullish_engulfing(data, 1)
        assert 15.0 <= score <= 25.0
        assert score == pytest.approx(25.0)

    def test_bullish_partial_ratio(self):
        data = seq(c(10, 10, 8, 8), c(8, 11, 8, 11))
        assert bullish_engulfing(data, 1) == pytest.approx(20.0)

    def test_bearish_engulfing(self):
        data = seq(c(8, 10, 8, 10), c(11, 11, 7, 7))
        assert bearish_engulfing(data, 1) == pytest.approx(25.0)
        assert bullish_engulfing(data, 1) == 0.0

    def test_body_not_engulfed(self):
        data = seq(c(10, 10, 8, 8), c(9, 9.5, 9, 9.5))
        assert bullish_engulfing(data, 1) == 0.0

    def test_same_direction_is_not_engulfing(self):
        data = seq(c(8, 10, 8, 10), c(7, 12, 7, 12))
        assert bullish_engulfing(data, 1) == 0.0

    def test_first_position(self):
        assert bullish_engulfing(seq(c(7, 12, 7, 12)), 0) == 0.0


# ════════════════════════════════════════════
# Stars
# ════════════════════════════════════════════

class TestStars:

    def test_morning_star(self):
        data = seq(
            c(100, 101, 89, 90),
            c(88, 88.5, 87, 87.5),
            c(89, 99, 88.8, 98),
        )
        score = morning_star(data, 2)
        assert score == pytest.approx(24.0)
        assert evening_star(data, 2) == 0.0

    def test_evening_star(self):
        data = seq(
            c(90, 101, 89, 100),
            c(102, 103, 101.5, 102.5),
            c(101, 101.2, 91, 92),
        )
        assert evening_star(data, 2) == pytest.approx(24.0)
        assert morning_star(data, 2) == 0.0

    def test_large_middle_body_rejected(self):
        data = seq(
            c(100, 101, 89, 90),
            c(88, 88.5, 83, 84),
            c(89, 99, 88.8, 98),
        )
        assert morning_star(data, 2) == 0.0

    def test_no_gap_rejected(self):
        data = seq(
            c(100, 101, 89, 90),
            c(88, 88.5, 87, 87.5),
            c(88, 99, 88, 98),
        )
        assert morning_star(data, 2) == 0.0

    def test_close_below_midpoint_rejected(self):
        data = seq(
            c(100, 101, 89, 90),
            c(88, 88.5, 87, 87.5),
            c(89, 94.5, 88.8, 94),
        )
        assert morning_star(data, 2) == 0.0

    def test_requires_three_candles(self):
        assert morning_star(seq(c(1, 1, 1, 1), c(1, 1, 1, 1)), 1) == 0.0


# ════════════════════════════════════════════
# Publication
# ════════════════════════════════════════════

class TestScoreSignals:

    def _engulfing_at(self, position: int, total: int = 25):
        candles = flat_run(total)
        candles[position - 1] = c(100, 100, 98, 98)
        candles[position] = c(97, 103, 97, 103)
        return seq(*candles)

    def test_default_threshold_never_publishes_single_pattern(self):
        buy, sell = score_signals(self._engulfing_at(22))
        assert buy == {} and sell == {}

    def test_published_above_threshold(self):
        buy, sell = score_signals(self._engulfing_at(22), publish_threshold=20.0)
        assert list(buy) == [22 * W]
        scoring = buy[22 * W]
        assert scoring.bullish_engulfing == pytest.approx(25.0)
        assert scoring.morning_star == 0.0
        assert scoring.total_score == pytest.approx(25.0)
        assert sell == {}

    def test_positions_before_window_are_not_scored(self):
        buy, _ = score_signals(self._engulfing_at(6), publish_threshold=1.0)
        assert buy == {}

    def test_first_position_of_window_is_scored(self):
        buy, _ = score_signals(self._engulfing_at(20), publish_threshold=1.0)
        assert list(buy) == [20 * W]

    def test_position_just_before_window_is_not_scored(self):
        buy, sell = score_signals(self._engulfing_at(19), publish_threshold=1.0)
        assert buy == {} and sell == {}

    def test_start_skips_earlier_positions(self):
        data = self._engulfing_at(22)
        buy, _ = score_signals(data, start=23, publish_threshold=1.0)
        assert buy == {}

    def test_total_is_sum_of_direction_subscores(self):
        buy, _ = score_signals(self._engulfing_at(22), publish_threshold=0.0)
        for scoring in buy.values():
            assert scoring.total_score == pytest.approx(
                scoring.bullish_engulfing + scoring.morning_star
            )
            assert scoring.bearish_engulfing == 0.0
