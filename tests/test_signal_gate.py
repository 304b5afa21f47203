"""
SignalGate tests: alert thresholds, auto-trading flag and global cooldown.
"""

from __future__ import annotations

from candlepulse.domain.entities.alert import AlertType
from candlepulse.domain.entities.signal_scoring import SignalScoring
from candlepulse.domain.entities.trade_intent import TradeDirection, TradeIndicators
from candlepulse.services.signal_gate import SignalGate


def make_gate(clock, enabled=True):
    dispatched = []
    gate = SignalGate(
        dispatch=dispatched.append,
        symbol="BTCUSDT",
        auto_trading_enabled=enabled,
        clock=clock,
    )
    return gate, dispatched


# ════════════════════════════════════════════
# Alerts
# ════════════════════════════════════════════

class TestEvaluate:

    def test_buy_alert_at_threshold(self, clock):
        gate, _ = make_gate(clock)
        alerts = gate.evaluate(1, SignalScoring(total_score=85.0), None)
        assert [a.alert_type for a in alerts] == [AlertType.BUY]
        assert "85/100" in alerts[0].message

    def test_below_threshold(self, clock):
        gate, _ = make_gate(clock)
        assert gate.evaluate(1, SignalScoring(total_score=84.9), SignalScoring(total_score=10)) == []

    def test_both_directions(self, clock):
        gate, _ = make_gate(clock)
        alerts = gate.evaluate(1, SignalScoring(total_score=90), SignalScoring(total_score=95))
        assert [a.alert_type for a in alerts] == [AlertType.BUY, AlertType.SELL]
        assert all(a.created_at == clock.now for a in alerts)


# ════════════════════════════════════════════
# Trading
# ════════════════════════════════════════════

class TestTryTrade:

    def test_disabled_never_dispatches(self, clock):
        gate, dispatched = make_gate(clock, enabled=False)
        for _ in range(5):
            assert gate.try_trade(TradeDirection.BUY, 100.0, 0.9, 1) is None
            clock.advance(120)
        assert dispatched == []
        assert gate.last_trade_time is None

    def test_first_trade_dispatches(self, clock):
        gate, dispatched = make_gate(clock)
        indicators = TradeIndicators(rsi=55.0, ma5=101.0, ma20=99.0, volume_ratio=1.8)
        intent = gate.try_trade(TradeDirection.BUY, 100.0, 0.9, 42, indicators)

        assert dispatched == [intent]
        assert intent.symbol == "BTCUSDT"
        assert intent.amount == 0.001
        assert intent.timestamp == 42
        assert intent.indicators == indicators
        assert gate.last_trade_time == clock.now

    def test_events_10s_apart_dispatch_once(self, clock):
        gate, dispatched = make_gate(clock)
        gate.try_trade(TradeDirection.BUY, 100.0, 0.9, 1)
        clock.advance(10)
        gate.try_trade(TradeDirection.BUY, 100.0, 0.9, 2)
        assert len(dispatched) == 1

    def test_events_65s_apart_dispatch_twice(self, clock):
        gate, dispatched = make_gate(clock)
        gate.try_trade(TradeDirection.BUY, 100.0, 0.9, 1)
        clock.advance(65)
        gate.try_trade(TradeDirection.BUY, 100.0, 0.9, 2)
        assert len(dispatched) == 2

    def test_exact_cooldown_is_still_blocked(self, clock):
        gate, dispatched = make_gate(clock)
        gate.try_trade(TradeDirection.BUY, 100.0, 0.9, 1)
        clock.advance(60)
        assert gate.try_trade(TradeDirection.BUY, 100.0, 0.9, 2) is None
        assert len(dispatched) == 1

    def test_cooldown_is_global_across_directions(self, clock):
        gate, dispatched = make_gate(clock)
        gate.try_trade(TradeDirection.BUY, 100.0, 0.9, 1)
        clock.advance(10)
        gate.try_trade(TradeDirection.SELL, 100.0, 0.9, 2)
        assert [i.direction for i in dispatched] == [TradeDirection.BUY]

    def test_blocked_attempt_does_not_extend_cooldown(self, clock):
        gate, dispatched = make_gate(clock)
        gate.try_trade(TradeDirection.BUY, 100.0, 0.9, 1)
        first = gate.last_trade_time
        clock.advance(30)
        gate.try_trade(TradeDirection.BUY, 100.0, 0.9, 2)
        assert gate.last_trade_time == first
        clock.advance(31)
        assert gate.try_trade(TradeDirection.BUY, 100.0, 0.9, 3) is not None

    def test_toggle(self, clock):
        gate, _ = make_gate(clock, enabled=False)
        assert gate.toggle_auto_trading() is True
        assert gate.toggle_auto_trading() is False


# ════════════════════════════════════════════
# Manual orders
# ════════════════════════════════════════════

class TestPlaceOrder:

    def test_ignores_flag_and_cooldown(self, clock):
        gate, dispatched = make_gate(clock, enabled=False)
        gate.place_order(TradeDirection.BUY, 100.0, 1)
        gate.place_order(TradeDirection.SELL, 101.0, 2)
        assert [i.direction for i in dispatched] == [TradeDirection.BUY, TradeDirection.SELL]
        assert gate.last_trade_time is None

    def test_does_not_consume_cooldown(self, clock):
        gate, dispatched = make_gate(clock)
        gate.place_order(TradeDirection.SELL, 100.0, 1, TradeIndicators(rsi=70.0))
        assert gate.try_trade(TradeDirection.BUY, 100.0, 0.9, 2) is not None
        assert dispatched[0].strength == 1.0
        assert dispatched[0].indicators.rsi == 70.0
        assert len(dispatched) == 2
