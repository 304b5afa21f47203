"""
Shared fixtures: controllable monotonic clock and settings overrides.
"""

from __future__ import annotations

import pytest

from candlepulse.core.settings import Settings


class FakeClock:
    """Monotonic clock the tests advance by hand."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cfg() -> Settings:
    return Settings(
        auto_trading_enabled=False,
        scored_signals_enabled=True,
        default_granularity="1m",
    )
