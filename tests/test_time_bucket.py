"""
Time bucket alignment tests.
"""

from __future__ import annotations

import pytest

from candlepulse.domain.value_objects.granularity import Granularity
from candlepulse.services.time_bucket import bucket_start, bucket_width

SAMPLE_TIMESTAMPS = [
    0,
    1,
    59_999,
    60_000,
    179_999,
    1_700_000_123_456,
    1_700_086_400_000,
    1_700_086_399_999,
]


class TestBucketWidth:

    def test_widths(self):
        assert bucket_width(Granularity.MINUTE_1) == 60_000
        assert bucket_width(Granularity.MINUTE_3) == 180_000
        assert bucket_width(Granularity.DAY) == 86_400_000


class TestBucketStart:

    def test_minute_alignment(self):
        assert bucket_start(1_700_000_123_456, Granularity.MINUTE_1) == 1_700_000_100_000

    def test_three_minute_alignment(self):
        assert bucket_start(360_001, Granularity.MINUTE_3) == 360_000
        assert bucket_start(359_999, Granularity.MINUTE_3) == 180_000

    def test_day_alignment(self):
        assert bucket_start(86_400_005, Granularity.DAY) == 86_400_000

    @pytest.mark.parametrize("granularity", list(Granularity))
    def test_idempotent(self, granularity):
        for ts in SAMPLE_TIMESTAMPS:
            once = bucket_start(ts, granularity)
            assert bucket_start(once, granularity) == once

    @pytest.mark.parametrize("granularity", list(Granularity))
    def test_monotonic(self, granularity):
        ordered = sorted(SAMPLE_TIMESTAMPS)
        buckets = [bucket_start(ts, granularity) for ts in ordered]
        assert buckets == sorted(buckets)

    @pytest.mark.parametrize("granularity", list(Granularity))
    def test_bucket_contains_timestamp(self, granularity):
        for ts in SAMPLE_TIMESTAMPS:
            start = bucket_start(ts, granularity)
            assert start <= ts < start + granularity.bucket_width_ms
