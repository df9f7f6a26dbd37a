"""Unit tests for UsageRecorder."""

from __future__ import annotations

import pandas as pd
import pytest

from limitree.core.temporal import Duration
from limitree.instrumentation import UsageRecorder
from limitree.rates import Rate
from limitree.resource_limiters import of_rates


class TestUsageRecorder:

    def test_granted_and_rejected_records(self, clock):
        recorder = UsageRecorder(clock)
        limiter = of_rates("api", Rate.per_second(1), clock=clock).with_listener(recorder)

        limiter.try_consume("api")
        limiter.try_consume("api")

        assert recorder.count() == 2
        assert recorder.count(rejected=False) == 1
        assert recorder.count(rejected=True) == 1
        assert [r.rejected for r in recorder.records] == [False, True]

    def test_rejection_without_prior_consumption(self, clock):
        recorder = UsageRecorder(clock)
        recorder.on_rejected("req", "api", 1, None)
        assert recorder.count(rejected=True) == 1

    def test_to_dataframe(self, clock):
        recorder = UsageRecorder(clock)
        recorder.on_consumed("req", "api", 2, "5/1s")
        clock.advance(Duration.from_seconds(1.5))
        recorder.on_consumed("req", "api", 1, "5/1s")

        df = recorder.to_dataframe()
        assert isinstance(df, pd.DataFrame)
        assert list(df.columns) == UsageRecorder.COLUMNS
        assert df["time_s"].tolist() == pytest.approx([0.0, 1.5])
        assert df["permits"].tolist() == [2, 1]

    def test_empty_dataframe(self):
        df = UsageRecorder().to_dataframe()
        assert df.empty
        assert list(df.columns) == UsageRecorder.COLUMNS

    def test_bucket_sums_per_window(self, clock):
        recorder = UsageRecorder(clock)
        limiter = of_rates("api", Rate.per_second(2), clock=clock).with_listener(recorder)
        for _ in range(3):
            limiter.try_consume("api")
        clock.advance(1)
        limiter.try_consume("api")

        buckets = recorder.bucket(window_s=1.0)
        assert buckets["window_start_s"].tolist() == [0.0, 1.0]
        assert buckets["granted"].tolist() == [2, 1]
        assert buckets["rejected"].tolist() == [1, 0]

    def test_bucket_empty(self):
        assert UsageRecorder().bucket().empty

    def test_bucket_rejects_bad_window(self):
        with pytest.raises(ValueError):
            UsageRecorder().bucket(window_s=0)

    def test_clear(self, clock):
        recorder = UsageRecorder(clock)
        recorder.on_consumed("req", "api", 1, None)
        recorder.clear()
        assert recorder.count() == 0

    def test_plot_writes_png(self, clock, test_output_dir):
        recorder = UsageRecorder(clock)
        limiter = of_rates("api", Rate.per_second(3), clock=clock).with_listener(recorder)
        for _ in range(10):
            for _ in range(5):
                limiter.try_consume("api")
            clock.advance(1)

        path = recorder.plot(test_output_dir / "usage.png")

        assert path.exists()
        assert path.stat().st_size > 0

    def test_plot_leaves_backend_alone(self, clock, test_output_dir):
        import matplotlib

        before = matplotlib.get_backend()
        recorder = UsageRecorder(clock)
        recorder.on_consumed("req", "api", 1, None)

        recorder.plot(test_output_dir / "usage.png")

        assert matplotlib.get_backend() == before
