"""Recording usage events for analysis.

``UsageRecorder`` is a ``UsageListener`` that keeps every notification it
receives. The records can be exported as a pandas DataFrame, aggregated into
fixed time windows, or plotted.

Example::

    recorder = UsageRecorder(clock)
    limiter = limiter.with_listener(recorder)
    ...
    print(recorder.bucket(window_s=1.0))
    recorder.plot("usage.png")
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

from limitree.core.clock import Clock, SystemClock
from limitree.core.temporal import Instant
from limitree.listener import UsageListener


@dataclass(frozen=True)
class UsageRecord:
    """One node-level attempt.

    Attributes:
        time: When the attempt was reported.
        resource_id: Key the permits were consumed under.
        permits: Permits requested.
        limit: The node's configured limit.
        rejected: True if the attempt was denied.
    """

    time: Instant
    resource_id: Any
    permits: int
    limit: Any
    rejected: bool


class UsageRecorder(UsageListener):
    """Thread-safe in-memory usage log.

    A rejection is reported as ``on_consumed`` followed by ``on_rejected``;
    the recorder folds the pair into a single rejected record.
    """

    COLUMNS = ["time_s", "resource_id", "permits", "limit", "rejected"]

    def __init__(self, clock: Clock | None = None):
        self._clock = clock if clock is not None else SystemClock()
        self._records: list[UsageRecord] = []
        self._lock = threading.Lock()

    def on_consumed(self, request: Any, resource_id: Any, permits: int, limit: Any) -> None:
        record = UsageRecord(self._clock.now, resource_id, permits, limit, False)
        with self._lock:
            self._records.append(record)

    def on_rejected(self, request: Any, resource_id: Any, permits: int, limit: Any) -> None:
        with self._lock:
            for index in range(len(self._records) - 1, -1, -1):
                last = self._records[index]
                if not last.rejected and last.resource_id == resource_id and last.permits == permits:
                    self._records[index] = UsageRecord(last.time, resource_id, permits, limit, True)
                    return
            self._records.append(UsageRecord(self._clock.now, resource_id, permits, limit, True))

    @property
    def records(self) -> list[UsageRecord]:
        with self._lock:
            return list(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def count(self, rejected: bool | None = None) -> int:
        """Number of records, optionally only granted or only rejected ones."""
        with self._lock:
            if rejected is None:
                return len(self._records)
            return sum(1 for record in self._records if record.rejected == rejected)

    def to_dataframe(self) -> pd.DataFrame:
        """All records, one row each, in the order they were reported."""
        rows = [
            (r.time.to_seconds(), r.resource_id, r.permits, str(r.limit), r.rejected)
            for r in self.records
        ]
        return pd.DataFrame(rows, columns=self.COLUMNS)

    def bucket(self, window_s: float = 1.0) -> pd.DataFrame:
        """Granted and rejected permits per resource and time window.

        Args:
            window_s: Width of each window in seconds.

        Returns:
            DataFrame with columns ``window_start_s``, ``resource_id``,
            ``granted`` and ``rejected``.
        """
        if window_s <= 0:
            raise ValueError(f"window_s must be > 0, got {window_s}")
        df = self.to_dataframe()
        columns = ["window_start_s", "resource_id", "granted", "rejected"]
        if df.empty:
            return pd.DataFrame(columns=columns)
        df["window_start_s"] = (df["time_s"] // window_s) * window_s
        df["granted"] = df["permits"].where(~df["rejected"], 0)
        df["rejected"] = df["permits"].where(df["rejected"], 0)
        grouped = (
            df.groupby(["window_start_s", "resource_id"], as_index=False)[["granted", "rejected"]]
            .sum()
            .sort_values(["window_start_s", "resource_id"])
            .reset_index(drop=True)
        )
        return grouped[columns]

    def plot(self, path: str | Path, window_s: float = 1.0, title: str = "Permit usage") -> Path:
        """Plot granted vs rejected permits per window and save to ``path``."""
        from matplotlib.backends.backend_agg import FigureCanvasAgg
        from matplotlib.figure import Figure

        buckets = self.bucket(window_s)
        totals = buckets.groupby("window_start_s")[["granted", "rejected"]].sum()

        fig = Figure(figsize=(10, 4))
        FigureCanvasAgg(fig)
        ax = fig.subplots()
        if not totals.empty:
            ax.bar(totals.index, totals["granted"], width=window_s * 0.9, align="edge", label="granted", color="tab:green")
            ax.bar(
                totals.index,
                totals["rejected"],
                width=window_s * 0.9,
                align="edge",
                bottom=totals["granted"],
                label="rejected",
                color="tab:red",
            )
        ax.set_xlabel("Time (s)")
        ax.set_ylabel("Permits")
        ax.set_title(title)
        ax.legend()
        ax.grid(True, alpha=0.3)

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        fig.tight_layout()
        fig.savefig(path, dpi=100)
        return path
