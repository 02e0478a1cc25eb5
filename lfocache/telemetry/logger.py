from __future__ import annotations

import os
from typing import Any, Dict, List

import pandas as pd

from lfocache.sim.orchestrator import WindowReport

TIMING_KEYS = ("opt_ms", "features_ms", "error_ms", "train_ms", "window_ms")


class TelemetryLogger:
    """Appends per-window rows to CSV files under base_dir.

    windows.csv  OPT hit statistics and anomaly counters
    errors.csv   prediction error of the previous window's model
    timings.csv  per-stage wall time in milliseconds
    """

    def __init__(self, base_dir: str = "telemetry"):
        self.base_dir = base_dir
        os.makedirs(base_dir, exist_ok=True)

    def _append(self, name: str, rows: List[Dict[str, Any]]):
        if not rows:
            return
        path = os.path.join(self.base_dir, f"{name}.csv")
        pd.DataFrame(rows).to_csv(path, mode="a", header=not os.path.exists(path), index=False)

    def log_window(self, report: WindowReport):
        s = report.stats
        self._append("windows", [{
            "window": report.window_id,
            "cache_size": s.cache_size,
            "window_size": s.window_size,
            "hits": s.hits,
            "byte_hits": s.byte_hits,
            "byte_sum": s.byte_sum,
            "hit_rate": s.hit_rate,
            "byte_hit_rate": s.byte_hit_rate,
            "byte_sum_anomaly": s.byte_sum_anomaly,
            "negative_capacity": report.negative_capacity,
            "nonpositive_sizes": report.nonpositive_sizes,
            "update": report.update,
        }])
        if report.errors is not None:
            e = report.errors
            self._append("errors", [{
                "window": report.window_id,
                "cutoff": e.cutoff,
                "rows": e.rows,
                "false_positives": e.false_positives,
                "false_negatives": e.false_negatives,
                "fp_rate": e.fp_rate,
                "fn_rate": e.fn_rate,
            }])
        timings = {k: report.timings_ms.get(k) for k in TIMING_KEYS}
        self._append("timings", [{"window": report.window_id, **timings}])
