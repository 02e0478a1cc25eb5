from __future__ import annotations

import os
import time
from datetime import datetime
from typing import Optional, TextIO

from lfocache.config import RunConfig
from lfocache.opt.models import WindowStats
from lfocache.sim.orchestrator import WindowReport


def _ctime(ts: datetime) -> str:
    return ts.strftime("%a %b %d %H:%M:%S %Y")


def default_result_path(trace_path: str, now: Optional[float] = None) -> str:
    return f"{trace_path}.result.{int(now if now is not None else time.time())}"


class ResultWriter:
    """Human-readable result stream, one block per processed window.

    Per window: the OPT line `cache window hit_rate byte_hit_rate`, and once a
    model exists the error line `cache window cutoff fp_rate fn_rate`, framed by
    timestamped start/finish markers and per-stage timings.
    """

    def __init__(self, stream: TextIO):
        self.stream = stream
        self._labeled: Optional[int] = None

    @classmethod
    def open(cls, path: str) -> "ResultWriter":
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        return cls(open(path, "w"))

    def close(self):
        self.stream.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _line(self, text: str = ""):
        self.stream.write(text + "\n")

    def write_header(self, trace_name: str, cfg: RunConfig, started: Optional[datetime] = None):
        self._line(f"Start: {_ctime(started or datetime.now())}")
        self._line(f"{trace_name} {cfg.cache_size} {cfg.window_size} {cfg.cutoff:g}")
        self._line()
        self.stream.flush()

    def write_labeled(self, window_id: int, started: datetime, s: WindowStats, opt_ms: float):
        """Start marker and OPT line, written as soon as the window is labeled."""
        self._line(f"Start processing window {window_id}: {_ctime(started)}")
        self._line(f"{s.cache_size} {s.window_size} {s.hit_rate:g} {s.byte_hit_rate:g}")
        if s.byte_sum_anomaly:
            self._line(f"Non-positive window byte sum: {s.byte_sum}")
        self._line(f"Calculate OPT: {opt_ms:.0f} ms")
        self._labeled = window_id
        self.stream.flush()

    def write_window(self, report: WindowReport):
        s = report.stats
        t = report.timings_ms
        if self._labeled != report.window_id:
            self.write_labeled(report.window_id, report.started, s, t.get("opt_ms", 0.0))
        self._labeled = None
        if report.negative_capacity > 0:
            self._line(f"Negative cache size: {report.negative_capacity}")
        self._line(f"Derive features: {t.get('features_ms', 0.0):.0f} ms")
        if report.errors is not None:
            e = report.errors
            self._line(f"{s.cache_size} {s.window_size} {e.cutoff:g} {e.fp_rate:g} {e.fn_rate:g}")
            self._line(f"Check error: {t.get('error_ms', 0.0):.0f} ms")
        if report.update == "refit":
            self._line("Refit existing booster")
        elif report.update == "retrain":
            self._line("Train a new booster")
        self._line(f"Train model: {t.get('train_ms', 0.0):.0f} ms")
        self._line(f"Finish processing window {report.window_id}: {_ctime(report.finished)}")
        self._line(f"Process window: {t.get('window_ms', 0.0):.0f} ms")
        self._line()
        self.stream.flush()
