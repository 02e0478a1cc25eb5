from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import pandas as pd

from lfocache.config import RunConfig
from lfocache.learner.base import Learner, LearnerError
from lfocache.opt.evaluate import check_error
from lfocache.opt.features import derive_features
from lfocache.opt.labeler import calculate_opt
from lfocache.opt.models import ErrorStats, Request, WindowFeatures, WindowStats
from lfocache.opt.window import WindowBuffer

logger = logging.getLogger(__name__)


class Phase(Enum):
    UNINITIALIZED = 0
    TRAINED = 1


@dataclass(frozen=True)
class OrchestratorState:
    """The run's single model handle and its lifecycle phase.

    Returned fresh from every process_window call; callers replace their copy.
    """

    phase: Phase = Phase.UNINITIALIZED
    model: Any = None
    windows: int = 0

    def adopt(self, model: Any) -> "OrchestratorState":
        return replace(self, phase=Phase.TRAINED, model=model, windows=self.windows + 1)


@dataclass
class WindowReport:
    window_id: int
    stats: WindowStats
    negative_capacity: int
    nonpositive_sizes: int
    errors: Optional[ErrorStats]
    update: str
    started: datetime
    finished: datetime
    timings_ms: Dict[str, float] = field(default_factory=dict)

    def as_row(self) -> Dict[str, Any]:
        row = {
            "window": self.window_id,
            "cache_size": self.stats.cache_size,
            "window_size": self.stats.window_size,
            "hit_rate": self.stats.hit_rate,
            "byte_hit_rate": self.stats.byte_hit_rate,
            "byte_sum_anomaly": self.stats.byte_sum_anomaly,
            "negative_capacity": self.negative_capacity,
            "update": self.update,
        }
        if self.errors is not None:
            row.update(cutoff=self.errors.cutoff, fp_rate=self.errors.fp_rate, fn_rate=self.errors.fn_rate)
        return row


def _ms(t0: float) -> float:
    return (time.time() - t0) * 1000.0


def _learner_call(stage: str, window: int, fn: Callable[..., Any], *args, **kwargs) -> Any:
    try:
        return fn(*args, **kwargs)
    except Exception as e:
        raise LearnerError(stage, window, e) from e


def update_model(
    state: OrchestratorState,
    features: WindowFeatures,
    learner: Learner,
    cfg: RunConfig,
    window_id: int,
) -> Tuple[OrchestratorState, str]:
    """Train on the first window; afterwards refit (or retrain) against the new one."""
    if state.phase is Phase.UNINITIALIZED:
        model = _learner_call("fit", window_id, learner.fit, features)
        return state.adopt(model), "fit"

    if cfg.model_update == "retrain":
        model = _learner_call("fit", window_id, learner.fit, features)
        return state.adopt(model), "retrain"

    old = state.model
    fresh = _learner_call("fit", window_id, learner.fit, features, num_iterations=0)
    leaves = _learner_call("predict_leaf_assignment", window_id, learner.predict_leaf_assignment, old, features)
    merged = _learner_call("merge", window_id, learner.merge, fresh, old)
    model = _learner_call("refit", window_id, learner.refit, merged, leaves, features)
    return state.adopt(model), "refit"


def process_window(
    state: OrchestratorState,
    buffer: WindowBuffer,
    learner: Learner,
    cfg: RunConfig,
    on_labeled: Optional[Callable[[int, datetime, WindowStats, float], None]] = None,
) -> Tuple[OrchestratorState, WindowReport]:
    """Label, featurize, evaluate and learn from one closed window.

    on_labeled(window_id, started, stats, opt_ms) runs once OPT labels exist,
    before any learner call.
    """
    window_id = buffer.window_id
    started = datetime.now()
    t_window = time.time()
    timings: Dict[str, float] = {}

    t0 = time.time()
    stats = calculate_opt(buffer, cfg.cache_size)
    timings["opt_ms"] = _ms(t0)
    if stats.byte_sum_anomaly:
        logger.warning("window %d: byte sum is %d, byte hit rate reported as 0", window_id, stats.byte_sum)
    if on_labeled is not None:
        on_labeled(window_id, started, stats, timings["opt_ms"])

    t0 = time.time()
    features = derive_features(buffer.trace, cfg.cache_size, cfg.hist_features)
    timings["features_ms"] = _ms(t0)
    if features.negative_capacity:
        logger.warning("window %d: %d requests saw negative simulated capacity", window_id, features.negative_capacity)

    errors = None
    if state.phase is Phase.TRAINED:
        t0 = time.time()
        scores = _learner_call("predict", window_id, learner.predict, state.model, features)
        errors = check_error(features.labels, scores, cfg.cutoff)
        timings["error_ms"] = _ms(t0)

    t0 = time.time()
    state, update = update_model(state, features, learner, cfg, window_id)
    timings["train_ms"] = _ms(t0)
    timings["window_ms"] = _ms(t_window)

    report = WindowReport(
        window_id=window_id,
        stats=stats,
        negative_capacity=features.negative_capacity,
        nonpositive_sizes=features.nonpositive_sizes,
        errors=errors,
        update=update,
        started=started,
        finished=datetime.now(),
        timings_ms=timings,
    )
    logger.info(
        "window %d: hit_rate=%.4f byte_hit_rate=%.4f update=%s",
        window_id, stats.hit_rate, stats.byte_hit_rate, update,
    )
    logger.debug("window %d timings: %s", window_id, timings)
    return state, report


def run_trace(
    requests: Iterable[Request],
    learner: Learner,
    cfg: RunConfig,
    on_window: Optional[Callable[[WindowReport], None]] = None,
    state: Optional[OrchestratorState] = None,
    on_labeled: Optional[Callable[[int, datetime, WindowStats, float], None]] = None,
) -> Tuple[OrchestratorState, List[WindowReport]]:
    """Replay requests window by window. A trailing partial window is dropped."""
    cfg.validate()
    state = state or OrchestratorState()
    buffer = WindowBuffer(cfg.window_size)
    reports: List[WindowReport] = []
    for req in requests:
        if not buffer.ingest(req):
            continue
        state, report = process_window(state, buffer, learner, cfg, on_labeled=on_labeled)
        buffer.reset()
        reports.append(report)
        if on_window is not None:
            on_window(report)
    if len(buffer):
        logger.info("dropping %d requests of an unfinished window", len(buffer))
    return state, reports


def reports_frame(reports: List[WindowReport]) -> pd.DataFrame:
    return pd.DataFrame([r.as_row() for r in reports])
