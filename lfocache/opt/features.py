from __future__ import annotations

import math
from collections import deque
from typing import Deque, Dict, List, Sequence

import numpy as np

from .models import HIST_FEATURES, TraceEntry, WindowFeatures


def log_feature(x: float) -> float:
    """round(100 * log2(x)), rounding halves away from zero. Expects x > 0."""
    return float(math.floor(100.0 * math.log2(x) + 0.5))


def derive_features(
    entries: Sequence[TraceEntry],
    cache_size: int,
    hist_features: int = HIST_FEATURES,
) -> WindowFeatures:
    """Replay a labeled window in arrival order and build its feature rows.

    Row layout (sparse, column width hist_features + 3):
      0..k-1            inter-arrival gaps to the k most recent prior requests of the id
      hist_features     object size (log scale)
      hist_features+1   simulated free capacity (log scale), 0 when exhausted
      hist_features+2   request cost

    Free capacity follows the OPT labels: a first admitted request occupies its
    size until a later request to the same id is not admitted.
    """
    available = int(cache_size)
    history: Dict[int, Deque[int]] = {}
    resident: Dict[int, int] = {}
    negative = 0
    nonpositive = 0

    labels: List[float] = []
    indptr: List[int] = [0]
    indices: List[int] = []
    data: List[float] = []

    for i, it in enumerate(entries):
        queue = history.get(it.obj_id)
        if queue is None:
            queue = history[it.obj_id] = deque(maxlen=hist_features)

        labels.append(1.0 if it.admit else 0.0)

        last = i
        for slot, prev in enumerate(queue):
            indices.append(slot)
            data.append(float(last - prev))
            last = prev

        if it.size > 0:
            size_feature = log_feature(it.size)
        else:
            nonpositive += 1
            size_feature = 0.0
        indices.append(hist_features)
        data.append(size_feature)

        if available <= 0:
            if available < 0:
                negative += 1
            free_feature = 0.0
        else:
            free_feature = log_feature(available)
        indices.append(hist_features + 1)
        data.append(free_feature)
        indices.append(hist_features + 2)
        data.append(float(it.cost))

        indptr.append(indptr[-1] + len(queue) + 3)

        if it.obj_id not in resident:
            if it.admit:
                available -= it.size
                resident[it.obj_id] = it.size
        elif not it.admit:
            available += resident.pop(it.obj_id)

        queue.appendleft(i)

    return WindowFeatures(
        labels=np.asarray(labels, dtype=np.float32),
        indptr=np.asarray(indptr, dtype=np.int32),
        indices=np.asarray(indices, dtype=np.int32),
        data=np.asarray(data, dtype=np.float64),
        num_features=hist_features + 3,
        negative_capacity=negative,
        nonpositive_sizes=nonpositive,
        available_bytes=available,
        resident_bytes=sum(resident.values()),
    )
