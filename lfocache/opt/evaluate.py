from __future__ import annotations

import numpy as np

from .models import ErrorStats


def check_error(labels: np.ndarray, scores: np.ndarray, cutoff: float) -> ErrorStats:
    """Count false positives/negatives of predicted scores against OPT labels."""
    labels = np.asarray(labels, dtype=np.float64)
    scores = np.asarray(scores, dtype=np.float64)
    if labels.shape != scores.shape:
        raise ValueError(f"labels and scores differ in shape: {labels.shape} vs {scores.shape}")
    fp = int(np.count_nonzero((labels < cutoff) & (scores >= cutoff)))
    fn = int(np.count_nonzero((labels >= cutoff) & (scores < cutoff)))
    return ErrorStats(cutoff=float(cutoff), rows=int(labels.size), false_positives=fp, false_negatives=fn)
