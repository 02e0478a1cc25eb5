from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np
import scipy.sparse as sp


# Volume of a request that is never reused later in its window; sorts last.
UNSEEN_VOLUME = (1 << 64) - 1

HIST_FEATURES = 50


@dataclass(frozen=True)
class Request:
    seq: int
    obj_id: int
    size: int
    cost: float

    @property
    def key(self) -> Tuple[int, int]:
        # Tracked objects are keyed by (id, size): a size change starts a new object
        return (self.obj_id, self.size)


@dataclass
class VolumeEntry:
    idx: int
    volume: int = UNSEEN_VOLUME
    has_next: bool = False


@dataclass
class TraceEntry:
    obj_id: int
    size: int
    cost: float
    admit: bool = False


@dataclass
class WindowStats:
    """OPT outcome for one closed window."""

    window_size: int
    cache_size: int
    hits: int
    byte_hits: int
    byte_sum: int
    admitted_volume: int

    @property
    def hit_rate(self) -> float:
        return self.hits / self.window_size if self.window_size > 0 else 0.0

    @property
    def byte_sum_anomaly(self) -> bool:
        return self.byte_sum <= 0

    @property
    def byte_hit_rate(self) -> float:
        if self.byte_sum_anomaly:
            return 0.0
        return self.byte_hits / self.byte_sum


@dataclass
class ErrorStats:
    cutoff: float
    rows: int
    false_positives: int
    false_negatives: int

    @property
    def fp_rate(self) -> float:
        return self.false_positives / self.rows if self.rows else 0.0

    @property
    def fn_rate(self) -> float:
        return self.false_negatives / self.rows if self.rows else 0.0


@dataclass
class WindowFeatures:
    """Sparse per-request features in CSR layout plus OPT labels.

    indptr/indices are int32 and data float64, the layout handed to the learner.
    """

    labels: np.ndarray
    indptr: np.ndarray
    indices: np.ndarray
    data: np.ndarray
    num_features: int
    negative_capacity: int = 0
    nonpositive_sizes: int = 0
    available_bytes: int = 0
    resident_bytes: int = 0

    @property
    def num_rows(self) -> int:
        return len(self.indptr) - 1

    def to_csr(self) -> sp.csr_matrix:
        return sp.csr_matrix(
            (self.data, self.indices, self.indptr),
            shape=(self.num_rows, self.num_features),
        )
