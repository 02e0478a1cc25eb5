from __future__ import annotations

import numpy as np
import pandas as pd


def synthetic_object_sizes(n_objects: int, rng: np.random.Generator, median_bytes: int = 32 * 1024) -> np.ndarray:
    # Heavy-tailed object sizes, at least one byte
    sizes = rng.lognormal(mean=np.log(median_bytes), sigma=1.5, size=n_objects)
    return np.maximum(1, sizes.astype(np.int64))


def synthetic_trace(
    n_req: int = 10_000,
    n_objects: int = 1_000,
    zipf_alpha: float = 0.9,
    seed: int = 42,
    unit_cost: bool = True,
) -> pd.DataFrame:
    """Zipf-popular request trace with stable per-object sizes.

    Columns: seq (from 1), id, size, cost. With unit_cost=False the cost is the
    object size, which makes the cost feature a byte-miss penalty.
    """
    rng = np.random.default_rng(seed)
    ranks = np.arange(1, n_objects + 1, dtype=np.float64)
    popularity = ranks ** (-float(zipf_alpha))
    popularity /= popularity.sum()
    ids = rng.choice(n_objects, size=n_req, p=popularity)
    sizes = synthetic_object_sizes(n_objects, rng)[ids]
    cost = np.ones(n_req, dtype=np.float64) if unit_cost else sizes.astype(np.float64)
    return pd.DataFrame({
        "seq": np.arange(1, n_req + 1, dtype=np.int64),
        "id": ids.astype(np.int64),
        "size": sizes,
        "cost": cost,
    })


def scripted_trace(rows) -> pd.DataFrame:
    """Trace frame from (id, size, cost) tuples, numbering requests from 1."""
    rows = list(rows)
    return pd.DataFrame.from_records(
        [(i + 1, obj_id, size, cost) for i, (obj_id, size, cost) in enumerate(rows)],
        columns=["seq", "id", "size", "cost"],
    )
