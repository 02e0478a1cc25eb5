from __future__ import annotations

import ctypes
from typing import Any, Dict, Optional

import lightgbm as lgb
import numpy as np
from lightgbm.basic import _LIB, _safe_call

from ..config import DEFAULTS
from ..opt.models import WindowFeatures


class LightGBMLearner:
    """Gradient-boosted trees via LightGBM.

    Boosters are created directly on a window's Dataset and boosted one iteration
    at a time, so every booster keeps its training data bound. Merge and refit go
    through the C API the same way lightgbm.Booster.refit does internally, but as
    separate steps so the leaf assignment can come from the previous model.
    """

    def __init__(self, params: Optional[Dict[str, Any]] = None):
        self.params: Dict[str, Any] = dict(DEFAULTS['learner'])
        if params:
            self.params.update(params)

    @property
    def num_iterations(self) -> int:
        return int(self.params.get('num_iterations', 100))

    def _dataset(self, features: WindowFeatures) -> lgb.Dataset:
        return lgb.Dataset(
            features.to_csr(),
            label=features.labels,
            params=dict(self.params),
        )

    def fit(self, features: WindowFeatures, num_iterations: Optional[int] = None) -> lgb.Booster:
        rounds = self.num_iterations if num_iterations is None else int(num_iterations)
        booster = lgb.Booster(params=dict(self.params), train_set=self._dataset(features))
        for _ in range(rounds):
            if booster.update():
                break
        return booster

    def predict(self, model: lgb.Booster, features: WindowFeatures) -> np.ndarray:
        scores = model.predict(features.to_csr())
        return np.asarray(scores, dtype=np.float64).reshape(-1)

    def predict_leaf_assignment(self, model: lgb.Booster, features: WindowFeatures) -> np.ndarray:
        leaves = model.predict(features.to_csr(), pred_leaf=True)
        return np.asarray(leaves, dtype=np.int32).reshape(features.num_rows, -1)

    def merge(self, target: lgb.Booster, other: lgb.Booster) -> lgb.Booster:
        # other's trees are placed ahead of target's own
        _safe_call(_LIB.LGBM_BoosterMerge(target._handle, other._handle))
        return target

    def refit(self, model: lgb.Booster, leaf_assignment: np.ndarray, features: WindowFeatures) -> lgb.Booster:
        leaves = np.ascontiguousarray(leaf_assignment, dtype=np.int32)
        if leaves.ndim == 1:
            leaves = leaves.reshape(-1, 1)
        nrow, ncol = leaves.shape
        if nrow != features.num_rows:
            raise ValueError(f"leaf assignment has {nrow} rows, window has {features.num_rows}")
        _safe_call(
            _LIB.LGBM_BoosterRefit(
                model._handle,
                leaves.ctypes.data_as(ctypes.POINTER(ctypes.c_int32)),
                ctypes.c_int32(nrow),
                ctypes.c_int32(ncol),
            )
        )
        return model
