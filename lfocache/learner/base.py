from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

import numpy as np

from ..opt.models import WindowFeatures


class LearnerError(RuntimeError):
    """A learner call failed; the run cannot continue without a model."""

    def __init__(self, stage: str, window: int, cause: BaseException):
        super().__init__(f"learner {stage} failed in window {window}: {cause}")
        self.stage = stage
        self.window = window


class Learner(Protocol):
    """Binary classifier over window features with structure-preserving refit.

    Model handles are opaque to callers. Hyperparameters belong to the learner
    instance and are passed through to the underlying library untouched.
    """

    params: Dict[str, Any]

    def fit(self, features: WindowFeatures, num_iterations: Optional[int] = None) -> Any:
        """Train a fresh model on the window. num_iterations=0 binds the window's
        data to an empty model without boosting."""

    def predict(self, model: Any, features: WindowFeatures) -> np.ndarray:
        """One admission probability per row."""

    def predict_leaf_assignment(self, model: Any, features: WindowFeatures) -> np.ndarray:
        """int32 array [rows, trees] of leaf indices."""

    def merge(self, target: Any, other: Any) -> Any:
        """Append other's trees to target; returns target."""

    def refit(self, model: Any, leaf_assignment: np.ndarray, features: WindowFeatures) -> Any:
        """Re-estimate leaf outputs against the data bound to model, keeping trees."""


def get_learner(name: str = "lightgbm", params: Optional[Dict[str, Any]] = None) -> Learner:
    if name == "lightgbm":
        from .lgbm import LightGBMLearner

        return LightGBMLearner(params)
    raise ValueError(f"unknown learner: {name!r}")
