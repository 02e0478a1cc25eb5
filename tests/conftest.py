from __future__ import annotations

import numpy as np
import pytest


class FakeLearner:
    """Records the learner protocol; models are plain dicts with a tree count."""

    def __init__(self, score: float = 0.9, trees: int = 3, fail_stage: str | None = None):
        self.params = {}
        self.score = score
        self.trees = trees
        self.fail_stage = fail_stage
        self.calls = []

    def _record(self, stage, *info):
        self.calls.append((stage,) + info)
        if stage == self.fail_stage:
            raise RuntimeError(f"{stage} exploded")

    def fit(self, features, num_iterations=None):
        self._record("fit", num_iterations)
        trees = 0 if num_iterations == 0 else self.trees
        return {"trees": trees, "rows": features.num_rows}

    def predict(self, model, features):
        self._record("predict")
        return np.full(features.num_rows, self.score)

    def predict_leaf_assignment(self, model, features):
        self._record("predict_leaf_assignment")
        return np.zeros((features.num_rows, model["trees"]), dtype=np.int32)

    def merge(self, target, other):
        self._record("merge")
        return {"trees": target["trees"] + other["trees"], "rows": target["rows"]}

    def refit(self, model, leaf_assignment, features):
        self._record("refit", leaf_assignment.shape)
        return dict(model, refit=True)

    def stages(self):
        return [c[0] for c in self.calls]


@pytest.fixture
def fake_learner():
    return FakeLearner()


@pytest.fixture
def learner_factory():
    return FakeLearner
