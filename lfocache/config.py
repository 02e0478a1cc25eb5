from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Any

import yaml


UPDATE_MODES = ('refit', 'retrain')

DEFAULTS = {
    'cache_size': 1 << 30,
    'window_size': 1_000_000,
    'cutoff': 0.5,
    'hist_features': 50,
    'model_update': 'refit',
    'learner': {
        'boosting': 'gbdt',
        'objective': 'binary',
        'metric': 'binary_logloss,auc',
        'metric_freq': 1,
        'is_provide_training_metric': True,
        'max_bin': 255,
        'num_iterations': 50,
        'learning_rate': 0.1,
        'num_leaves': 31,
        'tree_learner': 'serial',
        'num_threads': 40,
        'feature_fraction': 0.8,
        'bagging_freq': 5,
        'bagging_fraction': 0.8,
        'min_data_in_leaf': 50,
        'min_sum_hessian_in_leaf': 5.0,
        'is_enable_sparse': True,
        'two_round': False,
        'save_binary': False,
        'verbose': -1,
    },
    'telemetry': {
        'enabled': False,
        'base_dir': 'telemetry',
    },
}


def load_yaml(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        return {}
    with open(path, 'r') as f:
        return yaml.safe_load(f) or {}


def merge_dict(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(a)
    for k, v in b.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = merge_dict(out[k], v)
        else:
            out[k] = v
    return out


def load_config(runtime_path: str = 'configs/runtime.yaml', staged_path: str | None = None) -> Dict[str, Any]:
    cfg = dict(DEFAULTS)
    if staged_path and os.path.exists(staged_path):
        cfg = merge_dict(cfg, load_yaml(staged_path))
    cfg = merge_dict(cfg, load_yaml(runtime_path))
    return cfg


# Typed config wrappers
@dataclass
class LearnerConfig:
    params: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULTS['learner']))


@dataclass
class TelemetryConfig:
    enabled: bool = False
    base_dir: str = 'telemetry'


@dataclass
class RunConfig:
    cache_size: int = 1 << 30
    window_size: int = 1_000_000
    cutoff: float = 0.5
    hist_features: int = 50
    model_update: str = 'refit'
    learner: LearnerConfig = field(default_factory=LearnerConfig)
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)

    def validate(self) -> "RunConfig":
        if self.window_size <= 0:
            raise ValueError(f"window_size must be positive, got {self.window_size}")
        if self.cache_size < 0:
            raise ValueError(f"cache_size must be non-negative, got {self.cache_size}")
        if self.hist_features < 0:
            raise ValueError(f"hist_features must be non-negative, got {self.hist_features}")
        if not 0.0 <= self.cutoff <= 1.0:
            raise ValueError(f"cutoff must be within [0, 1], got {self.cutoff}")
        if self.model_update not in UPDATE_MODES:
            raise ValueError(f"model_update must be one of {UPDATE_MODES}, got {self.model_update!r}")
        return self


def _get(d: Dict[str, Any], key: str, default):
    return d.get(key, default)


def load_config_typed(runtime_path: str = 'configs/runtime.yaml', staged_path: str | None = None) -> RunConfig:
    raw = load_config(runtime_path=runtime_path, staged_path=staged_path)
    learner = LearnerConfig(params=dict(_get(raw, 'learner', {})))
    telemetry = TelemetryConfig(
        enabled=bool(_get(_get(raw, 'telemetry', {}), 'enabled', False)),
        base_dir=str(_get(_get(raw, 'telemetry', {}), 'base_dir', 'telemetry')),
    )
    return RunConfig(
        cache_size=int(_get(raw, 'cache_size', 1 << 30)),
        window_size=int(_get(raw, 'window_size', 1_000_000)),
        cutoff=float(_get(raw, 'cutoff', 0.5)),
        hist_features=int(_get(raw, 'hist_features', 50)),
        model_update=str(_get(raw, 'model_update', 'refit')),
        learner=learner,
        telemetry=telemetry,
    ).validate()
