"""
Engine-wide configuration.
"""

import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional

NORMALIZATION_MODES = ("live", "training")

ENV_PREFIX = "EGRESS_SENTINEL_"


@dataclass(frozen=True)
class EngineConfig:
    # telemetry bounds
    max_request_history: int = 10_000
    max_score_history: int = 1_000

    # isolation forest
    num_trees: int = 200
    sample_size: int = 512
    max_depth: int = 15
    leaf_correction: bool = False
    normalization: str = "live"
    random_seed: Optional[int] = None

    # retrain policy
    min_training_size: int = 100
    retrain_interval_ms: int = 3_600_000

    # dynamic threshold
    percentile: float = 0.95
    default_threshold: float = 0.8

    def __post_init__(self):
        for name in ("max_request_history", "max_score_history", "num_trees", "sample_size"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1, got {getattr(self, name)}")
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {self.max_depth}")
        if self.min_training_size < 0:
            raise ValueError(f"min_training_size must be >= 0, got {self.min_training_size}")
        if self.min_training_size > self.max_request_history:
            # the bounded history could never reach the training minimum
            raise ValueError(
                f"min_training_size ({self.min_training_size}) exceeds "
                f"max_request_history ({self.max_request_history})"
            )
        if self.retrain_interval_ms < 0:
            raise ValueError(f"retrain_interval_ms must be >= 0, got {self.retrain_interval_ms}")
        if not 0.0 <= self.percentile <= 1.0:
            raise ValueError(f"percentile must be within [0, 1], got {self.percentile}")
        if self.normalization not in NORMALIZATION_MODES:
            raise ValueError(
                f"normalization must be one of {NORMALIZATION_MODES}, got {self.normalization!r}"
            )


def _coerce(raw: str, default):
    if isinstance(default, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return raw


def load_config(environ: Optional[Mapping[str, str]] = None) -> EngineConfig:
    """
    Build an EngineConfig from EGRESS_SENTINEL_* environment variables.

    Unset variables keep their defaults, e.g. EGRESS_SENTINEL_NUM_TREES=50.
    """
    environ = os.environ if environ is None else environ
    overrides = {}
    for f in fields(EngineConfig):
        raw = environ.get(ENV_PREFIX + f.name.upper())
        if raw is None:
            continue
        if f.name == "random_seed":
            overrides[f.name] = int(raw) if raw.strip() else None
        else:
            overrides[f.name] = _coerce(raw, f.default)
    return EngineConfig(**overrides)


DEFAULT_CONFIG = EngineConfig()
