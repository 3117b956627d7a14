"""
Benchmarks isolation-forest scoring variants on simulated traffic.

The variants cover the two scoring choices the engine exposes: whether leaves
holding several points get the c(size) path-length correction, and whether
scores are normalized by the training size or by a larger live history size.
"""

import random
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.metrics import accuracy_score, f1_score, precision_score, recall_score

from egress_sentinel.config import EngineConfig
from egress_sentinel.core.descriptor import base_url
from egress_sentinel.core.feature_engineering import FeatureExtractor
from egress_sentinel.core.isolation_forest import IsolationForestModel
from egress_sentinel.core.threshold import ThresholdEstimator
from egress_sentinel.core.traffic_generator import generate_batch


@dataclass
class BenchmarkConfig:
    training_samples: int = 500
    normal_samples: int = 300
    exfiltration_samples: int = 50
    beacon_samples: int = 50
    # live history size used by the "live" normalization variants
    live_history_size: int = 10_000
    seed: int = 7


VARIANTS: Dict[str, Tuple[bool, str]] = {
    "parity": (False, "live"),
    "leaf_correction": (True, "live"),
    "training_normalization": (False, "training"),
    "textbook": (True, "training"),
}


def build_datasets(bench: BenchmarkConfig) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    rng = random.Random(bench.seed)
    extractor = FeatureExtractor()

    # training traffic updates frequencies as it is seen, like the engine does
    frequency: Dict[str, int] = {}
    train_rows = []
    for descriptor in generate_batch("normal", bench.training_samples, rng):
        train_rows.append(extractor.extract(descriptor, frequency))
        endpoint = base_url(descriptor.url)
        frequency[endpoint] = frequency.get(endpoint, 0) + 1

    normal = generate_batch("normal", bench.normal_samples, rng)
    attacks = (
        generate_batch("exfiltration", bench.exfiltration_samples, rng)
        + generate_batch("beacon", bench.beacon_samples, rng)
    )
    X_eval = np.vstack([
        extractor.extract_batch(normal, frequency),
        extractor.extract_batch(attacks, frequency),
    ])
    y_true = np.concatenate([np.zeros(len(normal)), np.ones(len(attacks))])
    return np.vstack(train_rows), X_eval, y_true


def _score_variant(
    config: EngineConfig,
    X_train: np.ndarray,
    X_eval: np.ndarray,
    bench: BenchmarkConfig,
) -> Tuple[np.ndarray, float]:
    model = IsolationForestModel(
        num_trees=config.num_trees,
        sample_size=config.sample_size,
        max_depth=config.max_depth,
        leaf_correction=config.leaf_correction,
        random_state=bench.seed,
    ).train(X_train)
    reference_size = bench.live_history_size if config.normalization == "live" else None

    train_scores = [model.predict(x, reference_size=reference_size) for x in X_train]
    threshold = ThresholdEstimator(config.percentile, config.default_threshold).threshold(train_scores)
    eval_scores = np.array([model.predict(x, reference_size=reference_size) for x in X_eval])
    return eval_scores, threshold


def compare_variants(
    config: Optional[EngineConfig] = None,
    bench: Optional[BenchmarkConfig] = None,
    variants: Optional[List[str]] = None,
) -> pd.DataFrame:
    config = config or EngineConfig()
    bench = bench or BenchmarkConfig()
    X_train, X_eval, y_true = build_datasets(bench)

    rows = []
    for name in variants or list(VARIANTS):
        leaf_correction, normalization = VARIANTS[name]
        variant_cfg = replace(config, leaf_correction=leaf_correction, normalization=normalization)
        scores, threshold = _score_variant(variant_cfg, X_train, X_eval, bench)
        y_pred = (scores > threshold).astype(int)
        rows.append({
            "Variant": name,
            "Threshold": round(threshold, 4),
            "Mean Normal Score": round(float(scores[y_true == 0].mean()), 4),
            "Mean Attack Score": round(float(scores[y_true == 1].mean()), 4),
            "Precision": round(precision_score(y_true, y_pred, zero_division=0), 4),
            "Recall": round(recall_score(y_true, y_pred, zero_division=0), 4),
            "F1-Score": round(f1_score(y_true, y_pred, zero_division=0), 4),
            "Accuracy": round(accuracy_score(y_true, y_pred), 4),
        })
    return pd.DataFrame(rows).set_index("Variant")
