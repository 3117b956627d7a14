"""
Dynamic anomaly threshold from a high empirical quantile of recent scores.
"""

import math
from typing import Sequence

import numpy as np


class ThresholdEstimator:
    def __init__(self, percentile: float = 0.95, default_threshold: float = 0.8):
        self.percentile = percentile
        self.default_threshold = default_threshold

    def threshold(self, scores: Sequence[float]) -> float:
        if len(scores) == 0:
            return self.default_threshold
        ordered = np.sort(np.asarray(scores, dtype=float))
        index = min(int(math.floor(self.percentile * len(ordered))), len(ordered) - 1)
        return float(ordered[index])
