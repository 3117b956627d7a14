import math

import pytest

from egress_sentinel.core.threshold import ThresholdEstimator


def test_empty_history_uses_default():
    assert ThresholdEstimator().threshold([]) == 0.8
    assert ThresholdEstimator(default_threshold=0.7).threshold([]) == 0.7


@pytest.mark.parametrize("n", [1, 7, 10, 33, 1000])
def test_threshold_is_sorted_value_at_percentile_index(n):
    scores = [((i * 37) % n) / n for i in range(n)]
    expected = sorted(scores)[math.floor(0.95 * n)]
    assert ThresholdEstimator().threshold(scores) == expected


def test_threshold_follows_recent_distribution():
    estimator = ThresholdEstimator()
    low = estimator.threshold([0.40 + i * 0.001 for i in range(100)])
    high = estimator.threshold([0.70 + i * 0.001 for i in range(100)])
    assert high > low


def test_full_percentile_is_clamped_to_maximum():
    assert ThresholdEstimator(percentile=1.0).threshold([0.1, 0.9, 0.5]) == 0.9
