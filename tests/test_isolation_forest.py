import math

import numpy as np
import pytest

from egress_sentinel.core.isolation_forest import (
    IsolationForestModel,
    IsolationLeaf,
    IsolationSplit,
    average_path_length,
    iter_leaves,
    tree_to_dict,
)


def tree_depth(node):
    depth = 0
    frontier = [(node, 0)]
    while frontier:
        current, d = frontier.pop()
        depth = max(depth, d)
        if isinstance(current, IsolationSplit):
            frontier.extend([(current.left, d + 1), (current.right, d + 1)])
    return depth


def test_average_path_length_small_values():
    assert average_path_length(0) == 1.0
    assert average_path_length(1) == 1.0
    assert average_path_length(2) == pytest.approx(2 * 0.5772156649 - 1.0, abs=1e-9)


def test_average_path_length_is_increasing():
    values = [average_path_length(n) for n in range(3, 2000)]
    assert all(b > a for a, b in zip(values, values[1:]))


def test_leaf_sizes_account_for_whole_sample():
    rng = np.random.default_rng(0)
    data = rng.normal(size=(300, 4))
    model = IsolationForestModel(num_trees=10, sample_size=128, max_depth=6, random_state=3).train(data)

    assert len(model.trees) == 10
    for tree in model.trees:
        assert sum(leaf.size for leaf in iter_leaves(tree)) == 128
        assert tree_depth(tree) <= 6


def test_max_depth_zero_gives_single_leaf_trees():
    data = np.arange(20, dtype=float).reshape(10, 2)
    model = IsolationForestModel(num_trees=3, sample_size=16, max_depth=0, random_state=1).train(data)
    assert model.trees == (IsolationLeaf(16),) * 3


def test_constant_data_terminates_at_depth_bound():
    data = np.ones((50, 3))
    model = IsolationForestModel(num_trees=2, sample_size=32, max_depth=500, random_state=1).train(data)
    for tree in model.trees:
        assert tree_depth(tree) == 500
        leaves = list(iter_leaves(tree))
        assert sum(leaf.size for leaf in leaves) == 32
        # everything keeps going right; left leaves are empty
        assert sorted(leaf.size for leaf in leaves)[-1] == 32


def test_single_point_dataset_produces_usable_forest():
    model = IsolationForestModel(num_trees=5, sample_size=8, max_depth=4, random_state=1).train([[1.0, 2.0]])
    score = model.predict([1.0, 2.0])
    assert 0.0 <= score <= 1.0


def test_empty_dataset_produces_trivial_forest():
    model = IsolationForestModel(num_trees=4, sample_size=8, max_depth=4).train([])
    assert model.trees == (IsolationLeaf(0),) * 4
    assert model.reference_size == 0
    assert model.predict([1.0, 2.0, 3.0]) == pytest.approx(0.5)


def test_predict_requires_training():
    with pytest.raises(RuntimeError):
        IsolationForestModel().predict([0.0])


def test_negative_max_depth_is_rejected():
    with pytest.raises(ValueError):
        IsolationForestModel(max_depth=-1)


def test_outlier_scores_higher_than_inlier():
    rng = np.random.default_rng(42)
    data = rng.normal(size=(256, 2))
    model = IsolationForestModel(num_trees=100, sample_size=128, max_depth=10, random_state=7).train(data)

    inlier = model.predict([0.0, 0.0])
    outlier = model.predict([8.0, 8.0])
    assert 0.0 <= inlier <= 1.0
    assert 0.0 <= outlier <= 1.0
    assert outlier > inlier


def test_predict_normalizes_by_reference_size():
    data = np.arange(40, dtype=float).reshape(20, 2)
    model = IsolationForestModel(num_trees=3, sample_size=16, max_depth=0, random_state=1).train(data)

    # every path is a bare leaf, so the average path length is exactly 1
    assert model.predict([5.0, 5.0]) == pytest.approx(2 ** (-1 / average_path_length(20)))
    assert model.predict([5.0, 5.0], reference_size=500) == pytest.approx(
        2 ** (-1 / average_path_length(500))
    )


def test_leaf_correction_lengthens_paths():
    data = np.arange(40, dtype=float).reshape(20, 2)
    plain = IsolationForestModel(num_trees=3, sample_size=16, max_depth=0, random_state=1).train(data)
    corrected = IsolationForestModel(
        num_trees=3, sample_size=16, max_depth=0, leaf_correction=True, random_state=1
    ).train(data)

    expected = 2 ** (-(1 + average_path_length(16)) / average_path_length(20))
    assert corrected.predict([5.0, 5.0]) == pytest.approx(expected)
    assert corrected.predict([5.0, 5.0]) < plain.predict([5.0, 5.0])


def test_path_length_counts_edges_plus_leaf():
    tree = IsolationSplit(
        feature=0,
        split_value=5.0,
        left=IsolationLeaf(1),
        right=IsolationSplit(feature=1, split_value=0.0, left=IsolationLeaf(0), right=IsolationLeaf(3)),
    )
    model = IsolationForestModel()
    assert model.path_length(np.array([1.0, 0.0]), tree) == 2.0
    assert model.path_length(np.array([9.0, 1.0]), tree) == 3.0


def test_same_seed_builds_same_forest():
    data = np.random.default_rng(0).normal(size=(100, 3))
    a = IsolationForestModel(num_trees=5, sample_size=32, max_depth=5, random_state=11).train(data)
    b = IsolationForestModel(num_trees=5, sample_size=32, max_depth=5, random_state=11).train(data)
    assert [tree_to_dict(t) for t in a.trees] == [tree_to_dict(t) for t in b.trees]


def test_serialized_forest_scores_identically():
    data = np.random.default_rng(1).normal(size=(100, 3))
    model = IsolationForestModel(num_trees=8, sample_size=32, max_depth=6, random_state=5).train(data)
    restored = IsolationForestModel.from_dict(model.to_dict())

    point = [0.3, -1.2, 2.5]
    assert restored.reference_size == 100
    assert restored.predict(point) == pytest.approx(model.predict(point))
    assert math.isclose(restored.predict(point, reference_size=1000), model.predict(point, reference_size=1000))
