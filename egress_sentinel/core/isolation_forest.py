"""
Isolation forest over raw request feature vectors.

Each tree isolates points through random axis-aligned splits; points that are
easy to isolate end up on short paths and receive scores close to 1.
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

import numpy as np


@dataclass(frozen=True)
class IsolationLeaf:
    size: int


@dataclass(frozen=True)
class IsolationSplit:
    feature: int
    split_value: float
    left: "IsolationNode"
    right: "IsolationNode"


IsolationNode = Union[IsolationLeaf, IsolationSplit]


def average_path_length(n: int) -> float:
    """c(n): expected path length of an unsuccessful BST search over n points."""
    if n <= 1:
        return 1.0
    return 2.0 * (math.log(n - 1) + np.euler_gamma) - 2.0 * (n - 1) / n


def tree_to_dict(node: IsolationNode) -> dict:
    if isinstance(node, IsolationLeaf):
        return {"size": node.size}
    return {
        "feature": node.feature,
        "split_value": node.split_value,
        "left": tree_to_dict(node.left),
        "right": tree_to_dict(node.right),
    }


def tree_from_dict(data: dict) -> IsolationNode:
    if "feature" not in data:
        return IsolationLeaf(size=int(data["size"]))
    return IsolationSplit(
        feature=int(data["feature"]),
        split_value=float(data["split_value"]),
        left=tree_from_dict(data["left"]),
        right=tree_from_dict(data["right"]),
    )


def iter_leaves(node: IsolationNode):
    stack = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, IsolationLeaf):
            yield current
        else:
            stack.append(current.right)
            stack.append(current.left)


class IsolationForestModel:
    def __init__(
        self,
        num_trees: int = 200,
        sample_size: int = 512,
        max_depth: int = 15,
        leaf_correction: bool = False,
        random_state: Optional[Union[int, np.random.Generator]] = None,
    ):
        if max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {max_depth}")
        self.num_trees = num_trees
        self.sample_size = sample_size
        self.max_depth = max_depth
        self.leaf_correction = leaf_correction
        self._rng = np.random.default_rng(random_state)
        self.trees: Tuple[IsolationNode, ...] = ()
        self.reference_size = 0

    @property
    def is_trained(self) -> bool:
        return bool(self.trees)

    def train(self, dataset: Sequence[np.ndarray]) -> "IsolationForestModel":
        data = np.asarray(dataset, dtype=float)
        if data.ndim == 1:
            data = data.reshape(-1, 1) if data.size else data.reshape(0, 0)

        trees = []
        for _ in range(self.num_trees):
            if len(data) == 0:
                trees.append(IsolationLeaf(size=0))
                continue
            # bootstrap sample, drawn with replacement
            sample = data[self._rng.integers(0, len(data), size=self.sample_size)]
            trees.append(self._build_tree(sample))

        self.trees = tuple(trees)
        self.reference_size = len(data)
        return self

    def _build_tree(self, data: np.ndarray) -> IsolationNode:
        # Nodes are laid out in pre-order (left before right) without recursion,
        # then frozen bottom-up: every child index is larger than its parent's.
        records = []
        work = [(data, 0, None, None)]
        while work:
            subset, depth, parent, side = work.pop()
            index = len(records)
            if parent is not None:
                records[parent][side] = index

            if len(subset) <= 1 or depth >= self.max_depth:
                records.append([len(subset)])
                continue

            feature = int(self._rng.integers(0, subset.shape[1]))
            column = subset[:, feature]
            low, high = column.min(), column.max()
            split_value = float(low + self._rng.random() * (high - low))

            # a constant column sends everything right; the depth bound ends the chain
            goes_left = column < split_value
            records.append([feature, split_value, None, None])
            work.append((subset[~goes_left], depth + 1, index, 3))
            work.append((subset[goes_left], depth + 1, index, 2))

        nodes = [None] * len(records)
        for index in range(len(records) - 1, -1, -1):
            record = records[index]
            if len(record) == 1:
                nodes[index] = IsolationLeaf(size=record[0])
            else:
                feature, split_value, left, right = record
                nodes[index] = IsolationSplit(feature, split_value, nodes[left], nodes[right])
        return nodes[0]

    def path_length(self, point: np.ndarray, tree: IsolationNode) -> float:
        length = 0.0
        node = tree
        while isinstance(node, IsolationSplit):
            length += 1.0
            node = node.left if point[node.feature] < node.split_value else node.right
        length += 1.0
        if self.leaf_correction and node.size > 1:
            length += average_path_length(node.size)
        return length

    def predict(self, point: Sequence[float], reference_size: Optional[int] = None) -> float:
        if not self.trees:
            raise RuntimeError("IsolationForestModel has not been trained.")
        point = np.asarray(point, dtype=float)
        avg_path_length = float(np.mean([self.path_length(point, tree) for tree in self.trees]))
        n = self.reference_size if reference_size is None else reference_size
        return 2.0 ** (-avg_path_length / average_path_length(n))

    def to_dict(self) -> dict:
        return {
            "num_trees": self.num_trees,
            "sample_size": self.sample_size,
            "max_depth": self.max_depth,
            "leaf_correction": self.leaf_correction,
            "reference_size": self.reference_size,
            "trees": [tree_to_dict(tree) for tree in self.trees],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "IsolationForestModel":
        model = cls(
            num_trees=int(data["num_trees"]),
            sample_size=int(data["sample_size"]),
            max_depth=int(data["max_depth"]),
            leaf_correction=bool(data.get("leaf_correction", False)),
        )
        model.trees = tuple(tree_from_dict(tree) for tree in data["trees"])
        model.reference_size = int(data.get("reference_size", 0))
        return model
