"""
Shared fixtures for the egress_sentinel test suite.
"""

import pytest

from egress_sentinel.config import EngineConfig
from egress_sentinel.core.descriptor import RequestDescriptor


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start_ms: float = 1_700_000_000_000.0):
        self.now = start_ms

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fast_config():
    # small forest so the suite stays quick
    return EngineConfig(num_trees=20, sample_size=64, max_depth=8, random_seed=1234)


def diverse_descriptor(i: int) -> RequestDescriptor:
    return RequestDescriptor(
        url=f"https://api{i % 7}.example.com/v1/items/{i}?page={i}&size={i % 5}",
        method="GET" if i % 3 else "POST",
        headers={"Accept": "application/json", "User-Agent": "test-agent/" + "x" * (i % 4)},
        body=None if i % 3 else f'{{"n": {i}}}',
    )


@pytest.fixture
def make_descriptor():
    def _make(url="https://api.example.com/v1/items", method="GET", headers=None, body=None):
        return RequestDescriptor(url=url, method=method, headers=headers or {}, body=body)

    return _make


@pytest.fixture
def diverse():
    return diverse_descriptor
