"""
tests/conftest.py
==================
Shared pytest fixtures for all corrpath tests.
"""

import pytest

from corrpath.correlation import CorrelationMatrix
from corrpath.model import Edge


# ─── META-ANALYTIC LOYALTY TABLE ("All" sample) ───────────────────

LOYALTY_VARS = ["loyalty", "satisfaction", "value", "quality"]

LOYALTY_PAIRS = {
    ("loyalty", "satisfaction"): (0.734, 63671),
    ("loyalty", "value"):        (0.545, 81110),
    ("loyalty", "quality"):      (0.575, 52764),
    ("satisfaction", "value"):   (0.708, 37150),
    ("satisfaction", "quality"): (0.711, 34677),
    ("value", "quality"):        (0.561, 58390),
}


@pytest.fixture
def loyalty_vars():
    return list(LOYALTY_VARS)


@pytest.fixture
def loyalty_pairs():
    return dict(LOYALTY_PAIRS)


@pytest.fixture
def loyalty_matrix():
    return CorrelationMatrix.from_pairs(LOYALTY_VARS, LOYALTY_PAIRS)


@pytest.fixture
def loyalty_edges():
    return [
        Edge("value", "satisfaction"),
        Edge("quality", "satisfaction"),
        Edge("satisfaction", "loyalty"),
        Edge("value", "loyalty"),
        Edge("quality", "loyalty"),
    ]


# ─── SMALL MATRICES ───────────────────────────────────────────────


@pytest.fixture
def chain_matrix():
    """a -> b -> c where r(a,c) is far from r(a,b) * r(b,c)."""
    return CorrelationMatrix.from_pairs(
        ["a", "b", "c"],
        {("a", "b"): (0.5, 100), ("b", "c"): (0.4, 100), ("a", "c"): (0.5, 100)},
    )


@pytest.fixture
def chain_edges():
    return [Edge("a", "b"), Edge("b", "c")]
