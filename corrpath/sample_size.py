"""
corrpath/sample_size.py
=======================
Collapse pairwise sample sizes into the single N used by the chi-square.

Pairwise Ns in a meta-analytic correlation table are usually unequal. The
harmonic mean is the default effective N: it sits between the minimum and the
arithmetic mean, penalizing uneven tables without letting one small pair
dominate. ``"min"`` is available as the most conservative choice.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable

from corrpath.config import N_METHODS
from corrpath.correlation import CorrelationMatrix, normalize_name

logger = logging.getLogger(__name__)


def pairwise_ns(variables: Iterable[str], matrix: CorrelationMatrix) -> list[float]:
    """Reconciled n of every unordered pair, skipping pairs without a valid n."""
    names = [normalize_name(v) for v in variables]
    ns: list[float] = []
    for i, a in enumerate(names):
        for b in names[i + 1:]:
            n = matrix.pair_n(a, b)
            if n is not None and math.isfinite(n):
                ns.append(n)
    return ns


def harmonic_mean(ns: list[float]) -> float:
    if not ns:
        return math.nan
    return len(ns) / sum(1.0 / n for n in ns)


def compute_total_n(
    variables: Iterable[str],
    matrix: CorrelationMatrix,
    method: str = "harmonic",
) -> float:
    """
    Aggregate pairwise sample sizes into one total N.

    Parameters:
        variables: Variables whose pairs are collected
        matrix: Correlation matrix holding pairwise n
        method: "harmonic" or "min"

    Returns:
        Total N, or NaN when no pair has a valid n (callers treat NaN as fatal)
    """
    if method not in N_METHODS:
        raise ValueError(f"method must be one of {N_METHODS}, got '{method}'")

    ns = pairwise_ns(variables, matrix)
    if not ns:
        logger.debug("No valid pairwise n found")
        return math.nan

    total = min(ns) if method == "min" else harmonic_mean(ns)
    logger.debug("Total N (%s) over %d pair(s): %.3f", method, len(ns), total)
    return total
