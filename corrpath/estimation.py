"""
corrpath/estimation.py
======================
Recursive path estimator: one standardized regression per endogenous variable,
computed from correlations alone.

For an outcome y with parents X:

    beta = Rxx^-1 rXy        R2 = rXy . beta        residual = max(eps, 1 - R2)

Each regression reads only the observed matrix, so the equations are
independent and can be spread over worker threads.

Result structure
----------------
PathEstimates(
    coefficients      : list[Coefficient(source, target, beta)],  # variable order, parent order
    r2                : {endogenous: R2},
    residual_variance : {endogenous: 1 - R2 floored at eps},
)
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

import numpy as np

from corrpath import linalg
from corrpath.config import EngineConfig, resolve
from corrpath.correlation import CorrelationMatrix, normalize_name
from corrpath.errors import MissingDataError
from corrpath.model import Edge, endogenous_variables, parents_of

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Coefficient:
    source: str
    target: str
    beta: float


@dataclass(frozen=True)
class PathEstimates:
    coefficients: list[Coefficient] = field(default_factory=list)
    r2: dict[str, float] = field(default_factory=dict)
    residual_variance: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class _Equation:
    outcome: str
    parents: list[str]
    beta: np.ndarray
    r2: float


def _observed_r(matrix: CorrelationMatrix, a: str, b: str) -> float:
    r = matrix.r(a, b)
    if r is None or not math.isfinite(r):
        raise MissingDataError(f"No usable correlation between {a} and {b}.", pair=(a, b))
    return r


def _solve_equation(
    outcome: str,
    parents: list[str],
    matrix: CorrelationMatrix,
    cfg: EngineConfig,
) -> _Equation:
    Rxx = np.array([[_observed_r(matrix, a, b) for b in parents] for a in parents])
    rXy = np.array([_observed_r(matrix, a, outcome) for a in parents])

    Rxx_inv = linalg.inverse(
        Rxx,
        context=f"parent-correlation submatrix for path estimation of {outcome}",
        tolerance=cfg.pivot_tolerance,
    )
    beta = linalg.mat_vec(Rxx_inv, rXy)
    r2 = linalg.dot(rXy, beta)
    logger.debug("%s ~ %s: R2=%.4f", outcome, " + ".join(parents), r2)
    return _Equation(outcome, parents, beta, r2)


def estimate(
    variables: Iterable[str],
    matrix: CorrelationMatrix,
    edges: Sequence[Edge],
    config: Optional[EngineConfig] = None,
    max_workers: Optional[int] = None,
) -> PathEstimates:
    """
    Estimate standardized path coefficients for every endogenous variable.

    Parameters:
        variables: Ordered variable names
        matrix: Reconciled correlation matrix
        edges: Normalized directed edges
        config: Numerical tolerances. Defaults to DEFAULT_CONFIG
        max_workers: Solve equations on this many threads when > 1

    Returns:
        PathEstimates

    Raises:
        SingularMatrixError: a parent submatrix is not invertible
        MissingDataError: a required correlation is missing
    """
    cfg = resolve(config)
    names = [normalize_name(v) for v in variables]
    jobs = [(y, parents_of(y, edges)) for y in names]
    jobs = [(y, X) for y, X in jobs if X]

    if max_workers is not None and max_workers > 1 and len(jobs) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(_solve_equation, y, X, matrix, cfg) for y, X in jobs]
            equations = [f.result() for f in futures]
    else:
        equations = [_solve_equation(y, X, matrix, cfg) for y, X in jobs]

    coefficients: list[Coefficient] = []
    r2: dict[str, float] = {}
    residual: dict[str, float] = {}
    for eq in equations:
        r2[eq.outcome] = eq.r2
        residual[eq.outcome] = max(cfg.residual_floor, 1.0 - eq.r2)
        for x, b in zip(eq.parents, eq.beta):
            coefficients.append(Coefficient(x, eq.outcome, float(b)))

    for v in endogenous_variables(names, edges):
        if v not in residual:
            residual[v] = 1.0

    return PathEstimates(coefficients, r2, residual)
