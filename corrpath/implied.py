"""
corrpath/implied.py
===================
Model-implied correlation matrix of a recursive path model:

    Sigma = (I - B)^-1 Psi (I - B)^-T

B holds the path coefficients (B[to][from] = beta). Psi keeps the observed
covariances among exogenous variables and the residual variance of each
endogenous variable on the diagonal; all other association flows through B.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Optional, Sequence

import numpy as np

from corrpath import linalg
from corrpath.config import EngineConfig, resolve
from corrpath.correlation import normalize_name
from corrpath.estimation import Coefficient
from corrpath.model import Edge, endogenous_variables

logger = logging.getLogger(__name__)


def structural_matrix(variables: Sequence[str], coefficients: Iterable[Coefficient]) -> np.ndarray:
    """B matrix with B[to][from] = beta."""
    idx = {v: i for i, v in enumerate(variables)}
    B = np.zeros((len(variables), len(variables)))
    for c in coefficients:
        B[idx[c.target], idx[c.source]] = c.beta
    return B


def implied_matrix(
    variables: Iterable[str],
    observed,
    edges: Sequence[Edge],
    coefficients: Iterable[Coefficient],
    residual_variance: Mapping[str, float],
    config: Optional[EngineConfig] = None,
) -> np.ndarray:
    """
    Reconstruct the model-implied correlation matrix.

    Parameters:
        variables: Ordered variable names (row/column order of ``observed``)
        observed: Observed correlation matrix S as a p x p array
        edges: Directed edges
        coefficients: Estimated path coefficients
        residual_variance: Residual variance per endogenous variable
        config: Numerical tolerances. Defaults to DEFAULT_CONFIG

    Returns:
        Sigma as a p x p array

    Raises:
        SingularMatrixError: if I - B cannot be inverted
    """
    cfg = resolve(config)
    names = [normalize_name(v) for v in variables]
    S = np.asarray(observed, dtype=float)
    p = len(names)
    endogenous = set(endogenous_variables(names, edges))

    B = structural_matrix(names, coefficients)

    exo_idx = [i for i, v in enumerate(names) if v not in endogenous]
    Psi = np.zeros((p, p))
    Psi[np.ix_(exo_idx, exo_idx)] = S[np.ix_(exo_idx, exo_idx)]
    for i, v in enumerate(names):
        if v in endogenous:
            Psi[i, i] = max(cfg.residual_floor, residual_variance.get(v, 1.0))

    inv = linalg.inverse(
        linalg.identity(p) - B,
        context="I - B for the implied correlation matrix",
        tolerance=cfg.pivot_tolerance,
    )
    Sigma = linalg.multiply(linalg.multiply(inv, Psi), linalg.transpose(inv))
    logger.debug("Implied matrix built for %d variable(s)", p)
    return Sigma
