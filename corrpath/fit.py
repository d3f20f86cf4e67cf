"""
corrpath/fit.py
===============
Model fit: SRMR, degrees of freedom, ML chi-square and the indices derived
from it (RMSEA, CFI, TLI).

Result structure
----------------
FitStatistics(
    total_n, n_method,
    srmr,                                # always present
    df, df_baseline, observed_moments, free_params, endogenous_count,
    chi2, chi2_baseline, p_value,        # None when df == 0
    rmsea, cfi, tli,                     # None when df == 0
    interpretation,                      # "good" | "adequate" | "marginal" | "poor" | "saturated"
)
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from typing import Iterable, Optional, Sequence

import numpy as np
from scipy import stats as scipy_stats

from corrpath import linalg
from corrpath.config import EngineConfig, resolve
from corrpath.correlation import normalize_name
from corrpath.errors import NotPositiveDefiniteError
from corrpath.model import Edge, endogenous_variables

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DegreesOfFreedom:
    df: int
    df_baseline: int
    observed_moments: int
    free_params: int
    endogenous_count: int


@dataclass(frozen=True)
class FitStatistics:
    total_n: float
    n_method: str
    srmr: float
    df: int
    df_baseline: int
    observed_moments: int
    free_params: int
    endogenous_count: int
    chi2: Optional[float] = None
    chi2_baseline: Optional[float] = None
    p_value: Optional[float] = None
    rmsea: Optional[float] = None
    cfi: Optional[float] = None
    tli: Optional[float] = None
    interpretation: str = "saturated"

    def to_dict(self) -> dict:
        return asdict(self)


# ---------------------------------------------------------------------------
# Pieces
# ---------------------------------------------------------------------------

def count_df(variables: Sequence[str], edges: Sequence[Edge]) -> DegreesOfFreedom:
    """One free parameter per path plus one residual variance per endogenous variable."""
    p = len(variables)
    observed_moments = p * (p + 1) // 2
    endo_count = len(endogenous_variables(variables, edges))
    free_params = len(edges) + endo_count
    return DegreesOfFreedom(
        df=max(0, observed_moments - free_params),
        df_baseline=p * (p - 1) // 2,
        observed_moments=observed_moments,
        free_params=free_params,
        endogenous_count=endo_count,
    )


def srmr_off_diagonal(S, Sigma) -> float:
    """Root-mean-square of S - Sigma over unique off-diagonal pairs (i < j)."""
    S = np.asarray(S, dtype=float)
    Sigma = np.asarray(Sigma, dtype=float)
    iu = np.triu_indices(S.shape[0], k=1)
    if iu[0].size == 0:
        return 0.0
    resid = S[iu] - Sigma[iu]
    return float(np.sqrt(np.mean(resid ** 2)))


def _ml_discrepancy(S: np.ndarray, Sigma: np.ndarray, log_det_S: float, tolerance: float) -> float:
    """F_ML = ln|Sigma| + tr(S Sigma^-1) - ln|S| - p"""
    p = S.shape[0]
    det_sigma = linalg.determinant(Sigma, tolerance=tolerance)
    if det_sigma <= 0:
        raise NotPositiveDefiniteError(
            "Implied matrix not positive definite (det<=0). Check correlations or model constraints.",
            {"det": det_sigma},
        )
    Sigma_inv = linalg.inverse(
        Sigma, context="implied matrix for the ML fit function", tolerance=tolerance
    )
    tr = linalg.trace(linalg.multiply(S, Sigma_inv))
    return math.log(det_sigma) + tr - log_det_S - p


def fit_ml(S, Sigma, total_n: float, config: Optional[EngineConfig] = None) -> tuple[float, float]:
    """
    Model and independence-model chi-square under maximum likelihood.

    Returns:
        (chi2, chi2_baseline), both scaled by N - 1

    Raises:
        NotPositiveDefiniteError: det(S) <= 0 or det(Sigma) <= 0
    """
    cfg = resolve(config)
    S = np.asarray(S, dtype=float)
    Sigma = np.asarray(Sigma, dtype=float)

    det_s = linalg.determinant(S, tolerance=cfg.pivot_tolerance)
    if det_s <= 0:
        raise NotPositiveDefiniteError(
            "Observed matrix not positive definite (det<=0). Check correlations or model constraints.",
            {"det": det_s},
        )
    log_det_s = math.log(det_s)

    chi2 = (total_n - 1) * _ml_discrepancy(S, Sigma, log_det_s, cfg.pivot_tolerance)

    Sigma0 = np.diag(np.diag(S))
    chi2_0 = (total_n - 1) * _ml_discrepancy(S, Sigma0, log_det_s, cfg.pivot_tolerance)
    return chi2, chi2_0


def fit_indices(
    chi2: float,
    df: int,
    chi2_0: float,
    df0: int,
    total_n: float,
    config: Optional[EngineConfig] = None,
) -> dict[str, float]:
    """RMSEA, CFI and TLI from model and baseline chi-square (requires df > 0)."""
    cfg = resolve(config)
    rmsea = math.sqrt(max(0.0, (chi2 - df) / (df * (total_n - 1))))
    cfi = 1.0 - max(0.0, chi2 - df) / max(cfg.cfi_epsilon, chi2_0 - df0)
    baseline_ratio = chi2_0 / df0 - 1.0
    tli = 1.0 - (chi2 / df - 1.0) / baseline_ratio if baseline_ratio != 0 else math.nan
    return {"rmsea": rmsea, "cfi": cfi, "tli": tli}


def fit_interpretation(
    cfi: Optional[float],
    rmsea: Optional[float],
    srmr: Optional[float],
    config: Optional[EngineConfig] = None,
) -> str:
    """Label overall fit by how many of CFI, RMSEA and SRMR meet their cutoff."""
    cfg = resolve(config)
    cfi_ok   = cfi   is not None and cfi   >= cfg.cfi_good
    rmsea_ok = rmsea is not None and rmsea <= cfg.rmsea_good
    srmr_ok  = srmr  is not None and srmr  <= cfg.srmr_good
    n_ok = sum([cfi_ok, rmsea_ok, srmr_ok])
    if n_ok == 3:   return "good"
    if n_ok == 2:   return "adequate"
    if n_ok == 1:   return "marginal"
    return "poor"


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def evaluate(
    S,
    Sigma,
    variables: Iterable[str],
    edges: Sequence[Edge],
    total_n: float,
    n_method: str = "harmonic",
    config: Optional[EngineConfig] = None,
) -> FitStatistics:
    """
    Compare observed and implied matrices.

    SRMR is always computed. Chi-square and its indices need df > 0; at
    df == 0 they stay None and the model is labelled "saturated".

    Raises:
        NotPositiveDefiniteError: df > 0 and S or Sigma has det <= 0
    """
    cfg = resolve(config)
    names = [normalize_name(v) for v in variables]
    dof = count_df(names, edges)
    srmr = srmr_off_diagonal(S, Sigma)

    base = dict(
        total_n=total_n,
        n_method=n_method,
        srmr=srmr,
        df=dof.df,
        df_baseline=dof.df_baseline,
        observed_moments=dof.observed_moments,
        free_params=dof.free_params,
        endogenous_count=dof.endogenous_count,
    )
    if dof.df == 0:
        logger.debug("df = 0; chi-square indices skipped (SRMR=%.4f)", srmr)
        return FitStatistics(**base)

    chi2, chi2_0 = fit_ml(S, Sigma, total_n, cfg)
    idx = fit_indices(chi2, dof.df, chi2_0, dof.df_baseline, total_n, cfg)
    p_value = float(scipy_stats.chi2.sf(max(chi2, 0.0), dof.df))
    logger.debug(
        "chi2=%.3f df=%d RMSEA=%.4f CFI=%.4f TLI=%.4f SRMR=%.4f",
        chi2, dof.df, idx["rmsea"], idx["cfi"], idx["tli"], srmr,
    )
    return FitStatistics(
        **base,
        chi2=chi2,
        chi2_baseline=chi2_0,
        p_value=p_value,
        rmsea=idx["rmsea"],
        cfi=idx["cfi"],
        tli=idx["tli"],
        interpretation=fit_interpretation(idx["cfi"], idx["rmsea"], srmr, cfg),
    )
